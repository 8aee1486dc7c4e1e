from datetime import datetime
from typing import Optional
from sqlmodel import SQLModel, Field


class PredictionForum(SQLModel, table=True):
    __tablename__ = "prediction_forums"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=100)
    description: str = Field(default="", max_length=500)
    # One user can only be head of one forum
    head_user_id: int = Field(foreign_key="users.id", unique=True, index=True)
    created_by: Optional[int] = Field(default=None, foreign_key="users.id")
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
