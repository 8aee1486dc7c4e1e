from datetime import datetime
from typing import Optional
from sqlmodel import SQLModel, Field


class ForumPrediction(SQLModel, table=True):
    """Prediction published by a forum head."""
    __tablename__ = "forum_predictions"

    id: Optional[int] = Field(default=None, primary_key=True)
    forum_id: int = Field(foreign_key="prediction_forums.id", index=True)
    head_user_id: int = Field(foreign_key="users.id", index=True)

    # No home/away: team order is whatever the head entered
    team1_name: str
    team1_logo: str = Field(default="")
    team2_name: str
    team2_logo: str = Field(default="")

    predicted_team1: int
    predicted_team2: int
    actual_team1: Optional[int] = Field(default=None)
    actual_team2: Optional[int] = Field(default=None)

    match_date: datetime = Field(index=True)
    league: str = Field(default="")

    status: str = Field(default="pending", index=True)  # pending, live, completed
    is_correct: Optional[bool] = Field(default=None)  # None until settled

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
