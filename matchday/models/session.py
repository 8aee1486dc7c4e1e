from datetime import datetime
from typing import Optional
from sqlmodel import SQLModel, Field


class UserSession(SQLModel, table=True):
    """Cookie login session. The token is what the browser holds."""
    __tablename__ = "user_sessions"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    token: str = Field(unique=True, index=True, max_length=64)
    expires_at: datetime = Field(index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    def is_valid(self, now: datetime) -> bool:
        return self.expires_at > now
