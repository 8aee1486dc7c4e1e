from datetime import datetime
from typing import Optional
from sqlalchemy import Index
from sqlmodel import SQLModel, Field


class UserVote(SQLModel, table=True):
    """
    Vote ledger entry.

    poll_id points at a poll or, when poll_type is "match", at a match.
    At most one entry per (user, poll_type, poll_id), checked before insert.
    """
    __tablename__ = "user_votes"
    __table_args__ = (Index("ix_user_votes_poll", "poll_type", "poll_id"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    poll_type: str  # daily-poll, club-battle, goat-competition, match
    poll_id: int
    choice: str
    created_at: datetime = Field(default_factory=datetime.utcnow)
