from datetime import datetime
from typing import Any, Dict, Optional
from sqlalchemy import Column, JSON
from sqlmodel import SQLModel, Field

POLL_TYPES = ("daily-poll", "club-battle", "goat-competition")


def empty_statistics() -> Dict[str, Any]:
    return {
        "countryBreakdown": [],
        "ageGroupBreakdown": [],
        "matchPredictions": [],
        "scorePredictions": [],
    }


class Poll(SQLModel, table=True):
    __tablename__ = "polls"

    id: Optional[int] = Field(default=None, primary_key=True)
    type: str = Field(index=True)
    question: str

    option1_name: str
    option1_image: str = Field(default="")
    option1_votes: int = Field(default=0)
    option2_name: str
    option2_image: str = Field(default="")
    option2_votes: int = Field(default=0)

    is_active: bool = Field(default=True)
    created_by: Optional[int] = Field(default=None, foreign_key="users.id")

    # Derived from the vote ledger, always replaced as a whole
    statistics: Dict[str, Any] = Field(default_factory=empty_statistics, sa_column=Column(JSON))

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class PollScorePrediction(SQLModel, table=True):
    """Score guess attached to a daily-poll vote."""
    __tablename__ = "poll_score_predictions"

    id: Optional[int] = Field(default=None, primary_key=True)
    poll_id: int = Field(foreign_key="polls.id", index=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    home_score: int
    away_score: int
    created_at: datetime = Field(default_factory=datetime.utcnow)
