from datetime import datetime
from typing import Optional
from sqlmodel import SQLModel, Field


class ScorePrediction(SQLModel, table=True):
    """Exact-score guess submitted with a match vote."""
    __tablename__ = "score_predictions"

    id: Optional[int] = Field(default=None, primary_key=True)
    match_id: int = Field(foreign_key="matches.id", index=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    home_score: int
    away_score: int

    # Means "evaluated", not "rewarded"
    points_awarded: bool = Field(default=False)

    created_at: datetime = Field(default_factory=datetime.utcnow)
