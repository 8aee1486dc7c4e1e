from datetime import date, datetime
from typing import Optional
from sqlmodel import SQLModel, Field


class Match(SQLModel, table=True):
    __tablename__ = "matches"

    id: Optional[int] = Field(default=None, primary_key=True)

    # Free-text names, compared trimmed and case-insensitively
    home_team: str
    away_team: str
    home_logo: str = Field(default="")
    away_logo: str = Field(default="")
    league: str = Field(default="Other")

    # Local kickoff
    match_date: date = Field(index=True)
    match_time: Optional[str] = Field(default=None)  # HH:MM, 24-hour

    # Cached only, see services.voting_window.match_status
    status: str = Field(default="upcoming")  # upcoming, live, finished

    # Actual result (filled by admin)
    home_score: Optional[int] = Field(default=None)
    away_score: Optional[int] = Field(default=None)

    votes_home: int = Field(default=0)
    votes_draw: int = Field(default=0)
    votes_away: int = Field(default=0)

    # Set exactly once when the final score is entered
    points_awarded: bool = Field(default=False)
    points_awarded_at: Optional[datetime] = Field(default=None)

    created_by: Optional[int] = Field(default=None, foreign_key="users.id")
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
