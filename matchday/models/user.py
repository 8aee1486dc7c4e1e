from datetime import datetime
from typing import Optional
from sqlmodel import SQLModel, Field

# (minimum points, rank), highest first
RANK_THRESHOLDS = [
    (10000, "Legend"),
    (5000, "Master"),
    (2500, "Expert"),
    (1000, "Advanced"),
    (500, "Professional"),
    (250, "Intermediate"),
    (100, "Rookie"),
]
DEFAULT_RANK = "Bronze"


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(unique=True, index=True, max_length=20)
    email: str = Field(unique=True, index=True, max_length=255)
    password_hash: str = Field(max_length=255)
    is_admin: bool = Field(default=False)

    # Demographics used by poll statistics
    country: str = Field(default="", max_length=100)
    age: Optional[int] = Field(default=None)
    avatar: str = Field(default="")

    # Only ever incremented, see UserRepository.increment
    points: int = Field(default=0)
    correct_predictions: int = Field(default=0)
    total_predictions: int = Field(default=0)

    last_active_at: datetime = Field(default_factory=datetime.utcnow)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def accuracy(self) -> int:
        """Percentage of settled predictions that were correct."""
        if self.total_predictions > 0:
            return int(self.correct_predictions / self.total_predictions * 100 + 0.5)
        return 0

    @property
    def rank(self) -> str:
        for threshold, name in RANK_THRESHOLDS:
            if self.points >= threshold:
                return name
        return DEFAULT_RANK
