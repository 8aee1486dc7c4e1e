"""
Storage access for the aggregates the scoring engine touches.

Every counter change is a single UPDATE with column arithmetic and every
"exactly once" flag is flipped with a conditional UPDATE, so two requests
racing on the same row cannot both win. Callers own the transaction:
nothing here commits.
"""
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

from sqlalchemy import update
from sqlmodel import Session, select

from .models.user import User
from .models.activity import UserActivity
from .models.vote import UserVote
from .models.match import Match
from .models.score_prediction import ScorePrediction
from .models.forum import PredictionForum
from .models.forum_prediction import ForumPrediction
from .models.poll import Poll, PollScorePrediction
from .services.fixtures import Orientation, matches_fixture, normalize_team_key

OPEN_FORUM_STATUSES = ("pending", "live")


class Voter(NamedTuple):
    country: Optional[str]
    age: Optional[int]
    choice: str


class Repository:
    def __init__(self, db: Session):
        self.db = db

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()


class UserRepository(Repository):
    def get(self, user_id: int) -> Optional[User]:
        return self.db.get(User, user_id)

    def increment(self, user_id: int, points: int = 0, correct: int = 0, total: int = 0) -> bool:
        """Atomically add to a user's counters. Returns False if the user does not exist."""
        statement = (
            update(User)
            .where(User.id == user_id)
            .values(
                points=User.points + points,
                correct_predictions=User.correct_predictions + correct,
                total_predictions=User.total_predictions + total,
                updated_at=datetime.utcnow()
            )
        )
        result = self.db.exec(statement)
        return result.rowcount == 1

    def touch(self, user_id: int) -> None:
        self.db.exec(
            update(User).where(User.id == user_id).values(last_active_at=datetime.utcnow())
        )

    def log_activity(self, user_id: int, action: str, type: str, details: Optional[Dict[str, Any]] = None) -> UserActivity:
        activity = UserActivity(user_id=user_id, action=action, type=type, details=details or {})
        self.db.add(activity)
        return activity

    def has_voted(self, user_id: int, poll_type: str, poll_id: int) -> bool:
        statement = select(UserVote.id).where(
            UserVote.user_id == user_id,
            UserVote.poll_type == poll_type,
            UserVote.poll_id == poll_id
        )
        return self.db.exec(statement).first() is not None

    def record_vote(self, user_id: int, poll_type: str, poll_id: int, choice: str) -> UserVote:
        vote = UserVote(user_id=user_id, poll_type=poll_type, poll_id=poll_id, choice=choice)
        self.db.add(vote)
        return vote

    def voters(self, poll_type: str, poll_id: int) -> List[Voter]:
        """Every ledger entry for a poll joined with the voter's demographics, oldest vote first."""
        statement = (
            select(User.country, User.age, UserVote.choice)
            .select_from(UserVote)
            .join(User, User.id == UserVote.user_id)
            .where(UserVote.poll_type == poll_type, UserVote.poll_id == poll_id)
            .order_by(UserVote.id)
        )
        return [Voter(*row) for row in self.db.exec(statement).all()]


class MatchRepository(Repository):
    def get(self, match_id: int) -> Optional[Match]:
        return self.db.get(Match, match_id)

    def claim_for_scoring(self, match_id: int, home_score: int, away_score: int, now: datetime) -> bool:
        """
        Record the final score if nobody has yet.

        Returns True only for the caller whose UPDATE flipped points_awarded.
        """
        statement = (
            update(Match)
            .where(Match.id == match_id, Match.points_awarded == False)
            .values(
                home_score=home_score,
                away_score=away_score,
                status="finished",
                points_awarded=True,
                points_awarded_at=now,
                updated_at=now
            )
        )
        result = self.db.exec(statement)
        return result.rowcount == 1

    def pending_score_predictions(self, match_id: int) -> List[ScorePrediction]:
        statement = (
            select(ScorePrediction)
            .where(ScorePrediction.match_id == match_id, ScorePrediction.points_awarded == False)
            .order_by(ScorePrediction.id)
        )
        return list(self.db.exec(statement).all())

    def mark_evaluated(self, prediction_id: int) -> bool:
        statement = (
            update(ScorePrediction)
            .where(ScorePrediction.id == prediction_id, ScorePrediction.points_awarded == False)
            .values(points_awarded=True)
        )
        result = self.db.exec(statement)
        return result.rowcount == 1

    def add_score_prediction(self, match_id: int, user_id: int, home_score: int, away_score: int) -> ScorePrediction:
        prediction = ScorePrediction(
            match_id=match_id,
            user_id=user_id,
            home_score=home_score,
            away_score=away_score
        )
        self.db.add(prediction)
        return prediction

    def add_vote(self, match_id: int, prediction: str) -> None:
        column = {
            "home": Match.votes_home,
            "draw": Match.votes_draw,
            "away": Match.votes_away,
        }[prediction]
        self.db.exec(
            update(Match).where(Match.id == match_id).values({column: column + 1})
        )


class ForumPredictionRepository(Repository):
    def get(self, prediction_id: int) -> Optional[ForumPrediction]:
        return self.db.get(ForumPrediction, prediction_id)

    def get_forum(self, forum_id: int) -> Optional[PredictionForum]:
        return self.db.get(PredictionForum, forum_id)

    def get_forum_by_head(self, user_id: int) -> Optional[PredictionForum]:
        return self.db.exec(
            select(PredictionForum).where(PredictionForum.head_user_id == user_id)
        ).first()

    def find_open_for_fixture(
        self,
        home_team: str,
        away_team: str,
        match_day: date
    ) -> List[Tuple[ForumPrediction, Orientation]]:
        """
        Unsettled predictions dated on match_day for the same two teams,
        entered in either order.
        """
        day_start = datetime.combine(match_day, time.min)
        day_end = day_start + timedelta(days=1)
        statement = (
            select(ForumPrediction)
            .where(
                ForumPrediction.status.in_(OPEN_FORUM_STATUSES),
                ForumPrediction.is_correct == None,
                ForumPrediction.match_date >= day_start,
                ForumPrediction.match_date < day_end
            )
            .order_by(ForumPrediction.id)
        )

        home_key = normalize_team_key(home_team)
        away_key = normalize_team_key(away_team)
        found = []
        for prediction in self.db.exec(statement).all():
            orientation = matches_fixture(prediction.team1_name, prediction.team2_name, home_key, away_key)
            if orientation is not None:
                found.append((prediction, orientation))
        return found

    def settle(self, prediction_id: int, is_correct: bool, actual_team1: int, actual_team2: int) -> bool:
        """Set the result once. Returns False if it was already settled."""
        now = datetime.utcnow()
        statement = (
            update(ForumPrediction)
            .where(ForumPrediction.id == prediction_id, ForumPrediction.is_correct == None)
            .values(
                is_correct=is_correct,
                actual_team1=actual_team1,
                actual_team2=actual_team2,
                status="completed",
                updated_at=now
            )
        )
        result = self.db.exec(statement)
        return result.rowcount == 1


class PollRepository(Repository):
    def get(self, poll_id: int) -> Optional[Poll]:
        return self.db.get(Poll, poll_id)

    def score_predictions(self, poll_id: int) -> List[Tuple[int, int]]:
        statement = (
            select(PollScorePrediction.home_score, PollScorePrediction.away_score)
            .where(PollScorePrediction.poll_id == poll_id)
            .order_by(PollScorePrediction.id)
        )
        return [(home, away) for home, away in self.db.exec(statement).all()]

    def add_score_prediction(self, poll_id: int, user_id: int, home_score: int, away_score: int) -> PollScorePrediction:
        prediction = PollScorePrediction(
            poll_id=poll_id,
            user_id=user_id,
            home_score=home_score,
            away_score=away_score
        )
        self.db.add(prediction)
        return prediction

    def add_vote(self, poll_id: int, choice: str) -> None:
        column = {
            "option1": Poll.option1_votes,
            "option2": Poll.option2_votes,
        }[choice]
        self.db.exec(
            update(Poll).where(Poll.id == poll_id).values({column: column + 1})
        )

    def save_statistics(self, poll: Poll, statistics: Dict[str, Any]) -> None:
        poll.statistics = statistics
        poll.updated_at = datetime.utcnow()
        self.db.add(poll)
