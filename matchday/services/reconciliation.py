"""
Match result reconciliation.

When an admin enters a final score, two unrelated prediction ledgers are
settled against it:

- exact-score guesses submitted with match votes (MATCH_PREDICTION_POINTS)
- forum head predictions for the same fixture on the same day, matched by
  team name in either order (FORUM_PREDICTION_POINTS)

The match row is claimed first with a conditional update, which is what
makes the whole call exactly-once. After that every prediction is settled
in its own transaction; a storage error on one is logged, recorded in the
outcome and skipped so the rest still get their points.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from ..config import FORUM_PREDICTION_POINTS, MANUAL_RESULT_POINTS, MATCH_PREDICTION_POINTS
from ..errors import Conflict, Forbidden, InternalError, NotFound, ValidationError
from ..models.forum_prediction import ForumPrediction
from ..models.match import Match
from ..models.user import User
from ..repositories import ForumPredictionRepository, MatchRepository, UserRepository
from .fixtures import Orientation, project_to_home_away, project_to_teams

logger = logging.getLogger(__name__)


@dataclass
class AwardFailure:
    surface: str  # "match" or "forum"
    prediction_id: int
    user_id: int
    error: str


@dataclass
class ReconciliationOutcome:
    match_id: int
    home_score: int
    away_score: int
    awarded_users: List[int] = field(default_factory=list)
    awarded_forum_heads: List[int] = field(default_factory=list)
    evaluated_predictions: int = 0
    settled_forum_predictions: int = 0
    failures: List[AwardFailure] = field(default_factory=list)

    @property
    def user_points_awarded(self) -> int:
        return len(self.awarded_users)

    @property
    def forum_points_awarded(self) -> int:
        return len(self.awarded_forum_heads)

    @property
    def points_awarded(self) -> int:
        return self.user_points_awarded + self.forum_points_awarded


def validate_score(home_score: Optional[int], away_score: Optional[int]) -> None:
    if home_score is None or away_score is None:
        raise ValidationError("Please provide both homeScore and awayScore")
    if home_score < 0 or away_score < 0:
        raise ValidationError("Scores cannot be negative")


class ResultReconciler:
    """Settles predictions against final scores. Depends only on the repositories."""

    def __init__(
        self,
        matches: MatchRepository,
        users: UserRepository,
        forum_predictions: ForumPredictionRepository
    ):
        self.matches = matches
        self.users = users
        self.forum_predictions = forum_predictions

    @classmethod
    def for_session(cls, db: Session) -> "ResultReconciler":
        return cls(MatchRepository(db), UserRepository(db), ForumPredictionRepository(db))

    def finalize_match_score(
        self,
        match_id: int,
        home_score: Optional[int],
        away_score: Optional[int],
        now: Optional[datetime] = None
    ) -> ReconciliationOutcome:
        validate_score(home_score, away_score)
        now = now or datetime.utcnow()

        match = self.matches.get(match_id)
        if not match:
            raise NotFound("Match not found")
        if match.points_awarded:
            raise Conflict("Points have already been awarded for this match")

        try:
            claimed = self.matches.claim_for_scoring(match_id, home_score, away_score, now)
            self.matches.commit()
        except SQLAlchemyError as exc:
            self.matches.rollback()
            logger.error("Could not record final score for match %s", match_id, exc_info=True)
            raise InternalError(str(exc)) from exc

        if not claimed:
            # Another request finalized it between our read and our update
            raise Conflict("Points have already been awarded for this match")

        self.matches.db.refresh(match)
        outcome = ReconciliationOutcome(match_id=match_id, home_score=home_score, away_score=away_score)

        self._award_all(match, outcome)
        return outcome

    def retry_awards(self, match_id: int) -> ReconciliationOutcome:
        """
        Run the award loops again for a match whose score is already final.

        Picks up predictions left unsettled by a storage failure during
        finalize_match_score. Settled predictions are never touched again, so
        repeating this is harmless.
        """
        match = self.matches.get(match_id)
        if not match:
            raise NotFound("Match not found")
        if not match.points_awarded:
            raise Conflict("Match score has not been finalized yet")

        outcome = ReconciliationOutcome(
            match_id=match_id, home_score=match.home_score, away_score=match.away_score
        )
        self._award_all(match, outcome)
        return outcome

    def _award_all(self, match: Match, outcome: ReconciliationOutcome) -> None:
        match_id, home_team, away_team = match.id, match.home_team, match.away_team

        self._award_score_predictions(match, outcome)
        self._settle_forum_predictions(match, outcome)

        logger.info(
            "Awarded match %s (%s %s-%s %s): %s users and %s forum heads awarded, %s failures",
            match_id, home_team, outcome.home_score, outcome.away_score, away_team,
            outcome.user_points_awarded, outcome.forum_points_awarded, len(outcome.failures)
        )

    def _award_score_predictions(self, match: Match, outcome: ReconciliationOutcome) -> None:
        home_score, away_score = outcome.home_score, outcome.away_score
        match_id, home_team, away_team = match.id, match.home_team, match.away_team

        pending = [
            (p.id, p.user_id, p.home_score, p.away_score)
            for p in self.matches.pending_score_predictions(match_id)
        ]
        for prediction_id, user_id, predicted_home, predicted_away in pending:
            is_correct = predicted_home == home_score and predicted_away == away_score
            awarded = False
            try:
                if not self.matches.mark_evaluated(prediction_id):
                    continue
                if is_correct and self.users.increment(user_id, points=MATCH_PREDICTION_POINTS, correct=1):
                    self.users.log_activity(
                        user_id,
                        f"Earned {MATCH_PREDICTION_POINTS} points for correct prediction: "
                        f"{home_team} {home_score}-{away_score} {away_team}",
                        "prediction",
                        {
                            "matchId": match_id,
                            "points": MATCH_PREDICTION_POINTS,
                            "prediction": f"{predicted_home}-{predicted_away}",
                            "actualScore": f"{home_score}-{away_score}",
                        }
                    )
                    awarded = True
                self.matches.commit()
            except SQLAlchemyError as exc:
                self.matches.rollback()
                logger.error(
                    "Failed to settle score prediction %s for user %s on match %s",
                    prediction_id, user_id, match_id, exc_info=True
                )
                outcome.failures.append(AwardFailure("match", prediction_id, user_id, str(exc)))
                continue

            outcome.evaluated_predictions += 1
            if awarded:
                outcome.awarded_users.append(user_id)

    def _settle_forum_predictions(self, match: Match, outcome: ReconciliationOutcome) -> None:
        home_score, away_score = outcome.home_score, outcome.away_score

        candidates = [
            (p.id, p.head_user_id, p.team1_name, p.team2_name, p.predicted_team1, p.predicted_team2, orientation)
            for p, orientation in self.forum_predictions.find_open_for_fixture(
                match.home_team, match.away_team, match.match_date
            )
        ]
        for prediction_id, head_user_id, team1, team2, predicted1, predicted2, orientation in candidates:
            predicted_home, predicted_away = project_to_home_away(orientation, predicted1, predicted2)
            is_correct = predicted_home == home_score and predicted_away == away_score
            actual1, actual2 = project_to_teams(orientation, home_score, away_score)
            awarded = False
            try:
                if not self.forum_predictions.settle(prediction_id, is_correct, actual1, actual2):
                    continue
                if is_correct:
                    awarded = self.users.increment(
                        head_user_id, points=FORUM_PREDICTION_POINTS, correct=1, total=1
                    )
                    if awarded:
                        self.users.log_activity(
                            head_user_id,
                            f"Earned {FORUM_PREDICTION_POINTS} points for correct forum prediction: "
                            f"{team1} {actual1}-{actual2} {team2}",
                            "prediction",
                            {
                                "matchId": outcome.match_id,
                                "predictionId": prediction_id,
                                "points": FORUM_PREDICTION_POINTS,
                                "prediction": f"{predicted1}-{predicted2}",
                                "actualScore": f"{actual1}-{actual2}",
                                "team1IsHome": orientation is Orientation.TEAM1_HOME,
                            }
                        )
                else:
                    self.users.increment(head_user_id, total=1)
                self.forum_predictions.commit()
            except SQLAlchemyError as exc:
                self.forum_predictions.rollback()
                logger.error(
                    "Failed to settle forum prediction %s for head %s on match %s",
                    prediction_id, head_user_id, outcome.match_id, exc_info=True
                )
                outcome.failures.append(AwardFailure("forum", prediction_id, head_user_id, str(exc)))
                continue

            outcome.settled_forum_predictions += 1
            if awarded:
                outcome.awarded_forum_heads.append(head_user_id)

    def record_prediction_result(
        self,
        prediction_id: int,
        actual_team1: Optional[int],
        actual_team2: Optional[int],
        actor: User
    ) -> ForumPrediction:
        """
        Settle one forum prediction from a score given in its own team order.

        Separate from finalize_match_score and paid at MANUAL_RESULT_POINTS.
        """
        prediction = self.forum_predictions.get(prediction_id)
        if not prediction:
            raise NotFound("Prediction not found")
        if not actor.is_admin and prediction.head_user_id != actor.id:
            raise Forbidden("Only admin or forum head can update prediction results")
        if actual_team1 is None or actual_team2 is None:
            raise ValidationError("Please provide actualScore with team1 and team2")
        if prediction.is_correct is not None:
            raise Conflict("Prediction result has already been recorded")

        head_user_id = prediction.head_user_id
        is_correct = (
            prediction.predicted_team1 == actual_team1 and prediction.predicted_team2 == actual_team2
        )
        try:
            if not self.forum_predictions.settle(prediction_id, is_correct, actual_team1, actual_team2):
                raise Conflict("Prediction result has already been recorded")
            if is_correct:
                self.users.increment(head_user_id, points=MANUAL_RESULT_POINTS, correct=1, total=1)
            else:
                self.users.increment(head_user_id, total=1)
            self.forum_predictions.commit()
        except SQLAlchemyError as exc:
            self.forum_predictions.rollback()
            logger.error("Could not record result for forum prediction %s", prediction_id, exc_info=True)
            raise InternalError(str(exc)) from exc

        self.forum_predictions.db.refresh(prediction)
        return prediction
