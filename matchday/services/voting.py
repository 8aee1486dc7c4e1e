import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from ..errors import Conflict, NotFound, ValidationError
from ..models.match import Match
from ..models.poll import Poll
from ..models.user import User
from ..repositories import MatchRepository, PollRepository, UserRepository
from .poll_statistics import recompute_statistics
from .voting_window import is_voting_open

logger = logging.getLogger(__name__)

MATCH_CHOICES = ("home", "draw", "away")
POLL_CHOICES = ("option1", "option2")

POLL_TYPE_NAMES = {
    "daily-poll": "Daily Poll",
    "club-battle": "Club Battle",
    "goat-competition": "GOAT Competition",
}


def _check_scores(home_score: Optional[int], away_score: Optional[int]) -> bool:
    """True when a complete, valid score pair was supplied."""
    if home_score is None or away_score is None:
        return False
    if home_score < 0 or away_score < 0:
        raise ValidationError("Scores cannot be negative")
    return True


def cast_match_vote(
    db: Session,
    match_id: int,
    user: User,
    prediction: Optional[str],
    home_score: Optional[int] = None,
    away_score: Optional[int] = None,
    now: Optional[datetime] = None
) -> Match:
    """Record a home/draw/away vote, optionally with an exact-score guess."""
    matches = MatchRepository(db)
    users = UserRepository(db)

    match = matches.get(match_id)
    if not match:
        raise NotFound("Match not found")

    if prediction not in MATCH_CHOICES:
        raise ValidationError("Prediction must be one of: home, draw, away")

    now = now or datetime.now()
    if match.points_awarded or not is_voting_open(match.match_date, match.match_time, now):
        raise Conflict("Voting is closed for this match")

    if users.has_voted(user.id, "match", match_id):
        raise Conflict("You have already voted on this match")

    has_score = _check_scores(home_score, away_score)

    matches.add_vote(match_id, prediction)
    if has_score:
        matches.add_score_prediction(match_id, user.id, home_score, away_score)
        users.increment(user.id, total=1)

    users.record_vote(user.id, "match", match_id, prediction)
    score_text = f" ({home_score}-{away_score})" if has_score else ""
    users.log_activity(
        user.id,
        f"Predicted {match.home_team} vs {match.away_team}: {prediction}{score_text}",
        "prediction",
        {
            "matchId": match_id,
            "prediction": prediction,
            "homeScore": home_score if has_score else None,
            "awayScore": away_score if has_score else None,
        }
    )
    users.touch(user.id)
    matches.commit()

    db.refresh(match)
    return match


def cast_poll_vote(
    db: Session,
    poll_id: int,
    user: User,
    choice: Optional[str],
    home_score: Optional[int] = None,
    away_score: Optional[int] = None
) -> Poll:
    """Record a poll vote and refresh the poll's statistics."""
    polls = PollRepository(db)
    users = UserRepository(db)

    poll = polls.get(poll_id)
    if not poll or not poll.is_active:
        raise NotFound("Poll not found")

    if users.has_voted(user.id, poll.type, poll.id):
        raise Conflict("You have already voted on this poll")

    # Daily polls take a score; the choice follows from it and a draw counts for option1
    has_score = poll.type == "daily-poll" and _check_scores(home_score, away_score)
    if has_score:
        choice = "option2" if away_score > home_score else "option1"

    if choice not in POLL_CHOICES:
        raise ValidationError("Invalid choice. Must be option1 or option2")

    if has_score:
        polls.add_score_prediction(poll.id, user.id, home_score, away_score)
    polls.add_vote(poll.id, choice)

    users.record_vote(user.id, poll.type, poll.id, choice)
    details = {"pollId": poll.id, "pollType": poll.type, "choice": choice}
    if has_score:
        details.update(homeScore=home_score, awayScore=away_score)
    users.log_activity(
        user.id,
        f"Voted in {POLL_TYPE_NAMES.get(poll.type, poll.type)}: {poll.question}",
        "vote",
        details
    )
    users.touch(user.id)
    polls.commit()

    # The vote stands even if statistics fail; the next vote or results read rebuilds them
    try:
        recompute_statistics(db, poll.id)
    except SQLAlchemyError:
        db.rollback()
        logger.error("Could not recompute statistics for poll %s", poll.id, exc_info=True)
    db.refresh(poll)
    return poll
