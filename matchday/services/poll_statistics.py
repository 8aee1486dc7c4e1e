import math
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from sqlmodel import Session

from ..config import STATISTICS_PALETTE, TOP_SCORE_PREDICTIONS
from ..errors import NotFound
from ..models.poll import Poll, empty_statistics
from ..repositories import PollRepository, UserRepository, Voter

UNKNOWN = "Unknown"

# (inclusive upper age bound, label)
AGE_GROUPS = [
    (17, "Under 18"),
    (24, "18-24"),
    (34, "25-34"),
    (44, "35-44"),
    (54, "45-54"),
]
OLDEST_AGE_GROUP = "55+"


def age_group(age: Optional[float]) -> str:
    if age is None or (isinstance(age, float) and math.isnan(age)):
        return UNKNOWN
    for upper, label in AGE_GROUPS:
        if age <= upper:
            return label
    return OLDEST_AGE_GROUP


def percentage(count: int, total: int) -> int:
    """Whole percent, halves rounded up. Buckets are rounded independently."""
    return math.floor(count / total * 100 + 0.5)


def color_for(index: int) -> str:
    return STATISTICS_PALETTE[index % len(STATISTICS_PALETTE)]


def _count(keys: Iterable[str]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for key in keys:
        counts[key] = counts.get(key, 0) + 1
    return counts


def _breakdown(counts: Dict[str, int], total: int, label: str) -> List[Dict[str, Any]]:
    # Buckets keep first-seen order, which also fixes their colors
    return [
        {label: key, "percentage": percentage(count, total), "color": color_for(index)}
        for index, (key, count) in enumerate(counts.items())
    ]


def compute_statistics(
    poll: Poll,
    voters: Sequence[Voter],
    score_predictions: Sequence[Tuple[int, int]]
) -> Dict[str, Any]:
    """
    Build the four statistics arrays for a poll.

    Pure: the same voters and score predictions always give the same result.
    """
    total = len(voters)
    if total == 0:
        return empty_statistics()

    countries = _count((voter.country or UNKNOWN).strip() or UNKNOWN for voter in voters)
    age_groups = _count(age_group(voter.age) for voter in voters)
    outcomes = _count(
        f"{poll.option1_name} wins" if voter.choice == "option1" else f"{poll.option2_name} wins"
        for voter in voters
    )

    scores: List[Dict[str, Any]] = []
    if poll.type == "daily-poll" and score_predictions:
        score_counts = _count(f"{home}-{away}" for home, away in score_predictions)
        # Share of the poll's own score predictions, not of all voters
        scores = _breakdown(score_counts, len(score_predictions), "score")
        scores.sort(key=lambda entry: entry["percentage"], reverse=True)
        scores = scores[:TOP_SCORE_PREDICTIONS]

    return {
        "countryBreakdown": _breakdown(countries, total, "country"),
        "ageGroupBreakdown": _breakdown(age_groups, total, "ageGroup"),
        "matchPredictions": _breakdown(outcomes, total, "prediction"),
        "scorePredictions": scores,
    }


def recompute_statistics(db: Session, poll_id: int) -> Dict[str, Any]:
    """Rebuild a poll's statistics from the vote ledger and overwrite the stored value."""
    polls = PollRepository(db)
    users = UserRepository(db)

    poll = polls.get(poll_id)
    if not poll:
        raise NotFound("Poll not found")

    statistics = compute_statistics(
        poll,
        users.voters(poll.type, poll.id),
        polls.score_predictions(poll.id)
    )
    polls.save_statistics(poll, statistics)
    polls.commit()
    return statistics
