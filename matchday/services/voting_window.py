import re
from datetime import date, datetime, time, timedelta
from typing import Optional, Union

from ..config import VOTING_WINDOW_MINUTES

VOTING_WINDOW = timedelta(minutes=VOTING_WINDOW_MINUTES)

# 24-hour "H:MM" or "HH:MM", the only form accepted for new matches
MATCH_TIME_PATTERN = re.compile(r"^([01]?\d|2[0-3]):[0-5]\d$")


def is_valid_match_time(match_time: str) -> bool:
    return bool(MATCH_TIME_PATTERN.match(match_time.strip()))


def kickoff_datetime(
    match_date: Optional[Union[date, datetime]],
    match_time: Optional[str]
) -> Optional[datetime]:
    """
    Combine a calendar date and an "HH:MM" string into a local kickoff time.

    Anything after the minutes (such as seconds) is ignored. Returns None
    when either part is missing or the time cannot be parsed.
    """
    if match_date is None or not match_time:
        return None

    if isinstance(match_date, datetime):
        match_date = match_date.date()

    try:
        hours, minutes = (int(part) for part in match_time.strip().split(":")[:2])
        return datetime.combine(match_date, time(hours, minutes))
    except (ValueError, TypeError):
        return None


def is_voting_open(
    match_date: Optional[Union[date, datetime]],
    match_time: Optional[str],
    now: datetime
) -> bool:
    """
    Voting stays open until VOTING_WINDOW_MINUTES after kickoff, inclusive.

    Missing or malformed schedules never block a vote.
    """
    kickoff = kickoff_datetime(match_date, match_time)
    if kickoff is None:
        return True
    return now <= kickoff + VOTING_WINDOW


def match_status(
    match_date: Optional[Union[date, datetime]],
    match_time: Optional[str],
    now: datetime
) -> str:
    """Derive upcoming/live/finished from the schedule alone."""
    kickoff = kickoff_datetime(match_date, match_time)
    if kickoff is None or now < kickoff:
        return "upcoming"
    if now <= kickoff + VOTING_WINDOW:
        return "live"
    return "finished"
