"""
Matching forum predictions against a match.

Forum heads type team names freely and in no particular order, so a
prediction for "team b" vs "Team A" belongs to the match Team A (home)
vs Team B (away). Orientation records which way round it was entered.
"""
from enum import Enum
from typing import Optional, Tuple


class Orientation(str, Enum):
    TEAM1_HOME = "team1_home"
    TEAM1_AWAY = "team1_away"


def normalize_team_key(name: Optional[str]) -> str:
    """Trimmed, case-insensitive key for a team name."""
    return (name or "").strip().lower()


def matches_fixture(
    team1: Optional[str],
    team2: Optional[str],
    home_key: str,
    away_key: str
) -> Optional[Orientation]:
    """Return how team1/team2 line up with home/away, or None if they are a different fixture."""
    key1 = normalize_team_key(team1)
    key2 = normalize_team_key(team2)

    if key1 == home_key and key2 == away_key:
        return Orientation.TEAM1_HOME
    if key1 == away_key and key2 == home_key:
        return Orientation.TEAM1_AWAY
    return None


def project_to_home_away(orientation: Orientation, team1_value: int, team2_value: int) -> Tuple[int, int]:
    """Re-express a (team1, team2) pair as (home, away)."""
    if orientation is Orientation.TEAM1_HOME:
        return team1_value, team2_value
    return team2_value, team1_value


def project_to_teams(orientation: Orientation, home_value: int, away_value: int) -> Tuple[int, int]:
    """Re-express a (home, away) pair as (team1, team2)."""
    if orientation is Orientation.TEAM1_HOME:
        return home_value, away_value
    return away_value, home_value
