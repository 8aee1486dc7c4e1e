from matchday.services.fixtures import (
    Orientation,
    matches_fixture,
    normalize_team_key,
    project_to_home_away,
    project_to_teams,
)


def test_normalize_team_key():
    assert normalize_team_key("  Team A ") == "team a"
    assert normalize_team_key(None) == ""

def test_matches_same_order():
    assert matches_fixture("Team A", "Team B", "team a", "team b") is Orientation.TEAM1_HOME

def test_matches_swapped_order_ignoring_case_and_padding():
    assert matches_fixture(" team b", "TEAM A ", "team a", "team b") is Orientation.TEAM1_AWAY

def test_different_fixture():
    assert matches_fixture("Team A", "Team C", "team a", "team b") is None
    assert matches_fixture("Team A", "Team A", "team a", "team b") is None

def test_projection_team1_home():
    assert project_to_home_away(Orientation.TEAM1_HOME, 2, 1) == (2, 1)
    assert project_to_teams(Orientation.TEAM1_HOME, 2, 1) == (2, 1)

def test_projection_team1_away():
    # Forum entry "Team B 1-2 Team A" is a 2-1 home win for Team A
    assert project_to_home_away(Orientation.TEAM1_AWAY, 1, 2) == (2, 1)
    assert project_to_teams(Orientation.TEAM1_AWAY, 2, 1) == (1, 2)
