"""
Request bodies and response shapes for the JSON API.

Field names are snake_case in Python and camelCase on the wire.
"""
from datetime import date, datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .models.forum import PredictionForum
from .models.forum_prediction import ForumPrediction
from .models.match import Match
from .models.poll import Poll
from .models.user import User
from .services.voting_window import is_voting_open, match_status


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RegisterIn(CamelModel):
    username: str = Field(min_length=3, max_length=20)
    email: str
    password: str = Field(min_length=6)
    country: str = ""
    age: Optional[int] = Field(default=None, ge=0)


class LoginIn(CamelModel):
    username: str
    password: str


class MatchCreate(CamelModel):
    home_team: str
    away_team: str
    match_date: date
    match_time: Optional[str] = None
    home_logo: str = ""
    away_logo: str = ""
    league: str = "Other"


class MatchVoteIn(CamelModel):
    prediction: Optional[str] = None
    home_score: Optional[int] = None
    away_score: Optional[int] = None


class FinalScoreIn(CamelModel):
    home_score: Optional[int] = None
    away_score: Optional[int] = None


class PollOptionIn(CamelModel):
    name: str
    image: str = ""


class PollCreate(CamelModel):
    type: str
    question: str
    option1: PollOptionIn
    option2: PollOptionIn


class PollVoteIn(CamelModel):
    choice: Optional[str] = None
    home_score: Optional[int] = None
    away_score: Optional[int] = None


class ForumCreate(CamelModel):
    name: Optional[str] = None
    description: str = ""
    head_user_id: Optional[int] = None


class TeamIn(CamelModel):
    name: Optional[str] = None
    logo: str = ""


class TeamScoreIn(CamelModel):
    team1: Optional[int] = None
    team2: Optional[int] = None


class ForumPredictionCreate(CamelModel):
    forum_id: Optional[int] = None
    team1: Optional[TeamIn] = None
    team2: Optional[TeamIn] = None
    predicted_score: Optional[TeamScoreIn] = None
    match_date: Optional[datetime] = None
    league: str = ""


class PredictionResultIn(CamelModel):
    actual_score: Optional[TeamScoreIn] = None


def _vote_percentage(votes: int, total: int) -> int:
    return int(votes / total * 100 + 0.5) if total > 0 else 0


def user_profile(user: User) -> Dict[str, Any]:
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "isAdmin": user.is_admin,
        "country": user.country,
        "age": user.age,
        "avatar": user.avatar,
        "points": user.points,
        "correctPredictions": user.correct_predictions,
        "totalPredictions": user.total_predictions,
        "accuracy": user.accuracy,
        "rank": user.rank,
    }


def match_to_dict(match: Match, now: datetime) -> Dict[str, Any]:
    total_votes = match.votes_home + match.votes_draw + match.votes_away
    status = "finished" if match.points_awarded else match_status(match.match_date, match.match_time, now)
    return {
        "id": match.id,
        "homeTeam": match.home_team,
        "awayTeam": match.away_team,
        "homeLogo": match.home_logo,
        "awayLogo": match.away_logo,
        "league": match.league,
        "matchDate": match.match_date.isoformat(),
        "matchTime": match.match_time,
        "status": status,
        "homeScore": match.home_score,
        "awayScore": match.away_score,
        "votes": {
            "home": match.votes_home,
            "draw": match.votes_draw,
            "away": match.votes_away,
        },
        "homePercentage": _vote_percentage(match.votes_home, total_votes),
        "drawPercentage": _vote_percentage(match.votes_draw, total_votes),
        "awayPercentage": _vote_percentage(match.votes_away, total_votes),
        "votingOpen": not match.points_awarded and is_voting_open(match.match_date, match.match_time, now),
        "pointsAwarded": match.points_awarded,
        "pointsAwardedAt": match.points_awarded_at.isoformat() if match.points_awarded_at else None,
    }


def poll_to_dict(poll: Poll) -> Dict[str, Any]:
    total = poll.option1_votes + poll.option2_votes
    return {
        "id": poll.id,
        "type": poll.type,
        "question": poll.question,
        "option1": {"name": poll.option1_name, "image": poll.option1_image, "votes": poll.option1_votes},
        "option2": {"name": poll.option2_name, "image": poll.option2_image, "votes": poll.option2_votes},
        # An empty poll shows an even split
        "option1Percentage": _vote_percentage(poll.option1_votes, total) if total else 50,
        "option2Percentage": _vote_percentage(poll.option2_votes, total) if total else 50,
        "isActive": poll.is_active,
        "statistics": poll.statistics,
    }


def forum_to_dict(forum: PredictionForum) -> Dict[str, Any]:
    return {
        "id": forum.id,
        "name": forum.name,
        "description": forum.description,
        "headUserId": forum.head_user_id,
        "isActive": forum.is_active,
    }


def forum_prediction_to_dict(prediction: ForumPrediction) -> Dict[str, Any]:
    settled = prediction.actual_team1 is not None and prediction.actual_team2 is not None
    return {
        "id": prediction.id,
        "forumId": prediction.forum_id,
        "headUserId": prediction.head_user_id,
        "team1": {"name": prediction.team1_name, "logo": prediction.team1_logo},
        "team2": {"name": prediction.team2_name, "logo": prediction.team2_logo},
        "predictedScore": {"team1": prediction.predicted_team1, "team2": prediction.predicted_team2},
        "actualScore": {"team1": prediction.actual_team1, "team2": prediction.actual_team2} if settled else None,
        "matchDate": prediction.match_date.isoformat(),
        "league": prediction.league,
        "status": prediction.status,
        "isCorrect": prediction.is_correct,
    }
