from .user import User
from .session import UserSession
from .activity import UserActivity
from .vote import UserVote
from .match import Match
from .score_prediction import ScorePrediction
from .forum import PredictionForum
from .forum_prediction import ForumPrediction
from .poll import Poll, PollScorePrediction

__all__ = [
    "User",
    "UserSession",
    "UserActivity",
    "UserVote",
    "Match",
    "ScorePrediction",
    "PredictionForum",
    "ForumPrediction",
    "Poll",
    "PollScorePrediction",
]
