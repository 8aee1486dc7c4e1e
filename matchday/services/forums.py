from datetime import datetime
from typing import Optional

from sqlmodel import Session

from ..errors import Conflict, Forbidden, NotFound, ValidationError
from ..models.forum import PredictionForum
from ..models.forum_prediction import ForumPrediction
from ..models.user import User
from ..repositories import ForumPredictionRepository, UserRepository


def create_forum(
    db: Session,
    creator: User,
    name: Optional[str],
    head_user_id: Optional[int],
    description: str = ""
) -> PredictionForum:
    if not name or not head_user_id:
        raise ValidationError("Please provide name and headUserId")

    users = UserRepository(db)
    forums = ForumPredictionRepository(db)

    head = users.get(head_user_id)
    if not head:
        raise NotFound("User not found")
    if forums.get_forum_by_head(head_user_id):
        raise Conflict("User is already head of another prediction forum")

    forum = PredictionForum(
        name=name.strip(),
        description=description or "",
        head_user_id=head_user_id,
        created_by=creator.id
    )
    db.add(forum)
    db.flush()

    users.log_activity(
        head_user_id,
        "Assigned as head of prediction forum",
        "prediction",
        {"forumId": forum.id, "forumName": forum.name}
    )
    db.commit()
    db.refresh(forum)
    return forum


def create_forum_prediction(
    db: Session,
    actor: User,
    forum_id: Optional[int],
    team1_name: Optional[str],
    team2_name: Optional[str],
    predicted_team1: Optional[int],
    predicted_team2: Optional[int],
    match_date: Optional[datetime],
    team1_logo: str = "",
    team2_logo: str = "",
    league: str = ""
) -> ForumPrediction:
    """Publish a prediction in a forum. Only the forum's head may do this."""
    if (not forum_id or not team1_name or not team2_name or match_date is None
            or predicted_team1 is None or predicted_team2 is None):
        raise ValidationError("Please provide forumId, team1, team2, predictedScore, and matchDate")
    if predicted_team1 < 0 or predicted_team2 < 0:
        raise ValidationError("Scores cannot be negative")

    forums = ForumPredictionRepository(db)
    users = UserRepository(db)

    forum = forums.get_forum(forum_id)
    if not forum:
        raise NotFound("Prediction forum not found")
    if forum.head_user_id != actor.id:
        raise Forbidden("Only the forum head can create predictions")

    # Calendar day as entered; offsets are not converted
    if match_date.tzinfo is not None:
        match_date = match_date.replace(tzinfo=None)

    prediction = ForumPrediction(
        forum_id=forum.id,
        head_user_id=actor.id,
        team1_name=team1_name.strip(),
        team1_logo=team1_logo or "",
        team2_name=team2_name.strip(),
        team2_logo=team2_logo or "",
        predicted_team1=predicted_team1,
        predicted_team2=predicted_team2,
        match_date=match_date,
        league=league or ""
    )
    db.add(prediction)
    db.flush()

    users.log_activity(
        actor.id,
        "Created a prediction",
        "prediction",
        {"predictionId": prediction.id, "forumId": forum.id, "forumName": forum.name}
    )
    users.touch(actor.id)
    db.commit()
    db.refresh(prediction)
    return prediction
