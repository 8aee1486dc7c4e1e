from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from ..database import get_session
from ..dependencies import require_admin, require_user
from ..events import bus
from ..models.user import User
from ..schemas import (
    ForumCreate,
    ForumPredictionCreate,
    PredictionResultIn,
    forum_prediction_to_dict,
    forum_to_dict,
)
from ..services.forums import create_forum, create_forum_prediction
from ..services.reconciliation import ResultReconciler

router = APIRouter(prefix="/api", tags=["forums"])


@router.post("/prediction-forums", status_code=status.HTTP_201_CREATED)
async def create_prediction_forum(
    payload: ForumCreate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_session)
):
    forum = create_forum(
        db,
        current_user,
        payload.name,
        payload.head_user_id,
        description=payload.description
    )
    return {"success": True, "data": forum_to_dict(forum)}


@router.post("/forum-predictions", status_code=status.HTTP_201_CREATED)
async def create_prediction(
    payload: ForumPredictionCreate,
    current_user: User = Depends(require_user),
    db: Session = Depends(get_session)
):
    team1 = payload.team1
    team2 = payload.team2
    score = payload.predicted_score
    prediction = create_forum_prediction(
        db,
        current_user,
        payload.forum_id,
        team1.name if team1 else None,
        team2.name if team2 else None,
        score.team1 if score else None,
        score.team2 if score else None,
        payload.match_date,
        team1_logo=team1.logo if team1 else "",
        team2_logo=team2.logo if team2 else "",
        league=payload.league
    )

    data = forum_prediction_to_dict(prediction)
    bus.publish("new-prediction", data)
    return {"success": True, "data": data}


@router.put("/forum-predictions/{prediction_id}/result")
async def update_prediction_result(
    prediction_id: int,
    payload: PredictionResultIn,
    current_user: User = Depends(require_user),
    db: Session = Depends(get_session)
):
    score = payload.actual_score
    prediction = ResultReconciler.for_session(db).record_prediction_result(
        prediction_id,
        score.team1 if score else None,
        score.team2 if score else None,
        current_user
    )
    return {"success": True, "data": forum_prediction_to_dict(prediction)}
