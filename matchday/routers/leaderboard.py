from fastapi import APIRouter, Depends, Query
from sqlalchemy import case
from sqlmodel import Session, select

from ..database import get_session
from ..models.user import User

router = APIRouter(prefix="/api/leaderboard", tags=["leaderboard"])


@router.get("")
async def leaderboard(
    limit: int = Query(default=100, ge=1, le=500),
    sort_by: str = Query(default="points", alias="sortBy"),
    db: Session = Depends(get_session)
):
    accuracy = case(
        (User.total_predictions > 0, User.correct_predictions * 1.0 / User.total_predictions),
        else_=0.0
    )
    if sort_by == "accuracy":
        order = (accuracy.desc(), User.points.desc(), User.id)
    else:
        order = (User.points.desc(), accuracy.desc(), User.id)

    users = db.exec(select(User).order_by(*order).limit(limit)).all()

    return {
        "success": True,
        "data": [
            {
                "position": i + 1,
                "id": user.id,
                "username": user.username,
                "avatar": user.avatar,
                "points": user.points,
                "accuracy": user.accuracy,
                "rank": user.rank,
                "totalPredictions": user.total_predictions,
                "correctPredictions": user.correct_predictions,
            }
            for i, user in enumerate(users)
        ],
    }
