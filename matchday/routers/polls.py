from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from ..database import get_session
from ..dependencies import require_admin, require_user
from ..errors import ValidationError
from ..models.poll import Poll, POLL_TYPES
from ..models.user import User
from ..schemas import PollCreate, PollVoteIn, poll_to_dict
from ..services.poll_statistics import recompute_statistics
from ..services.voting import cast_poll_vote

router = APIRouter(prefix="/api/polls", tags=["polls"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_poll(
    payload: PollCreate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_session)
):
    if payload.type not in POLL_TYPES:
        raise ValidationError(f"Poll type must be one of: {', '.join(POLL_TYPES)}")

    poll = Poll(
        type=payload.type,
        question=payload.question,
        option1_name=payload.option1.name,
        option1_image=payload.option1.image,
        option2_name=payload.option2.name,
        option2_image=payload.option2.image,
        created_by=current_user.id
    )
    db.add(poll)
    db.commit()
    db.refresh(poll)

    return {"success": True, "data": poll_to_dict(poll)}


@router.post("/{poll_id}/vote")
async def vote_poll(
    poll_id: int,
    payload: PollVoteIn,
    current_user: User = Depends(require_user),
    db: Session = Depends(get_session)
):
    poll = cast_poll_vote(
        db,
        poll_id,
        current_user,
        payload.choice,
        home_score=payload.home_score,
        away_score=payload.away_score
    )
    return {"success": True, "data": poll_to_dict(poll)}


@router.get("/{poll_id}/results")
async def poll_results(
    poll_id: int,
    db: Session = Depends(get_session)
):
    """Poll with freshly recomputed statistics."""
    recompute_statistics(db, poll_id)
    poll = db.get(Poll, poll_id)

    return {"success": True, "data": poll_to_dict(poll)}
