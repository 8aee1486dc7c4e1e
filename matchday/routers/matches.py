from datetime import datetime
from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from ..database import get_session
from ..dependencies import require_admin, require_user
from ..errors import NotFound, ValidationError
from ..events import bus
from ..models.match import Match
from ..models.user import User
from ..schemas import FinalScoreIn, MatchCreate, MatchVoteIn, match_to_dict
from ..services.reconciliation import ReconciliationOutcome, ResultReconciler
from ..services.voting import cast_match_vote
from ..services.voting_window import is_valid_match_time

router = APIRouter(prefix="/api/matches", tags=["matches"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_match(
    payload: MatchCreate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_session)
):
    match_time = payload.match_time.strip() if payload.match_time else None
    if match_time and not is_valid_match_time(match_time):
        raise ValidationError("matchTime must be in 24-hour HH:MM format")

    match = Match(
        home_team=payload.home_team.strip(),
        away_team=payload.away_team.strip(),
        home_logo=payload.home_logo,
        away_logo=payload.away_logo,
        league=payload.league or "Other",
        match_date=payload.match_date,
        match_time=match_time,
        created_by=current_user.id
    )
    db.add(match)
    db.commit()
    db.refresh(match)

    return {"success": True, "data": match_to_dict(match, datetime.now())}


@router.get("/{match_id}")
async def get_match(
    match_id: int,
    db: Session = Depends(get_session)
):
    match = db.get(Match, match_id)
    if not match:
        raise NotFound("Match not found")

    return {"success": True, "data": match_to_dict(match, datetime.now())}


@router.post("/{match_id}/vote")
async def vote_match(
    match_id: int,
    payload: MatchVoteIn,
    current_user: User = Depends(require_user),
    db: Session = Depends(get_session)
):
    match = cast_match_vote(
        db,
        match_id,
        current_user,
        payload.prediction,
        home_score=payload.home_score,
        away_score=payload.away_score
    )
    return {"success": True, "data": match_to_dict(match, datetime.now())}


@router.put("/{match_id}/score")
async def update_match_score(
    match_id: int,
    payload: FinalScoreIn,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_session)
):
    """Enter the final score and award points for every prediction on it."""
    outcome = ResultReconciler.for_session(db).finalize_match_score(
        match_id, payload.home_score, payload.away_score
    )

    bus.publish("match-finalized", {
        "matchId": outcome.match_id,
        "homeScore": outcome.home_score,
        "awayScore": outcome.away_score,
    })

    return _outcome_response(outcome, "Match score updated.")


@router.post("/{match_id}/score/retry")
async def retry_match_awards(
    match_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_session)
):
    """Settle predictions a storage failure left pending after the score was entered."""
    outcome = ResultReconciler.for_session(db).retry_awards(match_id)
    return _outcome_response(outcome, "Awards retried.")


def _outcome_response(outcome: ReconciliationOutcome, headline: str) -> dict:
    return {
        "success": True,
        "message": (
            f"{headline} {outcome.user_points_awarded} users and "
            f"{outcome.forum_points_awarded} forum heads earned points."
        ),
        "pointsAwarded": outcome.points_awarded,
        "userPointsAwarded": outcome.user_points_awarded,
        "forumPointsAwarded": outcome.forum_points_awarded,
        "failures": [
            {"surface": f.surface, "predictionId": f.prediction_id, "userId": f.user_id}
            for f in outcome.failures
        ],
    }
