"""
Rewards router.

GET  /rewards           level, points, reward catalog and the caller's claims
POST /rewards/claim     claim a level reward
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from greenloop.db.base import get_db
from greenloop.models.user import User
from greenloop.routers.deps import get_current_user
from greenloop.schemas.common import DataResponse
from greenloop.schemas.rewards import ClaimOut, ClaimRequest, RewardsOverviewOut
from greenloop.services.rewards import claim_reward, rewards_overview

router = APIRouter(prefix="/rewards", tags=["rewards"])


@router.get("", response_model=DataResponse[RewardsOverviewOut], summary="Rewards overview")
def get_rewards(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    overview = rewards_overview(db, user.id)
    return {"data": RewardsOverviewOut.model_validate(overview)}


@router.post(
    "/claim",
    response_model=DataResponse[ClaimOut],
    status_code=status.HTTP_201_CREATED,
    summary="Claim a level reward",
    responses={
        403: {"description": "Level not reached yet."},
        404: {"description": "Reward not found."},
        409: {"description": "Reward already claimed."},
    },
)
def claim(
    payload: ClaimRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Creates a `pending` claim. The level is computed from the caller's
    current points. A confirmation goes to the user and an alert to the
    admin mailbox.
    """
    return {"data": claim_reward(db, user.id, payload.level_reward_id)}
