"""
Admin reward-claim router.

GET  /admin/rewards              all claims (optionally filtered by status)
PUT  /admin/rewards              set a claim's status
POST /admin/rewards/approve      pending  → approved
POST /admin/rewards/reject       pending  → rejected (notes required)
POST /admin/rewards/deliver      approved → delivered
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from greenloop.db.base import get_db
from greenloop.models.reward_claim import ClaimStatus
from greenloop.models.user import User
from greenloop.routers.deps import get_current_admin
from greenloop.schemas.common import DataResponse, Page
from greenloop.schemas.rewards import ClaimDecision, ClaimOut, ClaimStatusUpdate
from greenloop.services import rewards

router = APIRouter(prefix="/admin/rewards", tags=["admin"])

_TRANSITION_RESPONSES = {
    403: {"description": "Admin access required."},
    404: {"description": "Claim not found."},
    409: {"description": "Claim is not in a state that allows this transition."},
}


@router.get("", response_model=DataResponse[Page[ClaimOut]], summary="List reward claims")
def list_claims(
    status: Optional[ClaimStatus] = Query(default=None, description="Filter by claim status."),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    total, items = rewards.list_claims(db, status=status, limit=limit, offset=offset)
    return {"data": {"total": total, "items": items}}


@router.put(
    "",
    response_model=DataResponse[ClaimOut],
    summary="Update a claim's status",
    responses=_TRANSITION_RESPONSES,
)
def update_claim(
    payload: ClaimStatusUpdate,
    admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    claim = rewards.update_claim_status(
        db, payload.claim_id, admin.id, payload.status, payload.admin_notes
    )
    return {"data": claim}


@router.post(
    "/approve",
    response_model=DataResponse[ClaimOut],
    summary="Approve a pending claim",
    responses=_TRANSITION_RESPONSES,
)
def approve_claim(
    payload: ClaimDecision,
    admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    return {"data": rewards.approve_claim(db, payload.claim_id, admin.id, payload.admin_notes)}


@router.post(
    "/reject",
    response_model=DataResponse[ClaimOut],
    summary="Reject a pending claim",
    responses={**_TRANSITION_RESPONSES, 422: {"description": "admin_notes missing."}},
)
def reject_claim(
    payload: ClaimDecision,
    admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    return {"data": rewards.reject_claim(db, payload.claim_id, admin.id, payload.admin_notes)}


@router.post(
    "/deliver",
    response_model=DataResponse[ClaimOut],
    summary="Mark an approved claim as delivered",
    responses=_TRANSITION_RESPONSES,
)
def deliver_claim(
    payload: ClaimDecision,
    admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    return {"data": rewards.mark_delivered(db, payload.claim_id, admin.id, payload.admin_notes)}
