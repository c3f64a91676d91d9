"""
Users router.

GET  /users/me                         profile with derived level
GET  /users/me/transactions            the caller's point ledger
GET  /users/me/actions                 the caller's action logs
GET  /users/me/notifications           the caller's in-app notifications
GET  /admin/users/{id}/ledger          compare cached points with the ledger (admin)
POST /admin/users/{id}/adjust-points   manual point correction (admin)
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from greenloop.db.base import get_db
from greenloop.models.user import User
from greenloop.routers.deps import get_current_admin, get_current_user
from greenloop.schemas.actions import ActionLogOut
from greenloop.schemas.common import DataResponse, Page
from greenloop.schemas.users import (
    LedgerCheckOut,
    NotificationOut,
    PointAdjustment,
    PointTransactionOut,
    ProfileOut,
)
from greenloop.services import ledger
from greenloop.services.action_logger import list_user_logs
from greenloop.services.levels import level_progress
from greenloop.services.notifications import list_notifications

router = APIRouter(tags=["users"])


@router.get("/users/me", response_model=DataResponse[ProfileOut], summary="Current profile")
def me(user: User = Depends(get_current_user)):
    progress = level_progress(user.points)
    return {
        "data": ProfileOut(
            id=user.id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            points=user.points,
            total_co2_saved=user.total_co2_saved,
            is_admin=user.is_admin,
            level=progress.level,
            next_level=progress.next_level,
            next_level_points=progress.next_level_points,
            points_to_next_level=progress.points_to_next_level,
        )
    }


@router.get(
    "/users/me/transactions",
    response_model=DataResponse[Page[PointTransactionOut]],
    summary="Point ledger (newest first)",
)
def my_transactions(
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    total, items = ledger.list_transactions(db, user.id, limit=limit, offset=offset)
    return {"data": {"total": total, "items": items}}


@router.get(
    "/users/me/actions",
    response_model=DataResponse[Page[ActionLogOut]],
    summary="Action log history (newest first)",
)
def my_actions(
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    total, items = list_user_logs(db, user.id, limit=limit, offset=offset)
    return {"data": {"total": total, "items": items}}


@router.get(
    "/users/me/notifications",
    response_model=DataResponse[Page[NotificationOut]],
    summary="In-app notifications (newest first)",
)
def my_notifications(
    unread_only: bool = Query(default=False),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    total, items = list_notifications(db, user.id, unread_only=unread_only, limit=limit, offset=offset)
    return {"data": {"total": total, "items": items}}


@router.get(
    "/admin/users/{user_id}/ledger",
    response_model=DataResponse[LedgerCheckOut],
    tags=["admin"],
    summary="Check a user's cached points against the ledger",
)
def check_ledger(
    user_id: int,
    strict: bool = Query(default=False, description="Answer 500 LEDGER_INCONSISTENT on divergence."),
    admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    """Reports divergence; never repairs it."""
    if strict:
        check = ledger.assert_ledger_consistent(db, user_id)
    else:
        check = ledger.verify_ledger(db, user_id)
    return {
        "data": LedgerCheckOut(
            user_id=check.user_id,
            cached_points=check.cached_points,
            ledger_points=check.ledger_points,
            consistent=check.consistent,
        )
    }


@router.post(
    "/admin/users/{user_id}/adjust-points",
    response_model=DataResponse[PointTransactionOut],
    status_code=status.HTTP_201_CREATED,
    tags=["admin"],
    summary="Add or remove points manually",
)
def adjust_points(
    user_id: int,
    payload: PointAdjustment,
    admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    tx = ledger.adjust_points(db, user_id, payload.delta, payload.reason, admin.id)
    return {"data": tx}
