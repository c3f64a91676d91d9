"""
Admin review router.

GET  /admin/actions/pending        logs and submissions waiting for review
POST /admin/actions/approve        approve a log or a submission
POST /admin/actions/reject         reject a log or a submission
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from greenloop.db.base import get_db
from greenloop.models.user import User
from greenloop.routers.deps import get_current_admin
from greenloop.schemas.actions import ActionLogOut, ActionOut
from greenloop.schemas.verification import ApproveRequest, RejectRequest
from greenloop.services import verification
from greenloop.services.catalog import list_pending_submissions

router = APIRouter(prefix="/admin/actions", tags=["admin"])


@router.get("/pending", summary="Items waiting for review")
def pending_reviews(
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    total, logs = verification.list_pending_logs(db, limit=limit, offset=offset)
    submissions = list_pending_submissions(db)
    return {
        "data": {
            "logs": {
                "total": total,
                "items": [ActionLogOut.model_validate(log).model_dump(mode="json") for log in logs],
            },
            "submissions": [
                ActionOut.model_validate(a).model_dump(mode="json") for a in submissions
            ],
        }
    }


@router.post(
    "/approve",
    summary="Approve an action log or a user submission",
    responses={
        403: {"description": "Admin access required."},
        404: {"description": "Log or submission not found."},
        409: {"description": "Already approved or rejected."},
    },
)
def approve(
    payload: ApproveRequest,
    admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    """
    Approving credits the user: a ledger entry is written and their point
    and CO2 totals are increased. For a submission, the action is activated
    with the final values and one completion is logged for the submitter.
    """
    log = verification.approve(db, payload.to_request(), admin.id)
    return {
        "data": {
            "kind": payload.kind,
            "action_log": ActionLogOut.model_validate(log).model_dump(mode="json"),
        }
    }


@router.post(
    "/reject",
    summary="Reject an action log or a user submission",
    responses={
        403: {"description": "Admin access required."},
        404: {"description": "Log or submission not found."},
        409: {"description": "Already approved or rejected."},
    },
)
def reject(
    payload: RejectRequest,
    admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    result = verification.reject(db, payload.to_request(), admin.id, payload.reason)
    if payload.kind == "log":
        body = {"action_log": ActionLogOut.model_validate(result).model_dump(mode="json")}
    else:
        body = {"action": ActionOut.model_validate(result).model_dump(mode="json")}
    return {"data": {"kind": payload.kind, **body}}
