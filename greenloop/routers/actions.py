"""
Actions router.

GET    /actions                  active catalog (paginated)
GET    /actions/{id}             one catalog entry
POST   /actions                  create catalog entry (admin)
PUT    /actions/{id}             edit catalog entry (admin)
DELETE /actions/{id}             delete an unused catalog entry (admin)
POST   /actions/submissions      propose a new action for review
POST   /actions/log              record completing an action
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from greenloop.db.base import get_db
from greenloop.models.user import User
from greenloop.routers.deps import get_current_admin, get_current_user, get_throttled_logger
from greenloop.schemas.actions import (
    ActionCreate,
    ActionLogOut,
    ActionLogRequest,
    ActionOut,
    ActionSubmission,
    ActionUpdate,
)
from greenloop.schemas.common import DataResponse, Page
from greenloop.services import catalog
from greenloop.services.action_logger import log_action
from greenloop.services.authorization import is_admin

router = APIRouter(prefix="/actions", tags=["actions"])


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

@router.get(
    "",
    response_model=DataResponse[Page[ActionOut]],
    summary="List catalog actions (newest first)",
)
def list_actions(
    category: Optional[str] = Query(default=None, description="Filter by category."),
    include_inactive: bool = Query(
        default=False, description="Admins only: include deactivated and pending entries."
    ),
    limit: int = Query(default=50, ge=1, le=200, description="Page size."),
    offset: int = Query(default=0, ge=0, description="Skip N items."),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    total, items = catalog.list_actions(
        db,
        category=category,
        include_inactive=include_inactive and is_admin(db, user.id),
        limit=limit,
        offset=offset,
    )
    return {"data": {"total": total, "items": items}}


@router.get(
    "/{action_id}",
    response_model=DataResponse[ActionOut],
    summary="Get one catalog action",
    responses={404: {"description": "Action not found."}},
)
def get_action(
    action_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return {"data": catalog.get_action(db, action_id)}


@router.post(
    "",
    response_model=DataResponse[ActionOut],
    status_code=status.HTTP_201_CREATED,
    summary="Create a catalog action (admin)",
    responses={403: {"description": "Admin access required."}},
)
def create_action(
    payload: ActionCreate,
    admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    return {"data": catalog.create_action(db, admin.id, payload.model_dump())}


@router.put(
    "/{action_id}",
    response_model=DataResponse[ActionOut],
    summary="Edit a catalog action (admin)",
    responses={403: {"description": "Admin access required."}, 404: {"description": "Action not found."}},
)
def update_action(
    action_id: int,
    payload: ActionUpdate,
    admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    """
    Only the fields present in the body change. Action logs already
    recorded keep the points and CO2 they were created with.
    """
    fields = payload.model_dump(exclude_unset=True)
    return {"data": catalog.update_action(db, admin.id, action_id, fields)}


@router.delete(
    "/{action_id}",
    status_code=status.HTTP_200_OK,
    summary="Delete a catalog action nobody has logged (admin)",
    responses={409: {"description": "Action has logs; deactivate it instead."}},
)
def delete_action(
    action_id: int,
    admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    catalog.delete_action(db, admin.id, action_id)
    return {"data": {"id": action_id, "deleted": True}}


@router.post(
    "/submissions",
    response_model=DataResponse[ActionOut],
    status_code=status.HTTP_201_CREATED,
    summary="Propose a new action for admin review",
)
def submit_action(
    payload: ActionSubmission,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    The action is created inactive. Once an admin approves it, it joins the
    catalog and the submitter is credited with one completion.
    """
    return {"data": catalog.submit_action(db, user.id, payload.model_dump())}


# ---------------------------------------------------------------------------
# POST /actions/log
# ---------------------------------------------------------------------------

@router.post(
    "/log",
    response_model=DataResponse[ActionLogOut],
    status_code=status.HTTP_201_CREATED,
    summary="Log completing a sustainability action",
    responses={
        404: {"description": "Action not found."},
        409: {"description": "Same action already logged in the last 24 hours."},
        429: {"description": "Too many log requests."},
    },
)
def log_action_endpoint(
    payload: ActionLogRequest,
    user: User = Depends(get_throttled_logger),
    db: Session = Depends(get_db),
):
    """
    Record that the caller completed an action.

    - Actions without verification are approved and credited immediately.
    - Actions that need verification stay `pending` until an admin reviews them.
    """
    return {"data": log_action(db, user.id, payload.action_id, payload.notes, throttle=False)}
