"""
Caller identity.

Authentication happens upstream; the gateway forwards the authenticated
user id in the X-User-Id header. These dependencies resolve it to a User
and apply the authorization collaborator.
"""
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from greenloop.core.errors import UnauthenticatedError
from greenloop.db.base import get_db
from greenloop.models.user import User
from greenloop.services.authorization import require_active, require_admin
from greenloop.services.rate_limit import throttle_action_log


def get_current_user(
    x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
    db: Session = Depends(get_db),
) -> User:
    if not x_user_id or not x_user_id.strip().isdigit():
        raise UnauthenticatedError()
    user = db.get(User, int(x_user_id))
    if user is None:
        raise UnauthenticatedError("Unknown user.")
    require_active(db, user.id)
    return user


def get_current_admin(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> User:
    require_admin(db, user.id)
    return user


def get_throttled_logger(user: User = Depends(get_current_user)) -> User:
    """
    Count an action-log request against the caller's window.

    Dependencies resolve before the request body is validated, so malformed
    payloads use up the window as well.
    """
    throttle_action_log(user.id)
    return user
