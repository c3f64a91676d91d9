"""
Authorization collaborator.

Backed by the users table. Consulted on every authenticated request
(require_active) and before every admin-only operation (require_admin);
all point-mutating paths go through the same request-scoped session after
this check, never through a privileged side channel.
"""
from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from greenloop.core.errors import ForbiddenError
from greenloop.models.user import User


def is_active(db: Session, user_id: int) -> bool:
    row = db.execute(select(User.is_active).where(User.id == user_id)).scalar_one_or_none()
    return bool(row)


def is_admin(db: Session, user_id: int) -> bool:
    row = db.execute(
        select(User.is_admin, User.is_active).where(User.id == user_id)
    ).one_or_none()
    if row is None:
        return False
    return bool(row.is_admin and row.is_active)


def require_admin(db: Session, user_id: int) -> None:
    if not is_admin(db, user_id):
        raise ForbiddenError(user_id=user_id)


def require_active(db: Session, user_id: int) -> None:
    if not is_active(db, user_id):
        raise ForbiddenError("User account is inactive.", user_id=user_id)
