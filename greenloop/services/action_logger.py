"""
Action logger: records that a user completed a catalog action.

log_action(db, user_id, action_id, notes) → ActionLog
list_user_logs(db, user_id, limit, offset) → (total, page)

Order of checks
---------------
  1. per-caller throttle (RateLimitError), before anything else. HTTP
     callers count the request in a route dependency and pass throttle=False.
  2. user exists and is active, action exists and is active
  3. no log for the same (user, action) inside the duplicate window

The log snapshots points/CO2 from the action at call time. Actions that
need no verification are approved immediately and credited in the same
transaction as the log insert.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from greenloop.core.config import settings
from greenloop.core.errors import (
    DuplicateActionError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from greenloop.models.action_log import ActionLog, VerificationStatus
from greenloop.models.sustainability_action import SustainabilityAction
from greenloop.models.user import User
from greenloop.services.ledger import award_points
from greenloop.services.persistence import unit_of_work
from greenloop.services.rate_limit import RateLimiter, throttle_action_log

logger = logging.getLogger(__name__)

MAX_NOTES_LENGTH = 2_000


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def _lock_user(db: Session, user_id: int) -> Optional[User]:
    """
    Load the user row with FOR UPDATE so concurrent logs by the same user
    run their duplicate check one at a time. Dialects without row locks
    (SQLite) ignore the clause.
    """
    return db.execute(
        select(User).where(User.id == user_id).with_for_update()
    ).scalar_one_or_none()


def _has_recent_log(db: Session, user_id: int, action_id: int, since: datetime) -> bool:
    return (
        db.query(ActionLog.id)
        .filter(
            ActionLog.user_id == user_id,
            ActionLog.action_id == action_id,
            ActionLog.completed_at > since,
        )
        .first()
        is not None
    )


def log_action(
    db: Session,
    user_id: int,
    action_id: int,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
    limiter: Optional[RateLimiter] = None,
    throttle: bool = True,
) -> ActionLog:
    if throttle:
        throttle_action_log(user_id, limiter)

    now = now or _utcnow()
    notes = notes.strip() if notes else None
    if notes and len(notes) > MAX_NOTES_LENGTH:
        raise ValidationError(
            f"Notes must be at most {MAX_NOTES_LENGTH} characters.",
            details={"length": len(notes)},
        )

    window_hours = settings.DUPLICATE_WINDOW_HOURS
    with unit_of_work(db, "log action", user_id=user_id, action_id=action_id):
        user = _lock_user(db, user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        if not user.is_active:
            raise ForbiddenError("User account is inactive.", user_id=user_id)

        action = db.get(SustainabilityAction, action_id)
        if action is None:
            raise NotFoundError("Action", action_id)
        if not action.is_active:
            raise ValidationError(
                "This action is not available for logging.",
                details={"action_id": action_id},
            )

        if _has_recent_log(db, user_id, action_id, now - timedelta(hours=window_hours)):
            raise DuplicateActionError(action_id=action_id, window_hours=window_hours)

        auto_approved = not action.verification_required
        log = ActionLog(
            user_id=user_id,
            action_id=action.id,
            points_earned=action.points_value,
            co2_saved=action.co2_impact,
            notes=notes,
            verification_status=(
                VerificationStatus.approved if auto_approved else VerificationStatus.pending
            ),
            completed_at=now,
        )
        db.add(log)
        db.flush()

        if auto_approved:
            award_points(
                db, user_id, log.points_earned, log.co2_saved,
                reference_type="action",
                reference_id=log.id,
                description=f"Completed: {action.title}",
            )

    db.refresh(log)
    logger.info(
        "User %s logged action %s (log %s, %s)",
        user_id, action_id, log.id, log.verification_status.value,
    )
    return log


def list_user_logs(
    db: Session,
    user_id: int,
    limit: int = 50,
    offset: int = 0,
) -> tuple[int, list[ActionLog]]:
    """Return (total, page) of a user's action logs, newest first."""
    q = db.query(ActionLog).filter(ActionLog.user_id == user_id)
    total = q.count()
    items = (
        q.order_by(ActionLog.completed_at.desc(), ActionLog.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return total, items
