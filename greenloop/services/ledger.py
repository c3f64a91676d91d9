"""
Point ledger.

Public API
----------
award_points(db, user_id, points, co2, ...)   → PointTransaction  (flush only)
adjust_points(db, user_id, delta, reason, admin_id) → PointTransaction (commits)
verify_ledger(db, user_id)                     → LedgerCheck
assert_ledger_consistent(db, user_id)          → LedgerCheck | ConsistencyError
list_transactions(db, user_id, limit, offset)  → (total, page)

The ledger row and the cached users.points / users.total_co2_saved update
form one unit of work: both are written in the caller's transaction and
commit or roll back together. The cached totals are bumped with
`SET points = points + :delta` so concurrent awards never overwrite each
other.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from greenloop.core.errors import ConsistencyError, NotFoundError, ValidationError
from greenloop.models.point_transaction import PointTransaction, TransactionType
from greenloop.models.user import User
from greenloop.services.admin_activity import log_admin_activity
from greenloop.services.authorization import require_admin
from greenloop.services.persistence import unit_of_work

logger = logging.getLogger(__name__)


@dataclass
class LedgerCheck:
    user_id: int
    cached_points: int
    ledger_points: int

    @property
    def consistent(self) -> bool:
        return self.cached_points == self.ledger_points


# ---------------------------------------------------------------------------
# Unit of work
# ---------------------------------------------------------------------------

def _increment_totals(
    db: Session,
    user_id: int,
    points: int,
    co2: Decimal,
) -> None:
    updated = (
        db.query(User)
        .filter(User.id == user_id, User.points + points >= 0)
        .update(
            {
                User.points: User.points + points,
                User.total_co2_saved: User.total_co2_saved + co2,
            },
            synchronize_session=False,
        )
    )
    if updated != 1:
        # The ledger row is already staged; the caller's rollback discards it.
        logger.error(
            "Cached totals update matched %s rows for user_id=%s delta=%s",
            updated, user_id, points,
        )
        raise ConsistencyError(user_id=user_id, cached_points=None, ledger_points=None)


def award_points(
    db: Session,
    user_id: int,
    points: int,
    co2: Decimal,
    *,
    reference_type: str,
    reference_id: Optional[int],
    description: str,
    transaction_type: TransactionType = TransactionType.earned,
) -> PointTransaction:
    """
    Append a ledger row and bump the user's cached totals.
    Flushes but does NOT commit; the caller owns the transaction.
    """
    tx = PointTransaction(
        user_id=user_id,
        points=points,
        transaction_type=transaction_type,
        reference_type=reference_type,
        reference_id=reference_id,
        description=description,
    )
    db.add(tx)
    db.flush()
    _increment_totals(db, user_id, points, co2)
    return tx


# ---------------------------------------------------------------------------
# Admin adjustments
# ---------------------------------------------------------------------------

def adjust_points(
    db: Session,
    user_id: int,
    delta: int,
    reason: str,
    admin_id: int,
) -> PointTransaction:
    """Manual correction by an admin. Points may never go below zero."""
    require_admin(db, admin_id)
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("A reason is required for point adjustments.")
    if delta == 0:
        raise ValidationError("Adjustment must be non-zero.")

    current = db.execute(select(User.points).where(User.id == user_id)).scalar_one_or_none()
    if current is None:
        raise NotFoundError("User", user_id)
    if current + delta < 0:
        raise ValidationError(
            "Adjustment would make the point total negative.",
            details={"points": current, "delta": delta},
        )

    with unit_of_work(db, "adjust points", user_id=user_id, delta=delta):
        tx = award_points(
            db, user_id, delta, Decimal("0"),
            reference_type="adjustment",
            reference_id=admin_id,
            description=reason,
            transaction_type=TransactionType.adjusted,
        )
        log_admin_activity(
            db, admin_id, "points_adjusted", "users", user_id,
            {"delta": delta, "reason": reason},
        )
    db.refresh(tx)
    logger.info("Admin %s adjusted user %s by %s points", admin_id, user_id, delta)
    return tx


# ---------------------------------------------------------------------------
# Consistency checks
# ---------------------------------------------------------------------------

def ledger_total(db: Session, user_id: int) -> int:
    total = db.execute(
        select(func.coalesce(func.sum(PointTransaction.points), 0))
        .where(PointTransaction.user_id == user_id)
    ).scalar_one()
    return int(total)


def verify_ledger(db: Session, user_id: int) -> LedgerCheck:
    """Compare the cached total with the ledger sum. Reports, never repairs."""
    cached = db.execute(select(User.points).where(User.id == user_id)).scalar_one_or_none()
    if cached is None:
        raise NotFoundError("User", user_id)
    check = LedgerCheck(user_id=user_id, cached_points=cached, ledger_points=ledger_total(db, user_id))
    if not check.consistent:
        logger.error(
            "Ledger divergence for user_id=%s: cached=%s ledger=%s",
            user_id, check.cached_points, check.ledger_points,
        )
    return check


def assert_ledger_consistent(db: Session, user_id: int) -> LedgerCheck:
    check = verify_ledger(db, user_id)
    if not check.consistent:
        raise ConsistencyError(
            user_id=user_id,
            cached_points=check.cached_points,
            ledger_points=check.ledger_points,
        )
    return check


def list_transactions(
    db: Session,
    user_id: int,
    limit: int = 50,
    offset: int = 0,
) -> tuple[int, list[PointTransaction]]:
    """Return (total, page) of a user's ledger rows, newest first."""
    q = db.query(PointTransaction).filter(PointTransaction.user_id == user_id)
    total = q.count()
    items = (
        q.order_by(PointTransaction.created_at.desc(), PointTransaction.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return total, items
