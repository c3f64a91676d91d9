"""
Reward claim workflow.

Lifecycle
---------
  claim_reward      (user)   → pending
  approve_claim     (admin)  pending  → approved
  reject_claim      (admin)  pending  → rejected      notes required
  mark_delivered    (admin)  approved → delivered
Any other move raises InvalidStateError. rejected and delivered are final.

Eligibility is decided from the user's current point total at claim time,
never from a stored level. One claim per (user, reward) is enforced by the
uq_user_level_reward constraint.

Emails and in-app notifications go out after the transition commits and
never affect its outcome.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from greenloop.core.config import settings
from greenloop.core.errors import (
    AlreadyClaimedError,
    InvalidStateError,
    LevelNotReachedError,
    NotFoundError,
    ValidationError,
)
from greenloop.models.level_reward import LevelReward
from greenloop.models.reward_claim import ClaimStatus, UserLevelReward
from greenloop.models.user import User
from greenloop.services.admin_activity import log_admin_activity
from greenloop.services.authorization import require_active, require_admin
from greenloop.services.levels import level_for_points
from greenloop.services.notifications import NotificationKind, Notifier, Outbox
from greenloop.services.persistence import unit_of_work

logger = logging.getLogger(__name__)

# Statuses an admin may set through update_claim_status()
ADMIN_TARGET_STATUSES = (ClaimStatus.approved, ClaimStatus.rejected, ClaimStatus.delivered)


@dataclass
class RewardsOverview:
    current_level: int
    total_points: int
    level_rewards: list[LevelReward]
    user_rewards: list[UserLevelReward]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def _ev(v) -> str:
    return v.value if hasattr(v, "value") else str(v)


def _current_points(db: Session, user_id: int) -> Optional[int]:
    # Read straight from the row; never trust an object cached in the session.
    return db.execute(select(User.points).where(User.id == user_id)).scalar_one_or_none()


def _load_claim(db: Session, claim_id: int) -> UserLevelReward:
    claim = db.get(UserLevelReward, claim_id)
    if claim is None:
        raise NotFoundError("Reward claim", claim_id)
    return claim


def _reward_payload(claim: UserLevelReward, reward: Optional[LevelReward]) -> dict:
    return {
        "user_name": claim.user_name,
        "user_email": claim.user_email,
        "level": claim.level,
        "reward_title": reward.reward_title if reward is not None else "Reward",
        "reward_description": reward.reward_description if reward is not None else "",
    }


def _transition(
    db: Session,
    claim: UserLevelReward,
    from_status: ClaimStatus,
    to_status: ClaimStatus,
    values: dict,
    error_message: str,
) -> None:
    """Move the claim only if it is still in `from_status`."""
    if claim.claim_status != from_status:
        raise InvalidStateError(
            error_message,
            details={"claim_id": claim.id, "status": _ev(claim.claim_status)},
        )
    values = {UserLevelReward.claim_status: to_status, **values}
    updated = (
        db.query(UserLevelReward)
        .filter(UserLevelReward.id == claim.id, UserLevelReward.claim_status == from_status)
        .update(values, synchronize_session=False)
    )
    if updated != 1:
        raise InvalidStateError(error_message, details={"claim_id": claim.id})


# ---------------------------------------------------------------------------
# User side
# ---------------------------------------------------------------------------

def claim_reward(
    db: Session,
    user_id: int,
    level_reward_id: int,
    now: Optional[datetime] = None,
    notifier: Optional[Notifier] = None,
) -> UserLevelReward:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    require_active(db, user_id)
    reward = db.get(LevelReward, level_reward_id)
    if reward is None or not reward.is_active:
        raise NotFoundError("Reward", level_reward_id)

    current_level = level_for_points(_current_points(db, user_id) or 0)
    if current_level < reward.level:
        raise LevelNotReachedError(required_level=reward.level, current_level=current_level)

    existing = (
        db.query(UserLevelReward.id)
        .filter(
            UserLevelReward.user_id == user_id,
            UserLevelReward.level_reward_id == level_reward_id,
        )
        .first()
    )
    if existing is not None:
        raise AlreadyClaimedError(level_reward_id=level_reward_id)

    claim = UserLevelReward(
        user_id=user_id,
        level=reward.level,
        level_reward_id=reward.id,
        claim_status=ClaimStatus.pending,
        claimed_at=now or _utcnow(),
        user_email=user.email,
        user_name=user.full_name,
    )
    with unit_of_work(db, "claim reward", user_id=user_id, level_reward_id=level_reward_id):
        db.add(claim)
        try:
            db.flush()
        except IntegrityError:
            # A concurrent request inserted the same (user, reward) first.
            raise AlreadyClaimedError(level_reward_id=level_reward_id)
    db.refresh(claim)
    logger.info("User %s claimed reward %s (claim %s)", user_id, level_reward_id, claim.id)

    payload = _reward_payload(claim, reward)
    outbox = Outbox()
    outbox.add(NotificationKind.reward_claimed, user_id=user_id, email=claim.user_email, **payload)
    outbox.add(
        NotificationKind.reward_admin_alert,
        email=settings.ADMIN_EMAIL,
        claimed_at=claim.claimed_at.isoformat() if claim.claimed_at else "",
        **payload,
    )
    (notifier or Notifier(db)).dispatch(outbox)
    return claim


def rewards_overview(db: Session, user_id: int) -> RewardsOverview:
    points = _current_points(db, user_id)
    if points is None:
        raise NotFoundError("User", user_id)
    level_rewards = (
        db.query(LevelReward)
        .filter(LevelReward.is_active.is_(True))
        .order_by(LevelReward.level.asc(), LevelReward.id.asc())
        .all()
    )
    user_rewards = (
        db.query(UserLevelReward)
        .filter(UserLevelReward.user_id == user_id)
        .order_by(UserLevelReward.claimed_at.desc(), UserLevelReward.id.desc())
        .all()
    )
    return RewardsOverview(
        current_level=level_for_points(points),
        total_points=points,
        level_rewards=level_rewards,
        user_rewards=user_rewards,
    )


# ---------------------------------------------------------------------------
# Admin side
# ---------------------------------------------------------------------------

def list_claims(
    db: Session,
    status: Optional[ClaimStatus] = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[int, list[UserLevelReward]]:
    """Return (total, page) of claims, newest first."""
    q = db.query(UserLevelReward)
    if status is not None:
        q = q.filter(UserLevelReward.claim_status == status)
    total = q.count()
    items = (
        q.order_by(UserLevelReward.claimed_at.desc(), UserLevelReward.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return total, items


def approve_claim(
    db: Session,
    claim_id: int,
    admin_id: int,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
    notifier: Optional[Notifier] = None,
) -> UserLevelReward:
    require_admin(db, admin_id)
    claim = _load_claim(db, claim_id)
    notes = notes.strip() if notes and notes.strip() else None
    now = now or _utcnow()

    with unit_of_work(db, "approve reward claim", claim_id=claim_id, admin_id=admin_id):
        _transition(
            db, claim, ClaimStatus.pending, ClaimStatus.approved,
            {
                UserLevelReward.approved_at: now,
                UserLevelReward.approved_by: admin_id,
                UserLevelReward.admin_notes: notes,
                UserLevelReward.updated_at: now,
            },
            "Only pending claims can be approved.",
        )
        log_admin_activity(db, admin_id, "reward_claim_approved", "user_level_rewards", claim_id)
    db.refresh(claim)

    outbox = Outbox()
    outbox.add(
        NotificationKind.reward_approved,
        user_id=claim.user_id,
        email=claim.user_email,
        admin_notes=notes or "",
        **_reward_payload(claim, db.get(LevelReward, claim.level_reward_id)),
    )
    (notifier or Notifier(db)).dispatch(outbox)
    return claim


def reject_claim(
    db: Session,
    claim_id: int,
    admin_id: int,
    notes: Optional[str],
    now: Optional[datetime] = None,
    notifier: Optional[Notifier] = None,
) -> UserLevelReward:
    require_admin(db, admin_id)
    notes = (notes or "").strip()
    if not notes:
        raise ValidationError("Admin notes are required when rejecting a claim.")
    claim = _load_claim(db, claim_id)
    now = now or _utcnow()

    with unit_of_work(db, "reject reward claim", claim_id=claim_id, admin_id=admin_id):
        _transition(
            db, claim, ClaimStatus.pending, ClaimStatus.rejected,
            {
                UserLevelReward.approved_at: now,
                UserLevelReward.approved_by: admin_id,
                UserLevelReward.admin_notes: notes,
                UserLevelReward.updated_at: now,
            },
            "Only pending claims can be rejected.",
        )
        log_admin_activity(
            db, admin_id, "reward_claim_rejected", "user_level_rewards", claim_id,
            {"notes": notes},
        )
    db.refresh(claim)

    outbox = Outbox()
    outbox.add(
        NotificationKind.reward_rejected,
        user_id=claim.user_id,
        email=claim.user_email,
        admin_notes=notes,
        **_reward_payload(claim, db.get(LevelReward, claim.level_reward_id)),
    )
    (notifier or Notifier(db)).dispatch(outbox)
    return claim


def mark_delivered(
    db: Session,
    claim_id: int,
    admin_id: int,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
    notifier: Optional[Notifier] = None,
) -> UserLevelReward:
    require_admin(db, admin_id)
    claim = _load_claim(db, claim_id)
    notes = notes.strip() if notes and notes.strip() else None
    now = now or _utcnow()

    with unit_of_work(db, "deliver reward claim", claim_id=claim_id, admin_id=admin_id):
        _transition(
            db, claim, ClaimStatus.approved, ClaimStatus.delivered,
            {
                UserLevelReward.admin_notes: notes if notes is not None else claim.admin_notes,
                UserLevelReward.updated_at: now,
            },
            "Only approved claims can be delivered.",
        )
        log_admin_activity(db, admin_id, "reward_claim_delivered", "user_level_rewards", claim_id)
    db.refresh(claim)

    outbox = Outbox()
    outbox.add(
        NotificationKind.reward_delivered,
        user_id=claim.user_id,
        email=claim.user_email,
        admin_notes=notes or "Your reward has been delivered!",
        **_reward_payload(claim, db.get(LevelReward, claim.level_reward_id)),
    )
    (notifier or Notifier(db)).dispatch(outbox)
    return claim


def update_claim_status(
    db: Session,
    claim_id: int,
    admin_id: int,
    status: str,
    notes: Optional[str] = None,
    notifier: Optional[Notifier] = None,
) -> UserLevelReward:
    """Single entry point for the admin status dropdown."""
    try:
        target = ClaimStatus(status)
    except ValueError:
        target = None
    if target not in ADMIN_TARGET_STATUSES:
        raise ValidationError(
            "Invalid status.",
            details={"status": status, "allowed": [s.value for s in ADMIN_TARGET_STATUSES]},
        )

    if target is ClaimStatus.approved:
        return approve_claim(db, claim_id, admin_id, notes, notifier=notifier)
    if target is ClaimStatus.rejected:
        return reject_claim(db, claim_id, admin_id, notes, notifier=notifier)
    return mark_delivered(db, claim_id, admin_id, notes, notifier=notifier)
