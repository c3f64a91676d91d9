"""
Notification collaborator.

State transitions never wait on notifications. Services queue
NotificationIntents in an Outbox while they work, commit, and only then
hand the outbox to Notifier.dispatch(). Each intent is delivered
independently; a failure is logged and swallowed so it can never roll back
or fail the operation that produced it.

Delivery for one intent:
  - an in-app Notification row (when the intent targets a user), and
  - an email (when the intent carries an address and the kind has a template).

list_notifications(db, user_id, unread_only, limit, offset) → (total, page)
"""
from __future__ import annotations

import enum
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from sqlalchemy.orm import Session

from greenloop.models.notification import Notification
from greenloop.services.email import EmailSender

logger = logging.getLogger(__name__)


class NotificationKind(str, enum.Enum):
    action_rejected = "action_rejected"
    submission_rejected = "submission_rejected"
    reward_claimed = "reward_claimed"
    reward_admin_alert = "reward_admin_alert"
    reward_approved = "reward_approved"
    reward_rejected = "reward_rejected"
    reward_delivered = "reward_delivered"


# kind → (title, message) format strings filled from the intent payload
_IN_APP_TEXT: dict[NotificationKind, tuple[str, str]] = {
    NotificationKind.action_rejected: (
        "Action not approved",
        'Your "{action_title}" submission was rejected: {reason}',
    ),
    NotificationKind.submission_rejected: (
        "Action submission not approved",
        'Your proposed action "{action_title}" was rejected: {reason}',
    ),
    NotificationKind.reward_claimed: (
        "Reward claim received",
        'We received your claim for "{reward_title}". An administrator will review it shortly.',
    ),
    NotificationKind.reward_approved: (
        "Reward approved",
        'Your reward "{reward_title}" has been approved!',
    ),
    NotificationKind.reward_rejected: (
        "Reward claim rejected",
        'Your claim for "{reward_title}" was rejected: {admin_notes}',
    ),
    NotificationKind.reward_delivered: (
        "Reward delivered",
        'Your reward "{reward_title}" has been delivered. {admin_notes}',
    ),
}


@dataclass
class NotificationIntent:
    kind: NotificationKind
    user_id: Optional[int] = None
    email: Optional[str] = None
    payload: dict[str, Any] = field(default_factory=dict)


class Outbox:
    """Notifications to send once the surrounding transaction has committed."""

    def __init__(self) -> None:
        self.intents: list[NotificationIntent] = []

    def add(
        self,
        kind: NotificationKind,
        user_id: Optional[int] = None,
        email: Optional[str] = None,
        **payload: Any,
    ) -> None:
        self.intents.append(NotificationIntent(kind=kind, user_id=user_id, email=email, payload=payload))

    def __len__(self) -> int:
        return len(self.intents)


class Notifier:
    def __init__(self, db: Session, mailer: Optional[EmailSender] = None):
        self.db = db
        self.mailer = mailer or EmailSender()

    def notify(self, intent: NotificationIntent) -> None:
        if intent.user_id is not None and intent.kind in _IN_APP_TEXT:
            title, message = _IN_APP_TEXT[intent.kind]
            text = _SafeFormat(intent.payload)
            self.db.add(Notification(
                user_id=intent.user_id,
                kind=intent.kind.value,
                title=title.format_map(text),
                message=message.format_map(text).strip(),
                payload=json.dumps(intent.payload, default=str),
            ))
            self.db.commit()

        if intent.email:
            self.mailer.send_template(
                intent.kind.value,
                intent.email,
                **{k.upper(): v for k, v in intent.payload.items()},
            )

    def dispatch(self, outbox: Outbox) -> int:
        """Deliver every intent. Returns how many were delivered."""
        delivered = 0
        for intent in outbox.intents:
            try:
                self.notify(intent)
                delivered += 1
            except Exception:
                self.db.rollback()
                logger.warning(
                    "Notification %s for user_id=%s failed",
                    intent.kind.value, intent.user_id,
                    exc_info=True,
                )
        return delivered


class _SafeFormat(dict):
    def __missing__(self, key: str) -> str:
        return ""


def list_notifications(
    db: Session,
    user_id: int,
    unread_only: bool = False,
    limit: int = 50,
    offset: int = 0,
) -> tuple[int, list[Notification]]:
    """Return (total, page) of a user's in-app notifications, newest first."""
    q = db.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        q = q.filter(Notification.is_read.is_(False))
    total = q.count()
    items = (
        q.order_by(Notification.created_at.desc(), Notification.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return total, items
