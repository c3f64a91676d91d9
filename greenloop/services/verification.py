"""
Verification workflow: admin review of logged actions and user submissions.

One state machine, two kinds of target:

  LogVerification(action_log_id)
      an ActionLog waiting in `pending`
  SubmissionVerification(action_id, points_value, co2_impact)
      a user-submitted catalog action waiting for activation

Transitions
-----------
  pending → approved   points are awarded (ledger row + cached totals)
  pending → rejected   no point effects; the submitter is notified
Both terminal states are final: processing a target twice raises
AlreadyProcessedError.

Every transition is a conditional UPDATE (`... WHERE still pending`), so two
admins racing on the same target cannot both win.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Union

from sqlalchemy.orm import Session

from greenloop.core.errors import AlreadyProcessedError, NotFoundError, ValidationError
from greenloop.models.action_log import ActionLog, VerificationStatus
from greenloop.models.sustainability_action import SustainabilityAction
from greenloop.services.admin_activity import log_admin_activity
from greenloop.services.authorization import require_admin
from greenloop.services.catalog import validate_values
from greenloop.services.ledger import award_points
from greenloop.services.notifications import NotificationKind, Notifier, Outbox
from greenloop.services.persistence import unit_of_work

logger = logging.getLogger(__name__)

SUBMISSION_AUTO_LOG_NOTE = "Auto-logged upon action approval"


# ---------------------------------------------------------------------------
# Request variants
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class LogVerification:
    action_log_id: int


@dataclass(frozen=True)
class SubmissionVerification:
    action_id: int
    # Finalized values; default to what the submitter proposed.
    points_value: Optional[int] = None
    co2_impact: Optional[Decimal] = None


VerificationRequest = Union[LogVerification, SubmissionVerification]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def _ev(v) -> str:
    return v.value if hasattr(v, "value") else str(v)


def _clean_reason(reason: Optional[str]) -> str:
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("A rejection reason is required.")
    return reason


def _load_log(db: Session, action_log_id: int) -> ActionLog:
    log = db.get(ActionLog, action_log_id)
    if log is None:
        raise NotFoundError("Action log", action_log_id)
    if log.verification_status != VerificationStatus.pending:
        raise AlreadyProcessedError("Action log", action_log_id, _ev(log.verification_status))
    return log


def _transition_log(
    db: Session,
    log: ActionLog,
    to_status: VerificationStatus,
    admin_id: int,
    now: datetime,
    notes: Optional[str] = None,
) -> None:
    values = {
        ActionLog.verification_status: to_status,
        ActionLog.verified_by: admin_id,
        ActionLog.verified_at: now,
    }
    if notes is not None:
        values[ActionLog.notes] = notes
    updated = (
        db.query(ActionLog)
        .filter(
            ActionLog.id == log.id,
            ActionLog.verification_status == VerificationStatus.pending,
        )
        .update(values, synchronize_session=False)
    )
    if updated != 1:
        # Someone else moved it out of pending between our read and write.
        raise AlreadyProcessedError("Action log", log.id, "processed concurrently")


def _submission_state(action: SustainabilityAction) -> Optional[str]:
    if action.auto_logged_for_submitter or action.is_active:
        return "approved"
    if action.rejection_reason:
        return "rejected"
    return None


def _load_submission(db: Session, action_id: int) -> SustainabilityAction:
    action = db.get(SustainabilityAction, action_id)
    if action is None or not action.is_user_created:
        raise NotFoundError("Action submission", action_id)
    state = _submission_state(action)
    if state is not None:
        raise AlreadyProcessedError("Action submission", action_id, state)
    return action


def _pending_submission_filter(action_id: int):
    return (
        SustainabilityAction.id == action_id,
        SustainabilityAction.is_active.is_(False),
        SustainabilityAction.auto_logged_for_submitter.is_(False),
        SustainabilityAction.rejection_reason.is_(None),
    )


# ---------------------------------------------------------------------------
# Approve
# ---------------------------------------------------------------------------

def _approve_log(db: Session, req: LogVerification, admin_id: int, now: datetime) -> ActionLog:
    log = _load_log(db, req.action_log_id)
    action = db.get(SustainabilityAction, log.action_id)
    title = action.title if action is not None else f"action {log.action_id}"

    with unit_of_work(db, "approve action log", action_log_id=log.id, admin_id=admin_id):
        _transition_log(db, log, VerificationStatus.approved, admin_id, now)
        award_points(
            db, log.user_id, log.points_earned, log.co2_saved,
            reference_type="action",
            reference_id=log.id,
            description=f"Completed: {title}",
        )
        log_admin_activity(
            db, admin_id, "action_log_approved", "user_actions", log.id,
            {"user_id": log.user_id, "points": log.points_earned},
        )
    db.refresh(log)
    return log


def _approve_submission(
    db: Session,
    req: SubmissionVerification,
    admin_id: int,
    now: datetime,
) -> ActionLog:
    action = _load_submission(db, req.action_id)
    if action.submitted_by is None:
        raise ValidationError(
            "Submission has no submitter to credit.",
            details={"action_id": action.id},
        )
    points, co2 = validate_values(
        req.points_value if req.points_value is not None else action.points_value,
        req.co2_impact if req.co2_impact is not None else action.co2_impact,
    )
    submitter_id = action.submitted_by
    title = action.title

    with unit_of_work(db, "approve action submission", action_id=action.id, admin_id=admin_id):
        updated = (
            db.query(SustainabilityAction)
            .filter(*_pending_submission_filter(action.id))
            .update(
                {
                    SustainabilityAction.is_active: True,
                    SustainabilityAction.points_value: points,
                    SustainabilityAction.co2_impact: co2,
                    SustainabilityAction.auto_logged_for_submitter: True,
                },
                synchronize_session=False,
            )
        )
        if updated != 1:
            raise AlreadyProcessedError("Action submission", action.id, "processed concurrently")

        log = ActionLog(
            user_id=submitter_id,
            action_id=action.id,
            points_earned=points,
            co2_saved=co2,
            verification_status=VerificationStatus.approved,
            notes=SUBMISSION_AUTO_LOG_NOTE,
            verified_by=admin_id,
            verified_at=now,
            completed_at=now,
        )
        db.add(log)
        db.flush()

        award_points(
            db, submitter_id, points, co2,
            reference_type="action",
            reference_id=log.id,
            description=f"Completed: {title}",
        )
        log_admin_activity(
            db, admin_id, "action_submission_approved", "sustainability_actions", action.id,
            {"submitted_by": submitter_id, "points_value": points, "co2_impact": co2},
        )
    db.refresh(log)
    db.refresh(action)
    return log


def approve(
    db: Session,
    request: VerificationRequest,
    admin_id: int,
    now: Optional[datetime] = None,
) -> ActionLog:
    """
    Approve a pending target and credit its points.
    Returns the ActionLog that carried the award.
    """
    require_admin(db, admin_id)
    now = now or _utcnow()

    if isinstance(request, LogVerification):
        log = _approve_log(db, request, admin_id, now)
    elif isinstance(request, SubmissionVerification):
        log = _approve_submission(db, request, admin_id, now)
    else:
        raise TypeError(f"unsupported verification request {request!r}")

    logger.info(
        "Admin %s approved %s; user %s credited %s points",
        admin_id, request, log.user_id, log.points_earned,
    )
    return log


# ---------------------------------------------------------------------------
# Reject
# ---------------------------------------------------------------------------

def _reject_log(
    db: Session,
    req: LogVerification,
    admin_id: int,
    reason: str,
    now: datetime,
    outbox: Outbox,
) -> ActionLog:
    log = _load_log(db, req.action_log_id)
    action = db.get(SustainabilityAction, log.action_id)

    with unit_of_work(db, "reject action log", action_log_id=log.id, admin_id=admin_id):
        _transition_log(db, log, VerificationStatus.rejected, admin_id, now, notes=reason)
        log_admin_activity(
            db, admin_id, "action_log_rejected", "user_actions", log.id,
            {"user_id": log.user_id, "reason": reason},
        )
    db.refresh(log)

    outbox.add(
        NotificationKind.action_rejected,
        user_id=log.user_id,
        action_title=action.title if action is not None else "",
        reason=reason,
    )
    return log


def _reject_submission(
    db: Session,
    req: SubmissionVerification,
    admin_id: int,
    reason: str,
    outbox: Outbox,
) -> SustainabilityAction:
    action = _load_submission(db, req.action_id)

    with unit_of_work(db, "reject action submission", action_id=action.id, admin_id=admin_id):
        updated = (
            db.query(SustainabilityAction)
            .filter(*_pending_submission_filter(action.id))
            .update({SustainabilityAction.rejection_reason: reason}, synchronize_session=False)
        )
        if updated != 1:
            raise AlreadyProcessedError("Action submission", action.id, "processed concurrently")
        log_admin_activity(
            db, admin_id, "action_submission_rejected", "sustainability_actions", action.id,
            {"reason": reason},
        )
    db.refresh(action)

    if action.submitted_by is not None:
        outbox.add(
            NotificationKind.submission_rejected,
            user_id=action.submitted_by,
            action_title=action.title,
            reason=reason,
        )
    return action


def reject(
    db: Session,
    request: VerificationRequest,
    admin_id: int,
    reason: str,
    now: Optional[datetime] = None,
    notifier: Optional[Notifier] = None,
) -> Union[ActionLog, SustainabilityAction]:
    """
    Reject a pending target. Nothing is credited. The submitter is notified
    after the rejection has committed; a notification failure is logged only.
    """
    require_admin(db, admin_id)
    reason = _clean_reason(reason)
    now = now or _utcnow()
    outbox = Outbox()

    if isinstance(request, LogVerification):
        result = _reject_log(db, request, admin_id, reason, now, outbox)
    elif isinstance(request, SubmissionVerification):
        result = _reject_submission(db, request, admin_id, reason, outbox)
    else:
        raise TypeError(f"unsupported verification request {request!r}")

    logger.info("Admin %s rejected %s", admin_id, request)
    (notifier or Notifier(db)).dispatch(outbox)
    return result


# ---------------------------------------------------------------------------
# Convenience entry points
# ---------------------------------------------------------------------------

def approve_log(db: Session, action_log_id: int, admin_id: int) -> ActionLog:
    return approve(db, LogVerification(action_log_id), admin_id)


def reject_log(
    db: Session,
    action_log_id: int,
    admin_id: int,
    reason: str,
    notifier: Optional[Notifier] = None,
) -> ActionLog:
    return reject(db, LogVerification(action_log_id), admin_id, reason, notifier=notifier)


def approve_submission(
    db: Session,
    action_id: int,
    points_value: Optional[int],
    co2_impact: Optional[Decimal],
    admin_id: int,
) -> ActionLog:
    return approve(db, SubmissionVerification(action_id, points_value, co2_impact), admin_id)


def reject_submission(
    db: Session,
    action_id: int,
    reason: str,
    admin_id: int,
    notifier: Optional[Notifier] = None,
) -> SustainabilityAction:
    return reject(db, SubmissionVerification(action_id), admin_id, reason, notifier=notifier)


def list_pending_logs(
    db: Session,
    limit: int = 50,
    offset: int = 0,
) -> tuple[int, list[ActionLog]]:
    """Return (total, page) of logs waiting for review, oldest first."""
    q = db.query(ActionLog).filter(ActionLog.verification_status == VerificationStatus.pending)
    total = q.count()
    items = (
        q.order_by(ActionLog.completed_at.asc(), ActionLog.id.asc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return total, items
