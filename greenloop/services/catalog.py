"""
Sustainability action catalog.

Public API
----------
list_actions(db, ...)                         → (total, page)
get_action(db, action_id)                     → SustainabilityAction
create_action(db, admin_id, fields)           → SustainabilityAction
update_action(db, admin_id, action_id, fields) → SustainabilityAction
delete_action(db, admin_id, action_id)        → None
submit_action(db, user_id, fields)            → SustainabilityAction (inactive, pending review)
list_pending_submissions(db)                  → list[SustainabilityAction]
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy.orm import Session

from greenloop.core.errors import InvalidStateError, NotFoundError, ValidationError
from greenloop.models.action_log import ActionLog
from greenloop.models.sustainability_action import SustainabilityAction
from greenloop.services.admin_activity import log_admin_activity
from greenloop.services.authorization import require_admin
from greenloop.services.persistence import unit_of_work

logger = logging.getLogger(__name__)

MIN_POINTS = 1
MAX_POINTS = 1000
MIN_DIFFICULTY = 1
MAX_DIFFICULTY = 5

_EDITABLE_FIELDS = (
    "title",
    "description",
    "instructions",
    "category",
    "points_value",
    "co2_impact",
    "difficulty_level",
    "estimated_time_minutes",
    "verification_required",
    "is_active",
)

# Editable columns that may be cleared back to NULL
_NULLABLE_FIELDS = ("instructions", "estimated_time_minutes")


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def validate_values(points_value: Any, co2_impact: Any) -> tuple[int, Decimal]:
    """Check the point/CO2 pair every catalog entry must satisfy."""
    if isinstance(points_value, bool) or not isinstance(points_value, int):
        raise ValidationError("Points value must be an integer.", details={"points_value": points_value})
    if not MIN_POINTS <= points_value <= MAX_POINTS:
        raise ValidationError(
            f"Points value must be between {MIN_POINTS} and {MAX_POINTS}.",
            details={"points_value": points_value},
        )
    try:
        co2 = Decimal(str(co2_impact))
    except (ArithmeticError, ValueError):
        raise ValidationError("CO2 impact must be a number.", details={"co2_impact": str(co2_impact)})
    if not co2.is_finite() or co2 < 0:
        raise ValidationError("CO2 impact must be a non-negative number.", details={"co2_impact": str(co2_impact)})
    return points_value, co2


def _clean_fields(fields: dict[str, Any], partial: bool) -> dict[str, Any]:
    data = {k: v for k, v in fields.items() if k in _EDITABLE_FIELDS}

    for text_field in ("title", "description", "instructions", "category"):
        if isinstance(data.get(text_field), str):
            data[text_field] = data[text_field].strip()

    if not partial or "title" in data:
        if not data.get("title"):
            raise ValidationError("Title is required.")

    if not partial:
        missing = [k for k in ("points_value", "co2_impact") if data.get(k) is None]
        if missing:
            raise ValidationError(
                f"Missing required fields: {', '.join(missing)}",
                details={"missing": missing},
            )

    nulled = sorted(k for k, v in data.items() if v is None and k not in _NULLABLE_FIELDS)
    if nulled:
        raise ValidationError(
            f"Fields cannot be null: {', '.join(nulled)}",
            details={"fields": nulled},
        )

    if "points_value" in data or "co2_impact" in data:
        points, co2 = validate_values(
            data.get("points_value", MIN_POINTS),
            data.get("co2_impact", Decimal("0")),
        )
        if "points_value" in data:
            data["points_value"] = points
        if "co2_impact" in data:
            data["co2_impact"] = co2

    if data.get("difficulty_level") is not None:
        if not MIN_DIFFICULTY <= int(data["difficulty_level"]) <= MAX_DIFFICULTY:
            raise ValidationError(
                f"Difficulty level must be between {MIN_DIFFICULTY} and {MAX_DIFFICULTY}.",
            )
    return data


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

def is_pending_submission(action: SustainabilityAction) -> bool:
    """A user-proposed action that no admin has approved or rejected yet."""
    return (
        bool(action.is_user_created)
        and not action.auto_logged_for_submitter
        and not action.is_active
        and action.rejection_reason is None
    )


def get_action(db: Session, action_id: int) -> SustainabilityAction:
    action = db.get(SustainabilityAction, action_id)
    if action is None:
        raise NotFoundError("Action", action_id)
    return action


def list_actions(
    db: Session,
    category: Optional[str] = None,
    include_inactive: bool = False,
    limit: int = 50,
    offset: int = 0,
) -> tuple[int, list[SustainabilityAction]]:
    """Return (total, page) of catalog actions, newest first."""
    q = db.query(SustainabilityAction)
    if not include_inactive:
        q = q.filter(SustainabilityAction.is_active.is_(True))
    if category:
        q = q.filter(SustainabilityAction.category == category)
    total = q.count()
    items = (
        q.order_by(SustainabilityAction.created_at.desc(), SustainabilityAction.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return total, items


def list_pending_submissions(db: Session) -> list[SustainabilityAction]:
    return (
        db.query(SustainabilityAction)
        .filter(
            SustainabilityAction.is_user_created.is_(True),
            SustainabilityAction.is_active.is_(False),
            SustainabilityAction.auto_logged_for_submitter.is_(False),
            SustainabilityAction.rejection_reason.is_(None),
        )
        .order_by(SustainabilityAction.created_at.asc(), SustainabilityAction.id.asc())
        .all()
    )


# ---------------------------------------------------------------------------
# Admin mutations
# ---------------------------------------------------------------------------

def create_action(db: Session, admin_id: int, fields: dict[str, Any]) -> SustainabilityAction:
    require_admin(db, admin_id)
    data = _clean_fields(fields, partial=False)

    action = SustainabilityAction(**data)
    with unit_of_work(db, "create action", admin_id=admin_id):
        db.add(action)
        db.flush()
        log_admin_activity(
            db, admin_id, "sustainability_action_created", "sustainability_actions", action.id,
            {"title": action.title, "category": action.category, "points_value": action.points_value},
        )
    db.refresh(action)
    return action


def update_action(
    db: Session,
    admin_id: int,
    action_id: int,
    fields: dict[str, Any],
) -> SustainabilityAction:
    """
    Edit a catalog entry. Logs already recorded keep the values they were
    created with.
    """
    require_admin(db, admin_id)
    action = get_action(db, action_id)
    data = _clean_fields(fields, partial=True)
    if is_pending_submission(action) and data.get("is_active", action.is_active) != action.is_active:
        raise InvalidStateError(
            "Pending submissions go live through /admin/actions/approve.",
            details={"action_id": action_id},
        )
    if "points_value" in data or "co2_impact" in data:
        validate_values(
            data.get("points_value", action.points_value),
            data.get("co2_impact", action.co2_impact),
        )

    with unit_of_work(db, "update action", admin_id=admin_id, action_id=action_id):
        for key, value in data.items():
            setattr(action, key, value)
        log_admin_activity(
            db, admin_id, "sustainability_action_updated", "sustainability_actions", action.id,
            {"fields": sorted(data)},
        )
    db.refresh(action)
    return action


def delete_action(db: Session, admin_id: int, action_id: int) -> None:
    """Hard-delete an action nobody has logged yet; otherwise refuse."""
    require_admin(db, admin_id)
    action = get_action(db, action_id)

    in_use = (
        db.query(ActionLog.id).filter(ActionLog.action_id == action_id).first() is not None
    )
    if in_use:
        raise InvalidStateError(
            "Cannot delete action that has been completed by users. Consider deactivating instead.",
            details={"action_id": action_id},
        )

    title = action.title
    with unit_of_work(db, "delete action", admin_id=admin_id, action_id=action_id):
        db.delete(action)
        log_admin_activity(
            db, admin_id, "sustainability_action_deleted", "sustainability_actions", action_id,
            {"title": title},
        )
    logger.info("Admin %s deleted action %s", admin_id, action_id)


# ---------------------------------------------------------------------------
# User submissions
# ---------------------------------------------------------------------------

def submit_action(db: Session, user_id: int, fields: dict[str, Any]) -> SustainabilityAction:
    """
    Propose a new catalog action. It stays inactive (and unloggable) until an
    admin approves it through the verification workflow.
    """
    data = _clean_fields(fields, partial=False)
    data["is_active"] = False
    data["verification_required"] = True

    action = SustainabilityAction(
        **data,
        is_user_created=True,
        submitted_by=user_id,
        auto_logged_for_submitter=False,
    )
    with unit_of_work(db, "submit action", user_id=user_id):
        db.add(action)
    db.refresh(action)
    return action
