import json
from typing import Any, Optional

from sqlalchemy.orm import Session

from greenloop.models.admin_activity import AdminActivity


def log_admin_activity(
    db: Session,
    admin_user_id: int,
    action: str,
    resource_type: str,
    resource_id: Optional[int],
    details: Optional[dict[str, Any]] = None,
) -> AdminActivity:
    """Stage an audit row in the caller's transaction."""
    row = AdminActivity(
        admin_user_id=admin_user_id,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        details=json.dumps(details, default=str) if details else None,
    )
    db.add(row)
    return row
