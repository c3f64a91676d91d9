from __future__ import annotations

import json
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from greenloop.models.point_transaction import TransactionType


class ProfileOut(BaseModel):
    """Profile with the level derived from the current point total."""
    id: int
    email: str
    first_name: str
    last_name: str
    points: int
    total_co2_saved: Decimal
    is_admin: bool
    level: int
    next_level: Optional[int] = None
    next_level_points: Optional[int] = None
    points_to_next_level: int


class PointTransactionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    points: int
    transaction_type: TransactionType
    reference_type: Optional[str] = None
    reference_id: Optional[int] = None
    description: Optional[str] = None
    created_at: Optional[datetime] = None


class LedgerCheckOut(BaseModel):
    user_id: int
    cached_points: int
    ledger_points: int
    consistent: bool


class PointAdjustment(BaseModel):
    delta: int = Field(description="Signed number of points to add or remove.")
    reason: str = Field(min_length=1, max_length=500)


class NotificationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    kind: str
    title: str
    message: str
    payload: Optional[dict[str, Any]] = None
    is_read: bool
    created_at: Optional[datetime] = None

    @field_validator("payload", mode="before")
    @classmethod
    def decode_payload(cls, v):
        # Stored as JSON text on the row
        if isinstance(v, str):
            return json.loads(v) if v else None
        return v
