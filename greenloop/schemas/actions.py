"""
Catalog and action-log schemas.

POST /actions/log           → ActionLogRequest   → ActionLogOut
POST /actions, PUT /actions → ActionCreate / ActionUpdate → ActionOut
POST /actions/submissions   → ActionSubmission   → ActionOut
"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from greenloop.models.action_log import VerificationStatus


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

class ActionBase(BaseModel):
    title: Annotated[str, Field(min_length=1, max_length=256)]
    description: str = Field(default="", max_length=10_000)
    instructions: Optional[str] = Field(default=None, max_length=10_000)
    category: str = Field(default="general", min_length=1, max_length=64)
    points_value: int = Field(ge=1, le=1000, description="Points awarded per completion.")
    co2_impact: Decimal = Field(ge=0, description="Kilograms of CO2 saved per completion.")
    difficulty_level: int = Field(default=1, ge=1, le=5)
    estimated_time_minutes: Optional[int] = Field(default=None, ge=0)

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, v):
        stripped = v.strip() if isinstance(v, str) else v
        if not stripped:
            raise ValueError("title must not be empty")
        return stripped


class ActionCreate(ActionBase):
    verification_required: bool = False
    is_active: bool = True


class ActionSubmission(ActionBase):
    """An action proposed by a user; reviewed by an admin before it goes live."""


class ActionUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=256)
    description: Optional[str] = Field(default=None, max_length=10_000)
    instructions: Optional[str] = Field(default=None, max_length=10_000)
    category: Optional[str] = Field(default=None, min_length=1, max_length=64)
    points_value: Optional[int] = Field(default=None, ge=1, le=1000)
    co2_impact: Optional[Decimal] = Field(default=None, ge=0)
    difficulty_level: Optional[int] = Field(default=None, ge=1, le=5)
    estimated_time_minutes: Optional[int] = Field(default=None, ge=0)
    verification_required: Optional[bool] = None
    is_active: Optional[bool] = None


class ActionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: str
    instructions: Optional[str] = None
    category: str
    points_value: int
    co2_impact: Decimal
    difficulty_level: int
    estimated_time_minutes: Optional[int] = None
    verification_required: bool
    is_active: bool
    is_user_created: bool
    submitted_by: Optional[int] = None
    rejection_reason: Optional[str] = None
    created_at: Optional[datetime] = None


# ---------------------------------------------------------------------------
# Action logs
# ---------------------------------------------------------------------------

class ActionLogRequest(BaseModel):
    action_id: int = Field(ge=1)
    notes: Optional[str] = Field(default=None, max_length=2_000)


class ActionLogOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    action_id: int
    points_earned: int
    co2_saved: Decimal
    verification_status: VerificationStatus
    notes: Optional[str] = None
    verified_by: Optional[int] = None
    verified_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
