"""
Admin review request bodies.

POST /admin/actions/approve and /admin/actions/reject take a `kind`
discriminant:

  {"kind": "log", "action_log_id": 12}
  {"kind": "submission", "action_id": 4, "points_value": 50, "co2_impact": "1.5"}
"""
from __future__ import annotations

from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from greenloop.services.verification import (
    LogVerification,
    SubmissionVerification,
    VerificationRequest,
)


class _ReviewTarget(BaseModel):
    kind: Literal["log", "submission"] = Field(
        description='"log" reviews an action log, "submission" a user-proposed action.'
    )
    action_log_id: Optional[int] = Field(default=None, ge=1)
    action_id: Optional[int] = Field(default=None, ge=1)

    @model_validator(mode="after")
    def check_target_id(self):
        if self.kind == "log" and self.action_log_id is None:
            raise ValueError("action_log_id is required when kind is 'log'")
        if self.kind == "submission" and self.action_id is None:
            raise ValueError("action_id is required when kind is 'submission'")
        return self


class ApproveRequest(_ReviewTarget):
    points_value: Optional[int] = Field(
        default=None, ge=1, le=1000,
        description="Final points for a submission. Defaults to the proposed value.",
    )
    co2_impact: Optional[Decimal] = Field(
        default=None, ge=0,
        description="Final CO2 impact for a submission. Defaults to the proposed value.",
    )

    @model_validator(mode="after")
    def check_values_for_submissions_only(self):
        if self.kind == "log" and (self.points_value is not None or self.co2_impact is not None):
            raise ValueError(
                "points_value and co2_impact apply only to submissions; "
                "an action log keeps the values it was recorded with"
            )
        return self

    def to_request(self) -> VerificationRequest:
        if self.kind == "log":
            return LogVerification(self.action_log_id)
        return SubmissionVerification(self.action_id, self.points_value, self.co2_impact)


class RejectRequest(_ReviewTarget):
    reason: str = Field(min_length=1, max_length=2_000)

    @field_validator("reason", mode="before")
    @classmethod
    def strip_reason(cls, v):
        stripped = v.strip() if isinstance(v, str) else v
        if not stripped:
            raise ValueError("reason must not be empty")
        return stripped

    def to_request(self) -> VerificationRequest:
        if self.kind == "log":
            return LogVerification(self.action_log_id)
        return SubmissionVerification(self.action_id)
