"""
Reward catalog and claim schemas.

GET  /rewards            → RewardsOverviewOut
POST /rewards/claim      → ClaimRequest → ClaimOut
PUT  /admin/rewards      → ClaimStatusUpdate → ClaimOut
POST /admin/rewards/*    → ClaimDecision → ClaimOut
"""
from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from greenloop.models.level_reward import RewardType
from greenloop.models.reward_claim import ClaimStatus


class LevelRewardOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    level: int
    reward_title: str
    reward_description: str
    reward_type: RewardType


class ClaimOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    level: int
    level_reward_id: int
    claim_status: ClaimStatus
    claimed_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    approved_by: Optional[int] = None
    admin_notes: Optional[str] = None
    user_email: str
    user_name: str


class RewardsOverviewOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    current_level: int
    total_points: int
    level_rewards: list[LevelRewardOut]
    user_rewards: list[ClaimOut]


class ClaimRequest(BaseModel):
    level_reward_id: int = Field(ge=1)


class ClaimDecision(BaseModel):
    claim_id: int = Field(ge=1)
    admin_notes: Optional[str] = Field(default=None, max_length=2_000)


class ClaimStatusUpdate(BaseModel):
    claim_id: int = Field(ge=1)
    status: Literal["approved", "rejected", "delivered"]
    admin_notes: Optional[str] = Field(default=None, max_length=2_000)
