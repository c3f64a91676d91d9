"""
UserLevelReward: a user's claim on a level reward.

Lifecycle (driven by admins after the user claims):
  pending → approved → delivered
  pending → rejected
Terminal: rejected, delivered.

Unique (user_id, level_reward_id): a reward is claimed at most once per user.
user_email / user_name are snapshotted at claim time for outgoing email.
"""
from datetime import datetime
from sqlalchemy import Integer, String, Text, DateTime, Enum, ForeignKey, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column
import enum

from greenloop.db.base import Base


class ClaimStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    delivered = "delivered"


class UserLevelReward(Base):
    __tablename__ = "user_level_rewards"
    __table_args__ = (
        UniqueConstraint("user_id", "level_reward_id", name="uq_user_level_reward"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    level: Mapped[int] = mapped_column(Integer, nullable=False)
    level_reward_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("level_rewards.id"), nullable=False, index=True
    )
    claim_status: Mapped[str] = mapped_column(
        Enum(ClaimStatus, name="claim_status_enum"),
        nullable=False,
        default=ClaimStatus.pending,
        index=True,
    )
    claimed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    approved_by: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.id"), nullable=True)
    admin_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    user_email: Mapped[str] = mapped_column(String(255), nullable=False)
    user_name: Mapped[str] = mapped_column(String(256), nullable=False, default="")
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
