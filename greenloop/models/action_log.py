from datetime import datetime
from decimal import Decimal
from sqlalchemy import Integer, Text, Numeric, DateTime, Enum, ForeignKey, Index, func
from sqlalchemy.orm import Mapped, mapped_column
import enum

from greenloop.db.base import Base


class VerificationStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class ActionLog(Base):
    """
    One completion of a catalog action by a user.

    points_earned / co2_saved are copied from the action when the log is
    created; later edits to the action never change them. The status moves
    out of `pending` exactly once.
    """

    __tablename__ = "user_actions"
    __table_args__ = (
        Index("ix_user_actions_user_action_completed", "user_id", "action_id", "completed_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    action_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("sustainability_actions.id"), nullable=False, index=True
    )
    points_earned: Mapped[int] = mapped_column(Integer, nullable=False)
    co2_saved: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False, default=Decimal("0"))
    verification_status: Mapped[str] = mapped_column(
        Enum(VerificationStatus, name="verification_status_enum"),
        nullable=False,
        default=VerificationStatus.pending,
        index=True,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    verified_by: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.id"), nullable=True)
    verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
