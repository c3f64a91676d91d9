from datetime import datetime
from decimal import Decimal
from sqlalchemy import Integer, String, Text, Boolean, Numeric, DateTime, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column

from greenloop.db.base import Base


class SustainabilityAction(Base):
    """
    Catalog entry a user can log.

    Admin-curated actions are created directly. User submissions arrive with
    is_user_created=True and is_active=False and stay inactive until an admin
    approves them (auto_logged_for_submitter=True) or rejects them
    (rejection_reason set).

    An action that any log references is never deleted, only deactivated.
    """

    __tablename__ = "sustainability_actions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    instructions: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(64), nullable=False, default="general", index=True)
    points_value: Mapped[int] = mapped_column(Integer, nullable=False)
    co2_impact: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False, default=Decimal("0"))
    difficulty_level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    estimated_time_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    verification_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)

    # User-submitted actions
    is_user_created: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    submitted_by: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=True, index=True
    )
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    auto_logged_for_submitter: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
