from datetime import datetime
from decimal import Decimal
from sqlalchemy import Integer, String, Boolean, Numeric, DateTime, CheckConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from greenloop.db.base import Base


class User(Base):
    """
    Employee profile.

    `points` and `total_co2_saved` are cached projections of the point ledger
    and change only through ledger entries. The level is never stored.
    """

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("points >= 0", name="ck_users_points_non_negative"),
        CheckConstraint("total_co2_saved >= 0", name="ck_users_co2_non_negative"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    first_name: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    last_name: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_co2_saved: Mapped[Decimal] = mapped_column(
        Numeric(12, 3), nullable=False, default=Decimal("0")
    )
    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
