"""
PointTransaction: the point ledger.

Append-only: rows are never updated or deleted. For every user,
SUM(points) over their rows equals users.points.

reference_type / reference_id point back at what caused the entry:
  "action"      → user_actions.id
  "adjustment"  → the admin user who made a manual correction
"""
from datetime import datetime
from sqlalchemy import Integer, String, Text, DateTime, Enum, ForeignKey, CheckConstraint, func
from sqlalchemy.orm import Mapped, mapped_column
import enum

from greenloop.db.base import Base


class TransactionType(str, enum.Enum):
    earned = "earned"
    adjusted = "adjusted"


class PointTransaction(Base):
    __tablename__ = "point_transactions"
    __table_args__ = (
        CheckConstraint("points <> 0", name="ck_point_transactions_nonzero"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    points: Mapped[int] = mapped_column(Integer, nullable=False)
    transaction_type: Mapped[str] = mapped_column(
        Enum(TransactionType, name="point_transaction_type_enum"),
        nullable=False,
        default=TransactionType.earned,
    )
    reference_type: Mapped[str | None] = mapped_column(String(32), nullable=True)
    reference_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
