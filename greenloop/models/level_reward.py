from datetime import datetime
from sqlalchemy import Integer, String, Text, Boolean, DateTime, Enum, func
from sqlalchemy.orm import Mapped, mapped_column
import enum

from greenloop.db.base import Base


class RewardType(str, enum.Enum):
    physical = "physical"
    digital = "digital"
    experience = "experience"
    privilege = "privilege"


class LevelReward(Base):
    __tablename__ = "level_rewards"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    level: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    reward_title: Mapped[str] = mapped_column(String(256), nullable=False)
    reward_description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    reward_type: Mapped[str] = mapped_column(
        Enum(RewardType, name="reward_type_enum"),
        nullable=False,
        default=RewardType.digital,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
