# rewards_bot/database/models/rewards.py
from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from rewards_bot.database.base import Base


class RewardSource(str, enum.Enum):
    SPIN = "spin"
    TIC_TAC_TOE = "tic_tac_toe"
    ARCADE = "arcade"


class DailyLimitEntry(Base):
    """
    Points earned per (user, source, civil day).
    Created lazily on the first award of the day.
    """
    __tablename__ = "daily_limits"
    __table_args__ = (
        UniqueConstraint("user_id", "source", "day", name="uq_daily_limits_user_source_day"),
        CheckConstraint("points_earned >= 0", name="ck_daily_limits_points_non_negative"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    source: Mapped[RewardSource] = mapped_column(Enum(RewardSource, native_enum=False), index=True)
    day: Mapped[str] = mapped_column(String(10), index=True)

    points_earned: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


class ScoreSubmission(Base):
    """
    Append-only arcade score log.
    Also the source of the per-day scoring session count.
    """
    __tablename__ = "score_submissions"
    __table_args__ = (
        Index("ix_score_submissions_user_day", "user_id", "day"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    day: Mapped[str] = mapped_column(String(10))

    score: Mapped[int] = mapped_column(Integer)
    claimed_at_ms: Mapped[int] = mapped_column(BigInteger)
    integrity_hash: Mapped[str] = mapped_column(String(64))
    duration_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)

    points_awarded: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), server_default=func.now())
