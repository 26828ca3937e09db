# rewards_bot/database/models/redemption.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from rewards_bot.database.base import Base


class RedemptionCode(Base):
    """
    Single-use drink code.

    Issued -> Used (used_at set) or Issued -> Expired (expires_at passed).
    Codes are only unique among active rows, so the same digits can be
    reissued once the previous holder's code is terminal.
    All timestamps are naive UTC.
    """
    __tablename__ = "redemption_codes"
    __table_args__ = (
        Index("ix_redemption_codes_code_expires", "code", "expires_at"),
        Index("ix_redemption_codes_user_expires", "user_id", "expires_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    code: Mapped[str] = mapped_column(String(16))

    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    points_spent: Mapped[int] = mapped_column(Integer)

    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=False))
    used_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    used_by_user_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), server_default=func.now())
