# rewards_bot/services/history.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rewards_bot.database.models import RedemptionCode, SpinRecord
from rewards_bot.utils.dt import aware_utc, naive_utc

SPIN_HISTORY_LIMIT = 50
CODE_HISTORY_LIMIT = 20


@dataclass(frozen=True, slots=True)
class SpinEntry:
    day: str
    prize: int
    prize_label: str
    created_at: datetime


@dataclass(frozen=True, slots=True)
class CodeEntry:
    code: str
    points_spent: int
    status: str  # "active" | "used" | "expired"
    expires_at: datetime
    used_at: datetime | None
    created_at: datetime


@dataclass(frozen=True, slots=True)
class UserHistory:
    spins: tuple[SpinEntry, ...]
    codes: tuple[CodeEntry, ...]


def code_status(row: RedemptionCode, now: datetime) -> str:
    if row.used_at is not None:
        return "used"
    if row.expires_at <= naive_utc(now):
        return "expired"
    return "active"


async def load_history(
    session: AsyncSession,
    *,
    user_id: int,
    now: datetime,
    spin_limit: int = SPIN_HISTORY_LIMIT,
    code_limit: int = CODE_HISTORY_LIMIT,
) -> UserHistory:
    """Newest first. Timestamps come back as aware UTC."""
    spins = (
        await session.scalars(
            select(SpinRecord)
            .where(SpinRecord.user_id == user_id)
            .order_by(SpinRecord.created_at.desc(), SpinRecord.id.desc())
            .limit(spin_limit)
        )
    ).all()
    codes = (
        await session.scalars(
            select(RedemptionCode)
            .where(RedemptionCode.user_id == user_id)
            .order_by(RedemptionCode.created_at.desc(), RedemptionCode.id.desc())
            .limit(code_limit)
        )
    ).all()

    return UserHistory(
        spins=tuple(
            SpinEntry(
                day=s.day,
                prize=s.prize,
                prize_label=s.prize_label,
                created_at=aware_utc(s.created_at),
            )
            for s in spins
        ),
        codes=tuple(
            CodeEntry(
                code=c.code,
                points_spent=c.points_spent,
                status=code_status(c, now),
                expires_at=aware_utc(c.expires_at),
                used_at=aware_utc(c.used_at) if c.used_at is not None else None,
                created_at=aware_utc(c.created_at),
            )
            for c in codes
        ),
    )
