# rewards_bot/services/daily_limits.py
from __future__ import annotations

import logging
from typing import Mapping

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from rewards_bot.config.settings import Settings
from rewards_bot.database.models import DailyLimitEntry, RewardSource

log = logging.getLogger(__name__)


def caps_from_settings(settings: Settings) -> dict[RewardSource, int]:
    """
    Point caps per source per civil day.
    The wheel has no point cap; it is limited by the once-a-day cooldown.
    """
    return {
        RewardSource.TIC_TAC_TOE: settings.ttt_daily_points_cap,
        RewardSource.ARCADE: settings.arcade_daily_points_cap,
    }


class DailyLimitContention(RuntimeError):
    pass


class DailyLimitLedger:
    MAX_ATTEMPTS = 5

    def __init__(self, caps: Mapping[RewardSource, int]) -> None:
        self.caps = dict(caps)

    def cap_for(self, source: RewardSource) -> int:
        try:
            return self.caps[source]
        except KeyError:
            raise ValueError(f"No daily cap configured for source {source.value!r}") from None

    @staticmethod
    async def _ensure_row(session: AsyncSession, *, user_id: int, source: RewardSource, day: str) -> None:
        values = {"user_id": user_id, "source": source, "day": day, "points_earned": 0}
        if session.get_bind().dialect.name == "postgresql":
            stmt = pg_insert(DailyLimitEntry).values(**values)
        else:
            stmt = sqlite_insert(DailyLimitEntry).values(**values)
        await session.execute(
            stmt.on_conflict_do_nothing(index_elements=["user_id", "source", "day"])
        )

    async def earned(self, session: AsyncSession, *, user_id: int, source: RewardSource, day: str) -> int:
        value = await session.scalar(
            select(DailyLimitEntry.points_earned).where(
                DailyLimitEntry.user_id == user_id,
                DailyLimitEntry.source == source,
                DailyLimitEntry.day == day,
            )
        )
        return int(value or 0)

    async def award(
        self,
        session: AsyncSession,
        *,
        user_id: int,
        source: RewardSource,
        amount: int,
        day: str,
    ) -> int:
        """
        Clamp `amount` to what is left of today's cap and record it.
        Returns the points actually granted (possibly 0).

        Must run inside the caller's transaction so the balance update and
        this row commit together. The increment is a compare-and-swap on
        `points_earned`, so concurrent awards for the same key never exceed
        the cap.
        """
        cap = self.cap_for(source)
        if amount <= 0:
            return 0

        await self._ensure_row(session, user_id=user_id, source=source, day=day)

        key = (
            DailyLimitEntry.user_id == user_id,
            DailyLimitEntry.source == source,
            DailyLimitEntry.day == day,
        )

        for _ in range(self.MAX_ATTEMPTS):
            earned = await self.earned(session, user_id=user_id, source=source, day=day)
            granted = min(amount, max(0, cap - earned))
            if granted == 0:
                log.info("Daily cap reached user=%s source=%s day=%s", user_id, source.value, day)
                return 0

            res = await session.execute(
                update(DailyLimitEntry)
                .where(*key, DailyLimitEntry.points_earned == earned)
                .values(points_earned=earned + granted)
                .execution_options(synchronize_session=False)
            )
            if res.rowcount == 1:
                return granted

        raise DailyLimitContention(f"Could not record award for user={user_id} source={source.value}")
