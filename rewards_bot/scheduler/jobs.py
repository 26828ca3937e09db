# rewards_bot/scheduler/jobs.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta

from aiogram import Bot
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from rewards_bot.config.settings import Settings
from rewards_bot.database.models import RedemptionCode, ScoreSubmission, SpinRecord
from rewards_bot.database.session import Database
from rewards_bot.utils.dt import CivilClock, naive_utc

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DailySummary:
    day: str
    spins: int
    codes_issued: int
    codes_redeemed: int
    arcade_games: int


async def collect_daily_summary(session: AsyncSession, clock: CivilClock, day: str) -> DailySummary:
    civil_day = date.fromisoformat(day)
    start = naive_utc(clock.midnight_of(civil_day))
    end = naive_utc(clock.midnight_of(civil_day + timedelta(days=1)))

    spins = await session.scalar(select(func.count(SpinRecord.id)).where(SpinRecord.day == day))
    issued = await session.scalar(
        select(func.count(RedemptionCode.id)).where(
            RedemptionCode.created_at >= start,
            RedemptionCode.created_at < end,
        )
    )
    redeemed = await session.scalar(
        select(func.count(RedemptionCode.id)).where(
            RedemptionCode.used_at >= start,
            RedemptionCode.used_at < end,
        )
    )
    games = await session.scalar(select(func.count(ScoreSubmission.id)).where(ScoreSubmission.day == day))

    return DailySummary(
        day=day,
        spins=int(spins or 0),
        codes_issued=int(issued or 0),
        codes_redeemed=int(redeemed or 0),
        arcade_games=int(games or 0),
    )


async def post_daily_summary(bot: Bot, db: Database, settings: Settings) -> None:
    """Posts yesterday's (civil day) numbers to the owner chat."""
    if not settings.owner_chat_id:
        log.warning("Skipping daily summary: OWNER_CHAT_ID is not set")
        return

    clock = CivilClock(settings.timezone)
    day = clock.yesterday_string()

    async with db.session() as session:
        summary = await collect_daily_summary(session, clock, day)

    await bot.send_message(
        chat_id=settings.owner_chat_id,
        text=(
            f"📊 <b>Daily summary</b> ({summary.day})\n\n"
            f"🎡 Spins: <b>{summary.spins}</b>\n"
            f"☕ Codes issued: <b>{summary.codes_issued}</b>\n"
            f"✅ Codes redeemed: <b>{summary.codes_redeemed}</b>\n"
            f"🎮 Arcade games: <b>{summary.arcade_games}</b>"
        ),
    )
    log.info("Daily summary posted day=%s", summary.day)


def build_scheduler(bot: Bot, db: Database, settings: Settings) -> AsyncIOScheduler:
    """
    Creates and returns an AsyncIOScheduler with our jobs registered.
    Runs in the shop's timezone so "daily" matches the wheel reset.
    """
    scheduler = AsyncIOScheduler(timezone=settings.timezone)

    scheduler.add_job(
        post_daily_summary,
        trigger=CronTrigger(hour=0, minute=5, timezone=settings.timezone),
        kwargs={"bot": bot, "db": db, "settings": settings},
        id="post_daily_summary",
        replace_existing=True,
        coalesce=True,
        misfire_grace_time=300,
    )

    return scheduler
