# rewards_bot/utils/dt.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from typing import Callable
from zoneinfo import ZoneInfo


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def naive_utc(moment: datetime) -> datetime:
    """DB columns store naive UTC."""
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(timezone.utc).replace(tzinfo=None)


def aware_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


@dataclass(frozen=True, slots=True)
class CivilClock:
    """
    "Today" and "next midnight" in one fixed named timezone.

    Every daily reset (wheel cooldown, game caps) compares civil-day
    strings produced here, never UTC dates.
    """
    timezone: str = "Europe/Kyiv"
    now_fn: Callable[[], datetime] = field(default=utc_now, compare=False)

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    def now(self) -> datetime:
        return aware_utc(self.now_fn())

    def local_date(self, now: datetime | None = None) -> date:
        moment = aware_utc(now) if now is not None else self.now()
        return moment.astimezone(self.tz).date()

    def today_string(self, now: datetime | None = None) -> str:
        return self.local_date(now).isoformat()

    def yesterday_string(self, now: datetime | None = None) -> str:
        return (self.local_date(now) - timedelta(days=1)).isoformat()

    def midnight_of(self, day: date) -> datetime:
        """UTC instant of 00:00 local on `day`, using the offset in force at that wall time."""
        local_midnight = datetime.combine(day, time(0, 0), tzinfo=self.tz)
        return local_midnight.astimezone(timezone.utc)

    def next_midnight(self, now: datetime | None = None) -> datetime:
        return self.midnight_of(self.local_date(now) + timedelta(days=1))
