# rewards_bot/utils/reply.py
from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo

from aiogram.types import Message

from rewards_bot.keyboards.main import main_menu_kb
from rewards_bot.services.results import Failure, FailureKind

UNAVAILABLE_TEXT = "⚠️ Something went wrong on our side. Please try again in a minute."


async def reply_safe(message: Message, text: str, **kwargs) -> None:
    """
    Reply helper: menu keyboard in private chats only.
    """
    if message.chat.type == "private":
        kwargs.setdefault("reply_markup", main_menu_kb())
    else:
        kwargs.setdefault("reply_markup", None)

    await message.answer(text, **kwargs)


def _local_time(iso: str, timezone: str) -> str:
    return datetime.fromisoformat(iso).astimezone(ZoneInfo(timezone)).strftime("%H:%M")


def describe_failure(failure: Failure, *, timezone: str) -> str:
    """User-facing text for a business rejection."""
    d = failure.details
    if failure.kind == FailureKind.COOLDOWN:
        return f"⏳ {failure.message}\nNext spin after <b>{_local_time(d['nextSpinAvailableAt'], timezone)}</b>."
    if failure.kind == FailureKind.OUT_OF_RANGE and d.get("nearestSite"):
        return (
            f"📍 {failure.message}\n"
            f"Nearest: <b>{d['nearestSite']}</b> (~{d['distanceMeters']} m)"
        )
    if failure.kind == FailureKind.INSUFFICIENT_POINTS:
        return f"💰 {failure.message}\nYou have <b>{d['balance']}</b>, need <b>{d['pointsNeeded']}</b> more."
    if failure.kind == FailureKind.ACTIVE_CODE_EXISTS:
        return (
            f"☕ {failure.message}\n"
            f"Code: <b>{d['code']}</b> (valid until {_local_time(d['expiresAt'], timezone)})"
        )
    return f"⚠️ {failure.message}"
