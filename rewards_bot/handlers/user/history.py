# rewards_bot/handlers/user/history.py
from __future__ import annotations

from zoneinfo import ZoneInfo

from aiogram import Router
from aiogram.filters import Command
from aiogram.types import Message

from rewards_bot.config.settings import Settings
from rewards_bot.database.models import User
from rewards_bot.services.engine import RewardsEngine
from rewards_bot.services.history import UserHistory
from rewards_bot.services.results import RewardsUnavailable
from rewards_bot.utils.reply import UNAVAILABLE_TEXT, reply_safe

router = Router()

SHOWN_SPINS = 10
SHOWN_CODES = 5

_CODE_STATUS = {"active": "⏳", "used": "✅", "expired": "⌛"}


def format_history(history: UserHistory, *, timezone: str) -> str:
    tz = ZoneInfo(timezone)
    if not history.spins and not history.codes:
        return "📜 No spins or codes yet. Try /spin at the shop!"

    lines = ["📜 <b>Recent spins</b>"]
    if history.spins:
        for s in history.spins[:SHOWN_SPINS]:
            lines.append(f"{s.created_at.astimezone(tz):%d.%m %H:%M} · {s.prize_label}")
    else:
        lines.append("none yet")

    lines.append("")
    lines.append("☕ <b>Drink codes</b>")
    if history.codes:
        for c in history.codes[:SHOWN_CODES]:
            lines.append(f"{_CODE_STATUS[c.status]} {c.code} · {c.created_at.astimezone(tz):%d.%m %H:%M} · {c.status}")
    else:
        lines.append("none yet")

    return "\n".join(lines)


@router.message(Command("history"))
async def history_cmd(message: Message, db_user: User, engine: RewardsEngine, settings: Settings) -> None:
    try:
        history = await engine.history(user_id=db_user.id)
    except RewardsUnavailable:
        await reply_safe(message, UNAVAILABLE_TEXT)
        return

    await reply_safe(message, format_history(history, timezone=settings.timezone))
