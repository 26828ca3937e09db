# rewards_bot/handlers/user/redeem.py
from __future__ import annotations

from zoneinfo import ZoneInfo

from aiogram import F, Router
from aiogram.filters import Command
from aiogram.types import Message

from rewards_bot.config.settings import Settings
from rewards_bot.database.models import User
from rewards_bot.keyboards.main import BTN_BALANCE, BTN_REDEEM
from rewards_bot.services.engine import RewardsEngine
from rewards_bot.services.results import Failure, RewardsUnavailable
from rewards_bot.utils.reply import UNAVAILABLE_TEXT, describe_failure, reply_safe

router = Router()


@router.message(Command("redeem"))
@router.message(F.text == BTN_REDEEM)
async def redeem_cmd(message: Message, db_user: User, engine: RewardsEngine, settings: Settings) -> None:
    try:
        res = await engine.redeem(user_id=db_user.id, telegram_id=db_user.telegram_id)
    except RewardsUnavailable:
        await reply_safe(message, UNAVAILABLE_TEXT)
        return

    if isinstance(res, Failure):
        await reply_safe(message, describe_failure(res, timezone=settings.timezone))
        return

    until = res.expires_at.astimezone(ZoneInfo(settings.timezone)).strftime("%H:%M")
    await reply_safe(
        message,
        f"☕ Your code: <b>{res.code}</b>\n"
        f"Show it to the barista before <b>{until}</b>.\n"
        f"💰 Balance: <b>{res.new_balance}</b>",
    )


@router.message(Command("balance"))
@router.message(F.text == BTN_BALANCE)
async def balance_cmd(message: Message, db_user: User, engine: RewardsEngine, settings: Settings) -> None:
    try:
        status = await engine.wheel_status(user_id=db_user.id)
    except RewardsUnavailable:
        await reply_safe(message, UNAVAILABLE_TEXT)
        return

    if isinstance(status, Failure):
        await reply_safe(message, describe_failure(status, timezone=settings.timezone))
        return

    wheel = "🎡 The wheel is ready!" if status.can_spin else (
        "🎡 Next spin after <b>"
        + status.next_spin_available_at.astimezone(ZoneInfo(settings.timezone)).strftime("%H:%M")
        + "</b>"
    )
    await reply_safe(
        message,
        f"💰 Balance: <b>{status.balance}</b>\n"
        f"🔁 Total spins: <b>{status.total_spins}</b>\n"
        f"{wheel}",
    )
