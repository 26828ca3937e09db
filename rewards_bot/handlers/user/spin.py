# rewards_bot/handlers/user/spin.py
from __future__ import annotations

from aiogram import F, Router
from aiogram.filters import Command
from aiogram.types import Message

from rewards_bot.config.settings import Settings
from rewards_bot.database.models import User
from rewards_bot.keyboards.main import BTN_SPIN, location_request_kb
from rewards_bot.services.engine import RewardsEngine
from rewards_bot.services.results import Failure, RewardsUnavailable
from rewards_bot.utils.reply import UNAVAILABLE_TEXT, describe_failure, reply_safe

router = Router()


@router.message(Command("spin"))
@router.message(F.text == BTN_SPIN)
async def spin_cmd(message: Message) -> None:
    await message.answer(
        "📍 Send your location so we can check you are at the coffee shop.",
        reply_markup=location_request_kb(),
    )


@router.message(F.location)
async def spin_with_location(
    message: Message,
    db_user: User,
    engine: RewardsEngine,
    settings: Settings,
) -> None:
    # Telegram may redeliver the same update; the message id makes the retry idempotent
    try:
        res = await engine.spin(
            user_id=db_user.id,
            telegram_id=db_user.telegram_id,
            latitude=message.location.latitude,
            longitude=message.location.longitude,
            idempotency_key=f"msg:{message.chat.id}:{message.message_id}",
        )
    except RewardsUnavailable:
        await reply_safe(message, UNAVAILABLE_TEXT)
        return

    if isinstance(res, Failure):
        await reply_safe(message, describe_failure(res, timezone=settings.timezone))
        return

    if res.prize_value > 0:
        text = f"🎉 <b>{res.prize_label}!</b>\n💰 Balance: <b>{res.new_balance}</b>"
    else:
        text = f"😅 <b>{res.prize_label}</b>\n💰 Balance: <b>{res.new_balance}</b>"
    await reply_safe(message, text)
