# rewards_bot/handlers/user/start.py
from __future__ import annotations

import logging

from aiogram import Router
from aiogram.filters import CommandStart
from aiogram.types import Message
from sqlalchemy.ext.asyncio import AsyncSession

from rewards_bot.database.models import User
from rewards_bot.database.repo.users import attach_referrer
from rewards_bot.utils.reply import reply_safe

log = logging.getLogger(__name__)
router = Router()


@router.message(CommandStart())
async def start_cmd(message: Message, session: AsyncSession, db_user: User) -> None:
    # payload format: /start ref_<telegram_id>
    text = (message.text or "").strip()
    parts = text.split(maxsplit=1)
    payload = parts[1].strip() if len(parts) > 1 else ""

    if payload.startswith("ref_") and not db_user.referred_by_user_id:
        try:
            ref_tg_id = int(payload[4:].strip())
        except ValueError:
            ref_tg_id = 0

        if ref_tg_id and await attach_referrer(session, db_user, ref_tg_id):
            log.info("Referrer attached user=%s referrer_tg=%s", db_user.id, ref_tg_id)

    await reply_safe(
        message,
        "☕ <b>Welcome!</b>\n\n"
        "🎡 Spin the wheel once a day at the coffee shop\n"
        "☕ Collect 100 points for a free drink\n"
        "🎮 Play arcade games in the mini-app for extra points\n\n"
        "Use the menu buttons below 👇",
    )
