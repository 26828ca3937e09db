# rewards_bot/handlers/admin/verify_code.py
from __future__ import annotations

import logging

from aiogram import Router
from aiogram.filters import Command, CommandObject
from aiogram.types import Message

from rewards_bot.config.settings import Settings
from rewards_bot.database.models import User
from rewards_bot.services.engine import RewardsEngine
from rewards_bot.services.results import Failure, RewardsUnavailable
from rewards_bot.utils.reply import UNAVAILABLE_TEXT, describe_failure

log = logging.getLogger(__name__)
router = Router()


@router.message(Command("verify"))
async def verify_cmd(
    message: Message,
    command: CommandObject,
    db_user: User,
    engine: RewardsEngine,
    settings: Settings,
) -> None:
    if db_user.telegram_id not in settings.root_admin_ids:
        log.warning("Non-staff verify attempt telegram_id=%s", db_user.telegram_id)
        return

    code = (command.args or "").strip()
    if not code.isdigit() or len(code) != 4:
        await message.answer("Usage: <code>/verify 1234</code>")
        return

    try:
        res = await engine.verify_code(code=code, staff_user_id=db_user.id)
    except RewardsUnavailable:
        await message.answer(UNAVAILABLE_TEXT)
        return

    if isinstance(res, Failure):
        await message.answer(describe_failure(res, timezone=settings.timezone))
        return

    await message.answer(
        f"✅ Code <b>{res.code}</b> confirmed.\n"
        f"Debited {res.points_spent} points. Serve the drink!"
    )
