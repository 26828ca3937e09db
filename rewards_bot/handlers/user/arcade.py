# rewards_bot/handlers/user/arcade.py
from __future__ import annotations

import logging

from aiogram import F, Router
from aiogram.types import Message

from rewards_bot.config.settings import Settings
from rewards_bot.database.models import User
from rewards_bot.services.anti_cheat import parse_score_payload
from rewards_bot.services.engine import RewardsEngine
from rewards_bot.services.results import Failure, RewardsUnavailable
from rewards_bot.utils.reply import UNAVAILABLE_TEXT, describe_failure, reply_safe

log = logging.getLogger(__name__)
router = Router()


@router.message(F.web_app_data)
async def arcade_score(message: Message, db_user: User, engine: RewardsEngine, settings: Settings) -> None:
    try:
        claim = parse_score_payload(message.web_app_data.data)
    except ValueError as e:
        log.info("Rejected mini-app payload user=%s: %s", db_user.id, e)
        await reply_safe(message, "⚠️ Could not read the game result.")
        return

    try:
        res = await engine.submit_score(user_id=db_user.id, claim=claim)
    except RewardsUnavailable:
        await reply_safe(message, UNAVAILABLE_TEXT)
        return

    if isinstance(res, Failure):
        await reply_safe(message, describe_failure(res, timezone=settings.timezone))
        return

    if res.limit_reached:
        text = "🎮 Nice game! You used all scoring games for today."
    else:
        text = (
            f"🎮 <b>+{res.points_awarded} points</b>\n"
            f"Scoring games left today: <b>{res.scoring_sessions_left_today}</b>"
        )
    await reply_safe(message, text)
