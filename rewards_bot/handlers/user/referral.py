# rewards_bot/handlers/user/referral.py
from __future__ import annotations

from aiogram import F, Router
from aiogram.filters import Command
from aiogram.types import Message
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from rewards_bot.config.settings import Settings
from rewards_bot.database.models import User
from rewards_bot.keyboards.main import BTN_REFERRAL
from rewards_bot.utils.reply import reply_safe

router = Router()


async def _referral_counts(session: AsyncSession, *, user_id: int) -> tuple[int, int]:
    """(invited, activated) where activated means the bonus was paid."""
    invited = await session.scalar(
        select(func.count(User.id)).where(User.referred_by_user_id == user_id)
    )
    activated = await session.scalar(
        select(func.count(User.id)).where(
            User.referred_by_user_id == user_id,
            User.referral_bonus_paid.is_(True),
        )
    )
    return int(invited or 0), int(activated or 0)


@router.message(Command("ref"))
@router.message(F.text == BTN_REFERRAL)
async def ref_cmd(message: Message, session: AsyncSession, db_user: User, settings: Settings) -> None:
    link = f"https://t.me/{settings.bot_username}?start=ref_{db_user.telegram_id}"
    invited, activated = await _referral_counts(session, user_id=db_user.id)

    await reply_safe(
        message,
        "👥 <b>Your invite link</b>\n"
        f"{link}\n\n"
        f"✅ Friends joined: <b>{invited}</b>\n"
        f"🎡 Made their first spin: <b>{activated}</b>\n\n"
        f"You get <b>+{settings.referral_bonus_points} points</b> when a friend spins the wheel for the first time.",
    )
