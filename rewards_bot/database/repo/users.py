# rewards_bot/database/repo/users.py
from __future__ import annotations

from typing import Optional

from aiogram.types import TelegramObject
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from rewards_bot.database.models import User


def _extract_from_user(event: TelegramObject):
    """
    Best-effort extract aiogram `from_user` from different update types.
    Works for Message, CallbackQuery, InlineQuery, etc.
    """
    u = getattr(event, "from_user", None)
    if u:
        return u

    msg = getattr(event, "message", None)
    if msg and getattr(msg, "from_user", None):
        return msg.from_user

    cb = getattr(event, "callback_query", None)
    if cb and getattr(cb, "from_user", None):
        return cb.from_user

    return None


async def upsert_user_from_event(session: AsyncSession, event: TelegramObject) -> Optional[User]:
    tg = _extract_from_user(event)
    if tg is None or getattr(tg, "is_bot", False):
        return None

    user = await find_by_telegram_id(session, tg.id)

    if user is None:
        user = User(
            telegram_id=tg.id,
            username=tg.username,
            first_name=tg.first_name,
            last_name=tg.last_name,
            points=0,
            total_spins=0,
            referral_bonus_paid=False,
        )
        session.add(user)
        await session.flush()  # ensures `user.id` exists before handlers use it
        return user

    # Profile fields only; balance columns are never touched here
    user.username = tg.username
    user.first_name = tg.first_name
    user.last_name = tg.last_name
    return user


async def find_by_id(session: AsyncSession, user_id: int) -> Optional[User]:
    return await session.scalar(select(User).where(User.id == user_id))


async def find_by_telegram_id(session: AsyncSession, telegram_id: int) -> Optional[User]:
    return await session.scalar(select(User).where(User.telegram_id == telegram_id))


async def get_balance(session: AsyncSession, user_id: int) -> int:
    value = await session.scalar(select(User.points).where(User.id == user_id))
    return int(value or 0)


async def attach_referrer(session: AsyncSession, user: User, referrer_telegram_id: int) -> bool:
    """
    Sets `referred_by_user_id` once. Self-referral, unknown referrers and
    users who already have a referrer or have spun are ignored.
    """
    if referrer_telegram_id == user.telegram_id:
        return False

    referrer = await find_by_telegram_id(session, referrer_telegram_id)
    if referrer is None:
        return False

    res = await session.execute(
        update(User)
        .where(
            User.id == user.id,
            User.referred_by_user_id.is_(None),
            User.total_spins == 0,
        )
        .values(referred_by_user_id=referrer.id)
        .execution_options(synchronize_session=False)
    )
    if res.rowcount != 1:
        return False

    user.referred_by_user_id = referrer.id
    return True
