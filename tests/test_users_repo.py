from __future__ import annotations

from types import SimpleNamespace

import pytest

from rewards_bot.database.repo.users import attach_referrer, find_by_telegram_id, upsert_user_from_event


def _event(tg_id: int, *, username: str | None = "latte_lover", is_bot: bool = False):
    return SimpleNamespace(
        from_user=SimpleNamespace(id=tg_id, username=username, first_name="Ann", last_name=None, is_bot=is_bot)
    )


@pytest.mark.asyncio
async def test_upsert_creates_then_updates_profile(session_factory):
    async with session_factory() as session:
        created = await upsert_user_from_event(session, _event(77))
        await session.commit()
    async with session_factory() as session:
        updated = await upsert_user_from_event(session, _event(77, username="espresso"))
        await session.commit()

    assert created.id == updated.id
    assert updated.username == "espresso"
    assert updated.points == 0


@pytest.mark.asyncio
async def test_bots_are_ignored(session_factory):
    async with session_factory() as session:
        assert await upsert_user_from_event(session, _event(78, is_bot=True)) is None
        assert await find_by_telegram_id(session, 78) is None


@pytest.mark.asyncio
async def test_referrer_is_attached_once(session_factory, make_user):
    referrer = await make_user()
    other = await make_user()
    invitee = await make_user()

    async with session_factory() as session:
        user = await find_by_telegram_id(session, invitee.telegram_id)
        assert await attach_referrer(session, user, invitee.telegram_id) is False
        assert await attach_referrer(session, user, 1) is False
        assert await attach_referrer(session, user, referrer.telegram_id) is True
        assert await attach_referrer(session, user, other.telegram_id) is False
        await session.commit()

    async with session_factory() as session:
        stored = await find_by_telegram_id(session, invitee.telegram_id)
    assert stored.referred_by_user_id == referrer.id


@pytest.mark.asyncio
async def test_users_who_already_spun_cannot_be_referred(session_factory, make_user):
    referrer = await make_user()
    veteran = await make_user(total_spins=3, last_spin_date="2024-06-01")

    async with session_factory() as session:
        user = await find_by_telegram_id(session, veteran.telegram_id)
        assert await attach_referrer(session, user, referrer.telegram_id) is False
