from __future__ import annotations

import asyncio

import pytest
from sqlalchemy import select

from rewards_bot.database.models import DailyLimitEntry, RewardSource, User
from rewards_bot.services.daily_limits import DailyLimitLedger
from rewards_bot.services.results import CreditResult, FailureKind, RedeemSuccess, VerifySuccess


@pytest.mark.asyncio
async def test_parallel_awards_never_exceed_cap(file_db, make_file_user):
    user = await make_file_user()
    ledger = DailyLimitLedger({RewardSource.ARCADE: 10})

    async def award() -> int:
        async with file_db.transaction() as session:
            return await ledger.award(session, user_id=user.id, source=RewardSource.ARCADE, amount=4, day="2024-06-10")

    granted = await asyncio.gather(*(award() for _ in range(6)))

    assert sum(granted) == 10
    async with file_db.session() as session:
        earned = await session.scalar(select(DailyLimitEntry.points_earned).where(DailyLimitEntry.user_id == user.id))
    assert earned == 10


@pytest.mark.asyncio
async def test_parallel_two_player_credits_respect_cap(file_engine, file_db, make_file_user):
    user = await make_file_user()

    results = await asyncio.gather(
        *(file_engine.credit_points(user_id=user.id, amount=4, source=RewardSource.TIC_TAC_TOE) for _ in range(6))
    )

    assert all(isinstance(r, CreditResult) for r in results)
    assert sum(r.granted for r in results) == 10
    async with file_db.session() as session:
        assert await session.scalar(select(User.points).where(User.id == user.id)) == 10


@pytest.mark.asyncio
async def test_parallel_verification_redeems_once(file_engine, make_file_user, notifier):
    staff = await make_file_user()
    user = await make_file_user(points=100)
    issued = await file_engine.redeem(user_id=user.id, telegram_id=user.telegram_id)
    assert isinstance(issued, RedeemSuccess)

    results = await asyncio.gather(
        *(file_engine.verify_code(code=issued.code, staff_user_id=staff.id) for _ in range(5))
    )

    ok = [r for r in results if isinstance(r, VerifySuccess)]
    rejected = [r for r in results if not isinstance(r, VerifySuccess)]
    assert len(ok) == 1
    assert all(r.kind == FailureKind.ALREADY_USED for r in rejected)
    assert [tg for tg, _ in notifier.sent] == [user.telegram_id]


class CollidingRng:
    """Every caller draws 42 first, then its own fallback."""

    def __init__(self) -> None:
        self._draws = [42, 42, 43, 44]

    def randrange(self, stop: int) -> int:
        return self._draws.pop(0)


@pytest.mark.asyncio
async def test_parallel_issues_hand_out_distinct_codes(file_engine, make_file_user):
    file_engine.redemptions._rng = CollidingRng()
    first = await make_file_user(points=100)
    second = await make_file_user(points=100)

    results = await asyncio.gather(
        file_engine.redeem(user_id=first.id, telegram_id=first.telegram_id),
        file_engine.redeem(user_id=second.id, telegram_id=second.telegram_id),
    )

    assert all(isinstance(r, RedeemSuccess) for r in results)
    codes = {r.code for r in results}
    assert len(codes) == 2
    assert "0042" in codes
