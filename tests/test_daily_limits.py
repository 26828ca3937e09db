from __future__ import annotations

from dataclasses import replace

import pytest

from rewards_bot.database.models import RewardSource
from rewards_bot.services.daily_limits import DailyLimitLedger, caps_from_settings


@pytest.mark.asyncio
async def test_award_clamps_to_remaining_cap(db, make_user):
    user = await make_user()
    ledger = DailyLimitLedger({RewardSource.ARCADE: 25})

    async with db.transaction() as session:
        first = await ledger.award(session, user_id=user.id, source=RewardSource.ARCADE, amount=20, day="2024-06-10")
    async with db.transaction() as session:
        second = await ledger.award(session, user_id=user.id, source=RewardSource.ARCADE, amount=10, day="2024-06-10")
    async with db.transaction() as session:
        third = await ledger.award(session, user_id=user.id, source=RewardSource.ARCADE, amount=3, day="2024-06-10")
        earned = await ledger.earned(session, user_id=user.id, source=RewardSource.ARCADE, day="2024-06-10")

    assert (first, second, third) == (20, 5, 0)
    assert earned == 25


@pytest.mark.asyncio
async def test_days_and_sources_are_tracked_separately(db, make_user):
    user = await make_user()
    ledger = DailyLimitLedger({RewardSource.ARCADE: 5, RewardSource.TIC_TAC_TOE: 10})

    async with db.transaction() as session:
        a = await ledger.award(session, user_id=user.id, source=RewardSource.ARCADE, amount=5, day="2024-06-10")
        b = await ledger.award(session, user_id=user.id, source=RewardSource.TIC_TAC_TOE, amount=2, day="2024-06-10")
        c = await ledger.award(session, user_id=user.id, source=RewardSource.ARCADE, amount=5, day="2024-06-11")

    assert (a, b, c) == (5, 2, 5)


@pytest.mark.asyncio
async def test_rolled_back_award_is_not_counted(db, make_user):
    user = await make_user()
    ledger = DailyLimitLedger({RewardSource.ARCADE: 25})

    with pytest.raises(RuntimeError):
        async with db.transaction() as session:
            await ledger.award(session, user_id=user.id, source=RewardSource.ARCADE, amount=20, day="2024-06-10")
            raise RuntimeError("balance update failed")

    async with db.session() as session:
        assert await ledger.earned(session, user_id=user.id, source=RewardSource.ARCADE, day="2024-06-10") == 0


def test_source_without_cap_is_a_programming_error():
    ledger = DailyLimitLedger({RewardSource.ARCADE: 25})
    with pytest.raises(ValueError):
        ledger.cap_for(RewardSource.SPIN)


def test_caps_come_from_settings(settings):
    caps = caps_from_settings(settings)
    assert caps == {RewardSource.TIC_TAC_TOE: 10, RewardSource.ARCADE: 25}


def test_two_player_cap_is_win_points_times_max_wins(settings):
    caps = caps_from_settings(replace(settings, ttt_win_points=3, ttt_max_wins_per_day=4))
    assert caps[RewardSource.TIC_TAC_TOE] == 12
