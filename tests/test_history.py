from __future__ import annotations

from datetime import timedelta

import pytest

from rewards_bot.database.models import RedemptionCode, SpinRecord
from rewards_bot.handlers.user.history import format_history
from rewards_bot.services.history import CodeEntry, SpinEntry, UserHistory, load_history
from conftest import FROZEN_NOW

BASE = FROZEN_NOW.replace(tzinfo=None)


async def _add_spins(session_factory, user_id: int, count: int) -> None:
    async with session_factory() as session:
        for i in range(count):
            session.add(
                SpinRecord(
                    user_id=user_id,
                    day="2024-06-10",
                    prize=i,
                    prize_label=f"+{i} points",
                    created_at=BASE - timedelta(days=count - i),
                )
            )
        await session.commit()


@pytest.mark.asyncio
async def test_history_is_newest_first_and_limited(engine, make_user, session_factory):
    user = await make_user()
    other = await make_user()
    await _add_spins(session_factory, user.id, 60)
    await _add_spins(session_factory, other.id, 3)

    history = await engine.history(user_id=user.id)

    assert len(history.spins) == 50
    assert [s.prize for s in history.spins[:3]] == [59, 58, 57]
    assert history.spins[-1].prize == 10
    assert history.spins[0].created_at.tzinfo is not None
    assert history.codes == ()


@pytest.mark.asyncio
async def test_code_statuses(make_user, session_factory):
    user = await make_user()
    async with session_factory() as session:
        session.add_all(
            [
                RedemptionCode(
                    code="1111",
                    user_id=user.id,
                    points_spent=100,
                    expires_at=BASE - timedelta(days=2) + timedelta(minutes=15),
                    used_at=BASE - timedelta(days=2) + timedelta(minutes=5),
                    created_at=BASE - timedelta(days=2),
                ),
                RedemptionCode(
                    code="2222",
                    user_id=user.id,
                    points_spent=100,
                    expires_at=BASE - timedelta(days=1) + timedelta(minutes=15),
                    created_at=BASE - timedelta(days=1),
                ),
                RedemptionCode(
                    code="3333",
                    user_id=user.id,
                    points_spent=100,
                    expires_at=BASE + timedelta(minutes=10),
                    created_at=BASE - timedelta(minutes=5),
                ),
            ]
        )
        await session.commit()

    async with session_factory() as session:
        history = await load_history(session, user_id=user.id, now=FROZEN_NOW, code_limit=2)

    assert [(c.code, c.status) for c in history.codes] == [("3333", "active"), ("2222", "expired")]


def test_history_text_in_shop_time(settings):
    history = UserHistory(
        spins=(SpinEntry(day="2024-06-10", prize=10, prize_label="+10 points", created_at=FROZEN_NOW),),
        codes=(
            CodeEntry(
                code="0042",
                points_spent=100,
                status="used",
                expires_at=FROZEN_NOW,
                used_at=FROZEN_NOW,
                created_at=FROZEN_NOW,
            ),
        ),
    )

    text = format_history(history, timezone=settings.timezone)

    assert "10.06 12:00 · +10 points" in text
    assert "0042" in text and "used" in text
    assert "No spins" in format_history(UserHistory(spins=(), codes=()), timezone=settings.timezone)
