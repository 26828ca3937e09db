from __future__ import annotations

import itertools
import random
from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from rewards_bot.config.settings import Settings
from rewards_bot.database.base import Base
from rewards_bot.database.models import Site, User
from rewards_bot.database.session import Database
from rewards_bot.services.anti_cheat import ScoreClaim, compute_score_hash
from rewards_bot.services.engine import RewardsEngine
from rewards_bot.services.prizes import Prize, PrizeSelector
from rewards_bot.utils.dt import CivilClock

# 2024-06-10 12:00 in Kyiv (EEST, UTC+3)
FROZEN_NOW = datetime(2024, 6, 10, 9, 0, tzinfo=timezone.utc)
SHOP_LAT = 50.4501
SHOP_LON = 30.5234
SCORE_SECRET = "test-score-secret"


class FakeRedis:
    def __init__(self) -> None:
        self._store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    async def set(self, key: str, value: str, nx: bool = False, ex: int | None = None) -> bool | None:
        if nx and key in self._store:
            return None
        self._store[key] = value
        if ex is not None:
            self.ttls[key] = ex
        return True

    async def get(self, key: str) -> str | None:
        return self._store.get(key)

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self._store.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed

    async def eval(self, script: str, numkeys: int, *keys_and_args: str) -> int:
        # only the compare-and-delete release script is used
        keys, args = keys_and_args[:numkeys], keys_and_args[numkeys:]
        key, owner = keys[0], args[0]
        if self._store.get(key) != owner:
            return 0
        del self._store[key]
        self.ttls.pop(key, None)
        return 1


class StubNotifier:
    def __init__(self) -> None:
        self.sent: list[tuple[int, str]] = []

    def dispatch(self, telegram_id: int, text: str) -> None:
        self.sent.append((telegram_id, text))

    async def send(self, telegram_id: int, text: str) -> bool:
        self.sent.append((telegram_id, text))
        return True

    async def drain(self) -> None:
        return None


class FrozenTime:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


def make_claim(score: int, now: datetime, *, duration_ms: int | None = None, secret: str = SCORE_SECRET) -> ScoreClaim:
    ts = int(now.timestamp() * 1000)
    return ScoreClaim(
        score=score,
        timestamp_ms=ts,
        integrity_hash=compute_score_hash(score, ts, secret),
        duration_ms=duration_ms,
    )


@pytest_asyncio.fixture
async def session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, expire_on_commit=False, autoflush=False, class_=AsyncSession)

    try:
        yield factory
    finally:
        await engine.dispose()


@pytest.fixture
def db(session_factory) -> Database:
    return Database.from_sessionmaker(session_factory)


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def frozen_time() -> FrozenTime:
    return FrozenTime(FROZEN_NOW)


@pytest.fixture
def clock(frozen_time) -> CivilClock:
    return CivilClock("Europe/Kyiv", now_fn=frozen_time)


@pytest.fixture
def notifier() -> StubNotifier:
    return StubNotifier()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        bot_token="123456:TEST",
        bot_username="coffee_rewards_bot",
        score_secret=SCORE_SECRET,
        database_url="sqlite+aiosqlite:///:memory:",
        redis_url="redis://localhost:6379/15",
        root_admin_ids=(1,),
    )


@pytest.fixture
def make_engine(settings, db, fake_redis, notifier, clock):
    def _make(**overrides) -> RewardsEngine:
        engine = RewardsEngine(
            settings=replace(settings, **overrides),
            db=db,
            redis_client=fake_redis,  # type: ignore[arg-type]
            notifier=notifier,  # type: ignore[arg-type]
            clock=clock,
            rng=random.Random(7),
        )
        # deterministic wheel
        engine.spins.prizes = PrizeSelector(table=(Prize(value=10, label="+10 points", weight=1),))
        return engine

    return _make


@pytest.fixture
def engine(make_engine) -> RewardsEngine:
    return make_engine()


@pytest.fixture
def make_user(session_factory):
    telegram_ids = itertools.count(500_000)

    async def _make(
        *,
        points: int = 0,
        total_spins: int = 0,
        last_spin_date: str | None = None,
        referred_by: int | None = None,
    ) -> User:
        async with session_factory() as session:
            user = User(
                telegram_id=next(telegram_ids),
                username=None,
                points=points,
                total_spins=total_spins,
                last_spin_date=last_spin_date,
                referred_by_user_id=referred_by,
                referral_bonus_paid=False,
            )
            session.add(user)
            await session.commit()
            return user

    return _make


@pytest.fixture
def load_user(session_factory):
    async def _load(user_id: int) -> User:
        async with session_factory() as session:
            return await session.scalar(select(User).where(User.id == user_id))

    return _load


@pytest.fixture
def count_rows(session_factory):
    async def _count(model) -> int:
        async with session_factory() as session:
            return int(await session.scalar(select(func.count()).select_from(model)))

    return _count


@pytest_asyncio.fixture
async def shop(session_factory) -> Site:
    async with session_factory() as session:
        site = Site(
            slug="centre",
            name="Coffee Point Centre",
            latitude=SHOP_LAT,
            longitude=SHOP_LON,
            is_active=True,
        )
        session.add(site)
        await session.commit()
        return site


@pytest_asyncio.fixture
async def file_db(tmp_path):
    """On-disk database with a real connection pool, so concurrent sessions interleave."""
    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'rewards.db'}")
    await database.init_models()
    try:
        yield database
    finally:
        await database.close()


@pytest.fixture
def file_engine(file_db, settings, fake_redis, notifier, clock) -> RewardsEngine:
    return RewardsEngine(
        settings=settings,
        db=file_db,
        redis_client=fake_redis,  # type: ignore[arg-type]
        notifier=notifier,  # type: ignore[arg-type]
        clock=clock,
        rng=random.Random(7),
    )


@pytest.fixture
def make_file_user(file_db):
    telegram_ids = itertools.count(700_000)

    async def _make(*, points: int = 0) -> User:
        async with file_db.transaction() as session:
            user = User(telegram_id=next(telegram_ids), points=points, total_spins=0, referral_bonus_paid=False)
            session.add(user)
        return user

    return _make
