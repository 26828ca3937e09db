# rewards_bot/services/engine.py
from __future__ import annotations

import logging
import random
from typing import Awaitable, TypeVar

from redis.asyncio import Redis
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError

from rewards_bot.config.settings import Settings
from rewards_bot.database.models import RewardSource
from rewards_bot.database.session import Database
from rewards_bot.services.anti_cheat import AntiCheatVerifier, ScoreClaim
from rewards_bot.services.coordination import CoordinationStore
from rewards_bot.services.daily_limits import DailyLimitContention, DailyLimitLedger, caps_from_settings
from rewards_bot.services.history import UserHistory, load_history
from rewards_bot.services.notifications import Notifier
from rewards_bot.services.points import PointsService
from rewards_bot.services.prizes import PrizeSelector
from rewards_bot.services.redemption import RedemptionService
from rewards_bot.services.referral import ReferralCreditor
from rewards_bot.services.results import (
    CreditResult,
    Failure,
    RedeemSuccess,
    RewardsUnavailable,
    ScoreAward,
    SpinSuccess,
    VerifySuccess,
    WheelStatus,
)
from rewards_bot.services.spin import SpinService
from rewards_bot.utils.dt import CivilClock

log = logging.getLogger(__name__)

T = TypeVar("T")

_INFRA_ERRORS = (SQLAlchemyError, RedisError, DailyLimitContention, ConnectionError)


class RewardsEngine:
    """
    Entry point for every balance-affecting operation.

    Business rejections come back as `Failure` values. Store or Redis
    errors are logged here and re-raised as `RewardsUnavailable`.
    """

    def __init__(
        self,
        *,
        settings: Settings,
        db: Database,
        redis_client: Redis,
        notifier: Notifier,
        clock: CivilClock | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.settings = settings
        self.db = db
        self.clock = clock or CivilClock(settings.timezone)
        self.store = CoordinationStore(redis_client, idempotency_ttl_seconds=settings.idempotency_ttl_seconds)
        self.notifier = notifier
        self.ledger = DailyLimitLedger(caps_from_settings(settings))

        self.spins = SpinService(
            db=db,
            store=self.store,
            clock=self.clock,
            prizes=PrizeSelector(rng=rng),
            referrals=ReferralCreditor(settings.referral_bonus_points),
            notifier=notifier,
            settings=settings,
        )
        self.redemptions = RedemptionService(
            db=db,
            store=self.store,
            clock=self.clock,
            notifier=notifier,
            settings=settings,
            rng=rng,
        )
        self.points = PointsService(
            db=db,
            store=self.store,
            clock=self.clock,
            ledger=self.ledger,
            verifier=AntiCheatVerifier(
                secret=settings.score_secret,
                max_age_seconds=settings.score_max_age_seconds,
                max_score_per_second=settings.max_score_per_second,
            ),
            settings=settings,
        )

    async def _guard(self, op: str, call: Awaitable[T]) -> T:
        try:
            return await call
        except _INFRA_ERRORS as e:
            log.exception("%s failed on infrastructure error", op)
            raise RewardsUnavailable(f"{op} is temporarily unavailable") from e

    async def spin(
        self,
        *,
        user_id: int,
        telegram_id: int,
        latitude: float | None = None,
        longitude: float | None = None,
        idempotency_key: str | None = None,
    ) -> SpinSuccess | Failure:
        return await self._guard(
            "spin",
            self.spins.spin(
                user_id=user_id,
                telegram_id=telegram_id,
                latitude=latitude,
                longitude=longitude,
                idempotency_key=idempotency_key,
            ),
        )

    async def wheel_status(self, *, user_id: int) -> WheelStatus | Failure:
        return await self._guard("wheel_status", self.spins.wheel_status(user_id=user_id))

    async def redeem(self, *, user_id: int, telegram_id: int) -> RedeemSuccess | Failure:
        return await self._guard("redeem", self.redemptions.issue(user_id=user_id, telegram_id=telegram_id))

    async def verify_code(self, *, code: str, staff_user_id: int | None = None) -> VerifySuccess | Failure:
        return await self._guard("verify_code", self.redemptions.verify(code=code, staff_user_id=staff_user_id))

    async def submit_score(self, *, user_id: int, claim: ScoreClaim) -> ScoreAward | Failure:
        return await self._guard("submit_score", self.points.submit_score(user_id=user_id, claim=claim))

    async def credit_points(self, *, user_id: int, amount: int, source: RewardSource) -> CreditResult | Failure:
        return await self._guard(
            "credit_points",
            self.points.credit_points(user_id=user_id, amount=amount, source=source),
        )

    async def history(self, *, user_id: int) -> UserHistory:
        return await self._guard("history", self._load_history(user_id))

    async def _load_history(self, user_id: int) -> UserHistory:
        async with self.db.session() as session:
            return await load_history(session, user_id=user_id, now=self.clock.now())
