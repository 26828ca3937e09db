# rewards_bot/services/points.py
from __future__ import annotations

import logging
from datetime import datetime

from redis.exceptions import RedisError
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from rewards_bot.config.settings import Settings
from rewards_bot.database.models import RewardSource, ScoreSubmission, User
from rewards_bot.database.repo.users import find_by_id, get_balance
from rewards_bot.database.session import Database
from rewards_bot.services.anti_cheat import AntiCheatVerifier, ScoreClaim
from rewards_bot.services.coordination import CoordinationStore
from rewards_bot.services.daily_limits import DailyLimitLedger
from rewards_bot.services.results import CreditResult, Failure, FailureKind, ScoreAward
from rewards_bot.utils.dt import CivilClock

log = logging.getLogger(__name__)


async def add_points(session: AsyncSession, *, user_id: int, points: int) -> None:
    if points <= 0:
        return
    await session.execute(
        update(User)
        .where(User.id == user_id)
        .values(points=User.points + points)
        .execution_options(synchronize_session=False)
    )


class PointsService:
    """
    Game rewards routed through the daily limit ledger.

    Arcade submissions for one user run under a per-user lock so the
    "first N sessions of the day" count cannot be raced, and each signed
    score is claimed once in Redis for as long as it could still verify.
    """

    SCOPE = "arcade"

    def __init__(
        self,
        *,
        db: Database,
        store: CoordinationStore,
        clock: CivilClock,
        ledger: DailyLimitLedger,
        verifier: AntiCheatVerifier,
        settings: Settings,
    ) -> None:
        self.db = db
        self.store = store
        self.clock = clock
        self.ledger = ledger
        self.verifier = verifier
        self.settings = settings

    async def credit_points(self, *, user_id: int, amount: int, source: RewardSource) -> CreditResult | Failure:
        """
        Inbound hook for other game subsystems (two-player wins).
        The grant is clamped to the source's daily cap.
        """
        self.ledger.cap_for(source)
        if amount < 0:
            raise ValueError("amount must be non-negative")

        today = self.clock.today_string()
        async with self.db.transaction() as session:
            if await find_by_id(session, user_id) is None:
                return Failure(kind=FailureKind.USER_NOT_FOUND, message="User not found.")

            granted = await self.ledger.award(session, user_id=user_id, source=source, amount=amount, day=today)
            await add_points(session, user_id=user_id, points=granted)
            balance = await get_balance(session, user_id)

        log.info("Credit user=%s source=%s requested=%s granted=%s", user_id, source.value, amount, granted)
        return CreditResult(requested=amount, granted=granted, new_balance=balance)

    async def sessions_today(self, session: AsyncSession, *, user_id: int, day: str) -> int:
        value = await session.scalar(
            select(func.count(ScoreSubmission.id)).where(
                ScoreSubmission.user_id == user_id,
                ScoreSubmission.day == day,
            )
        )
        return int(value or 0)

    def tentative_award(self, score: int) -> int:
        return min(score // self.settings.arcade_points_divisor, self.settings.arcade_session_points_cap)

    async def submit_score(self, *, user_id: int, claim: ScoreClaim) -> ScoreAward | Failure:
        now = self.clock.now()
        rejected = self.verifier.check(claim, now=now, user_id=user_id)
        if rejected is not None:
            return rejected

        lock_key = self.store.lock_key(self.SCOPE, user_id)
        async with self.store.hold(lock_key, self.settings.spin_lock_ttl_seconds) as acquired:
            if not acquired:
                log.info("Arcade submission busy user=%s", user_id)
                return Failure(
                    kind=FailureKind.CONCURRENCY_BUSY,
                    message="Your previous game is still being scored. Try again in a few seconds.",
                )

            replay_key = self.store.score_key(claim.integrity_hash)
            owner = str(user_id)
            if not await self.store.claim(replay_key, owner, self.settings.score_max_age_seconds):
                log.warning("Arcade score replayed user=%s hash=%s", user_id, claim.integrity_hash)
                return Failure(kind=FailureKind.DUPLICATE_SCORE, message="This score was already submitted.")

            try:
                result = await self._score_locked(user_id=user_id, claim=claim, now=now)
            except Exception:
                await self._drop_replay_claim(replay_key, owner)
                raise

            if isinstance(result, Failure):
                await self._drop_replay_claim(replay_key, owner)
            return result

    async def _drop_replay_claim(self, key: str, owner: str) -> None:
        try:
            await self.store.release(key, owner)
        except RedisError:
            log.warning("Could not drop score claim %s", key, exc_info=True)

    async def _score_locked(self, *, user_id: int, claim: ScoreClaim, now: datetime) -> ScoreAward | Failure:
        today = self.clock.today_string(now)
        max_sessions = self.settings.arcade_sessions_per_day

        async with self.db.transaction() as session:
            if await find_by_id(session, user_id) is None:
                return Failure(kind=FailureKind.USER_NOT_FOUND, message="User not found.")

            played = await self.sessions_today(session, user_id=user_id, day=today)
            can_earn = played < max_sessions
            tentative = self.tentative_award(claim.score) if can_earn else 0

            granted = 0
            if tentative > 0:
                granted = await self.ledger.award(
                    session,
                    user_id=user_id,
                    source=RewardSource.ARCADE,
                    amount=tentative,
                    day=today,
                )

            session.add(
                ScoreSubmission(
                    user_id=user_id,
                    day=today,
                    score=claim.score,
                    claimed_at_ms=claim.timestamp_ms,
                    integrity_hash=claim.integrity_hash,
                    duration_ms=claim.duration_ms,
                    points_awarded=granted,
                )
            )
            await add_points(session, user_id=user_id, points=granted)

        log.info(
            "Arcade score user=%s score=%s sessions=%s tentative=%s granted=%s",
            user_id, claim.score, played, tentative, granted,
        )
        return ScoreAward(
            points_awarded=granted,
            scoring_sessions_left_today=max(0, max_sessions - played - 1),
            limit_reached=not can_earn,
        )
