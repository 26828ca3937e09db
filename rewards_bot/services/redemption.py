# rewards_bot/services/redemption.py
from __future__ import annotations

import logging
import random
from datetime import datetime, timedelta

from redis.exceptions import RedisError
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from rewards_bot.config.settings import Settings
from rewards_bot.database.models import RedemptionCode, User
from rewards_bot.database.repo.users import find_by_id, get_balance
from rewards_bot.database.session import Database
from rewards_bot.services.coordination import CoordinationStore
from rewards_bot.services.notifications import Notifier
from rewards_bot.services.results import Failure, FailureKind, RedeemSuccess, VerifySuccess
from rewards_bot.utils.dt import CivilClock, aware_utc, naive_utc

log = logging.getLogger(__name__)


class RedemptionService:
    """
    Drink codes: 100 points -> one four-digit code valid for 15 minutes.

    At most one active (unused, unexpired) code per user. The balance
    debit and the code row are written in one transaction. Digits are
    claimed in Redis for the code TTL so no two users hold the same active
    code; the staff-side verification is a single conditional UPDATE so a
    code is redeemed once.
    """

    SCOPE = "redeem"
    CODE_DIGITS = 4
    MAX_CODE_ATTEMPTS = 10

    def __init__(
        self,
        *,
        db: Database,
        store: CoordinationStore,
        clock: CivilClock,
        notifier: Notifier,
        settings: Settings,
        rng: random.Random | None = None,
    ) -> None:
        self.db = db
        self.store = store
        self.clock = clock
        self.notifier = notifier
        self.cost = settings.redeem_cost_points
        self.ttl = timedelta(minutes=settings.redeem_code_ttl_minutes)
        self.lock_ttl = settings.spin_lock_ttl_seconds
        self._rng = rng or random.SystemRandom()

    def _candidate(self) -> str:
        return f"{self._rng.randrange(10 ** self.CODE_DIGITS):0{self.CODE_DIGITS}d}"

    @staticmethod
    async def active_code_for(session: AsyncSession, *, user_id: int, now: datetime) -> RedemptionCode | None:
        return await session.scalar(
            select(RedemptionCode)
            .where(
                RedemptionCode.user_id == user_id,
                RedemptionCode.used_at.is_(None),
                RedemptionCode.expires_at > naive_utc(now),
            )
            .order_by(RedemptionCode.expires_at.desc())
            .limit(1)
        )

    @staticmethod
    async def _code_in_use(session: AsyncSession, *, code: str, now: datetime) -> bool:
        found = await session.scalar(
            select(RedemptionCode.id).where(
                RedemptionCode.code == code,
                RedemptionCode.used_at.is_(None),
                RedemptionCode.expires_at > naive_utc(now),
            )
        )
        return found is not None

    async def _generate_code(self, session: AsyncSession, *, user_id: int, now: datetime) -> str | None:
        """
        Picks digits that are free in the DB and claims them in Redis, so two
        users issuing at the same moment can never both get the same code.
        """
        ttl_seconds = int(self.ttl.total_seconds())
        for _ in range(self.MAX_CODE_ATTEMPTS):
            code = self._candidate()
            if await self._code_in_use(session, code=code, now=now):
                continue
            if await self.store.claim(self.store.code_key(code), str(user_id), ttl_seconds):
                return code
        return None

    async def issue(self, *, user_id: int, telegram_id: int) -> RedeemSuccess | Failure:
        # the code itself goes back in the reply; no separate notification
        lock_key = self.store.lock_key(self.SCOPE, user_id)
        async with self.store.hold(lock_key, self.lock_ttl) as acquired:
            if not acquired:
                return Failure(
                    kind=FailureKind.CONCURRENCY_BUSY,
                    message="Your code is already being prepared. Try again in a few seconds.",
                )
            return await self._issue_locked(user_id=user_id)

    async def _issue_locked(self, *, user_id: int) -> RedeemSuccess | Failure:
        now = self.clock.now()
        claimed: str | None = None
        issued = False

        try:
            async with self.db.transaction() as session:
                user = await find_by_id(session, user_id)
                if user is None:
                    return Failure(kind=FailureKind.USER_NOT_FOUND, message="User not found.")

                balance = int(user.points or 0)
                if balance < self.cost:
                    return self._insufficient(balance)

                active = await self.active_code_for(session, user_id=user_id, now=now)
                if active is not None:
                    return Failure(
                        kind=FailureKind.ACTIVE_CODE_EXISTS,
                        message="You already have an active code. Use it before requesting a new one.",
                        details={
                            "code": active.code,
                            "expiresAt": aware_utc(active.expires_at).isoformat(),
                        },
                    )

                claimed = await self._generate_code(session, user_id=user_id, now=now)
                if claimed is None:
                    log.error("Redemption code generation exhausted for user=%s", user_id)
                    return Failure(
                        kind=FailureKind.CODE_GENERATION_FAILED,
                        message="Could not generate a code right now. Please try again.",
                    )

                debited = await session.execute(
                    update(User)
                    .where(User.id == user_id, User.points >= self.cost)
                    .values(points=User.points - self.cost)
                    .execution_options(synchronize_session=False)
                )
                if debited.rowcount != 1:
                    return self._insufficient(await get_balance(session, user_id))

                expires_at = now + self.ttl
                session.add(
                    RedemptionCode(
                        code=claimed,
                        user_id=user_id,
                        points_spent=self.cost,
                        expires_at=naive_utc(expires_at),
                    )
                )
                new_balance = await get_balance(session, user_id)
            issued = True
        finally:
            if claimed is not None and not issued:
                await self._drop_claim(claimed, user_id)

        log.info("Redemption code issued user=%s expires=%s", user_id, expires_at.isoformat())
        return RedeemSuccess(code=claimed, expires_at=expires_at, new_balance=new_balance)

    async def _drop_claim(self, code: str, user_id: int) -> None:
        try:
            await self.store.release(self.store.code_key(code), str(user_id))
        except RedisError:
            # expires on its own after the code TTL
            log.warning("Could not drop claim on code %s for user=%s", code, user_id, exc_info=True)

    def _insufficient(self, balance: int) -> Failure:
        return Failure(
            kind=FailureKind.INSUFFICIENT_POINTS,
            message=f"You need {self.cost} points for a free drink.",
            details={"balance": balance, "pointsNeeded": max(0, self.cost - balance)},
        )

    async def verify(self, *, code: str, staff_user_id: int | None = None) -> VerifySuccess | Failure:
        code = code.strip()
        now = self.clock.now()

        async with self.db.transaction() as session:
            target_id = await session.scalar(
                select(RedemptionCode.id).where(
                    RedemptionCode.code == code,
                    RedemptionCode.used_at.is_(None),
                    RedemptionCode.expires_at > naive_utc(now),
                )
            )

            marked = 0
            if target_id is not None:
                res = await session.execute(
                    update(RedemptionCode)
                    .where(RedemptionCode.id == target_id, RedemptionCode.used_at.is_(None))
                    .values(used_at=naive_utc(now), used_by_user_id=staff_user_id)
                    .execution_options(synchronize_session=False)
                )
                marked = res.rowcount

            if marked != 1:
                return await self._classify_rejection(session, code=code)

            row = await session.scalar(select(RedemptionCode).where(RedemptionCode.id == target_id))
            owner_tg = await session.scalar(select(User.telegram_id).where(User.id == row.user_id))

        log.info("Redemption code verified code=%s user=%s staff=%s", code, row.user_id, staff_user_id)
        await self._drop_claim(code, row.user_id)
        self.notifier.dispatch(int(owner_tg), "✅ Your code was redeemed. Enjoy your drink!")
        return VerifySuccess(
            code=code,
            user_id=row.user_id,
            telegram_id=int(owner_tg),
            points_spent=row.points_spent,
        )

    @staticmethod
    async def _classify_rejection(session: AsyncSession, *, code: str) -> Failure:
        latest = await session.scalar(
            select(RedemptionCode)
            .where(RedemptionCode.code == code)
            .order_by(RedemptionCode.created_at.desc(), RedemptionCode.id.desc())
            .limit(1)
        )
        if latest is None:
            return Failure(kind=FailureKind.NOT_FOUND, message="Code not found.")
        if latest.used_at is not None:
            return Failure(
                kind=FailureKind.ALREADY_USED,
                message="This code was already used.",
                details={"usedAt": aware_utc(latest.used_at).isoformat()},
            )
        return Failure(
            kind=FailureKind.EXPIRED,
            message="This code has expired.",
            details={"expiredAt": aware_utc(latest.expires_at).isoformat()},
        )
