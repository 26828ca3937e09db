# rewards_bot/services/spin.py
from __future__ import annotations

import logging
from datetime import datetime

from redis.exceptions import RedisError
from sqlalchemy import or_, update

from rewards_bot.config.settings import Settings
from rewards_bot.database.models import SpinRecord, User
from rewards_bot.database.repo.sites import list_active
from rewards_bot.database.repo.users import find_by_id, get_balance
from rewards_bot.database.session import Database
from rewards_bot.services.coordination import CoordinationStore
from rewards_bot.services.notifications import Notifier
from rewards_bot.services.prizes import PrizeSelector
from rewards_bot.services.referral import ReferralCredit, ReferralCreditor
from rewards_bot.services.results import Failure, FailureKind, SpinSuccess, WheelStatus
from rewards_bot.utils.dt import CivilClock
from rewards_bot.utils.geo import nearest

log = logging.getLogger(__name__)


def cooldown_failure(next_midnight: datetime, now: datetime) -> Failure:
    remaining = max(0, int((next_midnight - now).total_seconds()))
    return Failure(
        kind=FailureKind.COOLDOWN,
        message="You already tried your luck today. Come back tomorrow for a new spin!",
        details={
            "nextSpinAvailableAt": next_midnight.isoformat(),
            "remainingSeconds": remaining,
        },
    )


class SpinService:
    """
    Wheel of fortune.

    Idle -> Locked -> (Cooldown | NoLocation | OutOfRange | Awarded) -> Idle.
    The per-user lock lives in Redis so it holds across processes; the
    cooldown is re-checked in the UPDATE itself in case the lock TTL ran
    out mid-request.
    """

    SCOPE = "spin"

    def __init__(
        self,
        *,
        db: Database,
        store: CoordinationStore,
        clock: CivilClock,
        prizes: PrizeSelector,
        referrals: ReferralCreditor,
        notifier: Notifier,
        settings: Settings,
    ) -> None:
        self.db = db
        self.store = store
        self.clock = clock
        self.prizes = prizes
        self.referrals = referrals
        self.notifier = notifier
        self.settings = settings

    async def spin(
        self,
        *,
        user_id: int,
        telegram_id: int,
        latitude: float | None = None,
        longitude: float | None = None,
        idempotency_key: str | None = None,
    ) -> SpinSuccess | Failure:
        if idempotency_key:
            cached = await self.store.idempotency_get(self.SCOPE, user_id, idempotency_key)
            if cached is not None:
                log.info("Spin replay user=%s key=%s", user_id, idempotency_key)
                return SpinSuccess.from_payload(cached)

        lock_key = self.store.lock_key(self.SCOPE, user_id)
        credit: ReferralCredit | None = None

        async with self.store.hold(lock_key, self.settings.spin_lock_ttl_seconds) as acquired:
            if not acquired:
                log.info("Spin busy user=%s", user_id)
                return Failure(
                    kind=FailureKind.CONCURRENCY_BUSY,
                    message="Your spin is already being processed. Try again in a few seconds.",
                )

            result, credit = await self._spin_locked(
                user_id=user_id,
                telegram_id=telegram_id,
                latitude=latitude,
                longitude=longitude,
            )

            if isinstance(result, SpinSuccess) and idempotency_key:
                await self._remember(user_id, idempotency_key, result)

        if credit is not None:
            self._notify_referrer(credit)
        return result

    async def _remember(self, user_id: int, idempotency_key: str, result: SpinSuccess) -> None:
        # the spin is already committed; a cache miss only loses replay protection
        try:
            await self.store.idempotency_set(self.SCOPE, user_id, idempotency_key, result.to_payload())
        except RedisError:
            log.warning("Could not cache spin result user=%s key=%s", user_id, idempotency_key, exc_info=True)

    async def _spin_locked(
        self,
        *,
        user_id: int,
        telegram_id: int,
        latitude: float | None,
        longitude: float | None,
    ) -> tuple[SpinSuccess | Failure, ReferralCredit | None]:
        now = self.clock.now()
        today = self.clock.today_string(now)
        next_midnight = self.clock.next_midnight(now)

        async with self.db.transaction() as session:
            user = await find_by_id(session, user_id)
            if user is None:
                return Failure(kind=FailureKind.USER_NOT_FOUND, message="User not found."), None

            if user.last_spin_date == today:
                return cooldown_failure(next_midnight, now), None

            if telegram_id in self.settings.geo_bypass_ids:
                log.info("Geofence bypass for telegram_id=%s", telegram_id)
            else:
                if latitude is None or longitude is None:
                    return Failure(
                        kind=FailureKind.NO_LOCATION,
                        message="Share your location to spin the wheel.",
                    ), None

                sites = await list_active(session)
                near = nearest(latitude, longitude, sites)
                if near is None or near.distance_m > self.settings.spin_radius_meters:
                    return Failure(
                        kind=FailureKind.OUT_OF_RANGE,
                        message="You are too far away. Come closer to the coffee shop to spin the wheel!",
                        details={
                            "nearestSite": near.site.name if near else None,
                            "distanceMeters": round(near.distance_m) if near else None,
                        },
                    ), None

            prize = self.prizes.draw()
            spins_before = int(user.total_spins or 0)

            res = await session.execute(
                update(User)
                .where(
                    User.id == user_id,
                    or_(User.last_spin_date.is_(None), User.last_spin_date != today),
                )
                .values(
                    points=User.points + prize.value,
                    total_spins=User.total_spins + 1,
                    last_spin_date=today,
                )
                .execution_options(synchronize_session=False)
            )
            if res.rowcount != 1:
                return cooldown_failure(next_midnight, now), None

            session.add(
                SpinRecord(
                    user_id=user_id,
                    day=today,
                    prize=prize.value,
                    prize_label=prize.label,
                    latitude=latitude,
                    longitude=longitude,
                )
            )

            credit = await self.referrals.credit_first_spin(
                session,
                invitee_id=user_id,
                spins_before=spins_before,
            )
            new_balance = await get_balance(session, user_id)

        log.info("Spin user=%s prize=%s balance=%s", user_id, prize.value, new_balance)
        return SpinSuccess(
            prize_value=prize.value,
            prize_label=prize.label,
            new_balance=new_balance,
            next_spin_available_at=next_midnight,
            referral_bonus_paid=credit is not None,
        ), credit

    def _notify_referrer(self, credit: ReferralCredit) -> None:
        # the spinner gets the result as a reply; only the referrer is told separately
        self.notifier.dispatch(
            credit.referrer_telegram_id,
            f"👥 Your friend made their first spin. <b>+{credit.bonus} points</b> for you!",
        )

    async def wheel_status(self, *, user_id: int) -> WheelStatus | Failure:
        now = self.clock.now()
        async with self.db.session() as session:
            user = await find_by_id(session, user_id)
            if user is None:
                return Failure(kind=FailureKind.USER_NOT_FOUND, message="User not found.")

            can_spin = user.last_spin_date != self.clock.today_string(now)
            return WheelStatus(
                can_spin=can_spin,
                next_spin_available_at=None if can_spin else self.clock.next_midnight(now),
                balance=int(user.points or 0),
                total_spins=int(user.total_spins or 0),
            )
