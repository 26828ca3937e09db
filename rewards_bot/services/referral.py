# rewards_bot/services/referral.py
from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from rewards_bot.database.models import User

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ReferralCredit:
    referrer_user_id: int
    referrer_telegram_id: int
    bonus: int


class ReferralCreditor:
    """
    One-time bonus to the inviting user on the invitee's first spin.

    Paid whenever the first spin happens, whatever the prize. The
    `referral_bonus_paid` flag is flipped with a conditional UPDATE in the
    same transaction as the referrer's credit, so a replayed or retried
    spin can never pay twice.
    """

    def __init__(self, bonus_points: int) -> None:
        self.bonus_points = bonus_points

    async def credit_first_spin(
        self,
        session: AsyncSession,
        *,
        invitee_id: int,
        spins_before: int,
    ) -> ReferralCredit | None:
        if spins_before != 0 or self.bonus_points <= 0:
            return None

        referrer_id = await session.scalar(
            select(User.referred_by_user_id).where(User.id == invitee_id)
        )
        if referrer_id is None:
            return None

        flagged = await session.execute(
            update(User)
            .where(
                User.id == invitee_id,
                User.referral_bonus_paid.is_(False),
                User.referred_by_user_id == referrer_id,
            )
            .values(referral_bonus_paid=True)
            .execution_options(synchronize_session=False)
        )
        if flagged.rowcount != 1:
            return None

        credited = await session.execute(
            update(User)
            .where(User.id == referrer_id)
            .values(points=User.points + self.bonus_points)
            .execution_options(synchronize_session=False)
        )
        if credited.rowcount != 1:
            # referrer row vanished; keep the flag so the bonus is not retried forever
            log.warning("Referral bonus skipped: referrer %s missing (invitee=%s)", referrer_id, invitee_id)
            return None

        referrer_tg = await session.scalar(select(User.telegram_id).where(User.id == referrer_id))
        log.info("Referral bonus +%s -> referrer=%s invitee=%s", self.bonus_points, referrer_id, invitee_id)
        return ReferralCredit(
            referrer_user_id=referrer_id,
            referrer_telegram_id=int(referrer_tg),
            bonus=self.bonus_points,
        )
