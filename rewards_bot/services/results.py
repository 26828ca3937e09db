# rewards_bot/services/results.py
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping


class FailureKind(str, enum.Enum):
    CONCURRENCY_BUSY = "ConcurrencyBusy"
    COOLDOWN = "Cooldown"
    OUT_OF_RANGE = "OutOfRange"
    NO_LOCATION = "NoLocation"
    INSUFFICIENT_POINTS = "InsufficientPoints"
    ACTIVE_CODE_EXISTS = "ActiveCodeExists"
    CODE_GENERATION_FAILED = "CodeGenerationFailed"
    INVALID_HASH = "InvalidHash"
    EXPIRED_SCORE = "ExpiredScore"
    UNREALISTIC_SCORE = "UnrealisticScore"
    DUPLICATE_SCORE = "DuplicateScore"
    USER_NOT_FOUND = "UserNotFound"
    # code verification (staff flow)
    NOT_FOUND = "NotFound"
    EXPIRED = "Expired"
    ALREADY_USED = "AlreadyUsed"


@dataclass(frozen=True, slots=True)
class Failure:
    """Expected business rejection. Callers map `kind` to a reply."""
    kind: FailureKind
    message: str
    details: Mapping[str, Any] = field(default_factory=dict)

    ok = False


class RewardsUnavailable(RuntimeError):
    """Store or coordination backend failed; the request did not complete."""


@dataclass(frozen=True, slots=True)
class SpinSuccess:
    prize_value: int
    prize_label: str
    new_balance: int
    next_spin_available_at: datetime
    referral_bonus_paid: bool = False

    ok = True

    def to_payload(self) -> dict[str, Any]:
        return {
            "prizeValue": self.prize_value,
            "prizeLabel": self.prize_label,
            "newBalance": self.new_balance,
            "nextSpinAvailableAt": self.next_spin_available_at.isoformat(),
            "referralBonusPaid": self.referral_bonus_paid,
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "SpinSuccess":
        return cls(
            prize_value=int(payload["prizeValue"]),
            prize_label=str(payload["prizeLabel"]),
            new_balance=int(payload["newBalance"]),
            next_spin_available_at=datetime.fromisoformat(payload["nextSpinAvailableAt"]),
            referral_bonus_paid=bool(payload.get("referralBonusPaid", False)),
        )


@dataclass(frozen=True, slots=True)
class RedeemSuccess:
    code: str
    expires_at: datetime
    new_balance: int

    ok = True


@dataclass(frozen=True, slots=True)
class VerifySuccess:
    code: str
    user_id: int
    telegram_id: int
    points_spent: int

    ok = True


@dataclass(frozen=True, slots=True)
class ScoreAward:
    points_awarded: int
    scoring_sessions_left_today: int
    limit_reached: bool = False

    ok = True


@dataclass(frozen=True, slots=True)
class CreditResult:
    requested: int
    granted: int
    new_balance: int

    ok = True


@dataclass(frozen=True, slots=True)
class WheelStatus:
    can_spin: bool
    next_spin_available_at: datetime | None
    balance: int
    total_spins: int
