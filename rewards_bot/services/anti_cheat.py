# rewards_bot/services/anti_cheat.py
from __future__ import annotations

import hashlib
import hmac
import json
import logging
from dataclasses import dataclass
from datetime import datetime

from rewards_bot.services.results import Failure, FailureKind

log = logging.getLogger(__name__)

SCORE_PAYLOAD_TYPE = "arcade_score"
_REQUIRED_FIELDS = {"type", "score", "timestamp", "hash"}
_ALLOWED_FIELDS = _REQUIRED_FIELDS | {"durationMs"}


@dataclass(frozen=True, slots=True)
class ScoreClaim:
    score: int
    timestamp_ms: int
    integrity_hash: str
    duration_ms: int | None = None


def compute_score_hash(score: int, timestamp_ms: int, secret: str) -> str:
    """sha256 hex of score + secret + timestamp, the same recipe the mini-app uses."""
    return hashlib.sha256(f"{score}{secret}{timestamp_ms}".encode()).hexdigest()


def _strict_int(payload: dict, key: str) -> int:
    value = payload[key]
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer")
    return value


def parse_score_payload(raw: str) -> ScoreClaim:
    """
    Parses the mini-app's score message.
    Only the fixed arcade fields are accepted; anything else is rejected.
    """
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError("score payload is not valid JSON") from e

    if not isinstance(payload, dict):
        raise ValueError("score payload must be an object")

    keys = set(payload)
    missing = _REQUIRED_FIELDS - keys
    if missing:
        raise ValueError(f"missing fields: {', '.join(sorted(missing))}")
    unknown = keys - _ALLOWED_FIELDS
    if unknown:
        raise ValueError(f"unknown fields: {', '.join(sorted(unknown))}")
    if payload["type"] != SCORE_PAYLOAD_TYPE:
        raise ValueError(f"unsupported payload type: {payload['type']!r}")

    score = _strict_int(payload, "score")
    timestamp = _strict_int(payload, "timestamp")
    if score < 0:
        raise ValueError("score must be non-negative")
    if timestamp <= 0:
        raise ValueError("timestamp must be positive")

    digest = payload["hash"]
    if not isinstance(digest, str) or len(digest) != 64:
        raise ValueError("hash must be a 64-char hex string")

    duration = None
    if payload.get("durationMs") is not None:
        duration = _strict_int(payload, "durationMs")
        if duration <= 0:
            raise ValueError("durationMs must be positive")

    return ScoreClaim(score=score, timestamp_ms=timestamp, integrity_hash=digest.lower(), duration_ms=duration)


class AntiCheatVerifier:
    """
    Gate in front of the arcade ledger:
    integrity hash, then freshness, then plausible score rate.
    """

    def __init__(self, *, secret: str, max_age_seconds: int, max_score_per_second: float) -> None:
        self._secret = secret
        self.max_age_ms = max_age_seconds * 1000
        self.max_score_per_second = max_score_per_second

    def check(self, claim: ScoreClaim, *, now: datetime, user_id: int | None = None) -> Failure | None:
        expected = compute_score_hash(claim.score, claim.timestamp_ms, self._secret)
        if not hmac.compare_digest(expected, claim.integrity_hash.lower()):
            log.warning("Score hash mismatch user=%s score=%s", user_id, claim.score)
            return Failure(kind=FailureKind.INVALID_HASH, message="Score verification failed.")

        age_ms = int(now.timestamp() * 1000) - claim.timestamp_ms
        if age_ms < 0 or age_ms > self.max_age_ms:
            log.info("Stale score user=%s age_ms=%s", user_id, age_ms)
            return Failure(
                kind=FailureKind.EXPIRED_SCORE,
                message="Score timestamp is too old or in the future.",
                details={"ageMs": age_ms},
            )

        if claim.duration_ms:
            rate = claim.score / (claim.duration_ms / 1000)
            if rate > self.max_score_per_second:
                log.warning(
                    "Unrealistic score rate user=%s score=%s duration_ms=%s rate=%.2f",
                    user_id, claim.score, claim.duration_ms, rate,
                )
                return Failure(
                    kind=FailureKind.UNREALISTIC_SCORE,
                    message="Score rate is not plausible.",
                    details={"scorePerSecond": round(rate, 2)},
                )

        return None
