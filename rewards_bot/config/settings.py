# rewards_bot/config/settings.py
from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv


def _require(env: Mapping[str, str], key: str) -> str:
    v = env.get(key)
    if v is None or not v.strip():
        raise RuntimeError(f"Missing required environment variable: {key}")
    return v.strip()


def _to_int(value: str, key_name: str) -> int:
    try:
        return int(value)
    except ValueError as e:
        raise RuntimeError(f"Invalid integer for {key_name}: {value!r}") from e


def _to_float(value: str, key_name: str) -> float:
    try:
        return float(value)
    except ValueError as e:
        raise RuntimeError(f"Invalid number for {key_name}: {value!r}") from e


def _int_env(env: Mapping[str, str], key: str, default: int) -> int:
    raw = (env.get(key) or "").strip()
    return _to_int(raw, key) if raw else default


def _float_env(env: Mapping[str, str], key: str, default: float) -> float:
    raw = (env.get(key) or "").strip()
    return _to_float(raw, key) if raw else default


def _parse_int_list(raw: str | None, key_name: str) -> list[int]:
    """
    Parses comma/space/newline separated ints.
    Accepts:
      "951258732"
      "951258732,123"
      "951258732 123"
      "[951258732, 123]"  (brackets ignored)
    """
    if not raw:
        return []

    cleaned = raw.strip().strip("[](){}").strip()
    if not cleaned:
        return []

    out: list[int] = []
    for p in re.split(r"[,\s]+", cleaned):
        p2 = p.strip().strip("'\"")
        if not p2:
            continue
        out.append(_to_int(p2, key_name))
    return out


@dataclass(frozen=True, slots=True)
class Settings:
    # --- required ---
    bot_token: str
    bot_username: str  # required for referral deep links
    score_secret: str  # shared with the arcade mini-app for score hashes

    # --- storage ---
    database_url: str = "sqlite+aiosqlite:///./rewards.db"
    redis_url: str = "redis://localhost:6379/0"

    # --- security / staff ---
    root_admin_ids: tuple[int, ...] = ()
    geo_bypass_ids: tuple[int, ...] = ()
    owner_chat_id: Optional[int] = None

    # --- time ---
    timezone: str = "Europe/Kyiv"

    # --- environment ---
    environment: str = "production"  # production | development

    # --- wheel ---
    spin_radius_meters: float = 100.0
    spin_lock_ttl_seconds: int = 10
    idempotency_ttl_seconds: int = 24 * 60 * 60
    referral_bonus_points: int = 10

    # --- redemption ---
    redeem_cost_points: int = 100
    redeem_code_ttl_minutes: int = 15

    # --- games ---
    ttt_win_points: int = 2
    ttt_max_wins_per_day: int = 5
    arcade_daily_points_cap: int = 25
    arcade_session_points_cap: int = 5
    arcade_sessions_per_day: int = 5
    arcade_points_divisor: int = 100
    max_score_per_second: float = 10.0
    score_max_age_seconds: int = 300

    @property
    def is_dev(self) -> bool:
        return self.environment.lower() in {"dev", "development", "local"}

    @property
    def ttt_daily_points_cap(self) -> int:
        return self.ttt_win_points * self.ttt_max_wins_per_day

    @classmethod
    def load(cls, env: Mapping[str, str] | None = None) -> "Settings":
        """
        Loads from process env (and .env if present).
        Fails fast for required fields.
        """
        if env is None:
            load_dotenv()
            env = os.environ

        owner_raw = (env.get("OWNER_CHAT_ID") or "").strip()

        return cls(
            bot_token=_require(env, "BOT_TOKEN"),
            bot_username=_require(env, "BOT_USERNAME"),
            score_secret=_require(env, "SCORE_SECRET"),
            database_url=(env.get("DATABASE_URL") or "sqlite+aiosqlite:///./rewards.db").strip(),
            redis_url=(env.get("REDIS_URL") or "redis://localhost:6379/0").strip(),
            root_admin_ids=tuple(_parse_int_list(env.get("ROOT_ADMIN_IDS"), "ROOT_ADMIN_IDS")),
            geo_bypass_ids=tuple(_parse_int_list(env.get("GEO_BYPASS_IDS"), "GEO_BYPASS_IDS")),
            owner_chat_id=_to_int(owner_raw, "OWNER_CHAT_ID") if owner_raw else None,
            timezone=(env.get("TIMEZONE") or "Europe/Kyiv").strip() or "Europe/Kyiv",
            environment=(env.get("ENVIRONMENT") or "production").strip() or "production",
            spin_radius_meters=_float_env(env, "SPIN_RADIUS_METERS", 100.0),
            spin_lock_ttl_seconds=_int_env(env, "SPIN_LOCK_TTL_SECONDS", 10),
            idempotency_ttl_seconds=_int_env(env, "IDEMPOTENCY_TTL_SECONDS", 24 * 60 * 60),
            referral_bonus_points=_int_env(env, "REFERRAL_BONUS_POINTS", 10),
            redeem_cost_points=_int_env(env, "REDEEM_COST_POINTS", 100),
            redeem_code_ttl_minutes=_int_env(env, "REDEEM_CODE_TTL_MINUTES", 15),
            ttt_win_points=_int_env(env, "TTT_WIN_POINTS", 2),
            ttt_max_wins_per_day=_int_env(env, "TTT_MAX_WINS_PER_DAY", 5),
            arcade_daily_points_cap=_int_env(env, "ARCADE_DAILY_POINTS_CAP", 25),
            arcade_session_points_cap=_int_env(env, "ARCADE_SESSION_POINTS_CAP", 5),
            arcade_sessions_per_day=_int_env(env, "ARCADE_SESSIONS_PER_DAY", 5),
            arcade_points_divisor=_int_env(env, "ARCADE_POINTS_DIVISOR", 100),
            max_score_per_second=_float_env(env, "MAX_SCORE_PER_SECOND", 10.0),
            score_max_age_seconds=_int_env(env, "SCORE_MAX_AGE_SECONDS", 300),
        )
