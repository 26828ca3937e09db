# rewards_bot/services/coordination.py
"""Per-user locks, code claims and idempotency cache backed by Redis."""

from __future__ import annotations

import json
import logging
import secrets
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Mapping

from redis.asyncio import Redis
from redis.exceptions import RedisError

log = logging.getLogger(__name__)

# Deletes KEYS[1] only while it still holds ARGV[1]
RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""


class CoordinationStore:
    """
    Shared key-value coordination for all bot processes.

    Locks and claims are SET NX EX entries: non-blocking, self-expiring
    after `ttl`, and only deleted by the owner that set them (the
    compare-and-delete runs server-side in one script).
    Idempotency entries are write-once JSON blobs kept for
    `idempotency_ttl_seconds`.
    """

    def __init__(self, redis_client: Redis, *, idempotency_ttl_seconds: int = 24 * 60 * 60) -> None:
        self._redis = redis_client
        self._idempotency_ttl = idempotency_ttl_seconds

    @staticmethod
    def lock_key(scope: str, user_id: int) -> str:
        return f"lock:{scope}:{user_id}"

    @staticmethod
    def idempotency_key(scope: str, user_id: int, key: str) -> str:
        return f"idem:{scope}:{user_id}:{key}"

    @staticmethod
    def code_key(code: str) -> str:
        return f"redeem_code:{code}"

    @staticmethod
    def score_key(integrity_hash: str) -> str:
        return f"score:{integrity_hash}"

    async def claim(self, key: str, owner: str, ttl_seconds: int) -> bool:
        """Atomically takes `key` for `owner`; False when it is already taken."""
        taken = await self._redis.set(key, owner, nx=True, ex=ttl_seconds)
        return bool(taken)

    async def release(self, key: str, owner: str) -> bool:
        released = await self._redis.eval(RELEASE_SCRIPT, 1, key, owner)
        if not released:
            # expired and possibly taken by another request
            log.warning("Key %s no longer owned at release", key)
            return False
        return True

    async def try_lock(self, key: str, ttl_seconds: int) -> str | None:
        """Returns the lock token when acquired, None when someone else holds it."""
        token = secrets.token_hex(16)
        return token if await self.claim(key, token, ttl_seconds) else None

    @asynccontextmanager
    async def hold(self, key: str, ttl_seconds: int) -> AsyncIterator[bool]:
        """
        Scoped, fail-fast lock. Yields whether it was acquired and
        releases on every exit path.
        """
        token = await self.try_lock(key, ttl_seconds)
        try:
            yield token is not None
        finally:
            if token is not None:
                try:
                    await self.release(key, token)
                except RedisError:
                    # the TTL frees it; the guarded work already finished
                    log.warning("Could not release lock %s", key, exc_info=True)

    async def idempotency_get(self, scope: str, user_id: int, key: str) -> dict[str, Any] | None:
        raw = await self._redis.get(self.idempotency_key(scope, user_id, key))
        if not raw:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            log.warning("Dropping undecodable idempotency entry scope=%s user=%s", scope, user_id)
            return None

    async def idempotency_set(self, scope: str, user_id: int, key: str, payload: Mapping[str, Any]) -> bool:
        """Stores the first result only; later writes for the same key are ignored."""
        stored = await self._redis.set(
            self.idempotency_key(scope, user_id, key),
            json.dumps(dict(payload), sort_keys=True),
            nx=True,
            ex=self._idempotency_ttl,
        )
        return bool(stored)
