"""
Redis-backed stores.

WHAT: Implements the key-value activity store and the auth-event store on
top of ``redis.asyncio``.

HOW: Both wrap an injected async Redis client. They do not catch errors;
failure policy belongs to the caller (fail-open for session checks,
fail-closed for step-up checks).
"""

import time
from typing import Optional

import redis.asyncio as aioredis


class RedisKeyValueStore:
    """
    Key-value store with TTL backed by Redis.

    Example:
        store = RedisKeyValueStore(await get_redis())
        await store.set("session:activity:7", "1700000000000", 86400)
    """

    def __init__(self, redis_client: aioredis.Redis):
        self._redis = redis_client

    async def get(self, key: str) -> Optional[str]:
        return await self._redis.get(key)

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        await self._redis.set(key, value, ex=ttl_seconds)

    async def delete(self, key: str) -> None:
        await self._redis.delete(key)


class RedisAuthEventStore:
    """
    Last-authentication timestamps backed by Redis.

    WHAT: Stores the epoch-millis of each user's last successful credential
    check under ``auth:last:{user_id}``.

    WHY: The step-up gate needs a fast lookup on every sensitive request;
    the login and re-authenticate flows call ``record_authentication``.
    """

    key_prefix = "auth:last"

    def __init__(self, redis_client: aioredis.Redis, ttl_seconds: int = 30 * 24 * 60 * 60):
        self._redis = redis_client
        self._ttl_seconds = ttl_seconds

    def _key(self, user_id: int) -> str:
        return f"{self.key_prefix}:{user_id}"

    async def last_auth_timestamp(self, user_id: int) -> Optional[int]:
        value = await self._redis.get(self._key(user_id))
        if value is None:
            return None
        return int(value)

    async def record_authentication(self, user_id: int, at_ms: Optional[int] = None) -> int:
        """
        Record a successful authentication.

        Args:
            user_id: Authenticated user
            at_ms: Authentication time (defaults to now)

        Returns:
            The stored timestamp in epoch milliseconds
        """
        timestamp = at_ms if at_ms is not None else int(time.time() * 1000)
        await self._redis.set(self._key(user_id), str(timestamp), ex=self._ttl_seconds)
        return timestamp
