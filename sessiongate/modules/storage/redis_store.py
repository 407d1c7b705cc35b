"""Redis-backed session provider."""

import json
import logging
from datetime import UTC, datetime
from typing import Any, Optional

from ..session.errors import SessionNotFoundError

logger = logging.getLogger(__name__)

ACTIVE_SESSIONS_KEY = "sessions:active"
# Keeps the hash alive while the session holds no values
CREATED_FIELD = "__created_at__"


def session_key(session_id: str) -> str:
    return f"session:{session_id}"


class RedisSession:
    """Session values stored as JSON fields of one Redis hash."""

    def __init__(self, provider: "RedisProvider", session_id: str):
        self._provider = provider
        self._session_id = session_id
        self._key = session_key(session_id)

    @property
    def session_id(self) -> str:
        return self._session_id

    async def set(self, key: str, value: Any) -> None:
        await self._provider.redis.hset(self._key, key, json.dumps(value))
        await self._provider.refresh(self._key)

    async def get(self, key: str) -> Optional[Any]:
        data = await self._provider.redis.hget(self._key, key)
        await self._provider.refresh(self._key)
        if data is None:
            return None
        return json.loads(data)

    async def delete(self, key: str) -> None:
        await self._provider.redis.hdel(self._key, key)
        await self._provider.refresh(self._key)


class RedisProvider:
    def __init__(self, redis_client, ttl: int, create_on_miss: bool = True):
        """
        Initialize Redis provider.

        Args:
            redis_client: Async Redis client (decode_responses=True)
            ttl: Key expiry in seconds, refreshed on every access
            create_on_miss: Create sessions on read miss instead of raising
        """
        self.redis = redis_client
        self.ttl = ttl
        self.create_on_miss = create_on_miss

    async def init(self, session_id: str) -> RedisSession:
        key = session_key(session_id)
        await self.redis.delete(key)
        await self.redis.hset(key, CREATED_FIELD, datetime.now(UTC).isoformat())
        await self.redis.expire(key, self.ttl)
        await self.redis.sadd(ACTIVE_SESSIONS_KEY, session_id)
        return RedisSession(self, session_id)

    async def read(self, session_id: str) -> RedisSession:
        if await self.redis.exists(session_key(session_id)):
            return RedisSession(self, session_id)
        if not self.create_on_miss:
            raise SessionNotFoundError(session_id)
        return await self.init(session_id)

    async def destroy(self, session_id: str) -> None:
        await self.redis.delete(session_key(session_id))
        await self.redis.srem(ACTIVE_SESSIONS_KEY, session_id)

    async def gc(self, max_lifetime: int) -> int:
        """
        Prune the active index.

        Redis expires the hashes themselves; this only drops index
        entries whose hash is gone.
        """
        session_ids = await self.redis.smembers(ACTIVE_SESSIONS_KEY)
        cleaned = 0

        for session_id in session_ids:
            if not await self.redis.exists(session_key(session_id)):
                await self.redis.srem(ACTIVE_SESSIONS_KEY, session_id)
                cleaned += 1

        return cleaned

    async def refresh(self, key: str) -> None:
        await self.redis.expire(key, self.ttl)
