"""
Storage Module - Black Box Interface

Purpose: Concrete session storage backends
Interface: MemoryProvider, FileProvider, RedisProvider, build_registry()
Hidden: Redis specifics, file layout, eviction order, serialization

Every provider satisfies the session Provider protocol, so any of them can
be selected by name at startup without affecting other modules.
"""

import os
from typing import Optional

import redis.asyncio as redis

from .factory import build_registry
from .file import FileProvider
from .memory import MemoryProvider
from .redis_store import RedisProvider


class StorageModule:
    """Owns the shared Redis connection."""

    def __init__(self, connection_url: Optional[str] = None):
        """Initialize storage with connection URL."""
        self.url = connection_url or os.getenv("REDIS_URL", "redis://localhost:6379/0")
        self._client: Optional[redis.Redis] = None

    async def connect(self) -> redis.Redis:
        """Get storage connection."""
        if not self._client:
            self._client = redis.from_url(self.url, decode_responses=True)
        return self._client

    async def disconnect(self):
        """Close storage connection."""
        if self._client:
            await self._client.aclose()
            self._client = None


__all__ = [
    "FileProvider",
    "MemoryProvider",
    "RedisProvider",
    "StorageModule",
    "build_registry",
]
