"""
Shared pytest fixtures for Sessiongate tests.

This module provides common fixtures including:
- Request/response builders for driving the session manager directly
- Redis mocks for the Redis storage backend
- A static configuration provider for the FastAPI app
"""

import os
import sys
from typing import Dict, List, Optional
from unittest.mock import AsyncMock

import pytest
from starlette.requests import Request
from starlette.responses import Response

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sessiongate.config.provider import APIConfig, SessionConfig, StorageConfig
from sessiongate.modules.lock import LockCoordinator, MemoryLockRecordStore
from sessiongate.modules.session import SessionManager
from sessiongate.modules.storage import MemoryProvider

COOKIE_NAME = "bdpan"
MAX_LIFETIME = 3600


# =============================================================================
# Request/Response Helpers
# =============================================================================

def make_request(cookies: Optional[Dict[str, str]] = None) -> Request:
    """Build a bare GET request carrying the given (already escaped) cookies."""
    headers = []
    if cookies:
        cookie_header = "; ".join(f"{name}={value}" for name, value in cookies.items())
        headers.append((b"cookie", cookie_header.encode("latin-1")))
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "raw_path": b"/",
        "query_string": b"",
        "headers": headers,
    }
    return Request(scope)


def set_cookie_headers(response: Response) -> List[str]:
    return response.headers.getlist("set-cookie")


def cookie_value(header: str) -> str:
    """Extract the raw value from a Set-Cookie header."""
    value = header.split(";", 1)[0].split("=", 1)[1]
    return value.strip('"')


class ManualClock:
    """Controllable time source for GC tests."""

    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StaticConfigProvider:
    """Config provider returning fixed values."""

    def __init__(
        self,
        session_dir: str,
        provider: str = "memory",
        lock_store_path: Optional[str] = None,
        redis_url: Optional[str] = None,
    ):
        self.session = SessionConfig(
            provider=provider,
            cookie_name=COOKIE_NAME,
            max_lifetime=MAX_LIFETIME,
            create_on_miss=True,
        )
        self.storage = StorageConfig(
            session_dir=session_dir,
            lock_store_path=lock_store_path,
            redis_url=redis_url,
        )

    def get_session_config(self) -> SessionConfig:
        return self.session

    def get_storage_config(self) -> StorageConfig:
        return self.storage

    def get_api_config(self) -> APIConfig:
        return APIConfig(port=8080, host="127.0.0.1", debug=False, log_level="INFO")


# =============================================================================
# Session Fixtures
# =============================================================================

@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def memory_provider(clock):
    return MemoryProvider(clock=clock)


@pytest.fixture
def manager(memory_provider):
    return SessionManager(memory_provider, COOKIE_NAME, MAX_LIFETIME)


@pytest.fixture
def records():
    return MemoryLockRecordStore()


@pytest.fixture
def coordinator(manager, records):
    return LockCoordinator(manager, records)


# =============================================================================
# Redis Mocking Infrastructure
# =============================================================================

@pytest.fixture
def mock_redis_with_data():
    """
    Redis mock with in-memory hash and set storage.

    This allows testing code that reads back what it writes.
    """
    storage = {}
    expirations = {}

    redis = AsyncMock()

    async def mock_hset(key, field, value):
        storage.setdefault(key, {})[field] = value
        return 1

    async def mock_hget(key, field):
        return storage.get(key, {}).get(field)

    async def mock_hdel(key, *fields):
        bucket = storage.get(key, {})
        removed = 0
        for field in fields:
            if field in bucket:
                del bucket[field]
                removed += 1
        return removed

    async def mock_delete(*keys):
        count = 0
        for key in keys:
            if key in storage:
                del storage[key]
                expirations.pop(key, None)
                count += 1
        return count

    async def mock_exists(*keys):
        return sum(1 for k in keys if k in storage)

    async def mock_expire(key, ttl):
        if key not in storage:
            return False
        expirations[key] = ttl
        return True

    async def mock_sadd(key, *members):
        bucket = storage.setdefault(key, set())
        before = len(bucket)
        bucket.update(members)
        return len(bucket) - before

    async def mock_srem(key, *members):
        bucket = storage.get(key, set())
        removed = len(bucket & set(members))
        bucket.difference_update(members)
        return removed

    async def mock_smembers(key):
        return set(storage.get(key, set()))

    redis.hset = mock_hset
    redis.hget = mock_hget
    redis.hdel = mock_hdel
    redis.delete = mock_delete
    redis.exists = mock_exists
    redis.expire = mock_expire
    redis.sadd = mock_sadd
    redis.srem = mock_srem
    redis.smembers = mock_smembers
    redis._storage = storage  # Expose for test assertions
    redis._expirations = expirations

    return redis
