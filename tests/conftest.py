"""
Shared fixtures for the item cache tests.
"""

from typing import Dict, Optional, Tuple

import pytest
import pytest_asyncio

from core.config import Settings
from core.database import Database
from core.exceptions import SharedCacheUnavailableError
from core.logging import configure_logging
from core.memory_cache import MemoryCache
from core.metrics import CacheMetrics
from core.shared_cache import SharedCache
from services.item_service import ItemService


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSharedCache(SharedCache):
    """Dict-backed stand-in for Redis that records every call."""

    def __init__(self):
        self.data: Dict[str, Tuple[str, int]] = {}
        self.gets = []
        self.sets = []

    async def get(self, key: str) -> Optional[str]:
        self.gets.append(key)
        entry = self.data.get(key)
        return entry[0] if entry else None

    async def set(self, key: str, payload: str, ttl_seconds: int) -> None:
        self.sets.append((key, ttl_seconds))
        self.data[key] = (payload, ttl_seconds)

    async def ping(self) -> bool:
        return True


class UnreachableSharedCache(SharedCache):
    """Shared cache whose every call times out."""

    def __init__(self):
        self.calls = 0

    async def get(self, key: str) -> Optional[str]:
        self.calls += 1
        raise SharedCacheUnavailableError(f"GET {key} failed: Timeout reading from socket")

    async def set(self, key: str, payload: str, ttl_seconds: int) -> None:
        self.calls += 1
        raise SharedCacheUnavailableError(f"SETEX {key} failed: Connection refused")

    async def ping(self) -> bool:
        return False


def make_settings(**overrides) -> Settings:
    """Settings isolated from the developer's environment and .env file."""
    values = {
        "database_url": None,
        "database_fallback_enabled": True,
        "database_fallback_url": "sqlite+aiosqlite:///:memory:",
        "redis_url": None,
        "cache_max": 100,
        "cache_ttl": 300000,
        "log_level": "WARNING",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


configure_logging(make_settings())


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def memory_cache(clock):
    return MemoryCache(max_size=3, ttl=60.0, clock=clock)


@pytest.fixture
def shared_cache():
    return FakeSharedCache()


@pytest.fixture
def metrics():
    return CacheMetrics()


@pytest_asyncio.fixture
async def database(settings):
    """Embedded SQLite store, fresh per test."""
    db = Database(settings)
    await db.startup()
    yield db
    await db.shutdown()


@pytest.fixture
def item_service(memory_cache, database, metrics, shared_cache):
    return ItemService(
        memory_cache=memory_cache,
        database=database,
        metrics=metrics,
        shared_cache=shared_cache,
        shared_cache_ttl=300,
    )
