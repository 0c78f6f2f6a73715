"""Shared (L2) cache adapter.

The orchestrator only sees the SharedCache interface. RedisSharedCache is the
one network implementation; every driver-level failure it hits is re-raised
as SharedCacheUnavailableError so the caller can degrade to a miss.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from core.config import Settings
from core.exceptions import SharedCacheUnavailableError
from core.logging import get_logger, log_cache_operation

logger = get_logger(__name__)

# Errors that mean "L2 is unreachable or slow", never "bad request"
UNAVAILABLE_ERRORS = (RedisError, OSError, asyncio.TimeoutError)


class SharedCache(ABC):
    """Out-of-process key -> payload store with per-entry expiry."""

    async def startup(self) -> None:
        """Open connections. Default: nothing to do."""

    async def shutdown(self) -> None:
        """Close connections. Default: nothing to do."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the stored payload or None. Raises SharedCacheUnavailableError."""

    @abstractmethod
    async def set(self, key: str, payload: str, ttl_seconds: int) -> None:
        """Store a payload with expiry. Raises SharedCacheUnavailableError."""

    @abstractmethod
    async def ping(self) -> bool:
        """Connectivity probe for health checks. Never raises."""


class RedisSharedCache(SharedCache):
    """Redis-backed shared cache."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.redis: Optional[redis.Redis] = None

    async def startup(self) -> None:
        """Create the client and probe it once.

        A failed probe is only logged: the client reconnects on demand and
        each later call degrades on its own.
        """
        self.redis = redis.from_url(
            self.settings.redis_url,
            encoding="utf-8",
            decode_responses=True,
            socket_timeout=self.settings.redis_socket_timeout,
            socket_connect_timeout=self.settings.redis_connect_timeout,
        )
        if await self.ping():
            logger.info("Shared cache connected", url=self.settings.redis_url)
        else:
            logger.warning("Shared cache unreachable at startup, reads will fall through",
                           url=self.settings.redis_url)

    async def shutdown(self) -> None:
        if self.redis:
            await self.redis.aclose()
            self.redis = None
            logger.info("Shared cache connections closed")

    def _client(self) -> redis.Redis:
        if self.redis is None:
            raise SharedCacheUnavailableError("Shared cache not started")
        return self.redis

    async def get(self, key: str) -> Optional[str]:
        client = self._client()
        try:
            value = await client.get(key)
        except UNAVAILABLE_ERRORS as e:
            raise SharedCacheUnavailableError(f"GET {key} failed: {e}") from e
        log_cache_operation(logger, "shared", "get", key, hit=value is not None)
        return value

    async def set(self, key: str, payload: str, ttl_seconds: int) -> None:
        client = self._client()
        try:
            await client.setex(key, ttl_seconds, payload)
        except UNAVAILABLE_ERRORS as e:
            raise SharedCacheUnavailableError(f"SETEX {key} failed: {e}") from e
        log_cache_operation(logger, "shared", "set", key, ttl=ttl_seconds)

    async def ping(self) -> bool:
        if self.redis is None:
            return False
        try:
            return bool(await self.redis.ping())
        except UNAVAILABLE_ERRORS as e:
            logger.debug("Shared cache ping failed", error=str(e))
            return False


def create_shared_cache(settings: Settings) -> Optional[SharedCache]:
    """Build the L2 adapter, or None when no endpoint is configured."""
    if not settings.shared_cache_enabled:
        return None
    return RedisSharedCache(settings)
