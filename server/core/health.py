"""Health check utilities for the /health endpoint.

Reports store and shared cache reachability independently, plus the
resident L1 entry count.
"""
import time
from typing import Dict, Any, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from core.database import Database
    from core.memory_cache import MemoryCache
    from core.shared_cache import SharedCache

# Module-level startup time tracking
_startup_time: float = 0.0


def set_startup_time() -> None:
    """Record the application startup time. Call once during lifespan startup."""
    global _startup_time
    _startup_time = time.time()


def get_uptime() -> float:
    """Get uptime in seconds since startup."""
    return time.time() - _startup_time if _startup_time else 0.0


async def check_database(database: "Database") -> str:
    return "up" if await database.ping() else "down"


async def check_shared_cache(shared_cache: Optional["SharedCache"]) -> str:
    if shared_cache is None:
        return "disabled"
    return "up" if await shared_cache.ping() else "down"


async def get_health_status(
    database: "Database",
    memory_cache: "MemoryCache",
    shared_cache: Optional["SharedCache"],
) -> Dict[str, Any]:
    """Liveness payload.

    "healthy" needs the store up and the shared cache up or disabled;
    anything else is "degraded" (the service still answers from the store).
    """
    db_status = await check_database(database)
    shared_status = await check_shared_cache(shared_cache)

    healthy = db_status == "up" and shared_status in ("up", "disabled")

    return {
        "status": "healthy" if healthy else "degraded",
        "database": db_status,
        "shared_cache": shared_status,
        "memory_cache_size": memory_cache.size(),
        "store_backend": database.backend,
        "uptime_seconds": round(get_uptime(), 1),
    }
