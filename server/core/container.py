"""Dependency injection container for the application."""

from dependency_injector import containers, providers

from core.config import Settings
from core.database import Database
from core.memory_cache import MemoryCache
from core.metrics import CacheMetrics
from core.shared_cache import create_shared_cache
from services.item_service import ItemService


class Container(containers.DeclarativeContainer):
    """Application dependency injection container."""

    # Settings
    settings = providers.Singleton(
        Settings,
    )

    # Durable store (primary or embedded, chosen in Database.startup)
    database = providers.Singleton(
        Database,
        settings=settings
    )

    # L1: one per process
    memory_cache = providers.Singleton(
        MemoryCache,
        max_size=settings.provided.cache_max,
        ttl=settings.provided.cache_ttl_seconds,
    )

    # L2: None when REDIS_URL is unset
    shared_cache = providers.Singleton(
        create_shared_cache,
        settings=settings
    )

    metrics = providers.Singleton(
        CacheMetrics,
    )

    # Orchestrator
    item_service = providers.Singleton(
        ItemService,
        memory_cache=memory_cache,
        database=database,
        metrics=metrics,
        shared_cache=shared_cache,
        shared_cache_ttl=settings.provided.shared_cache_ttl_seconds,
    )


# Global container instance
container = Container()
