"""Read-through, write-around item access over L1, L2 and the durable store.

Read path, in order, never skipping a stage:
    1. L1 (in-process)          -> source "memory"
    2. L2 (shared, if present)  -> source "shared", backfills L1
    3. durable store            -> source "store", backfills L1 and L2

Writes go to the store first, then populate L1 and L2. Cache population is
best effort: once the insert has committed, nothing after it can fail the call.

Caches are never invalidated across processes. Another process's write is
invisible here until the local entry expires, and a read miss racing a write
for the same key may repopulate L1 with the value it fetched. Both windows are
bounded by the TTL.
"""

from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from core.database import Database
from core.exceptions import ItemNotFoundError, SharedCacheUnavailableError, ValidationError
from core.logging import get_logger
from core.memory_cache import MemoryCache
from core.metrics import CacheMetrics
from core.shared_cache import SharedCache
from models.item import ItemLookup, ItemRead

logger = get_logger(__name__)


def cache_key(item_id: int) -> str:
    return str(item_id)


class ItemService:
    """Coordinates the cache tiers and the store for one item operation."""

    def __init__(
        self,
        memory_cache: MemoryCache,
        database: Database,
        metrics: CacheMetrics,
        shared_cache: Optional[SharedCache] = None,
        shared_cache_ttl: int = 300,
    ):
        self.memory_cache = memory_cache
        self.database = database
        self.metrics = metrics
        self.shared_cache = shared_cache
        self.shared_cache_ttl = shared_cache_ttl

    async def read_item(self, item_id: int) -> ItemLookup:
        """Return the item and the tier that answered.

        Raises ItemNotFoundError when the store has no such id and
        StoreUnavailableError when the store cannot be queried.
        """
        key = cache_key(item_id)

        item = self.memory_cache.get(key)
        if item is not None:
            self.metrics.record_hit("memory")
            return ItemLookup(source="memory", item=item)

        item = await self._shared_get(key, item_id)
        if item is not None:
            self._populate(key, item)
            self.metrics.record_hit("shared")
            return ItemLookup(source="shared", item=item)

        self.metrics.record_miss()
        item = await self.database.get_item(item_id)
        if item is None:
            raise ItemNotFoundError(item_id)

        self._populate(key, item)
        await self._shared_set(key, item)
        return ItemLookup(source="store", item=item)

    async def create_item(self, name: Optional[str], value: Optional[str] = None) -> ItemRead:
        """Insert an item, then warm both cache tiers with it."""
        if not isinstance(name, str) or not name:
            raise ValidationError("name", "must be a non-empty string")
        if value is not None and not isinstance(value, str):
            raise ValidationError("value", "must be a string")

        item = await self.database.create_item(name, value)
        logger.info("Item created", item_id=item.id)

        key = cache_key(item.id)
        self._populate(key, item)
        await self._shared_set(key, item)
        return item

    def _populate(self, key: str, item: ItemRead) -> None:
        try:
            self.memory_cache.set(key, item)
        except Exception as e:
            logger.warning("Memory cache populate failed", cache_key=key, error=str(e))

    async def _shared_get(self, key: str, item_id: int) -> Optional[ItemRead]:
        if self.shared_cache is None:
            return None
        try:
            payload = await self.shared_cache.get(key)
        except SharedCacheUnavailableError as e:
            self.metrics.record_shared_cache_error("get")
            logger.debug("Shared cache read degraded to miss", cache_key=key, error=str(e))
            return None
        if payload is None:
            return None
        try:
            item = ItemRead.model_validate_json(payload)
        except PydanticValidationError as e:
            logger.warning("Undecodable shared cache entry ignored", cache_key=key, error=str(e))
            return None
        if item.id != item_id:
            logger.warning("Mismatched shared cache entry ignored", cache_key=key, cached_id=item.id)
            return None
        return item

    async def _shared_set(self, key: str, item: ItemRead) -> None:
        if self.shared_cache is None:
            return
        try:
            await self.shared_cache.set(key, item.model_dump_json(), self.shared_cache_ttl)
        except SharedCacheUnavailableError as e:
            self.metrics.record_shared_cache_error("set")
            logger.warning("Shared cache populate skipped", cache_key=key, error=str(e))
