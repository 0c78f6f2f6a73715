"""In-process bounded cache with LRU eviction and lazy TTL expiry.

Recency is kept in a doubly-linked list with sentinel head/tail nodes and a
key -> node dict, so get/set/evict are all O(1). The node right after the head
is the least-recently-used entry; the node right before the tail is the most
recently used one.

Expiry is lazy: an expired entry stays resident (and is counted by size())
until a get() on its key finds it stale and unlinks it.
"""

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from core.logging import get_logger, log_cache_operation

logger = get_logger(__name__)


@dataclass(eq=False)
class CacheEntry:
    """One resident L1 entry, also a node of the recency list."""

    key: str
    value: Any
    inserted_at: float
    expires_at: float
    prev: Optional["CacheEntry"] = None
    next: Optional["CacheEntry"] = None

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class MemoryCache:
    """Thread-safe LRU + TTL cache for the per-process L1 tier.

    A single lock guards both the map and the list. Nothing inside the lock
    awaits or does I/O, so it is safe to call from coroutines and threads alike.
    """

    def __init__(self, max_size: int = 100, ttl: float = 300.0,
                 clock: Callable[[], float] = time.monotonic):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        if ttl <= 0:
            raise ValueError("ttl must be positive")

        self.max_size = max_size
        self.default_ttl = ttl
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: Dict[str, CacheEntry] = {}

        # Sentinels: head.next is LRU, tail.prev is MRU
        self._head = CacheEntry(key="", value=None, inserted_at=0.0, expires_at=0.0)
        self._tail = CacheEntry(key="", value=None, inserted_at=0.0, expires_at=0.0)
        self._head.next = self._tail
        self._tail.prev = self._head

        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._expirations = 0

    # ------------------------------------------------------------------
    # Linked list primitives (caller holds the lock)
    # ------------------------------------------------------------------

    def _unlink(self, entry: CacheEntry) -> None:
        entry.prev.next = entry.next
        entry.next.prev = entry.prev
        entry.prev = entry.next = None

    def _append(self, entry: CacheEntry) -> None:
        last = self._tail.prev
        last.next = entry
        entry.prev = last
        entry.next = self._tail
        self._tail.prev = entry

    def _evict_lru(self) -> CacheEntry:
        victim = self._head.next
        self._unlink(victim)
        del self._entries[victim.key]
        self._evictions += 1
        return victim

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None on miss or expiry.

        A hit promotes the entry to most-recently-used.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                hit = False
            elif entry.is_expired(self._clock()):
                self._unlink(entry)
                del self._entries[key]
                self._expirations += 1
                self._misses += 1
                entry = None
                hit = False
            else:
                self._unlink(entry)
                self._append(entry)
                self._hits += 1
                hit = True

        log_cache_operation(logger, "memory", "get", key, hit=hit)
        return entry.value if entry is not None else None

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Insert or overwrite an entry, resetting its recency and expiry."""
        ttl = self.default_ttl if ttl is None else ttl
        evicted = None

        with self._lock:
            now = self._clock()
            existing = self._entries.get(key)
            if existing is not None:
                self._unlink(existing)
                existing.value = value
                existing.inserted_at = now
                existing.expires_at = now + ttl
                self._append(existing)
            else:
                if len(self._entries) >= self.max_size:
                    evicted = self._evict_lru().key
                entry = CacheEntry(key=key, value=value, inserted_at=now, expires_at=now + ttl)
                self._entries[key] = entry
                self._append(entry)

        if evicted is not None:
            log_cache_operation(logger, "memory", "evict", evicted, reason="capacity")
        log_cache_operation(logger, "memory", "set", key, ttl=ttl)

    def delete(self, key: str) -> bool:
        """Remove an entry. Returns True if it was resident."""
        with self._lock:
            entry = self._entries.pop(key, None)
            if entry is None:
                return False
            self._unlink(entry)
            return True

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._head.next = self._tail
            self._tail.prev = self._head

    def size(self) -> int:
        """Resident entry count, including expired entries not yet purged."""
        with self._lock:
            return len(self._entries)

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, key: str) -> bool:
        """Residency check; does not touch recency or expiry."""
        with self._lock:
            return key in self._entries

    def keys(self) -> List[str]:
        """Resident keys from least to most recently used."""
        with self._lock:
            result = []
            node = self._head.next
            while node is not self._tail:
                result.append(node.key)
                node = node.next
            return result

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {
                "size": len(self._entries),
                "max_size": self.max_size,
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
                "expirations": self._expirations,
            }
