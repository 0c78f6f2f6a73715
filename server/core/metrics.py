"""Cache hit/miss counters exported in Prometheus text format."""

from typing import Optional

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Counter, generate_latest

HIT_TIERS = ("memory", "shared")


class CacheMetrics:
    """Counters for the read path.

    Each instance owns its registry; nothing is registered globally.
    """

    content_type = CONTENT_TYPE_LATEST

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()
        self.cache_hits = Counter(
            "cache_hits",
            "Reads answered by a cache tier",
            ["tier"],
            registry=self.registry
        )
        self.cache_misses = Counter(
            "cache_misses",
            "Reads that fell through to the durable store",
            registry=self.registry
        )
        self.shared_cache_errors = Counter(
            "shared_cache_errors",
            "Shared cache calls that failed and were degraded",
            ["operation"],
            registry=self.registry
        )
        # Export zero-valued series before the first read
        for tier in HIT_TIERS:
            self.cache_hits.labels(tier=tier)

    def record_hit(self, tier: str) -> None:
        self.cache_hits.labels(tier=tier).inc()

    def record_miss(self) -> None:
        self.cache_misses.inc()

    def record_shared_cache_error(self, operation: str) -> None:
        self.shared_cache_errors.labels(operation=operation).inc()

    def _sample(self, name: str, labels: Optional[dict] = None) -> float:
        return self.registry.get_sample_value(name, labels or {}) or 0.0

    def hits(self, tier: Optional[str] = None) -> int:
        tiers = (tier,) if tier else HIT_TIERS
        return int(sum(self._sample("cache_hits_total", {"tier": t}) for t in tiers))

    def misses(self) -> int:
        return int(self._sample("cache_misses_total"))

    def shared_cache_error_count(self, operation: str) -> int:
        return int(self._sample("shared_cache_errors_total", {"operation": operation}))

    def render(self) -> bytes:
        """Prometheus exposition of this registry."""
        return generate_latest(self.registry)
