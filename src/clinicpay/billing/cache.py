"""
Billing caching layer.

Process-local cache for coupon details. Entries never expire and are never
invalidated unless a TTL is configured, so a coupon edited in the catalog is
only observed after a restart. Storage is any MutableMapping, which lets
tests inspect it directly and lets deployments opt into a cachetools TTLCache.
"""

from collections.abc import Awaitable, Callable, MutableMapping
from datetime import UTC, datetime
from typing import Any, Generic, TypeVar

import structlog
from cachetools import TTLCache  # noqa: PGH003

logger = structlog.get_logger(__name__)

T = TypeVar("T")

# Upper bound for TTL storage; coupon ids are few and come from static config.
TTL_CACHE_MAXSIZE = 1024


class CacheKey:
    """Cache key generator for billing entities."""

    @staticmethod
    def coupon(coupon_id: str) -> str:
        """Generate cache key for coupon details."""
        return f"billing:coupon:{coupon_id}"


class BillingCacheMetrics:
    """Metrics collector for cache operations."""

    def __init__(self) -> None:
        self.hits = 0
        self.misses = 0
        self.sets = 0
        self.last_reset = datetime.now(UTC)

    def record_hit(self) -> None:
        """Record cache hit."""
        self.hits += 1

    def record_miss(self) -> None:
        """Record cache miss."""
        self.misses += 1

    def record_set(self) -> None:
        """Record cache set operation."""
        self.sets += 1

    def get_hit_rate(self) -> float:
        """Calculate cache hit rate."""
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return (self.hits / total) * 100

    def get_stats(self) -> dict[str, Any]:
        """Get cache statistics."""
        return {
            "hits": self.hits,
            "misses": self.misses,
            "sets": self.sets,
            "hit_rate": self.get_hit_rate(),
            "period_start": self.last_reset.isoformat(),
        }

    def reset(self) -> None:
        """Reset metrics."""
        self.hits = 0
        self.misses = 0
        self.sets = 0
        self.last_reset = datetime.now(UTC)


def build_storage(ttl_seconds: int | None = None) -> MutableMapping[str, Any]:
    """Unbounded dict by default; a TTLCache when an expiry is configured."""
    if ttl_seconds is None:
        return {}
    return TTLCache(maxsize=TTL_CACHE_MAXSIZE, ttl=ttl_seconds)


class DetailsCache(Generic[T]):
    """
    Read-through cache keyed by catalog id.

    Concurrent misses for the same id may each call the loader; the last
    write wins and every writer stores an equivalent value.
    """

    def __init__(
        self,
        key_fn: Callable[[str], str],
        storage: MutableMapping[str, T] | None = None,
    ) -> None:
        self._key_fn = key_fn
        self.storage: MutableMapping[str, T] = {} if storage is None else storage
        self.metrics = BillingCacheMetrics()

    def peek(self, entity_id: str) -> T | None:
        """Return a cached value without loading."""
        return self.storage.get(self._key_fn(entity_id))

    async def get_or_load(self, entity_id: str, loader: Callable[[], Awaitable[T]]) -> T:
        """Return the cached value, calling ``loader`` once on a miss."""
        key = self._key_fn(entity_id)
        cached = self.storage.get(key)
        if cached is not None:
            self.metrics.record_hit()
            logger.debug("Cache hit", key=key)
            return cached

        self.metrics.record_miss()
        logger.debug("Cache miss", key=key)

        value = await loader()
        self.storage[key] = value
        self.metrics.record_set()
        return value

    def __len__(self) -> int:
        return len(self.storage)


__all__ = [
    "CacheKey",
    "BillingCacheMetrics",
    "DetailsCache",
    "build_storage",
    "TTL_CACHE_MAXSIZE",
]
