"""In-process TTL cache for provider responses and rate-limit cooldowns.

This module provides a caching layer to avoid redundant provider calls
and to remember recent provider rate-limit hits.

Features:
- Per-entry TTL with read-time eviction (no background sweep)
- Configurable TTLs per data kind
- Optional LRU bound on the number of entries
- get_or_compute pattern for transparent caching
- Cache metrics tracking (hits, misses, expirations, evictions)
"""

import fnmatch
import time
from collections import OrderedDict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeVar, cast

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")

Clock = Callable[[], float]


class CacheType(Enum):
    """Types of cached data with different TTLs."""

    PROFILE = "profile"
    QUOTE = "quote"
    FINANCIALS = "financials"
    EARNINGS = "earnings"
    NEWS = "news"
    SEARCH = "search"


@dataclass
class CacheConfig:
    """Configuration for cache TTLs.

    Attributes:
        default_ttl: TTL for anything without a specific setting (30 min).
        profile_ttl: TTL for company profiles.
        quote_ttl: TTL for quotes.
        financials_ttl: TTL for basic financials.
        earnings_ttl: TTL for earnings history.
        news_ttl: TTL for news searches.
        search_ttl: TTL for symbol search results.
    """

    default_ttl: float = 30 * 60
    profile_ttl: float | None = None
    quote_ttl: float | None = None
    financials_ttl: float | None = None
    earnings_ttl: float | None = None
    news_ttl: float | None = None
    search_ttl: float | None = None

    def get_ttl(self, cache_type: CacheType | None) -> float:
        """Get TTL for a cache type, falling back to the default."""
        ttl_map = {
            CacheType.PROFILE: self.profile_ttl,
            CacheType.QUOTE: self.quote_ttl,
            CacheType.FINANCIALS: self.financials_ttl,
            CacheType.EARNINGS: self.earnings_ttl,
            CacheType.NEWS: self.news_ttl,
            CacheType.SEARCH: self.search_ttl,
        }
        ttl = ttl_map.get(cache_type) if cache_type else None
        return self.default_ttl if ttl is None else ttl


# Default cache configuration
DEFAULT_CACHE_CONFIG = CacheConfig()


@dataclass
class CacheEntry:
    """A stored value with the time it was written and its lifetime."""

    key: str
    value: Any
    stored_at: float
    ttl: float

    def is_expired(self, now: float) -> bool:
        """An entry is absent once strictly more than ttl has elapsed."""
        return now - self.stored_at > self.ttl


@dataclass
class CacheMetrics:
    """Metrics for cache performance.

    Attributes:
        hits: Number of cache hits.
        misses: Number of cache misses (expired reads included).
        expirations: Entries removed because their TTL had passed.
        evictions: Entries removed by the LRU bound.
    """

    hits: int = 0
    misses: int = 0
    expirations: int = 0
    evictions: int = 0

    @property
    def total_requests(self) -> int:
        """Total number of cache requests."""
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        """Cache hit rate as a percentage."""
        if self.total_requests == 0:
            return 0.0
        return (self.hits / self.total_requests) * 100

    def to_dict(self) -> dict[str, Any]:
        """Convert metrics to dictionary."""
        return {
            "hits": self.hits,
            "misses": self.misses,
            "expirations": self.expirations,
            "evictions": self.evictions,
            "total_requests": self.total_requests,
            "hit_rate": round(self.hit_rate, 2),
        }

    def reset(self) -> None:
        """Reset all metrics."""
        self.hits = 0
        self.misses = 0
        self.expirations = 0
        self.evictions = 0


class CacheKeyBuilder:
    """Builder for consistent cache key generation."""

    PREFIX = "nocharts"

    @classmethod
    def provider(
        cls,
        provider: str,
        operation: str,
        ticker: str,
        page_size: int | None = None,
    ) -> str:
        """Build cache key for one provider operation.

        Args:
            provider: Provider name (e.g., "finnhub").
            operation: Operation name (e.g., "quote").
            ticker: Stock symbol or search term.
            page_size: Page size for paginated operations.

        Returns:
            Cache key string.
        """
        key = f"{cls.PREFIX}:{provider}:{operation}:{ticker.upper()}"
        if page_size is not None:
            key = f"{key}:{page_size}"
        return key

    @classmethod
    def cooldown(cls, provider: str, operation: str) -> str:
        """Build the key of a rate-limit cooldown sentinel.

        Cooldowns are tracked per provider operation, independent of the
        ticker and page size of the request that hit the limit.
        """
        return f"{cls.PREFIX}:cooldown:{provider}:{operation}"

    @classmethod
    def custom(cls, namespace: str, *parts: str) -> str:
        """Build a custom cache key.

        Args:
            namespace: Namespace for the key.
            parts: Additional parts to include in the key.

        Returns:
            Cache key string.
        """
        return f"{cls.PREFIX}:{namespace}:{':'.join(parts)}"


class CacheManager:
    """In-memory cache with per-entry TTL.

    Expired entries are treated as absent and removed when read. There is
    no capacity bound unless ``max_entries`` is given, in which case the
    least recently used entry is evicted on overflow.

    Example:
        cache = CacheManager(config=CacheConfig(default_ttl=1800))

        cache.set(CacheKeyBuilder.provider("finnhub", "quote", "AAPL"), quote)
        cached = cache.get(CacheKeyBuilder.provider("finnhub", "quote", "AAPL"))

        print(cache.metrics.hit_rate)
    """

    def __init__(
        self,
        config: CacheConfig | None = None,
        enabled: bool = True,
        max_entries: int | None = None,
        clock: Clock = time.monotonic,
    ) -> None:
        """Initialize cache manager.

        Args:
            config: Cache configuration.
            enabled: Whether caching is enabled.
            max_entries: Optional LRU bound on stored entries.
            clock: Monotonic time source in seconds.
        """
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be at least 1")

        self.config = config or DEFAULT_CACHE_CONFIG
        self.enabled = enabled
        self.max_entries = max_entries
        self.metrics = CacheMetrics()
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()

    @property
    def size(self) -> int:
        """Number of stored entries, including not-yet-evicted expired ones."""
        return len(self._entries)

    def get(self, key: str) -> Any | None:
        """Get a value from cache.

        Args:
            key: Cache key.

        Returns:
            Cached value or None if absent or expired.
        """
        if not self.enabled:
            return None

        entry = self._entries.get(key)
        if entry is None:
            self.metrics.misses += 1
            logger.debug("cache_miss", key=key)
            return None

        if entry.is_expired(self._clock()):
            del self._entries[key]
            self.metrics.misses += 1
            self.metrics.expirations += 1
            logger.debug("cache_expired", key=key)
            return None

        self._entries.move_to_end(key)
        self.metrics.hits += 1
        logger.debug("cache_hit", key=key)
        return entry.value

    def set(
        self,
        key: str,
        value: Any,
        ttl: float | None = None,
        cache_type: CacheType | None = None,
    ) -> bool:
        """Set a value in cache, silently overwriting any previous entry.

        Args:
            key: Cache key.
            value: Value to cache.
            ttl: TTL in seconds. If not provided, uses cache_type or default.
            cache_type: Type of cache for TTL lookup.

        Returns:
            True if stored, False when caching is disabled.
        """
        if not self.enabled:
            return False

        if ttl is None:
            ttl = self.config.get_ttl(cache_type)

        self._entries[key] = CacheEntry(key=key, value=value, stored_at=self._clock(), ttl=ttl)
        self._entries.move_to_end(key)
        logger.debug("cache_set", key=key, ttl=ttl)

        if self.max_entries is not None:
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                self.metrics.evictions += 1
                logger.debug("cache_evicted", key=evicted)

        return True

    def delete(self, key: str) -> bool:
        """Delete a value from cache.

        Args:
            key: Cache key.

        Returns:
            True if key was deleted, False otherwise.
        """
        deleted = self._entries.pop(key, None) is not None
        logger.debug("cache_delete", key=key, deleted=deleted)
        return deleted

    def delete_pattern(self, pattern: str) -> int:
        """Delete all keys matching a glob pattern.

        Args:
            pattern: Key pattern (e.g., "nocharts:finnhub:*").

        Returns:
            Number of keys deleted.
        """
        keys = [key for key in self._entries if fnmatch.fnmatchcase(key, pattern)]
        for key in keys:
            del self._entries[key]

        if keys:
            logger.info("cache_delete_pattern", pattern=pattern, deleted_count=len(keys))
        return len(keys)

    def clear(self, key: str | None = None) -> None:
        """Clear one entry, or everything when no key is given."""
        if key is not None:
            self.delete(key)
            return

        count = len(self._entries)
        self._entries.clear()
        logger.info("cache_cleared", deleted_count=count)

    def invalidate_symbol(self, symbol: str) -> int:
        """Invalidate all provider entries for a symbol.

        Args:
            symbol: Stock symbol.

        Returns:
            Number of keys invalidated.
        """
        symbol = symbol.upper()
        deleted = self.delete_pattern(f"{CacheKeyBuilder.PREFIX}:*:*:{symbol}")
        deleted += self.delete_pattern(f"{CacheKeyBuilder.PREFIX}:*:*:{symbol}:*")
        logger.info("cache_symbol_invalidated", symbol=symbol, deleted_count=deleted)
        return deleted

    async def get_or_compute(
        self,
        key: str,
        compute_fn: Callable[[], Awaitable[T]],
        ttl: float | None = None,
        cache_type: CacheType | None = None,
    ) -> T:
        """Get value from cache or compute and cache it.

        Args:
            key: Cache key.
            compute_fn: Async function to compute value if not cached.
            ttl: TTL in seconds.
            cache_type: Type of cache for TTL lookup.

        Returns:
            Cached or computed value.
        """
        cached = self.get(key)
        if cached is not None:
            return cast(T, cached)

        start = time.monotonic()
        result = await compute_fn()
        compute_time_ms = (time.monotonic() - start) * 1000

        self.set(key, result, ttl=ttl, cache_type=cache_type)

        logger.debug(
            "cache_computed",
            key=key,
            compute_time_ms=round(compute_time_ms, 2),
        )

        return result

    def get_metrics(self) -> dict[str, Any]:
        """Get cache metrics, including the current entry count."""
        metrics = self.metrics.to_dict()
        metrics["size"] = self.size
        return metrics

    def reset_metrics(self) -> None:
        """Reset cache metrics."""
        self.metrics.reset()
