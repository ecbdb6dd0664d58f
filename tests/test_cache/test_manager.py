"""Tests for cache manager implementation."""

import pytest

from nocharts.cache.manager import (
    DEFAULT_CACHE_CONFIG,
    CacheConfig,
    CacheEntry,
    CacheKeyBuilder,
    CacheManager,
    CacheMetrics,
    CacheType,
)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class TestCacheConfig:
    """Tests for CacheConfig."""

    def test_default_ttl_is_thirty_minutes(self) -> None:
        """Test default configuration values."""
        assert DEFAULT_CACHE_CONFIG.default_ttl == 1800
        assert CacheConfig().get_ttl(None) == 1800

    def test_type_falls_back_to_default(self) -> None:
        """Test types without their own TTL use the default."""
        config = CacheConfig(default_ttl=100)
        for cache_type in CacheType:
            assert config.get_ttl(cache_type) == 100

    def test_per_type_override(self) -> None:
        """Test a per-type TTL wins over the default."""
        config = CacheConfig(default_ttl=100, quote_ttl=15, news_ttl=0)
        assert config.get_ttl(CacheType.QUOTE) == 15
        assert config.get_ttl(CacheType.NEWS) == 0
        assert config.get_ttl(CacheType.PROFILE) == 100


class TestCacheEntry:
    """Tests for CacheEntry expiry."""

    def test_not_expired_at_exact_ttl(self) -> None:
        """Test an entry is still valid when exactly ttl has elapsed."""
        entry = CacheEntry(key="k", value=1, stored_at=0.0, ttl=10.0)
        assert entry.is_expired(10.0) is False

    def test_expired_after_ttl(self) -> None:
        """Test an entry expires once strictly more than ttl has elapsed."""
        entry = CacheEntry(key="k", value=1, stored_at=0.0, ttl=10.0)
        assert entry.is_expired(10.001) is True


class TestCacheMetrics:
    """Tests for CacheMetrics."""

    def test_hit_rate(self) -> None:
        """Test hit rate calculation."""
        metrics = CacheMetrics(hits=3, misses=1)
        assert metrics.total_requests == 4
        assert metrics.hit_rate == 75.0

    def test_hit_rate_without_requests(self) -> None:
        """Test hit rate with no requests."""
        assert CacheMetrics().hit_rate == 0.0

    def test_reset(self) -> None:
        """Test metrics reset."""
        metrics = CacheMetrics(hits=5, misses=2, expirations=1, evictions=1)
        metrics.reset()
        assert metrics.to_dict()["total_requests"] == 0
        assert metrics.evictions == 0


class TestCacheKeyBuilder:
    """Tests for CacheKeyBuilder."""

    def test_provider_key(self) -> None:
        """Test keys are scoped to provider, operation and ticker."""
        key = CacheKeyBuilder.provider("finnhub", "quote", "aapl")
        assert key == "nocharts:finnhub:quote:AAPL"

    def test_provider_key_with_page_size(self) -> None:
        """Test page size is part of the key."""
        key = CacheKeyBuilder.provider("newsapi", "news", "AAPL", 5)
        assert key == "nocharts:newsapi:news:AAPL:5"
        assert key != CacheKeyBuilder.provider("newsapi", "news", "AAPL", 10)

    def test_cooldown_key(self) -> None:
        """Test cooldown keys are independent of the ticker."""
        assert CacheKeyBuilder.cooldown("finnhub", "quote") == "nocharts:cooldown:finnhub:quote"

    def test_custom_key(self) -> None:
        """Test custom key building."""
        assert CacheKeyBuilder.custom("search", "apple", "inc") == "nocharts:search:apple:inc"


class TestCacheManager:
    """Tests for CacheManager."""

    def test_set_and_get(self) -> None:
        """Test a stored value is returned."""
        cache = CacheManager()
        assert cache.set("key", {"price": 1.0}) is True
        assert cache.get("key") == {"price": 1.0}
        assert cache.metrics.hits == 1

    def test_missing_key(self) -> None:
        """Test a missing key is a miss."""
        cache = CacheManager()
        assert cache.get("missing") is None
        assert cache.metrics.misses == 1

    def test_entry_expires_after_ttl(self) -> None:
        """Test entries are absent once their TTL has passed."""
        clock = FakeClock()
        cache = CacheManager(clock=clock)
        cache.set("key", "value", ttl=60)

        clock.advance(60)
        assert cache.get("key") == "value"

        clock.advance(0.5)
        assert cache.get("key") is None
        assert cache.metrics.expirations == 1
        assert cache.size == 0

    def test_default_ttl_from_config(self) -> None:
        """Test the configured TTL applies when none is given."""
        clock = FakeClock()
        cache = CacheManager(config=CacheConfig(default_ttl=1800, quote_ttl=30), clock=clock)
        cache.set("quote", 1, cache_type=CacheType.QUOTE)
        cache.set("profile", 2, cache_type=CacheType.PROFILE)

        clock.advance(31)
        assert cache.get("quote") is None
        assert cache.get("profile") == 2

        clock.advance(1800)
        assert cache.get("profile") is None

    def test_set_overwrites_and_restarts_ttl(self) -> None:
        """Test writing an existing key replaces it."""
        clock = FakeClock()
        cache = CacheManager(clock=clock)
        cache.set("key", "old", ttl=10)
        clock.advance(8)
        cache.set("key", "new", ttl=10)
        clock.advance(8)
        assert cache.get("key") == "new"

    def test_disabled_cache(self) -> None:
        """Test a disabled cache stores nothing."""
        cache = CacheManager(enabled=False)
        assert cache.set("key", "value") is False
        assert cache.get("key") is None
        assert cache.size == 0

    def test_lru_eviction(self) -> None:
        """Test the least recently used entry goes first."""
        cache = CacheManager(max_entries=2)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.get("a")
        cache.set("c", 3)

        assert cache.get("b") is None
        assert cache.get("a") == 1
        assert cache.get("c") == 3
        assert cache.metrics.evictions == 1

    def test_unbounded_by_default(self) -> None:
        """Test there is no capacity bound without max_entries."""
        cache = CacheManager()
        for i in range(500):
            cache.set(f"key-{i}", i)
        assert cache.size == 500

    def test_invalid_max_entries(self) -> None:
        """Test max_entries must be positive."""
        with pytest.raises(ValueError):
            CacheManager(max_entries=0)

    def test_delete(self) -> None:
        """Test deleting a key."""
        cache = CacheManager()
        cache.set("key", 1)
        assert cache.delete("key") is True
        assert cache.delete("key") is False

    def test_clear_single_key(self) -> None:
        """Test clearing one key leaves the rest."""
        cache = CacheManager()
        cache.set("a", 1)
        cache.set("b", 2)
        cache.clear("a")
        assert cache.get("a") is None
        assert cache.get("b") == 2

    def test_clear_all(self) -> None:
        """Test clearing everything."""
        cache = CacheManager()
        cache.set("a", 1)
        cache.set("b", 2)
        cache.clear()
        assert cache.size == 0

    def test_delete_pattern(self) -> None:
        """Test glob deletion."""
        cache = CacheManager()
        cache.set(CacheKeyBuilder.provider("finnhub", "quote", "AAPL"), 1)
        cache.set(CacheKeyBuilder.provider("finnhub", "profile", "AAPL"), 2)
        cache.set(CacheKeyBuilder.provider("newsapi", "news", "AAPL", 5), 3)

        assert cache.delete_pattern("nocharts:finnhub:*") == 2
        assert cache.size == 1

    def test_invalidate_symbol(self) -> None:
        """Test all entries of one symbol are dropped."""
        cache = CacheManager()
        cache.set(CacheKeyBuilder.provider("finnhub", "quote", "AAPL"), 1)
        cache.set(CacheKeyBuilder.provider("newsapi", "news", "AAPL", 5), 2)
        cache.set(CacheKeyBuilder.provider("finnhub", "quote", "MSFT"), 3)

        assert cache.invalidate_symbol("aapl") == 2
        assert cache.get(CacheKeyBuilder.provider("finnhub", "quote", "MSFT")) == 3

    @pytest.mark.asyncio
    async def test_get_or_compute(self) -> None:
        """Test the compute function runs only on a miss."""
        cache = CacheManager()
        calls = 0

        async def compute() -> str:
            nonlocal calls
            calls += 1
            return "computed"

        assert await cache.get_or_compute("key", compute) == "computed"
        assert await cache.get_or_compute("key", compute) == "computed"
        assert calls == 1

    def test_get_metrics_includes_size(self) -> None:
        """Test metrics report the entry count."""
        cache = CacheManager()
        cache.set("a", 1)
        cache.get("a")
        metrics = cache.get_metrics()
        assert metrics["size"] == 1
        assert metrics["hits"] == 1

        cache.reset_metrics()
        assert cache.get_metrics()["hits"] == 0
