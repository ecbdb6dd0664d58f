"""Tests for rate limiter implementation."""

import pytest

from nocharts.cache.manager import CacheKeyBuilder, CacheManager
from nocharts.errors import RateLimitExceededError
from nocharts.resilience.rate_limiter import (
    DEFAULT_MAX_PER_MINUTE,
    CooldownTracker,
    FixedWindowRateLimiter,
)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class TestFixedWindowRateLimiter:
    """Tests for FixedWindowRateLimiter."""

    def test_default_limit(self) -> None:
        """Test the default cap is 20 per minute."""
        limiter = FixedWindowRateLimiter()
        assert limiter.max_per_minute == DEFAULT_MAX_PER_MINUTE == 20
        assert limiter.remaining == 20

    def test_invalid_limit(self) -> None:
        """Test the cap must be positive."""
        with pytest.raises(ValueError):
            FixedWindowRateLimiter(max_per_minute=0)

    def test_twenty_allowed_then_denied(self) -> None:
        """Test 20 calls succeed and the 21st is refused."""
        clock = FakeClock()
        limiter = FixedWindowRateLimiter(clock=clock)

        for _ in range(20):
            clock.advance(1)
            assert limiter.allow() is True

        assert limiter.allow() is False
        assert limiter.remaining == 0

    def test_window_rolls_over(self) -> None:
        """Test a full burst is allowed again after the window."""
        clock = FakeClock()
        limiter = FixedWindowRateLimiter(max_per_minute=20, clock=clock)

        for _ in range(20):
            assert limiter.allow() is True
        assert limiter.allow() is False

        clock.advance(60.5)
        for _ in range(20):
            assert limiter.allow() is True
        assert limiter.allow() is False

    def test_denied_until_window_elapses(self) -> None:
        """Test the window does not roll early."""
        clock = FakeClock()
        limiter = FixedWindowRateLimiter(max_per_minute=1, clock=clock)
        assert limiter.allow() is True

        clock.advance(59)
        assert limiter.allow() is False
        assert limiter.retry_after == pytest.approx(1.0)

    def test_acquire_raises_global_scope(self) -> None:
        """Test acquire() raises once the cap is reached."""
        limiter = FixedWindowRateLimiter(max_per_minute=1, clock=FakeClock())
        limiter.acquire("finnhub")

        with pytest.raises(RateLimitExceededError) as exc_info:
            limiter.acquire("finnhub")

        assert exc_info.value.scope == "global"
        assert exc_info.value.provider == "finnhub"
        assert exc_info.value.retry_after == pytest.approx(60.0)

    def test_get_status(self) -> None:
        """Test status reporting."""
        limiter = FixedWindowRateLimiter(max_per_minute=5, clock=FakeClock())
        limiter.allow()
        limiter.allow()

        status = limiter.get_status()
        assert status["limit"] == 5
        assert status["remaining"] == 3
        assert status["window_seconds"] == 60

    def test_reset(self) -> None:
        """Test reset clears the window."""
        limiter = FixedWindowRateLimiter(max_per_minute=1, clock=FakeClock())
        limiter.allow()
        limiter.reset()
        assert limiter.allow() is True


class TestCooldownTracker:
    """Tests for CooldownTracker."""

    def test_no_cooldown_by_default(self) -> None:
        """Test nothing is refused before a trigger."""
        tracker = CooldownTracker(clock=FakeClock())
        assert tracker.remaining("finnhub", "quote") is None
        tracker.check("finnhub", "quote")

    def test_trigger_refuses_until_elapsed(self) -> None:
        """Test a triggered operation is refused for the cooldown."""
        clock = FakeClock()
        tracker = CooldownTracker(cooldown_seconds=60, clock=clock)
        tracker.trigger("finnhub", "quote")

        with pytest.raises(RateLimitExceededError) as exc_info:
            tracker.check("finnhub", "quote")
        assert exc_info.value.scope == "cooldown"
        assert exc_info.value.details == {"operation": "quote"}

        clock.advance(59)
        assert tracker.remaining("finnhub", "quote") == pytest.approx(1.0)

        clock.advance(1)
        assert tracker.remaining("finnhub", "quote") is None
        tracker.check("finnhub", "quote")

    def test_keyed_by_provider_and_operation(self) -> None:
        """Test a cooldown does not spill over to other operations or providers."""
        tracker = CooldownTracker(clock=FakeClock())
        tracker.trigger("finnhub", "quote")

        tracker.check("finnhub", "profile")
        tracker.check("newsapi", "quote")
        with pytest.raises(RateLimitExceededError):
            tracker.check("finnhub", "quote")

    def test_sentinel_stored_in_shared_cache(self) -> None:
        """Test the sentinel holds the end of the cooldown in the given cache."""
        clock = FakeClock(start=100.0)
        cache = CacheManager(clock=clock)
        tracker = CooldownTracker(cache, cooldown_seconds=30, clock=clock)
        tracker.trigger("newsapi", "news")

        assert cache.get(CacheKeyBuilder.cooldown("newsapi", "news")) == 130.0

        clock.advance(31)
        assert cache.get(CacheKeyBuilder.cooldown("newsapi", "news")) is None

    def test_custom_duration(self) -> None:
        """Test a trigger can set its own cooldown length."""
        clock = FakeClock()
        tracker = CooldownTracker(cooldown_seconds=60, clock=clock)

        assert tracker.trigger("finnhub", "quote", seconds=17) == 17
        assert tracker.remaining("finnhub", "quote") == pytest.approx(17.0)

        clock.advance(17)
        tracker.check("finnhub", "quote")

    def test_non_positive_duration_uses_default(self) -> None:
        """Test a zero length falls back to the configured cooldown."""
        tracker = CooldownTracker(cooldown_seconds=60, clock=FakeClock())
        assert tracker.trigger("finnhub", "quote", seconds=0) == 60

    def test_clear(self) -> None:
        """Test ending a cooldown early."""
        tracker = CooldownTracker(clock=FakeClock())
        tracker.trigger("finnhub", "quote")
        tracker.clear("finnhub", "quote")
        tracker.check("finnhub", "quote")
