"""Outbound request limiting for provider calls.

This module implements two independent back-off mechanisms:

- FixedWindowRateLimiter bounds how fast *we* call out. One global window of
  60 seconds with a request cap; the counter resets once the window has
  elapsed, so a full burst is allowed right after a reset.
- CooldownTracker remembers that a *provider* told us to back off (HTTP 429
  or a soft-limit payload) and refuses that provider operation until the
  cooldown has passed, even when the global limiter would allow the call.
"""

import time
from collections.abc import Callable
from typing import Any

import structlog

from nocharts.cache.manager import CacheKeyBuilder, CacheManager
from nocharts.errors import RateLimitExceededError

logger = structlog.get_logger(__name__)

Clock = Callable[[], float]

DEFAULT_MAX_PER_MINUTE = 20
DEFAULT_WINDOW_SECONDS = 60.0
DEFAULT_COOLDOWN_SECONDS = 60.0


class FixedWindowRateLimiter:
    """Fixed-window request counter.

    Example:
        limiter = FixedWindowRateLimiter(max_per_minute=20)

        if not limiter.allow():
            raise RateLimitExceededError("Internal rate limit exceeded")
    """

    def __init__(
        self,
        max_per_minute: int = DEFAULT_MAX_PER_MINUTE,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        clock: Clock = time.monotonic,
    ) -> None:
        """Initialize the limiter.

        Args:
            max_per_minute: Requests allowed per window.
            window_seconds: Window length in seconds.
            clock: Monotonic time source in seconds.
        """
        if max_per_minute < 1:
            raise ValueError("max_per_minute must be at least 1")

        self.max_per_minute = max_per_minute
        self.window_seconds = window_seconds
        self._clock = clock
        self._window_start: float | None = None
        self._count = 0
        self._logger = logger.bind(component="rate_limiter")

    def _roll_window(self, now: float) -> None:
        if self._window_start is None or now - self._window_start > self.window_seconds:
            self._window_start = now
            self._count = 0

    def allow(self) -> bool:
        """Count one outbound request if the current window has room.

        Returns:
            True if the request may proceed, False once the cap is reached.
        """
        now = self._clock()
        self._roll_window(now)

        if self._count >= self.max_per_minute:
            self._logger.warning(
                "rate_limit_denied",
                count=self._count,
                limit=self.max_per_minute,
            )
            return False

        self._count += 1
        return True

    def acquire(self, provider: str | None = None) -> None:
        """Like allow(), but raise when the request is denied.

        Raises:
            RateLimitExceededError: With scope "global".
        """
        if not self.allow():
            raise RateLimitExceededError(
                "Internal rate limit exceeded. Please try again later.",
                scope="global",
                retry_after=self.retry_after,
                provider=provider,
            )

    @property
    def remaining(self) -> int:
        """Requests left in the current window."""
        now = self._clock()
        if self._window_start is None or now - self._window_start > self.window_seconds:
            return self.max_per_minute
        return max(0, self.max_per_minute - self._count)

    @property
    def retry_after(self) -> float:
        """Seconds until the current window rolls over."""
        if self._window_start is None:
            return 0.0
        elapsed = self._clock() - self._window_start
        return max(0.0, self.window_seconds - elapsed)

    def get_status(self) -> dict[str, Any]:
        """Get current window status."""
        return {
            "limit": self.max_per_minute,
            "remaining": self.remaining,
            "window_seconds": self.window_seconds,
            "retry_after": round(self.retry_after, 2),
        }

    def reset(self) -> None:
        """Forget the current window."""
        self._window_start = None
        self._count = 0


class CooldownTracker:
    """Per-provider-operation cooldown after a provider-reported rate limit.

    The sentinel is the timestamp at which the cooldown ends, stored in the
    cache under ``CacheKeyBuilder.cooldown(provider, operation)`` with a TTL
    equal to the cooldown.
    """

    def __init__(
        self,
        cache: CacheManager | None = None,
        cooldown_seconds: float = DEFAULT_COOLDOWN_SECONDS,
        clock: Clock = time.monotonic,
    ) -> None:
        """Initialize the tracker.

        Args:
            cache: Cache holding the sentinels. A private always-on cache is
                created when omitted.
            cooldown_seconds: How long to refuse a provider operation.
            clock: Monotonic time source; must match the cache's clock.
        """
        self._cache = cache or CacheManager(enabled=True, clock=clock)
        self.cooldown_seconds = cooldown_seconds
        self._clock = clock
        self._logger = logger.bind(component="cooldown_tracker")

    def trigger(self, provider: str, operation: str, seconds: float | None = None) -> float:
        """Start (or restart) a cooldown for a provider operation.

        Args:
            provider: Provider name.
            operation: Operation name.
            seconds: Cooldown length, e.g. from a Retry-After header.
                Defaults to ``cooldown_seconds``.

        Returns:
            The cooldown length applied.
        """
        duration = seconds if seconds is not None and seconds > 0 else self.cooldown_seconds
        key = CacheKeyBuilder.cooldown(provider, operation)
        self._cache.set(key, self._clock() + duration, ttl=duration)
        self._logger.warning(
            "provider_cooldown_started",
            provider=provider,
            operation=operation,
            cooldown_seconds=duration,
        )
        return duration

    def remaining(self, provider: str, operation: str) -> float | None:
        """Seconds left on the cooldown, or None when none is active."""
        key = CacheKeyBuilder.cooldown(provider, operation)
        ends_at = self._cache.get(key)
        if ends_at is None:
            return None

        left = ends_at - self._clock()
        if left <= 0:
            self._cache.delete(key)
            return None
        return left

    def check(self, provider: str, operation: str) -> None:
        """Raise while a cooldown is active.

        Raises:
            RateLimitExceededError: With scope "cooldown".
        """
        remaining = self.remaining(provider, operation)
        if remaining is not None:
            raise RateLimitExceededError(
                "API rate limit exceeded. Please try again later.",
                scope="cooldown",
                retry_after=remaining,
                provider=provider,
                details={"operation": operation},
            )

    def clear(self, provider: str, operation: str) -> None:
        """End a cooldown early."""
        self._cache.delete(CacheKeyBuilder.cooldown(provider, operation))
