"""Back-off mechanisms for outbound provider calls.

This module contains:
- Fixed-window global rate limiter
- Per-provider cooldown tracking after provider-reported rate limits
"""

from nocharts.resilience.rate_limiter import (
    DEFAULT_COOLDOWN_SECONDS,
    DEFAULT_MAX_PER_MINUTE,
    CooldownTracker,
    FixedWindowRateLimiter,
)

__all__ = [
    "CooldownTracker",
    "DEFAULT_COOLDOWN_SECONDS",
    "DEFAULT_MAX_PER_MINUTE",
    "FixedWindowRateLimiter",
]
