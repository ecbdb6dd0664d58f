"""Error taxonomy and retry helpers for stock data aggregation.

This module provides:
- Custom exception hierarchy shared by every provider adapter
- ErrorKind tags used by ProviderResult
- Retry logic with exponential backoff (available to callers, not wired
  into the provider path)

Exception Hierarchy:
    NoChartsError (base)
    ├── InvalidTickerError - Symbol fails the ticker grammar
    ├── RateLimitExceededError - Global limiter denial or provider cooldown
    ├── UpstreamError - Provider returned an error status or payload
    ├── NetworkError - Transport failure or deadline exceeded
    ├── AuthRequiredError - Bearer token missing or expired
    └── NoDataAvailableError - Provider succeeded but returned nothing usable
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from functools import wraps
from typing import Any, ParamSpec, TypeVar

import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = structlog.get_logger(__name__)

P = ParamSpec("P")
T = TypeVar("T")


class ErrorKind(str, Enum):
    """Tags for the shared error taxonomy."""

    INVALID_TICKER = "invalid_ticker"
    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
    UPSTREAM_ERROR = "upstream_error"
    NETWORK_ERROR = "network_error"
    AUTH_REQUIRED = "auth_required"
    NO_DATA_AVAILABLE = "no_data_available"


# ============================================================================
# Exception Hierarchy
# ============================================================================


class NoChartsError(Exception):
    """Base exception for all aggregation errors.

    Attributes:
        message: Human-readable error message.
        provider: Provider name that raised the error, if any.
        details: Additional error details.
    """

    kind: ErrorKind = ErrorKind.UPSTREAM_ERROR

    def __init__(
        self,
        message: str,
        *,
        provider: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.provider = provider
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging/API responses."""
        return {
            "error_type": self.__class__.__name__,
            "kind": self.kind.value,
            "message": self.message,
            "provider": self.provider,
            "details": self.details,
        }


class InvalidTickerError(NoChartsError):
    """Ticker does not match the symbol grammar.

    Attributes:
        ticker: The rejected input.
    """

    kind = ErrorKind.INVALID_TICKER

    def __init__(self, ticker: Any) -> None:
        super().__init__(f"Invalid ticker symbol: {ticker!r}")
        self.ticker = ticker

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        base = super().to_dict()
        base["ticker"] = self.ticker if isinstance(self.ticker, str) else repr(self.ticker)
        return base


class RateLimitExceededError(NoChartsError):
    """Outbound request refused by the global limiter or a provider cooldown.

    Attributes:
        scope: "global" for the process-wide limiter, "cooldown" when a
            provider told us to back off.
        retry_after: Seconds until a retry may succeed, if known.
    """

    kind = ErrorKind.RATE_LIMIT_EXCEEDED

    def __init__(
        self,
        message: str,
        *,
        scope: str = "global",
        retry_after: float | None = None,
        provider: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, provider=provider, details=details)
        self.scope = scope
        self.retry_after = retry_after

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        base = super().to_dict()
        base.update({"scope": self.scope, "retry_after": self.retry_after})
        return base


class UpstreamError(NoChartsError):
    """Provider answered with an error status or an error payload.

    Attributes:
        status: HTTP status code (200 when the error was embedded in the body).
        provider_message: Message reported by the provider.
    """

    kind = ErrorKind.UPSTREAM_ERROR

    def __init__(
        self,
        status: int,
        provider_message: str = "",
        *,
        provider: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        message = f"Upstream error {status}"
        if provider_message:
            message = f"{message}: {provider_message}"
        super().__init__(message, provider=provider, details=details)
        self.status = status
        self.provider_message = provider_message

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        base = super().to_dict()
        base.update({"status": self.status, "provider_message": self.provider_message})
        return base


class NetworkError(NoChartsError):
    """Transport-level failure, including cross-origin style rejections.

    Attributes:
        timeout: True when the per-call deadline was exceeded.
    """

    kind = ErrorKind.NETWORK_ERROR

    def __init__(
        self,
        message: str,
        *,
        timeout: bool = False,
        provider: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, provider=provider, details=details)
        self.timeout = timeout

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        base = super().to_dict()
        base["timeout"] = self.timeout
        return base


class AuthRequiredError(NoChartsError):
    """A bearer token is missing or expired; the caller must re-authorize."""

    kind = ErrorKind.AUTH_REQUIRED


class NoDataAvailableError(NoChartsError):
    """Provider call succeeded but the payload held nothing usable."""

    kind = ErrorKind.NO_DATA_AVAILABLE


# ============================================================================
# Retry Configuration
# ============================================================================


class RetryStrategy(Enum):
    """Retry strategies for different scenarios."""

    NONE = "none"  # No retries
    QUICK = "quick"  # 2 retries, short backoff
    STANDARD = "standard"  # 3 retries, standard backoff


@dataclass
class RetryConfig:
    """Configuration for retry behavior.

    Attributes:
        max_attempts: Maximum number of attempts (including initial).
        min_wait_seconds: Minimum wait between retries.
        max_wait_seconds: Maximum wait between retries.
        multiplier: Exponential backoff multiplier.
        retry_exceptions: Exception types to retry on.
    """

    max_attempts: int = 3
    min_wait_seconds: float = 1.0
    max_wait_seconds: float = 30.0
    multiplier: float = 1.0
    retry_exceptions: tuple[type[Exception], ...] = field(
        default_factory=lambda: (NetworkError,)
    )

    @classmethod
    def from_strategy(cls, strategy: RetryStrategy) -> "RetryConfig":
        """Create config from a strategy preset.

        Args:
            strategy: The retry strategy to use.

        Returns:
            RetryConfig for the strategy.
        """
        configs = {
            RetryStrategy.NONE: cls(max_attempts=1),
            RetryStrategy.QUICK: cls(max_attempts=2, min_wait_seconds=0.5, max_wait_seconds=5.0),
            RetryStrategy.STANDARD: cls(max_attempts=3, min_wait_seconds=1.0, max_wait_seconds=30.0),
        }
        return configs[strategy]


def with_retry(
    config: RetryConfig | RetryStrategy | None = None,
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Decorator for adding retry logic with exponential backoff.

    The wait doubles per attempt starting from ``min_wait_seconds``.

    Args:
        config: Retry configuration or strategy preset.

    Returns:
        Decorated function with retry logic.

    Example:
        @with_retry(RetryStrategy.QUICK)
        async def fetch_quote():
            return await client.get("/quote")
    """
    if config is None:
        retry_config = RetryConfig()
    elif isinstance(config, RetryStrategy):
        retry_config = RetryConfig.from_strategy(config)
    else:
        retry_config = config

    def decorator(fn: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        @wraps(fn)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            attempt = 0

            async for attempt_context in AsyncRetrying(
                stop=stop_after_attempt(retry_config.max_attempts),
                wait=wait_exponential(
                    multiplier=retry_config.multiplier,
                    min=retry_config.min_wait_seconds,
                    max=retry_config.max_wait_seconds,
                ),
                retry=retry_if_exception_type(retry_config.retry_exceptions),
                reraise=True,
            ):
                with attempt_context:
                    attempt += 1
                    if attempt > 1:
                        logger.info(
                            "retry_attempt",
                            function=fn.__name__,
                            attempt=attempt,
                            max_attempts=retry_config.max_attempts,
                        )
                    return await fn(*args, **kwargs)

            raise RuntimeError("Retry loop exited unexpectedly")

        return wrapper

    return decorator
