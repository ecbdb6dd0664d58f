"""Provider adapter base class and tagged results.

Every adapter follows the same request pipeline:

    cache lookup → cooldown check → credentials → global rate limiter
    → HTTP GET (with optional deadline) → status check → payload check
    → normalize → cache write

Failures anywhere in the pipeline are raised as NoChartsError subclasses
internally and converted into a failed ProviderResult at the boundary. Any
other exception is logged and wrapped the same way, so callers never see an
exception from ``fetch``.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Generic, NoReturn, Protocol, TypeVar

import httpx
import structlog

from nocharts.cache.manager import CacheKeyBuilder, CacheManager, CacheType
from nocharts.errors import (
    ErrorKind,
    NetworkError,
    NoChartsError,
    RateLimitExceededError,
    UpstreamError,
)
from nocharts.resilience.rate_limiter import CooldownTracker, FixedWindowRateLimiter

logger = structlog.get_logger(__name__)

T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)

DEFAULT_TIMEOUT = 30.0

SOFT_LIMIT_FIELDS = ("Note", "note", "Information")


@dataclass(frozen=True)
class ProviderResult(Generic[T]):
    """Outcome of one adapter call: a value or a tagged error.

    Attributes:
        provider: Name of the adapter's provider.
        value: Normalized value on success.
        error: The error on failure.
        cached: Whether the value came from the cache.
    """

    provider: str
    value: T | None = None
    error: NoChartsError | None = field(default=None, compare=False)
    cached: bool = False

    @classmethod
    def success(cls, provider: str, value: T, cached: bool = False) -> "ProviderResult[T]":
        """Build a successful result."""
        return cls(provider=provider, value=value, cached=cached)

    @classmethod
    def failure(cls, provider: str, error: NoChartsError) -> "ProviderResult[T]":
        """Build a failed result."""
        return cls(provider=provider, error=error)

    @property
    def ok(self) -> bool:
        """True when the call succeeded."""
        return self.error is None

    @property
    def kind(self) -> ErrorKind | None:
        """Error kind of a failed result."""
        return self.error.kind if self.error else None

    @property
    def message(self) -> str | None:
        """Error message of a failed result."""
        return self.error.message if self.error else None

    def unwrap(self) -> T:
        """Return the value or raise the stored error."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]


class StockDataProvider(Protocol[T_co]):
    """Anything the aggregator can call for one kind of data."""

    name: str

    async def fetch(self, ticker: str, **params: Any) -> "ProviderResult[T_co]": ...


@dataclass
class ProviderSet:
    """The adapters one aggregator calls, by data kind.

    ``news`` is the ordered fallback chain, tried first to last.
    """

    profile: StockDataProvider[Any]
    quote: StockDataProvider[Any]
    financials: StockDataProvider[Any]
    earnings: StockDataProvider[Any]
    news: tuple[StockDataProvider[Any], ...] = ()
    search: StockDataProvider[Any] | None = None

    def all(self) -> list[StockDataProvider[Any]]:
        """Every adapter in the set."""
        providers = [self.profile, self.quote, self.financials, self.earnings, *self.news]
        if self.search is not None:
            providers.append(self.search)
        return providers


@dataclass
class ProviderRequest:
    """A prepared outbound GET."""

    url: str
    params: dict[str, Any] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)


class BaseProvider(ABC, Generic[T]):
    """Abstract base class for HTTP provider adapters.

    Subclasses declare ``name``, ``operation`` and ``cache_type`` and
    implement ``build_request`` and ``normalize``. They may override
    ``error_message`` and ``soft_limit_message`` to recognise the
    provider's own error payloads.

    Example:
        class QuoteProvider(BaseProvider[Quote]):
            name = "finnhub"
            operation = "quote"
            cache_type = CacheType.QUOTE

            def build_request(self, ticker: str, **params: Any) -> ProviderRequest:
                return ProviderRequest(url=f"{BASE}/quote", params={"symbol": ticker})

            def normalize(self, ticker: str, payload: Any, **params: Any) -> Quote:
                return Quote(symbol=ticker, price=payload["c"])
    """

    #: Provider name, used in cache and cooldown keys
    name: str
    #: Logical operation, used in cache and cooldown keys
    operation: str
    #: Cache TTL class for normalized values
    cache_type: CacheType | None = None

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        cache: CacheManager | None = None,
        rate_limiter: FixedWindowRateLimiter | None = None,
        cooldowns: CooldownTracker | None = None,
        timeout: float | None = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialize the adapter.

        Args:
            http_client: Shared HTTP client. One is created lazily if omitted.
            cache: Cache for normalized values.
            rate_limiter: Global outbound limiter.
            cooldowns: Per-provider cooldown tracker.
            timeout: Per-call deadline in seconds; None waits indefinitely.
        """
        self._http_client = http_client
        self._owns_client = http_client is None
        self._cache = cache if cache is not None else CacheManager()
        self._limiter = rate_limiter or FixedWindowRateLimiter()
        self._cooldowns = cooldowns or CooldownTracker(
            self._cache if self._cache.enabled else None
        )
        self.timeout = timeout
        self._logger = logger.bind(component=f"{self.name}_{self.operation}")

    # =========================================================================
    # Provider-specific hooks
    # =========================================================================

    @abstractmethod
    def build_request(self, ticker: str, **params: Any) -> ProviderRequest:
        """Build the provider request, raising if credentials are missing."""
        ...

    @abstractmethod
    def normalize(self, ticker: str, payload: Any, **params: Any) -> T:
        """Map the provider payload to the shared model.

        Raises:
            NoDataAvailableError: If the payload holds nothing usable.
        """
        ...

    def cache_key(self, ticker: str, **params: Any) -> str:
        """Cache key scoped to provider, operation, ticker and page size."""
        return CacheKeyBuilder.provider(
            self.name, self.operation, ticker, params.get("page_size")
        )

    def error_message(self, payload: Any) -> str | None:
        """Return the provider error embedded in a 200 body, if any."""
        if isinstance(payload, dict) and payload.get("error"):
            return str(payload["error"])
        return None

    def soft_limit_message(self, payload: Any) -> str | None:
        """Return the quota notice embedded in a 200 body, if any."""
        if isinstance(payload, dict):
            for key in SOFT_LIMIT_FIELDS:
                if payload.get(key):
                    return str(payload[key])
        return None

    def handle_status(self, response: httpx.Response) -> None:
        """Raise for non-success statuses.

        Raises:
            RateLimitExceededError: On HTTP 429, after starting a cooldown.
            UpstreamError: On any other non-2xx status.
        """
        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            self._start_cooldown(
                "API rate limit exceeded. Please try again later.",
                retry_after=float(retry_after) if retry_after and retry_after.isdigit() else None,
            )

        if not response.is_success:
            # Some providers report quota exhaustion with a 4xx and a quota code
            soft_limit = self.soft_limit_message(_response_json(response))
            if soft_limit:
                self._start_cooldown(soft_limit)

            raise UpstreamError(
                response.status_code,
                _response_message(response),
                provider=self.name,
            )

    def _start_cooldown(self, message: str, retry_after: float | None = None) -> NoReturn:
        duration = self._cooldowns.trigger(self.name, self.operation, seconds=retry_after)
        raise RateLimitExceededError(
            message,
            scope="cooldown",
            retry_after=duration,
            provider=self.name,
        )

    # =========================================================================
    # Pipeline
    # =========================================================================

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create httpx client."""
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(timeout=DEFAULT_TIMEOUT)
            self._owns_client = True
        return self._http_client

    async def fetch(self, ticker: str, **params: Any) -> ProviderResult[T]:
        """Fetch and normalize one value, never raising.

        Args:
            ticker: Validated ticker symbol.
            params: Operation-specific parameters (e.g., page_size, query).

        Returns:
            ProviderResult with the normalized value or a tagged error.
        """
        try:
            value, cached = await self._fetch(ticker, **params)
        except NoChartsError as e:
            if e.provider is None:
                e.provider = self.name
            self._logger.warning(
                "provider_fetch_failed",
                ticker=ticker,
                kind=e.kind.value,
                error=e.message,
            )
            return ProviderResult.failure(self.name, e)
        except Exception as e:
            self._logger.error(
                "provider_unexpected_error",
                ticker=ticker,
                error=str(e),
                exc_info=True,
            )
            return ProviderResult.failure(self.name, unexpected_error(self.name, e))

        self._logger.info("provider_fetched", ticker=ticker, cached=cached)
        return ProviderResult.success(self.name, value, cached=cached)

    async def _fetch(self, ticker: str, **params: Any) -> tuple[T, bool]:
        key = self.cache_key(ticker, **params)
        cached = self._cache.get(key)
        if cached is not None:
            return cached, True

        self._cooldowns.check(self.name, self.operation)
        request = self.build_request(ticker, **params)
        self._limiter.acquire(self.name)

        payload = await self._send(request)

        soft_limit = self.soft_limit_message(payload)
        if soft_limit:
            self._start_cooldown(soft_limit)

        error = self.error_message(payload)
        if error:
            raise UpstreamError(200, error, provider=self.name)

        try:
            value = self.normalize(ticker, payload, **params)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise UpstreamError(200, f"Malformed response: {e}", provider=self.name) from e

        self._cache.set(key, value, cache_type=self.cache_type)
        return value, False

    async def _send(self, request: ProviderRequest) -> Any:
        client = await self._get_client()
        self._logger.debug("provider_request", url=request.url)

        try:
            call = client.get(request.url, params=request.params, headers=request.headers)
            if self.timeout is None:
                response = await call
            else:
                response = await asyncio.wait_for(call, timeout=self.timeout)
        except (TimeoutError, httpx.TimeoutException) as e:
            raise NetworkError(
                f"Request timed out after {self.timeout}s",
                timeout=True,
                provider=self.name,
            ) from e
        except httpx.RequestError as e:
            raise NetworkError(
                f"Failed to fetch: {e.__class__.__name__}: {e}",
                provider=self.name,
            ) from e

        self.handle_status(response)

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError(
                response.status_code, "Malformed JSON response", provider=self.name
            ) from e

    async def close(self) -> None:
        """Close the HTTP client if this adapter created it."""
        if self._owns_client and self._http_client and not self._http_client.is_closed:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> "BaseProvider[T]":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()


def _response_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def _response_message(response: httpx.Response) -> str:
    """Best-effort provider message from an error response."""
    data = _response_json(response)
    if isinstance(data, dict):
        for key in ("message", "error", "reason"):
            value = data.get(key)
            if isinstance(value, dict):
                value = value.get("message")
            if value:
                return str(value)
    return response.text[:200]


def to_float(value: Any) -> float | None:
    """Parse a provider number, treating blanks and junk as missing."""
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def to_int(value: Any) -> int | None:
    """Parse a provider integer, treating blanks and junk as missing."""
    number = to_float(value)
    return int(number) if number is not None else None


def to_datetime(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp or epoch seconds into an aware UTC datetime."""
    if value is None or value == "" or isinstance(value, bool):
        return None

    if isinstance(value, int | float):
        return datetime.fromtimestamp(value, tz=UTC)

    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def unexpected_error(provider: str, error: Exception) -> NoChartsError:
    """Wrap an exception that escaped a provider as an upstream error."""
    return NoChartsError(
        f"Unexpected error: {error.__class__.__name__}: {error}",
        provider=provider,
        details={"exception": error.__class__.__name__},
    )
