"""Stock data aggregation across providers.

This module provides:
- NewsFallbackChain: Ordered news providers (Reddit → NewsAPI → Marketaux)
- StockAggregator: Builds one canonical record per ticker
- create_aggregator: Production (or mock) wiring from Settings
"""

import asyncio
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import httpx
import structlog

from nocharts.auth.token_store import FileTokenStorage, MemoryTokenStorage, TokenStore
from nocharts.cache.manager import CacheConfig, CacheManager
from nocharts.config import Settings
from nocharts.data.base import ProviderResult, ProviderSet, StockDataProvider
from nocharts.data.finnhub import (
    FinnhubEarningsProvider,
    FinnhubFinancialsProvider,
    FinnhubProfileProvider,
    FinnhubQuoteProvider,
    FinnhubSymbolSearch,
)
from nocharts.data.marketaux import MarketauxProvider
from nocharts.data.mock import create_mock_providers
from nocharts.data.models import (
    Article,
    FetchFailure,
    StockRecord,
    SymbolMatch,
    validate_ticker,
)
from nocharts.data.newsapi import NewsApiProvider
from nocharts.data.reddit import RedditProvider
from nocharts.errors import ErrorKind, NoChartsError
from nocharts.processing.enrich import build_timeline, process_articles, summarize_news
from nocharts.resilience.rate_limiter import CooldownTracker, FixedWindowRateLimiter

logger = structlog.get_logger(__name__)

DEFAULT_NEWS_PAGE_SIZE = 5


def utc_now() -> datetime:
    """Current time in UTC."""
    return datetime.now(UTC)


@dataclass
class NewsResult:
    """Outcome of a news fallback run.

    Attributes:
        articles: Articles from the first provider that succeeded.
        source: Name of that provider, None when all failed.
        errors: Failures of the providers tried before it.
    """

    articles: tuple[Article, ...] = ()
    source: str | None = None
    errors: list[NoChartsError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.source is not None


class NewsFallbackChain:
    """Tries news providers in order until one returns articles.

    A failure whose kind is in ``continue_on`` moves on to the next
    provider; any other kind stops the chain. By default every kind
    continues. When nothing succeeds the result is empty, never an error.

    Example:
        chain = NewsFallbackChain([reddit, newsapi, marketaux])
        result = await chain.fetch("AAPL", query="Apple Inc.")
        print(result.source, len(result.articles))
    """

    def __init__(
        self,
        providers: Sequence[StockDataProvider[tuple[Article, ...]]],
        continue_on: frozenset[ErrorKind] = frozenset(ErrorKind),
    ) -> None:
        self.providers = tuple(providers)
        self.continue_on = continue_on
        self._logger = logger.bind(component="news_fallback_chain")

    async def fetch(
        self,
        ticker: str,
        query: str | None = None,
        page_size: int = DEFAULT_NEWS_PAGE_SIZE,
    ) -> NewsResult:
        """Fetch news from the first provider that succeeds.

        Args:
            ticker: Validated ticker symbol.
            query: Search term, usually the company display name.
            page_size: Articles to request.

        Returns:
            NewsResult; empty with errors recorded when all providers fail.
        """
        result = NewsResult()

        for position, provider in enumerate(self.providers):
            outcome = await provider.fetch(ticker, query=query, page_size=page_size)

            if outcome.ok:
                result.articles = tuple(outcome.value or ())
                result.source = outcome.provider
                self._logger.info(
                    "news_fetched",
                    ticker=ticker,
                    provider=outcome.provider,
                    fallback_position=position,
                    article_count=len(result.articles),
                )
                return result

            assert outcome.error is not None
            result.errors.append(outcome.error)
            self._logger.warning(
                "news_provider_failed",
                ticker=ticker,
                provider=outcome.provider,
                kind=outcome.error.kind.value,
                error=outcome.error.message,
            )

            if outcome.error.kind not in self.continue_on:
                break

        self._logger.warning("news_unavailable", ticker=ticker, attempts=len(result.errors))
        return result


class StockAggregator:
    """Builds the canonical record for a ticker.

    The profile is fetched first and alone; its display name becomes the
    news search term. Quote, financials, earnings and news are then fetched
    concurrently and each may fail without failing the aggregation. Only an
    invalid ticker or a failed profile fetch raises.

    Example:
        async with create_aggregator(settings) as aggregator:
            record = await aggregator.aggregate("aapl")
            print(record.profile.name, record.quote and record.quote.price)
    """

    def __init__(
        self,
        providers: ProviderSet,
        cache: CacheManager | None = None,
        rate_limiter: FixedWindowRateLimiter | None = None,
        news_enabled: bool = True,
        sentiment_enabled: bool = True,
        timeline_enabled: bool = True,
        news_page_size: int = DEFAULT_NEWS_PAGE_SIZE,
        deduplicate: bool = True,
        http_client: httpx.AsyncClient | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the aggregator.

        Args:
            providers: Adapters by data kind.
            cache: Cache shared with the adapters, for stats and clearing.
            rate_limiter: Limiter shared with the adapters, for stats.
            news_enabled: Fetch news at all.
            sentiment_enabled: Score news sentiment.
            timeline_enabled: Build the timeline.
            news_page_size: Articles requested per news provider.
            deduplicate: Share one in-flight aggregation per ticker.
            http_client: Client to close with the aggregator.
            clock: Source of ``fetched_at``.
        """
        self.providers = providers
        self.news_chain = NewsFallbackChain(providers.news)
        self._cache = cache
        self._limiter = rate_limiter
        self.news_enabled = news_enabled
        self.sentiment_enabled = sentiment_enabled
        self.timeline_enabled = timeline_enabled
        self.news_page_size = news_page_size
        self.deduplicate = deduplicate
        self._http_client = http_client
        self._clock = clock
        self._in_flight: dict[str, asyncio.Task[StockRecord]] = {}
        self._logger = logger.bind(component="stock_aggregator")

        # Track aggregation and fallback stats
        self._stats = {
            "aggregations": 0,
            "profile_failures": 0,
            "partial_records": 0,
            "news_primary": 0,
            "news_fallback": 0,
            "news_unavailable": 0,
            "deduplicated": 0,
        }

    @property
    def stats(self) -> dict[str, int]:
        """Get aggregation statistics."""
        return self._stats.copy()

    def reset_stats(self) -> None:
        """Reset aggregation statistics."""
        for key in self._stats:
            self._stats[key] = 0

    @property
    def in_flight(self) -> list[str]:
        """Tickers currently being aggregated."""
        return list(self._in_flight)

    async def aggregate(self, ticker: str) -> StockRecord:
        """Fetch, merge and enrich all data for one ticker.

        Args:
            ticker: Ticker symbol in any case, e.g. "aapl".

        Returns:
            Immutable StockRecord; failed sub-fetches are None or empty and
            listed in ``failures``.

        Raises:
            InvalidTickerError: If the ticker fails the symbol grammar.
            NoChartsError: The profile fetch error when the profile fails.
        """
        symbol = validate_ticker(ticker)

        if not self.deduplicate:
            return await self._aggregate(symbol)

        task = self._in_flight.get(symbol)
        if task is None:
            task = asyncio.create_task(self._aggregate(symbol))
            self._in_flight[symbol] = task
            task.add_done_callback(lambda _: self._in_flight.pop(symbol, None))
        else:
            self._stats["deduplicated"] += 1
            self._logger.debug("aggregation_joined", symbol=symbol)

        # One caller being cancelled must not cancel the shared task
        return await asyncio.shield(task)

    async def get_comprehensive_stock_data(self, ticker: str) -> StockRecord:
        """Caller-facing alias of aggregate()."""
        return await self.aggregate(ticker)

    async def _aggregate(self, symbol: str) -> StockRecord:
        self._stats["aggregations"] += 1
        self._logger.info("aggregation_started", symbol=symbol)

        profile_result = await self.providers.profile.fetch(symbol)
        if not profile_result.ok:
            self._stats["profile_failures"] += 1
            assert profile_result.error is not None
            self._logger.error(
                "profile_fetch_failed",
                symbol=symbol,
                kind=profile_result.error.kind.value,
                error=profile_result.error.message,
            )
            raise profile_result.error

        profile = profile_result.value
        query = profile.name or symbol

        quote_result, financials_result, earnings_result, news_result = await asyncio.gather(
            self.providers.quote.fetch(symbol),
            self.providers.financials.fetch(symbol),
            self.providers.earnings.fetch(symbol),
            self._fetch_news(symbol, query),
        )

        failures = [
            _failure(component, result)
            for component, result in (
                ("quote", quote_result),
                ("financials", financials_result),
                ("earnings", earnings_result),
            )
            if not result.ok
        ]
        if self.news_enabled and not news_result.ok:
            failures.extend(
                FetchFailure(
                    component="news",
                    kind=error.kind.value,
                    message=error.message,
                    provider=error.provider,
                )
                for error in news_result.errors
            )

        earnings = earnings_result.value if earnings_result.ok else None
        news_items = process_articles(news_result.articles, sentiment_enabled=self.sentiment_enabled)
        timeline = build_timeline(news_items, earnings) if self.timeline_enabled else []

        record = StockRecord(
            symbol=symbol,
            profile=profile,
            quote=quote_result.value if quote_result.ok else None,
            financials=financials_result.value if financials_result.ok else None,
            earnings=tuple(earnings) if earnings is not None else None,
            news_items=tuple(news_items),
            timeline=tuple(timeline),
            news_summary=summarize_news(news_items),
            news_source=news_result.articles[0].provider if news_result.articles else None,
            failures=tuple(failures),
            fetched_at=self._clock(),
        )

        if failures:
            self._stats["partial_records"] += 1
        self._logger.info(
            "aggregation_completed",
            symbol=symbol,
            news_source=news_result.source,
            news_count=len(news_items),
            timeline_count=len(timeline),
            failed=record.failed_fields,
        )
        return record

    async def _fetch_news(self, symbol: str, query: str) -> NewsResult:
        if not self.news_enabled:
            return NewsResult()

        result = await self.news_chain.fetch(symbol, query=query, page_size=self.news_page_size)
        if not result.ok:
            self._stats["news_unavailable"] += 1
        elif result.errors:
            self._stats["news_fallback"] += 1
        else:
            self._stats["news_primary"] += 1
        return result

    async def search_companies(self, query: str) -> list[SymbolMatch]:
        """Look up companies by name or symbol.

        Raises:
            NoChartsError: If the search provider fails.
        """
        query = " ".join(query.split())
        if not query or self.providers.search is None:
            return []

        result: ProviderResult[Any] = await self.providers.search.fetch(query)
        return list(result.unwrap())

    def clear_cache(self, symbol: str | None = None) -> int:
        """Drop cached responses for one symbol, or everything.

        Returns:
            Number of entries dropped.
        """
        if self._cache is None:
            return 0
        if symbol is not None:
            return self._cache.invalidate_symbol(symbol)

        count = self._cache.size
        self._cache.clear()
        return count

    def cache_stats(self) -> dict[str, Any]:
        """Cache metrics and rate-limit window status."""
        return {
            "cache": self._cache.get_metrics() if self._cache else None,
            "rate_limit": self._limiter.get_status() if self._limiter else None,
            "aggregator": self.stats,
        }

    async def close(self) -> None:
        """Close every provider and the shared HTTP client."""
        for provider in self.providers.all():
            close = getattr(provider, "close", None)
            if close is not None:
                await close()

        if self._http_client is not None and not self._http_client.is_closed:
            await self._http_client.aclose()

    async def __aenter__(self) -> "StockAggregator":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()


def _failure(component: str, result: ProviderResult[Any]) -> FetchFailure:
    assert result.error is not None
    return FetchFailure(
        component=component,
        kind=result.error.kind.value,
        message=result.error.message,
        provider=result.provider,
    )


def create_aggregator(
    settings: Settings | None = None,
    http_client: httpx.AsyncClient | None = None,
    token_store: TokenStore | None = None,
) -> StockAggregator:
    """Wire an aggregator from settings.

    Real adapters share one cache, one rate limiter, one cooldown tracker and
    one HTTP client. With ``MOCK_MODE`` the fixture providers are used instead.

    Args:
        settings: Settings to use. Defaults to the environment.
        http_client: HTTP client to share. Created when omitted.
        token_store: Reddit token store. Defaults to TOKEN_STORAGE_PATH.

    Returns:
        Configured StockAggregator.
    """
    settings = settings or Settings.from_env()

    cache = CacheManager(
        config=CacheConfig(default_ttl=settings.CACHE_DURATION),
        enabled=settings.CACHING_ENABLED,
    )
    limiter = FixedWindowRateLimiter(max_per_minute=settings.MAX_REQUESTS_PER_MINUTE)

    flags = {
        "news_enabled": settings.NEWS_ENABLED,
        "sentiment_enabled": settings.SENTIMENT_ENABLED,
        "timeline_enabled": settings.TIMELINE_ENABLED,
        "news_page_size": settings.NEWS_PAGE_SIZE,
    }

    if settings.MOCK_MODE:
        logger.info("aggregator_created", mode="mock")
        return StockAggregator(create_mock_providers(), cache=cache, rate_limiter=limiter, **flags)

    # Cooldowns must survive even when response caching is off
    cooldowns = CooldownTracker(
        cache if settings.CACHING_ENABLED else None,
        cooldown_seconds=settings.RATE_LIMIT_COOLDOWN,
    )
    owns_client = http_client is None
    client = http_client or httpx.AsyncClient(timeout=settings.PROVIDER_TIMEOUT)

    if token_store is None:
        storage = (
            FileTokenStorage(settings.TOKEN_STORAGE_PATH)
            if settings.TOKEN_STORAGE_PATH
            else MemoryTokenStorage()
        )
        token_store = TokenStore(storage)

    shared: dict[str, Any] = {
        "http_client": client,
        "cache": cache,
        "rate_limiter": limiter,
        "cooldowns": cooldowns,
        "timeout": settings.PROVIDER_TIMEOUT,
    }
    finnhub = {"api_key": settings.FINNHUB_API_KEY, "base_url": settings.FINNHUB_BASE_URL}

    providers = ProviderSet(
        profile=FinnhubProfileProvider(**finnhub, **shared),
        quote=FinnhubQuoteProvider(**finnhub, **shared),
        financials=FinnhubFinancialsProvider(**finnhub, **shared),
        earnings=FinnhubEarningsProvider(**finnhub, **shared),
        news=(
            RedditProvider(
                token_store=token_store,
                base_url=settings.REDDIT_BASE_URL,
                user_agent=settings.REDDIT_USER_AGENT,
                **shared,
            ),
            NewsApiProvider(
                api_key=settings.NEWS_API_KEY,
                base_url=settings.NEWS_API_BASE_URL,
                **shared,
            ),
            MarketauxProvider(
                api_key=settings.MARKETAUX_API_KEY,
                base_url=settings.MARKETAUX_BASE_URL,
                **shared,
            ),
        ),
        search=FinnhubSymbolSearch(**finnhub, **shared),
    )

    logger.info(
        "aggregator_created",
        mode="live",
        news_providers=[provider.name for provider in providers.news],
        caching=settings.CACHING_ENABLED,
    )
    return StockAggregator(
        providers,
        cache=cache,
        rate_limiter=limiter,
        http_client=client if owns_client else None,
        **flags,
    )
