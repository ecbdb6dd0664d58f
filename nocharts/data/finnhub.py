"""Finnhub adapters for profile, quote, financials, earnings and symbol search.

All Finnhub endpoints authenticate with a ``token`` query parameter and
report errors as ``{"error": "..."}``. Market capitalization and shares
outstanding are reported in millions.
"""

from datetime import UTC, date, datetime
from typing import Any

from nocharts.cache.manager import CacheKeyBuilder, CacheType
from nocharts.data.base import BaseProvider, ProviderRequest, to_float, to_int
from nocharts.data.models import (
    BasicFinancials,
    CompanyProfile,
    DataSource,
    EarningsReport,
    Quote,
    SymbolMatch,
)
from nocharts.errors import NoDataAvailableError, UpstreamError

DEFAULT_BASE_URL = "https://finnhub.io/api/v1"

EARNINGS_LIMIT = 10

# Finnhub metric name -> BasicFinancials field
METRIC_FIELDS: dict[str, str] = {
    "peTTM": "pe_ratio",
    "currentDividendYieldTTM": "dividend_yield",
    "pb": "price_to_book",
    "beta": "beta",
    "netProfitMarginTTM": "net_margin",
    "currentRatioQuarterly": "current_ratio",
    "revenueGrowthTTMYoy": "revenue_growth",
    "52WeekHigh": "week_52_high",
    "52WeekLow": "week_52_low",
    "marketCapitalization": "market_cap_millions",
}

QUOTE_PRICE_FIELDS = ("c", "h", "l", "o", "pc")


class FinnhubProvider(BaseProvider[Any]):
    """Shared request building for Finnhub endpoints."""

    name = "finnhub"
    #: Endpoint path relative to the base URL
    endpoint: str = ""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str = DEFAULT_BASE_URL,
        **kwargs: Any,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        super().__init__(**kwargs)

    @property
    def is_configured(self) -> bool:
        """Check if API key is configured."""
        return bool(self.api_key)

    def query_params(self, ticker: str, **params: Any) -> dict[str, Any]:
        """Endpoint query parameters, without the token."""
        return {"symbol": ticker}

    def build_request(self, ticker: str, **params: Any) -> ProviderRequest:
        if not self.api_key:
            raise UpstreamError(401, "FINNHUB_API_KEY not configured", provider=self.name)

        query = self.query_params(ticker, **params)
        query["token"] = self.api_key
        return ProviderRequest(url=f"{self.base_url}{self.endpoint}", params=query)


class FinnhubProfileProvider(FinnhubProvider):
    """Company profile from ``/stock/profile2``."""

    operation = "profile"
    endpoint = "/stock/profile2"
    cache_type = CacheType.PROFILE

    def normalize(self, ticker: str, payload: Any, **params: Any) -> CompanyProfile:
        if not payload:
            raise NoDataAvailableError(f"No profile available for symbol: {ticker}")

        return CompanyProfile(
            symbol=payload.get("ticker") or ticker,
            name=payload.get("name") or ticker,
            exchange=payload.get("exchange") or None,
            currency=payload.get("currency") or "USD",
            country=payload.get("country") or None,
            industry=payload.get("finnhubIndustry") or None,
            sector=payload.get("finnhubIndustry") or None,
            market_cap_millions=to_float(payload.get("marketCapitalization")),
            shares_outstanding=to_float(payload.get("shareOutstanding")),
            website=payload.get("weburl") or None,
            logo=payload.get("logo") or None,
            ipo=payload.get("ipo") or None,
            source=DataSource.FINNHUB,
        )


class FinnhubQuoteProvider(FinnhubProvider):
    """Real-time quote from ``/quote``.

    Finnhub answers unknown symbols with an all-zero quote rather than an
    error, so that case is reported as NoDataAvailable.
    """

    operation = "quote"
    endpoint = "/quote"
    cache_type = CacheType.QUOTE

    def normalize(self, ticker: str, payload: Any, **params: Any) -> Quote:
        if not payload or not any(to_float(payload.get(key)) for key in QUOTE_PRICE_FIELDS):
            raise NoDataAvailableError(f"No quote available for symbol: {ticker}")

        timestamp = to_int(payload.get("t"))
        return Quote(
            symbol=ticker,
            price=to_float(payload.get("c")),
            change=to_float(payload.get("d")),
            change_percent=to_float(payload.get("dp")),
            high=to_float(payload.get("h")),
            low=to_float(payload.get("l")),
            open=to_float(payload.get("o")),
            previous_close=to_float(payload.get("pc")),
            timestamp=datetime.fromtimestamp(timestamp, tz=UTC) if timestamp else None,
            source=DataSource.FINNHUB,
        )


class FinnhubFinancialsProvider(FinnhubProvider):
    """Key ratios from the ``/stock/metric`` bundle."""

    operation = "financials"
    endpoint = "/stock/metric"
    cache_type = CacheType.FINANCIALS

    def query_params(self, ticker: str, **params: Any) -> dict[str, Any]:
        return {"symbol": ticker, "metric": "all"}

    def normalize(self, ticker: str, payload: Any, **params: Any) -> BasicFinancials:
        metric = payload.get("metric") if isinstance(payload, dict) else None
        if not metric:
            raise NoDataAvailableError(f"No financials available for symbol: {ticker}")

        values = {
            field_name: to_float(metric.get(metric_name))
            for metric_name, field_name in METRIC_FIELDS.items()
        }
        return BasicFinancials(symbol=ticker, source=DataSource.FINNHUB, **values)


class FinnhubEarningsProvider(FinnhubProvider):
    """Reported EPS history from ``/stock/earnings``."""

    operation = "earnings"
    endpoint = "/stock/earnings"
    cache_type = CacheType.EARNINGS

    def query_params(self, ticker: str, **params: Any) -> dict[str, Any]:
        return {"symbol": ticker, "limit": params.get("limit", EARNINGS_LIMIT)}

    def normalize(
        self, ticker: str, payload: Any, **params: Any
    ) -> tuple[EarningsReport, ...]:
        if not isinstance(payload, list) or not payload:
            raise NoDataAvailableError(f"No earnings available for symbol: {ticker}")

        return tuple(parse_earnings(ticker, item) for item in payload)


class FinnhubSymbolSearch(FinnhubProvider):
    """Company lookup from ``/search``."""

    operation = "search"
    endpoint = "/search"
    cache_type = CacheType.SEARCH

    def cache_key(self, ticker: str, **params: Any) -> str:
        # "apple inc" and "Apple  Inc" share a key, kept apart from per-symbol data
        return CacheKeyBuilder.custom("search", self.name, "_".join(ticker.lower().split()))

    def query_params(self, ticker: str, **params: Any) -> dict[str, Any]:
        return {"q": ticker}

    def normalize(self, ticker: str, payload: Any, **params: Any) -> tuple[SymbolMatch, ...]:
        results = payload.get("result") or []
        return tuple(
            SymbolMatch(
                symbol=item["symbol"],
                name=item.get("description") or item["symbol"],
                type=item.get("type") or None,
                primary_exchange=item.get("primaryExchange") or None,
            )
            for item in results
        )


def parse_earnings(ticker: str, item: dict[str, Any]) -> EarningsReport:
    """Build an EarningsReport, computing the surprise when it is missing."""
    estimate = to_float(item.get("estimate"))
    actual = to_float(item.get("actual"))
    surprise = to_float(item.get("surprise"))
    surprise_percent = to_float(item.get("surprisePercent"))

    if surprise is None and actual is not None and estimate is not None:
        surprise = round(actual - estimate, 4)
    if surprise_percent is None and surprise is not None and estimate:
        surprise_percent = round(surprise / abs(estimate) * 100, 4)

    return EarningsReport(
        symbol=item.get("symbol") or ticker,
        period=date.fromisoformat(item["period"]),
        year=to_int(item.get("year")),
        quarter=to_int(item.get("quarter")),
        estimate=estimate,
        actual=actual,
        surprise=surprise,
        surprise_percent=surprise_percent,
        source=DataSource.FINNHUB,
    )
