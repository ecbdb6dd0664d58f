"""Fixture-backed providers for offline runs and tests.

Mock mode is wired by handing these providers to the aggregator instead of
the HTTP adapters; production code never branches on a mock flag.
"""

import asyncio
from collections.abc import Callable
from datetime import UTC, date, datetime
from typing import Any, Generic, TypeVar

from nocharts.data.base import ProviderResult, ProviderSet, unexpected_error
from nocharts.data.models import (
    Article,
    BasicFinancials,
    CompanyProfile,
    DataSource,
    EarningsReport,
    Quote,
    SymbolMatch,
)
from nocharts.errors import NoChartsError, NoDataAvailableError

T = TypeVar("T")

# Fixture profiles; market caps are in millions, as the live provider reports them
MOCK_PROFILES: dict[str, dict[str, Any]] = {
    "AAPL": {
        "name": "Apple Inc.",
        "sector": "Technology",
        "industry": "Consumer Electronics",
        "market_cap_millions": 3_000_000,
        "pe_ratio": 28.5,
        "dividend_yield": 0.5,
    },
    "TSLA": {
        "name": "Tesla Inc.",
        "sector": "Consumer Discretionary",
        "industry": "Auto Manufacturers",
        "market_cap_millions": 800_000,
        "pe_ratio": 75.2,
        "dividend_yield": 0.0,
    },
    "MSFT": {
        "name": "Microsoft Corporation",
        "sector": "Technology",
        "industry": "Software",
        "market_cap_millions": 2_500_000,
        "pe_ratio": 32.1,
        "dividend_yield": 0.8,
    },
    "GOOGL": {
        "name": "Alphabet Inc.",
        "sector": "Technology",
        "industry": "Internet Content & Information",
        "market_cap_millions": 1_800_000,
        "pe_ratio": 25.8,
        "dividend_yield": 0.0,
    },
    "AMZN": {
        "name": "Amazon.com Inc.",
        "sector": "Consumer Discretionary",
        "industry": "Internet Retail",
        "market_cap_millions": 1_600_000,
        "pe_ratio": 45.2,
        "dividend_yield": 0.0,
    },
}

# open, high, low, price, previous close, change, change percent
MOCK_QUOTES: dict[str, tuple[float, float, float, float, float, float, float]] = {
    "AAPL": (175.50, 178.20, 174.80, 176.85, 175.20, 1.65, 0.94),
    "TSLA": (245.30, 248.90, 243.10, 246.75, 244.50, 2.25, 0.92),
    "MSFT": (380.20, 383.50, 378.90, 381.75, 379.80, 1.95, 0.51),
    "GOOGL": (142.80, 144.20, 141.50, 143.25, 142.10, 1.15, 0.81),
    "AMZN": (155.40, 157.80, 154.20, 156.90, 154.60, 2.30, 1.49),
}

MOCK_QUOTE_DATE = datetime(2024, 1, 15, 21, 0, tzinfo=UTC)

# title, description, url, published_at, source
MOCK_NEWS: dict[str, list[tuple[str, str, str, str, str]]] = {
    "AAPL": [
        (
            "Apple Reports Record Q4 Earnings, iPhone Sales Surge",
            "Apple Inc. reported record-breaking fourth-quarter earnings, with iPhone sales "
            "exceeding expectations and services revenue hitting new highs.",
            "https://example.com/apple-earnings-2024",
            "2024-01-15T10:30:00+00:00",
            "Tech News Daily",
        ),
        (
            "Apple Vision Pro Launch Date Announced",
            "Apple has officially announced the launch date for its highly anticipated "
            "Vision Pro mixed reality headset.",
            "https://example.com/apple-vision-pro-launch",
            "2024-01-14T15:45:00+00:00",
            "TechCrunch",
        ),
        (
            "Apple Faces Regulatory Scrutiny Over App Store Policies",
            "Regulators are investigating Apple's App Store policies and their impact on "
            "competition in the mobile app ecosystem.",
            "https://example.com/apple-regulation-app-store",
            "2024-01-13T09:15:00+00:00",
            "Financial Times",
        ),
    ],
    "TSLA": [
        (
            "Tesla Delivers Record Number of Vehicles in Q4",
            "Tesla Inc. delivered a record number of vehicles in the fourth quarter, "
            "exceeding analyst expectations.",
            "https://example.com/tesla-deliveries-q4",
            "2024-01-15T11:20:00+00:00",
            "Automotive News",
        ),
        (
            "Tesla Announces New Gigafactory Location",
            "Tesla has announced plans to build a new Gigafactory in Mexico, expanding its "
            "global manufacturing footprint.",
            "https://example.com/tesla-mexico-gigafactory",
            "2024-01-14T14:30:00+00:00",
            "Reuters",
        ),
        (
            "Tesla Faces Competition from Traditional Automakers",
            "Traditional automakers are ramping up their electric vehicle offerings, posing "
            "increased competition for Tesla.",
            "https://example.com/tesla-competition-automakers",
            "2024-01-13T16:45:00+00:00",
            "Wall Street Journal",
        ),
    ],
    "MSFT": [
        (
            "Microsoft Cloud Revenue Continues Strong Growth",
            "Microsoft's cloud computing division reported strong revenue growth, driven by "
            "Azure and Office 365 subscriptions.",
            "https://example.com/microsoft-cloud-growth",
            "2024-01-15T12:10:00+00:00",
            "Bloomberg",
        ),
        (
            "Microsoft Acquires AI Startup for $10 Billion",
            "Microsoft has acquired a leading AI startup to strengthen its artificial "
            "intelligence capabilities.",
            "https://example.com/microsoft-ai-acquisition",
            "2024-01-14T13:25:00+00:00",
            "Tech News",
        ),
        (
            "Microsoft Faces Antitrust Concerns Over Gaming Division",
            "Regulators are reviewing Microsoft's gaming division acquisitions for potential "
            "antitrust violations.",
            "https://example.com/microsoft-antitrust-gaming",
            "2024-01-13T10:50:00+00:00",
            "CNBC",
        ),
    ],
}

# period, year, quarter, estimate, actual
MOCK_EARNINGS: dict[str, list[tuple[str, int, int, float, float]]] = {
    "AAPL": [
        ("2023-12-31", 2024, 1, 2.10, 2.18),
        ("2023-09-30", 2023, 4, 1.39, 1.46),
    ],
    "MSFT": [
        ("2023-12-31", 2024, 2, 2.78, 2.93),
        ("2023-09-30", 2024, 1, 2.65, 2.99),
    ],
}


class MockProvider(Generic[T]):
    """Base for fixture providers.

    Args:
        name: Provider name reported in results.
        error: When set, every fetch fails with this error.
        delay: Seconds to sleep before answering.
    """

    def __init__(
        self,
        name: str = DataSource.MOCK.value,
        error: NoChartsError | None = None,
        delay: float = 0.0,
    ) -> None:
        self.name = name
        self.error = error
        self.delay = delay
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def lookup(self, ticker: str, **params: Any) -> T:
        raise NotImplementedError

    async def fetch(self, ticker: str, **params: Any) -> ProviderResult[T]:
        self.calls.append((ticker, params))
        if self.delay:
            await asyncio.sleep(self.delay)

        try:
            if self.error is not None:
                raise self.error
            value = self.lookup(ticker, **params)
        except NoChartsError as e:
            if e.provider is None:
                e.provider = self.name
            return ProviderResult.failure(self.name, e)
        except Exception as e:
            return ProviderResult.failure(self.name, unexpected_error(self.name, e))
        return ProviderResult.success(self.name, value)

    @property
    def call_count(self) -> int:
        return len(self.calls)


class StaticProvider(MockProvider[T]):
    """Returns the same value (or the result of a factory) for every ticker."""

    def __init__(
        self,
        value: T | Callable[[str], T] | None = None,
        name: str = DataSource.MOCK.value,
        error: NoChartsError | None = None,
        delay: float = 0.0,
    ) -> None:
        super().__init__(name=name, error=error, delay=delay)
        self.value = value

    def lookup(self, ticker: str, **params: Any) -> T:
        if callable(self.value):
            return self.value(ticker)
        if self.value is None:
            raise NoDataAvailableError(f"No data available for {ticker}", provider=self.name)
        return self.value


class MockProfileProvider(MockProvider[CompanyProfile]):
    def lookup(self, ticker: str, **params: Any) -> CompanyProfile:
        fixture = MOCK_PROFILES.get(ticker)
        if fixture is None:
            return CompanyProfile(
                symbol=ticker,
                name=f"{ticker} Corporation",
                exchange="NASDAQ",
                country="USA",
                sector="Technology",
                industry="General",
                market_cap_millions=1_000,
                source=DataSource.MOCK,
            )

        return CompanyProfile(
            symbol=ticker,
            name=fixture["name"],
            exchange="NASDAQ",
            country="USA",
            sector=fixture["sector"],
            industry=fixture["industry"],
            market_cap_millions=fixture["market_cap_millions"],
            source=DataSource.MOCK,
        )


class MockQuoteProvider(MockProvider[Quote]):
    def lookup(self, ticker: str, **params: Any) -> Quote:
        open_, high, low, price, previous_close, change, change_percent = MOCK_QUOTES.get(
            ticker, (100.00, 105.00, 98.00, 102.50, 100.00, 2.50, 2.50)
        )
        return Quote(
            symbol=ticker,
            price=price,
            change=change,
            change_percent=change_percent,
            high=high,
            low=low,
            open=open_,
            previous_close=previous_close,
            timestamp=MOCK_QUOTE_DATE,
            source=DataSource.MOCK,
        )


class MockFinancialsProvider(MockProvider[BasicFinancials]):
    def lookup(self, ticker: str, **params: Any) -> BasicFinancials:
        fixture = MOCK_PROFILES.get(ticker, {"pe_ratio": 15.0, "dividend_yield": 1.0})
        return BasicFinancials(
            symbol=ticker,
            pe_ratio=fixture["pe_ratio"],
            dividend_yield=fixture["dividend_yield"],
            market_cap_millions=fixture.get("market_cap_millions", 1_000),
            source=DataSource.MOCK,
        )


class MockEarningsProvider(MockProvider[tuple[EarningsReport, ...]]):
    def lookup(self, ticker: str, **params: Any) -> tuple[EarningsReport, ...]:
        fixture = MOCK_EARNINGS.get(ticker)
        if not fixture:
            raise NoDataAvailableError(f"No mock earnings for {ticker}", provider=self.name)

        return tuple(
            EarningsReport(
                symbol=ticker,
                period=date.fromisoformat(period),
                year=year,
                quarter=quarter,
                estimate=estimate,
                actual=actual,
                surprise=round(actual - estimate, 4),
                surprise_percent=round((actual - estimate) / estimate * 100, 4),
                source=DataSource.MOCK,
            )
            for period, year, quarter, estimate, actual in fixture
        )


class MockNewsProvider(MockProvider[tuple[Article, ...]]):
    def lookup(self, ticker: str, **params: Any) -> tuple[Article, ...]:
        page_size = params.get("page_size", 5)
        fixture = MOCK_NEWS.get(ticker)
        if fixture is None:
            slug = ticker.lower()
            fixture = [
                (
                    f"{ticker} Reports Quarterly Results",
                    f"Mock news article about {ticker} quarterly performance and market outlook.",
                    f"https://example.com/{slug}-news",
                    "2024-01-15T10:00:00+00:00",
                    "Mock News",
                ),
                (
                    f"{ticker} Announces New Product Launch",
                    f"Mock article about {ticker} launching new products and services.",
                    f"https://example.com/{slug}-product",
                    "2024-01-14T15:00:00+00:00",
                    "Mock Business",
                ),
            ]

        return tuple(
            Article(
                title=title,
                description=description,
                url=url,
                source=source,
                published_at=datetime.fromisoformat(published_at),
                provider=DataSource.MOCK,
            )
            for title, description, url, published_at, source in fixture[:page_size]
        )


class MockSymbolSearch(MockProvider[tuple[SymbolMatch, ...]]):
    def lookup(self, ticker: str, **params: Any) -> tuple[SymbolMatch, ...]:
        query = ticker.lower()
        return tuple(
            SymbolMatch(symbol=symbol, name=fixture["name"], type="Common Stock")
            for symbol, fixture in MOCK_PROFILES.items()
            if query in symbol.lower() or query in fixture["name"].lower()
        )


def create_mock_providers(delay: float = 0.0) -> ProviderSet:
    """Build a full provider set backed by fixtures."""
    return ProviderSet(
        profile=MockProfileProvider(delay=delay),
        quote=MockQuoteProvider(delay=delay),
        financials=MockFinancialsProvider(delay=delay),
        earnings=MockEarningsProvider(delay=delay),
        news=(MockNewsProvider(delay=delay),),
        search=MockSymbolSearch(delay=delay),
    )
