"""Data models for stock research aggregation.

This module defines the Pydantic models shared by the provider adapters,
the normalizer and the aggregator, plus ticker validation.
"""

import re
from datetime import date, datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field

from nocharts.errors import InvalidTickerError

TICKER_PATTERN = re.compile(r"^[A-Z]{1,5}$")

MILLION = 1_000_000


def validate_ticker(ticker: Any) -> str:
    """Normalize and validate a ticker symbol.

    Whitespace is stripped and the symbol uppercased before the grammar
    check, so "aapl" is accepted as "AAPL".

    Args:
        ticker: Raw user input.

    Returns:
        The uppercase ticker.

    Raises:
        InvalidTickerError: If the input is not 1-5 ASCII letters.
    """
    if not isinstance(ticker, str):
        raise InvalidTickerError(ticker)

    cleaned = ticker.strip()
    if not cleaned.isascii():
        raise InvalidTickerError(ticker)

    cleaned = cleaned.upper()
    if not TICKER_PATTERN.fullmatch(cleaned):
        raise InvalidTickerError(ticker)

    return cleaned


def is_valid_ticker(ticker: Any) -> bool:
    """Check a ticker without raising."""
    try:
        validate_ticker(ticker)
    except InvalidTickerError:
        return False
    return True


def millions_to_absolute(value: float | None) -> float | None:
    """Convert a figure reported in millions to absolute units."""
    if value is None:
        return None
    return value * MILLION


class DataSource(str, Enum):
    """Source of stock data."""

    FINNHUB = "finnhub"
    REDDIT = "reddit"
    NEWSAPI = "newsapi"
    MARKETAUX = "marketaux"
    MOCK = "mock"


class CompanyProfile(BaseModel):
    """Company reference data.

    Attributes:
        symbol: Stock ticker symbol.
        name: Company display name.
        exchange: Listing exchange.
        currency: Trading currency.
        country: Country of incorporation.
        industry: Industry classification.
        sector: Sector classification.
        market_cap_millions: Market capitalization as reported, in millions.
        shares_outstanding: Shares outstanding, in millions.
        website: Company website URL.
        logo: Logo URL.
        ipo: IPO date as reported.
        source: Data source.
    """

    model_config = ConfigDict(frozen=True)

    symbol: str
    name: str
    exchange: str | None = None
    currency: str = "USD"
    country: str | None = None
    industry: str | None = None
    sector: str | None = None
    market_cap_millions: float | None = None
    shares_outstanding: float | None = None
    website: str | None = None
    logo: str | None = None
    ipo: str | None = None
    source: DataSource = DataSource.FINNHUB

    @computed_field  # type: ignore[prop-decorator]
    @property
    def market_cap(self) -> float | None:
        """Market capitalization in absolute currency units."""
        return millions_to_absolute(self.market_cap_millions)


class Quote(BaseModel):
    """Current session quote for a symbol.

    Attributes:
        symbol: Stock ticker symbol.
        price: Current/last price.
        change: Absolute change from previous close.
        change_percent: Percentage change from previous close.
        high: Day high.
        low: Day low.
        open: Opening price.
        previous_close: Previous day's close.
        timestamp: Provider timestamp of the quote.
        source: Data source.
    """

    model_config = ConfigDict(frozen=True)

    symbol: str
    price: float | None = None
    change: float | None = None
    change_percent: float | None = None
    high: float | None = None
    low: float | None = None
    open: float | None = None
    previous_close: float | None = None
    timestamp: datetime | None = None
    source: DataSource = DataSource.FINNHUB


class BasicFinancials(BaseModel):
    """Key ratios from the provider's metric bundle."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    pe_ratio: float | None = None
    dividend_yield: float | None = None
    price_to_book: float | None = None
    beta: float | None = None
    net_margin: float | None = None
    current_ratio: float | None = None
    revenue_growth: float | None = None
    week_52_high: float | None = None
    week_52_low: float | None = None
    market_cap_millions: float | None = None
    source: DataSource = DataSource.FINNHUB


class EarningsReport(BaseModel):
    """One reported earnings period.

    Attributes:
        symbol: Stock ticker symbol.
        period: Fiscal period end date.
        year: Fiscal year.
        quarter: Fiscal quarter.
        estimate: Consensus EPS estimate.
        actual: Reported EPS.
        surprise: actual - estimate.
        surprise_percent: Surprise relative to the estimate, in percent.
    """

    model_config = ConfigDict(frozen=True)

    symbol: str
    period: date
    year: int | None = None
    quarter: int | None = None
    estimate: float | None = None
    actual: float | None = None
    surprise: float | None = None
    surprise_percent: float | None = None
    source: DataSource = DataSource.FINNHUB


class SymbolMatch(BaseModel):
    """A symbol search hit."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    name: str
    type: str | None = None
    primary_exchange: str | None = None


class Article(BaseModel):
    """A news or discussion item as returned by a news adapter."""

    model_config = ConfigDict(frozen=True)

    title: str
    description: str = ""
    url: str = ""
    source: str = ""
    author: str | None = None
    published_at: datetime | None = None
    image_url: str | None = None
    provider: DataSource


SentimentLabel = Literal["positive", "negative", "neutral"]


class Sentiment(BaseModel):
    """Keyword sentiment score and its label."""

    model_config = ConfigDict(frozen=True)

    score: int = 0
    label: SentimentLabel = "neutral"


class NewsCategory(str, Enum):
    """Category assigned to a news item by keyword match."""

    EARNINGS = "earnings"
    MERGERS_ACQUISITIONS = "m&a"
    PRODUCT = "product"
    LEADERSHIP = "leadership"
    REGULATORY = "regulatory"
    MARKET = "market"
    GENERAL = "general"


class NewsItem(BaseModel):
    """An enriched news item.

    Sentiment and category are computed from the title and description,
    never taken from the provider.
    """

    model_config = ConfigDict(frozen=True)

    title: str
    description: str = ""
    url: str = ""
    source: str = ""
    author: str | None = None
    published_at: datetime | None = None
    image_url: str | None = None
    sentiment: Sentiment | None = None
    category: NewsCategory = NewsCategory.GENERAL
    provider: DataSource


class TimelineEvent(BaseModel):
    """A dated entry in the narrative timeline."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["news", "earnings"]
    date: datetime
    title: str
    description: str = ""
    url: str | None = None
    source: str | None = None
    category: NewsCategory | None = None
    sentiment: Sentiment | None = None
    estimate: float | None = None
    actual: float | None = None
    surprise: float | None = None
    surprise_percent: float | None = None


class NewsSummary(BaseModel):
    """Sentiment and category statistics over a set of news items."""

    model_config = ConfigDict(frozen=True)

    total: int = 0
    positive: int = 0
    negative: int = 0
    neutral: int = 0
    average_sentiment: float = 0.0
    categories: dict[str, int] = Field(default_factory=dict)


class FetchFailure(BaseModel):
    """Diagnostic record of a sub-fetch that degraded to null/empty."""

    model_config = ConfigDict(frozen=True)

    component: str
    kind: str
    message: str
    provider: str | None = None


class StockRecord(BaseModel):
    """Canonical record for one ticker, handed to the caller as a snapshot.

    Attributes:
        symbol: Stock ticker symbol.
        profile: Company profile (always present).
        quote: Quote, or None when the quote fetch failed.
        financials: Basic financials, or None on failure.
        earnings: Earnings history, or None on failure.
        news_items: Enriched news, empty when every news provider failed.
        timeline: News and earnings events, newest first.
        news_summary: Sentiment/category statistics for news_items.
        news_source: Provider that supplied the news, if any.
        failures: Sub-fetches that failed, for diagnostics.
        fetched_at: When the record was assembled.
    """

    model_config = ConfigDict(frozen=True)

    symbol: str
    profile: CompanyProfile
    quote: Quote | None = None
    financials: BasicFinancials | None = None
    earnings: tuple[EarningsReport, ...] | None = None
    news_items: tuple[NewsItem, ...] = ()
    timeline: tuple[TimelineEvent, ...] = ()
    news_summary: NewsSummary = Field(default_factory=NewsSummary)
    news_source: DataSource | None = None
    failures: tuple[FetchFailure, ...] = ()
    fetched_at: datetime

    @property
    def failed_fields(self) -> list[str]:
        """Names of sub-fetches that failed."""
        return [failure.component for failure in self.failures]
