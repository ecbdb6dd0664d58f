"""Data layer for stock research aggregation.

This module provides:
- Provider adapters: Finnhub, Reddit, NewsAPI, Marketaux
- StockAggregator: Fallback chain orchestration and record assembly
- Mock providers for offline runs
- Data models: CompanyProfile, Quote, BasicFinancials, EarningsReport, StockRecord
"""

from nocharts.data.aggregator import NewsFallbackChain, StockAggregator, create_aggregator
from nocharts.data.base import BaseProvider, ProviderResult, ProviderSet
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
    BasicFinancials,
    CompanyProfile,
    DataSource,
    EarningsReport,
    NewsItem,
    Quote,
    StockRecord,
    SymbolMatch,
    TimelineEvent,
    validate_ticker,
)
from nocharts.data.newsapi import NewsApiProvider
from nocharts.data.reddit import RedditProvider

__all__ = [
    # Aggregation
    "NewsFallbackChain",
    "StockAggregator",
    "create_aggregator",
    "create_mock_providers",
    # Providers
    "BaseProvider",
    "FinnhubEarningsProvider",
    "FinnhubFinancialsProvider",
    "FinnhubProfileProvider",
    "FinnhubQuoteProvider",
    "FinnhubSymbolSearch",
    "MarketauxProvider",
    "NewsApiProvider",
    "ProviderResult",
    "ProviderSet",
    "RedditProvider",
    # Models
    "Article",
    "BasicFinancials",
    "CompanyProfile",
    "DataSource",
    "EarningsReport",
    "NewsItem",
    "Quote",
    "StockRecord",
    "SymbolMatch",
    "TimelineEvent",
    "validate_ticker",
]
