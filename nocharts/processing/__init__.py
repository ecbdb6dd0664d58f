"""Normalization and enrichment of aggregated stock data.

This module contains:
- Keyword sentiment scoring and news categorization
- Timeline construction and news statistics
- Display formatting
"""

from nocharts.processing.enrich import (
    build_timeline,
    filter_news_by_sentiment,
    group_news_by_category,
    process_articles,
    sort_news_by_date,
    summarize_news,
)
from nocharts.processing.formatting import (
    NOT_AVAILABLE,
    format_currency,
    format_for_display,
    format_large_currency,
    format_market_cap,
    format_number,
    format_percentage,
    format_timeline_event,
    relative_time,
    truncate_text,
)
from nocharts.processing.sentiment import analyze_sentiment, categorize_news, sentiment_score

__all__ = [
    # Sentiment
    "analyze_sentiment",
    "categorize_news",
    "sentiment_score",
    # Enrichment
    "build_timeline",
    "filter_news_by_sentiment",
    "group_news_by_category",
    "process_articles",
    "sort_news_by_date",
    "summarize_news",
    # Formatting
    "NOT_AVAILABLE",
    "format_currency",
    "format_for_display",
    "format_large_currency",
    "format_market_cap",
    "format_number",
    "format_percentage",
    "format_timeline_event",
    "relative_time",
    "truncate_text",
]
