"""Display formatting for canonical stock records.

Numeric and text formatters render None as ``NOT_AVAILABLE`` instead of
raising.
"""

from datetime import UTC, datetime
from typing import Any

from nocharts.data.models import StockRecord, TimelineEvent, millions_to_absolute

NOT_AVAILABLE = "N/A"

CURRENCY_SYMBOLS = {"USD": "$", "EUR": "€", "GBP": "£", "JPY": "¥"}

# (threshold, suffix), largest first
MAGNITUDES = (
    (1e12, "T"),
    (1e9, "B"),
    (1e6, "M"),
)


def _with_currency(text: str, negative: bool, currency: str) -> str:
    symbol = CURRENCY_SYMBOLS.get(currency)
    sign = "-" if negative else ""
    if symbol:
        return f"{sign}{symbol}{text}"
    return f"{sign}{text} {currency}"


def format_currency(amount: float | None, currency: str = "USD") -> str:
    """Format an amount with two decimals and thousands separators, e.g. "$1,234.50"."""
    if amount is None:
        return NOT_AVAILABLE
    return _with_currency(f"{abs(amount):,.2f}", amount < 0, currency)


def format_large_currency(amount: float | None, currency: str = "USD") -> str:
    """Format a large amount compactly, e.g. 3e12 -> "$3.00T"."""
    if amount is None:
        return NOT_AVAILABLE

    for threshold, suffix in MAGNITUDES:
        if abs(amount) >= threshold:
            return _with_currency(f"{abs(amount) / threshold:.2f}{suffix}", amount < 0, currency)
    return format_currency(amount, currency)


def format_market_cap(millions: float | None, currency: str = "USD") -> str:
    """Format a market cap reported in millions.

    3,000,000 (millions) is three trillion, so this returns "$3.00T".
    """
    if millions is None:
        return NOT_AVAILABLE
    return format_large_currency(millions_to_absolute(millions), currency)


def format_percentage(value: float | None, decimals: int = 2, signed: bool = False) -> str:
    """Format a value already expressed in percent, e.g. 0.94 -> "0.94%"."""
    if value is None:
        return NOT_AVAILABLE
    sign = "+" if signed and value > 0 else ""
    return f"{sign}{value:.{decimals}f}%"


def format_number(value: float | None, decimals: int | None = None) -> str:
    """Format a number with thousands separators."""
    if value is None:
        return NOT_AVAILABLE
    if decimals is not None:
        return f"{value:,.{decimals}f}"
    if isinstance(value, float) and value.is_integer():
        return f"{int(value):,}"
    return f"{value:,}"


def truncate_text(text: str | None, max_length: int = 100) -> str:
    """Cut text to max_length characters and append an ellipsis."""
    if not text:
        return ""
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."


def relative_time(value: datetime | None, now: datetime | None = None) -> str:
    """Describe how long ago a moment was, e.g. "5m ago".

    Anything older than 30 days is shown as its date.
    """
    if value is None:
        return "Unknown time"

    value = value if value.tzinfo else value.replace(tzinfo=UTC)
    now = now or datetime.now(UTC)
    seconds = int((now - value).total_seconds())

    if seconds < 60:
        return "just now"
    if seconds < 3600:
        return f"{seconds // 60}m ago"
    if seconds < 86400:
        return f"{seconds // 3600}h ago"
    if seconds < 30 * 86400:
        return f"{seconds // 86400}d ago"
    return value.date().isoformat()


def format_timeline_event(event: TimelineEvent, now: datetime | None = None) -> dict[str, Any]:
    """Flatten a timeline event for display."""
    if event.kind == "earnings":
        badge = (
            f"Surprise {format_percentage(event.surprise_percent, signed=True)}"
            if event.surprise_percent is not None
            else "Earnings"
        )
    elif event.sentiment is not None:
        badge = event.sentiment.label
    else:
        badge = event.category.value if event.category else "news"

    return {
        "kind": event.kind,
        "date": event.date.date().isoformat(),
        "relative_time": relative_time(event.date, now),
        "title": event.title,
        "description": truncate_text(event.description, 200),
        "badge": badge,
        "source": event.source,
        "url": event.url,
    }


def format_for_display(record: StockRecord, now: datetime | None = None) -> dict[str, Any]:
    """Flatten a stock record into display strings.

    Args:
        record: Canonical record from the aggregator.
        now: Reference time for relative timestamps.

    Returns:
        Dict of display-ready values; missing numbers are "N/A".
    """
    profile = record.profile
    quote = record.quote
    financials = record.financials
    currency = profile.currency or "USD"

    change = quote.change if quote else None
    market_cap_millions = profile.market_cap_millions
    if market_cap_millions is None and financials is not None:
        market_cap_millions = financials.market_cap_millions

    return {
        "symbol": record.symbol,
        "name": profile.name or record.symbol,
        "exchange": profile.exchange or NOT_AVAILABLE,
        "price": format_currency(quote.price if quote else None, currency),
        "change": format_currency(change, currency),
        "change_percent": format_percentage(quote.change_percent if quote else None, signed=True),
        "is_positive": change is not None and change > 0,
        "is_negative": change is not None and change < 0,
        "day_range": (
            f"{format_currency(quote.low, currency)} - {format_currency(quote.high, currency)}"
            if quote
            else NOT_AVAILABLE
        ),
        "market_cap": format_market_cap(market_cap_millions, currency),
        "pe_ratio": format_number(financials.pe_ratio if financials else None, decimals=2),
        "dividend_yield": format_percentage(financials.dividend_yield if financials else None),
        "beta": format_number(financials.beta if financials else None, decimals=2),
        "week_52_range": (
            f"{format_currency(financials.week_52_low, currency)} - "
            f"{format_currency(financials.week_52_high, currency)}"
            if financials
            else NOT_AVAILABLE
        ),
        "sector": profile.sector or NOT_AVAILABLE,
        "industry": profile.industry or NOT_AVAILABLE,
        "news_count": len(record.news_items),
        "news_source": record.news_source.value if record.news_source else NOT_AVAILABLE,
        "average_sentiment": record.news_summary.average_sentiment,
        "last_updated": relative_time(record.fetched_at, now),
        "unavailable": record.failed_fields,
    }
