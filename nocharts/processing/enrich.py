"""Turn provider articles and earnings into enriched news and a timeline.

Everything here is pure: no I/O and no clock reads, so results depend only
on the inputs.
"""

from collections.abc import Iterable, Sequence
from datetime import UTC, datetime, time
from typing import Literal

from nocharts.data.models import (
    Article,
    EarningsReport,
    NewsCategory,
    NewsItem,
    NewsSummary,
    SentimentLabel,
    TimelineEvent,
)
from nocharts.processing.formatting import NOT_AVAILABLE
from nocharts.processing.sentiment import analyze_sentiment, categorize_news


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=UTC)


def article_text(article: Article | NewsItem) -> str:
    """Title and description joined, the text that gets scored."""
    return f"{article.title} {article.description}".strip()


def process_articles(
    articles: Iterable[Article],
    sentiment_enabled: bool = True,
) -> list[NewsItem]:
    """Attach sentiment and category to provider articles.

    Args:
        articles: Articles from any news adapter.
        sentiment_enabled: When False, items carry no sentiment.

    Returns:
        NewsItems in the input order.
    """
    items = []
    for article in articles:
        text = article_text(article)
        items.append(
            NewsItem(
                title=article.title,
                description=article.description,
                url=article.url,
                source=article.source,
                author=article.author,
                published_at=_as_utc(article.published_at) if article.published_at else None,
                image_url=article.image_url,
                sentiment=analyze_sentiment(text) if sentiment_enabled else None,
                category=categorize_news(text),
                provider=article.provider,
            )
        )
    return items


def _news_event(item: NewsItem) -> TimelineEvent | None:
    if item.published_at is None:
        return None

    return TimelineEvent(
        kind="news",
        date=_as_utc(item.published_at),
        title=item.title,
        description=item.description,
        url=item.url or None,
        source=item.source or None,
        category=item.category,
        sentiment=item.sentiment,
    )


def _format_eps(value: float | None) -> str:
    return NOT_AVAILABLE if value is None else f"{value:g}"


def _earnings_event(report: EarningsReport) -> TimelineEvent:
    if report.quarter and report.year:
        title = f"Earnings Report - Q{report.quarter} {report.year}"
    else:
        title = f"Earnings Report - {report.period.isoformat()}"

    return TimelineEvent(
        kind="earnings",
        date=datetime.combine(report.period, time.min, tzinfo=UTC),
        title=title,
        description=(
            f"EPS Estimate: {_format_eps(report.estimate)}, "
            f"Actual: {_format_eps(report.actual)}"
        ),
        estimate=report.estimate,
        actual=report.actual,
        surprise=report.surprise,
        surprise_percent=report.surprise_percent,
    )


def build_timeline(
    news_items: Iterable[NewsItem],
    earnings: Iterable[EarningsReport] | None = None,
) -> list[TimelineEvent]:
    """Merge news and earnings into one newest-first timeline.

    News items without a publication date are left out. Events with equal
    dates keep their input order, news before earnings.

    Args:
        news_items: Enriched news.
        earnings: Earnings history, if any.

    Returns:
        Timeline events sorted by date, descending.
    """
    events = [event for event in map(_news_event, news_items) if event is not None]
    events.extend(_earnings_event(report) for report in earnings or ())

    # sorted() is stable, also with reverse=True
    return sorted(events, key=lambda event: event.date, reverse=True)


def group_news_by_category(items: Iterable[NewsItem]) -> dict[NewsCategory, list[NewsItem]]:
    """Group news items by category, keeping input order within a group."""
    grouped: dict[NewsCategory, list[NewsItem]] = {}
    for item in items:
        grouped.setdefault(item.category, []).append(item)
    return grouped


def sort_news_by_date(
    items: Iterable[NewsItem],
    order: Literal["asc", "desc"] = "desc",
) -> list[NewsItem]:
    """Sort news by publication date; undated items go last either way."""
    dated: list[tuple[datetime, NewsItem]] = []
    undated: list[NewsItem] = []
    for item in items:
        if item.published_at is None:
            undated.append(item)
        else:
            dated.append((_as_utc(item.published_at), item))

    dated.sort(key=lambda pair: pair[0], reverse=order == "desc")
    return [item for _, item in dated] + undated


def filter_news_by_sentiment(
    items: Iterable[NewsItem],
    label: SentimentLabel | Literal["all"] | None = None,
) -> list[NewsItem]:
    """Keep items with the given sentiment label; "all" or None keeps everything."""
    if label is None or label == "all":
        return list(items)
    return [item for item in items if item.sentiment is not None and item.sentiment.label == label]


def summarize_news(items: Sequence[NewsItem]) -> NewsSummary:
    """Count news by sentiment label and category.

    Items without sentiment count as neutral with a score of zero.
    """
    if not items:
        return NewsSummary()

    labels = {"positive": 0, "negative": 0, "neutral": 0}
    categories: dict[str, int] = {}
    total_score = 0

    for item in items:
        label = item.sentiment.label if item.sentiment else "neutral"
        labels[label] += 1
        total_score += item.sentiment.score if item.sentiment else 0
        categories[item.category.value] = categories.get(item.category.value, 0) + 1

    return NewsSummary(
        total=len(items),
        positive=labels["positive"],
        negative=labels["negative"],
        neutral=labels["neutral"],
        average_sentiment=round(total_score / len(items), 2),
        categories=categories,
    )
