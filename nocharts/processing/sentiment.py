"""Keyword heuristics for news sentiment and category."""

from nocharts.data.models import NewsCategory, Sentiment

POSITIVE_WORDS = (
    "positive",
    "growth",
    "increase",
    "higher",
    "strong",
    "profit",
    "gain",
    "success",
    "beat",
    "exceed",
    "surge",
    "rally",
    "bullish",
    "optimistic",
    "improve",
    "better",
    "excellent",
    "outperform",
    "upgrade",
    "record",
)

NEGATIVE_WORDS = (
    "negative",
    "decline",
    "decrease",
    "lower",
    "weak",
    "loss",
    "drop",
    "fail",
    "miss",
    "fall",
    "crash",
    "bearish",
    "pessimistic",
    "worse",
    "underperform",
    "downgrade",
    "concern",
    "risk",
    "volatile",
    "plunge",
)

# Checked in order; the first group with a hit wins
CATEGORY_KEYWORDS: tuple[tuple[NewsCategory, tuple[str, ...]], ...] = (
    (NewsCategory.EARNINGS, ("earnings", "quarterly", "financial")),
    (NewsCategory.MERGERS_ACQUISITIONS, ("merger", "acquisition", "deal")),
    (NewsCategory.PRODUCT, ("product", "launch", "release")),
    (NewsCategory.LEADERSHIP, ("ceo", "executive", "leadership")),
    (NewsCategory.REGULATORY, ("regulation", "legal", "lawsuit")),
    (NewsCategory.MARKET, ("market", "trading", "stock")),
)


def sentiment_score(text: str | None) -> int:
    """Positive keyword hits minus negative keyword hits.

    Every occurrence of a keyword counts, matched as a case-insensitive
    substring of the text.
    """
    if not text:
        return 0

    text_lower = text.lower()
    positive_count = sum(text_lower.count(word) for word in POSITIVE_WORDS)
    negative_count = sum(text_lower.count(word) for word in NEGATIVE_WORDS)
    return positive_count - negative_count


def analyze_sentiment(text: str | None) -> Sentiment:
    """Score text and label it positive, negative or neutral.

    Args:
        text: Free text, typically title and description joined.

    Returns:
        Sentiment with the signed score and its label.
    """
    score = sentiment_score(text)

    if score > 0:
        return Sentiment(score=score, label="positive")
    if score < 0:
        return Sentiment(score=score, label="negative")
    return Sentiment(score=score, label="neutral")


def categorize_news(text: str | None) -> NewsCategory:
    """Classify text by the first matching keyword group."""
    if not text:
        return NewsCategory.GENERAL

    text_lower = text.lower()
    for category, keywords in CATEGORY_KEYWORDS:
        if any(keyword in text_lower for keyword in keywords):
            return category
    return NewsCategory.GENERAL
