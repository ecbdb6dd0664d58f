"""Application configuration settings.

This module provides centralized configuration management using environment
variables with sensible defaults.
"""

import os
from dataclasses import dataclass, field

PLACEHOLDER_KEYS = frozenset({"", "your_finnhub_key_here", "your_news_api_key_here"})


def _get_bool_env(name: str, default: bool = False) -> bool:
    """Get a boolean value from environment variable.

    Args:
        name: Environment variable name.
        default: Default value if not set.

    Returns:
        Boolean value from environment.
    """
    value = os.getenv(name, "").lower()
    if value in ("true", "1", "yes", "on"):
        return True
    if value in ("false", "0", "no", "off"):
        return False
    return default


def _get_float_env(name: str, default: float | None) -> float | None:
    """Get a float from environment variable; "none" disables the value."""
    value = os.getenv(name)
    if value is None or value == "":
        return default
    if value.lower() in ("none", "off"):
        return None
    return float(value)


def _get_list_env(name: str, default: list[str]) -> list[str]:
    """Get a comma separated list from environment variable."""
    value = os.getenv(name)
    if not value:
        return list(default)
    return [item.strip().upper() for item in value.split(",") if item.strip()]


DEFAULT_POPULAR_TICKERS = ["AAPL", "TSLA", "MSFT", "GOOGL", "AMZN", "NVDA", "META", "NFLX"]


@dataclass
class ApiKeyStatus:
    """Which provider credentials are configured.

    Attributes:
        finnhub: Finnhub key present.
        news_api: NewsAPI key present.
        marketaux: Marketaux key present.
        message: Human-readable summary, empty when everything is configured.
    """

    finnhub: bool
    news_api: bool
    marketaux: bool
    message: str = ""


@dataclass
class Settings:
    """Application settings loaded from environment variables.

    Attributes:
        FINNHUB_API_KEY: Finnhub key for profile, quote, financials and earnings.
        NEWS_API_KEY: NewsAPI key for general news search.
        MARKETAUX_API_KEY: Marketaux key for the last news fallback.
        FINNHUB_BASE_URL: Finnhub REST root.
        NEWS_API_BASE_URL: NewsAPI "everything" endpoint.
        MARKETAUX_BASE_URL: Marketaux REST root.
        REDDIT_BASE_URL: Reddit OAuth API root.
        REDDIT_USER_AGENT: User agent sent to Reddit.
        TOKEN_STORAGE_PATH: JSON file holding the Reddit bearer token.
        CACHE_DURATION: Default cache TTL in seconds.
        MAX_REQUESTS_PER_MINUTE: Global outbound request cap.
        RATE_LIMIT_COOLDOWN: Seconds to back off after a provider rate limit.
        PROVIDER_TIMEOUT: Per-call deadline in seconds, None waits forever.
        NEWS_PAGE_SIZE: Articles requested per news provider.
        NEWS_ENABLED: Fetch news at all.
        SENTIMENT_ENABLED: Score news sentiment.
        TIMELINE_ENABLED: Build the timeline.
        CACHING_ENABLED: Cache provider responses.
        MOCK_MODE: Wire mock providers instead of real ones.
        LOG_LEVEL: Logging level.
        POPULAR_TICKERS: Tickers offered for quick access.
    """

    # Data sources
    FINNHUB_API_KEY: str | None = None
    NEWS_API_KEY: str | None = None
    MARKETAUX_API_KEY: str | None = None
    FINNHUB_BASE_URL: str = "https://finnhub.io/api/v1"
    NEWS_API_BASE_URL: str = "https://newsapi.org/v2/everything"
    MARKETAUX_BASE_URL: str = "https://api.marketaux.com/v1"
    REDDIT_BASE_URL: str = "https://oauth.reddit.com"
    REDDIT_USER_AGENT: str = "nocharts/1.0.0"
    TOKEN_STORAGE_PATH: str | None = None

    # Caching and rate limiting
    CACHE_DURATION: int = 30 * 60
    MAX_REQUESTS_PER_MINUTE: int = 20
    RATE_LIMIT_COOLDOWN: int = 60
    PROVIDER_TIMEOUT: float | None = 30.0
    NEWS_PAGE_SIZE: int = 5

    # Feature flags
    NEWS_ENABLED: bool = True
    SENTIMENT_ENABLED: bool = True
    TIMELINE_ENABLED: bool = True
    CACHING_ENABLED: bool = True
    MOCK_MODE: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"

    POPULAR_TICKERS: list[str] = field(default_factory=lambda: list(DEFAULT_POPULAR_TICKERS))

    @classmethod
    def from_env(cls) -> "Settings":
        """Create settings from environment variables.

        Returns:
            Settings instance populated from environment.
        """
        return cls(
            FINNHUB_API_KEY=os.getenv("FINNHUB_API_KEY"),
            NEWS_API_KEY=os.getenv("NEWS_API_KEY"),
            MARKETAUX_API_KEY=os.getenv("MARKETAUX_API_KEY"),
            FINNHUB_BASE_URL=os.getenv("FINNHUB_BASE_URL", "https://finnhub.io/api/v1"),
            NEWS_API_BASE_URL=os.getenv("NEWS_API_BASE_URL", "https://newsapi.org/v2/everything"),
            MARKETAUX_BASE_URL=os.getenv("MARKETAUX_BASE_URL", "https://api.marketaux.com/v1"),
            REDDIT_BASE_URL=os.getenv("REDDIT_BASE_URL", "https://oauth.reddit.com"),
            REDDIT_USER_AGENT=os.getenv("REDDIT_USER_AGENT", "nocharts/1.0.0"),
            TOKEN_STORAGE_PATH=os.getenv("TOKEN_STORAGE_PATH"),
            CACHE_DURATION=int(os.getenv("CACHE_DURATION", str(30 * 60))),
            MAX_REQUESTS_PER_MINUTE=int(os.getenv("MAX_REQUESTS_PER_MINUTE", "20")),
            RATE_LIMIT_COOLDOWN=int(os.getenv("RATE_LIMIT_COOLDOWN", "60")),
            PROVIDER_TIMEOUT=_get_float_env("PROVIDER_TIMEOUT", 30.0),
            NEWS_PAGE_SIZE=int(os.getenv("NEWS_PAGE_SIZE", "5")),
            NEWS_ENABLED=_get_bool_env("NEWS_ENABLED", default=True),
            SENTIMENT_ENABLED=_get_bool_env("SENTIMENT_ENABLED", default=True),
            TIMELINE_ENABLED=_get_bool_env("TIMELINE_ENABLED", default=True),
            CACHING_ENABLED=_get_bool_env("CACHING_ENABLED", default=True),
            MOCK_MODE=_get_bool_env("MOCK_MODE", default=False),
            LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
            POPULAR_TICKERS=_get_list_env("POPULAR_TICKERS", DEFAULT_POPULAR_TICKERS),
        )

    def validate_api_keys(self) -> ApiKeyStatus:
        """Report which provider keys are configured.

        Placeholder values left over from a template count as missing.

        Returns:
            ApiKeyStatus with a summary message.
        """
        status = ApiKeyStatus(
            finnhub=(self.FINNHUB_API_KEY or "") not in PLACEHOLDER_KEYS,
            news_api=(self.NEWS_API_KEY or "") not in PLACEHOLDER_KEYS,
            marketaux=(self.MARKETAUX_API_KEY or "") not in PLACEHOLDER_KEYS,
        )

        if not status.finnhub and not status.news_api:
            status.message = "No API keys configured. Set FINNHUB_API_KEY and NEWS_API_KEY"
        elif not status.finnhub:
            status.message = "Finnhub API key not configured"
        elif not status.news_api:
            status.message = "News API key not configured"

        return status

