"""Marketaux ``/news/all`` adapter, the last news fallback."""

from typing import Any

from nocharts.cache.manager import CacheType
from nocharts.data.base import BaseProvider, ProviderRequest, to_datetime
from nocharts.data.models import Article, DataSource
from nocharts.errors import NoDataAvailableError, UpstreamError

DEFAULT_BASE_URL = "https://api.marketaux.com/v1"
DEFAULT_PAGE_SIZE = 5

SOFT_LIMIT_CODES = frozenset({"usage_limit_reached", "rate_limit_reached"})


class MarketauxProvider(BaseProvider[tuple[Article, ...]]):
    """Entity-tagged financial news by symbol.

    Errors come back as ``{"error": {"code": ..., "message": ...}}``.
    """

    name = "marketaux"
    operation = "news"
    cache_type = CacheType.NEWS

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str = DEFAULT_BASE_URL,
        language: str = "en",
        **kwargs: Any,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.language = language
        super().__init__(**kwargs)

    def build_request(self, ticker: str, **params: Any) -> ProviderRequest:
        if not self.api_key:
            raise UpstreamError(401, "MARKETAUX_API_KEY not configured", provider=self.name)

        return ProviderRequest(
            url=f"{self.base_url}/news/all",
            params={
                "symbols": ticker,
                "filter_entities": "true",
                "language": self.language,
                "limit": params.get("page_size", DEFAULT_PAGE_SIZE),
                "api_token": self.api_key,
            },
        )

    def soft_limit_message(self, payload: Any) -> str | None:
        error = payload.get("error") if isinstance(payload, dict) else None
        if isinstance(error, dict) and error.get("code") in SOFT_LIMIT_CODES:
            return error.get("message") or "Marketaux usage limit reached"
        return None

    def error_message(self, payload: Any) -> str | None:
        error = payload.get("error") if isinstance(payload, dict) else None
        if isinstance(error, dict):
            return error.get("message") or error.get("code") or "Marketaux error"
        if error:
            return str(error)
        return None

    def normalize(self, ticker: str, payload: Any, **params: Any) -> tuple[Article, ...]:
        articles = tuple(_to_article(item) for item in payload.get("data") or [] if item.get("title"))
        if not articles:
            raise NoDataAvailableError(f"No Marketaux news found for {ticker}")
        return articles


def _to_article(item: dict[str, Any]) -> Article:
    return Article(
        title=item["title"],
        description=item.get("description") or item.get("snippet") or "",
        url=item.get("url") or "",
        source=item.get("source") or "",
        published_at=to_datetime(item.get("published_at")),
        image_url=item.get("image_url"),
        provider=DataSource.MARKETAUX,
    )
