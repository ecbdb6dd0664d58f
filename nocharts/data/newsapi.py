"""NewsAPI ``/v2/everything`` adapter, the secondary news source."""

from typing import Any

from nocharts.cache.manager import CacheType
from nocharts.data.base import BaseProvider, ProviderRequest, to_datetime
from nocharts.data.models import Article, DataSource
from nocharts.errors import NoDataAvailableError, UpstreamError

DEFAULT_BASE_URL = "https://newsapi.org/v2/everything"
DEFAULT_PAGE_SIZE = 5

# Error codes NewsAPI uses for quota exhaustion
SOFT_LIMIT_CODES = frozenset({"rateLimited", "apiKeyExhausted"})

REMOVED_MARKER = "[Removed]"


class NewsApiProvider(BaseProvider[tuple[Article, ...]]):
    """Keyword news search.

    NewsAPI embeds failures as ``{"status": "error", "code": ..., "message": ...}``,
    sometimes with HTTP 200.
    """

    name = "newsapi"
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
        self.base_url = base_url
        self.language = language
        super().__init__(**kwargs)

    def build_request(self, ticker: str, **params: Any) -> ProviderRequest:
        if not self.api_key:
            raise UpstreamError(401, "NEWS_API_KEY not configured", provider=self.name)

        return ProviderRequest(
            url=self.base_url,
            params={
                "q": params.get("query") or ticker,
                "pageSize": params.get("page_size", DEFAULT_PAGE_SIZE),
                "sortBy": "publishedAt",
                "language": self.language,
                "apiKey": self.api_key,
            },
        )

    def soft_limit_message(self, payload: Any) -> str | None:
        if isinstance(payload, dict) and payload.get("code") in SOFT_LIMIT_CODES:
            return payload.get("message") or "News API quota exceeded"
        return super().soft_limit_message(payload)

    def error_message(self, payload: Any) -> str | None:
        if isinstance(payload, dict) and payload.get("status") == "error":
            return payload.get("message") or "News API error"
        return None

    def normalize(self, ticker: str, payload: Any, **params: Any) -> tuple[Article, ...]:
        articles = tuple(
            _to_article(item)
            for item in payload.get("articles") or []
            if item.get("title") and item["title"] != REMOVED_MARKER
        )
        if not articles:
            raise NoDataAvailableError(f"No news articles found for {ticker}")
        return articles


def _to_article(item: dict[str, Any]) -> Article:
    source = item.get("source") or {}
    return Article(
        title=item["title"],
        description=item.get("description") or "",
        url=item.get("url") or "",
        source=source.get("name") or "",
        author=item.get("author"),
        published_at=to_datetime(item.get("publishedAt")),
        image_url=item.get("urlToImage"),
        provider=DataSource.NEWSAPI,
    )
