"""Reddit discussion search, the primary news source.

Requests use a bearer token from the TokenStore. A missing or expired token
surfaces as AuthRequiredError so the caller can start re-authorization; the
adapter itself never redirects.
"""

from datetime import UTC, datetime
from typing import Any

import httpx

from nocharts.auth.token_store import TokenStore
from nocharts.cache.manager import CacheType
from nocharts.data.base import BaseProvider, ProviderRequest, to_float
from nocharts.data.models import Article, DataSource
from nocharts.errors import AuthRequiredError, NoDataAvailableError

DEFAULT_BASE_URL = "https://oauth.reddit.com"
DEFAULT_USER_AGENT = "nocharts/1.0.0"
DEFAULT_SUBREDDITS = ("stocks", "investing", "wallstreetbets")
DEFAULT_PAGE_SIZE = 5

REDDIT_WEB_URL = "https://www.reddit.com"


class RedditProvider(BaseProvider[tuple[Article, ...]]):
    """Recent posts mentioning a company in finance subreddits."""

    name = "reddit"
    operation = "news"
    cache_type = CacheType.NEWS

    def __init__(
        self,
        token_store: TokenStore | None = None,
        base_url: str = DEFAULT_BASE_URL,
        user_agent: str = DEFAULT_USER_AGENT,
        subreddits: tuple[str, ...] = DEFAULT_SUBREDDITS,
        **kwargs: Any,
    ) -> None:
        self.token_store = token_store or TokenStore()
        self.base_url = base_url.rstrip("/")
        self.user_agent = user_agent
        self.subreddits = subreddits
        super().__init__(**kwargs)

    def build_request(self, ticker: str, **params: Any) -> ProviderRequest:
        token = self.token_store.get_valid_token()
        subreddits = "+".join(self.subreddits)

        return ProviderRequest(
            url=f"{self.base_url}/r/{subreddits}/search",
            params={
                "q": params.get("query") or ticker,
                "restrict_sr": "1",
                "sort": "new",
                "t": "week",
                "limit": params.get("page_size", DEFAULT_PAGE_SIZE),
            },
            headers={
                "Authorization": f"Bearer {token}",
                "User-Agent": self.user_agent,
            },
        )

    def handle_status(self, response: httpx.Response) -> None:
        if response.status_code == 401:
            # Revoked or rotated server-side before its recorded expiry
            self.token_store.clear()
            raise AuthRequiredError(
                "Authorization required: bearer token rejected", provider=self.name
            )
        super().handle_status(response)

    def normalize(self, ticker: str, payload: Any, **params: Any) -> tuple[Article, ...]:
        children = (payload.get("data") or {}).get("children") or []
        articles = tuple(
            _to_article(child["data"]) for child in children if child.get("data", {}).get("title")
        )
        if not articles:
            raise NoDataAvailableError(f"No Reddit posts found for {ticker}")
        return articles


def _to_article(post: dict[str, Any]) -> Article:
    created = to_float(post.get("created_utc"))
    permalink = post.get("permalink")
    thumbnail = post.get("thumbnail") or ""

    return Article(
        title=post["title"],
        description=post.get("selftext") or "",
        url=f"{REDDIT_WEB_URL}{permalink}" if permalink else post.get("url") or "",
        source=f"r/{post['subreddit']}" if post.get("subreddit") else "Reddit",
        author=post.get("author"),
        published_at=datetime.fromtimestamp(created, tz=UTC) if created else None,
        image_url=thumbnail if thumbnail.startswith("http") else None,
        provider=DataSource.REDDIT,
    )
