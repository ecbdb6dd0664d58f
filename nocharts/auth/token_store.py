"""Bearer token storage for providers that need delegated auth.

The token is acquired out-of-band by an authorization flow that is not part
of this package. The store only reads it back, checks its expiry and raises
AuthRequiredError when the caller has to re-authorize.
"""

import json
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any, Protocol

import structlog
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from nocharts.errors import AuthRequiredError

logger = structlog.get_logger(__name__)

DEFAULT_TOKEN_PATH = "./data/reddit_token.json"


def utc_now() -> datetime:
    """Current time in UTC."""
    return datetime.now(UTC)


class BearerToken(BaseModel):
    """A bearer credential and when it stops being valid."""

    model_config = ConfigDict(frozen=True)

    value: str
    expires_at: datetime

    @field_validator("expires_at")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        """Naive expiry times are taken as UTC."""
        return value if value.tzinfo else value.replace(tzinfo=UTC)

    def is_expired(self, now: datetime | None = None) -> bool:
        """A token is invalid from its expiry instant onwards."""
        now = now or utc_now()
        if now.tzinfo is None:
            now = now.replace(tzinfo=UTC)
        return now >= self.expires_at


class TokenStorage(Protocol):
    """Durable key/value storage for one serialized token."""

    def load(self) -> dict[str, Any] | None: ...

    def save(self, data: dict[str, Any]) -> None: ...

    def clear(self) -> None: ...


class MemoryTokenStorage:
    """In-process storage, mainly for tests and short-lived sessions."""

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self._data = data

    def load(self) -> dict[str, Any] | None:
        return self._data

    def save(self, data: dict[str, Any]) -> None:
        self._data = data

    def clear(self) -> None:
        self._data = None


class FileTokenStorage:
    """JSON file storage.

    A missing or unreadable file is treated as "no token stored".
    """

    def __init__(self, path: str | Path = DEFAULT_TOKEN_PATH) -> None:
        self.path = Path(path)
        self._logger = logger.bind(component="file_token_storage")

    def load(self) -> dict[str, Any] | None:
        if not self.path.exists():
            return None

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            self._logger.warning("token_file_unreadable", path=str(self.path), error=str(e))
            return None

        return data if isinstance(data, dict) else None

    def save(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, default=str), encoding="utf-8")

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)


class TokenStore:
    """Bearer token access with expiry tracking.

    Example:
        store = TokenStore(FileTokenStorage("~/.nocharts/reddit.json"))
        store.store_token(access_token, expires_in=3600)

        token = store.get_valid_token()  # raises AuthRequiredError when stale
    """

    def __init__(
        self,
        storage: TokenStorage | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the token store.

        Args:
            storage: Where the token is persisted. Defaults to memory.
            clock: Source of the current UTC time.
        """
        self._storage = storage if storage is not None else MemoryTokenStorage()
        self._clock = clock
        self._logger = logger.bind(component="token_store")

    def load(self) -> BearerToken | None:
        """Read the stored token, valid or not."""
        data = self._storage.load()
        if not data:
            return None

        try:
            return BearerToken.model_validate(data)
        except ValidationError as e:
            self._logger.warning("stored_token_invalid", error=str(e))
            return None

    def get_valid_token(self) -> str:
        """Return the token value if present and unexpired.

        Raises:
            AuthRequiredError: If no token is stored or it has expired.
        """
        token = self.load()
        if token is None:
            raise AuthRequiredError("Authorization required: no bearer token stored")

        if token.is_expired(self._clock()):
            self._logger.info("bearer_token_expired", expires_at=token.expires_at.isoformat())
            raise AuthRequiredError("Authorization required: bearer token expired")

        return token.value

    def has_valid_token(self) -> bool:
        """Check for a usable token without raising."""
        try:
            self.get_valid_token()
        except AuthRequiredError:
            return False
        return True

    def store_token(self, value: str, expires_in: float) -> BearerToken:
        """Persist a freshly acquired token.

        Args:
            value: The bearer token.
            expires_in: Lifetime in seconds from now.

        Returns:
            The stored token.
        """
        token = BearerToken(
            value=value,
            expires_at=self._clock() + timedelta(seconds=expires_in),
        )
        self._storage.save(token.model_dump(mode="json"))
        self._logger.info("bearer_token_stored", expires_at=token.expires_at.isoformat())
        return token

    def clear(self) -> None:
        """Forget the stored token, forcing re-authorization."""
        self._storage.clear()
        self._logger.info("bearer_token_cleared")
