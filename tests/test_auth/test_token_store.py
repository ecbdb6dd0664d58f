"""Tests for bearer token storage."""

import json
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from nocharts.auth.token_store import (
    BearerToken,
    FileTokenStorage,
    MemoryTokenStorage,
    TokenStore,
)
from nocharts.errors import AuthRequiredError

START = datetime(2024, 1, 15, 12, 0, tzinfo=UTC)


class FakeClock:
    """Settable clock."""

    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class TestBearerToken:
    """Tests for BearerToken expiry."""

    def test_expiry_boundary(self) -> None:
        """Test a token is invalid from its expiry instant."""
        token = BearerToken(value="abc", expires_at=START)

        assert not token.is_expired(START - timedelta(seconds=1))
        assert token.is_expired(START)
        assert token.is_expired(START + timedelta(seconds=1))

    def test_naive_expiry_is_utc(self) -> None:
        """Test an expiry without a timezone is taken as UTC."""
        token = BearerToken.model_validate({"value": "abc", "expires_at": "2024-01-15T12:00:00"})

        assert token.expires_at == START
        assert not token.is_expired(START - timedelta(seconds=1))
        assert token.is_expired(START)

    def test_naive_now_is_utc(self) -> None:
        """Test a naive reference time is compared as UTC."""
        token = BearerToken(value="abc", expires_at=START)
        assert token.is_expired(datetime(2024, 1, 15, 12, 0))


class TestTokenStore:
    """Tests for TokenStore."""

    def test_store_and_get(self) -> None:
        """Test a fresh token is returned."""
        clock = FakeClock()
        store = TokenStore(clock=clock)

        token = store.store_token("abc", expires_in=3600)

        assert token.expires_at == START + timedelta(hours=1)
        assert store.get_valid_token() == "abc"
        assert store.has_valid_token()

    def test_expired_token(self) -> None:
        """Test an expired token demands re-authorization."""
        clock = FakeClock()
        store = TokenStore(clock=clock)
        store.store_token("abc", expires_in=60)
        clock.advance(60)

        with pytest.raises(AuthRequiredError, match="expired"):
            store.get_valid_token()
        assert not store.has_valid_token()

    def test_no_token(self) -> None:
        """Test an empty store demands authorization."""
        with pytest.raises(AuthRequiredError, match="no bearer token"):
            TokenStore().get_valid_token()

    def test_clear(self) -> None:
        """Test clearing forgets the token."""
        store = TokenStore(clock=FakeClock())
        store.store_token("abc", expires_in=3600)

        store.clear()

        assert store.load() is None

    def test_invalid_stored_data(self) -> None:
        """Test unparseable data counts as no token."""
        store = TokenStore(MemoryTokenStorage({"value": "abc"}))

        assert store.load() is None
        with pytest.raises(AuthRequiredError):
            store.get_valid_token()


class TestFileTokenStorage:
    """Tests for FileTokenStorage."""

    def test_round_trip(self, tmp_path: Path) -> None:
        """Test a token survives a new store instance."""
        path = tmp_path / "auth" / "token.json"
        TokenStore(FileTokenStorage(path), clock=FakeClock()).store_token("abc", expires_in=3600)

        reloaded = TokenStore(FileTokenStorage(path), clock=FakeClock())

        assert path.exists()
        assert reloaded.get_valid_token() == "abc"

    def test_naive_stored_expiry(self, tmp_path: Path) -> None:
        """Test a file token without a timezone is still usable."""
        path = tmp_path / "token.json"
        path.write_text(json.dumps({"value": "abc", "expires_at": "2024-01-15T13:00:00"}), encoding="utf-8")
        store = TokenStore(FileTokenStorage(path), clock=FakeClock())

        assert store.get_valid_token() == "abc"

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test a missing file loads nothing."""
        assert FileTokenStorage(tmp_path / "none.json").load() is None

    def test_corrupt_file(self, tmp_path: Path) -> None:
        """Test unreadable JSON is treated as no token."""
        path = tmp_path / "token.json"
        path.write_text("{not json", encoding="utf-8")

        assert FileTokenStorage(path).load() is None
        with pytest.raises(AuthRequiredError):
            TokenStore(FileTokenStorage(path)).get_valid_token()

    def test_non_object_json(self, tmp_path: Path) -> None:
        """Test JSON that is not an object is ignored."""
        path = tmp_path / "token.json"
        path.write_text(json.dumps(["abc"]), encoding="utf-8")

        assert FileTokenStorage(path).load() is None

    def test_clear_removes_file(self, tmp_path: Path) -> None:
        """Test clearing deletes the file and tolerates a second clear."""
        path = tmp_path / "token.json"
        storage = FileTokenStorage(path)
        storage.save({"value": "abc", "expires_at": START.isoformat()})

        storage.clear()
        storage.clear()

        assert not path.exists()
