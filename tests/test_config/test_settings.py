"""Tests for environment-driven settings."""

import pytest

from nocharts import config
from nocharts.config import DEFAULT_POPULAR_TICKERS, Settings

ENV_VARS = (
    "FINNHUB_API_KEY",
    "NEWS_API_KEY",
    "MARKETAUX_API_KEY",
    "CACHE_DURATION",
    "MAX_REQUESTS_PER_MINUTE",
    "RATE_LIMIT_COOLDOWN",
    "PROVIDER_TIMEOUT",
    "NEWS_PAGE_SIZE",
    "NEWS_ENABLED",
    "SENTIMENT_ENABLED",
    "TIMELINE_ENABLED",
    "CACHING_ENABLED",
    "MOCK_MODE",
    "LOG_LEVEL",
    "POPULAR_TICKERS",
    "TOKEN_STORAGE_PATH",
)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestFromEnv:
    """Tests for Settings.from_env."""

    def test_defaults(self, clean_env: pytest.MonkeyPatch) -> None:
        """Test defaults with an empty environment."""
        settings = Settings.from_env()

        assert settings.FINNHUB_API_KEY is None
        assert settings.CACHE_DURATION == 1800
        assert settings.MAX_REQUESTS_PER_MINUTE == 20
        assert settings.RATE_LIMIT_COOLDOWN == 60
        assert settings.PROVIDER_TIMEOUT == 30.0
        assert settings.NEWS_PAGE_SIZE == 5
        assert settings.NEWS_ENABLED is True
        assert settings.MOCK_MODE is False
        assert settings.LOG_LEVEL == "INFO"
        assert settings.POPULAR_TICKERS == DEFAULT_POPULAR_TICKERS

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("true", True), ("1", True), ("YES", True), ("off", False), ("0", False), ("maybe", False)],
    )
    def test_bool_parsing(self, clean_env: pytest.MonkeyPatch, raw: str, expected: bool) -> None:
        """Test boolean flag spellings; unknown values keep the default."""
        clean_env.setenv("MOCK_MODE", raw)
        assert Settings.from_env().MOCK_MODE is expected

    def test_disable_flag(self, clean_env: pytest.MonkeyPatch) -> None:
        """Test turning a default-on flag off."""
        clean_env.setenv("NEWS_ENABLED", "false")
        assert Settings.from_env().NEWS_ENABLED is False

    def test_numeric_overrides(self, clean_env: pytest.MonkeyPatch) -> None:
        """Test integer and float overrides."""
        clean_env.setenv("CACHE_DURATION", "60")
        clean_env.setenv("PROVIDER_TIMEOUT", "2.5")

        settings = Settings.from_env()

        assert settings.CACHE_DURATION == 60
        assert settings.PROVIDER_TIMEOUT == 2.5

    @pytest.mark.parametrize("raw", ["none", "OFF"])
    def test_timeout_disabled(self, clean_env: pytest.MonkeyPatch, raw: str) -> None:
        """Test the deadline can be switched off."""
        clean_env.setenv("PROVIDER_TIMEOUT", raw)
        assert Settings.from_env().PROVIDER_TIMEOUT is None

    def test_malformed_value_fails_on_load(self, clean_env: pytest.MonkeyPatch) -> None:
        """Test a bad number only fails when settings are loaded, not on import."""
        clean_env.setenv("CACHE_DURATION", "half an hour")

        assert not hasattr(config, "settings")
        with pytest.raises(ValueError):
            Settings.from_env()

    def test_popular_tickers(self, clean_env: pytest.MonkeyPatch) -> None:
        """Test list parsing trims and uppercases."""
        clean_env.setenv("POPULAR_TICKERS", " aapl, msft ,,brk.b")
        assert Settings.from_env().POPULAR_TICKERS == ["AAPL", "MSFT", "BRK.B"]


class TestValidateApiKeys:
    """Tests for Settings.validate_api_keys."""

    def test_all_configured(self) -> None:
        """Test no message when the main keys are set."""
        status = Settings(FINNHUB_API_KEY="f", NEWS_API_KEY="n").validate_api_keys()

        assert status.finnhub and status.news_api
        assert not status.marketaux
        assert status.message == ""

    def test_none_configured(self) -> None:
        """Test the combined message."""
        status = Settings().validate_api_keys()
        assert status.message == "No API keys configured. Set FINNHUB_API_KEY and NEWS_API_KEY"

    def test_finnhub_missing(self) -> None:
        """Test a missing Finnhub key."""
        status = Settings(NEWS_API_KEY="n").validate_api_keys()
        assert status.message == "Finnhub API key not configured"

    def test_news_missing(self) -> None:
        """Test a missing NewsAPI key."""
        status = Settings(FINNHUB_API_KEY="f").validate_api_keys()
        assert status.message == "News API key not configured"

    def test_placeholders_count_as_missing(self) -> None:
        """Test template values are not real keys."""
        status = Settings(
            FINNHUB_API_KEY="your_finnhub_key_here",
            NEWS_API_KEY="your_news_api_key_here",
        ).validate_api_keys()

        assert not status.finnhub
        assert not status.news_api
