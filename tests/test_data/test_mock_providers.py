"""Tests for fixture-backed mock providers."""

import pytest

from nocharts.data.mock import (
    MOCK_PROFILES,
    MockEarningsProvider,
    MockNewsProvider,
    MockProfileProvider,
    MockQuoteProvider,
    MockSymbolSearch,
    StaticProvider,
    create_mock_providers,
)
from nocharts.data.models import DataSource
from nocharts.errors import ErrorKind, NetworkError


class TestMockProfileProvider:
    """Tests for MockProfileProvider."""

    @pytest.mark.asyncio
    async def test_known_symbol(self) -> None:
        """Test fixture profiles."""
        profile = (await MockProfileProvider().fetch("AAPL")).unwrap()
        assert profile.name == "Apple Inc."
        assert profile.market_cap_millions == 3_000_000
        assert profile.source == DataSource.MOCK

    @pytest.mark.asyncio
    async def test_unknown_symbol(self) -> None:
        """Test a generic profile for symbols without fixtures."""
        profile = (await MockProfileProvider().fetch("XYZ")).unwrap()
        assert profile.name == "XYZ Corporation"

    def test_fixture_symbols(self) -> None:
        """Test the fixture set."""
        assert set(MOCK_PROFILES) == {"AAPL", "TSLA", "MSFT", "GOOGL", "AMZN"}


class TestMockQuoteProvider:
    """Tests for MockQuoteProvider."""

    @pytest.mark.asyncio
    async def test_known_symbol(self) -> None:
        """Test fixture quotes."""
        quote = (await MockQuoteProvider().fetch("AAPL")).unwrap()
        assert quote.price == 176.85
        assert quote.change == 1.65
        assert quote.change_percent == 0.94

    @pytest.mark.asyncio
    async def test_unknown_symbol(self) -> None:
        """Test the generic quote."""
        quote = (await MockQuoteProvider().fetch("XYZ")).unwrap()
        assert quote.price == 102.50


class TestMockEarningsProvider:
    """Tests for MockEarningsProvider."""

    @pytest.mark.asyncio
    async def test_known_symbol(self) -> None:
        """Test fixture earnings with derived surprise."""
        earnings = (await MockEarningsProvider().fetch("MSFT")).unwrap()
        assert len(earnings) == 2
        assert earnings[0].surprise == pytest.approx(0.15)

    @pytest.mark.asyncio
    async def test_unknown_symbol(self) -> None:
        """Test symbols without fixtures have no earnings."""
        result = await MockEarningsProvider().fetch("XYZ")
        assert result.kind == ErrorKind.NO_DATA_AVAILABLE


class TestMockNewsProvider:
    """Tests for MockNewsProvider."""

    @pytest.mark.asyncio
    async def test_page_size(self) -> None:
        """Test the page size caps the article count."""
        articles = (await MockNewsProvider().fetch("AAPL", page_size=1)).unwrap()
        assert len(articles) == 1
        assert articles[0].provider == DataSource.MOCK

    @pytest.mark.asyncio
    async def test_unknown_symbol(self) -> None:
        """Test generic articles mention the symbol."""
        articles = (await MockNewsProvider().fetch("XYZ")).unwrap()
        assert len(articles) == 2
        assert "XYZ" in articles[0].title

    @pytest.mark.asyncio
    async def test_records_calls(self) -> None:
        """Test calls are recorded with their parameters."""
        provider = MockNewsProvider()
        await provider.fetch("AAPL", query="Apple Inc.", page_size=5)
        assert provider.calls == [("AAPL", {"query": "Apple Inc.", "page_size": 5})]


class TestMockSymbolSearch:
    """Tests for MockSymbolSearch."""

    @pytest.mark.asyncio
    async def test_match_by_name_or_symbol(self) -> None:
        """Test search over names and symbols."""
        by_name = (await MockSymbolSearch().fetch("tesla")).unwrap()
        by_symbol = (await MockSymbolSearch().fetch("msf")).unwrap()
        assert [match.symbol for match in by_name] == ["TSLA"]
        assert [match.symbol for match in by_symbol] == ["MSFT"]


class TestStaticProvider:
    """Tests for StaticProvider."""

    @pytest.mark.asyncio
    async def test_value(self) -> None:
        """Test a fixed value."""
        assert (await StaticProvider(42).fetch("AAPL")).unwrap() == 42

    @pytest.mark.asyncio
    async def test_factory(self) -> None:
        """Test a per-ticker factory."""
        provider = StaticProvider(lambda ticker: ticker.lower())
        assert (await provider.fetch("AAPL")).unwrap() == "aapl"

    @pytest.mark.asyncio
    async def test_error(self) -> None:
        """Test a configured error is returned and tagged with the provider."""
        provider = StaticProvider(name="finnhub", error=NetworkError("down"))
        result = await provider.fetch("AAPL")

        assert result.kind == ErrorKind.NETWORK_ERROR
        assert result.error.provider == "finnhub"  # type: ignore[union-attr]
        assert provider.call_count == 1

    @pytest.mark.asyncio
    async def test_factory_exception(self) -> None:
        """Test a failing factory becomes a failed result."""
        provider = StaticProvider(lambda ticker: {}[ticker], name="finnhub")
        result = await provider.fetch("AAPL")

        assert result.kind == ErrorKind.UPSTREAM_ERROR
        assert result.error.provider == "finnhub"  # type: ignore[union-attr]

    @pytest.mark.asyncio
    async def test_no_value(self) -> None:
        """Test a missing value means no data."""
        result = await StaticProvider().fetch("AAPL")
        assert result.kind == ErrorKind.NO_DATA_AVAILABLE


def test_create_mock_providers() -> None:
    """Test the full fixture provider set."""
    providers = create_mock_providers()
    assert len(providers.news) == 1
    assert providers.search is not None
    assert len(providers.all()) == 6
