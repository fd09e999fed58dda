"""Unit tests for the Yahoo Finance scraper and its snapshot fallback."""
import pytest
from unittest.mock import AsyncMock, MagicMock

from portfolio_sync.providers import ProviderError, QuoteUnavailable
from portfolio_sync.providers.models import ScrapeTarget, SyncStatus
from portfolio_sync.scrapers.yahoo_finance import YahooFinanceScraper, load_yahoo_snapshot
from portfolio_sync.services.cache_store import YAHOO_SNAPSHOT_KEY, CacheStoreError
from portfolio_sync.services.sync_markers import get_sync_markers
from tests.conftest import create_quote


TARGETS = [
    ScrapeTarget(id="alpha", symbol="ALPHA.NS"),
    ScrapeTarget(id="beta", symbol="BETA.NS"),
]


@pytest.fixture
def provider():
    """Mock quote provider returning a price per symbol."""
    prices = {"ALPHA.NS": 101.0, "BETA.NS": 202.0}
    mock = MagicMock()
    mock.quote = AsyncMock(side_effect=lambda symbol: create_quote(price=prices[symbol]))
    mock.close = AsyncMock()
    return mock


@pytest.fixture
def scraper(redis_store, provider):
    """Create YahooFinanceScraper with mocked provider."""
    return YahooFinanceScraper(redis_store, provider=provider)


@pytest.mark.unit
@pytest.mark.asyncio
class TestScrapeAll:
    """Test quote batch persistence and fallback."""

    async def test_success_persists(self, scraper, redis_store):
        """✅ Every quote succeeds → rows returned and persisted."""
        rows = await scraper.scrape_all(TARGETS)

        assert [(r.id, r.yahoo_symbol, r.price) for r in rows] == [
            ("alpha", "ALPHA.NS", 101.0),
            ("beta", "BETA.NS", 202.0),
        ]
        assert await load_yahoo_snapshot(redis_store) == rows

        stored = await redis_store.get_json(YAHOO_SNAPSHOT_KEY)
        assert stored["version"] == 1
        assert "scraped_at" in stored

        markers = await get_sync_markers(redis_store)
        assert markers["yahoo"].status == SyncStatus.OK

    @pytest.mark.critical
    async def test_failure_returns_previous_snapshot(self, scraper, provider, redis_store):
        """✅ A failed batch returns the last good rows exactly, unchanged."""
        previous = await scraper.scrape_all(TARGETS)
        stored_before = await redis_store.get(YAHOO_SNAPSHOT_KEY)

        provider.quote.side_effect = ProviderError("rate limited")
        rows = await scraper.scrape_all(TARGETS)

        assert rows == previous
        assert await redis_store.get(YAHOO_SNAPSHOT_KEY) == stored_before

        markers = await get_sync_markers(redis_store)
        assert markers["yahoo"].status == SyncStatus.FAILED
        assert "rate limited" in markers["yahoo"].detail

    @pytest.mark.critical
    async def test_partial_failure_is_all_or_nothing(self, scraper, provider, redis_store):
        """✅ One bad symbol discards the whole batch."""
        previous = await scraper.scrape_all(TARGETS)

        async def quote(symbol):
            if symbol == "BETA.NS":
                raise QuoteUnavailable("No quote data for BETA.NS")
            return create_quote(price=999.0)

        provider.quote.side_effect = quote
        rows = await scraper.scrape_all(TARGETS)

        assert rows == previous
        assert all(r.price != 999.0 for r in rows)

    async def test_failure_without_snapshot(self, scraper, provider):
        """✅ Failure with nothing persisted yet → []."""
        provider.quote.side_effect = ProviderError("down")
        assert await scraper.scrape_all(TARGETS) == []

    async def test_close(self, scraper, provider):
        await scraper.close()
        provider.close.assert_awaited_once()


@pytest.mark.unit
@pytest.mark.asyncio
class TestLoadYahooSnapshot:
    """Test snapshot loading."""

    async def test_missing(self, redis_store):
        assert await load_yahoo_snapshot(redis_store) == []

    async def test_corrupt(self, redis_store):
        """✅ Unreadable snapshot → [] with a warning."""
        await redis_store.put(YAHOO_SNAPSHOT_KEY, b"{not json")
        assert await load_yahoo_snapshot(redis_store) == []

    async def test_store_read_error(self):
        """✅ Store read failure → [] instead of raising."""
        store = MagicMock()
        store.get_json = AsyncMock(side_effect=CacheStoreError("read failed"))
        assert await load_yahoo_snapshot(store) == []
