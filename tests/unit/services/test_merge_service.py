"""Unit tests for the merge engine.

This module tests reconciliation of Google Finance fundamentals and Yahoo
Finance quotes against the reference table.
"""
import asyncio
import pytest
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

from portfolio_sync.providers import ProviderError
from portfolio_sync.providers.models import MergedRecord
from portfolio_sync.scrapers.yahoo_finance import YahooFinanceScraper
from portfolio_sync.services.cache_store import GOOGLE_SNAPSHOT_KEY, CacheStoreError, merged_key
from portfolio_sync.services.merge_service import MergeEngine, build_record
from portfolio_sync.services.readers import list_merged_records
from tests.conftest import create_entity, create_google_row, create_quote_row, ist


NOW = ist(2025, 1, 6, 10, 0, 0)


@pytest.fixture
def yahoo_scraper():
    """Mock Yahoo scraper returning quotes for alpha and beta."""
    mock = MagicMock()
    mock.scrape_all = AsyncMock(return_value=[create_quote_row("alpha", 101.0), create_quote_row("beta", 202.0)])
    mock.close = AsyncMock()
    return mock


@pytest.fixture
async def store_with_fundamentals(redis_store):
    """Store holding a Google Finance snapshot for alpha and gamma."""
    await redis_store.put_json(GOOGLE_SNAPSHOT_KEY, {
        "version": 1,
        "scraped_at": NOW.isoformat(),
        "rows": [create_google_row("alpha").to_dict(), create_google_row("gamma", pe="8.5").to_dict()],
        "misses": [],
    })
    return redis_store


@pytest.fixture
def engine(store_with_fundamentals, yahoo_scraper, entities):
    """Create MergeEngine with a fixed clock."""
    return MergeEngine(
        store_with_fundamentals,
        yahoo_scraper=yahoo_scraper,
        entities=entities,
        clock=lambda: NOW,
        timezone_str="Asia/Kolkata",
    )


async def load_record(store, entity_id) -> MergedRecord:
    return MergedRecord.from_dict(await store.get_json(merged_key(entity_id)))


# ============================================================================
# Tests for merge
# ============================================================================

@pytest.mark.unit
@pytest.mark.critical
@pytest.mark.asyncio
class TestMerge:
    """Test one merge cycle."""

    async def test_partial_sources(self, engine, store_with_fundamentals):
        """✅ A in both, B quote only, C fundamentals only → three records."""
        count = await engine.merge()
        assert count == 3

        alpha = await load_record(store_with_fundamentals, "alpha")
        assert alpha.price == 101.0
        assert alpha.pe_ratio.numeric == 25.10
        assert alpha.google_symbol == "ALPHA:NSE"
        assert alpha.portfolio_name == "Alpha Ltd"

        beta = await load_record(store_with_fundamentals, "beta")
        assert beta.price == 202.0
        assert beta.pe_ratio is None
        assert beta.earnings_per_share is None
        assert beta.google_symbol is None

        gamma = await load_record(store_with_fundamentals, "gamma")
        assert gamma.pe_ratio.numeric == 8.5
        assert gamma.name == ""
        assert gamma.exchange == ""
        assert gamma.currency == ""
        assert gamma.price == 0.0
        assert gamma.sector == "Technology"

    async def test_total_coverage(self, engine, store_with_fundamentals, entities):
        """✅ Exactly one record per reference entity."""
        await engine.merge()
        records = await list_merged_records(store_with_fundamentals)
        assert sorted(r.id for r in records) == sorted(e.id for e in entities)

    async def test_exp_time(self, engine, store_with_fundamentals):
        """✅ Every record expires 20s after the merge instant, in IST."""
        await engine.merge()
        for entity_id in ("alpha", "beta", "gamma"):
            record = await load_record(store_with_fundamentals, entity_id)
            assert record.exp_time == NOW + timedelta(seconds=20)
            assert record.exp_time.utcoffset() == timedelta(hours=5, minutes=30)

    async def test_unknown_quote_ids_ignored(self, engine, yahoo_scraper, store_with_fundamentals):
        """✅ Quotes for ids outside the table produce no record."""
        yahoo_scraper.scrape_all.return_value = [create_quote_row("delta")]
        await engine.merge()

        assert await store_with_fundamentals.get(merged_key("delta")) is None
        assert len(await list_merged_records(store_with_fundamentals)) == 3

    async def test_no_sources(self, redis_store, yahoo_scraper, entities):
        """✅ No quotes and no snapshot → reference-only records."""
        yahoo_scraper.scrape_all.return_value = []
        engine = MergeEngine(redis_store, yahoo_scraper=yahoo_scraper, entities=entities, clock=lambda: NOW)

        assert await engine.merge() == 3
        record = await load_record(redis_store, "beta")
        assert record.price == 0.0
        assert record.pe_ratio is None

    async def test_quote_scrape_error_degrades(self, engine, yahoo_scraper, store_with_fundamentals):
        """✅ Unexpected quote failure → merge continues without quotes."""
        yahoo_scraper.scrape_all.side_effect = RuntimeError("boom")
        assert await engine.merge() == 3

        alpha = await load_record(store_with_fundamentals, "alpha")
        assert alpha.price == 0.0
        assert alpha.pe_ratio.numeric == 25.10

    async def test_corrupt_fundamentals_degrade(self, engine, store_with_fundamentals):
        """✅ Unreadable Google snapshot → merge continues without fundamentals."""
        await store_with_fundamentals.put(GOOGLE_SNAPSHOT_KEY, b"{broken")
        assert await engine.merge() == 3

        alpha = await load_record(store_with_fundamentals, "alpha")
        assert alpha.pe_ratio is None
        assert alpha.price == 101.0

    async def test_store_error_propagates(self, yahoo_scraper, entities):
        """❌ A failed record write surfaces as CacheStoreError."""
        store = MagicMock()
        store.get_json = AsyncMock(return_value=None)
        store.put_json = AsyncMock(side_effect=CacheStoreError("disk full"))
        engine = MergeEngine(store, yahoo_scraper=yahoo_scraper, entities=entities, clock=lambda: NOW)

        with pytest.raises(CacheStoreError):
            await engine.merge()

    async def test_store_read_error_degrades(self, entities):
        """✅ Quote failure plus unreadable fallback snapshot → reference-only records."""
        store = MagicMock()
        store.get_json = AsyncMock(side_effect=CacheStoreError("read failed"))
        store.put_json = AsyncMock()
        provider = MagicMock()
        provider.quote = AsyncMock(side_effect=ProviderError("down"))
        engine = MergeEngine(
            store,
            yahoo_scraper=YahooFinanceScraper(store, provider=provider),
            entities=entities,
            clock=lambda: NOW,
        )

        assert await engine.merge() == 3

        written = {c.args[0]: c.args[1] for c in store.put_json.await_args_list}
        for entity in entities:
            record = written[merged_key(entity.id)]
            assert record["price"] == 0.0
            assert record["pe_ratio"] is None
            assert record["portfolio_name"] == entity.name


# ============================================================================
# Tests for run_exclusive
# ============================================================================

@pytest.mark.unit
@pytest.mark.asyncio
class TestRunExclusive:
    """Test the merge-in-flight guard."""

    async def test_runs_when_idle(self, engine):
        assert await engine.run_exclusive() == 3
        assert engine.running is False

    async def test_skips_when_running(self, engine, yahoo_scraper):
        """✅ Overlapping trigger is skipped, not queued."""
        started = asyncio.Event()
        release = asyncio.Event()

        async def slow_scrape(targets):
            started.set()
            await release.wait()
            return []

        yahoo_scraper.scrape_all.side_effect = slow_scrape

        first = asyncio.create_task(engine.run_exclusive())
        await started.wait()
        assert engine.running is True

        assert await engine.run_exclusive() is None

        release.set()
        assert await first == 3
        assert yahoo_scraper.scrape_all.await_count == 1


@pytest.mark.unit
def test_build_record_layers_reference_data():
    """✅ Reference fields always come from the entity."""
    entity = create_entity("alpha", purchase_price=50.0, quantity=4)
    record = build_record(entity, create_quote_row("alpha"), None, NOW)

    assert record.purchase_price == 50.0
    assert record.quantity == 4
    assert record.investment == 200.0
    assert record.exchange == "NSE"
    assert record.pe_ratio is None
