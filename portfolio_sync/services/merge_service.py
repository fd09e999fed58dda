"""Merge engine: reconcile both sources with the reference table."""
import asyncio
import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence

from portfolio_sync.core.config import settings
from portfolio_sync.portfolio import PORTFOLIO_STOCKS, yahoo_symbols
from portfolio_sync.providers.models import Entity, GoogleFinanceRow, MergedRecord, QuoteRow
from portfolio_sync.scrapers.google_finance import load_google_snapshot
from portfolio_sync.scrapers.yahoo_finance import YahooFinanceScraper
from portfolio_sync.services.cache_store import CacheStore, CacheStoreError, merged_key
from portfolio_sync.utils.time import compute_exp_time, now_in


logger = logging.getLogger(__name__)


def build_record(
    entity: Entity,
    quote: Optional[QuoteRow],
    fundamentals: Optional[GoogleFinanceRow],
    exp_time: datetime,
) -> MergedRecord:
    """Layer quote fields, fundamentals and reference data into one record."""
    record = MergedRecord(
        id=entity.id,
        exp_time=exp_time,
        portfolio_name=entity.name,
        sector=entity.sector,
        purchase_price=entity.purchase_price,
        quantity=entity.quantity,
        investment=entity.investment,
        portfolio_percentage=entity.portfolio_percentage,
    )

    if quote is not None:
        record.yahoo_symbol = quote.yahoo_symbol
        record.exchange = quote.exchange
        record.name = quote.name
        record.short_name = quote.short_name
        record.price = quote.price
        record.currency = quote.currency

    if fundamentals is not None:
        record.google_symbol = fundamentals.google_symbol
        record.pe_ratio = fundamentals.pe_ratio
        record.earnings_per_share = fundamentals.earnings_per_share

    return record


class MergeEngine:
    """Produce one MergedRecord per portfolio entity."""

    def __init__(
        self,
        store: CacheStore,
        yahoo_scraper: Optional[YahooFinanceScraper] = None,
        entities: Sequence[Entity] = PORTFOLIO_STOCKS,
        clock: Optional[Callable[[], datetime]] = None,
        timezone_str: Optional[str] = None,
    ):
        self.store = store
        self.yahoo_scraper = yahoo_scraper or YahooFinanceScraper(store)
        self.entities = list(entities)
        self.timezone_str = timezone_str or settings.display_timezone
        self.clock = clock or (lambda: now_in(self.timezone_str))
        self._lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        return self._lock.locked()

    async def _load_quotes(self) -> Dict[str, QuoteRow]:
        try:
            rows = await self.yahoo_scraper.scrape_all(yahoo_symbols(self.entities))
        except CacheStoreError:
            raise
        except Exception as e:
            logger.error(f"Quote scrape failed, continuing without quotes: {e}", exc_info=True)
            return {}
        return {row.id: row for row in rows}

    async def _load_fundamentals(self) -> Dict[str, GoogleFinanceRow]:
        try:
            return await load_google_snapshot(self.store)
        except Exception as e:
            logger.warning(f"Google Finance snapshot unavailable, continuing without fundamentals: {e}")
            return {}

    async def merge(self) -> int:
        """
        Run one merge cycle.

        Returns:
            Number of records written

        Raises:
            CacheStoreError: If a record cannot be persisted
        """
        quotes = await self._load_quotes()
        fundamentals = await self._load_fundamentals()

        unknown = set(quotes) - {e.id for e in self.entities}
        if unknown:
            logger.warning(f"Ignoring quotes for entities outside the portfolio: {sorted(unknown)}")

        exp_time = compute_exp_time(self.clock(), self.timezone_str)

        records: List[MergedRecord] = [
            build_record(entity, quotes.get(entity.id), fundamentals.get(entity.id), exp_time)
            for entity in self.entities
        ]

        for record in records:
            await self.store.put_json(merged_key(record.id), record.to_dict())

        logger.info(
            f"Merged {len(records)} records "
            f"({len(quotes)} quotes, {len(fundamentals)} fundamentals)"
        )
        return len(records)

    async def run_exclusive(self) -> Optional[int]:
        """Merge unless one is already in flight; returns None when skipped."""
        if self._lock.locked():
            logger.info("Merge already in progress, skipping this run")
            return None
        async with self._lock:
            return await self.merge()

    async def close(self):
        await self.yahoo_scraper.close()
