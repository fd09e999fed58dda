"""Yahoo Finance quote scraper with last-known-good fallback."""
import asyncio
import json
import logging
from typing import List, Optional, Sequence

from portfolio_sync.core.config import settings
from portfolio_sync.providers import QuoteProvider
from portfolio_sync.providers.models import QuoteRow, ScrapeTarget, SyncStatus
from portfolio_sync.providers.yahoo import YFinanceQuoteProvider
from portfolio_sync.services.cache_store import SNAPSHOT_VERSION, YAHOO_SNAPSHOT_KEY, CacheStore, CacheStoreError
from portfolio_sync.services.sync_markers import YAHOO_SOURCE, record_sync
from portfolio_sync.utils.time import now_in


logger = logging.getLogger(__name__)


class YahooFinanceScraper:
    """
    Quote scrape across the portfolio.

    The batch succeeds or fails as a whole: if any quote lookup fails the
    previous snapshot is returned unchanged instead of a partial one.
    """

    def __init__(
        self,
        store: CacheStore,
        provider: Optional[QuoteProvider] = None,
        concurrency: Optional[int] = None,
    ):
        self.store = store
        self.provider = provider or YFinanceQuoteProvider()
        self.concurrency = concurrency if concurrency is not None else settings.scrape_concurrency

    async def _fetch_batch(self, targets: Sequence[ScrapeTarget]) -> List[QuoteRow]:
        semaphore = asyncio.Semaphore(self.concurrency) if self.concurrency else None

        async def fetch(target: ScrapeTarget):
            if semaphore is None:
                return await self.provider.quote(target.symbol)
            async with semaphore:
                return await self.provider.quote(target.symbol)

        quotes = await asyncio.gather(*(fetch(t) for t in targets), return_exceptions=True)

        for target, quote in zip(targets, quotes):
            if isinstance(quote, BaseException):
                raise quote

        return [QuoteRow.from_quote(t.id, t.symbol, q) for t, q in zip(targets, quotes)]

    async def scrape_all(self, targets: Sequence[ScrapeTarget]) -> List[QuoteRow]:
        """
        Fetch quotes for every target.

        Returns:
            Fresh rows on success; otherwise the last persisted rows, or []
            when nothing was ever persisted

        Raises:
            CacheStoreError: If the snapshot or sync marker cannot be written
        """
        logger.info(f"Fetching Yahoo Finance quotes for {len(targets)} symbols...")

        try:
            rows = await self._fetch_batch(targets)
        except Exception as e:
            logger.error(f"Yahoo Finance sync failed, falling back to last snapshot: {e}")
            await record_sync(self.store, YAHOO_SOURCE, SyncStatus.FAILED, detail=str(e))
            fallback = await load_yahoo_snapshot(self.store)
            logger.info(f"Using {len(fallback)} cached Yahoo Finance rows")
            return fallback

        completed_at = now_in(settings.display_timezone)
        await self.store.put_json(YAHOO_SNAPSHOT_KEY, {
            "version": SNAPSHOT_VERSION,
            "scraped_at": completed_at.isoformat(),
            "rows": [row.to_dict() for row in rows],
        })
        await record_sync(
            self.store,
            YAHOO_SOURCE,
            SyncStatus.OK,
            at=completed_at,
            detail=f"{len(rows)} quotes",
        )

        logger.info(f"Yahoo Finance sync complete: {len(rows)} quotes")
        return rows

    async def close(self):
        await self.provider.close()


async def load_yahoo_snapshot(store: CacheStore) -> List[QuoteRow]:
    """Load the last persisted quote rows; [] if missing or unreadable."""
    try:
        data = await store.get_json(YAHOO_SNAPSHOT_KEY)
    except CacheStoreError as e:
        logger.warning(f"Could not read cached Yahoo Finance snapshot: {e}")
        return []

    try:
        if not data:
            return []
        rows = data.get("rows", []) if isinstance(data, dict) else data
        return [QuoteRow.from_dict(item) for item in rows if item]
    except (json.JSONDecodeError, KeyError, TypeError, AttributeError) as e:
        logger.warning(f"Cached Yahoo Finance snapshot is unreadable: {e}")
        return []
