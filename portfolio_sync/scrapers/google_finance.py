"""Google Finance scraper for P/E ratio and earnings per share."""
import asyncio
import logging
import re
from typing import Callable, Dict, List, Optional, Sequence

from portfolio_sync.core.config import settings
from portfolio_sync.providers import FetchExhausted, UnsupportedRoute
from portfolio_sync.providers.fetcher import RotatingFetcher
from portfolio_sync.providers.models import (
    FieldValue,
    GoogleFinanceRow,
    MissReason,
    ScrapeMiss,
    ScrapeOk,
    ScrapeResult,
    ScrapeTarget,
    SyncStatus,
)
from portfolio_sync.services.cache_store import GOOGLE_SNAPSHOT_KEY, SNAPSHOT_VERSION, CacheStore
from portfolio_sync.services.sync_markers import GOOGLE_SOURCE, record_sync
from portfolio_sync.utils.time import now_in


logger = logging.getLogger(__name__)

GOOGLE_FINANCE_URL = "https://www.google.com/finance/quote/{symbol}"

PE_RATIO_PATTERN = re.compile(
    r'P/E\s+ratio[\s\S]*?<div\s+class=["\']P6K39c["\'][^>]*>([^<]+)</div>'
)
EPS_PATTERN = re.compile(
    r'Earnings\s+per\s+share[\s\S]*?<td\s+class=["\']QXDnM["\'][^>]*>([^<]+)</td>'
)

Extractor = Callable[[str], Dict[str, FieldValue]]


def _match(pattern: re.Pattern, html: str) -> Optional[str]:
    match = pattern.search(html)
    if not match:
        return None
    return match.group(1).strip() or None


def extract_financials(html: str) -> Dict[str, FieldValue]:
    """
    Extract P/E ratio and EPS from a Google Finance quote page.

    Returns:
        {"pe_ratio": FieldValue, "earnings_per_share": FieldValue}; a field
        that is not on the page has raw and numeric both None
    """
    return {
        "pe_ratio": FieldValue.parse(_match(PE_RATIO_PATTERN, html)),
        "earnings_per_share": FieldValue.parse(_match(EPS_PATTERN, html)),
    }


class GoogleFinanceScraper:
    """Best-effort fundamentals scrape across the portfolio."""

    def __init__(
        self,
        store: CacheStore,
        fetcher: Optional[RotatingFetcher] = None,
        extractor: Extractor = extract_financials,
        concurrency: Optional[int] = None,
        url_template: str = GOOGLE_FINANCE_URL,
    ):
        self.store = store
        self.fetcher = fetcher or RotatingFetcher()
        self.extractor = extractor
        self.concurrency = concurrency if concurrency is not None else settings.scrape_concurrency
        self.url_template = url_template

    async def scrape_symbol(self, target: ScrapeTarget) -> ScrapeResult:
        """
        Scrape one entity.

        Never raises: fetch and extraction failures come back as ScrapeMiss.
        """
        url = self.url_template.format(symbol=target.symbol)

        try:
            html = await self.fetcher.fetch(url)
        except FetchExhausted as e:
            logger.warning(f"Fetch exhausted for {target.symbol} ({target.id}): {e.last_error}")
            return ScrapeMiss(target.id, MissReason.FETCH_FAILED, str(e))
        except UnsupportedRoute as e:
            logger.error(f"Cannot scrape {target.symbol}: {e}")
            return ScrapeMiss(target.id, MissReason.UNSUPPORTED_ROUTE, str(e))
        except Exception as e:
            logger.error(f"Unexpected error scraping {target.symbol}: {e}", exc_info=True)
            return ScrapeMiss(target.id, MissReason.ERROR, str(e))

        try:
            fields = self.extractor(html)
        except Exception as e:
            logger.error(f"Could not extract financials for {target.symbol}: {e}", exc_info=True)
            return ScrapeMiss(target.id, MissReason.ERROR, str(e))

        pe_ratio = fields.get("pe_ratio") or FieldValue()
        eps = fields.get("earnings_per_share") or FieldValue()

        if not pe_ratio.present and not eps.present:
            logger.warning(f"Could not extract P/E ratio or EPS from {url}")
            return ScrapeMiss(target.id, MissReason.FIELDS_MISSING, url)

        if not pe_ratio.present:
            logger.info(f"P/E ratio not found for {target.symbol}")
        if not eps.present:
            logger.info(f"Earnings per share not found for {target.symbol}")

        return ScrapeOk(GoogleFinanceRow(
            id=target.id,
            google_url=url,
            google_symbol=target.symbol,
            pe_ratio=pe_ratio,
            earnings_per_share=eps,
        ))

    async def scrape_all(self, targets: Sequence[ScrapeTarget]) -> List[ScrapeResult]:
        """
        Scrape every target concurrently and persist the snapshot.

        One entity's failure never affects the others. The snapshot is
        overwritten even when some or all entities missed.

        Raises:
            CacheStoreError: If the snapshot cannot be persisted
        """
        logger.info(f"Scraping Google Finance for {len(targets)} symbols...")

        semaphore = asyncio.Semaphore(self.concurrency) if self.concurrency else None

        async def bounded(target: ScrapeTarget) -> ScrapeResult:
            if semaphore is None:
                return await self.scrape_symbol(target)
            async with semaphore:
                return await self.scrape_symbol(target)

        results = list(await asyncio.gather(*(bounded(t) for t in targets)))

        hits = [r for r in results if isinstance(r, ScrapeOk)]
        misses = [r for r in results if isinstance(r, ScrapeMiss)]
        completed_at = now_in(settings.display_timezone)

        await self.store.put_json(GOOGLE_SNAPSHOT_KEY, {
            "version": SNAPSHOT_VERSION,
            "scraped_at": completed_at.isoformat(),
            "rows": [r.row.to_dict() for r in hits],
            "misses": [m.to_dict() for m in misses],
        })

        status = SyncStatus.OK if hits or not targets else SyncStatus.FAILED
        await record_sync(
            self.store,
            GOOGLE_SOURCE,
            status,
            at=completed_at,
            detail=f"{len(hits)}/{len(targets)} scraped",
        )

        logger.info(f"Google Finance scrape complete: {len(hits)} hits, {len(misses)} misses")
        return results

    async def close(self):
        await self.fetcher.close()


async def load_google_snapshot(store: CacheStore) -> Dict[str, GoogleFinanceRow]:
    """
    Load the persisted Google Finance snapshot keyed by entity id.

    Raises whatever the store or JSON decoding raises; callers decide how
    to degrade.
    """
    data = await store.get_json(GOOGLE_SNAPSHOT_KEY)
    if not data:
        return {}
    rows = data.get("rows", []) if isinstance(data, dict) else data
    snapshot = {}
    for item in rows:
        if not item:
            continue
        row = GoogleFinanceRow.from_dict(item)
        snapshot[row.id] = row
    return snapshot
