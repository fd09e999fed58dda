"""Market-hours scheduler for the scrape and merge jobs."""
import logging
import asyncio
from datetime import datetime, time
from typing import Callable, Dict, Iterable, Optional

from apscheduler.job import Job
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from portfolio_sync.core.config import settings
from portfolio_sync.core.storage import close_cache_store, get_cache_store
from portfolio_sync.portfolio import PORTFOLIO_STOCKS, google_symbols
from portfolio_sync.providers.models import SyncStatus
from portfolio_sync.scrapers.google_finance import GoogleFinanceScraper
from portfolio_sync.services.cache_store import CacheStore
from portfolio_sync.services.merge_service import MergeEngine
from portfolio_sync.services.sync_markers import append_sync_log
from portfolio_sync.utils.time import is_market_open, now_in


logger = logging.getLogger(__name__)

GOOGLE_JOB_ID = "scrape_google_finance"
MERGE_JOB_ID = "merge_scraped_data"
MARKET_CHECK_JOB_ID = "market_hours_check"


class MarketHoursScheduler:
    """
    Starts the recurring jobs while the market is open and stops them after.

    The decision is re-derived from the current time on every tick, so a
    missed tick is corrected by the next one.
    """

    def __init__(
        self,
        store: CacheStore,
        google_scraper: Optional[GoogleFinanceScraper] = None,
        merge_engine: Optional[MergeEngine] = None,
        scheduler: Optional[AsyncIOScheduler] = None,
        clock: Optional[Callable[[], datetime]] = None,
        google_interval: Optional[int] = None,
        merge_interval: Optional[int] = None,
        check_minutes: Optional[int] = None,
        market_open: Optional[time] = None,
        market_close: Optional[time] = None,
        market_days: Optional[Iterable[int]] = None,
        market_timezone: Optional[str] = None,
    ):
        logger.info("Initializing MarketHoursScheduler...")
        self.store = store
        self.google_scraper = google_scraper or GoogleFinanceScraper(store)
        self.merge_engine = merge_engine or MergeEngine(store)
        self.scheduler = scheduler or AsyncIOScheduler()
        self.market_timezone = market_timezone or settings.market_timezone
        self.clock = clock or (lambda: now_in(self.market_timezone))
        self.google_interval = google_interval or settings.google_scrape_interval
        self.merge_interval = merge_interval or settings.yahoo_scrape_interval
        self.check_minutes = check_minutes or settings.market_check_minutes
        self.market_open = market_open or settings.market_open_time
        self.market_close = market_close or settings.market_close_time
        self.market_days = frozenset(market_days if market_days is not None else settings.market_weekdays)
        self.targets = google_symbols(PORTFOLIO_STOCKS)

        self._jobs: Dict[str, Job] = {}
        self._evaluate_lock = asyncio.Lock()
        logger.info("MarketHoursScheduler initialized")

    @property
    def active(self) -> bool:
        return bool(self._jobs)

    def is_open(self, moment: Optional[datetime] = None) -> bool:
        """Check the market window at moment (defaults to now)."""
        return is_market_open(
            moment or self.clock(),
            open_time=self.market_open,
            close_time=self.market_close,
            weekdays=self.market_days,
            timezone_str=self.market_timezone,
        )

    async def scrape_google(self):
        """Run one Google Finance scrape."""
        try:
            await self.google_scraper.scrape_all(self.targets)
        except Exception as e:
            logger.error(f"Google Finance scraping failed: {e}", exc_info=True)

    async def merge(self):
        """Run one merge and record it in the sync log."""
        try:
            count = await self.merge_engine.run_exclusive()
        except Exception as e:
            logger.error(f"Merge failed: {e}", exc_info=True)
            await self._log_merge(0, status=SyncStatus.FAILED, detail=str(e))
            return

        if count is None:
            return

        await self._log_merge(count)

    async def _log_merge(self, count: int, **kwargs):
        try:
            await append_sync_log(self.store, count, **kwargs)
        except Exception as e:
            logger.error(f"Could not write sync log: {e}", exc_info=True)

    async def start(self) -> bool:
        """
        Run an immediate scrape + merge pass, then register both recurring jobs.

        Returns:
            False if the jobs were already registered
        """
        if self._jobs:
            logger.debug("Recurring jobs already running")
            return False

        logger.info("Market open: running initial scrape and merge")
        await self.scrape_google()
        await self.merge()

        self._jobs[GOOGLE_JOB_ID] = self.scheduler.add_job(
            self.scrape_google,
            trigger=IntervalTrigger(seconds=self.google_interval),
            id=GOOGLE_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self._jobs[MERGE_JOB_ID] = self.scheduler.add_job(
            self.merge,
            trigger=IntervalTrigger(seconds=self.merge_interval),
            id=MERGE_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        logger.info(
            f"Registered recurring jobs: Google every {self.google_interval}s, "
            f"merge every {self.merge_interval}s"
        )
        return True

    def stop(self) -> bool:
        """
        Cancel both recurring jobs. In-flight runs are left to finish.

        Returns:
            False if no jobs were registered
        """
        if not self._jobs:
            logger.debug("No recurring jobs to stop")
            return False

        for job_id, job in self._jobs.items():
            try:
                job.remove()
            except Exception as e:
                logger.warning(f"Could not remove job {job_id}: {e}")
        self._jobs.clear()
        logger.info("Market closed: recurring jobs stopped")
        return True

    async def evaluate(self):
        """Control-loop tick: align the running jobs with market hours."""
        async with self._evaluate_lock:
            now = self.clock()
            market_open = self.is_open(now)
            logger.debug(f"Market check at {now.isoformat()}: open={market_open}, active={self.active}")

            if market_open and not self._jobs:
                await self.start()
            elif not market_open and self._jobs:
                self.stop()

    def install(self):
        """Register the control-loop tick and start APScheduler."""
        logger.info("="*60)
        logger.info("Starting market-hours scheduler...")
        logger.info(f"Log level: {settings.log_level}")
        logger.info(
            f"Market window: {self.market_open:%H:%M}-{self.market_close:%H:%M} "
            f"{self.market_timezone}, days {sorted(self.market_days)}"
        )
        logger.info(f"Market check every {self.check_minutes} minutes")
        logger.info("="*60)

        self.scheduler.add_job(
            self.evaluate,
            trigger=IntervalTrigger(minutes=self.check_minutes),
            id=MARKET_CHECK_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.scheduler.start()
        logger.info("Scheduler started successfully")

    def shutdown(self):
        self.stop()
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)

    async def close(self):
        await self.google_scraper.close()
        await self.merge_engine.close()

    async def run(self):
        """Run scheduler indefinitely."""
        self.install()
        await self.evaluate()

        try:
            # Keep running
            while True:
                await asyncio.sleep(1)
        except (KeyboardInterrupt, SystemExit):
            logger.info("Shutting down scheduler...")
        finally:
            self.shutdown()
            await self.close()


async def main():
    """Main entry point for scheduler."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    store = await get_cache_store()
    scheduler = MarketHoursScheduler(store)
    try:
        await scheduler.run()
    finally:
        await close_cache_store()


def cli():
    asyncio.run(main())


if __name__ == "__main__":
    cli()
