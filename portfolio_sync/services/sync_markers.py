"""Per-source "last sync at T" markers and the operational sync log."""
import json
import logging
from datetime import datetime
from typing import Dict, List, Optional

from portfolio_sync.core.config import settings
from portfolio_sync.providers.models import SyncMarker, SyncStatus
from portfolio_sync.services.cache_store import SYNC_LOG_KEY, SYNC_PREFIX, CacheStore
from portfolio_sync.utils.time import format_clock, localize, now_in


logger = logging.getLogger(__name__)

GOOGLE_SOURCE = "google"
YAHOO_SOURCE = "yahoo"
MERGE_SOURCE = "last"


async def record_sync(
    store: CacheStore,
    source: str,
    status: SyncStatus,
    at: Optional[datetime] = None,
    detail: str = "",
) -> SyncMarker:
    """Overwrite the sync marker for a source."""
    at = localize(at, settings.display_timezone) if at else now_in(settings.display_timezone)
    marker = SyncMarker(source=source, status=status, at=at, detail=detail)
    await store.put_json(f"{SYNC_PREFIX}{source}", marker.to_dict())
    logger.debug(f"Recorded {status.value} sync for {source} at {at.isoformat()}")
    return marker


async def append_sync_log(
    store: CacheStore,
    count: int,
    at: Optional[datetime] = None,
    status: SyncStatus = SyncStatus.OK,
    detail: str = "",
) -> str:
    """
    Record a merge cycle: marker plus one appended log line.

    A FAILED cycle is logged as a failure, never as zero prices fetched.
    """
    at = localize(at, settings.display_timezone) if at else now_in(settings.display_timezone)
    clock = format_clock(at, settings.display_timezone)
    if status == SyncStatus.FAILED:
        await record_sync(store, MERGE_SOURCE, SyncStatus.FAILED, at=at, detail=detail)
        line = f"Yahoo: Sync failed {clock}"
    else:
        await record_sync(store, MERGE_SOURCE, SyncStatus.OK, at=at, detail=detail or f"{count} records")
        line = f"Yahoo: Prices fetched for {count} stocks {clock}"
    await store.append(SYNC_LOG_KEY, line)
    return line


async def get_sync_markers(store: CacheStore) -> Dict[str, Optional[SyncMarker]]:
    """Read the markers for every source; missing or corrupt ones are None."""
    markers = {}
    for source in (GOOGLE_SOURCE, YAHOO_SOURCE, MERGE_SOURCE):
        try:
            data = await store.get_json(f"{SYNC_PREFIX}{source}")
            markers[source] = SyncMarker.from_dict(data) if data else None
        except (json.JSONDecodeError, KeyError, ValueError) as e:
            logger.warning(f"Unreadable sync marker for {source}: {e}")
            markers[source] = None
    return markers


async def recent_sync_log(store: CacheStore, limit: int = 50) -> List[str]:
    return await store.tail(SYNC_LOG_KEY, limit)
