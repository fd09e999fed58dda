"""Read side of the cache store, used by the API layer."""
import json
import logging
from typing import List

from portfolio_sync.providers.models import MergedRecord
from portfolio_sync.services.cache_store import MERGED_PREFIX, CacheStore
from portfolio_sync.services.sync_markers import get_sync_markers, recent_sync_log


logger = logging.getLogger(__name__)


async def list_merged_records(store: CacheStore) -> List[MergedRecord]:
    """
    Load every merged record.

    Unreadable entries are skipped with a warning; an empty or partial
    list is a valid answer.
    """
    records = []
    for key in await store.list(MERGED_PREFIX):
        try:
            data = await store.get_json(key)
            if data is None:
                continue
            records.append(MergedRecord.from_dict(data))
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping unreadable record {key}: {e}")
    return records


__all__ = ["list_merged_records", "get_sync_markers", "recent_sync_log"]
