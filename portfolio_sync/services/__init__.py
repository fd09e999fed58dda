"""Services package initialization."""
from portfolio_sync.services.cache_store import CacheStore, CacheStoreError, FileCacheStore, RedisCacheStore
from portfolio_sync.services.readers import list_merged_records
from portfolio_sync.services.sync_markers import append_sync_log, get_sync_markers, record_sync, recent_sync_log

__all__ = [
    "CacheStore",
    "CacheStoreError",
    "FileCacheStore",
    "RedisCacheStore",
    "list_merged_records",
    "append_sync_log",
    "get_sync_markers",
    "record_sync",
    "recent_sync_log",
]
