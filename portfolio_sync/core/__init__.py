"""Core package initialization."""
from portfolio_sync.core.config import settings
from portfolio_sync.core.storage import close_cache_store, get_cache_store

__all__ = ["settings", "get_cache_store", "close_cache_store"]
