"""Cache store selection from configuration."""
import asyncio
import logging

import redis.asyncio as redis

from portfolio_sync.core.config import settings
from portfolio_sync.services.cache_store import CacheStore, FileCacheStore, RedisCacheStore


logger = logging.getLogger(__name__)

REDIS_MAX_CONNECTIONS = 50

_store: CacheStore | None = None
_redis_client: redis.Redis | None = None
_store_lock = asyncio.Lock()


def connect_redis(url: str) -> redis.Redis:
    """Open the shared Redis connection pool."""
    return redis.from_url(url, max_connections=REDIS_MAX_CONNECTIONS)


async def get_cache_store() -> CacheStore:
    """Get the process-wide cache store (Redis when configured, else files)."""
    global _store, _redis_client

    if _store is not None:
        return _store

    async with _store_lock:
        if _store is None:
            if settings.redis_url:
                logger.info("Using Redis cache store")
                _redis_client = connect_redis(settings.redis_url)
                _store = RedisCacheStore(_redis_client)
            else:
                logger.info(f"Using file cache store at {settings.cache_dir}")
                _store = FileCacheStore(settings.cache_dir)
    return _store


async def close_cache_store():
    """Drop the process-wide store and close its Redis pool, if any."""
    global _store, _redis_client
    async with _store_lock:
        if _redis_client is not None:
            await _redis_client.aclose()
            logger.info("Redis connection pool closed")
        _redis_client = None
        _store = None
