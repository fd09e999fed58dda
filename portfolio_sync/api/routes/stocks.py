"""Stock record endpoints backed by the cache store."""
import asyncio
import json
import logging
from datetime import datetime
from typing import Any, AsyncIterator, Dict, List, Optional

import pytz
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import StreamingResponse

from portfolio_sync.core.config import settings
from portfolio_sync.core.storage import get_cache_store
from portfolio_sync.providers.models import MergedRecord
from portfolio_sync.services.cache_store import CacheStore, CacheStoreError
from portfolio_sync.services.readers import get_sync_markers, list_merged_records, recent_sync_log
from portfolio_sync.utils.time import is_expired


logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["stocks"])


async def get_store() -> CacheStore:
    """Dependency providing the shared cache store."""
    return await get_cache_store()


def serialize_records(records: List[MergedRecord], now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """Records as JSON-ready dicts, each flagged with whether it is past exp_time."""
    now = now or datetime.now(pytz.utc)
    return [{**record.to_dict(), "expired": is_expired(record.exp_time, now)} for record in records]


def format_sse(data: Any) -> str:
    """Encode one Server-Sent Events message."""
    return f"data: {json.dumps(data)}\n\n"


async def stream_records(request: Request, store: CacheStore, interval: float) -> AsyncIterator[str]:
    """Push the full record list every interval seconds until the client leaves."""
    while True:
        if await request.is_disconnected():
            logger.info("Client disconnected")
            break

        try:
            records = await list_merged_records(store)
            yield format_sse(serialize_records(records))
        except CacheStoreError as e:
            logger.error(f"Error reading stocks for stream: {e}")
            yield format_sse({"error": "Could not read stocks."})

        await asyncio.sleep(interval)


@router.get("/stocks")
async def get_stocks(store: CacheStore = Depends(get_store)):
    """
    Get every merged stock record.

    An empty or partial list is a normal response.
    """
    try:
        records = await list_merged_records(store)
    except CacheStoreError as e:
        logger.error(f"Could not read stocks: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not read stocks."
        )

    return {
        "success": True,
        "data": serialize_records(records),
        "message": "Stocks data fetched Successfully.",
    }


@router.get("/stocks/stream")
async def get_stock_stream(request: Request, store: CacheStore = Depends(get_store)):
    """Server-Sent Events stream of the merged records."""
    return StreamingResponse(
        stream_records(request, store, settings.stream_interval),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )


@router.get("/sync")
async def get_sync_status(limit: int = 20, store: CacheStore = Depends(get_store)):
    """Last sync markers per source plus the most recent sync log lines."""
    try:
        markers = await get_sync_markers(store)
        log = await recent_sync_log(store, max(1, min(limit, 200)))
    except CacheStoreError as e:
        logger.error(f"Could not read sync status: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not read sync status."
        )

    return {
        "markers": {source: marker.to_dict() if marker else None for source, marker in markers.items()},
        "log": log,
    }
