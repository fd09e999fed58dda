"""Yahoo Finance quote provider backed by yfinance."""
import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Optional

import yfinance as yf

from portfolio_sync.providers import ProviderError, QuoteProvider, QuoteUnavailable
from portfolio_sync.providers.models import Quote


logger = logging.getLogger(__name__)


def _price(info: Dict[str, Any]) -> float:
    for key in ("regularMarketPrice", "currentPrice"):
        value = info.get(key)
        if isinstance(value, (int, float)):
            return float(value)
    return 0.0


class YFinanceQuoteProvider(QuoteProvider):
    """yfinance implementation of the quote capability.

    yfinance is blocking, so lookups run in a small thread pool.
    """

    def __init__(self, max_workers: int = 8, executor: Optional[ThreadPoolExecutor] = None):
        self._executor = executor or ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="yfinance")

    def _fetch_info_sync(self, symbol: str) -> Dict[str, Any]:
        return yf.Ticker(symbol).info or {}

    async def quote(self, symbol: str) -> Quote:
        loop = asyncio.get_running_loop()
        try:
            info = await loop.run_in_executor(self._executor, self._fetch_info_sync, symbol)
        except Exception as e:
            raise ProviderError(f"yfinance lookup failed for {symbol}: {e}") from e

        if not info or not info.get("symbol"):
            raise QuoteUnavailable(f"No quote data for {symbol}")

        return Quote(
            exchange=info.get("fullExchangeName") or info.get("exchange") or "",
            long_name=info.get("longName") or "",
            short_name=info.get("shortName") or "",
            price=_price(info),
            currency=info.get("currency") or "",
        )

    async def close(self):
        self._executor.shutdown(wait=False)
