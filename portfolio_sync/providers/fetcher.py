"""Rotating-identity HTTP fetcher.

Cycles through every (header profile, egress route) pair so that a block
keyed on one fingerprint does not sink the whole request. Attempts are
driven by tenacity with a jittered fixed backoff between them.
"""
import logging
from itertools import product
from typing import Dict, List, Optional, Sequence, Tuple
from urllib.parse import urlsplit

import httpx
from tenacity import (
    AsyncRetrying,
    RetryError,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
    wait_random,
)

from portfolio_sync.core.config import settings
from portfolio_sync.providers import FetchExhausted, ProviderError, UnsupportedRoute


logger = logging.getLogger(__name__)

BLOCK_STATUSES = frozenset({403, 429})
SUPPORTED_PROXY_SCHEMES = frozenset({"http", "https"})

BACKOFF_BASE_SECONDS = 0.3
BACKOFF_JITTER_SECONDS = 0.5


class BlockedResponse(ProviderError):
    """Upstream answered 403/429 (rate limited or forbidden)."""

    def __init__(self, status_code: int, attempt: int):
        self.status_code = status_code
        super().__init__(f"Rate limited or forbidden on attempt {attempt}, status: {status_code}")


class BadStatus(ProviderError):
    """Upstream answered with any other non-success status."""

    def __init__(self, status_code: int, attempt: int):
        self.status_code = status_code
        super().__init__(f"Failed fetch on attempt {attempt}, status: {status_code}")


RETRYABLE_ERRORS = (BlockedResponse, BadStatus, httpx.TransportError)


class RotatingFetcher:
    """Fetch documents while rotating request headers and proxy routes."""

    def __init__(
        self,
        header_profiles: Optional[Sequence[Dict[str, str]]] = None,
        routes: Optional[Sequence[Optional[str]]] = None,
        timeout: Optional[float] = None,
        backoff_base: float = BACKOFF_BASE_SECONDS,
        backoff_jitter: float = BACKOFF_JITTER_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.header_profiles: List[Dict[str, str]] = list(header_profiles or settings.header_profiles)
        self.routes: List[Optional[str]] = list(routes or settings.proxy_routes)
        self.timeout = timeout if timeout is not None else settings.fetch_timeout
        self.backoff_base = backoff_base
        self.backoff_jitter = backoff_jitter
        self._transport = transport
        self._clients: Dict[Optional[str], httpx.AsyncClient] = {}

        # Round-robin order: every route for a profile before the next profile
        self.combos: List[Tuple[Dict[str, str], Optional[str]]] = list(
            product(self.header_profiles, self.routes)
        )
        self.max_attempts = len(self.header_profiles) * len(self.routes) * 2

    def _client_for(self, route: Optional[str]) -> httpx.AsyncClient:
        """Get (or lazily create) the HTTP client bound to a route."""
        if route:
            scheme = urlsplit(route).scheme.lower()
            if scheme not in SUPPORTED_PROXY_SCHEMES:
                raise UnsupportedRoute(route)

        client = self._clients.get(route)
        if client is None:
            client = httpx.AsyncClient(
                proxy=route or None,
                timeout=self.timeout,
                follow_redirects=True,
                transport=self._transport,
            )
            self._clients[route] = client
        return client

    async def _attempt(self, url: str, headers: Dict[str, str], route: Optional[str], attempt: int) -> str:
        client = self._client_for(route)
        response = await client.get(url, headers=headers)

        if 200 <= response.status_code < 300:
            return response.text
        if response.status_code in BLOCK_STATUSES:
            raise BlockedResponse(response.status_code, attempt)
        raise BadStatus(response.status_code, attempt)

    async def fetch(self, url: str) -> str:
        """
        Fetch a URL and return the response body.

        Args:
            url: Target document URL

        Returns:
            Response body as text

        Raises:
            FetchExhausted: If every attempt failed
            UnsupportedRoute: If a selected proxy route cannot be used
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_fixed(self.backoff_base) + wait_random(0, self.backoff_jitter),
            retry=retry_if_exception_type(RETRYABLE_ERRORS),
            before_sleep=before_sleep_log(logger, logging.WARNING),
        )

        try:
            async for attempt in retrying:
                with attempt:
                    index = attempt.retry_state.attempt_number - 1
                    headers, route = self.combos[index % len(self.combos)]
                    return await self._attempt(url, headers, route, index + 1)
        except RetryError as e:
            last_error = e.last_attempt.exception()
            logger.error(f"Failed to fetch after rotating all headers and proxies for {url}: {last_error}")
            raise FetchExhausted(url, self.max_attempts, last_error) from last_error

    async def close(self):
        """Close all HTTP clients."""
        for client in self._clients.values():
            await client.aclose()
        self._clients.clear()
