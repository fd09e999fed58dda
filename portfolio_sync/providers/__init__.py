"""Upstream capabilities and their error taxonomy."""
from abc import ABC, abstractmethod
from typing import Optional

from portfolio_sync.providers.models import Quote


class ProviderError(Exception):
    """Exception raised when an upstream source fails."""
    pass


class FetchExhausted(ProviderError):
    """Every header/route attempt for a URL failed."""

    def __init__(self, url: str, attempts: int, last_error: Optional[BaseException] = None):
        self.url = url
        self.attempts = attempts
        self.last_error = last_error
        message = f"All {attempts} attempts failed for {url}"
        if last_error:
            message += f": {last_error}"
        super().__init__(message)


class UnsupportedRoute(ProviderError):
    """A configured proxy route cannot be forwarded through by this build."""

    def __init__(self, route: str):
        self.route = route
        super().__init__(f"Proxy route not supported: {route}")


class QuoteUnavailable(ProviderError):
    """The quote capability returned nothing usable for a symbol."""
    pass


class QuoteProvider(ABC):
    """Abstract base class for quote data providers."""

    @abstractmethod
    async def quote(self, symbol: str) -> Quote:
        """
        Fetch the latest quote for a symbol.

        Args:
            symbol: Source-specific ticker symbol

        Returns:
            Quote with exchange, names, last price and currency

        Raises:
            ProviderError: If the quote cannot be retrieved
        """
        pass

    async def close(self):
        """Release provider resources."""
        pass
