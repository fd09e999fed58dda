"""Unit tests for YFinanceQuoteProvider."""
import pytest
from unittest.mock import MagicMock, patch

from portfolio_sync.providers import ProviderError, QuoteUnavailable
from portfolio_sync.providers.yahoo import YFinanceQuoteProvider


@pytest.fixture
async def provider():
    """Create YFinanceQuoteProvider instance."""
    provider = YFinanceQuoteProvider(max_workers=1)
    yield provider
    await provider.close()


@pytest.mark.unit
@pytest.mark.asyncio
class TestQuote:
    """Test quote mapping from yfinance info dicts."""

    async def test_success(self, provider):
        """✅ Info dict → Quote."""
        info = {
            "symbol": "AFFLE.NS",
            "fullExchangeName": "NSE",
            "longName": "Affle (India) Limited",
            "shortName": "AFFLE",
            "regularMarketPrice": 1560.5,
            "currency": "INR",
        }
        with patch.object(provider, "_fetch_info_sync", return_value=info):
            quote = await provider.quote("AFFLE.NS")

        assert quote.exchange == "NSE"
        assert quote.long_name == "Affle (India) Limited"
        assert quote.short_name == "AFFLE"
        assert quote.price == 1560.5
        assert quote.currency == "INR"

    async def test_price_falls_back_to_current_price(self, provider):
        """✅ Missing regularMarketPrice → currentPrice."""
        info = {"symbol": "X.NS", "currentPrice": 99, "exchange": "NSI"}
        with patch.object(provider, "_fetch_info_sync", return_value=info):
            quote = await provider.quote("X.NS")

        assert quote.price == 99.0
        assert quote.exchange == "NSI"

    async def test_missing_fields_default(self, provider):
        """✅ Absent text fields → "" and absent price → 0."""
        with patch.object(provider, "_fetch_info_sync", return_value={"symbol": "X.NS"}):
            quote = await provider.quote("X.NS")

        assert quote.long_name == ""
        assert quote.currency == ""
        assert quote.price == 0.0

    async def test_empty_info(self, provider):
        """❌ Empty info → QuoteUnavailable."""
        with patch.object(provider, "_fetch_info_sync", return_value={}):
            with pytest.raises(QuoteUnavailable):
                await provider.quote("NOPE.NS")

    async def test_lookup_error_wrapped(self, provider):
        """❌ yfinance exception → ProviderError."""
        with patch.object(provider, "_fetch_info_sync", side_effect=RuntimeError("boom")):
            with pytest.raises(ProviderError, match="boom"):
                await provider.quote("AFFLE.NS")

    async def test_uses_yfinance_ticker(self, provider):
        """✅ Blocking lookup goes through yf.Ticker(symbol).info."""
        ticker = MagicMock()
        ticker.info = {"symbol": "AFFLE.NS", "regularMarketPrice": 10}
        with patch("portfolio_sync.providers.yahoo.yf.Ticker", return_value=ticker) as mock_ticker:
            quote = await provider.quote("AFFLE.NS")

        mock_ticker.assert_called_once_with("AFFLE.NS")
        assert quote.price == 10.0
