"""Unit tests for the FastAPI application wiring."""
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from portfolio_sync.api import main


@pytest.mark.unit
class TestCorsOrigins:
    """Test environment-dependent CORS origins."""

    def test_development_allows_all(self):
        with patch.object(main.settings, "environment", "development"):
            assert main.cors_origins() == ["*"]

    def test_production_uses_allow_list(self):
        with patch.object(main.settings, "environment", "production"), \
                patch.object(main.settings, "allowed_origins", "https://app.example.com"):
            assert main.cors_origins() == ["https://app.example.com"]

    def test_other_environment_allows_none(self):
        with patch.object(main.settings, "environment", "staging"):
            assert main.cors_origins() == []


@pytest.mark.unit
@pytest.mark.asyncio
class TestLifecycle:
    """Test scheduler start/stop with the application."""

    async def test_startup_and_shutdown(self):
        """✅ Startup installs the scheduler; shutdown stops it and closes the store."""
        scheduler = MagicMock()
        scheduler.evaluate = AsyncMock()
        scheduler.close = AsyncMock()

        with patch.object(main, "get_cache_store", new_callable=AsyncMock) as mock_store, \
                patch.object(main, "MarketHoursScheduler", return_value=scheduler) as mock_cls, \
                patch.object(main, "close_cache_store", new_callable=AsyncMock) as mock_close_store:
            await main.startup_event()
            await main._initial_check

            mock_cls.assert_called_once_with(mock_store.return_value)
            scheduler.install.assert_called_once()
            scheduler.evaluate.assert_awaited_once()

            await main.shutdown_event()

        scheduler.shutdown.assert_called_once()
        scheduler.close.assert_awaited_once()
        mock_close_store.assert_awaited_once()
        assert main.market_scheduler is None
