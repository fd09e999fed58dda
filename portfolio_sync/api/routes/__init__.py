"""API routes package initialization."""
from portfolio_sync.api.routes import health, stocks

__all__ = ["health", "stocks"]
