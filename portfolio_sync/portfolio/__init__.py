"""Portfolio reference data."""
from portfolio_sync.portfolio.stocks import PORTFOLIO_STOCKS, google_symbols, yahoo_symbols

__all__ = ["PORTFOLIO_STOCKS", "google_symbols", "yahoo_symbols"]
