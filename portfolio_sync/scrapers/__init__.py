"""Per-source scrapers."""
from portfolio_sync.scrapers.google_finance import GoogleFinanceScraper, extract_financials, load_google_snapshot
from portfolio_sync.scrapers.yahoo_finance import YahooFinanceScraper, load_yahoo_snapshot

__all__ = [
    "GoogleFinanceScraper",
    "YahooFinanceScraper",
    "extract_financials",
    "load_google_snapshot",
    "load_yahoo_snapshot",
]
