"""Scheduler package initialization."""
from portfolio_sync.scheduler.main import MarketHoursScheduler

__all__ = ["MarketHoursScheduler"]
