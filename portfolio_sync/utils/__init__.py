"""Utilities package initialization."""
from portfolio_sync.utils.time import (
    FRESHNESS_HORIZON,
    compute_exp_time,
    format_clock,
    is_expired,
    is_market_open,
    now_in,
)

__all__ = [
    "FRESHNESS_HORIZON",
    "compute_exp_time",
    "format_clock",
    "is_expired",
    "is_market_open",
    "now_in",
]
