"""Time utilities for market hours, freshness and timezone handling."""
from datetime import datetime, time, timedelta
from typing import Iterable, Optional

import pytz


# Advisory lifetime of a merged record
FRESHNESS_HORIZON = timedelta(seconds=20)

DEFAULT_TIMEZONE = "Asia/Kolkata"
DEFAULT_MARKET_OPEN = time(9, 15)
DEFAULT_MARKET_CLOSE = time(15, 30)
DEFAULT_MARKET_DAYS = frozenset({0, 1, 2, 3, 4})  # Monday-Friday


def now_in(timezone_str: str = DEFAULT_TIMEZONE) -> datetime:
    """
    Get current time in a timezone.

    Args:
        timezone_str: IANA timezone name

    Returns:
        Current timezone-aware datetime
    """
    tz = pytz.timezone(timezone_str)
    return datetime.now(tz)


def localize(moment: datetime, timezone_str: str = DEFAULT_TIMEZONE) -> datetime:
    """Convert an aware datetime to timezone_str; naive values are taken as UTC."""
    if moment.tzinfo is None:
        moment = pytz.utc.localize(moment)
    return moment.astimezone(pytz.timezone(timezone_str))


def is_market_open(
    moment: datetime,
    open_time: time = DEFAULT_MARKET_OPEN,
    close_time: time = DEFAULT_MARKET_CLOSE,
    weekdays: Iterable[int] = DEFAULT_MARKET_DAYS,
    timezone_str: str = DEFAULT_TIMEZONE,
) -> bool:
    """
    Check whether the market is open at a given moment.

    The window is [open_time, close_time) in the market's local zone on
    the configured weekdays.

    Args:
        moment: Instant to check (naive values are taken as UTC)
        open_time: Local opening time, inclusive
        close_time: Local closing time, exclusive
        weekdays: Trading weekdays, Monday=0
        timezone_str: Market timezone

    Returns:
        True if the market is open
    """
    local = localize(moment, timezone_str)
    if local.weekday() not in set(weekdays):
        return False
    return open_time <= local.time().replace(tzinfo=None) < close_time


def compute_exp_time(now: Optional[datetime] = None, timezone_str: str = DEFAULT_TIMEZONE) -> datetime:
    """Expiry of a record produced at now: now + FRESHNESS_HORIZON in the display zone."""
    if now is None:
        now = now_in(timezone_str)
    return localize(now + FRESHNESS_HORIZON, timezone_str)


def is_expired(exp_time: datetime, now: Optional[datetime] = None) -> bool:
    """A record is expired once the current instant is past its exp_time."""
    if now is None:
        now = datetime.now(pytz.utc)
    return localize(now, "UTC") > localize(exp_time, "UTC")


def format_clock(moment: datetime, timezone_str: str = DEFAULT_TIMEZONE) -> str:
    """Format a moment as a 12-hour clock string in a timezone, e.g. "3:05:09 pm"."""
    local = localize(moment, timezone_str)
    return f"{local.hour % 12 or 12}:{local:%M:%S} {'pm' if local.hour >= 12 else 'am'}"
