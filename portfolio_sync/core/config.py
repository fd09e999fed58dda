"""Core configuration management using Pydantic settings."""
import json
import logging
from datetime import time
from typing import Dict, List, Optional
from urllib.parse import urlsplit

import pytz
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


logger = logging.getLogger(__name__)

# Valid log levels
VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']

# Header profiles used when HEADER_VARIANTS is unset or yields nothing usable
DEFAULT_HEADER_PROFILES: List[Dict[str, str]] = [
    {
        "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36",
        "Accept-Language": "en-US,en;q=0.9",
    },
    {
        "User-Agent": "Mozilla/5.0 (Macintosh; Intel Mac OS X 11_0_1) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/15.1 Safari/605.1.15",
        "Accept-Language": "en-GB,en;q=0.8",
    },
    {
        "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
        "Accept-Language": "en-IN,en;q=0.7",
    },
    {
        "User-Agent": "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/118.0.0.0 Safari/537.36",
        "Accept-Language": "en-US,en;q=0.9",
    },
]


def parse_clock(value: str) -> time:
    """Parse an HH:MM string into a time, raising ValueError if malformed."""
    hours, _, minutes = value.strip().partition(":")
    if not hours.isdigit() or not minutes.isdigit():
        raise ValueError(f"expected HH:MM, got {value!r}")
    return time(int(hours), int(minutes))


def parse_header_variants(raw: Optional[str]) -> List[Dict[str, str]]:
    """
    Parse a JSON array of header objects.

    Entries that are not objects are dropped with a warning; values are
    coerced to strings and None values skipped. Unparsable JSON yields [].
    """
    if not raw:
        return []

    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning(f"Ignoring HEADER_VARIANTS, not valid JSON: {e}")
        return []

    if not isinstance(parsed, list):
        logger.warning("Ignoring HEADER_VARIANTS, expected a JSON array")
        return []

    profiles = []
    for index, entry in enumerate(parsed):
        if not isinstance(entry, dict):
            logger.warning(f"Dropping header variant #{index}: not an object")
            continue
        profiles.append({str(k): str(v) for k, v in entry.items() if v is not None})

    return profiles


def parse_proxy_list(raw: Optional[str]) -> List[str]:
    """
    Parse a comma-separated proxy list.

    Entries without a scheme or host are dropped with a warning so one bad
    proxy never breaks config loading.
    """
    if not raw:
        return []

    routes = []
    for candidate in (entry.strip() for entry in raw.split(",")):
        if not candidate:
            continue
        try:
            parts = urlsplit(candidate)
            scheme, host = parts.scheme, parts.hostname
            parts.port  # raises ValueError on a non-numeric port
        except ValueError:
            scheme, host = None, None
        if not scheme or not host:
            logger.warning(f"Dropping malformed proxy entry: {candidate!r}")
            continue
        routes.append(candidate)

    return routes


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Logging
    log_level: str = "INFO"

    # API Configuration
    environment: str = "development"
    allowed_origins: str = ""  # Comma-separated, only honoured in production
    backend_port: int = 8080

    # Storage (Redis when redis_url is set, otherwise files under cache_dir)
    redis_url: Optional[str] = None
    cache_dir: str = "./data/localcache"

    # Scrape cadence (seconds)
    google_scrape_interval: int = 20
    yahoo_scrape_interval: int = 20

    # Market hours
    market_timezone: str = "Asia/Kolkata"
    display_timezone: str = "Asia/Kolkata"
    market_open: str = "09:15"
    market_close: str = "15:30"
    market_days: str = "0,1,2,3,4"  # Monday=0
    market_check_minutes: int = 15

    # SSE push cadence (seconds)
    stream_interval: int = 20

    # Outbound fetching
    header_variants: Optional[str] = None  # JSON array of header objects
    proxy_list: Optional[str] = None  # Comma-separated proxy URLs
    fetch_timeout: float = 15.0
    scrape_concurrency: Optional[int] = None

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid Python logging level."""
        upper_v = v.upper()
        if upper_v not in VALID_LOG_LEVELS:
            raise ValueError(f"log_level must be one of {VALID_LOG_LEVELS}")
        return upper_v

    @field_validator(
        'google_scrape_interval',
        'yahoo_scrape_interval',
        'market_check_minutes',
        'stream_interval',
    )
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("intervals must be positive")
        return v

    @field_validator('scrape_concurrency')
    @classmethod
    def validate_concurrency(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 1:
            raise ValueError("scrape_concurrency must be at least 1")
        return v

    @field_validator('market_timezone', 'display_timezone')
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        try:
            pytz.timezone(v)
        except pytz.UnknownTimeZoneError:
            raise ValueError(f"unknown timezone: {v}")
        return v

    @field_validator('market_open', 'market_close')
    @classmethod
    def validate_clock(cls, v: str) -> str:
        parse_clock(v)
        return v.strip()

    @field_validator('market_days')
    @classmethod
    def validate_market_days(cls, v: str) -> str:
        days = [d.strip() for d in v.split(",") if d.strip()]
        if not days or any(not d.isdigit() or int(d) > 6 for d in days):
            raise ValueError("market_days must be comma-separated weekday numbers 0-6")
        return v

    @model_validator(mode='after')
    def validate_config(self) -> 'Settings':
        """Validate configuration after all fields are set."""
        if parse_clock(self.market_open) >= parse_clock(self.market_close):
            raise ValueError("market_open must be earlier than market_close")
        return self

    @property
    def allowed_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string to list."""
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    @property
    def market_open_time(self) -> time:
        return parse_clock(self.market_open)

    @property
    def market_close_time(self) -> time:
        return parse_clock(self.market_close)

    @property
    def market_weekdays(self) -> frozenset:
        return frozenset(int(d) for d in self.market_days.split(",") if d.strip())

    @property
    def header_profiles(self) -> List[Dict[str, str]]:
        """Header pool for the rotating fetcher, defaults when none configured."""
        return parse_header_variants(self.header_variants) or [dict(p) for p in DEFAULT_HEADER_PROFILES]

    @property
    def proxy_routes(self) -> List[Optional[str]]:
        """Egress routes for the rotating fetcher; None means direct."""
        return parse_proxy_list(self.proxy_list) or [None]


# Global settings instance
settings = Settings()
