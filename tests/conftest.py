"""Shared pytest fixtures for the portfolio sync tests."""
import pytest
from datetime import datetime
from typing import Optional

import fakeredis.aioredis
import pytz

from portfolio_sync.providers.models import (
    Entity,
    FieldValue,
    GoogleFinanceRow,
    Quote,
    QuoteRow,
    SymbolAliases,
)
from portfolio_sync.services.cache_store import FileCacheStore, RedisCacheStore


IST = pytz.timezone("Asia/Kolkata")


def create_entity(
    entity_id: str,
    sector: str = "Technology",
    purchase_price: float = 100.0,
    quantity: int = 10,
    portfolio_percentage: float = 2.0,
) -> Entity:
    """Factory function to create Entity instances for testing."""
    return Entity(
        id=entity_id,
        sector=sector,
        symbol=SymbolAliases(google=f"{entity_id.upper()}:NSE", yahoo=f"{entity_id.upper()}.NS"),
        name=f"{entity_id.title()} Ltd",
        purchase_price=purchase_price,
        quantity=quantity,
        investment=purchase_price * quantity,
        portfolio_percentage=portfolio_percentage,
    )


def create_google_row(entity_id: str, pe: Optional[str] = "25.10", eps: Optional[str] = "12.40") -> GoogleFinanceRow:
    """Factory function to create GoogleFinanceRow instances for testing."""
    symbol = f"{entity_id.upper()}:NSE"
    return GoogleFinanceRow(
        id=entity_id,
        google_url=f"https://www.google.com/finance/quote/{symbol}",
        google_symbol=symbol,
        pe_ratio=FieldValue.parse(pe),
        earnings_per_share=FieldValue.parse(eps),
    )


def create_quote_row(entity_id: str, price: float = 150.0) -> QuoteRow:
    """Factory function to create QuoteRow instances for testing."""
    return QuoteRow(
        id=entity_id,
        yahoo_symbol=f"{entity_id.upper()}.NS",
        exchange="NSE",
        name=f"{entity_id.title()} Limited",
        short_name=entity_id.upper(),
        price=price,
        currency="INR",
    )


def create_quote(price: float = 150.0) -> Quote:
    return Quote(exchange="NSE", long_name="Acme Limited", short_name="ACME", price=price, currency="INR")


def ist(year, month, day, hour=0, minute=0, second=0) -> datetime:
    """Aware datetime in Asia/Kolkata."""
    return IST.localize(datetime(year, month, day, hour, minute, second))


@pytest.fixture
def entities():
    """Three-entity reference table: A, B and C."""
    return [create_entity("alpha"), create_entity("beta"), create_entity("gamma")]


@pytest.fixture
async def fake_redis():
    """Create a FakeRedis instance for testing."""
    redis = fakeredis.aioredis.FakeRedis(decode_responses=True)
    yield redis
    await redis.flushall()
    await redis.aclose()


@pytest.fixture
def redis_store(fake_redis):
    """RedisCacheStore backed by FakeRedis."""
    return RedisCacheStore(fake_redis)


@pytest.fixture
def file_store(tmp_path):
    """FileCacheStore rooted in a temporary directory."""
    return FileCacheStore(str(tmp_path / "cache"))
