"""Data models for reference data, scrape snapshots and merged records."""
import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Union


@dataclass(frozen=True)
class SymbolAliases:
    """Per-source symbols for one entity."""
    google: str
    yahoo: str


@dataclass(frozen=True)
class Entity:
    """Portfolio position (static reference data)."""
    id: str
    sector: str
    symbol: SymbolAliases
    name: str
    purchase_price: float
    quantity: int
    investment: float
    portfolio_percentage: float


@dataclass(frozen=True)
class ScrapeTarget:
    """One entity as seen by a single source."""
    id: str
    symbol: str


def parse_numeric(raw: Optional[str]) -> Optional[float]:
    """Parse a scraped figure such as "1,234.50"; None when not a finite number."""
    if raw is None:
        return None
    try:
        value = float(raw.strip().replace(",", ""))
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return value


@dataclass
class FieldValue:
    """A scraped field kept in both raw-string and parsed form."""
    raw: Optional[str] = None
    numeric: Optional[float] = None

    @classmethod
    def parse(cls, raw: Optional[str]) -> "FieldValue":
        return cls(raw=raw, numeric=parse_numeric(raw))

    @property
    def present(self) -> bool:
        return self.raw is not None

    def to_dict(self) -> Dict[str, Any]:
        return {"raw": self.raw, "numeric": self.numeric}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "FieldValue":
        if not data:
            return cls()
        return cls(raw=data.get("raw"), numeric=data.get("numeric"))


@dataclass
class GoogleFinanceRow:
    """Google Finance row: fundamentals for one entity."""
    id: str
    google_url: str
    google_symbol: str
    pe_ratio: FieldValue = field(default_factory=FieldValue)
    earnings_per_share: FieldValue = field(default_factory=FieldValue)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "google_url": self.google_url,
            "google_symbol": self.google_symbol,
            "pe_ratio": self.pe_ratio.to_dict(),
            "earnings_per_share": self.earnings_per_share.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GoogleFinanceRow":
        return cls(
            id=data["id"],
            google_url=data.get("google_url", ""),
            google_symbol=data.get("google_symbol", ""),
            pe_ratio=FieldValue.from_dict(data.get("pe_ratio")),
            earnings_per_share=FieldValue.from_dict(data.get("earnings_per_share")),
        )


class MissReason(str, Enum):
    """Why a per-entity scrape produced no row."""
    FETCH_FAILED = "fetch_failed"
    UNSUPPORTED_ROUTE = "unsupported_route"
    FIELDS_MISSING = "fields_missing"
    ERROR = "error"


@dataclass
class ScrapeOk:
    row: GoogleFinanceRow

    @property
    def id(self) -> str:
        return self.row.id


@dataclass
class ScrapeMiss:
    id: str
    reason: MissReason
    detail: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "reason": self.reason.value, "detail": self.detail}


ScrapeResult = Union[ScrapeOk, ScrapeMiss]


@dataclass
class Quote:
    """Quote capability output for one symbol."""
    exchange: str = ""
    long_name: str = ""
    short_name: str = ""
    price: float = 0.0
    currency: str = ""


@dataclass
class QuoteRow:
    """Yahoo Finance row: quote fields for one entity."""
    id: str
    yahoo_symbol: str = ""
    exchange: str = ""
    name: str = ""
    short_name: str = ""
    price: float = 0.0
    currency: str = ""

    @classmethod
    def from_quote(cls, entity_id: str, symbol: str, quote: Quote) -> "QuoteRow":
        return cls(
            id=entity_id,
            yahoo_symbol=symbol,
            exchange=quote.exchange or "",
            name=quote.long_name or "",
            short_name=quote.short_name or "",
            price=quote.price if isinstance(quote.price, (int, float)) else 0.0,
            currency=quote.currency or "",
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "yahoo_symbol": self.yahoo_symbol,
            "exchange": self.exchange,
            "name": self.name,
            "short_name": self.short_name,
            "price": self.price,
            "currency": self.currency,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QuoteRow":
        price = data.get("price")
        return cls(
            id=data["id"],
            yahoo_symbol=data.get("yahoo_symbol") or "",
            exchange=data.get("exchange") or "",
            name=data.get("name") or "",
            short_name=data.get("short_name") or "",
            price=price if isinstance(price, (int, float)) else 0.0,
            currency=data.get("currency") or "",
        )


@dataclass
class MergedRecord:
    """Reconciled, servable record for one entity."""
    id: str
    exp_time: datetime
    # Quote fields (Yahoo Finance)
    yahoo_symbol: str = ""
    exchange: str = ""
    name: str = ""
    short_name: str = ""
    price: float = 0.0
    currency: str = ""
    # Fundamentals (Google Finance)
    google_symbol: Optional[str] = None
    pe_ratio: Optional[FieldValue] = None
    earnings_per_share: Optional[FieldValue] = None
    # Reference data
    portfolio_name: str = ""
    sector: str = ""
    purchase_price: float = 0.0
    quantity: int = 0
    investment: float = 0.0
    portfolio_percentage: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "yahoo_symbol": self.yahoo_symbol,
            "exchange": self.exchange,
            "name": self.name,
            "short_name": self.short_name,
            "price": self.price,
            "currency": self.currency,
            "google_symbol": self.google_symbol,
            "pe_ratio": self.pe_ratio.to_dict() if self.pe_ratio else None,
            "earnings_per_share": self.earnings_per_share.to_dict() if self.earnings_per_share else None,
            "exp_time": self.exp_time.isoformat(),
            "portfolio_name": self.portfolio_name,
            "sector": self.sector,
            "purchase_price": self.purchase_price,
            "quantity": self.quantity,
            "investment": self.investment,
            "portfolio_percentage": self.portfolio_percentage,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MergedRecord":
        return cls(
            id=data["id"],
            exp_time=datetime.fromisoformat(data["exp_time"]),
            yahoo_symbol=data.get("yahoo_symbol", ""),
            exchange=data.get("exchange", ""),
            name=data.get("name", ""),
            short_name=data.get("short_name", ""),
            price=data.get("price", 0.0),
            currency=data.get("currency", ""),
            google_symbol=data.get("google_symbol"),
            pe_ratio=FieldValue.from_dict(data["pe_ratio"]) if data.get("pe_ratio") else None,
            earnings_per_share=(
                FieldValue.from_dict(data["earnings_per_share"]) if data.get("earnings_per_share") else None
            ),
            portfolio_name=data.get("portfolio_name", ""),
            sector=data.get("sector", ""),
            purchase_price=data.get("purchase_price", 0.0),
            quantity=data.get("quantity", 0),
            investment=data.get("investment", 0.0),
            portfolio_percentage=data.get("portfolio_percentage", 0.0),
        )


class SyncStatus(str, Enum):
    OK = "ok"
    FAILED = "failed"


@dataclass
class SyncMarker:
    """Last sync attempt for one source (observability only)."""
    source: str
    status: SyncStatus
    at: datetime
    detail: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "status": self.status.value,
            "at": self.at.isoformat(),
            "detail": self.detail,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SyncMarker":
        return cls(
            source=data["source"],
            status=SyncStatus(data["status"]),
            at=datetime.fromisoformat(data["at"]),
            detail=data.get("detail", ""),
        )
