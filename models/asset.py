"""
Asset model - one row per tradable instrument shown on the dashboard.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from sqlmodel import SQLModel, Field


class AssetCategory(str, Enum):
    """Market segment of an asset. Drives formatting and price-field fallback."""
    STOCK = "stock"
    INDEX = "index"
    COMMODITY = "commodity"
    CRYPTO = "crypto"
    FOREX = "forex"
    FUND = "fund"

    @property
    def segment(self) -> str:
        """Key of the grouped market payload this category is listed under."""
        return _SEGMENTS[self]

    @classmethod
    def from_segment(cls, segment: str) -> "AssetCategory":
        for category, name in _SEGMENTS.items():
            if name == segment:
                return category
        return cls(segment)


_SEGMENTS = {
    AssetCategory.STOCK: "stocks",
    AssetCategory.INDEX: "indices",
    AssetCategory.COMMODITY: "commodities",
    AssetCategory.CRYPTO: "crypto",
    AssetCategory.FOREX: "forex",
    AssetCategory.FUND: "funds",
}

SEGMENT_ORDER = [_SEGMENTS[category] for category in AssetCategory]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Asset(SQLModel, table=True):
    """Persisted market snapshot of an asset, keyed by a stable id."""
    id: str = Field(primary_key=True)  # e.g. "aapl", "btc", "GC=F"
    symbol: str = Field(index=True, unique=True)  # quote-format, e.g. "BTC-USD", "^GSPC"
    name: str
    category: str = Field(index=True)  # AssetCategory value

    price: float = Field(default=0)
    change: float = Field(default=0)
    change_percent: float = Field(default=0)
    volume: float = Field(default=0)
    day_high: float = Field(default=0)
    day_low: float = Field(default=0)
    open_price: float = Field(default=0)
    previous_close: float = Field(default=0)
    fifty_two_week_high: float = Field(default=0)
    fifty_two_week_low: float = Field(default=0)
    average_volume: float = Field(default=0)
    market_cap: Optional[float] = Field(default=None)  # None means unknown
    market_cap_rank: Optional[int] = Field(default=None)

    image: Optional[str] = Field(default=None)
    last_updated: datetime = Field(default_factory=utcnow)
