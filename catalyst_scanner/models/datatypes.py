"""Data structures for the catalyst scanner pipeline."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Tuple


@dataclass(frozen=True)
class FeedItem:
    """
    One press-release entry as read from a feed during a single poll.

    ``published_at`` is timezone-aware UTC, or ``None`` when the feed carried
    no usable timestamp. ``position`` is the item's order within the cycle
    across all configured feeds and breaks ordering ties.
    """
    title: str
    body: str
    link: str
    published_at: Optional[datetime]
    feed_url: str = ""
    position: int = 0


@dataclass(frozen=True)
class ExtractedSignal:
    """A ticker mention pulled out of a feed item."""
    symbol: str
    published_at: datetime
    headline: str
    rule: str = ""


@dataclass(frozen=True)
class QuoteRecord:
    """
    Market data for one symbol. Every numeric field is ``None`` when the
    provider did not report it; ``0`` is a real value.
    """
    symbol: str
    price: Optional[float] = None
    previous_close: Optional[float] = None
    float_shares: Optional[float] = None
    exchange: Optional[str] = None
    country: Optional[str] = None
    fetched_at: Optional[datetime] = None

    @property
    def percent_change(self) -> float:
        """Move from previous close in percent; 0.0 unless both prices are known."""
        if self.price is None or self.previous_close is None or self.previous_close == 0:
            return 0.0
        return (self.price - self.previous_close) / self.previous_close * 100.0

    def has_data(self) -> bool:
        return any(
            v is not None
            for v in (self.price, self.previous_close, self.float_shares, self.exchange, self.country)
        )


@dataclass(frozen=True)
class DisplayRecord:
    """A row of the published snapshot, pre-formatted for display."""
    timestamp_local: str
    symbol: str
    headline: str
    price: str
    percent_change: float
    float_display: str
    tier: str
    link: str = ""
    published_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp_local,
            "symbol": self.symbol,
            "headline": self.headline,
            "price": self.price,
            "percent_change": self.percent_change,
            "float": self.float_display,
            "tier": self.tier,
            "link": self.link,
            "published_at": self.published_at.isoformat() if self.published_at else None,
        }


@dataclass(frozen=True)
class Snapshot:
    """
    Immutable, fully built result of one pipeline cycle. Replaced wholesale;
    never mutated after publication.
    """
    records: Tuple[DisplayRecord, ...] = field(default_factory=tuple)
    generated_at: Optional[datetime] = None
    cycle: int = 0

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self):
        return iter(self.records)
