"""Ordering and publication of the result snapshot."""

import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, List, Optional

import pytz

from catalyst_scanner.core.logger import logger
from catalyst_scanner.models.datatypes import DisplayRecord, QuoteRecord, Snapshot
from catalyst_scanner.pipeline.tiers import format_float

_LOCAL_FMT = "%m/%d/%Y, %H:%M"


@dataclass(frozen=True)
class Candidate:
    """A survivor of one cycle, keyed for deterministic ordering."""
    published_at: datetime
    position: int
    record: DisplayRecord


class SnapshotStore:
    """Holds the currently published snapshot.

    Single writer (the engine), any number of readers. ``current()`` is a plain
    reference read; ``publish()`` swaps in a new frozen :class:`Snapshot`, so a
    reader sees either the whole old snapshot or the whole new one.
    """

    def __init__(self, initial: Optional[Snapshot] = None) -> None:
        self._snapshot = initial or Snapshot()
        self._write_lock = threading.Lock()

    def current(self) -> Snapshot:
        return self._snapshot

    def publish(self, snapshot: Snapshot) -> None:
        with self._write_lock:
            self._snapshot = snapshot


class SnapshotAssembler:
    """Builds display rows and publishes sorted snapshots.

    Args:
        store: Destination for published snapshots.
        timezone_name: IANA zone used for the displayed timestamp.
    """

    def __init__(self, store: SnapshotStore, timezone_name: str = "America/Los_Angeles") -> None:
        self.store = store
        self.tz = pytz.timezone(timezone_name)
        self._cycle = 0

    def make_record(
        self,
        symbol: str,
        headline: str,
        published_at: datetime,
        quote: QuoteRecord,
        tier: str,
        link: str = "",
    ) -> DisplayRecord:
        """Format one eligible item for display."""
        return DisplayRecord(
            timestamp_local=self.format_local(published_at),
            symbol=symbol,
            headline=headline,
            price=f"{quote.price:.2f}" if quote.price is not None else "N/A",
            percent_change=round(quote.percent_change, 2),
            float_display=format_float(quote.float_shares),
            tier=tier,
            link=link,
            published_at=published_at,
        )

    def format_local(self, published_at: datetime) -> str:
        if published_at.tzinfo is None:
            published_at = published_at.replace(tzinfo=timezone.utc)
        return published_at.astimezone(self.tz).strftime(_LOCAL_FMT)

    def assemble(self, candidates: Iterable[Candidate]) -> Snapshot:
        """Sort newest first, ties by feed position, into a new frozen snapshot."""
        ordered: List[Candidate] = sorted(
            candidates,
            key=lambda c: (-c.published_at.timestamp(), c.position),
        )
        self._cycle += 1
        return Snapshot(
            records=tuple(c.record for c in ordered),
            generated_at=datetime.now(timezone.utc),
            cycle=self._cycle,
        )

    def publish(self, candidates: Iterable[Candidate]) -> Snapshot:
        snapshot = self.assemble(candidates)
        self.store.publish(snapshot)
        logger.info(f"SnapshotAssembler: published cycle {snapshot.cycle} with {len(snapshot)} records")
        return snapshot
