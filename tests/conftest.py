"""Shared fakes for pipeline tests. Nothing here touches the network."""

import threading
import time
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import pytest

from catalyst_scanner.core.config import ScannerConfig
from catalyst_scanner.models.datatypes import FeedItem, QuoteRecord
from catalyst_scanner.providers.base import ArticleFetcher, FeedSource, FeedUnavailableError, QuoteSource

NOW = datetime(2026, 3, 10, 15, 0, tzinfo=timezone.utc)


def make_item(title, hours_ago=1.0, body="", link=None, published_at="auto"):
    if published_at == "auto":
        published_at = NOW - timedelta(hours=hours_ago)
    return FeedItem(
        title=title,
        body=body,
        link=link or f"https://news.example.com/{abs(hash(title))}",
        published_at=published_at,
    )


def make_quote(symbol, price=3.50, previous_close=3.00, float_shares=4_000_000,
               exchange="NASDAQ", country="USA"):
    return QuoteRecord(
        symbol=symbol,
        price=price,
        previous_close=previous_close,
        float_shares=float_shares,
        exchange=exchange,
        country=country,
        fetched_at=NOW,
    )


class FakeFeedSource(FeedSource):
    def __init__(self, feeds: Dict[str, List[FeedItem]]):
        self.feeds = feeds
        self.failing = set()
        self.calls = 0

    def fetch(self, url):
        self.calls += 1
        if url in self.failing:
            raise FeedUnavailableError(f"{url}: HTTP 503")
        return list(self.feeds.get(url, []))


class FakeArticleFetcher(ArticleFetcher):
    """Returns ``bodies[link]``; links absent from the map fetch as an empty page."""

    def __init__(self, bodies: Optional[Dict[str, Optional[str]]] = None):
        self.bodies = bodies or {}
        self.calls = []

    def fetch(self, url):
        self.calls.append(url)
        return self.bodies.get(url, "")


class CountingQuoteSource(QuoteSource):
    name = "fake"

    def __init__(self, records: Dict[str, Optional[QuoteRecord]], delay: float = 0.0):
        self.records = records
        self.delay = delay
        self.calls: Dict[str, int] = {}
        self._lock = threading.Lock()

    def lookup(self, symbol):
        with self._lock:
            self.calls[symbol] = self.calls.get(symbol, 0) + 1
        if self.delay:
            time.sleep(self.delay)
        return self.records.get(symbol)

    @property
    def total_calls(self):
        return sum(self.calls.values())


class HangingQuoteSource(CountingQuoteSource):
    """Never answers for symbols in ``hung`` until ``release`` is set."""

    def __init__(self, records, hung=()):
        super().__init__(records)
        self.hung = set(hung)
        self.release = threading.Event()

    def lookup(self, symbol):
        if symbol in self.hung:
            with self._lock:
                self.calls[symbol] = self.calls.get(symbol, 0) + 1
            self.release.wait(10)
            return None
        return super().lookup(symbol)


@pytest.fixture
def config():
    cfg = ScannerConfig.from_dict({
        "feeds": {"urls": ["https://feed.example.com/rss"]},
        "filters": {"recency_window_hours": 12},
        "schedule": {"max_workers": 4, "cycle_timeout_seconds": 10},
    })
    return cfg
