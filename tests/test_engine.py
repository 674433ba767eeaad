"""End-to-end cycles through ScannerEngine with fake collaborators."""

import threading
from datetime import timedelta

import pytest

from catalyst_scanner.core.cache import QuoteCache
from catalyst_scanner.pipeline.engine import ScannerEngine
from catalyst_scanner.providers.market import MarketDataProvider

from conftest import (
    NOW,
    CountingQuoteSource,
    FakeArticleFetcher,
    FakeFeedSource,
    HangingQuoteSource,
    make_item,
    make_quote,
)

FEED = "https://feed.example.com/rss"


@pytest.fixture
def build(config):
    engines = []

    def _build(items, quotes, bodies=None, cfg=None, feeds=None):
        source = CountingQuoteSource(quotes)
        feed_source = FakeFeedSource(feeds if feeds is not None else {FEED: items})
        engine = ScannerEngine(
            cfg or config,
            feed_source=feed_source,
            article_fetcher=FakeArticleFetcher(bodies),
            market=MarketDataProvider(source, QuoteCache()),
        )
        engines.append(engine)
        return engine, source, feed_source

    yield _build
    for engine in engines:
        engine.shutdown()


def test_acme_example_is_included(build):
    item = make_item("Acme Pharma Announces Positive Phase 3 Results (NASDAQ: ACME)", hours_ago=2)
    engine, _, _ = build([item], {"ACME": make_quote("ACME", 3.50, 3.00, 4_000_000, "NASDAQ", "USA")})

    snapshot = engine.run_cycle(now=NOW)

    assert len(snapshot) == 1
    record = snapshot.records[0]
    assert record.symbol == "ACME"
    assert record.tier == "bright"
    assert record.price == "3.50"
    assert record.percent_change == pytest.approx(16.67, abs=0.01)
    assert record.float_display == "4.00M"
    assert engine.current_snapshot() is snapshot


def test_stale_item_excluded_by_recency_only(build):
    item = make_item("XYZ Corp (XYZ) announces positive results", hours_ago=20)
    engine, source, _ = build([item], {"XYZ": make_quote("XYZ")})

    snapshot = engine.run_cycle(now=NOW)

    assert len(snapshot) == 0
    assert engine.article_fetcher.calls == []
    assert source.total_calls == 0


def test_undated_item_excluded(build):
    item = make_item("Acme (NASDAQ: ACME) positive results", published_at=None)
    engine, _, _ = build([item], {"ACME": make_quote("ACME")})
    assert len(engine.run_cycle(now=NOW)) == 0


def test_keyword_gate_runs_before_article_fetch(build):
    item = make_item("Acme (NASDAQ: ACME) declares dividend", body="routine")
    engine, source, _ = build([item], {"ACME": make_quote("ACME")})

    assert len(engine.run_cycle(now=NOW)) == 0
    assert engine.article_fetcher.calls == []
    assert source.total_calls == 0


def test_article_failure_drops_only_that_item(build):
    good = make_item("Good news (NASDAQ: GOOD) positive", link="https://x/good")
    bad = make_item("Bad fetch (NASDAQ: BADF) positive", link="https://x/bad")
    engine, _, _ = build(
        [good, bad],
        {"GOOD": make_quote("GOOD"), "BADF": make_quote("BADF")},
        bodies={"https://x/bad": None},
    )

    assert [r.symbol for r in engine.run_cycle(now=NOW)] == ["GOOD"]


def test_ticker_from_article_body(build):
    item = make_item("Acme Pharma reports positive data", link="https://x/acme")
    engine, _, _ = build(
        [item], {"ACME": make_quote("ACME")},
        bodies={"https://x/acme": "SAN DIEGO -- Acme Pharma (Nasdaq: ACME ) today announced"},
    )
    assert [r.symbol for r in engine.run_cycle(now=NOW)] == ["ACME"]


def test_foreign_suffix_rejected_before_quote_lookup(build):
    item = make_item("Alibaba positive results (NYSE: BABA.HK)")
    engine, source, _ = build([item], {"BABA.HK": make_quote("BABA.HK", price=1.0)})

    assert len(engine.run_cycle(now=NOW)) == 0
    assert source.total_calls == 0


def test_quote_failure_drops_item(build):
    item = make_item("Nope Inc positive results (NASDAQ: NOPE)")
    engine, _, _ = build([item], {"NOPE": None})
    assert len(engine.run_cycle(now=NOW)) == 0


def test_ordering_newest_first(build):
    older = make_item("Older positive (NASDAQ: OLDR)", hours_ago=5)
    newer = make_item("Newer positive (NASDAQ: NEWR)", hours_ago=1)
    engine, _, _ = build([older, newer], {"OLDR": make_quote("OLDR"), "NEWR": make_quote("NEWR")})

    assert [r.symbol for r in engine.run_cycle(now=NOW)] == ["NEWR", "OLDR"]


def test_same_symbol_across_items_looked_up_once(build):
    items = [make_item(f"Acme positive update {i} (NASDAQ: ACME)", hours_ago=i + 1) for i in range(6)]
    engine, source, _ = build(items, {"ACME": make_quote("ACME")})

    engine.run_cycle(now=NOW)
    engine.run_cycle(now=NOW)

    assert source.calls == {"ACME": 1}


def test_all_feeds_failing_keeps_previous_snapshot(build):
    item = make_item("Acme positive (NASDAQ: ACME)")
    engine, _, feed_source = build([item], {"ACME": make_quote("ACME")})
    first = engine.run_cycle(now=NOW)

    feed_source.failing.add(FEED)
    result = engine.run_cycle(now=NOW)

    assert result is None
    assert engine.current_snapshot() is first
    assert len(engine.current_snapshot()) == 1


def test_partial_feed_failure_continues(build, config):
    config.feeds.urls = [FEED, "https://down.example.com/rss"]
    item = make_item("Acme positive (NASDAQ: ACME)")
    engine, _, feed_source = build(
        None, {"ACME": make_quote("ACME")},
        feeds={FEED: [item]}, cfg=config,
    )
    feed_source.failing.add("https://down.example.com/rss")

    assert [r.symbol for r in engine.run_cycle(now=NOW)] == ["ACME"]


def test_items_across_feeds_tie_break_by_feed_order(build, config):
    second_feed = "https://feed2.example.com/rss"
    config.feeds.urls = [FEED, second_feed]
    same = NOW - timedelta(hours=1)
    a = make_item("Alpha positive (NASDAQ: ALFA)", published_at=same)
    b = make_item("Beta positive (NASDAQ: BETA)", published_at=same)
    engine, _, _ = build(
        None, {"ALFA": make_quote("ALFA"), "BETA": make_quote("BETA")},
        feeds={FEED: [a], second_feed: [b]}, cfg=config,
    )

    assert [r.symbol for r in engine.run_cycle(now=NOW)] == ["ALFA", "BETA"]


def test_item_exception_does_not_abort_cycle(build, monkeypatch):
    good = make_item("Good positive (NASDAQ: GOOD)", link="https://x/good")
    bad = make_item("Bad positive (NASDAQ: BAD)", link="https://x/bad")
    engine, _, _ = build([good, bad], {"GOOD": make_quote("GOOD"), "BAD": make_quote("BAD")})

    original = engine.article_fetcher.fetch

    def flaky(url):
        if url == "https://x/bad":
            raise RuntimeError("unexpected")
        return original(url)

    monkeypatch.setattr(engine.article_fetcher, "fetch", flaky)

    assert [r.symbol for r in engine.run_cycle(now=NOW)] == ["GOOD"]


def test_unexpected_feed_error_does_not_lose_other_feeds(build, config, monkeypatch):
    broken = "https://broken.example.com/rss"
    config.feeds.urls = [broken, FEED]
    item = make_item("Acme positive (NASDAQ: ACME)")
    engine, _, feed_source = build(None, {"ACME": make_quote("ACME")}, feeds={FEED: [item]}, cfg=config)

    original = feed_source.fetch

    def fetch(url):
        if url == broken:
            raise UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte")
        return original(url)

    monkeypatch.setattr(feed_source, "fetch", fetch)

    assert [r.symbol for r in engine.run_cycle(now=NOW)] == ["ACME"]


def test_unexpected_error_on_every_feed_keeps_previous_snapshot(build, monkeypatch):
    item = make_item("Acme positive (NASDAQ: ACME)")
    engine, _, feed_source = build([item], {"ACME": make_quote("ACME")})
    first = engine.run_cycle(now=NOW)

    def fetch(url):
        raise ValueError("parser blew up")

    monkeypatch.setattr(feed_source, "fetch", fetch)

    assert engine.run_cycle(now=NOW) is None
    assert engine.current_snapshot() is first


class BlockingArticleFetcher(FakeArticleFetcher):
    """Blocks on ``slow_link`` until ``release`` is set."""

    def __init__(self, slow_link):
        super().__init__()
        self.slow_link = slow_link
        self.release = threading.Event()

    def fetch(self, url):
        if url == self.slow_link:
            self.release.wait(10)
        return super().fetch(url)


def test_cycle_deadline_drops_unfinished_items(config):
    config.schedule.cycle_timeout_seconds = 0.3
    slow = make_item("Slow positive (NASDAQ: SLOW)", link="https://x/slow")
    good = make_item("Good positive (NASDAQ: GOOD)", link="https://x/good")
    fetcher = BlockingArticleFetcher("https://x/slow")
    engine = ScannerEngine(
        config,
        feed_source=FakeFeedSource({FEED: [slow, good]}),
        article_fetcher=fetcher,
        market=MarketDataProvider(CountingQuoteSource({"SLOW": make_quote("SLOW"), "GOOD": make_quote("GOOD")})),
    )
    try:
        snapshot = engine.run_cycle(now=NOW)
        assert [r.symbol for r in snapshot] == ["GOOD"]
        assert engine.current_snapshot() is snapshot
    finally:
        fetcher.release.set()
        engine.shutdown()


def test_hung_quote_does_not_starve_later_cycles(config):
    config.schedule.max_workers = 2
    config.schedule.cycle_timeout_seconds = 5
    hang = make_item("Hang positive (NASDAQ: HANG)", link="https://x/hang")
    good = make_item("Good positive (NASDAQ: GOOD)", link="https://x/good")
    source = HangingQuoteSource({"GOOD": make_quote("GOOD")}, hung={"HANG"})
    engine = ScannerEngine(
        config,
        feed_source=FakeFeedSource({FEED: [hang, good]}),
        article_fetcher=FakeArticleFetcher(),
        market=MarketDataProvider(source, QuoteCache(), timeout_seconds=0.2, max_workers=2),
    )
    try:
        sizes = [[r.symbol for r in engine.run_cycle(now=NOW)] for _ in range(3)]
        assert sizes == [["GOOD"], ["GOOD"], ["GOOD"]]
        assert source.calls["GOOD"] == 1
    finally:
        source.release.set()
        engine.shutdown()
