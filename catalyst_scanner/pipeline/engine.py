"""Pipeline engine: one polling cycle from feeds to a published snapshot.

Flow per feed item:
  1. Recency   — RecencyGate on the feed timestamp
  2. Keywords  — KeywordGate on title + feed snippet
  3. Article   — best-effort body fetch (failure drops the item)
  4. Ticker    — TickerExtractor (title exchange → title paren → body exchange)
  5. Format    — EligibilityClassifier.check_format, before any quote lookup
  6. Quote     — MarketDataProvider (cached, single-flight)
  7. Filters   — price / exchange / country / float tier
  8. Assemble  — DisplayRecord collected as a Candidate

Items are processed on a bounded thread pool. Ordering is applied only after
every result is collected, so it never depends on completion order. A failed
item is logged and skipped; the cycle only aborts (keeping the previous
snapshot) when no feed could be polled at all.
"""

from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import replace
from datetime import datetime, timezone
from typing import List, Optional

from catalyst_scanner.core.cache import QuoteCache
from catalyst_scanner.core.config import ScannerConfig
from catalyst_scanner.core.logger import logger
from catalyst_scanner.models.datatypes import ExtractedSignal, FeedItem, Snapshot
from catalyst_scanner.pipeline.eligibility import EligibilityClassifier
from catalyst_scanner.pipeline.extractor import TickerExtractor
from catalyst_scanner.pipeline.gates import KeywordGate, RecencyGate
from catalyst_scanner.pipeline.snapshot import Candidate, SnapshotAssembler, SnapshotStore
from catalyst_scanner.pipeline.tiers import FloatTierClassifier
from catalyst_scanner.providers.article import HTTPArticleFetcher
from catalyst_scanner.providers.base import ArticleFetcher, FeedSource, FeedUnavailableError
from catalyst_scanner.providers.feed import RSSFeedSource
from catalyst_scanner.providers.market import MarketDataProvider, build_quote_source


class ScannerEngine:
    """Runs the catalyst pipeline and owns the quote cache and snapshot store.

    Collaborators default to the HTTP implementations built from ``config``;
    tests inject fakes.

    Args:
        config: Typed scanner configuration.
        feed_source: Feed poller.
        article_fetcher: Article body fetcher.
        market: Memoizing market-data provider.
        store: Snapshot store shared with the presentation layer.
    """

    def __init__(
        self,
        config: ScannerConfig,
        feed_source: Optional[FeedSource] = None,
        article_fetcher: Optional[ArticleFetcher] = None,
        market: Optional[MarketDataProvider] = None,
        store: Optional[SnapshotStore] = None,
    ) -> None:
        self.config = config

        self.feed_source = feed_source or RSSFeedSource(
            timeout_seconds=config.feeds.timeout_seconds,
            max_items=config.feeds.max_items_per_feed,
        )
        self.article_fetcher = article_fetcher or HTTPArticleFetcher(
            timeout_seconds=config.article_timeout_seconds,
        )
        if market is None:
            source = build_quote_source(
                config.market_data.provider,
                api_key=config.market_data.api_key,
                timeout_seconds=config.market_data.timeout_seconds,
            )
            market = MarketDataProvider(
                source,
                QuoteCache(cache_failures=config.market_data.cache_failures),
                timeout_seconds=config.market_data.lookup_deadline_seconds,
                max_workers=config.schedule.max_workers,
            )
        self.market = market

        self.store = store or SnapshotStore()
        self.recency = RecencyGate(config.filters.recency_window_hours)
        self.keywords = KeywordGate(config.filters.keywords)
        self.extractor = TickerExtractor()
        self.tiers = FloatTierClassifier(config.tiers)
        self.eligibility = EligibilityClassifier(config.filters, self.tiers)
        self.assembler = SnapshotAssembler(self.store, config.display_timezone)

        self._pool = ThreadPoolExecutor(
            max_workers=config.schedule.max_workers,
            thread_name_prefix="scanner-item",
        )

    # ── public ────────────────────────────────────────────────────────────────

    def run_cycle(self, now: Optional[datetime] = None) -> Optional[Snapshot]:
        """Run one full cycle and publish its snapshot.

        Args:
            now: Reference time for the recency gate (defaults to current UTC).

        Returns:
            The published :class:`Snapshot`, or ``None`` when the cycle was
            aborted and the previous snapshot was left in place.
        """
        now = now or datetime.now(timezone.utc)
        items = self._poll_feeds()
        if items is None:
            logger.error(
                f"ScannerEngine: reason=FEED_UNAVAILABLE — all {len(self.config.feeds.urls)} feed(s) failed; "
                f"keeping previous snapshot ({len(self.store.current())} records)"
            )
            return None

        futures = [self._pool.submit(self.process_item, item, now) for item in items]
        done, not_done = wait(futures, timeout=self.config.schedule.cycle_timeout_seconds)
        if not_done:
            logger.warning(
                f"ScannerEngine: reason=CYCLE_DEADLINE — {len(not_done)} item(s) unfinished after "
                f"{self.config.schedule.cycle_timeout_seconds}s, dropped"
            )
            for future in not_done:
                future.cancel()

        candidates: List[Candidate] = []
        for item, future in zip(items, futures):
            if future not in done:
                continue
            try:
                candidate = future.result()
            except Exception as exc:
                logger.error(f"ScannerEngine: item failed [{item.link}]: {exc}", exc_info=True)
                continue
            if candidate is not None:
                candidates.append(candidate)

        logger.info(f"ScannerEngine: {len(candidates)}/{len(items)} items survived")
        return self.assembler.publish(candidates)

    def process_item(self, item: FeedItem, now: datetime) -> Optional[Candidate]:
        """Push one feed item through gates, enrichment and filters.

        Returns:
            A :class:`Candidate` for the snapshot, or ``None`` if the item was dropped.
        """
        if not self.recency.passes(item.published_at, now):
            return self._drop(item, "STALE_OR_UNDATED")

        if not self.keywords.passes(item.title, item.body):
            return self._drop(item, "NO_KEYWORD")

        body = self.article_fetcher.fetch(item.link)
        if body is None:
            return self._drop(item, "ARTICLE_UNAVAILABLE")

        match = self.extractor.extract_with_rule(item.title, body)
        if match is None:
            return self._drop(item, "NO_TICKER")
        signal = ExtractedSignal(
            symbol=match[0],
            published_at=item.published_at,
            headline=item.title,
            rule=match[1],
        )

        verdict = self.eligibility.check_format(signal.symbol)
        if not verdict.eligible:
            return self._drop(item, verdict.reason, signal.symbol)

        quote = self.market.quote(signal.symbol)
        if quote is None:
            return self._drop(item, "QUOTE_UNAVAILABLE", signal.symbol)

        verdict = self.eligibility.classify(signal.symbol, quote)
        if not verdict.eligible:
            return self._drop(item, verdict.reason, signal.symbol)

        record = self.assembler.make_record(
            symbol=signal.symbol,
            headline=signal.headline,
            published_at=signal.published_at,
            quote=quote,
            tier=verdict.tier,
            link=item.link,
        )
        logger.info(
            f"ScannerEngine: ACCEPT {signal.symbol} via {signal.rule} | price={record.price} "
            f"chg={record.percent_change:+.2f}% float={record.float_display} tier={record.tier}"
        )
        return Candidate(published_at=signal.published_at, position=item.position, record=record)

    def current_snapshot(self) -> Snapshot:
        return self.store.current()

    def shutdown(self) -> None:
        self._pool.shutdown(wait=False, cancel_futures=True)
        self.market.shutdown()

    # ── internal ──────────────────────────────────────────────────────────────

    def _poll_feeds(self) -> Optional[List[FeedItem]]:
        """Fetch every configured feed; None if all of them failed."""
        items: List[FeedItem] = []
        failures = 0
        for url in self.config.feeds.urls:
            try:
                fetched = self.feed_source.fetch(url)
            except FeedUnavailableError as exc:
                failures += 1
                logger.error(f"ScannerEngine: feed failed {url}: {exc}")
                continue
            except Exception as exc:
                failures += 1
                logger.error(f"ScannerEngine: feed raised unexpectedly {url}: {exc}", exc_info=True)
                continue
            for item in fetched:
                items.append(replace(item, position=len(items)))

        if self.config.feeds.urls and failures == len(self.config.feeds.urls):
            return None
        return items

    @staticmethod
    def _drop(item: FeedItem, reason: str, symbol: str = "") -> None:
        logger.info(f"ScannerEngine: DROP reason={reason} symbol={symbol or '-'} | {item.title[:80]!r}")
        return None
