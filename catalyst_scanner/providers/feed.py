"""RSS feed source for press-release wires.

Bytes are fetched with ``requests`` (so every poll carries a timeout) and
handed to ``feedparser``. Entry timestamps are normalised to UTC; entries
whose timestamp is missing or unparseable keep ``published_at=None`` and are
later rejected by the recency gate rather than failing the poll.
"""

from datetime import datetime, timezone
from typing import List, Optional

import feedparser
import requests

from catalyst_scanner.core.logger import logger
from catalyst_scanner.core.retry import with_retries
from catalyst_scanner.models.datatypes import FeedItem
from catalyst_scanner.providers.base import FeedSource, FeedUnavailableError

_USER_AGENT = "Mozilla/5.0 (compatible; catalyst-scanner/1.0)"
_ACCEPT = "application/rss+xml, application/atom+xml, application/xml, text/xml;q=0.9, */*;q=0.8"


class RSSFeedSource(FeedSource):
    """Polls RSS/Atom feeds over HTTP.

    Args:
        timeout_seconds: Per-request timeout.
        max_items: Only the first ``max_items`` entries of each feed are returned.
    """

    def __init__(self, timeout_seconds: float = 15.0, max_items: int = 20) -> None:
        self.timeout_seconds = timeout_seconds
        self.max_items = max_items

    @with_retries(max_retries=2, initial_delay=1.0, retry_on=(FeedUnavailableError,))
    def fetch(self, url: str) -> List[FeedItem]:
        """Fetch and parse one feed.

        Raises:
            FeedUnavailableError: Transport error, non-200 status, or a document
                that feedparser could not read any entries from.
        """
        logger.info(f"RSSFeedSource: fetching {url}")
        try:
            resp = requests.get(
                url,
                timeout=self.timeout_seconds,
                headers={"User-Agent": _USER_AGENT, "Accept": _ACCEPT},
            )
        except requests.RequestException as exc:
            raise FeedUnavailableError(f"{url}: {exc}") from exc

        if resp.status_code != 200:
            raise FeedUnavailableError(f"{url}: HTTP {resp.status_code}")

        feed = feedparser.parse(resp.content)
        if getattr(feed, "bozo", False):
            if not feed.entries:
                raise FeedUnavailableError(
                    f"{url}: unparseable feed ({getattr(feed, 'bozo_exception', 'unknown error')})"
                )
            logger.warning(
                f"RSSFeedSource: parse warning for {url}: "
                f"{getattr(feed, 'bozo_exception', '')}"
            )

        items = []
        for entry in list(feed.entries)[: self.max_items]:
            title = (getattr(entry, "title", "") or "").strip()
            if not title:
                continue
            items.append(FeedItem(
                title=title,
                body=(getattr(entry, "summary", "") or "").strip(),
                link=(getattr(entry, "link", "") or "").strip(),
                published_at=_entry_published_at(entry),
                feed_url=url,
            ))

        logger.info(f"RSSFeedSource: {len(items)} entries from {url}")
        return items


def _entry_published_at(entry) -> Optional[datetime]:
    """Return the entry's publish (or update) time as aware UTC, or None."""
    for attr in ("published_parsed", "updated_parsed"):
        parsed = getattr(entry, attr, None)
        if not parsed:
            continue
        try:
            return datetime(*parsed[:6], tzinfo=timezone.utc)
        except (TypeError, ValueError):
            continue
    return None
