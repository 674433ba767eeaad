"""Cheap per-item predicates applied before any network work."""

from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional


class KeywordGate:
    """Passes when any vocabulary term occurs in the headline or body.

    Matching is a case-insensitive substring test, so ``"approv"`` matches
    ``"Approval"`` and ``"result"`` matches ``"results"``. An empty vocabulary
    passes everything.
    """

    def __init__(self, keywords: Iterable[str]) -> None:
        self.keywords = tuple(k.lower() for k in keywords if k and k.strip())

    def matches(self, headline: str, body: str = "") -> Optional[str]:
        """Return the first matching term, or None."""
        text = f"{headline or ''} {body or ''}".lower()
        for term in self.keywords:
            if term in text:
                return term
        return None

    def passes(self, headline: str, body: str = "") -> bool:
        if not self.keywords:
            return True
        return self.matches(headline, body) is not None


class RecencyGate:
    """Passes when ``now - published_at <= window``.

    An unknown publish time (``None``) never passes. Naive datetimes are taken
    as UTC.
    """

    def __init__(self, window_hours: float) -> None:
        self.window = timedelta(hours=window_hours)

    def passes(self, published_at: Optional[datetime], now: Optional[datetime] = None) -> bool:
        if published_at is None:
            return False
        now = now or datetime.now(timezone.utc)
        if published_at.tzinfo is None:
            published_at = published_at.replace(tzinfo=timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return now - published_at <= self.window
