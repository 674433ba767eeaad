"""Abstract base classes for external data providers."""

from abc import ABC, abstractmethod
from typing import List, Optional

from catalyst_scanner.models.datatypes import FeedItem, QuoteRecord


class FeedUnavailableError(Exception):
    """Raised when a feed cannot be fetched or parsed at all."""


class FeedSource(ABC):
    """Abstract interface for pulling press-release items from a feed URL."""

    @abstractmethod
    def fetch(self, url: str) -> List[FeedItem]:
        """
        Fetch the items of one feed, in feed order.

        Args:
            url (str): Feed URL.

        Returns:
            List[FeedItem]: Items as published by the feed.

        Raises:
            FeedUnavailableError: If the feed cannot be retrieved or parsed.
        """
        pass


class ArticleFetcher(ABC):
    """Abstract interface for best-effort full-text retrieval of an article."""

    @abstractmethod
    def fetch(self, url: str) -> Optional[str]:
        """
        Fetch the readable text of the article at ``url``.

        Args:
            url (str): Article link from the feed item.

        Returns:
            Optional[str]: Article text, or ``None`` on any failure. Never raises.
        """
        pass


class QuoteSource(ABC):
    """Abstract interface for one uncached market-data lookup."""

    name: str = "quotes"

    @abstractmethod
    def lookup(self, symbol: str) -> Optional[QuoteRecord]:
        """
        Look up price, previous close, float, exchange, and country for a symbol.

        Args:
            symbol (str): The ticker symbol.

        Returns:
            Optional[QuoteRecord]: The record (sub-fields may be ``None``),
                                   or ``None`` when the lookup failed.
        """
        pass
