"""Best-effort article body retrieval."""

from typing import Optional

import requests
from bs4 import BeautifulSoup

from catalyst_scanner.core.logger import logger
from catalyst_scanner.providers.base import ArticleFetcher

_USER_AGENT = "Mozilla/5.0 (compatible; catalyst-scanner/1.0)"
_NOISE_TAGS = ("script", "style", "noscript", "nav", "header", "footer", "form")


class HTTPArticleFetcher(ArticleFetcher):
    """Downloads an article page and reduces it to plain text.

    One attempt per call; any failure yields ``None`` so the caller can drop
    the item without aborting the cycle.
    """

    def __init__(self, timeout_seconds: float = 10.0) -> None:
        self.timeout_seconds = timeout_seconds

    def fetch(self, url: str) -> Optional[str]:
        if not url:
            return None
        try:
            resp = requests.get(url, timeout=self.timeout_seconds, headers={"User-Agent": _USER_AGENT})
        except requests.RequestException as exc:
            logger.warning(f"HTTPArticleFetcher: request failed for {url}: {exc}")
            return None

        if resp.status_code != 200:
            logger.warning(f"HTTPArticleFetcher: HTTP {resp.status_code} for {url}")
            return None

        text = html_to_text(resp.text)
        if not text:
            logger.warning(f"HTTPArticleFetcher: empty body for {url}")
            return None
        return text


def html_to_text(html: str) -> str:
    """Strip markup from an article page and collapse whitespace.

    Wire services often wrap the ticker in a link, e.g.
    ``(Nasdaq: <a href=...>ACME</a>)``; joining text nodes with a space keeps
    that readable as ``(Nasdaq: ACME )`` for the extractor.
    """
    soup = BeautifulSoup(html or "", "html.parser")
    for tag in soup(_NOISE_TAGS):
        tag.decompose()
    return " ".join(soup.get_text(" ").split())
