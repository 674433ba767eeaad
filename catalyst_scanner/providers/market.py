"""Market data lookups via Financial Modeling Prep or yfinance, memoized per symbol."""

import math
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from datetime import datetime, timezone
from typing import Any, Optional

import requests
import yfinance as yf

from catalyst_scanner.core.cache import QuoteCache
from catalyst_scanner.core.logger import logger
from catalyst_scanner.models.datatypes import QuoteRecord
from catalyst_scanner.providers.base import QuoteSource

_FMP_BASE = "https://financialmodelingprep.com/stable"


class FMPQuoteSource(QuoteSource):
    """Financial Modeling Prep implementation (requires an API key).

    One lookup makes up to three calls:
    - ``/quote``        price, previousClose, exchange (required)
    - ``/profile``      country, exchange fallback (optional)
    - ``/shares-float`` floatShares (optional)

    A failed optional call leaves its fields unknown instead of failing the lookup.
    """

    name = "fmp"

    def __init__(self, api_key: str, timeout_seconds: float = 8.0, base_url: str = _FMP_BASE) -> None:
        """Args:
            api_key: FMP API key.
            timeout_seconds: Per-request timeout.
            base_url: API root, overridable for testing.
        """
        if not api_key:
            raise ValueError("FMPQuoteSource requires an API key (set FMP_API_KEY)")
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds
        self.base_url = base_url.rstrip("/")

    def lookup(self, symbol: str) -> Optional[QuoteRecord]:
        quote = self._get("quote", symbol)
        if quote is None:
            return None

        profile = self._get("profile", symbol) or {}
        shares = self._get("shares-float", symbol) or {}

        record = QuoteRecord(
            symbol=symbol,
            price=_to_float(quote.get("price")),
            previous_close=_to_float(quote.get("previousClose")),
            float_shares=_to_count(shares.get("floatShares")),
            exchange=_to_str(quote.get("exchange")) or _to_str(profile.get("exchange")),
            country=_to_str(profile.get("country")),
            fetched_at=datetime.now(timezone.utc),
        )
        if not record.has_data():
            logger.warning(f"FMPQuoteSource: no usable fields for {symbol}")
            return None
        return record

    def _get(self, endpoint: str, symbol: str) -> Optional[dict]:
        """Call one endpoint and return its first object, or None on any failure."""
        url = f"{self.base_url}/{endpoint}"
        try:
            resp = requests.get(
                url,
                params={"symbol": symbol, "apikey": self.api_key},
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as exc:
            logger.error(f"FMPQuoteSource: INFRA_FAILURE {endpoint} for {symbol}: {exc}")
            return None

        if resp.status_code != 200:
            logger.error(
                f"FMPQuoteSource: INFRA_FAILURE {endpoint} for {symbol} "
                f"HTTP {resp.status_code}: {resp.text[:200]}"
            )
            return None

        try:
            data = resp.json()
        except ValueError as exc:
            logger.error(f"FMPQuoteSource: malformed JSON from {endpoint} for {symbol}: {exc}")
            return None

        # Endpoints answer with a list of objects; some error paths return a bare dict
        if isinstance(data, list):
            data = data[0] if data else None
        if not isinstance(data, dict) or "Error Message" in data:
            logger.warning(f"FMPQuoteSource: empty {endpoint} response for {symbol}")
            return None
        return data


class YFinanceQuoteSource(QuoteSource):
    """Yahoo Finance implementation; needs no credential."""

    name = "yfinance"

    def lookup(self, symbol: str) -> Optional[QuoteRecord]:
        logger.info(f"YFinanceQuoteSource: fetching info for {symbol}")
        try:
            info: dict = yf.Ticker(symbol).info or {}
        except Exception as exc:
            logger.error(f"YFinanceQuoteSource: INFRA_FAILURE for {symbol}: {exc}")
            return None

        record = QuoteRecord(
            symbol=symbol,
            price=_first_float(info, "currentPrice", "regularMarketPrice"),
            previous_close=_first_float(info, "previousClose", "regularMarketPreviousClose"),
            float_shares=_to_count(info.get("floatShares")),
            exchange=_to_str(info.get("exchange")),
            country=_to_str(info.get("country")),
            fetched_at=datetime.now(timezone.utc),
        )
        if not record.has_data():
            logger.warning(f"YFinanceQuoteSource: no usable fields for {symbol}")
            return None
        return record


class MarketDataProvider:
    """Per-symbol memoizing quote lookup.

    The first call for a symbol goes to ``source``; later calls are served from
    ``cache`` for the life of the process. Concurrent first calls share one
    lookup.

    With ``timeout_seconds`` set, each external lookup runs on a small private
    pool and the caller stops waiting once the deadline passes; a hung backend
    holds a lookup thread, never the calling worker. Waiters on the same
    in-flight symbol are held to the same deadline.

    Args:
        source: Backend performing the uncached external lookup.
        cache: Injected cache; a fresh :class:`QuoteCache` if omitted.
        timeout_seconds: Deadline for one lookup; ``None`` calls ``source`` inline.
        max_workers: Size of the lookup pool when a deadline is set.
    """

    def __init__(
        self,
        source: QuoteSource,
        cache: Optional[QuoteCache] = None,
        timeout_seconds: Optional[float] = None,
        max_workers: int = 4,
    ) -> None:
        self.source = source
        self.cache = cache if cache is not None else QuoteCache()
        self.timeout_seconds = timeout_seconds
        self._pool: Optional[ThreadPoolExecutor] = None
        if timeout_seconds is not None:
            self._pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="quote-lookup")

    def quote(self, symbol: str) -> Optional[QuoteRecord]:
        """Return the quote for ``symbol``, or ``None`` if the lookup failed or timed out."""
        return self.cache.get_or_load(symbol.upper(), self._load, timeout=self.timeout_seconds)

    def shutdown(self) -> None:
        if self._pool is not None:
            self._pool.shutdown(wait=False, cancel_futures=True)

    def _load(self, symbol: str) -> Optional[QuoteRecord]:
        logger.info(f"MarketDataProvider: external lookup [{self.source.name}] for {symbol}")
        if self._pool is None:
            record = self.source.lookup(symbol)
        else:
            pending = self._pool.submit(self.source.lookup, symbol)
            try:
                record = pending.result(timeout=self.timeout_seconds)
            except FutureTimeout:
                pending.cancel()
                logger.warning(
                    f"MarketDataProvider: reason=QUOTE_TIMEOUT symbol={symbol} "
                    f"after {self.timeout_seconds}s [{self.source.name}]"
                )
                return None
        if record is None:
            logger.warning(f"MarketDataProvider: reason=QUOTE_UNAVAILABLE symbol={symbol}")
        return record


def build_quote_source(provider: str, api_key: str = "", timeout_seconds: float = 8.0) -> QuoteSource:
    """Instantiate the configured backend.

    Falls back to yfinance when ``fmp`` is selected without an API key.
    """
    if provider == "fmp":
        if api_key:
            return FMPQuoteSource(api_key=api_key, timeout_seconds=timeout_seconds)
        logger.warning("build_quote_source: FMP_API_KEY is not set. Falling back to yfinance.")
    return YFinanceQuoteSource()


# ── helpers ───────────────────────────────────────────────────────────────────

def _to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def _to_count(value: Any) -> Optional[float]:
    """Share counts: like _to_float but negative values are treated as unknown."""
    result = _to_float(value)
    if result is None or result < 0:
        return None
    return result


def _first_float(info: dict, *keys: str) -> Optional[float]:
    for key in keys:
        result = _to_float(info.get(key))
        if result is not None:
            return result
    return None


def _to_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
