"""In-process, single-flight cache for market-data lookups."""

import threading
from concurrent.futures import Future, TimeoutError as FutureTimeout
from typing import Callable, Dict, Generic, Optional, TypeVar

from catalyst_scanner.core.logger import logger

V = TypeVar("V")


class QuoteCache(Generic[V]):
    """A thread-safe memo keyed by symbol, with at most one in-flight load per key.

    Successful values are retained for the lifetime of the object. A load
    that yields ``None`` (or raises) is only remembered when
    ``cache_failures`` is set; otherwise the key is released once the
    in-flight load settles so a later call retries it.

    Callers that arrive while a load is running wait on the same
    :class:`~concurrent.futures.Future` instead of starting another load.
    A waiter given a ``timeout`` gives up with ``None`` when the load outlasts it.
    """

    def __init__(self, cache_failures: bool = False) -> None:
        """
        Args:
            cache_failures (bool): Remember absent results instead of retrying them.
        """
        self.cache_failures = cache_failures
        self._lock = threading.Lock()
        self._entries: Dict[str, Future] = {}

    def get_or_load(
        self,
        key: str,
        loader: Callable[[str], Optional[V]],
        timeout: Optional[float] = None,
    ) -> Optional[V]:
        """
        Return the cached value for ``key``, invoking ``loader(key)`` only if no
        value is cached and no load is already running.

        Args:
            key (str): Cache key (ticker symbol).
            loader (Callable): Performs the external lookup; may return ``None``.
            timeout (float, optional): Seconds a waiter blocks on an in-flight load.

        Returns:
            Optional[V]: The loaded or cached value, or ``None`` when absent.
        """
        with self._lock:
            entry = self._entries.get(key)
            owner = entry is None
            if owner:
                entry = Future()
                self._entries[key] = entry

        if not owner:
            logger.debug(f"QuoteCache: hit for {key}")
            try:
                return entry.result(timeout=timeout)
            except FutureTimeout:
                logger.warning(f"QuoteCache: reason=LOAD_TIMEOUT gave up waiting {timeout}s for {key}")
                return None

        value: Optional[V] = None
        try:
            value = loader(key)
        except Exception as exc:
            logger.error(f"QuoteCache: loader raised for {key}: {exc}")
            value = None
        finally:
            if value is None and not self.cache_failures:
                with self._lock:
                    self._entries.pop(key, None)
            entry.set_result(value)

        return value

    def peek(self, key: str) -> Optional[V]:
        """Return a settled value without loading, or ``None``."""
        with self._lock:
            entry = self._entries.get(key)
        if entry is None or not entry.done():
            return None
        return entry.result()

    def __contains__(self, key: str) -> bool:
        with self._lock:
            entry = self._entries.get(key)
        return entry is not None and entry.done()

    def __len__(self) -> int:
        with self._lock:
            return sum(1 for f in self._entries.values() if f.done())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
