"""
Explicit quote cache with a caller-chosen TTL.
Owned by whoever composes the fetcher instead of living at module level.
"""

import logging
from threading import Lock
from typing import Optional

from cachetools import TTLCache

logger = logging.getLogger(__name__)


class QuoteCache:
    """TTL cache of QuoteResult objects keyed by quote-format symbol."""

    def __init__(self, ttl: float, maxsize: int = 1024):
        self.ttl = ttl
        self._cache: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl)
        self._lock = Lock()

    def get(self, symbol: str) -> Optional[object]:
        with self._lock:
            return self._cache.get(symbol.upper())

    def put(self, symbol: str, quote: object) -> None:
        with self._lock:
            self._cache[symbol.upper()] = quote

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()
        logger.info("Quote cache cleared")

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)
