"""
TTL Cache
---------
In-memory expiring key-value store shared by one client instance.

Holds the access token (58 minutes) and the category / payment method
collections (24 hours). Entries are replaced wholesale, never mutated.

Design:
- Explicitly injected into the client, no module-level state
- Clock is injectable so expiry can be driven by tests
- Loads on miss go through SingleFlight: N concurrent misses for the
  same key trigger exactly one loader call
- A loader that raises leaves the cache untouched
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, TypeVar
import logging
import threading
import time

from .singleflight import SingleFlight

T = TypeVar('T')

ACCESS_TOKEN_KEY = "access_token"
CATEGORIES_KEY = "categories"
PAYMENTS_KEY = "payments"

ACCESS_TOKEN_TTL = 58 * 60
COLLECTION_TTL = 1440 * 60

_MISSING = object()


@dataclass(frozen=True)
class CacheEntry:
    """A cached value and the moment it stops being valid."""
    value: Any
    expires_at: float

    def is_live(self, now: float) -> bool:
        return self.expires_at - now > 0


class TTLCache:
    """
    Thread-safe expiring cache.

    Example:
        cache = TTLCache()
        cache.set("categories", [...], ttl_seconds=COLLECTION_TTL)
        cache.get("categories")
    """

    def __init__(self, clock: Optional[Callable[[], float]] = None):
        self._clock = clock or time.monotonic
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._flight = SingleFlight()
        self._logger = logging.getLogger("opentrade.core.cache")

    def get(self, key: str, default: Any = None) -> Any:
        """Return the live value for key, or default when absent or expired."""
        value = self._get(key)
        return default if value is _MISSING else value

    def has(self, key: str) -> bool:
        """Check whether key holds a live entry."""
        return self._get(key) is not _MISSING

    def _get(self, key: str) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return _MISSING
            if not entry.is_live(self._clock()):
                del self._entries[key]
                self._logger.debug(f"Cache entry expired: {key}")
                return _MISSING
            return entry.value

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        """Store value under key for ttl_seconds."""
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be greater than zero")
        with self._lock:
            self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + ttl_seconds)

    def delete(self, key: str) -> bool:
        """Remove key. Returns True if an entry was removed."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> int:
        """Remove every entry. Returns count."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            return count

    def expires_in(self, key: str) -> Optional[float]:
        """Seconds of life left for key, or None when absent or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            remaining = entry.expires_at - self._clock()
            return remaining if remaining > 0 else None

    def get_or_load(
        self,
        key: str,
        loader: Callable[[], T],
        ttl_seconds: float,
        timeout: Optional[float] = None,
    ) -> T:
        """
        Return the live value for key, loading it on miss.

        Concurrent misses share a single loader call. The result is stored
        only when the loader returns; its exception reaches every waiter.
        """
        value = self._get(key)
        if value is not _MISSING:
            return value

        def _load() -> T:
            # Another leader may have filled the entry between our miss and now
            current = self._get(key)
            if current is not _MISSING:
                return current
            self._logger.info(f"Loading cache entry: {key}")
            loaded = loader()
            self.set(key, loaded, ttl_seconds)
            return loaded

        return self._flight.do(key, _load, timeout=timeout)
