"""In-process TTL cache shared by the research and analysis stages.

Two instances are used by the pipeline:

    raw report cache      15 minutes, keyed by (query, top_n, language)
    analysis cache        24 hours,   keyed by (topic, location)

Values are deep-copied on the way in and out, so a caller mutating a
returned object never changes what later callers see.

Typical usage:
    from memory.cache import TTLCache, make_key

    cache = TTLCache(ttl_seconds=900)
    key = make_key("best coffee shops", 8, "us-en")
    cache.set(key, report)
    cached = cache.get(key)     # None once expired
"""

import copy
import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple

import structlog

logger = structlog.get_logger(__name__)

KEY_SEPARATOR = "|"


def make_key(*parts: Any) -> str:
    """Build a normalised cache key: each part stringified, trimmed and lowercased."""
    return KEY_SEPARATOR.join(str(part).strip().lower() for part in parts)


class TTLCache:
    """A thread-safe in-memory cache with time-to-live expiration.

    Attributes:
        ttl: Time-to-live in seconds for cache entries.
        logger: Structured logger bound with the cache name.
    """

    def __init__(
        self,
        ttl_seconds: float,
        name: str = "cache",
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the cache.

        Args:
            ttl_seconds: Entry lifetime. Entries older than this are never returned.
            name: Label bound to every log line.
            clock: Time source, injectable for tests.
        """
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl = ttl_seconds
        self.logger = logger.bind(cache=name)
        self._clock = clock
        self._entries: Dict[str, Tuple[float, Any]] = {}
        self._lock = threading.RLock()

    def _is_expired(self, stored_at: float) -> bool:
        return self._clock() - stored_at > self.ttl

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value for *key*, or ``None`` on a miss or expiry."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.logger.debug("cache.miss", key=key)
                return None

            stored_at, value = entry
            if self._is_expired(stored_at):
                del self._entries[key]
                self.logger.debug(
                    "cache.expired", key=key, age=self._clock() - stored_at, ttl=self.ttl
                )
                return None

            self.logger.debug("cache.hit", key=key, age=self._clock() - stored_at)
            return copy.deepcopy(value)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._entries[key] = (self._clock(), copy.deepcopy(value))
            self.logger.info("cache.write", key=key)

    def delete(self, key: str) -> None:
        with self._lock:
            if self._entries.pop(key, None) is not None:
                self.logger.debug("cache.delete", key=key)
            else:
                self.logger.debug("cache.delete_miss", key=key)

    def clear_expired(self) -> int:
        """Drop every expired entry and return how many were removed."""
        with self._lock:
            expired = [k for k, (stored_at, _) in self._entries.items() if self._is_expired(stored_at)]
            for key in expired:
                del self._entries[key]

        if expired:
            self.logger.info("cache.clear_expired", removed=len(expired))
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
