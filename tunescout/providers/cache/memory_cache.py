"""In-memory cache provider using cachetools.TLRUCache.

Simple, fast cache suitable for development and single-process deployments.
Unlike a plain ``TTLCache`` every entry carries its own time-to-use, so the
server tier, the client tier and the smart-playlist tier can live in one
store with different lifetimes.  Values are deep-copied on the way in and
on the way out, so a caller mutating what it stored or what it read never
changes the cached entry.  Can be swapped for Redis or another backend
via the ICacheProvider interface.
"""

from __future__ import annotations

import copy
import time
from typing import Any, Callable

import structlog
from cachetools import TLRUCache

from tunescout.interfaces.cache_provider import CacheKey, ICacheProvider

logger = structlog.get_logger(logger_name=__name__)


def _entry_expiry(_key: CacheKey, entry: tuple[Any, float], now: float) -> float:
    # TLRUCache asks for an absolute expiry; entries are stored as (value, ttl).
    return now + entry[1]


class MemoryCacheProvider(ICacheProvider):
    """In-memory per-entry TTL cache backed by ``cachetools.TLRUCache``.

    Parameters
    ----------
    max_size:
        Maximum number of entries before the least-recently-used entry
        is evicted.
    timer:
        Monotonic clock used for expiry; tests inject a fake one.
    """

    def __init__(self, max_size: int = 2048, timer: Callable[[], float] = time.monotonic) -> None:
        self._cache: TLRUCache[CacheKey, tuple[Any, float]] = TLRUCache(
            maxsize=max_size, ttu=_entry_expiry, timer=timer
        )

    # ------------------------------------------------------------------
    # ICacheProvider implementation
    # ------------------------------------------------------------------

    async def get(self, key: CacheKey) -> Any | None:
        """Retrieve the cached value for *key*, or ``None`` if missing/expired."""
        entry = self._cache.get(key)
        if entry is None:
            logger.debug("cache_miss", key=str(key))
            return None
        logger.debug("cache_hit", key=str(key))
        return copy.deepcopy(entry[0])

    async def set(self, key: CacheKey, value: Any, ttl: float) -> None:
        """Store *value* under *key* for *ttl* seconds.

        A non-positive *ttl* removes the key instead of storing an entry
        that is already expired.
        """
        if ttl <= 0:
            self._cache.pop(key, None)
            return
        self._cache[key] = (copy.deepcopy(value), float(ttl))
        logger.debug("cache_set", key=str(key), ttl=ttl)

    async def invalidate(self, key: CacheKey) -> None:
        """Remove *key* from the cache (no-op if absent)."""
        self._cache.pop(key, None)
        logger.debug("cache_invalidate", key=str(key))

    async def invalidate_user(self, user_id: str) -> int:
        """Remove every namespace entry belonging to *user_id*."""
        self._cache.expire()
        doomed = [key for key in list(self._cache.keys()) if key.user_id == user_id]
        for key in doomed:
            self._cache.pop(key, None)
        logger.debug("cache_invalidate_user", user_id=user_id, removed=len(doomed))
        return len(doomed)

    async def exists(self, key: CacheKey) -> bool:
        """Return ``True`` if *key* is present and not expired."""
        return key in self._cache
