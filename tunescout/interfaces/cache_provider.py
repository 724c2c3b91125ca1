"""Abstract base class for the per-user result cache.

Entries are addressed by a typed :class:`CacheKey` -- a
``(namespace, user_id)`` pair -- rather than ad hoc strings, so the
recommendation tiers (``rec``, ``rec_client``) and the smart-playlist tier
(``smart``) can never collide.  TTL is a first-class argument of ``set``.

Cached values must be treated as immutable: callers replace an entry
wholesale, they never edit a value they got back from ``get``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, NamedTuple


class CacheNamespace(str, Enum):
    """Keyspaces of the cache layer."""

    # Server-side, full RankedResult.
    RECOMMENDATIONS = "rec"
    # Client-visible, trimmed RankedResult with a shorter TTL.
    CLIENT_RECOMMENDATIONS = "rec_client"
    # Smart playlists.
    SMART_PLAYLISTS = "smart"


class CacheKey(NamedTuple):
    """Typed cache key."""

    namespace: CacheNamespace
    user_id: str

    def __str__(self) -> str:
        return f"{self.namespace.value}:{self.user_id}"


# Concrete implementation: MemoryCacheProvider (tunescout/providers/cache/)
class ICacheProvider(ABC):
    """Contract for the typed TTL cache.

    All operations are async to allow for network-backed stores (e.g. Redis)
    without blocking the event loop.
    """

    @abstractmethod
    async def get(self, key: CacheKey) -> Any | None:
        """Return the value stored under *key*, or ``None`` if missing/expired."""

    @abstractmethod
    async def set(self, key: CacheKey, value: Any, ttl: float) -> None:
        """Store *value* under *key* for *ttl* seconds, replacing any previous entry."""

    @abstractmethod
    async def invalidate(self, key: CacheKey) -> None:
        """Remove the entry under *key* (no-op if absent)."""

    @abstractmethod
    async def invalidate_user(self, user_id: str) -> int:
        """Remove every entry for *user_id* across all namespaces.

        Returns
        -------
        int
            Number of entries removed.
        """

    @abstractmethod
    async def exists(self, key: CacheKey) -> bool:
        """Return ``True`` if *key* is present and not expired."""
