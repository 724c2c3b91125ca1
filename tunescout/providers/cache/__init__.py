"""Cache providers.

In-memory per-entry TTL cache that holds computed recommendation results
and smart playlists per user, so repeated requests inside the TTL window
skip the whole pipeline.

MemoryCacheProvider is not shared across processes.  For multi-worker
deployments, swap in a Redis adapter implementing ICacheProvider without
changing any business logic.
"""

from tunescout.providers.cache.memory_cache import MemoryCacheProvider

__all__ = ["MemoryCacheProvider"]
