"""Loader-record caches.

MemoryCacheProvider is process-local; SQLiteCacheProvider survives
restarts so a re-run of the same loader replaces its earlier vectors.
"""

from ragpipe.providers.cache.memory_cache import MemoryCacheProvider
from ragpipe.providers.cache.sqlite_cache import SQLiteCacheProvider

__all__ = ["MemoryCacheProvider", "SQLiteCacheProvider"]
