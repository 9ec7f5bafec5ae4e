"""In-memory loader cache built on a non-evicting ``cachetools.Cache``.

Fast but process-local: records vanish on restart, so a restarted process
will not know that a loader was ingested before.  Use the SQLite cache
when that matters.
"""

from __future__ import annotations

import structlog
from cachetools import Cache

from ragpipe.interfaces.cache_provider import ICacheProvider
from ragpipe.models.rag import LoaderRecord
from ragpipe.utils.errors import RAGError

logger = structlog.get_logger(logger_name=__name__)


class _BoundedRecords(Cache):
    """A ``cachetools.Cache`` that refuses new keys when full.

    A dropped record would make re-ingestion skip deleting the loader's
    old vectors, so records leave only through an explicit delete.
    """

    def popitem(self):  # noqa: ANN201
        raise RAGError(
            message=f"Memory cache is full ({self.maxsize} loader records)",
            provider_name="memory_cache",
        )


class MemoryCacheProvider(ICacheProvider):
    """Loader records held in process memory.

    Parameters
    ----------
    max_size:
        Maximum number of loader records.  Adding a new loader beyond
        this raises :class:`RAGError`; existing records are never evicted.
    """

    def __init__(self, max_size: int = 10_000) -> None:
        self._cache: Cache[str, LoaderRecord] = _BoundedRecords(maxsize=max_size)

    async def init(self) -> None:
        logger.debug("memory_cache_initialized", max_size=self._cache.maxsize)

    async def has_loader(self, unique_loader_id: str) -> bool:
        return unique_loader_id in self._cache

    async def get_loader(self, unique_loader_id: str) -> LoaderRecord | None:
        record = self._cache.get(unique_loader_id)
        if record is not None:
            logger.debug("cache_hit", key=unique_loader_id)
        else:
            logger.debug("cache_miss", key=unique_loader_id)
        return record

    async def add_loader(self, unique_loader_id: str, chunk_count: int) -> None:
        self._cache[unique_loader_id] = LoaderRecord(
            unique_loader_id=unique_loader_id, chunk_count=chunk_count
        )
        logger.debug("cache_set", key=unique_loader_id, chunk_count=chunk_count)

    async def delete_loader(self, unique_loader_id: str) -> None:
        self._cache.pop(unique_loader_id, None)
        logger.debug("cache_delete", key=unique_loader_id)

    def get_provider_name(self) -> str:
        return "memory_cache"
