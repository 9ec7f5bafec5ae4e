"""Abstract base class for the loader-record cache.

The cache is the orchestrator's idempotency side-channel: it remembers how
many fragments each loader produced on its last run, so that re-adding the
same loader first removes the vectors from the previous run.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from ragpipe.models.rag import LoaderRecord


# Concrete implementations:
#   MemoryCacheProvider -- bounded cachetools.Cache, process-local
#   SQLiteCacheProvider -- aiosqlite, survives restarts
# Located in: ragpipe/providers/cache/
class ICacheProvider(ABC):
    """Contract for per-loader ingestion records."""

    @abstractmethod
    async def init(self) -> None:
        """Prepare the backing storage (create tables, open handles)."""

    @abstractmethod
    async def has_loader(self, unique_loader_id: str) -> bool:
        """Return ``True`` if a record exists for *unique_loader_id*."""

    @abstractmethod
    async def get_loader(self, unique_loader_id: str) -> LoaderRecord | None:
        """Return the record for *unique_loader_id*, or ``None`` if absent."""

    @abstractmethod
    async def add_loader(self, unique_loader_id: str, chunk_count: int) -> None:
        """Create or overwrite the record for *unique_loader_id*."""

    @abstractmethod
    async def delete_loader(self, unique_loader_id: str) -> None:
        """Remove the record for *unique_loader_id* (no-op if absent)."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this cache."""
