"""Abstract base class for vector-store providers.

A vector store persists :class:`~ragpipe.models.rag.EmbeddedFragment`
objects keyed by their fragment id, answers k-nearest-neighbour queries
with a relevance score (higher is more relevant), and can delete every
fragment that belongs to one loader.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from ragpipe.models.rag import EmbeddedFragment, RetrievedFragment


# Concrete implementations:
#   ChromaDBProvider   -- local persistent ChromaDB collection
#   MemoryVectorStore  -- numpy cosine similarity, process-local
# Located in: ragpipe/providers/vector_store/
class IVectorStoreProvider(ABC):
    """Contract for vector-store backends used by the orchestrator."""

    @abstractmethod
    async def init(self, dimensions: int) -> None:
        """Prepare the store for vectors of length *dimensions*.

        Raises
        ------
        ragpipe.utils.errors.RAGError
            If existing data was written with a different dimension.
        """

    @abstractmethod
    async def insert_chunks(self, chunks: list[EmbeddedFragment]) -> int:
        """Persist *chunks* and return how many were newly inserted.

        Fragments are keyed by ``metadata["id"]``; inserting an id that
        already exists overwrites it.
        """

    @abstractmethod
    async def similarity_search(self, query: list[float], k: int) -> list[RetrievedFragment]:
        """Return up to *k* fragments nearest to *query*, best first."""

    @abstractmethod
    async def get_vector_count(self) -> int:
        """Return the number of stored vectors."""

    @abstractmethod
    async def create_vector_index(self, dimensions: int) -> None:
        """Create (or ensure) the search index for vectors of *dimensions*."""

    @abstractmethod
    async def docs_count(self) -> int:
        """Return the number of stored documents."""

    @abstractmethod
    async def delete_keys(self, unique_loader_id: str) -> bool:
        """Delete every fragment whose ``unique_loader_id`` matches.

        Returns
        -------
        bool
            ``True`` when the deletion request succeeded (including when
            nothing matched).
        """

    @abstractmethod
    async def reset(self) -> None:
        """Delete every stored fragment."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this store."""
