"""In-process vector store using numpy cosine similarity.

Suitable for tests, notebooks and small corpora.  Nothing is persisted;
fragments live in a dict keyed by fragment id.
"""

from __future__ import annotations

import numpy as np
import structlog

from ragpipe.interfaces.vector_store_provider import IVectorStoreProvider
from ragpipe.models.rag import EmbeddedFragment, RetrievedFragment
from ragpipe.utils.errors import RAGError

logger = structlog.get_logger(logger_name=__name__)


class MemoryVectorStore(IVectorStoreProvider):
    """Vector store backed by a Python dict and brute-force cosine search."""

    def __init__(self) -> None:
        self._dimensions: int | None = None
        self._entries: dict[str, EmbeddedFragment] = {}

    async def init(self, dimensions: int) -> None:
        self._dimensions = dimensions
        logger.debug("memory_vector_store_initialized", dimensions=dimensions)

    async def insert_chunks(self, chunks: list[EmbeddedFragment]) -> int:
        for chunk in chunks:
            if self._dimensions is not None and len(chunk.vector) != self._dimensions:
                raise RAGError(
                    message=(
                        f"Vector for '{chunk.fragment_id}' has {len(chunk.vector)} "
                        f"dimensions, expected {self._dimensions}"
                    ),
                    provider_name=self.get_provider_name(),
                )
        for chunk in chunks:
            self._entries[chunk.fragment_id] = chunk
        return len(chunks)

    async def similarity_search(self, query: list[float], k: int) -> list[RetrievedFragment]:
        if not self._entries or k <= 0:
            return []

        entries = list(self._entries.values())
        matrix = np.asarray([e.vector for e in entries], dtype=np.float64)
        q = np.asarray(query, dtype=np.float64)

        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(q)
        # Zero vectors have no direction; score them 0.
        scores = np.divide(matrix @ q, norms, out=np.zeros(len(entries)), where=norms > 0)

        order = np.argsort(-scores, kind="stable")[:k]
        return [
            RetrievedFragment(
                page_content=entries[i].page_content,
                metadata=dict(entries[i].metadata),
                score=float(scores[i]),
            )
            for i in order
        ]

    async def get_vector_count(self) -> int:
        return len(self._entries)

    async def create_vector_index(self, dimensions: int) -> None:
        self._dimensions = dimensions

    async def docs_count(self) -> int:
        return len(self._entries)

    async def delete_keys(self, unique_loader_id: str) -> bool:
        doomed = [key for key, e in self._entries.items() if e.unique_loader_id == unique_loader_id]
        for key in doomed:
            del self._entries[key]
        logger.debug("memory_delete_keys", unique_loader_id=unique_loader_id, deleted=len(doomed))
        return True

    async def reset(self) -> None:
        self._entries.clear()

    def get_provider_name(self) -> str:
        return "memory"
