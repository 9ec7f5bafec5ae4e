"""ChromaDB vector store provider adapter.

Wraps ``chromadb.PersistentClient`` to implement :class:`IVectorStoreProvider`.
Uses cosine distance; scores are reported as ``1 - distance`` so that
higher means more relevant.  Fragment ids (``"<loader>_<n>"``) are used
as ChromaDB ids, so re-inserting a fragment overwrites it.
"""

from __future__ import annotations

import asyncio
import json
import os
from typing import Any

# Disable ChromaDB telemetry before importing chromadb.  A version mismatch
# between ChromaDB's bundled PostHog client and the installed one produces
# "capture() takes 1 positional argument" errors otherwise.
os.environ["ANONYMIZED_TELEMETRY"] = "False"

import posthog

posthog.disabled = True

import chromadb
import structlog

from ragpipe.interfaces.vector_store_provider import IVectorStoreProvider
from ragpipe.models.rag import LOADER_ID_KEY, EmbeddedFragment, RetrievedFragment
from ragpipe.utils.errors import RAGError

logger = structlog.get_logger(logger_name=__name__)

_UPSERT_BATCH = 500


class _NoopEmbeddingFunction(chromadb.EmbeddingFunction[list[str]]):
    """Embedding function that keeps ChromaDB from loading its default model.

    ragpipe always passes pre-computed vectors, so this is never called.
    """

    def __call__(self, input: list[str]) -> list[list[float]]:
        raise NotImplementedError(
            "ragpipe uses pre-computed embeddings; "
            "ChromaDB's built-in embedding should never be called."
        )

    def name(self) -> str:
        return "noop_precomputed"


class ChromaDBProvider(IVectorStoreProvider):
    """Vector store provider backed by ChromaDB with local persistence."""

    def __init__(
        self,
        persist_directory: str = "./data/chromadb",
        collection_name: str = "ragpipe",
    ) -> None:
        self._persist_directory = persist_directory
        self._collection_name = collection_name
        self._dimensions: int | None = None
        self._client = chromadb.PersistentClient(
            path=persist_directory,
            settings=chromadb.config.Settings(anonymized_telemetry=False),
        )
        self._collection = self._open_collection()

    def _open_collection(self) -> Any:
        # Collections created by an older ChromaDB with the default embedding
        # function reject a different one; reopen without it in that case.
        try:
            return self._client.get_or_create_collection(
                name=self._collection_name,
                metadata={"hnsw:space": "cosine"},
                embedding_function=_NoopEmbeddingFunction(),
            )
        except ValueError:
            return self._client.get_or_create_collection(
                name=self._collection_name,
                metadata={"hnsw:space": "cosine"},
            )

    # ------------------------------------------------------------------
    # IVectorStoreProvider implementation
    # ------------------------------------------------------------------

    async def init(self, dimensions: int) -> None:
        """Record *dimensions* and check it against any stored vectors.

        A mismatch means every query would return garbage, so it fails
        loudly instead.
        """
        self._dimensions = dimensions
        stored_dim = self._stored_dimension()
        if stored_dim is not None and stored_dim != dimensions:
            logger.error(
                "embedding_dimension_mismatch",
                stored_dim=stored_dim,
                expected_dim=dimensions,
                collection=self._collection_name,
            )
            raise RAGError(
                message=(
                    f"Embedding dimension mismatch: collection '{self._collection_name}' "
                    f"holds {stored_dim}-dim vectors but the embedding provider "
                    f"produces {dimensions}-dim vectors."
                ),
                provider_name=self.get_provider_name(),
            )
        logger.info(
            "chromadb_initialized",
            collection=self._collection_name,
            dimensions=dimensions,
            existing_vectors=self._collection.count(),
        )

    async def insert_chunks(self, chunks: list[EmbeddedFragment]) -> int:
        """Upsert *chunks* in batches and return the number written."""
        if not chunks:
            return 0

        if self._dimensions is not None:
            for chunk in chunks:
                if len(chunk.vector) != self._dimensions:
                    raise RAGError(
                        message=(
                            f"Vector for '{chunk.fragment_id}' has {len(chunk.vector)} "
                            f"dimensions, expected {self._dimensions}"
                        ),
                        provider_name=self.get_provider_name(),
                    )

        try:
            total_stored = 0
            for start in range(0, len(chunks), _UPSERT_BATCH):
                batch = chunks[start : start + _UPSERT_BATCH]
                await asyncio.to_thread(
                    self._collection.upsert,
                    ids=[c.fragment_id for c in batch],
                    embeddings=[c.vector for c in batch],
                    documents=[c.page_content for c in batch],
                    metadatas=[self._flatten_metadata(c.metadata) for c in batch],
                )
                total_stored += len(batch)

            logger.info("chromadb_insert_chunks", count=total_stored)
            return total_stored
        except Exception as exc:
            raise RAGError(
                message=f"ChromaDB insert_chunks failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    async def similarity_search(self, query: list[float], k: int) -> list[RetrievedFragment]:
        try:
            available = self._collection.count()
            if available == 0 or k <= 0:
                return []

            results = await asyncio.to_thread(
                self._collection.query,
                query_embeddings=[query],
                n_results=min(k, available),
                include=["documents", "metadatas", "distances"],
            )
        except Exception as exc:
            raise RAGError(
                message=f"ChromaDB query failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        if not results["documents"] or not results["documents"][0]:
            return []

        documents = results["documents"][0]
        metadatas = results["metadatas"][0] if results["metadatas"] else [{}] * len(documents)
        distances = results["distances"][0] if results["distances"] else [0.0] * len(documents)

        retrieved = [
            RetrievedFragment(
                page_content=doc_text,
                metadata=dict(meta or {}),
                score=1.0 - float(distance),
            )
            for doc_text, meta, distance in zip(documents, metadatas, distances, strict=True)
        ]
        logger.debug(
            "chromadb_similarity_search",
            requested=k,
            results_count=len(retrieved),
            top_score=retrieved[0].score if retrieved else 0.0,
        )
        return retrieved

    async def get_vector_count(self) -> int:
        return self._collection.count()

    async def create_vector_index(self, dimensions: int) -> None:
        """Ensure the collection (and its HNSW index) exists.

        ChromaDB builds the index itself as vectors arrive, so this only
        re-opens the collection and records the dimension.
        """
        self._dimensions = dimensions
        self._collection = self._open_collection()
        logger.info(
            "chromadb_vector_index_ready",
            collection=self._collection_name,
            dimensions=dimensions,
        )

    async def docs_count(self) -> int:
        return self._collection.count()

    async def delete_keys(self, unique_loader_id: str) -> bool:
        try:
            await asyncio.to_thread(
                self._collection.delete, where={LOADER_ID_KEY: unique_loader_id}
            )
        except Exception as exc:
            raise RAGError(
                message=f"ChromaDB delete_keys failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.info("chromadb_delete_keys", unique_loader_id=unique_loader_id)
        return True

    async def reset(self) -> None:
        try:
            self._client.delete_collection(self._collection_name)
        except Exception as exc:
            raise RAGError(
                message=f"ChromaDB reset failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        self._collection = self._open_collection()
        logger.warning("chromadb_reset", collection=self._collection_name)

    def get_provider_name(self) -> str:
        return "chromadb"

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _stored_dimension(self) -> int | None:
        if self._collection.count() == 0:
            return None
        sample = self._collection.peek(limit=1)
        embeddings = sample.get("embeddings") if sample else None
        if embeddings is None or len(embeddings) == 0:
            return None
        return len(embeddings[0])

    @staticmethod
    def _flatten_metadata(metadata: dict[str, Any]) -> dict[str, str | int | float | bool]:
        """Coerce metadata to the scalar types ChromaDB accepts.

        ``None`` values are dropped, lists and dicts are JSON-encoded, and
        anything else falls back to ``str``.
        """
        flat: dict[str, str | int | float | bool] = {}
        for key, value in metadata.items():
            if value is None:
                continue
            if isinstance(value, (str, int, float, bool)):
                flat[key] = value
            elif isinstance(value, (list, tuple, dict)):
                flat[key] = json.dumps(value, default=str)
            else:
                flat[key] = str(value)
        return flat
