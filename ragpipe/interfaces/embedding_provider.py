"""Abstract base class for text-embedding service providers.

Implementations may wrap an OpenAI-compatible embeddings API, a local
fastembed ONNX model, or any other backend.  The orchestrator reads
:meth:`IEmbeddingProvider.get_dimensions` once at initialization and
treats the value as fixed for its lifetime.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations:
#   FastEmbedEmbeddingProvider -- local ONNX, default when none is injected
#   OpenAIEmbeddingProvider    -- OpenAI or any OpenAI-compatible endpoint
# Located in: ragpipe/providers/embedding/
class IEmbeddingProvider(ABC):
    """Contract for text-embedding services used by the RAG pipeline."""

    @abstractmethod
    async def embed_documents(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for a batch of fragment bodies.

        Parameters
        ----------
        texts:
            One or more text strings to embed.  Implementations should
            handle batching internally if the underlying API has a per-call
            limit.

        Returns
        -------
        list[list[float]]
            Embedding vectors corresponding positionally to *texts*.  Each
            inner list has length equal to :meth:`get_dimensions`.

        Raises
        ------
        ragpipe.utils.errors.RAGError
            If the embedding backend fails.
        """

    @abstractmethod
    async def embed_query(self, text: str) -> list[float]:
        """Generate an embedding vector for a search query.

        Parameters
        ----------
        text:
            The (already cleaned) query text.

        Returns
        -------
        list[float]
            The embedding vector with length equal to :meth:`get_dimensions`.
        """

    @abstractmethod
    def get_dimensions(self) -> int:
        """Return the dimensionality of the embedding vectors.

        Must stay constant for the lifetime of the provider instance.
        Example values: ``1536`` (``text-embedding-3-small``), ``384``
        (``BAAI/bge-small-en-v1.5``).
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this embedding provider."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured and usable."""
