"""Abstract base class for second-stage rerankers."""

from __future__ import annotations

from abc import ABC, abstractmethod

from ragpipe.models.rag import RetrievedFragment


class IReranker(ABC):
    """Contract for rerankers that rescore similarity-search candidates."""

    @abstractmethod
    async def rerank_documents(
        self, query: str, documents: list[RetrievedFragment]
    ) -> list[RetrievedFragment]:
        """Return *documents* rescored against *query*.

        Parameters
        ----------
        query:
            The cleaned user query.
        documents:
            Candidates from similarity search.

        Returns
        -------
        list[RetrievedFragment]
            The candidates with new ``score`` values on the same
            higher-is-better scale the relevance cut-off is applied to.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this reranker."""
