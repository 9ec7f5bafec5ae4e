"""Shared fakes for the ragpipe test suite."""

from __future__ import annotations

import hashlib
from collections.abc import AsyncIterator
from typing import Any

from ragpipe.interfaces.embedding_provider import IEmbeddingProvider
from ragpipe.interfaces.loader import BaseLoader
from ragpipe.interfaces.model import BaseGenerationModel
from ragpipe.models.rag import ContentFragment, ConversationEntry, RetrievedFragment

_EMBEDDING_DIM = 16


def _hash_to_vector(text: str, dim: int = _EMBEDDING_DIM) -> list[float]:
    """Generate a deterministic vector by hashing *text*.

    Same text always produces the same vector; different texts produce
    (almost always) different directions.
    """
    raw = hashlib.sha256(text.encode("utf-8")).digest()
    while len(raw) < dim:
        raw += hashlib.sha256(raw).digest()
    values = [(b / 255.0) - 0.5 for b in raw[:dim]]
    magnitude = max(sum(v * v for v in values) ** 0.5, 1e-10)
    return [v / magnitude for v in values]


class MockEmbeddingProvider(IEmbeddingProvider):
    """Deterministic embedding provider that records every call."""

    def __init__(self, dim: int = _EMBEDDING_DIM) -> None:
        self.dim = dim
        self.document_calls: list[list[str]] = []
        self.query_calls: list[str] = []

    async def embed_documents(self, texts: list[str]) -> list[list[float]]:
        self.document_calls.append(list(texts))
        return [_hash_to_vector(t, self.dim) for t in texts]

    async def embed_query(self, text: str) -> list[float]:
        self.query_calls.append(text)
        return _hash_to_vector(text, self.dim)

    def get_dimensions(self) -> int:
        return self.dim

    def get_provider_name(self) -> str:
        return "mock-embedding"

    def is_available(self) -> bool:
        return True


class StubModel(BaseGenerationModel):
    """Generation model that echoes what it was asked."""

    def __init__(self, answer: str = "stub answer", **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.answer = answer
        self.init_calls = 0
        self.calls: list[dict[str, Any]] = []

    async def init(self) -> None:
        self.init_calls += 1

    async def run_query(
        self,
        system: str,
        user_query: str,
        context: list[RetrievedFragment],
        past_conversations: list[ConversationEntry],
    ) -> str:
        self.calls.append(
            {
                "system": system,
                "user_query": user_query,
                "context": list(context),
                "past": list(past_conversations),
            }
        )
        return self.answer

    def get_provider_name(self) -> str:
        return "stub-model"


class ListLoader(BaseLoader):
    """Loader serving a fixed list of texts.

    ``fail_after`` makes the stream raise ``RuntimeError`` after that many
    fragments; ``texts`` can be swapped between runs to simulate a changed
    source.
    """

    def __init__(
        self,
        unique_id: str,
        texts: list[str],
        source: str | None = None,
        fail_after: int | None = None,
        incremental: bool = False,
    ) -> None:
        super().__init__(unique_id, chunk_size=1000, chunk_overlap=0, can_incrementally_load=incremental)
        self.texts = list(texts)
        self.source = source or unique_id
        self.fail_after = fail_after
        self.init_calls = 0

    async def init(self) -> None:
        self.init_calls += 1

    async def get_unfiltered_chunks(self) -> AsyncIterator[ContentFragment]:
        for i, text in enumerate(self.texts):
            if self.fail_after is not None and i >= self.fail_after:
                raise RuntimeError(f"source failed after {self.fail_after} fragments")
            yield ContentFragment(page_content=text, metadata={"source": self.source})


def make_fragment(text: str, score: float, source: str | None = None) -> RetrievedFragment:
    metadata: dict[str, Any] = {}
    if source is not None:
        metadata["source"] = source
    return RetrievedFragment(page_content=text, metadata=metadata, score=score)

