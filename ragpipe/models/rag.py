"""RAG data models for the ragpipe orchestration core.

Defines Pydantic v2 models for the fragments that move through ingestion
and retrieval, the per-loader cache record, and the values returned by the
orchestrator.  All models use frozen config so a fragment cannot be
mutated once it has been handed to a collaborator.

Fragment life cycle:

    1. LOAD:     a loader yields :class:`ContentFragment` objects.
    2. INDEX:    the orchestrator stamps ``unique_loader_id`` and ``id``
                 into metadata, producing :class:`IndexedFragment`.
    3. EMBED:    the embedding provider adds a vector, producing
                 :class:`EmbeddedFragment`, which the vector store persists.
    4. RETRIEVE: similarity search returns :class:`RetrievedFragment`
                 objects carrying a relevance ``score`` (higher is better).
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

# Metadata keys stamped on every indexed fragment.
LOADER_ID_KEY = "unique_loader_id"
FRAGMENT_ID_KEY = "id"
SOURCE_KEY = "source"


class ContentFragment(BaseModel):
    """A unit of content produced by a loader, before indexing."""

    model_config = ConfigDict(frozen=True)

    page_content: str = Field(description="The fragment's textual content.")
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Loader-supplied metadata, e.g. ``source`` and ``type``.",
    )


class IndexedFragment(ContentFragment):
    """A fragment whose metadata carries its loader id and fragment id.

    The fragment id has the form ``"<unique_loader_id>_<sequence>"`` where
    *sequence* is the fragment's 0-based position in its loader's stream.
    It is the primary key handed to the vector store.
    """

    @model_validator(mode="after")
    def _require_identity(self) -> IndexedFragment:
        for key in (LOADER_ID_KEY, FRAGMENT_ID_KEY):
            if not self.metadata.get(key):
                raise ValueError(f"IndexedFragment metadata requires a non-empty '{key}'")
        return self

    @property
    def unique_loader_id(self) -> str:
        return str(self.metadata[LOADER_ID_KEY])

    @property
    def fragment_id(self) -> str:
        return str(self.metadata[FRAGMENT_ID_KEY])


class EmbeddedFragment(BaseModel):
    """An indexed fragment together with its embedding vector."""

    model_config = ConfigDict(frozen=True)

    page_content: str = Field(description="The fragment's textual content.")
    vector: list[float] = Field(description="Embedding vector of length D.")
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Indexed metadata including ``unique_loader_id`` and ``id``.",
    )

    @property
    def fragment_id(self) -> str:
        return str(self.metadata.get(FRAGMENT_ID_KEY, ""))

    @property
    def unique_loader_id(self) -> str:
        return str(self.metadata.get(LOADER_ID_KEY, ""))


class RetrievedFragment(BaseModel):
    """A fragment returned by similarity search or reranking."""

    model_config = ConfigDict(frozen=True)

    page_content: str = Field(description="The fragment's textual content.")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Stored metadata.")
    score: float = Field(description="Relevance score; higher is more relevant.")

    @property
    def source(self) -> str | None:
        value = self.metadata.get(SOURCE_KEY)
        return str(value) if value is not None else None


class LoaderRecord(BaseModel):
    """Cache-resident record of the last ingestion run for a loader.

    The existence of a record means the source has been ingested before;
    ``chunk_count`` is the number of fragments formatted on that run.
    """

    model_config = ConfigDict(frozen=True)

    unique_loader_id: str = Field(description="Identity of the loader.")
    chunk_count: int = Field(ge=0, description="Fragments formatted on the last run.")


class AddLoaderResult(BaseModel):
    """Outcome of registering a loader with the orchestrator."""

    model_config = ConfigDict(frozen=True)

    unique_id: str = Field(description="Identity of the registered loader.")
    entries_added: int = Field(ge=0, description="Fragments the vector store reported as inserted.")


class QueryResult(BaseModel):
    """Answer produced by the generation model plus its citation sources."""

    model_config = ConfigDict(frozen=True)

    result: str = Field(description="Generated answer text.")
    sources: list[str] = Field(
        default_factory=list,
        description="Distinct ``source`` values of the context fragments, in context order.",
    )


class ConversationEntry(BaseModel):
    """One turn of a conversation kept by a generation model."""

    model_config = ConfigDict(frozen=True)

    role: Literal["user", "assistant"]
    content: str
