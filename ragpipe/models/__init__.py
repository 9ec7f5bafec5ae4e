"""ragpipe data models -- re-exports the public model classes."""

from __future__ import annotations

from ragpipe.models.rag import (
    FRAGMENT_ID_KEY,
    LOADER_ID_KEY,
    SOURCE_KEY,
    AddLoaderResult,
    ContentFragment,
    ConversationEntry,
    EmbeddedFragment,
    IndexedFragment,
    LoaderRecord,
    QueryResult,
    RetrievedFragment,
)

__all__ = [
    "FRAGMENT_ID_KEY",
    "LOADER_ID_KEY",
    "SOURCE_KEY",
    "AddLoaderResult",
    "ContentFragment",
    "ConversationEntry",
    "EmbeddedFragment",
    "IndexedFragment",
    "LoaderRecord",
    "QueryResult",
    "RetrievedFragment",
]
