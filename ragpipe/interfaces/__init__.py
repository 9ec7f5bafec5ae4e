"""Public interface definitions for every orchestrator collaborator.

The orchestrator only ever talks to these abstract classes; concrete
adapters live in ``ragpipe/providers/`` and ``ragpipe/loaders/`` and are
injected at construction time.

CONCRETE PROVIDER MAP:
    Interface              ->  Concrete implementations
    ---------------------------------------------------------------------
    IEmbeddingProvider     ->  FastEmbedEmbeddingProvider, OpenAIEmbeddingProvider
    IVectorStoreProvider   ->  ChromaDBProvider, MemoryVectorStore
    ICacheProvider         ->  MemoryCacheProvider, SQLiteCacheProvider
    IReranker              ->  CrossEncoderReranker
    BaseGenerationModel    ->  OpenAIModel, AnthropicModel
    BaseLoader             ->  TextLoader, WebLoader, DirectoryLoader, FeedLoader
"""

from ragpipe.interfaces.cache_provider import ICacheProvider
from ragpipe.interfaces.embedding_provider import IEmbeddingProvider
from ragpipe.interfaces.loader import BaseLoader, IncrementalHandler
from ragpipe.interfaces.model import BaseGenerationModel
from ragpipe.interfaces.reranker import IReranker
from ragpipe.interfaces.vector_store_provider import IVectorStoreProvider

__all__ = [
    "BaseGenerationModel",
    "BaseLoader",
    "ICacheProvider",
    "IEmbeddingProvider",
    "IReranker",
    "IVectorStoreProvider",
    "IncrementalHandler",
]
