"""Fluent builder for :class:`~ragpipe.pipeline.orchestrator.RAGApplication`.

Collects collaborators and tuning options step by step, then constructs
the application and awaits its :meth:`init` in one call::

    app = await (
        RAGApplicationBuilder()
        .set_model(OpenAIModel(settings))
        .set_vector_store(MemoryVectorStore())
        .add_loader(TextLoader("..."))
        .build()
    )
"""

from __future__ import annotations

from typing import Any

from ragpipe.config.settings import DEFAULT_QUERY_TEMPLATE
from ragpipe.interfaces.cache_provider import ICacheProvider
from ragpipe.interfaces.embedding_provider import IEmbeddingProvider
from ragpipe.interfaces.loader import BaseLoader
from ragpipe.interfaces.model import DEFAULT_TEMPERATURE, BaseGenerationModel
from ragpipe.interfaces.reranker import IReranker
from ragpipe.interfaces.vector_store_provider import IVectorStoreProvider
from ragpipe.pipeline.orchestrator import (
    DEFAULT_INSERT_BATCH_SIZE,
    DEFAULT_RELEVANCE_CUT_OFF,
    DEFAULT_SEARCH_RESULT_COUNT,
    RAGApplication,
)


class RAGApplicationBuilder:
    """Step-by-step configuration of a :class:`RAGApplication`."""

    def __init__(self) -> None:
        self._model: BaseGenerationModel | None = None
        self._vector_store: IVectorStoreProvider | None = None
        self._embedding: IEmbeddingProvider | None = None
        self._cache: ICacheProvider | None = None
        self._reranker: IReranker | None = None
        self._loaders: list[BaseLoader] = []
        self._search_result_count = DEFAULT_SEARCH_RESULT_COUNT
        self._relevance_cut_off = DEFAULT_RELEVANCE_CUT_OFF
        self._query_template = DEFAULT_QUERY_TEMPLATE
        self._temperature = DEFAULT_TEMPERATURE
        self._insert_batch_size = DEFAULT_INSERT_BATCH_SIZE

    def set_model(self, model: BaseGenerationModel) -> RAGApplicationBuilder:
        self._model = model
        return self

    def set_vector_store(self, vector_store: IVectorStoreProvider) -> RAGApplicationBuilder:
        self._vector_store = vector_store
        return self

    def set_embedding_model(self, embedding: IEmbeddingProvider) -> RAGApplicationBuilder:
        self._embedding = embedding
        return self

    def set_cache(self, cache: ICacheProvider) -> RAGApplicationBuilder:
        self._cache = cache
        return self

    def set_reranker(self, reranker: IReranker) -> RAGApplicationBuilder:
        self._reranker = reranker
        return self

    def add_loader(self, loader: BaseLoader) -> RAGApplicationBuilder:
        self._loaders.append(loader)
        return self

    def set_search_result_count(self, count: int) -> RAGApplicationBuilder:
        self._search_result_count = count
        return self

    def set_embedding_relevance_cut_off(self, cut_off: float) -> RAGApplicationBuilder:
        self._relevance_cut_off = cut_off
        return self

    def set_query_template(self, template: str) -> RAGApplicationBuilder:
        self._query_template = template
        return self

    def set_temperature(self, temperature: float) -> RAGApplicationBuilder:
        self._temperature = temperature
        return self

    def set_insert_batch_size(self, batch_size: int) -> RAGApplicationBuilder:
        self._insert_batch_size = batch_size
        return self

    def apply_config(self, config: dict[str, Any]) -> RAGApplicationBuilder:
        """Apply the ``rag`` section of a :func:`~ragpipe.config.load_config` dict.

        Accepts either the whole config or just its ``rag`` section; keys
        that are absent leave the current value alone.
        """
        rag = config.get("rag", config)
        if "search_result_count" in rag:
            self.set_search_result_count(int(rag["search_result_count"]))
        if "embedding_relevance_cut_off" in rag:
            self.set_embedding_relevance_cut_off(float(rag["embedding_relevance_cut_off"]))
        if "insert_batch_size" in rag:
            self.set_insert_batch_size(int(rag["insert_batch_size"]))
        if "temperature" in rag:
            self.set_temperature(float(rag["temperature"]))
        if rag.get("query_template"):
            self.set_query_template(str(rag["query_template"]))
        return self

    def create(self) -> RAGApplication:
        """Construct the application without initializing it."""
        return RAGApplication(
            model=self._model,
            vector_store=self._vector_store,
            embedding_provider=self._embedding,
            cache=self._cache,
            reranker=self._reranker,
            loaders=self._loaders,
            search_result_count=self._search_result_count,
            embedding_relevance_cut_off=self._relevance_cut_off,
            query_template=self._query_template,
            temperature=self._temperature,
            insert_batch_size=self._insert_batch_size,
        )

    async def build(self) -> RAGApplication:
        """Construct the application and await its ``init()``."""
        app = self.create()
        await app.init()
        return app
