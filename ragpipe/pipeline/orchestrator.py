"""RAG orchestrator -- coordinates loaders, embeddings, storage and generation.

:class:`RAGApplication` is the single entry point that turns a set of
collaborators into a working retrieval-augmented generation system:

    INGESTION   loader -> orchestrator -> embedding provider -> vector store
                (the optional cache records how many fragments each loader
                produced, so re-adding a loader replaces its old vectors)

    RETRIEVAL   query -> embedding provider -> vector store -> reranker
                -> relevance filter / sort / top-K -> dedup -> model

All collaborators are injected; nothing here knows which concrete backend
is in use.  The embedding dimension is read once in :meth:`init` and every
vector inserted afterwards is checked against it.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Iterable

import structlog

from ragpipe.config.settings import DEFAULT_QUERY_TEMPLATE
from ragpipe.interfaces.cache_provider import ICacheProvider
from ragpipe.interfaces.embedding_provider import IEmbeddingProvider
from ragpipe.interfaces.loader import BaseLoader, IncrementalHandler
from ragpipe.interfaces.model import DEFAULT_TEMPERATURE, BaseGenerationModel
from ragpipe.interfaces.reranker import IReranker
from ragpipe.interfaces.vector_store_provider import IVectorStoreProvider
from ragpipe.models.rag import (
    FRAGMENT_ID_KEY,
    LOADER_ID_KEY,
    AddLoaderResult,
    ContentFragment,
    EmbeddedFragment,
    IndexedFragment,
    QueryResult,
    RetrievedFragment,
)
from ragpipe.providers.embedding.fastembed_embedding_provider import FastEmbedEmbeddingProvider
from ragpipe.utils.errors import ConfigurationError, PipelineError, RAGError
from ragpipe.utils.text_normalizer import clean_string

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_INSERT_BATCH_SIZE = 500
DEFAULT_SEARCH_RESULT_COUNT = 7
DEFAULT_RELEVANCE_CUT_OFF = 0.0
# Extra candidates fetched beyond K so reranking and the relevance filter
# still leave K results without a second search.
OVERFETCH_MARGIN = 10


class RAGApplication:
    """Retrieval-augmented generation orchestrator.

    Parameters
    ----------
    model:
        Generation model that writes the final answer.  Required.
    vector_store:
        Where embedded fragments are stored and searched.  Required.
    embedding_provider:
        Turns text into vectors.  Defaults to a local fastembed model.
    cache:
        Optional per-loader record store enabling idempotent re-ingestion.
    reranker:
        Optional second-stage scorer applied to over-fetched candidates.
    loaders:
        Loaders ingested during :meth:`init`.
    search_result_count:
        K, the maximum number of context fragments per query.
    embedding_relevance_cut_off:
        Results scoring at or below this value are discarded.
    query_template:
        System instructions handed to the model with every query.
    temperature:
        Default sampling temperature applied to *model*.
    insert_batch_size:
        Fragments per embedding call / vector-store insert.

    Raises
    ------
    ConfigurationError
        If *model* or *vector_store* is missing, or a numeric option is
        out of range.
    """

    def __init__(
        self,
        *,
        model: BaseGenerationModel | None,
        vector_store: IVectorStoreProvider | None,
        embedding_provider: IEmbeddingProvider | None = None,
        cache: ICacheProvider | None = None,
        reranker: IReranker | None = None,
        loaders: Iterable[BaseLoader] = (),
        search_result_count: int = DEFAULT_SEARCH_RESULT_COUNT,
        embedding_relevance_cut_off: float = DEFAULT_RELEVANCE_CUT_OFF,
        query_template: str = DEFAULT_QUERY_TEMPLATE,
        temperature: float = DEFAULT_TEMPERATURE,
        insert_batch_size: int = DEFAULT_INSERT_BATCH_SIZE,
    ) -> None:
        if model is None:
            raise ConfigurationError(message="Model not set")
        if vector_store is None:
            raise ConfigurationError(message="Vector store not set")
        if insert_batch_size <= 0:
            raise ConfigurationError(
                message=f"insert_batch_size must be positive, got {insert_batch_size}"
            )
        if search_result_count <= 0:
            raise ConfigurationError(
                message=f"search_result_count must be positive, got {search_result_count}"
            )

        self._model = model
        self._model.set_default_temperature(temperature)
        self._vector_store = vector_store
        self._embedding = embedding_provider or FastEmbedEmbeddingProvider()
        self._cache = cache
        self._reranker = reranker
        self._loaders: list[BaseLoader] = list(loaders)
        self._search_result_count = search_result_count
        self._relevance_cut_off = embedding_relevance_cut_off
        self._query_template = clean_string(query_template)
        self._insert_batch_size = insert_batch_size

        self._dimensions: int | None = None
        self._initialized = False
        # Next fragment sequence number per loader id.
        self._sequence: dict[str, int] = {}
        # Incremental handler attached to each tracked loader instance.
        self._subscribed: dict[BaseLoader, IncrementalHandler] = {}

        logger.debug("query_template_set", template=self._query_template)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def dimensions(self) -> int | None:
        """Embedding dimension fixed at :meth:`init` (``None`` before)."""
        return self._dimensions

    async def init(self) -> None:
        """Initialize collaborators and ingest the configured loaders.

        Must be awaited exactly once.  Loaders sharing a unique id are
        collapsed (the last one registered wins) and then ingested one after
        another, so one loader's cache update never races another's
        re-ingestion check.
        """
        if self._initialized:
            raise PipelineError(message="RAGApplication.init() was already called")

        await self._model.init()
        logger.debug("model_initialized", model=self._model.get_provider_name())

        self._dimensions = self._embedding.get_dimensions()
        await self._vector_store.init(dimensions=self._dimensions)
        logger.debug(
            "vector_store_initialized",
            store=self._vector_store.get_provider_name(),
            dimensions=self._dimensions,
        )

        if self._cache is not None:
            await self._cache.init()
            logger.debug("cache_initialized", cache=self._cache.get_provider_name())

        self._initialized = True

        unique: dict[str, BaseLoader] = {}
        for loader in self._loaders:
            unique[loader.get_unique_id()] = loader
        self._loaders = []
        for loader in unique.values():
            await self.add_loader(loader)

        logger.info(
            "rag_application_initialized",
            embedding=self._embedding.get_provider_name(),
            dimensions=self._dimensions,
            loaders=len(self._loaders),
        )

    def _ensure_initialized(self, operation: str) -> None:
        if not self._initialized:
            raise PipelineError(message=f"{operation}() called before init()")

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    async def add_loader(self, loader: BaseLoader) -> AddLoaderResult:
        """Ingest *loader* and start tracking it.

        If the cache says this loader was ingested before with a non-zero
        fragment count, its previous vectors are deleted first, so
        re-adding a changed source never leaves stale fragments behind.

        Raises whatever the loader, embedding provider or vector store
        raises; batches inserted before the failure stay in the store.
        """
        self._ensure_initialized("add_loader")
        unique_id = loader.get_unique_id()
        logger.debug("add_loader_started", loader=unique_id)

        await loader.init()
        fragments = loader.get_chunks()

        if self._cache is not None and await self._cache.has_loader(unique_id):
            record = await self._cache.get_loader(unique_id)
            previous = record.chunk_count if record is not None else 0
            logger.info("loader_previously_ingested", loader=unique_id, previous_chunks=previous)
            if previous > 0:
                await self.delete_loader(unique_id, are_you_sure=True)

        self._sequence[unique_id] = 0
        inserted, formatted = await self._batch_load(unique_id, fragments)

        if self._cache is not None:
            await self._cache.add_loader(unique_id, formatted)

        self._untrack(unique_id, keep=loader)
        if loader.can_incrementally_load and loader not in self._subscribed:
            handler = self._incremental_handler(loader)
            loader.on_incremental_chunks(handler)
            self._subscribed[loader] = handler
            logger.debug("incremental_loader_registered", loader=unique_id)
        self._loaders.append(loader)

        logger.info(
            "add_loader_complete",
            loader=unique_id,
            fragments=formatted,
            entries_added=inserted,
        )
        return AddLoaderResult(unique_id=unique_id, entries_added=inserted)

    def _untrack(self, unique_id: str, keep: BaseLoader | None = None) -> None:
        """Forget tracked loaders with *unique_id* and detach their handlers."""
        remaining: list[BaseLoader] = []
        for tracked in self._loaders:
            if tracked.get_unique_id() != unique_id:
                remaining.append(tracked)
            elif tracked is not keep:
                handler = self._subscribed.pop(tracked, None)
                if handler is not None:
                    tracked.remove_incremental_handler(handler)
        self._loaders = remaining

    def _incremental_handler(self, loader: BaseLoader):  # noqa: ANN202
        unique_id = loader.get_unique_id()

        async def handle(fragments: AsyncIterator[ContentFragment]) -> None:
            if loader not in self._loaders:
                logger.warning("incremental_chunks_for_untracked_loader", loader=unique_id)
                return
            try:
                inserted, formatted = await self._batch_load(unique_id, fragments)
            except Exception:
                logger.exception("incremental_load_failed", loader=unique_id)
                raise
            logger.info(
                "incremental_load_complete",
                loader=unique_id,
                fragments=formatted,
                entries_added=inserted,
            )

        return handle

    async def _batch_load(
        self, unique_id: str, fragments: AsyncIterator[ContentFragment]
    ) -> tuple[int, int]:
        """Index, embed and insert *fragments* in batches.

        Returns ``(inserted, formatted)``: the vector store's insert count
        and the number of fragments read from the sequence.
        """
        inserted = 0
        formatted = 0
        batch: list[IndexedFragment] = []

        async for fragment in fragments:
            sequence = self._sequence.get(unique_id, 0)
            self._sequence[unique_id] = sequence + 1
            batch.append(
                IndexedFragment(
                    page_content=fragment.page_content,
                    metadata={
                        **fragment.metadata,
                        LOADER_ID_KEY: unique_id,
                        FRAGMENT_ID_KEY: f"{unique_id}_{sequence}",
                    },
                )
            )
            formatted += 1

            if len(batch) >= self._insert_batch_size:
                inserted += await self._embed_and_insert(unique_id, batch)
                batch = []

        inserted += await self._embed_and_insert(unique_id, batch)
        return inserted, formatted

    async def _embed_and_insert(self, unique_id: str, batch: list[IndexedFragment]) -> int:
        if not batch:
            return 0

        vectors = await self._embedding.embed_documents([f.page_content for f in batch])
        if len(vectors) != len(batch):
            raise RAGError(
                message=(
                    f"Embedding provider returned {len(vectors)} vectors "
                    f"for a batch of {len(batch)} fragments"
                ),
                provider_name=self._embedding.get_provider_name(),
            )
        for fragment, vector in zip(batch, vectors, strict=True):
            if len(vector) != self._dimensions:
                raise RAGError(
                    message=(
                        f"Vector for '{fragment.fragment_id}' has {len(vector)} dimensions, "
                        f"expected {self._dimensions}"
                    ),
                    provider_name=self._embedding.get_provider_name(),
                )

        embedded = [
            EmbeddedFragment(page_content=f.page_content, vector=list(v), metadata=f.metadata)
            for f, v in zip(batch, vectors, strict=True)
        ]
        count = await self._vector_store.insert_chunks(embedded)
        logger.debug("batch_inserted", loader=unique_id, batch_size=len(batch), inserted=count)
        return count

    # ------------------------------------------------------------------
    # Deletion
    # ------------------------------------------------------------------

    async def delete_loader(self, unique_loader_id: str, are_you_sure: bool = False) -> bool:
        """Delete every vector of *unique_loader_id* and forget the loader.

        Without ``are_you_sure=True`` nothing happens: a warning is logged
        and ``False`` returned.
        """
        if not are_you_sure:
            logger.warning(
                "delete_loader_unconfirmed",
                loader=unique_loader_id,
                msg="Delete embeddings from loader called without confirmation. No action taken.",
            )
            return False

        deleted = await self._vector_store.delete_keys(unique_loader_id)
        if deleted and self._cache is not None:
            await self._cache.delete_loader(unique_loader_id)
        self._untrack(unique_loader_id)
        logger.info("loader_deleted", loader=unique_loader_id, success=deleted)
        return deleted

    async def delete_all_embeddings(self, are_you_sure: bool = False) -> bool:
        """Reset the vector store to empty.

        Loader records in the cache are kept, so a later add of a
        previously-ingested loader still runs its (now empty) deletion.
        """
        if not are_you_sure:
            logger.warning(
                "reset_unconfirmed",
                msg="Reset embeddings called without confirmation. No action taken.",
            )
            return False

        await self._vector_store.reset()
        if self._cache is not None:
            logger.warning(
                "reset_kept_loader_records",
                cache=self._cache.get_provider_name(),
                msg="Vector store reset; cached loader records were not cleared.",
            )
        logger.info("vector_store_reset", store=self._vector_store.get_provider_name())
        return True

    # ------------------------------------------------------------------
    # Retrieval
    # ------------------------------------------------------------------

    async def get_embeddings(self, clean_query: str) -> list[RetrievedFragment]:
        """Return up to K fragments relevant to an already-cleaned query.

        Over-fetches K + 10 candidates, reranks them when a reranker is
        configured, drops those scoring at or below the cut-off, and returns
        the best K by score.
        """
        self._ensure_initialized("get_embeddings")
        query_vector = await self._embedding.embed_query(clean_query)
        candidates = await self._vector_store.similarity_search(
            query_vector, self._search_result_count + OVERFETCH_MARGIN
        )
        if self._reranker is not None:
            candidates = await self._reranker.rerank_documents(clean_query, candidates)

        relevant = [c for c in candidates if c.score > self._relevance_cut_off]
        relevant.sort(key=lambda c: c.score, reverse=True)
        results = relevant[: self._search_result_count]

        logger.debug(
            "retrieval_complete",
            candidates=len(candidates),
            above_cut_off=len(relevant),
            returned=len(results),
        )
        return results

    async def get_context(self, query: str) -> list[RetrievedFragment]:
        """Return the deduplicated context fragments for *query*.

        Identical fragment bodies collapse to their first occurrence.
        """
        self._ensure_initialized("get_context")
        raw = await self.get_embeddings(clean_string(query))

        seen: set[str] = set()
        context: list[RetrievedFragment] = []
        for fragment in raw:
            if fragment.page_content in seen:
                continue
            seen.add(fragment.page_content)
            context.append(fragment)
        return context

    async def query(self, user_query: str, conversation_id: str | None = None) -> QueryResult:
        """Answer *user_query* from retrieved context and list its sources."""
        self._ensure_initialized("query")
        context = await self.get_context(user_query)

        sources: list[str] = []
        for fragment in context:
            source = fragment.source
            if source is not None and source not in sources:
                sources.append(source)

        result = await self._model.query(
            self._query_template, user_query, context, conversation_id
        )
        logger.info(
            "query_answered",
            context_size=len(context),
            sources=len(sources),
            conversation_id=conversation_id,
        )
        return QueryResult(result=result, sources=sources)

    # ------------------------------------------------------------------
    # Pass-through reads
    # ------------------------------------------------------------------

    async def get_embeddings_count(self) -> int:
        return await self._vector_store.get_vector_count()

    async def docs_count(self) -> int:
        return await self._vector_store.docs_count()

    async def create_vector_index(self) -> None:
        dimensions = self._dimensions or self._embedding.get_dimensions()
        await self._vector_store.create_vector_index(dimensions)

    def get_loaders(self) -> list[BaseLoader]:
        """Return the currently tracked loaders (one per unique id)."""
        return list(self._loaders)
