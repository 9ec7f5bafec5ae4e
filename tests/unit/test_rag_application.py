"""Unit tests for the RAGApplication orchestrator.

Covers construction checks, init lifecycle, batched ingestion and id
assignment, idempotent re-ingestion through the cache, incremental
updates, guarded deletion, and the retrieval pipeline (over-fetch,
rerank, cut-off, top-K, dedup, sources).
"""

from __future__ import annotations

import asyncio
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from ragpipe.interfaces.reranker import IReranker
from ragpipe.interfaces.vector_store_provider import IVectorStoreProvider
from ragpipe.models.rag import ContentFragment, EmbeddedFragment
from ragpipe.pipeline.orchestrator import OVERFETCH_MARGIN, RAGApplication
from ragpipe.providers.cache.memory_cache import MemoryCacheProvider
from ragpipe.providers.embedding.fastembed_embedding_provider import FastEmbedEmbeddingProvider
from ragpipe.providers.vector_store.memory_vector_store import MemoryVectorStore
from ragpipe.utils.errors import ConfigurationError, PipelineError, RAGError
from tests.conftest import ListLoader, MockEmbeddingProvider, StubModel, make_fragment


# ======================================================================
# Shared helpers
# ======================================================================


def _recording_store(inserted_per_batch: int | None = None) -> MagicMock:
    """Mock vector store that records inserts.

    ``insert_chunks`` returns the batch length unless *inserted_per_batch*
    forces a fixed count.
    """
    store = MagicMock(spec=IVectorStoreProvider)
    store.inserted: list[EmbeddedFragment] = []

    def _insert(chunks: list[EmbeddedFragment]) -> int:
        store.inserted.extend(chunks)
        return len(chunks) if inserted_per_batch is None else inserted_per_batch

    store.init = AsyncMock()
    store.insert_chunks = AsyncMock(side_effect=_insert)
    store.similarity_search = AsyncMock(return_value=[])
    store.get_vector_count = AsyncMock(return_value=0)
    store.docs_count = AsyncMock(return_value=0)
    store.create_vector_index = AsyncMock()
    store.delete_keys = AsyncMock(return_value=True)
    store.reset = AsyncMock()
    store.get_provider_name.return_value = "recording"
    return store


def _make_app(**overrides: Any) -> RAGApplication:
    kwargs: dict[str, Any] = {
        "model": StubModel(),
        "vector_store": MemoryVectorStore(),
        "embedding_provider": MockEmbeddingProvider(),
    }
    kwargs.update(overrides)
    return RAGApplication(**kwargs)


async def _ready_app(**overrides: Any) -> RAGApplication:
    app = _make_app(**overrides)
    await app.init()
    return app


# ======================================================================
# Construction
# ======================================================================


class TestConstruction:
    def test_missing_model_raises(self) -> None:
        with pytest.raises(ConfigurationError, match="Model not set"):
            RAGApplication(model=None, vector_store=MemoryVectorStore())

    def test_missing_vector_store_raises(self) -> None:
        with pytest.raises(ConfigurationError, match="Vector store not set"):
            RAGApplication(model=StubModel(), vector_store=None)

    def test_non_positive_batch_size_raises(self) -> None:
        with pytest.raises(ConfigurationError):
            _make_app(insert_batch_size=0)

    def test_non_positive_result_count_raises(self) -> None:
        with pytest.raises(ConfigurationError):
            _make_app(search_result_count=0)

    def test_defaults_to_fastembed_provider(self) -> None:
        app = RAGApplication(model=StubModel(), vector_store=MemoryVectorStore())
        assert isinstance(app._embedding, FastEmbedEmbeddingProvider)

    def test_default_temperature_applied_to_model(self) -> None:
        model = StubModel()
        _make_app(model=model, temperature=0.7)
        assert model.temperature == 0.7

    def test_model_temperature_not_overridden(self) -> None:
        model = StubModel(temperature=0.2)
        _make_app(model=model, temperature=0.7)
        assert model.temperature == 0.2


# ======================================================================
# Initialization
# ======================================================================


class TestInit:
    @pytest.mark.asyncio
    async def test_init_wires_collaborators(self) -> None:
        model = StubModel()
        store = _recording_store()
        cache = MagicMock(spec=MemoryCacheProvider)
        cache.init = AsyncMock()

        app = _make_app(model=model, vector_store=store, cache=cache)
        await app.init()

        assert model.init_calls == 1
        store.init.assert_awaited_once_with(dimensions=16)
        cache.init.assert_awaited_once()
        assert app.initialized is True
        assert app.dimensions == 16

    @pytest.mark.asyncio
    async def test_second_init_raises(self) -> None:
        app = await _ready_app()
        with pytest.raises(PipelineError):
            await app.init()

    @pytest.mark.asyncio
    async def test_add_loader_before_init_raises(self) -> None:
        app = _make_app()
        with pytest.raises(PipelineError):
            await app.add_loader(ListLoader("a", ["x"]))

    @pytest.mark.asyncio
    async def test_query_before_init_raises(self) -> None:
        app = _make_app()
        with pytest.raises(PipelineError):
            await app.query("anything")
        with pytest.raises(PipelineError):
            await app.get_context("anything")

    @pytest.mark.asyncio
    async def test_configured_loaders_deduplicated_last_wins(self) -> None:
        first = ListLoader("a", ["one", "two"])
        other = ListLoader("b", ["three"])
        last = ListLoader("a", ["four", "five", "six"])

        app = await _ready_app(loaders=[first, other, last])

        tracked = app.get_loaders()
        assert [loader.get_unique_id() for loader in tracked] == ["a", "b"]
        assert tracked[0] is last
        assert first.init_calls == 0
        assert await app.get_embeddings_count() == 4


# ======================================================================
# Ingestion
# ======================================================================


class TestAddLoader:
    @pytest.mark.asyncio
    async def test_assigns_sequential_ids_and_loader_metadata(self) -> None:
        store = _recording_store()
        app = await _ready_app(vector_store=store)

        result = await app.add_loader(ListLoader("L", ["a", "b", "c"], source="doc.txt"))

        assert result.unique_id == "L"
        assert result.entries_added == 3
        assert [c.fragment_id for c in store.inserted] == ["L_0", "L_1", "L_2"]
        for chunk in store.inserted:
            assert chunk.metadata["unique_loader_id"] == "L"
            assert chunk.metadata["source"] == "doc.txt"
            assert len(chunk.vector) == 16

    @pytest.mark.asyncio
    async def test_batches_embedding_calls(self) -> None:
        embedding = MockEmbeddingProvider()
        store = _recording_store()
        app = await _ready_app(vector_store=store, embedding_provider=embedding, insert_batch_size=2)

        await app.add_loader(ListLoader("L", ["a", "b", "c", "d", "e"]))

        assert [len(call) for call in embedding.document_calls] == [2, 2, 1]
        assert store.insert_chunks.await_count == 3

    @pytest.mark.asyncio
    async def test_exact_multiple_has_no_empty_batch(self) -> None:
        embedding = MockEmbeddingProvider()
        app = await _ready_app(embedding_provider=embedding, insert_batch_size=2)

        await app.add_loader(ListLoader("L", ["a", "b", "c", "d"]))

        assert [len(call) for call in embedding.document_calls] == [2, 2]

    @pytest.mark.asyncio
    async def test_batch_size_does_not_change_stored_content(self) -> None:
        texts = [f"fragment {i}" for i in range(7)]
        small = _recording_store()
        large = _recording_store()
        await (await _ready_app(vector_store=small, insert_batch_size=3)).add_loader(ListLoader("L", texts))
        await (await _ready_app(vector_store=large, insert_batch_size=500)).add_loader(ListLoader("L", texts))

        assert [(c.fragment_id, c.page_content) for c in small.inserted] == [
            (c.fragment_id, c.page_content) for c in large.inserted
        ]

    @pytest.mark.asyncio
    async def test_entries_added_is_store_insert_count(self) -> None:
        store = _recording_store(inserted_per_batch=1)
        app = await _ready_app(vector_store=store, insert_batch_size=2)

        result = await app.add_loader(ListLoader("L", ["a", "b", "c", "d", "e"]))

        assert result.entries_added == 3

    @pytest.mark.asyncio
    async def test_cache_records_formatted_count(self) -> None:
        cache = MemoryCacheProvider()
        store = _recording_store(inserted_per_batch=0)
        app = await _ready_app(vector_store=store, cache=cache)

        await app.add_loader(ListLoader("L", ["a", "b", "c", "d", "e"]))

        record = await cache.get_loader("L")
        assert record is not None
        assert record.chunk_count == 5

    @pytest.mark.asyncio
    async def test_empty_loader(self) -> None:
        embedding = MockEmbeddingProvider()
        cache = MemoryCacheProvider()
        app = await _ready_app(embedding_provider=embedding, cache=cache)

        result = await app.add_loader(ListLoader("empty", []))

        assert result.entries_added == 0
        assert embedding.document_calls == []
        record = await cache.get_loader("empty")
        assert record is not None
        assert record.chunk_count == 0

    @pytest.mark.asyncio
    async def test_blank_fragments_are_skipped(self) -> None:
        store = _recording_store()
        app = await _ready_app(vector_store=store)

        await app.add_loader(ListLoader("L", ["a", "   \n  ", "b"]))

        assert [c.fragment_id for c in store.inserted] == ["L_0", "L_1"]
        assert [c.page_content for c in store.inserted] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_reingestion_replaces_previous_vectors(self) -> None:
        cache = MemoryCacheProvider()
        app = await _ready_app(cache=cache)
        await app.add_loader(ListLoader("other", ["x", "y"]))

        loader = ListLoader("L", ["a", "b", "c", "d", "e"])
        await app.add_loader(loader)
        assert await app.get_embeddings_count() == 7

        loader.texts = ["p", "q", "r"]
        await app.add_loader(loader)

        assert await app.get_embeddings_count() == 7 - 5 + 3
        record = await cache.get_loader("L")
        assert record is not None
        assert record.chunk_count == 3

    @pytest.mark.asyncio
    async def test_reingestion_after_other_loaders_still_replaces(self) -> None:
        app = await _ready_app(cache=MemoryCacheProvider(max_size=2))
        await app.add_loader(ListLoader("A", ["a0", "a1", "a2"]))
        await app.add_loader(ListLoader("B", ["b0"]))

        await app.add_loader(ListLoader("A", ["new a0"]))

        assert await app.get_embeddings_count() == 2

    @pytest.mark.asyncio
    async def test_full_cache_refuses_new_loader_without_losing_records(self) -> None:
        cache = MemoryCacheProvider(max_size=1)
        app = await _ready_app(cache=cache)
        await app.add_loader(ListLoader("A", ["a0", "a1", "a2"]))

        with pytest.raises(RAGError, match="full"):
            await app.add_loader(ListLoader("B", ["b0"]))

        assert await cache.has_loader("A") is True
        await app.add_loader(ListLoader("A", ["new a0"]))
        assert await app.get_embeddings_count() == 2

    @pytest.mark.asyncio
    async def test_reingestion_of_empty_run_skips_delete(self) -> None:
        store = _recording_store()
        cache = MemoryCacheProvider()
        app = await _ready_app(vector_store=store, cache=cache)

        await app.add_loader(ListLoader("L", []))
        await app.add_loader(ListLoader("L", ["a"]))

        store.delete_keys.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_cache_never_deletes(self) -> None:
        store = _recording_store()
        app = await _ready_app(vector_store=store)

        await app.add_loader(ListLoader("L", ["a"]))
        await app.add_loader(ListLoader("L", ["a"]))

        store.delete_keys.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_mid_stream_failure_keeps_earlier_batches(self) -> None:
        cache = MemoryCacheProvider()
        app = await _ready_app(cache=cache, insert_batch_size=2)

        with pytest.raises(RuntimeError, match="source failed"):
            await app.add_loader(ListLoader("L", ["a", "b", "c", "d"], fail_after=3))

        assert await app.get_embeddings_count() == 2
        assert await cache.has_loader("L") is False
        assert app.get_loaders() == []

    @pytest.mark.asyncio
    async def test_replaces_tracked_loader_with_same_id(self) -> None:
        app = await _ready_app()
        first = ListLoader("L", ["a"])
        second = ListLoader("L", ["b"])

        await app.add_loader(first)
        await app.add_loader(second)

        assert app.get_loaders() == [second]

    @pytest.mark.asyncio
    async def test_dimension_mismatch_raises(self) -> None:
        class ShortVectors(MockEmbeddingProvider):
            async def embed_documents(self, texts: list[str]) -> list[list[float]]:
                return [[0.1] * 8 for _ in texts]

        store = _recording_store()
        app = await _ready_app(vector_store=store, embedding_provider=ShortVectors())

        with pytest.raises(RAGError, match="expected 16"):
            await app.add_loader(ListLoader("L", ["a", "b"]))

        store.insert_chunks.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_vector_count_mismatch_raises(self) -> None:
        class DropsOne(MockEmbeddingProvider):
            async def embed_documents(self, texts: list[str]) -> list[list[float]]:
                vectors = await super().embed_documents(texts)
                return vectors[:-1]

        app = await _ready_app(embedding_provider=DropsOne())

        with pytest.raises(RAGError):
            await app.add_loader(ListLoader("L", ["a", "b"]))


# ======================================================================
# Incremental updates
# ======================================================================


class TestIncrementalUpdates:
    @pytest.mark.asyncio
    async def test_incremental_fragments_continue_numbering(self) -> None:
        store = _recording_store()
        cache = MemoryCacheProvider()
        app = await _ready_app(vector_store=store, cache=cache)
        loader = ListLoader("feed", ["a", "b"], incremental=True)
        await app.add_loader(loader)

        tasks = await loader.load_incremental_chunks(
            [ContentFragment(page_content="c"), ContentFragment(page_content="d")]
        )
        await asyncio.gather(*tasks)

        assert [c.fragment_id for c in store.inserted] == [
            "feed_0",
            "feed_1",
            "feed_2",
            "feed_3",
        ]
        record = await cache.get_loader("feed")
        assert record is not None
        assert record.chunk_count == 2

    @pytest.mark.asyncio
    async def test_non_incremental_loader_is_not_subscribed(self) -> None:
        app = await _ready_app()
        loader = ListLoader("static", ["a"])
        await app.add_loader(loader)

        tasks = await loader.load_incremental_chunks([ContentFragment(page_content="b")])

        assert tasks == []
        assert await app.get_embeddings_count() == 1

    @pytest.mark.asyncio
    async def test_readding_loader_subscribes_once(self) -> None:
        app = await _ready_app()
        loader = ListLoader("feed", ["a"], incremental=True)
        await app.add_loader(loader)
        await app.add_loader(loader)

        tasks = await loader.load_incremental_chunks([ContentFragment(page_content="b")])
        await asyncio.gather(*tasks)

        assert len(tasks) == 1
        assert await app.get_embeddings_count() == 2

    @pytest.mark.asyncio
    async def test_overlapping_notifications_are_not_deduplicated(self) -> None:
        app = await _ready_app()
        loader = ListLoader("feed", [], incremental=True)
        await app.add_loader(loader)

        first = await loader.load_incremental_chunks([ContentFragment(page_content="same")])
        second = await loader.load_incremental_chunks([ContentFragment(page_content="same")])
        await asyncio.gather(*first, *second)

        assert await app.get_embeddings_count() == 2

    @pytest.mark.asyncio
    async def test_deleted_loader_ignores_notifications(self) -> None:
        app = await _ready_app()
        loader = ListLoader("feed", ["a"], incremental=True)
        await app.add_loader(loader)
        await app.delete_loader("feed", are_you_sure=True)

        tasks = await loader.load_incremental_chunks([ContentFragment(page_content="b")])
        await asyncio.gather(*tasks)

        assert tasks == []
        assert await app.get_embeddings_count() == 0

    @pytest.mark.asyncio
    async def test_replaced_loader_instance_is_unsubscribed(self) -> None:
        app = await _ready_app()
        old = ListLoader("feed", ["a"], incremental=True)
        new = ListLoader("feed", ["a"], incremental=True)
        await app.add_loader(old)
        await app.add_loader(new)

        assert await old.load_incremental_chunks([ContentFragment(page_content="x")]) == []
        tasks = await new.load_incremental_chunks([ContentFragment(page_content="y")])
        await asyncio.gather(*tasks)

        assert len(tasks) == 1
        assert app.get_loaders() == [new]

    @pytest.mark.asyncio
    async def test_readding_with_cache_keeps_single_subscription(self) -> None:
        app = await _ready_app(cache=MemoryCacheProvider())
        loader = ListLoader("feed", ["a"], incremental=True)
        await app.add_loader(loader)
        await app.add_loader(loader)

        tasks = await loader.load_incremental_chunks([ContentFragment(page_content="b")])
        await asyncio.gather(*tasks)

        assert len(tasks) == 1
        assert await app.get_embeddings_count() == 2

    @pytest.mark.asyncio
    async def test_handler_failure_surfaces_on_task(self) -> None:
        class FailsLater(MockEmbeddingProvider):
            fail = False

            async def embed_documents(self, texts: list[str]) -> list[list[float]]:
                if self.fail:
                    raise RAGError(message="embedding backend down", provider_name="mock")
                return await super().embed_documents(texts)

        embedding = FailsLater()
        app = await _ready_app(embedding_provider=embedding)
        loader = ListLoader("feed", ["a"], incremental=True)
        await app.add_loader(loader)

        embedding.fail = True
        tasks = await loader.load_incremental_chunks([ContentFragment(page_content="b")])

        with pytest.raises(RAGError, match="embedding backend down"):
            await tasks[0]


# ======================================================================
# Deletion
# ======================================================================


class TestDeletion:
    @pytest.mark.asyncio
    async def test_delete_loader_requires_confirmation(self) -> None:
        store = _recording_store()
        app = await _ready_app(vector_store=store)

        assert await app.delete_loader("L") is False
        store.delete_keys.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_delete_loader_confirmed(self) -> None:
        cache = MemoryCacheProvider()
        app = await _ready_app(cache=cache)
        await app.add_loader(ListLoader("keep", ["k1"]))
        await app.add_loader(ListLoader("drop", ["d1", "d2"]))

        assert await app.delete_loader("drop", are_you_sure=True) is True

        assert await app.get_embeddings_count() == 1
        assert await cache.has_loader("drop") is False
        assert await cache.has_loader("keep") is True
        assert [x.get_unique_id() for x in app.get_loaders()] == ["keep"]

    @pytest.mark.asyncio
    async def test_failed_store_delete_keeps_cache_record(self) -> None:
        store = _recording_store()
        store.delete_keys = AsyncMock(return_value=False)
        cache = MemoryCacheProvider()
        app = await _ready_app(vector_store=store, cache=cache)
        await app.add_loader(ListLoader("L", ["a"]))

        assert await app.delete_loader("L", are_you_sure=True) is False
        assert await cache.has_loader("L") is True

    @pytest.mark.asyncio
    async def test_delete_all_requires_confirmation(self) -> None:
        store = _recording_store()
        app = await _ready_app(vector_store=store)

        assert await app.delete_all_embeddings() is False
        store.reset.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unconfirmed_deletes_leave_store_and_cache_untouched(self) -> None:
        cache = MemoryCacheProvider()
        app = await _ready_app(cache=cache)
        await app.add_loader(ListLoader("L", ["a", "b", "c"]))

        assert await app.delete_loader("L", are_you_sure=False) is False
        assert await app.delete_all_embeddings(are_you_sure=False) is False

        assert await app.get_embeddings_count() == 3
        assert await cache.has_loader("L") is True
        record = await cache.get_loader("L")
        assert record is not None
        assert record.chunk_count == 3
        assert [x.get_unique_id() for x in app.get_loaders()] == ["L"]

    @pytest.mark.asyncio
    async def test_add_two_loaders_then_delete_one(self) -> None:
        app = await _ready_app()
        await app.add_loader(ListLoader("id1", ["one", "two", "three"]))
        assert await app.get_embeddings_count() == 3

        await app.add_loader(ListLoader("id2", ["four", "five"]))
        assert await app.get_embeddings_count() == 5

        assert await app.delete_loader("id2", are_you_sure=True) is True
        assert await app.get_embeddings_count() == 3

    @pytest.mark.asyncio
    async def test_delete_all_keeps_cache_records(self) -> None:
        cache = MemoryCacheProvider()
        app = await _ready_app(cache=cache)
        await app.add_loader(ListLoader("L", ["a", "b"]))

        assert await app.delete_all_embeddings(are_you_sure=True) is True

        assert await app.get_embeddings_count() == 0
        assert await cache.has_loader("L") is True


# ======================================================================
# Retrieval
# ======================================================================


class TestRetrieval:
    @pytest.mark.asyncio
    async def test_overfetches_by_margin(self) -> None:
        store = _recording_store()
        app = await _ready_app(vector_store=store, search_result_count=3)

        await app.get_embeddings("query")

        _, k = store.similarity_search.await_args.args
        assert k == 3 + OVERFETCH_MARGIN

    @pytest.mark.asyncio
    async def test_cut_off_sort_and_top_k(self) -> None:
        store = _recording_store()
        store.similarity_search = AsyncMock(
            return_value=[
                make_fragment("low", 0.4),
                make_fragment("best", 0.9),
                make_fragment("lowest", 0.3),
                make_fragment("good", 0.6),
            ]
        )
        app = await _ready_app(
            vector_store=store, search_result_count=2, embedding_relevance_cut_off=0.5
        )

        results = await app.get_embeddings("query")

        assert [r.score for r in results] == [0.9, 0.6]
        assert [r.page_content for r in results] == ["best", "good"]

    @pytest.mark.asyncio
    async def test_score_equal_to_cut_off_is_dropped(self) -> None:
        store = _recording_store()
        store.similarity_search = AsyncMock(
            return_value=[make_fragment("edge", 0.5), make_fragment("above", 0.7)]
        )
        app = await _ready_app(vector_store=store, embedding_relevance_cut_off=0.5)

        results = await app.get_embeddings("query")

        assert [r.page_content for r in results] == ["above"]

    @pytest.mark.asyncio
    async def test_reranker_decides_order_and_inclusion(self) -> None:
        store = _recording_store()
        store.similarity_search = AsyncMock(
            return_value=[make_fragment("a", 0.9), make_fragment("b", 0.8), make_fragment("c", 0.7)]
        )
        reranker = MagicMock(spec=IReranker)
        reranker.rerank_documents = AsyncMock(
            return_value=[make_fragment("c", 0.95), make_fragment("a", 0.6), make_fragment("b", 0.1)]
        )
        app = await _ready_app(
            vector_store=store, reranker=reranker, embedding_relevance_cut_off=0.2
        )

        results = await app.get_context("  which\n one? ")

        reranker.rerank_documents.assert_awaited_once()
        assert reranker.rerank_documents.await_args.args[0] == "which one?"
        assert [r.page_content for r in results] == ["c", "a"]

    @pytest.mark.asyncio
    async def test_get_context_cleans_query(self) -> None:
        embedding = MockEmbeddingProvider()
        app = await _ready_app(embedding_provider=embedding)

        await app.get_context("  what\n  is   this?  ")

        assert embedding.query_calls == ["what is this?"]

    @pytest.mark.asyncio
    async def test_get_context_deduplicates_first_wins(self) -> None:
        store = _recording_store()
        store.similarity_search = AsyncMock(
            return_value=[
                make_fragment("same", 0.9, source="s1"),
                make_fragment("same", 0.8, source="s2"),
                make_fragment("other", 0.7, source="s3"),
            ]
        )
        app = await _ready_app(vector_store=store)

        context = await app.get_context("query")

        assert [c.page_content for c in context] == ["same", "other"]
        assert context[0].score == 0.9
        assert context[0].source == "s1"

    @pytest.mark.asyncio
    async def test_query_returns_answer_and_distinct_sources(self) -> None:
        model = StubModel(answer="the answer")
        store = _recording_store()
        store.similarity_search = AsyncMock(
            return_value=[
                make_fragment("one", 0.9, source="b.txt"),
                make_fragment("two", 0.8, source="a.txt"),
                make_fragment("three", 0.7, source="b.txt"),
                make_fragment("four", 0.6),
            ]
        )
        app = await _ready_app(
            model=model, vector_store=store, query_template="Answer   briefly.\n# Be kind"
        )

        result = await app.query("What is it?", conversation_id="c1")

        assert result.result == "the answer"
        assert result.sources == ["b.txt", "a.txt"]
        call = model.calls[0]
        assert call["system"] == "Answer briefly. Be kind"
        assert call["user_query"] == "What is it?"
        assert [c.page_content for c in call["context"]] == ["one", "two", "three", "four"]

    @pytest.mark.asyncio
    async def test_repeated_query_on_unchanged_index_is_stable(self) -> None:
        app = await _ready_app(embedding_relevance_cut_off=-1.0)
        await app.add_loader(ListLoader("a", ["alpha facts", "more alpha"], source="a.txt"))
        await app.add_loader(ListLoader("b", ["beta facts"], source="b.txt"))

        first = await app.query("tell me about alpha")
        second = await app.query("tell me about alpha")

        assert first.sources
        assert second.sources == first.sources
        assert sorted(first.sources) == ["a.txt", "b.txt"]

    @pytest.mark.asyncio
    async def test_query_on_empty_store(self) -> None:
        model = StubModel()
        app = await _ready_app(model=model)

        result = await app.query("anything")

        assert result.sources == []
        assert model.calls[0]["context"] == []

    @pytest.mark.asyncio
    async def test_conversation_history_carries_between_queries(self) -> None:
        model = StubModel()
        app = await _ready_app(model=model)

        await app.query("first", conversation_id="chat")
        await app.query("second", conversation_id="chat")
        await app.query("elsewhere", conversation_id="other")

        assert [e.content for e in model.calls[1]["past"]] == ["first", "stub answer"]
        assert model.calls[2]["past"] == []


# ======================================================================
# Pass-through reads
# ======================================================================


class TestPassThroughs:
    @pytest.mark.asyncio
    async def test_counts_and_index_delegate_to_store(self) -> None:
        store = _recording_store()
        store.get_vector_count = AsyncMock(return_value=42)
        store.docs_count = AsyncMock(return_value=40)
        app = await _ready_app(vector_store=store)

        assert await app.get_embeddings_count() == 42
        assert await app.docs_count() == 40
        await app.create_vector_index()
        store.create_vector_index.assert_awaited_once_with(16)
