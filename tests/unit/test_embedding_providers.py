"""Unit tests for embedding provider adapters: OpenAI and fastembed."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import numpy as np
import pytest

from ragpipe.config.settings import Settings
from ragpipe.utils.errors import RAGError


# ======================================================================
# Shared helpers
# ======================================================================

def _settings(**overrides) -> Settings:
    defaults = {
        "openai_api_key": "sk-test",
        "openai_base_url": "",
        "openai_embedding_model": "",
    }
    defaults.update(overrides)
    return Settings(**defaults)


def _embedding_response(vectors: list[list[float]]) -> MagicMock:
    response = MagicMock()
    response.data = [MagicMock(embedding=v) for v in vectors]
    response.usage = MagicMock(total_tokens=10)
    return response


# ======================================================================
# OpenAI Embedding Provider
# ======================================================================


class TestOpenAIEmbeddingProvider:
    def test_default_model_dimensions(self) -> None:
        from ragpipe.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

        provider = OpenAIEmbeddingProvider(_settings())
        assert provider.get_dimensions() == 1536
        assert provider.get_provider_name() == "openai_embedding"

    def test_compatible_endpoint_label_and_explicit_dimensions(self) -> None:
        from ragpipe.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

        provider = OpenAIEmbeddingProvider(
            _settings(openai_base_url="https://api.example.com/v1", openai_embedding_model="custom"),
            dimensions=256,
        )
        assert provider.get_dimensions() == 256
        assert provider.get_provider_name() == "openai-compatible_embedding"

    def test_is_available(self) -> None:
        from ragpipe.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

        assert OpenAIEmbeddingProvider(_settings()).is_available() is True
        assert OpenAIEmbeddingProvider(_settings(openai_api_key="")).is_available() is False

    @pytest.mark.asyncio
    async def test_embed_documents(self) -> None:
        from ragpipe.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(
            return_value=_embedding_response([[0.1, 0.2], [0.3, 0.4]])
        )

        with patch(
            "ragpipe.providers.embedding.openai_embedding_provider.openai.AsyncOpenAI",
            return_value=mock_client,
        ):
            provider = OpenAIEmbeddingProvider(_settings())
            result = await provider.embed_documents(["a", "b"])

        assert result == [[0.1, 0.2], [0.3, 0.4]]
        kwargs = mock_client.embeddings.create.await_args.kwargs
        assert kwargs["input"] == ["a", "b"]
        assert kwargs["model"] == "text-embedding-3-small"

    @pytest.mark.asyncio
    async def test_embed_query_and_empty_input(self) -> None:
        from ragpipe.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(return_value=_embedding_response([[0.5, 0.5]]))

        with patch(
            "ragpipe.providers.embedding.openai_embedding_provider.openai.AsyncOpenAI",
            return_value=mock_client,
        ):
            provider = OpenAIEmbeddingProvider(_settings())
            assert await provider.embed_query("q") == [0.5, 0.5]
            assert await provider.embed_documents([]) == []

        assert mock_client.embeddings.create.await_count == 1

    @pytest.mark.asyncio
    async def test_api_error_wrapped(self) -> None:
        import openai

        from ragpipe.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(
            side_effect=openai.APIError(message="quota exceeded", request=MagicMock(), body=None)
        )

        with patch(
            "ragpipe.providers.embedding.openai_embedding_provider.openai.AsyncOpenAI",
            return_value=mock_client,
        ):
            provider = OpenAIEmbeddingProvider(_settings())
            with pytest.raises(RAGError, match="quota exceeded"):
                await provider.embed_documents(["a"])


# ======================================================================
# fastembed Embedding Provider
# ======================================================================


class TestFastEmbedEmbeddingProvider:
    def _provider_with_model(self) -> tuple:
        from ragpipe.providers.embedding.fastembed_embedding_provider import (
            FastEmbedEmbeddingProvider,
        )

        provider = FastEmbedEmbeddingProvider()
        model = MagicMock()
        model.embed.side_effect = lambda batch: (np.full(384, 0.1) for _ in batch)
        model.query_embed.side_effect = lambda batch: (np.full(384, 0.2) for _ in batch)
        provider._model = model
        return provider, model

    def test_defaults(self) -> None:
        from ragpipe.providers.embedding.fastembed_embedding_provider import (
            FastEmbedEmbeddingProvider,
        )

        provider = FastEmbedEmbeddingProvider()
        assert provider.get_dimensions() == 384
        assert provider.get_provider_name() == "fastembed_bge-small-en-v1.5"

    @pytest.mark.asyncio
    async def test_embed_documents_batches(self) -> None:
        provider, model = self._provider_with_model()

        vectors = await provider.embed_documents([f"text {i}" for i in range(100)])

        assert len(vectors) == 100
        assert len(vectors[0]) == 384
        assert model.embed.call_count == 2

    @pytest.mark.asyncio
    async def test_embed_query_uses_query_embedding(self) -> None:
        provider, model = self._provider_with_model()

        vector = await provider.embed_query("question")

        model.query_embed.assert_called_once_with(["question"])
        assert vector[0] == pytest.approx(0.2)

    @pytest.mark.asyncio
    async def test_model_failure_wrapped(self) -> None:
        provider, model = self._provider_with_model()
        model.embed.side_effect = RuntimeError("onnx crashed")

        with pytest.raises(RAGError, match="onnx crashed"):
            await provider.embed_documents(["a"])
