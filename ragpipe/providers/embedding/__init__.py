"""Embedding providers.

FastEmbedEmbeddingProvider runs locally (ONNX) and needs no credentials;
OpenAIEmbeddingProvider talks to OpenAI or any OpenAI-compatible endpoint.
"""

from ragpipe.providers.embedding.fastembed_embedding_provider import FastEmbedEmbeddingProvider
from ragpipe.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

__all__ = ["FastEmbedEmbeddingProvider", "OpenAIEmbeddingProvider"]
