"""Orchestration layer: the RAG application and its builder."""

from ragpipe.pipeline.builder import RAGApplicationBuilder
from ragpipe.pipeline.orchestrator import RAGApplication

__all__ = ["RAGApplication", "RAGApplicationBuilder"]
