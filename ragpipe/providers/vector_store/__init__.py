"""Vector store providers.

ChromaDBProvider persists to a local directory; MemoryVectorStore keeps
everything in process and is mostly useful for tests and experiments.
"""

from ragpipe.providers.vector_store.memory_vector_store import MemoryVectorStore

__all__ = ["MemoryVectorStore"]
