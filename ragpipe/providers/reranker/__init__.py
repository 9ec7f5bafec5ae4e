"""Second-stage rerankers."""

from ragpipe.providers.reranker.cross_encoder_reranker import CrossEncoderReranker

__all__ = ["CrossEncoderReranker"]
