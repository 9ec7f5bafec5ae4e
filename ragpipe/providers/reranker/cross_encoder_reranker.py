"""Cross-encoder reranker using sentence-transformers.

Scores each (query, fragment) pair jointly with a cross-encoder, which is
slower than bi-encoder similarity but noticeably more precise for the
handful of candidates similarity search returns.  Raw logits are squashed
with a sigmoid so reranked scores stay on the 0..1 scale the relevance
cut-off is expressed in.

Requires the ``rerank`` extra (``sentence-transformers``, which pulls in
PyTorch).
"""

from __future__ import annotations

import asyncio

import numpy as np
import structlog

from ragpipe.interfaces.reranker import IReranker
from ragpipe.models.rag import RetrievedFragment
from ragpipe.utils.errors import RAGError

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_MODEL = "cross-encoder/ms-marco-MiniLM-L-6-v2"


class CrossEncoderReranker(IReranker):
    """Reranker backed by ``sentence_transformers.CrossEncoder``.

    The model is loaded on first use.
    """

    def __init__(self, model_name: str | None = None, batch_size: int = 16) -> None:
        self._model_name = model_name or DEFAULT_MODEL
        self._batch_size = batch_size
        self._model = None  # Lazy-loaded

    def _load_model(self) -> None:
        if self._model is not None:
            return
        try:
            from sentence_transformers import CrossEncoder

            logger.info("loading_cross_encoder", model=self._model_name)
            self._model = CrossEncoder(self._model_name)
        except Exception as exc:
            raise RAGError(
                message=f"Failed to load cross-encoder '{self._model_name}': {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    def _score_sync(self, query: str, documents: list[RetrievedFragment]) -> list[float]:
        self._load_model()
        pairs = [(query, doc.page_content) for doc in documents]
        logits = np.asarray(
            self._model.predict(pairs, batch_size=self._batch_size), dtype=np.float64
        )
        return (1.0 / (1.0 + np.exp(-logits))).tolist()

    async def rerank_documents(
        self, query: str, documents: list[RetrievedFragment]
    ) -> list[RetrievedFragment]:
        if not documents:
            return []
        try:
            scores = await asyncio.to_thread(self._score_sync, query, documents)
        except RAGError:
            raise
        except Exception as exc:
            raise RAGError(
                message=f"Cross-encoder rerank failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        reranked = [
            doc.model_copy(update={"score": float(score)})
            for doc, score in zip(documents, scores, strict=True)
        ]
        reranked.sort(key=lambda d: d.score, reverse=True)
        logger.debug(
            "rerank_complete",
            candidates=len(reranked),
            top_score=reranked[0].score,
        )
        return reranked

    def get_provider_name(self) -> str:
        return f"cross_encoder_{self._model_name.split('/')[-1]}"
