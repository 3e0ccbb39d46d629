# core/retriever.py
import logging
from typing import List, Optional
import numpy as np
from core.embeddings_client import Embedder
from core.entities import RetrievalScore
from repository.document_repository import DocumentRepository
from util.timing import timed

logger = logging.getLogger(__name__)

# Score for vectors of different lengths; below any real cosine value.
IMPOSSIBLE_SCORE = float("-inf")


def cosine(a: np.ndarray, b: np.ndarray) -> float:
    """
    Dot product over the product of magnitudes. 0 when either vector is all
    zeros, IMPOSSIBLE_SCORE when dimensions differ.
    """
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    if a.shape != b.shape:
        return IMPOSSIBLE_SCORE
    denom = float(np.linalg.norm(a) * np.linalg.norm(b))
    if denom == 0.0:
        return 0.0
    return float(np.dot(a, b) / denom)


class Retriever:
    """
    Brute-force ranking of one document's stored chunks against a query.
    """

    def __init__(
        self,
        repository: DocumentRepository,
        embedder: Embedder,
        top_k: int = 8,
        default_query: str = "RESUME",
    ) -> None:
        self._repo = repository
        self._embedder = embedder
        self._top_k = max(1, top_k)
        self._default_query = default_query

    async def select(self, url: str, query: Optional[str] = None) -> List[RetrievalScore]:
        """
        Top-K chunks by similarity, returned in document order.
        """
        q = (query or "").strip() or self._default_query
        stored = await self._repo.get_chunks(url)
        if not stored:
            logger.warning("retrieve.empty url=%s", url)
            return []

        with timed(logger, "retrieve", url=url, candidates=len(stored), k=self._top_k):
            [q_vec] = await self._embedder.embed([q])
            scored = [
                RetrievalScore(index=c.index, content=c.content, score=cosine(q_vec, c.embedding))
                for c in stored
            ]
            scored.sort(key=lambda s: s.score, reverse=True)
            top = sorted(scored[: self._top_k], key=lambda s: s.index)

        logger.info(
            "retrieve.top url=%s kept=%d best=%.3f",
            url,
            len(top),
            scored[0].score,
        )
        return top
