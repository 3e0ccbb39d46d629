# core/local_embeddings.py
import asyncio
from functools import lru_cache
from typing import List, Sequence
import numpy as np
from sentence_transformers import SentenceTransformer
from util.timing import timed
import logging

logger = logging.getLogger(__name__)


@lru_cache(maxsize=2)
def _load_model(name: str) -> SentenceTransformer:
    """
    Lazy-load the sentence embedding model.

    Model is kept CPU-friendly; set LOCAL_EMBEDDING_MODEL for a larger one.
    """
    with timed(logger, "embed.model.load", model=name):
        model = SentenceTransformer(name, device="cpu")
    return model


class LocalEmbeddings:
    """
    In-process embedder; vectors are L2-normalized, so cosine equals dot product.
    """

    def __init__(self, model_name: str, batch_size: int = 64) -> None:
        self._name = model_name
        self._batch_size = batch_size

    @property
    def model_id(self) -> str:
        return f"local:{self._name}"

    def _encode(self, texts: List[str]) -> np.ndarray:
        model = _load_model(self._name)
        with timed(logger, "embed.encode", n=len(texts), batch=self._batch_size):
            vecs = model.encode(
                texts,
                batch_size=self._batch_size,
                convert_to_numpy=True,
                normalize_embeddings=True,
            )
        return vecs.astype(np.float32, copy=False)

    async def embed(self, texts: Sequence[str]) -> List[np.ndarray]:
        if not texts:
            return []
        # encode() is CPU-bound; keep the event loop free for other requests.
        emb = await asyncio.to_thread(self._encode, list(texts))
        logger.info("embed.local n=%d d=%d", emb.shape[0], emb.shape[1] if emb.size else 0)
        return [row for row in emb]
