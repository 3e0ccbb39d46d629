# core/embeddings_client.py
import logging
from typing import List, Optional, Protocol, Sequence
import httpx
import numpy as np
from pydantic import ValidationError
from core.entities import ProviderConfig
from model.provider import EmbeddingResponse
from util.errors import ProviderError
from util.timing import timed

logger = logging.getLogger(__name__)


class Embedder(Protocol):
    """
    Anything that turns texts into fixed-length float32 vectors, order-preserving.
    """

    @property
    def model_id(self) -> str: ...

    async def embed(self, texts: Sequence[str]) -> List[np.ndarray]: ...


class OpenAIEmbeddings:
    """
    POST {base_url}/embeddings with {model, input}. Non-2xx or an undecodable
    body raises ProviderError carrying the provider status and body.
    """

    def __init__(
        self,
        config: ProviderConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._config = config
        self._url = config.base_url.rstrip("/") + "/embeddings"
        self._transport = transport

    @property
    def model_id(self) -> str:
        return self._config.embedding_model

    async def embed(self, texts: Sequence[str]) -> List[np.ndarray]:
        if not texts:
            return []
        if not self._config.api_key:
            raise ProviderError("Missing API key for embedding generation.")

        headers = {
            "Authorization": f"Bearer {self._config.api_key}",
            "content-type": "application/json",
        }
        payload = {"model": self._config.embedding_model, "input": list(texts)}
        try:
            with timed(logger, "embed.remote", n=len(texts), model=self.model_id):
                async with httpx.AsyncClient(
                    timeout=self._config.timeout_seconds, transport=self._transport
                ) as client:
                    res = await client.post(self._url, headers=headers, json=payload)
        except httpx.HTTPError as e:
            logger.error("embed.request_error err=%s", type(e).__name__)
            raise ProviderError(f"Embedding request failed: {type(e).__name__}") from e

        if not res.is_success:
            logger.error("embed.bad_status status=%d", res.status_code)
            raise ProviderError("Embedding provider error", res.status_code, res.text)

        try:
            decoded = EmbeddingResponse.model_validate_json(res.content)
        except ValidationError as e:
            raise ProviderError("Embedding provider returned an undecodable body") from e

        if len(decoded.data) != len(texts):
            raise ProviderError(
                f"Embedding provider returned {len(decoded.data)} vectors for {len(texts)} inputs"
            )
        rows = decoded.data
        if all(r.index is not None for r in rows):
            rows = sorted(rows, key=lambda r: r.index)
        vectors = [np.asarray(r.embedding, dtype=np.float32) for r in rows]
        logger.info("embed.remote.ok n=%d d=%d", len(vectors), vectors[0].shape[0])
        return vectors


def build_embedder(
    provider: str, config: ProviderConfig, local_model: str, batch_size: int = 64
) -> Embedder:
    if provider == "local":
        # sentence-transformers pulls in torch; only import it when asked for.
        from core.local_embeddings import LocalEmbeddings

        return LocalEmbeddings(local_model, batch_size=batch_size)
    if provider == "openai":
        return OpenAIEmbeddings(config)
    raise ValueError(f"Unknown embedding provider: {provider}")
