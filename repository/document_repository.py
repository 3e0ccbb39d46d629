# repository/document_repository.py
import hashlib
from typing import Dict, List, Optional
from uuid import uuid4
import numpy as np
from redis.asyncio import Redis
from config.cache import get_redis
from core.entities import DocumentRecord, StoredChunk
from repository.namespaces import CHUNKS, DOCUMENTS

EMBEDDING_DTYPE = np.dtype("<f4")  # little-endian IEEE-754 float32


def vector_to_bytes(vec: np.ndarray) -> bytes:
    return np.asarray(vec, dtype=EMBEDDING_DTYPE).tobytes()


def bytes_to_vector(raw: bytes) -> np.ndarray:
    return np.frombuffer(raw, dtype=EMBEDDING_DTYPE)


def _s(h: Dict, key: str, default: str = "") -> str:
    v = h.get(key.encode("utf-8"), h.get(key))
    if v is None:
        return default
    return v.decode("utf-8") if isinstance(v, (bytes, bytearray)) else str(v)


class DocumentRepository:
    """
    Flow:
    - One Redis hash per indexed URL holds the Document metadata.
    - One Redis hash per (document id, index) holds a Chunk and its embedding blob.
    - Nothing here expires; deleting documents is left to operations.
    """

    def __init__(self, client: Optional[Redis] = None) -> None:
        self._injected = client

    async def _client(self) -> Redis:
        if self._injected is not None:
            return self._injected
        return await get_redis()

    @staticmethod
    def _doc_key(url: str) -> str:
        return f"{DOCUMENTS}:{hashlib.sha256(url.encode('utf-8')).hexdigest()}"

    @staticmethod
    def _chunk_key(document_id: str, index: int) -> str:
        return f"{CHUNKS}:{document_id}:{index}"

    # ---------------- Documents ----------------

    async def get_document(self, url: str) -> Optional[DocumentRecord]:
        r = await self._client()
        h = await r.hgetall(self._doc_key(url))
        if not h:
            return None
        return DocumentRecord(
            id=_s(h, "id"),
            url=_s(h, "url", url),
            title=_s(h, "title"),
            content_hash=_s(h, "content_hash"),
            embedding_model=_s(h, "embedding_model"),
            chunk_count=int(_s(h, "chunk_count", "0") or 0),
        )

    async def create_document(self, url: str, title: str = "") -> DocumentRecord:
        doc = DocumentRecord(id=str(uuid4()), url=url, title=title)
        await self.save_document(doc)
        return doc

    async def save_document(self, doc: DocumentRecord) -> None:
        r = await self._client()
        mapping = {
            "id": doc.id,
            "url": doc.url,
            "title": doc.title or "",
            "content_hash": doc.content_hash or "",
            "embedding_model": doc.embedding_model or "",
            "chunk_count": str(doc.chunk_count or 0),
        }
        await r.hset(self._doc_key(doc.url), mapping=mapping)

    # ---------------- Chunks ----------------

    async def get_chunk_hashes(self, document_id: str, count: int) -> List[Optional[str]]:
        """
        Stored hash per position 0..count-1; None where no row exists.
        """
        r = await self._client()
        out: List[Optional[str]] = []
        for i in range(count):
            v = await r.hget(self._chunk_key(document_id, i), "chunk_hash")
            if v is None:
                out.append(None)
            else:
                out.append(v.decode("utf-8") if isinstance(v, (bytes, bytearray)) else str(v))
        return out

    async def upsert_chunk(
        self,
        document_id: str,
        index: int,
        content: str,
        embedding: np.ndarray,
        chunk_hash: str,
    ) -> None:
        r = await self._client()
        await r.hset(
            self._chunk_key(document_id, index),
            mapping={
                "index": str(index),
                "content": content,
                "embedding": vector_to_bytes(embedding),
                "dim": str(int(np.asarray(embedding).shape[0])),
                "chunk_hash": chunk_hash,
            },
        )

    async def delete_chunks(self, document_id: str, start: int, stop: int) -> int:
        """
        Delete chunk rows with start <= index < stop.
        """
        if stop <= start:
            return 0
        r = await self._client()
        keys = [self._chunk_key(document_id, i) for i in range(start, stop)]
        return int(await r.delete(*keys))

    async def get_chunks(self, url: str) -> List[StoredChunk]:
        """
        All stored chunks of a URL, ordered by index.
        """
        doc = await self.get_document(url)
        if doc is None:
            return []
        r = await self._client()
        out: List[StoredChunk] = []
        for i in range(doc.chunk_count):
            h = await r.hgetall(self._chunk_key(doc.id, i))
            if not h:
                continue
            raw = h.get(b"embedding", h.get("embedding")) or b""
            vec = bytes_to_vector(raw)
            out.append(
                StoredChunk(
                    index=int(_s(h, "index", str(i))),
                    content=_s(h, "content"),
                    embedding=vec,
                    dim=int(_s(h, "dim", str(vec.shape[0])) or 0),
                    chunk_hash=_s(h, "chunk_hash"),
                )
            )
        return out
