# core/embedding_index.py
import asyncio
import logging
import weakref
from typing import List, Sequence
from core.embeddings_client import Embedder
from core.entities import IndexOutcome
from repository.document_repository import DocumentRepository
from util.text import CHUNK_SEPARATOR, content_hash
from util.timing import timed

logger = logging.getLogger(__name__)

# Same-URL indexing runs one at a time within this process.
_url_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()


def _lock_for(url: str) -> asyncio.Lock:
    lock = _url_locks.get(url)
    if lock is None:
        lock = asyncio.Lock()
        _url_locks[url] = lock
    return lock


def changed_indices(
    new_hashes: Sequence[str],
    old_hashes: Sequence[object],
    model_changed: bool,
) -> List[int]:
    """
    Positions whose chunk must be (re-)embedded: hash differs, no prior row,
    or every position when the embedding model changed.
    """
    if model_changed:
        return list(range(len(new_hashes)))
    out: List[int] = []
    for i, h in enumerate(new_hashes):
        prior = old_hashes[i] if i < len(old_hashes) else None
        if prior is None or prior != h:
            out.append(i)
    return out


class EmbeddingIndex:
    """
    Keeps one Document and its Chunks in sync with the latest chunk list,
    embedding only what changed since the previous visit.
    """

    def __init__(
        self, repository: DocumentRepository, embedder: Embedder, batch_size: int = 64
    ) -> None:
        self._repo = repository
        self._embedder = embedder
        self._batch_size = max(1, batch_size)

    async def index_document(
        self, url: str, title: str, chunks: Sequence[str]
    ) -> IndexOutcome:
        async with _lock_for(url):
            return await self._index(url, title, chunks)

    async def _index(self, url: str, title: str, chunks: Sequence[str]) -> IndexOutcome:
        model_id = self._embedder.model_id
        full_hash = content_hash(CHUNK_SEPARATOR.join(chunks))

        doc = await self._repo.get_document(url)
        if doc is None:
            doc = await self._repo.create_document(url, title)
            logger.info("index.document.created url=%s id=%s", url, doc.id)
        elif doc.content_hash == full_hash and doc.embedding_model == model_id:
            logger.info("index.cache_hit url=%s chunks=%d", url, doc.chunk_count)
            return IndexOutcome(document_id=doc.id, cache_hit=True)

        model_changed = bool(doc.embedding_model) and doc.embedding_model != model_id
        new_hashes = [content_hash(c) for c in chunks]
        old_hashes = await self._repo.get_chunk_hashes(doc.id, doc.chunk_count)
        todo = changed_indices(new_hashes, old_hashes, model_changed)

        deleted_from = None
        if len(chunks) < doc.chunk_count:
            await self._repo.delete_chunks(doc.id, len(chunks), doc.chunk_count)
            deleted_from = len(chunks)
            logger.info(
                "index.chunks.trimmed url=%s from=%d to=%d",
                url,
                doc.chunk_count,
                len(chunks),
            )

        with timed(logger, "index.embed", url=url, changed=len(todo), total=len(chunks)):
            for start in range(0, len(todo), self._batch_size):
                batch = todo[start : start + self._batch_size]
                vectors = await self._embedder.embed([chunks[i] for i in batch])
                for i, vec in zip(batch, vectors):
                    await self._repo.upsert_chunk(
                        doc.id, i, chunks[i], vec, new_hashes[i]
                    )

        doc.content_hash = full_hash
        doc.embedding_model = model_id
        doc.chunk_count = len(chunks)
        doc.title = title or doc.title
        await self._repo.save_document(doc)
        logger.info(
            "index.updated url=%s embedded=%d chunks=%d model_changed=%s",
            url,
            len(todo),
            len(chunks),
            model_changed,
        )
        return IndexOutcome(
            document_id=doc.id, cache_hit=False, embedded=todo, deleted_from=deleted_from
        )
