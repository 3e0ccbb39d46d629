import numpy as np
import pytest

from repository.document_repository import DocumentRepository, bytes_to_vector, vector_to_bytes
from repository.namespaces import CHUNKS, DOCUMENTS


def test_vector_bytes_are_little_endian_float32():
    vec = np.asarray([1.0, -2.5, 0.125], dtype=np.float64)
    raw = vector_to_bytes(vec)
    assert len(raw) == 12
    assert raw[:4] == b"\x00\x00\x80\x3f"
    assert bytes_to_vector(raw).tolist() == [1.0, -2.5, 0.125]


@pytest.mark.asyncio
async def test_document_round_trip(repository: DocumentRepository, fake_redis):
    doc = await repository.create_document("https://example.com/", "Title")
    doc.content_hash = "abc"
    doc.embedding_model = "letters-v1"
    doc.chunk_count = 2
    await repository.save_document(doc)

    loaded = await repository.get_document("https://example.com/")
    assert loaded == doc
    assert len(fake_redis.keys_with_prefix(DOCUMENTS)) == 1
    assert await repository.get_document("https://other.example/") is None


@pytest.mark.asyncio
async def test_chunks_upsert_read_and_delete(repository: DocumentRepository, fake_redis):
    doc = await repository.create_document("https://example.com/a")
    for i in range(3):
        await repository.upsert_chunk(doc.id, i, f"chunk {i}", np.full(4, i, dtype=np.float32), f"h{i}")
    doc.chunk_count = 3
    await repository.save_document(doc)

    chunks = await repository.get_chunks("https://example.com/a")
    assert [c.index for c in chunks] == [0, 1, 2]
    assert chunks[2].content == "chunk 2"
    assert chunks[2].dim == 4
    assert chunks[2].embedding.dtype == np.float32
    assert chunks[2].embedding.tolist() == [2.0, 2.0, 2.0, 2.0]

    assert await repository.get_chunk_hashes(doc.id, 4) == ["h0", "h1", "h2", None]

    assert await repository.delete_chunks(doc.id, 1, 3) == 2
    assert await repository.delete_chunks(doc.id, 3, 3) == 0
    assert len(fake_redis.keys_with_prefix(CHUNKS)) == 1
