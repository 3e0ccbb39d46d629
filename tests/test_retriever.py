import math

import numpy as np
import pytest

from core.embedding_index import EmbeddingIndex
from core.retriever import IMPOSSIBLE_SCORE, Retriever, cosine

URL = "https://example.com/doc"


def test_cosine_identities():
    a = np.asarray([1.0, 2.0, 3.0], dtype=np.float32)
    assert cosine(a, a) == pytest.approx(1.0)
    assert cosine(a, -a) == pytest.approx(-1.0)
    assert cosine(np.asarray([1.0, 0.0]), np.asarray([0.0, 1.0])) == pytest.approx(0.0)


def test_cosine_zero_vector_and_shape_mismatch():
    assert cosine(np.zeros(3), np.ones(3)) == 0.0
    assert cosine(np.ones(3), np.ones(4)) == IMPOSSIBLE_SCORE
    assert math.isinf(IMPOSSIBLE_SCORE) and IMPOSSIBLE_SCORE < 0


@pytest.mark.asyncio
async def test_unknown_url_selects_nothing(repository, embedder):
    retriever = Retriever(repository, embedder, top_k=3)
    assert await retriever.select("https://nowhere.example/") == []
    assert embedder.calls == []


@pytest.mark.asyncio
async def test_top_k_returned_in_document_order(repository, embedder):
    chunks = ["zzz zzz", "bridge bridge bridge", "qqq", "bridge repairs", "xyz"]
    await EmbeddingIndex(repository, embedder).index_document(URL, "Doc", chunks)
    embedder.calls.clear()

    retriever = Retriever(repository, embedder, top_k=2)
    top = await retriever.select(URL, "bridge")

    assert [s.index for s in top] == [1, 3]
    assert [s.content for s in top] == ["bridge bridge bridge", "bridge repairs"]
    assert embedder.calls == [["bridge"]]


@pytest.mark.asyncio
async def test_blank_query_uses_default(repository, embedder):
    await EmbeddingIndex(repository, embedder).index_document(URL, "Doc", ["one", "two"])
    embedder.calls.clear()

    top = await Retriever(repository, embedder, top_k=8, default_query="RESUME").select(URL, "   ")
    assert embedder.calls == [["RESUME"]]
    assert [s.index for s in top] == [0, 1]


@pytest.mark.asyncio
async def test_mismatched_dimension_ranks_last(repository, embedder):
    await EmbeddingIndex(repository, embedder).index_document(URL, "Doc", ["bridge", "road"])
    doc = await repository.get_document(URL)
    await repository.upsert_chunk(doc.id, 0, "bridge", np.ones(5, dtype=np.float32), "stale")

    top = await Retriever(repository, embedder, top_k=1).select(URL, "bridge")
    assert [s.index for s in top] == [1]
