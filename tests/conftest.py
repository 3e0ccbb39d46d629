import os

# config.settings exits the process when required variables are missing,
# so they must be in place before any project module is imported.
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("ALLOWED_ORIGIN", "http://localhost:3000")
os.environ.setdefault("RATE_LIMIT_TIMES", "100")
os.environ.setdefault("RATE_LIMIT_SECONDS", "60")
os.environ.setdefault("TRUST_PROXY", "false")

import string
from typing import Dict, List, Optional, Sequence, Union
from unittest.mock import AsyncMock

import numpy as np
import pytest

from core.entities import FetchResult, PipelineConfig
from model.provider import ChatMessage
from repository.document_repository import DocumentRepository
from util.enums import ContentType


def _b(v: Union[str, bytes, int, float]) -> bytes:
    if isinstance(v, bytes):
        return v
    return str(v).encode("utf-8")


class InMemoryRedis:
    """Dict-backed stand-in for the few redis.asyncio hash commands the repository uses."""

    def __init__(self) -> None:
        self.hashes: Dict[bytes, Dict[bytes, bytes]] = {}

    async def hset(self, key, mapping=None, **kwargs):
        h = self.hashes.setdefault(_b(key), {})
        added = 0
        for k, v in (mapping or {}).items():
            if _b(k) not in h:
                added += 1
            h[_b(k)] = _b(v)
        return added

    async def hgetall(self, key):
        return dict(self.hashes.get(_b(key), {}))

    async def hget(self, key, field):
        return self.hashes.get(_b(key), {}).get(_b(field))

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.hashes.pop(_b(key), None) is not None:
                removed += 1
        return removed

    def keys_with_prefix(self, prefix: str) -> List[bytes]:
        return [k for k in self.hashes if k.startswith(prefix.encode("utf-8"))]


class LetterEmbedder:
    """
    Deterministic embedder: letter frequencies a..z plus a bias term.
    Records every batch it is asked to embed.
    """

    def __init__(self, model_id: str = "letters-v1") -> None:
        self._model_id = model_id
        self.calls: List[List[str]] = []

    @property
    def model_id(self) -> str:
        return self._model_id

    async def embed(self, texts: Sequence[str]) -> List[np.ndarray]:
        self.calls.append(list(texts))
        out = []
        for t in texts:
            low = t.lower()
            vec = [float(low.count(c)) for c in string.ascii_lowercase] + [1.0]
            out.append(np.asarray(vec, dtype=np.float32))
        return out


class ScriptedCompletion:
    """Completion client double: canned `complete` replies and streamed fragments."""

    def __init__(
        self,
        replies: Optional[List[str]] = None,
        fragments: Optional[List[str]] = None,
        stream_error: Optional[Exception] = None,
    ) -> None:
        self.replies = list(replies or [])
        if fragments is None:
            fragments = ["## TL;DR\n", "- one\n", "- two\n", "- three"]
        self.fragments = list(fragments)
        self.stream_error = stream_error
        self.complete_calls: List[List[ChatMessage]] = []
        self.stream_calls: List[List[ChatMessage]] = []

    @property
    def model(self) -> str:
        return "scripted"

    async def complete(self, messages: Sequence[ChatMessage]) -> str:
        self.complete_calls.append(list(messages))
        if not self.replies:
            return "mini summary"
        return self.replies.pop(0)

    async def stream(self, messages: Sequence[ChatMessage]):
        self.stream_calls.append(list(messages))
        for f in self.fragments:
            yield f
        if self.stream_error is not None:
            raise self.stream_error

    @property
    def calls(self) -> int:
        return len(self.complete_calls) + len(self.stream_calls)


ARTICLE_PARAGRAPHS = [
    "The river project was approved by the regional council after a long debate about the cost "
    "of the new bridge and the impact on the local fishing community.",
    "Engineers said that the construction work is expected to start in the spring and that the "
    "main span will be built from recycled steel delivered by barge.",
    "Residents who live near the site will be offered temporary parking, and the council has "
    "promised to publish a monthly report on noise and traffic for the whole duration.",
]


def article_html(paragraphs: Sequence[str] = ARTICLE_PARAGRAPHS, title: str = "River bridge approved") -> str:
    body = "".join(f"<p>{p}</p>" for p in paragraphs)
    return (
        f"<html><head><title>{title}</title><script>var tracking = 1;</script></head>"
        f"<body><nav><a href='/'>Home</a><a href='/news'>News</a></nav>"
        f"<article>{body}</article>"
        f"<footer>Copyright notice and legal mentions</footer></body></html>"
    )


@pytest.fixture
def fake_redis() -> InMemoryRedis:
    return InMemoryRedis()


@pytest.fixture
def repository(fake_redis: InMemoryRedis) -> DocumentRepository:
    return DocumentRepository(client=fake_redis)


@pytest.fixture
def embedder() -> LetterEmbedder:
    return LetterEmbedder()


@pytest.fixture
def pipeline_config() -> PipelineConfig:
    return PipelineConfig()


@pytest.fixture
def html_fetcher():
    """Fetcher double returning the three-paragraph article."""
    fetcher = AsyncMock()
    fetcher.fetch = AsyncMock(
        return_value=FetchResult(
            content_type=ContentType.HTML, body=article_html(), title="River bridge approved"
        )
    )
    return fetcher
