import json

import httpx
import numpy as np
import pytest

from core.completion_client import CompletionClient, parse_stream_line
from core.embeddings_client import OpenAIEmbeddings, build_embedder
from core.entities import ProviderConfig
from model.provider import ChatMessage
from util.enums import ErrorCode
from util.errors import ProviderError

CONFIG = ProviderConfig(
    api_key="sk-test",
    base_url="https://llm.example/v1/",
    model="gpt-test",
    embedding_model="embed-test",
)
MESSAGES = [ChatMessage(role="user", content="hi")]


def sse(*payloads: str) -> bytes:
    return "".join(f"data: {p}\n\n" for p in payloads).encode("utf-8")


def chunk(text: str) -> str:
    return json.dumps({"choices": [{"delta": {"content": text}}]})


def test_parse_stream_line():
    assert parse_stream_line(f"data: {chunk('Hel')}") == "Hel"
    assert parse_stream_line("data: [DONE]") is None
    assert parse_stream_line(": keep-alive") == ""
    assert parse_stream_line("") == ""
    assert parse_stream_line('data: {"choices": []}') == ""
    with pytest.raises(ProviderError):
        parse_stream_line("data: {not json")


@pytest.mark.asyncio
async def test_stream_yields_fragments_until_done():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["authorization"]
        seen["body"] = json.loads(request.content)
        body = sse(chunk("Hel"), chunk("lo"), '{"choices": [{"delta": {}}]}', "[DONE]", chunk("ignored"))
        return httpx.Response(200, headers={"content-type": "text/event-stream"}, content=body)

    client = CompletionClient(CONFIG, transport=httpx.MockTransport(handler))
    fragments = [f async for f in client.stream(MESSAGES)]

    assert fragments == ["Hel", "lo"]
    assert seen["url"] == "https://llm.example/v1/chat/completions"
    assert seen["auth"] == "Bearer sk-test"
    assert seen["body"] == {
        "model": "gpt-test",
        "messages": [{"role": "user", "content": "hi"}],
        "stream": True,
    }


@pytest.mark.asyncio
async def test_stream_non_success_carries_status_and_body():
    client = CompletionClient(
        CONFIG, transport=httpx.MockTransport(lambda r: httpx.Response(429, content=b"slow down"))
    )
    with pytest.raises(ProviderError) as exc:
        [f async for f in client.stream(MESSAGES)]
    assert exc.value.status_code == 429
    assert exc.value.body == "slow down"
    assert exc.value.code == ErrorCode.PROVIDER_ERROR
    assert "429" in exc.value.message


@pytest.mark.asyncio
async def test_complete_returns_trimmed_content():
    def handler(request: httpx.Request) -> httpx.Response:
        assert json.loads(request.content)["stream"] is False
        return httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": "  done \n"}}]})

    client = CompletionClient(CONFIG, transport=httpx.MockTransport(handler))
    assert await client.complete(MESSAGES) == "done"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, content=b"boom"),
        httpx.Response(200, content=b"not json"),
        httpx.Response(200, json={"choices": []}),
        httpx.Response(200, json={"choices": [{"message": {"content": "   "}}]}),
    ],
)
async def test_complete_failures(response):
    client = CompletionClient(CONFIG, transport=httpx.MockTransport(lambda r: response))
    with pytest.raises(ProviderError):
        await client.complete(MESSAGES)


@pytest.mark.asyncio
async def test_missing_api_key_fails_before_any_request():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200)

    keyless = ProviderConfig(api_key="", base_url="https://llm.example/v1", model="m", embedding_model="e")
    with pytest.raises(ProviderError):
        await CompletionClient(keyless, transport=httpx.MockTransport(handler)).complete(MESSAGES)
    with pytest.raises(ProviderError):
        await OpenAIEmbeddings(keyless, transport=httpx.MockTransport(handler)).embed(["x"])
    assert calls == []


@pytest.mark.asyncio
async def test_embeddings_sorted_by_index_as_float32():
    def handler(request: httpx.Request) -> httpx.Response:
        assert str(request.url) == "https://llm.example/v1/embeddings"
        assert json.loads(request.content) == {"model": "embed-test", "input": ["a", "b"]}
        return httpx.Response(
            200,
            json={"data": [{"index": 1, "embedding": [0.0, 1.0]}, {"index": 0, "embedding": [1.0, 0.0]}]},
        )

    embedder = OpenAIEmbeddings(CONFIG, transport=httpx.MockTransport(handler))
    vectors = await embedder.embed(["a", "b"])
    assert [v.tolist() for v in vectors] == [[1.0, 0.0], [0.0, 1.0]]
    assert all(v.dtype == np.float32 for v in vectors)
    assert embedder.model_id == "embed-test"
    assert await embedder.embed([]) == []


@pytest.mark.asyncio
async def test_embeddings_count_mismatch_and_bad_status():
    short = OpenAIEmbeddings(
        CONFIG, transport=httpx.MockTransport(lambda r: httpx.Response(200, json={"data": [{"embedding": [1.0]}]}))
    )
    with pytest.raises(ProviderError):
        await short.embed(["a", "b"])

    failing = OpenAIEmbeddings(
        CONFIG, transport=httpx.MockTransport(lambda r: httpx.Response(401, content=b"bad key"))
    )
    with pytest.raises(ProviderError) as exc:
        await failing.embed(["a"])
    assert exc.value.status_code == 401


def test_build_embedder_rejects_unknown_provider():
    assert isinstance(build_embedder("openai", CONFIG, "unused"), OpenAIEmbeddings)
    with pytest.raises(ValueError):
        build_embedder("carrier-pigeon", CONFIG, "unused")
