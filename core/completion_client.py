# core/completion_client.py
import logging
from typing import AsyncIterator, Dict, Optional, Sequence
import httpx
from pydantic import ValidationError
from core.entities import ProviderConfig
from model.provider import ChatCompletionChunk, ChatCompletionResponse, ChatMessage
from util.errors import ProviderError
from util.timing import timed

logger = logging.getLogger(__name__)

DONE_SENTINEL = "[DONE]"


def parse_stream_line(line: str) -> Optional[str]:
    """
    Decode one SSE line of a streamed chat completion.

    Returns the content fragment ("" when the line carries none), or None for
    the terminating sentinel. Raises ProviderError for undecodable payloads.
    """
    line = line.strip()
    if not line.startswith("data:"):
        return ""
    payload = line[len("data:"):].strip()
    if payload == DONE_SENTINEL:
        return None
    if not payload:
        return ""
    try:
        chunk = ChatCompletionChunk.model_validate_json(payload)
    except ValidationError as e:
        raise ProviderError("Completion stream sent an undecodable chunk") from e
    if not chunk.choices:
        return ""
    return chunk.choices[0].delta.content or ""


class CompletionClient:
    """
    OpenAI-compatible chat completions over httpx, streamed or not.
    """

    def __init__(
        self,
        config: ProviderConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._config = config
        self._url = config.base_url.rstrip("/") + "/chat/completions"
        self._transport = transport

    @property
    def model(self) -> str:
        return self._config.model

    def _headers(self) -> Dict[str, str]:
        if not self._config.api_key:
            raise ProviderError("Missing API key for the completion provider.")
        return {
            "Authorization": f"Bearer {self._config.api_key}",
            "content-type": "application/json",
        }

    def _payload(self, messages: Sequence[ChatMessage], stream: bool) -> Dict[str, object]:
        return {
            "model": self._config.model,
            "messages": [m.model_dump() for m in messages],
            "stream": stream,
        }

    async def complete(self, messages: Sequence[ChatMessage]) -> str:
        """
        One non-streamed completion; returns the trimmed message content.
        """
        headers = self._headers()
        total = sum(len(m.content) for m in messages)
        try:
            with timed(logger, "ai.complete", model=self.model, chars=total):
                async with httpx.AsyncClient(
                    timeout=self._config.timeout_seconds, transport=self._transport
                ) as client:
                    res = await client.post(
                        self._url, headers=headers, json=self._payload(messages, False)
                    )
        except httpx.HTTPError as e:
            logger.error("ai.complete.request_error err=%s", type(e).__name__)
            raise ProviderError(f"Completion request failed: {type(e).__name__}") from e

        if not res.is_success:
            logger.error("ai.complete.bad_status status=%d", res.status_code)
            raise ProviderError("Completion provider error", res.status_code, res.text)

        try:
            decoded = ChatCompletionResponse.model_validate_json(res.content)
        except ValidationError as e:
            raise ProviderError("Completion provider returned an undecodable body") from e

        content = (decoded.choices[0].message.content or "").strip()
        if not content:
            raise ProviderError("Completion provider returned an empty message.")
        logger.info("ai.complete.ok len=%d", len(content))
        return content

    async def stream(self, messages: Sequence[ChatMessage]) -> AsyncIterator[str]:
        """
        Yield content fragments in provider order until the [DONE] sentinel.
        Closing the generator closes the upstream connection.
        """
        headers = self._headers()
        fragments = 0
        try:
            async with httpx.AsyncClient(
                timeout=self._config.timeout_seconds, transport=self._transport
            ) as client:
                async with client.stream(
                    "POST", self._url, headers=headers, json=self._payload(messages, True)
                ) as res:
                    if not res.is_success:
                        body = (await res.aread()).decode("utf-8", errors="replace")
                        logger.error("ai.stream.bad_status status=%d", res.status_code)
                        raise ProviderError("Completion provider error", res.status_code, body)

                    async for line in res.aiter_lines():
                        fragment = parse_stream_line(line)
                        if fragment is None:
                            logger.info("ai.stream.done_marker fragments=%d", fragments)
                            break
                        if fragment:
                            fragments += 1
                            yield fragment
        except httpx.HTTPError as e:
            logger.error("ai.stream.request_error err=%s", type(e).__name__)
            raise ProviderError(f"Completion stream failed: {type(e).__name__}") from e
