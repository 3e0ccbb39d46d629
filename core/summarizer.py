# core/summarizer.py
import logging
from typing import AsyncIterator, List, Sequence, Tuple
from core.completion_client import CompletionClient
from core.prompts import (
    chunk_summary_messages,
    page_answer_messages,
    structured_summary_messages,
    text_summary_messages,
)
from core.structured_output import parse_summary_payload
from util.text import CHUNK_SEPARATOR, chunk_paragraphs
from util.timing import timed

logger = logging.getLogger(__name__)


class Summarizer:
    """
    Prompting side of the pipeline. Map-reduce pieces (`map_chunks`,
    `summarize_chunk`) are exposed separately so the caller can report
    progress between sections.
    """

    def __init__(
        self,
        completion: CompletionClient,
        max_direct_input_length: int = 12000,
        map_chunk_size: int = 4000,
    ) -> None:
        self._completion = completion
        self._max_direct = max_direct_input_length
        self._map_chunk_size = map_chunk_size

    def needs_map_reduce(self, paragraphs: Sequence[str]) -> bool:
        return len(CHUNK_SEPARATOR.join(paragraphs)) > self._max_direct

    def map_chunks(self, paragraphs: Sequence[str]) -> List[str]:
        chunks = chunk_paragraphs(paragraphs, self._map_chunk_size)
        logger.info("summary.map.plan chunks=%d", len(chunks))
        return chunks

    async def summarize_chunk(self, text: str, language: str) -> str:
        with timed(logger, "summary.map.chunk", chars=len(text)):
            return await self._completion.complete(chunk_summary_messages(text, language))

    async def summarize_structured(
        self, text: str, language: str, url: str
    ) -> Tuple[List[str], str]:
        """
        Final synthesis pass; raises MalformedModelOutput when the reply does
        not satisfy the tldr/summary contract.
        """
        with timed(logger, "summary.final", chars=len(text), language=language):
            raw = await self._completion.complete(
                structured_summary_messages(text, language, url)
            )
        return parse_summary_payload(raw)

    def stream_text_summary(
        self, chunks: Sequence[str], language: str, url: str
    ) -> AsyncIterator[str]:
        logger.info("summary.stream chunks=%d language=%s", len(chunks), language)
        return self._completion.stream(text_summary_messages(chunks, language, url))

    def stream_answer(
        self, chunks: Sequence[str], language: str, url: str, question: str
    ) -> AsyncIterator[str]:
        logger.info("answer.stream chunks=%d language=%s", len(chunks), language)
        return self._completion.stream(
            page_answer_messages(chunks, language, url, question)
        )
