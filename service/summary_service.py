# service/summary_service.py
import logging
from typing import AsyncIterator, Optional, Sequence
from core.completion_client import CompletionClient
from core.embedding_index import EmbeddingIndex
from core.entities import PipelineConfig
from core.micro_search import MicroSearch
from core.page_fetcher import PageFetcher
from core.retriever import Retriever
from core.streaming import PipelineMode, StreamCoordinator, chat_stream_events, sse_frame
from core.summarizer import Summarizer
from model.api import StreamEvent, SummarizeRequest
from model.provider import ChatMessage
from model.summary import SummaryResult
from util.enums import ErrorCode, ErrorMessage
from util.errors import AppError

logger = logging.getLogger(__name__)


class SummaryService:
    """
    One coordinator per request; the collaborators are shared.
    """

    def __init__(
        self,
        fetcher: PageFetcher,
        summarizer: Summarizer,
        completion: CompletionClient,
        config: PipelineConfig,
        index: Optional[EmbeddingIndex] = None,
        retriever: Optional[Retriever] = None,
        searcher: Optional[MicroSearch] = None,
    ) -> None:
        self._fetcher = fetcher
        self._summarizer = summarizer
        self._completion = completion
        self._config = config
        self._index = index
        self._retriever = retriever
        self._searcher = searcher

    def coordinator(self, request: SummarizeRequest, mode: PipelineMode) -> StreamCoordinator:
        return StreamCoordinator(
            request,
            mode,
            fetcher=self._fetcher,
            summarizer=self._summarizer,
            config=self._config,
            index=self._index,
            retriever=self._retriever,
            searcher=self._searcher if self._config.micro_search_enabled else None,
        )

    def events(self, request: SummarizeRequest, mode: PipelineMode) -> AsyncIterator[StreamEvent]:
        logger.info("pipeline.start mode=%s url=%s", mode.value, request.url)
        return self.coordinator(request, mode).run()

    async def stream(self, request: SummarizeRequest, mode: PipelineMode) -> AsyncIterator[bytes]:
        async for event in self.events(request, mode):
            yield sse_frame(event)

    async def summarize(self, request: SummarizeRequest) -> SummaryResult:
        """
        Non-streaming variant: runs the JSON pipeline to completion and maps a
        terminal error onto its HTTP status.
        """
        async for event in self.events(request, PipelineMode.SUMMARY_JSON):
            if event.kind == "final" and isinstance(event.payload, dict):
                return SummaryResult.model_validate(event.payload)
            if event.kind == "error":
                code = ErrorCode(event.code) if event.code else None
                info = (
                    ErrorMessage.for_code(code).value
                    if code is not None
                    else ErrorMessage.INTERNAL_ERROR.value
                )
                raise AppError(str(event.payload) or info.message, info.http_status)

        logger.error("pipeline.no_terminal url=%s", request.url)
        raise AppError(
            ErrorMessage.INTERNAL_ERROR.value.message,
            ErrorMessage.INTERNAL_ERROR.value.http_status,
        )

    async def chat_stream(self, messages: Sequence[ChatMessage]) -> AsyncIterator[bytes]:
        logger.info("chat.stream.start messages=%d", len(messages))
        async for event in chat_stream_events(self._completion, messages):
            yield sse_frame(event)
