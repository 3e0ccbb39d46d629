# core/streaming.py
import json
import logging
import re
import time
from enum import Enum
from typing import AsyncIterator, Callable, Dict, Final, List, Optional, Sequence, Set, Union
from core.completion_client import CompletionClient
from core.embedding_index import EmbeddingIndex
from core.entities import ExtractionResult, FetchResult, PipelineConfig
from core.extraction import extract_main_text
from core.language import detect_language
from core.micro_search import MicroSearch
from core.page_fetcher import PageFetcher
from core.retriever import Retriever
from core.summarizer import Summarizer
from model.api import StreamEvent, SummarizeRequest
from model.provider import ChatMessage
from model.summary import SummaryResult
from util.enums import ContentType, ErrorCode
from util.errors import PipelineError
from util.text import CHUNK_SEPARATOR, chunk_paragraphs
from util.url import is_http_url, normalize_url

LINE_SEP: Final[str] = "\n"
_CR_RE = re.compile(r"\r\n?")
logger = logging.getLogger(__name__)

Extractor = Callable[[ContentType, Union[str, bytes]], ExtractionResult]


def sse_frame(event: StreamEvent) -> bytes:
    """
    `event: <kind>` then one `data:` line per payload line, then a blank line.
    Dict payloads are sent as compact JSON. CRLF and lone CR count as line
    breaks too, so they never end a `data:` line mid-payload.
    """
    if isinstance(event.payload, dict):
        text = json.dumps(event.payload, separators=(",", ":"), ensure_ascii=False)
    else:
        text = _CR_RE.sub(LINE_SEP, event.payload)
    lines = [f"event: {event.kind}"]
    lines.extend(f"data: {line}" for line in text.split(LINE_SEP))
    return (LINE_SEP.join(lines) + LINE_SEP + LINE_SEP).encode("utf-8")


class PipelineMode(str, Enum):
    SUMMARY_TEXT = "summary_text"
    SUMMARY_JSON = "summary_json"
    ANSWER = "answer"


class PipelineState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    EXTRACTING = "extracting"
    RETRIEVING = "retrieving"
    SUMMARIZING = "summarizing"
    STREAMING_DELTAS = "streaming_deltas"
    TERMINAL = "terminal"


TRANSITIONS: Final[Dict[PipelineState, Set[PipelineState]]] = {
    PipelineState.IDLE: {PipelineState.FETCHING, PipelineState.TERMINAL},
    PipelineState.FETCHING: {PipelineState.EXTRACTING, PipelineState.TERMINAL},
    # extracting -> extracting is the one-shot retry against the DOM snapshot
    PipelineState.EXTRACTING: {
        PipelineState.EXTRACTING,
        PipelineState.RETRIEVING,
        PipelineState.SUMMARIZING,
        PipelineState.TERMINAL,
    },
    PipelineState.RETRIEVING: {PipelineState.SUMMARIZING, PipelineState.TERMINAL},
    PipelineState.SUMMARIZING: {PipelineState.STREAMING_DELTAS, PipelineState.TERMINAL},
    PipelineState.STREAMING_DELTAS: {PipelineState.TERMINAL},
    PipelineState.TERMINAL: set(),
}


def progress(message: str) -> StreamEvent:
    return StreamEvent(kind="progress", payload=message)


class StreamCoordinator:
    """
    Drives one request through fetch -> extract -> (index + retrieve) ->
    summarize and yields StreamEvents in order: progress*, delta*, then exactly
    one terminal event. Unrecoverable conditions become a single `error`.
    """

    def __init__(
        self,
        request: SummarizeRequest,
        mode: PipelineMode,
        *,
        fetcher: PageFetcher,
        summarizer: Summarizer,
        config: PipelineConfig,
        index: Optional[EmbeddingIndex] = None,
        retriever: Optional[Retriever] = None,
        searcher: Optional[MicroSearch] = None,
        extractor: Extractor = extract_main_text,
    ) -> None:
        self._req = request
        self._mode = mode
        self._fetcher = fetcher
        self._summarizer = summarizer
        self._config = config
        self._index = index
        self._retriever = retriever
        self._searcher = searcher
        self._extract = extractor
        self.state = PipelineState.IDLE
        self.history: List[PipelineState] = [PipelineState.IDLE]

    def _goto(self, nxt: PipelineState) -> None:
        if nxt not in TRANSITIONS[self.state]:
            raise RuntimeError(f"illegal transition {self.state.value} -> {nxt.value}")
        logger.debug("pipeline.state %s -> %s", self.state.value, nxt.value)
        self.state = nxt
        self.history.append(nxt)

    def _error(self, code: ErrorCode, message: str) -> StreamEvent:
        self._goto(PipelineState.TERMINAL)
        return StreamEvent(kind="error", payload=message, code=code.value)

    async def run(self) -> AsyncIterator[StreamEvent]:
        started = time.perf_counter()
        try:
            async for event in self._run():
                yield event
        except PipelineError as e:
            logger.warning(
                "pipeline.error code=%s state=%s msg=%s", e.code.value, self.state.value, e.message
            )
            yield self._error(e.code, e.message)
        except Exception:
            logger.error("pipeline.unexpected state=%s", self.state.value, exc_info=True)
            yield self._error(ErrorCode.PROVIDER_ERROR, "Unexpected server error.")
        finally:
            logger.info(
                "pipeline.end mode=%s state=%s ms=%d",
                self._mode.value,
                self.state.value,
                int((time.perf_counter() - started) * 1000),
            )

    async def _run(self) -> AsyncIterator[StreamEvent]:
        req = self._req
        question = (req.question or "").strip()
        if not is_http_url(req.url):
            raise PipelineError(ErrorCode.INVALID_REQUEST, "Invalid URL: only http and https are supported.")
        if self._mode == PipelineMode.ANSWER and not question:
            raise PipelineError(ErrorCode.INVALID_REQUEST, "Invalid request: missing question.")

        url = normalize_url(req.url or "")
        snapshot = req.domSnapshot if req.domSnapshot and req.domSnapshot.html else None
        derived_title = req.title or ""

        # ---- fetching ----
        self._goto(PipelineState.FETCHING)
        yield progress("Fetching page")
        remote = await self._fetcher.fetch(url)

        if isinstance(remote, FetchResult):
            content_type, raw = remote.content_type, remote.body
            derived_title = remote.title or derived_title
            if (
                content_type == ContentType.HTML
                and isinstance(raw, str)
                and len(raw) < self._config.min_content_length
                and snapshot is not None
            ):
                logger.info("pipeline.short_body url=%s len=%d using=dom", url, len(raw))
                raw = snapshot.html
                derived_title = snapshot.title or derived_title
        elif snapshot is not None:
            logger.info("pipeline.fetch_failed url=%s reason=%s using=dom", url, remote.reason)
            content_type, raw = ContentType.HTML, snapshot.html
            derived_title = snapshot.title or derived_title
        else:
            raise PipelineError(
                ErrorCode.FETCH_FAILED, f"Unable to fetch remote content: {remote.message}"
            )

        if not raw:
            raise PipelineError(ErrorCode.EXTRACTION_EMPTY, "No usable content.")

        # ---- extracting ----
        self._goto(PipelineState.EXTRACTING)
        yield progress("Extracting main content")
        extraction = self._extract(content_type, raw)
        paragraphs = extraction.paragraphs
        title = (extraction.title or "").strip() or derived_title or url

        if not paragraphs and snapshot is not None and snapshot.html != raw:
            self._goto(PipelineState.EXTRACTING)
            logger.info("pipeline.extract_retry url=%s source=dom", url)
            retry = self._extract(ContentType.HTML, snapshot.html)
            if retry.paragraphs:
                paragraphs = retry.paragraphs
                title = (retry.title or "").strip() or title

        if not paragraphs:
            raise PipelineError(
                ErrorCode.EXTRACTION_EMPTY, "Unable to extract the main content of the page."
            )
        logger.info("pipeline.extracted url=%s paragraphs=%d", url, len(paragraphs))

        used_sources = [url]
        if self._searcher is not None and self._config.micro_search_enabled:
            joined = LINE_SEP.join(paragraphs)
            if len(joined) < self._config.min_content_length:
                seed = title or " ".join(paragraphs[:2])[:120]
                for r in await self._searcher.search(seed):
                    paragraphs = [*paragraphs, f"External context: {r.title}. {r.snippet} (source: {r.url})"]
                    used_sources.append(r.url)

        language = detect_language(LINE_SEP.join(paragraphs), self._config.fallback_language)
        chunks = chunk_paragraphs(paragraphs, self._config.retrieval_chunk_size)

        # ---- retrieving ----
        retrieved = False
        if self._index is not None and self._retriever is not None:
            self._goto(PipelineState.RETRIEVING)
            yield progress("Indexing page passages")
            await self._index.index_document(url, title, chunks)
            yield progress("Selecting key passages")
            top = await self._retriever.select(url, question or None)
            if top:
                chunks = [s.content for s in top]
                retrieved = True

        # ---- summarizing ----
        self._goto(PipelineState.SUMMARIZING)
        if self._mode == PipelineMode.ANSWER:
            selected = self._prompt_chunks(chunks, retrieved)
            yield progress("Writing the answer")
            fragments = self._summarizer.stream_answer(selected, language, url, question)
        else:
            source = chunks
            map_reduced = False
            if not retrieved and self._summarizer.needs_map_reduce(paragraphs):
                parts = self._summarizer.map_chunks(paragraphs)
                minis: List[str] = []
                for i, part in enumerate(parts, start=1):
                    yield progress(f"Summarizing section {i}/{len(parts)}")
                    minis.append(await self._summarizer.summarize_chunk(part, language))
                source = minis
                map_reduced = True

            yield progress("Writing the summary")
            if self._mode == PipelineMode.SUMMARY_JSON:
                tldr, summary = await self._summarizer.summarize_structured(
                    CHUNK_SEPARATOR.join(source), language, url
                )
                result = SummaryResult(
                    url=url, title=title, tldr=tldr, summary=summary, usedSources=used_sources
                )
                self._goto(PipelineState.TERMINAL)
                yield StreamEvent(kind="final", payload=result.model_dump())
                return
            selected = source if map_reduced else self._prompt_chunks(source, retrieved)
            fragments = self._summarizer.stream_text_summary(selected, language, url)

        # ---- streaming deltas ----
        self._goto(PipelineState.STREAMING_DELTAS)
        acc: List[str] = []
        async for fragment in fragments:
            acc.append(fragment)
            yield StreamEvent(kind="delta", payload=fragment)
        self._goto(PipelineState.TERMINAL)
        logger.info("pipeline.final url=%s deltas=%d chars=%d", url, len(acc), sum(map(len, acc)))
        yield StreamEvent(kind="final", payload="".join(acc))

    def _prompt_chunks(self, chunks: Sequence[str], retrieved: bool) -> List[str]:
        """
        Retrieved chunks are capped for the prompt; unretrieved ones are kept
        whole while they fit the direct-input budget.
        """
        if not retrieved and len(CHUNK_SEPARATOR.join(chunks)) <= self._config.max_direct_input_length:
            return list(chunks)
        return list(chunks[: self._config.prompt_max_chunks])


async def chat_stream_events(
    completion: CompletionClient, messages: Sequence[ChatMessage]
) -> AsyncIterator[StreamEvent]:
    """
    Passthrough chat: delta* then `done`, or a single `error`.
    """
    try:
        async for fragment in completion.stream(messages):
            yield StreamEvent(kind="delta", payload=fragment)
    except PipelineError as e:
        logger.warning("chat.stream.error code=%s", e.code.value)
        yield StreamEvent(kind="error", payload=e.message, code=e.code.value)
        return
    except Exception:
        logger.error("chat.stream.unexpected", exc_info=True)
        yield StreamEvent(
            kind="error", payload="Unexpected server error.", code=ErrorCode.PROVIDER_ERROR.value
        )
        return
    yield StreamEvent(kind="done", payload="")
