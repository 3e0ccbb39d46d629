# core/page_fetcher.py
import asyncio
import logging
import re
from typing import Optional, Union
import httpx
from core.entities import FetchFailure, FetchResult
from util.enums import ContentType
from util.text import normalize_whitespace
from util.timing import timed

logger = logging.getLogger(__name__)

MAX_CONTENT_BYTES = 15 * 1024 * 1024
_TITLE_RE = re.compile(r"<title[^>]*>([^<]*)</title>", re.IGNORECASE)
_TITLE_MAX_CHARS = 180


class _TooLarge(Exception):
    pass


def detect_content_type(header_value: Optional[str]) -> ContentType:
    if not header_value:
        return ContentType.UNKNOWN
    mime = header_value.split(";")[0].strip().lower()
    if mime in ("text/html", "application/xhtml+xml"):
        return ContentType.HTML
    if mime == "application/pdf":
        return ContentType.PDF
    return ContentType.UNKNOWN


def extract_title_from_html(html: str) -> Optional[str]:
    """
    Cheap `<title>` lookup so later stages have a title before full parsing.
    """
    match = _TITLE_RE.search(html)
    if not match:
        return None
    return normalize_whitespace(match.group(1))[:_TITLE_MAX_CHARS]


class PageFetcher:
    """
    GET a page with redirects, a hard deadline and a byte ceiling.

    Network conditions never raise; they come back as FetchFailure so the
    caller can fall back to a DOM snapshot.
    """

    def __init__(
        self,
        timeout_ms: int = 12000,
        max_bytes: int = MAX_CONTENT_BYTES,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._timeout = timeout_ms / 1000.0
        self._max_bytes = max_bytes
        self._transport = transport

    async def fetch(self, url: str) -> Union[FetchResult, FetchFailure]:
        try:
            with timed(logger, "fetch", url=url):
                return await asyncio.wait_for(self._fetch(url), timeout=self._timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            logger.warning("fetch.timeout url=%s", url)
            return FetchFailure(reason="timeout", message="Remote fetch timed out.")
        except _TooLarge:
            logger.warning("fetch.too_large url=%s", url)
            return FetchFailure(
                reason="too_large",
                message=f"Remote content exceeds the {self._max_bytes // (1024 * 1024)} MB limit.",
            )
        except httpx.HTTPError as e:
            logger.warning("fetch.network_error url=%s err=%s", url, type(e).__name__)
            return FetchFailure(reason="network", message=str(e) or type(e).__name__)

    async def _fetch(self, url: str) -> Union[FetchResult, FetchFailure]:
        async with httpx.AsyncClient(
            follow_redirects=True, timeout=self._timeout, transport=self._transport
        ) as client:
            async with client.stream("GET", url) as res:
                if not res.is_success:
                    logger.warning("fetch.bad_status url=%s status=%d", url, res.status_code)
                    return FetchFailure(
                        reason="http_status",
                        message=f"Server responded {res.status_code}.",
                    )

                declared = res.headers.get("content-length")
                if declared and declared.isdigit() and int(declared) > self._max_bytes:
                    raise _TooLarge()

                content_type = detect_content_type(res.headers.get("content-type"))
                buf = bytearray()
                async for part in res.aiter_bytes():
                    buf.extend(part)
                    if len(buf) > self._max_bytes:
                        raise _TooLarge()
                encoding = res.charset_encoding or "utf-8"

        logger.info(
            "fetch.ok url=%s type=%s bytes=%d", url, content_type.value, len(buf)
        )
        if content_type == ContentType.PDF:
            return FetchResult(content_type=content_type, body=bytes(buf))

        try:
            text = bytes(buf).decode(encoding, errors="replace")
        except LookupError:
            text = bytes(buf).decode("utf-8", errors="replace")
        title = extract_title_from_html(text) if content_type == ContentType.HTML else None
        return FetchResult(content_type=content_type, body=text, title=title)
