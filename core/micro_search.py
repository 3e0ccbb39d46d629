# core/micro_search.py
import logging
from typing import Any, Dict, List, Optional
import httpx
from core.entities import SearchResult
from util.constants import ExternalURIs
from util.text import clip_words

logger = logging.getLogger(__name__)


def _flatten_topics(topics: List[Dict[str, Any]], acc: List[SearchResult]) -> None:
    for topic in topics:
        nested = topic.get("Topics")
        if isinstance(nested, list):
            _flatten_topics(nested, acc)
            continue
        text = topic.get("Text")
        first_url = topic.get("FirstURL")
        if isinstance(text, str) and isinstance(first_url, str) and text and first_url:
            acc.append(SearchResult(title=text, url=first_url, snippet=text))


class MicroSearch:
    """
    DuckDuckGo instant-answer lookup used to give thin pages some context.
    Any failure yields no results.
    """

    def __init__(
        self,
        timeout_seconds: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._timeout = timeout_seconds
        self._transport = transport

    async def search(self, query: str, limit: int = 4) -> List[SearchResult]:
        params = {"q": query, "format": "json", "no_html": "1", "skip_disambig": "1"}
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, follow_redirects=True, transport=self._transport
            ) as client:
                res = await client.get(ExternalURIs.DUCKDUCKGO_SEARCH, params=params)
            res.raise_for_status()
            data = res.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("search.failed err=%s", type(e).__name__)
            return []

        results: List[SearchResult] = []
        if data.get("AbstractText") and data.get("AbstractURL"):
            results.append(
                SearchResult(
                    title=data.get("Heading") or data["AbstractText"],
                    url=data["AbstractURL"],
                    snippet=data["AbstractText"],
                )
            )
        if isinstance(data.get("RelatedTopics"), list):
            _flatten_topics(data["RelatedTopics"], results)

        seen: set[str] = set()
        out: List[SearchResult] = []
        for r in results:
            if r.url in seen:
                continue
            seen.add(r.url)
            out.append(SearchResult(title=r.title, url=r.url, snippet=clip_words(r.snippet, 60)))
            if len(out) >= limit:
                break
        logger.info("search.ok results=%d", len(out))
        return out
