# core/html_text.py
import logging
from typing import List, Optional, Tuple, Union
from bs4 import BeautifulSoup, NavigableString, PageElement, Tag
from bs4.element import PreformattedString
from core.entities import ExtractionResult
from util.text import deduplicate_paragraphs, normalize_whitespace

logger = logging.getLogger(__name__)

REMOVAL_SELECTORS = [
    "script",
    "style",
    "noscript",
    "template",
    "iframe",
    "svg",
    "canvas",
    "form",
    "nav",
    "footer",
    "header",
    "aside",
    "figure",
    "figcaption",
    "video",
    "audio",
    "button",
    ".ad",
    ".ads",
    ".advert",
    ".advertisement",
    ".sponsored",
]

ROOT_SELECTORS = [
    "main",
    "article",
    '[role="main"]',
    'section[role="main"]',
    'div[role="main"]',
    "div#content",
    "div.content",
    'div[id*="content"]',
    'div[class*="content"]',
]

ROOT_MIN_CHARS = 400
CANDIDATE_MIN_CHARS = 200
CANDIDATE_TAGS = ["p", "article", "section", "div"]
FLUSH_TAGS = {"p", "li", "h1", "h2", "h3", "h4", "h5", "h6"}


def _strip_unwanted(soup: BeautifulSoup) -> None:
    for node in soup.select(", ".join(REMOVAL_SELECTORS)):
        # Already gone if an ancestor was decomposed first.
        if not node.decomposed:
            node.decompose()


def _text_len(el: Tag) -> int:
    return len(el.get_text().strip())


def select_content_root(soup: BeautifulSoup) -> Union[Tag, BeautifulSoup]:
    """
    Semantic selectors first, then the longest text block, then <body>.
    """
    for selector in ROOT_SELECTORS:
        candidate = soup.select_one(selector)
        if candidate is not None and _text_len(candidate) > ROOT_MIN_CHARS:
            return candidate

    best: Optional[Tag] = None
    best_score = 0
    for el in soup.find_all(CANDIDATE_TAGS):
        score = _text_len(el)
        if score < CANDIDATE_MIN_CHARS:
            continue
        if score > best_score:
            best_score = score
            best = el

    if best is not None:
        return best
    return soup.body or soup


def collect_paragraphs(root: Union[Tag, BeautifulSoup]) -> List[str]:
    """
    Walk text nodes under `root` in document order and cut a paragraph at every
    p/li/heading boundary and every <br>.
    """
    paragraphs: List[str] = []
    buf: List[str] = []

    def flush() -> None:
        if buf:
            paragraphs.append(" ".join(buf))
            buf.clear()

    # (node, closing) pairs; explicit stack so deep markup cannot hit the recursion limit
    stack: List[Tuple[PageElement, bool]] = [(root, False)]
    while stack:
        node, closing = stack.pop()
        if closing:
            flush()
            continue
        if isinstance(node, Tag):
            if node.name == "br":
                flush()
                continue
            if node.name in FLUSH_TAGS:
                flush()
                stack.append((node, True))
            stack.extend((child, False) for child in reversed(node.contents))
        elif isinstance(node, NavigableString) and not isinstance(
            node, PreformattedString
        ):
            text = normalize_whitespace(str(node))
            if text:
                buf.append(text)
    flush()

    return deduplicate_paragraphs(p.strip() for p in paragraphs if p.strip())


def extract_text_from_html(html: str) -> ExtractionResult:
    try:
        soup = BeautifulSoup(html, "lxml")
    except Exception:
        logger.error("html.parse.error", exc_info=True)
        return ExtractionResult(paragraphs=[])

    title = normalize_whitespace(soup.title.get_text()) if soup.title else ""
    _strip_unwanted(soup)
    root = select_content_root(soup)
    paragraphs = collect_paragraphs(root)
    logger.info(
        "html.extract root=%s paragraphs=%d",
        getattr(root, "name", "?"),
        len(paragraphs),
    )
    return ExtractionResult(paragraphs=paragraphs, title=title or None)
