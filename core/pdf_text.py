# core/pdf_text.py
from collections import Counter
from dataclasses import dataclass, field
from statistics import median
from typing import List, Sequence, Tuple
import fitz
from core.entities import ExtractionResult
from util.text import deduplicate_paragraphs, normalize_whitespace, split_into_paragraphs
from util.timing import timed
import logging

logger = logging.getLogger(__name__)

LINE_Y_TOLERANCE = 5.0
REPEAT_RATIO = 0.6
LONG_LINE_CHARS = 120
PARAGRAPH_GAP_FACTOR = 1.6


@dataclass
class PdfLine:
    y: float
    words: List[Tuple[float, str]] = field(default_factory=list)  # (x0, text)

    @property
    def text(self) -> str:
        return " ".join(w for _, w in sorted(self.words, key=lambda t: t[0]))


def group_words_into_lines(
    words: Sequence[Tuple[float, float, str]], tolerance: float = LINE_Y_TOLERANCE
) -> List[PdfLine]:
    """
    `words` are (x0, baseline_y, text). A word joins the first line whose
    baseline is within `tolerance`; lines come back top to bottom.
    """
    lines: List[PdfLine] = []
    for x0, y, raw in words:
        text = normalize_whitespace(raw or "")
        if not text:
            continue
        line = next((ln for ln in lines if abs(ln.y - y) < tolerance), None)
        if line is None:
            line = PdfLine(y=y)
            lines.append(line)
        line.words.append((x0, text))
    lines.sort(key=lambda ln: ln.y)
    return [ln for ln in lines if ln.text]


def extract_page_lines(file_bytes: bytes) -> List[List[PdfLine]]:
    """
    Return the positioned lines of every page, or [] if the PDF cannot be parsed.
    """
    try:
        out: List[List[PdfLine]] = []
        with timed(logger, "pdf.open"):
            with fitz.open(stream=file_bytes, filetype="pdf") as doc:
                pages = doc.page_count
                with timed(logger, "pdf.parse", pages=pages):
                    for i in range(pages):
                        page = doc.load_page(i)
                        words = [
                            (w[0], w[3], w[4]) for w in page.get_text("words") or []
                        ]
                        out.append(group_words_into_lines(words))
        logger.info("pdf.pages count=%d", len(out))
        return out
    except Exception:
        # do not log payloads
        logger.error("pdf.parse.error", exc_info=True)
        return []


def repeated_lines(pages: Sequence[Sequence[PdfLine]]) -> set[str]:
    """
    Lowercase lines present on at least max(2, 60% of pages) pages:
    running headers, footers, watermarks.
    """
    occurrences: Counter[str] = Counter()
    for lines in pages:
        occurrences.update({ln.text.lower() for ln in lines})
    threshold = max(2, int(len(pages) * REPEAT_RATIO))
    return {line for line, n in occurrences.items() if n >= threshold}


def _page_text(lines: Sequence[PdfLine]) -> str:
    if not lines:
        return ""
    gaps = [b.y - a.y for a, b in zip(lines, lines[1:]) if b.y > a.y]
    usual = median(gaps) if gaps else 0.0
    parts = [lines[0].text]
    for prev, cur in zip(lines, lines[1:]):
        sep = "\n\n" if usual and (cur.y - prev.y) > usual * PARAGRAPH_GAP_FACTOR else "\n"
        parts.append(sep + cur.text)
    return "".join(parts)


def drop_repeated_lines(
    pages: Sequence[Sequence[PdfLine]], boilerplate: set[str]
) -> List[List[PdfLine]]:
    """
    Remove boilerplate lines from every page; lines longer than
    LONG_LINE_CHARS are body text even when they repeat.
    """
    return [
        [
            ln
            for ln in lines
            if ln.text.lower() not in boilerplate or len(ln.text) > LONG_LINE_CHARS
        ]
        for lines in pages
    ]


def extract_text_from_pdf(file_bytes: bytes) -> ExtractionResult:
    pages = extract_page_lines(file_bytes)
    if not pages:
        return ExtractionResult(paragraphs=[])

    boilerplate = repeated_lines(pages)
    kept_pages = drop_repeated_lines(pages, boilerplate)
    text = "\n\n".join(t for t in (_page_text(lines) for lines in kept_pages) if t)
    paragraphs = deduplicate_paragraphs(split_into_paragraphs(text))
    logger.info(
        "pdf.extract pages=%d repeated=%d paragraphs=%d",
        len(pages),
        len(boilerplate),
        len(paragraphs),
    )
    return ExtractionResult(paragraphs=paragraphs)
