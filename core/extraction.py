# core/extraction.py
import logging
from typing import Union
from core.entities import ExtractionResult
from core.html_text import extract_text_from_html
from core.pdf_text import extract_text_from_pdf
from util.enums import ContentType
from util.text import deduplicate_paragraphs, split_into_paragraphs
from util.timing import timed

logger = logging.getLogger(__name__)


def extract_main_text(content_type: ContentType, raw: Union[str, bytes]) -> ExtractionResult:
    """
    Route raw content to the HTML or PDF extractor; anything else textual is
    split on blank lines. Never raises for content it cannot use: the result
    simply has no paragraphs.
    """
    with timed(logger, "extract", type=content_type.value, size=len(raw)):
        if content_type == ContentType.HTML and isinstance(raw, str):
            return extract_text_from_html(raw)
        if content_type == ContentType.PDF and isinstance(raw, (bytes, bytearray)):
            return extract_text_from_pdf(bytes(raw))
        if isinstance(raw, str):
            return ExtractionResult(paragraphs=deduplicate_paragraphs(split_into_paragraphs(raw)))
        return ExtractionResult(paragraphs=[])
