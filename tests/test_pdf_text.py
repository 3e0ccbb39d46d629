from typing import List, Tuple

import fitz

from core.extraction import extract_main_text
from core.pdf_text import (
    PdfLine,
    drop_repeated_lines,
    extract_page_lines,
    extract_text_from_pdf,
    group_words_into_lines,
    repeated_lines,
)
from util.enums import ContentType

HEADER = "ACME Quarterly Report"


def make_pdf(pages: List[List[Tuple[float, str]]]) -> bytes:
    doc = fitz.open()
    for lines in pages:
        page = doc.new_page()
        for y, text in lines:
            page.insert_text((72, y), text, fontsize=11)
    data = doc.tobytes()
    doc.close()
    return data


def report_page(n: int) -> List[Tuple[float, str]]:
    return [
        (40, HEADER),
        (100, f"Section {n} opens with revenue figures."),
        (114, f"Section {n} continues with regional costs."),
        (128, f"Section {n} ends the first block."),
        (170, f"Section {n} closing remark after a gap."),
    ]


def test_group_words_sorts_lines_and_words():
    words = [(200.0, 50.0, "world"), (72.0, 51.0, "hello"), (72.0, 20.0, "title"), (90.0, 50.0, " ")]
    lines = group_words_into_lines(words)
    assert [ln.text for ln in lines] == ["title", "hello world"]


def test_repeated_lines_threshold():
    pages = [[PdfLine(y=1, words=[(0, "Header")]), PdfLine(y=2, words=[(0, f"body {i}")])] for i in range(5)]
    assert repeated_lines(pages) == {"header"}
    # a single page never marks anything as repeated
    assert repeated_lines(pages[:1]) == set()


def test_header_removed_and_gap_splits_paragraphs():
    data = make_pdf([report_page(1), report_page(2), report_page(3)])
    result = extract_text_from_pdf(data)
    assert all(HEADER not in p for p in result.paragraphs)
    assert result.paragraphs[:2] == [
        "Section 1 opens with revenue figures. Section 1 continues with regional costs. "
        "Section 1 ends the first block.",
        "Section 1 closing remark after a gap.",
    ]
    assert len(result.paragraphs) == 6


def test_page_lines_per_page():
    data = make_pdf([report_page(1), report_page(2)])
    pages = extract_page_lines(data)
    assert len(pages) == 2
    assert pages[1][0].text == HEADER


def test_unparseable_pdf_gives_no_paragraphs():
    assert extract_page_lines(b"definitely not a pdf") == []
    assert extract_main_text(ContentType.PDF, b"definitely not a pdf").paragraphs == []


def test_long_repeated_line_is_kept():
    legal = "This document is provided for information only and does not constitute an offer, a solicitation or a recommendation to buy any security."
    assert len(legal) > 120
    pages = [
        [
            PdfLine(y=10, words=[(0, HEADER)]),
            PdfLine(y=30, words=[(0, legal)]),
            PdfLine(y=50, words=[(0, f"body of page {i}")]),
        ]
        for i in range(3)
    ]
    boilerplate = repeated_lines(pages)
    assert boilerplate == {HEADER.lower(), legal.lower()}

    kept = drop_repeated_lines(pages, boilerplate)
    assert [[ln.text for ln in lines] for lines in kept] == [
        [legal, f"body of page {i}"] for i in range(3)
    ]
