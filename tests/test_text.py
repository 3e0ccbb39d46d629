import pytest

from util.text import (
    CHUNK_SEPARATOR,
    chunk_paragraphs,
    clip_words,
    deduplicate_paragraphs,
    fast_hash,
    normalize_whitespace,
    split_into_paragraphs,
)


def test_normalize_whitespace_collapses_runs():
    assert normalize_whitespace("  a \n\t b   c ") == "a b c"


def test_split_into_paragraphs_drops_blank_blocks():
    text = "first line\nstill first\n\n\n   \n\nsecond"
    assert split_into_paragraphs(text) == ["first line still first", "second"]


def test_fast_hash_is_stable_32_bit_hex():
    assert fast_hash("") == "0"
    assert fast_hash("a") == format(ord("a"), "x")
    assert int(fast_hash("x" * 500), 16) <= 0xFFFFFFFF


def test_deduplicate_is_case_insensitive_and_keeps_first():
    paras = ["Hello World", "other", "hello world", "HELLO WORLD", "other"]
    assert deduplicate_paragraphs(paras) == ["Hello World", "other"]


def test_deduplicate_is_idempotent():
    paras = ["a", "B", "b", "c", "A", "d"]
    once = deduplicate_paragraphs(paras)
    assert deduplicate_paragraphs(once) == once


@pytest.mark.parametrize("size", [10, 50, 1200])
def test_chunks_rejoin_to_input(size):
    paras = [f"paragraph number {i} " + "word " * (i % 7) for i in range(40)]
    chunks = chunk_paragraphs(paras, size)
    assert CHUNK_SEPARATOR.join(chunks) == CHUNK_SEPARATOR.join(paras)
    assert all(chunks)


def test_chunk_flushes_before_reaching_target():
    chunks = chunk_paragraphs(["a" * 6, "b" * 6, "c" * 6], target_size=14)
    # "aaaaaa\n\nbbbbbb" is exactly 14 chars, so it must not be built
    assert chunks == ["a" * 6, "b" * 6, "c" * 6]


def test_oversized_paragraph_stays_whole():
    big = "x" * 5000
    assert chunk_paragraphs(["intro", big, "outro"], target_size=100) == ["intro", big, "outro"]


def test_chunk_skips_empty_paragraphs():
    assert chunk_paragraphs(["", "a", "", "b"], target_size=100) == ["a\n\nb"]
    assert chunk_paragraphs([], target_size=100) == []


def test_clip_words():
    assert clip_words("one two three", 5) == "one two three"
    assert clip_words("one two three four", 2) == "one two …"
