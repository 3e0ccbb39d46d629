# util/text.py
import hashlib
import re
from typing import Iterable, List

_SPACE_RE = re.compile(r"\s+")
_BLANK_LINES_RE = re.compile(r"\n{2,}")

CHUNK_SEPARATOR = "\n\n"


def normalize_whitespace(text: str) -> str:
    return _SPACE_RE.sub(" ", text).strip()


def split_into_paragraphs(text: str) -> List[str]:
    """
    Split on blank lines, normalize each block, drop empties.
    """
    paras = (normalize_whitespace(p) for p in _BLANK_LINES_RE.split(text))
    return [p for p in paras if p]


def fast_hash(text: str) -> str:
    """
    31-multiplier rolling string hash folded to 32 bits, as hex.
    Only used to spot duplicates; not collision resistant.
    """
    h = 0
    for ch in text:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    return format(h, "x")


def content_hash(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def deduplicate_paragraphs(paragraphs: Iterable[str]) -> List[str]:
    """
    Drop paragraphs whose lowercase hash was already seen; first occurrence wins.
    """
    seen: set[str] = set()
    out: List[str] = []
    for p in paragraphs:
        key = fast_hash(p.lower())
        if key in seen:
            continue
        seen.add(key)
        out.append(p)
    return out


def chunk_paragraphs(paragraphs: Iterable[str], target_size: int = 1200) -> List[str]:
    """
    Greedy packing: a paragraph joins the running chunk unless the result would
    reach `target_size` and the running chunk is non-empty.
    Joining the output with CHUNK_SEPARATOR gives back the joined input.
    """
    chunks: List[str] = []
    current = ""
    for p in paragraphs:
        if not p:
            continue
        candidate = f"{current}{CHUNK_SEPARATOR}{p}" if current else p
        if len(candidate) >= target_size and current:
            chunks.append(current)
            current = p
        else:
            current = candidate
    if current:
        chunks.append(current)
    return chunks


def clip_words(text: str, max_words: int = 100) -> str:
    """
    - Trim 'text' to at most `max_words` tokens separated by whitespace.
    - Adds an ellipsis when trimming occurs.
    """
    words = text.split()
    if len(words) <= max_words:
        return text
    return " ".join(words[:max_words]) + " …"
