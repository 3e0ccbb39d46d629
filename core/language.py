# core/language.py
import re
from typing import Dict, FrozenSet

_WORD_RE = re.compile(r"[^\W\d_]+", re.UNICODE)
_SAMPLE_CHARS = 5000
_MIN_HITS = 3

STOPWORDS: Dict[str, FrozenSet[str]] = {
    "en": frozenset(
        "the and of to in is that for it with as was on are be this by not or from at which have an".split()
    ),
    "fr": frozenset(
        "le la les de des du et est un une que qui dans pour pas sur au aux avec ce cette sont par plus".split()
    ),
    "es": frozenset(
        "el la los las de del y que en un una es por con para no se su al lo como más".split()
    ),
    "de": frozenset(
        "der die das und ist nicht ein eine zu den von mit sich des auf für im dem auch".split()
    ),
    "it": frozenset(
        "il lo la gli le di del della e che è un una per non con sono nel alla come".split()
    ),
    "pt": frozenset(
        "o a os as de do da e que em um uma para com não se por mais dos das ao".split()
    ),
}


def detect_language(text: str, fallback: str = "fr") -> str:
    """
    Stopword vote over the first few thousand characters; `fallback` when the
    text is empty or no language gets enough hits.
    """
    if not text:
        return fallback
    words = [w.lower() for w in _WORD_RE.findall(text[:_SAMPLE_CHARS])]
    if not words:
        return fallback
    scores = {lang: sum(1 for w in words if w in sw) for lang, sw in STOPWORDS.items()}
    best = max(scores, key=lambda k: scores[k])
    return best if scores[best] >= _MIN_HITS else fallback
