# core/structured_output.py
"""
Structured-output extractor for model replies that should hold one JSON object.

Grammar, applied in order:

1. strip code-fence markers (```json / ```);
2. take the text between the first "{" and its matching top-level "}"
   (string literals and escapes are honoured while matching);
3. parse it as JSON;
4. validate fields: `tldr` must be a list, `summary` a string; `tldr` keeps
   its non-empty trimmed string entries, capped at 5, and needs at least 3;
   `summary` must be non-empty after trimming.

Each step fails with MalformedModelOutput naming the step.
"""
import json
import re
from typing import List, Tuple
from util.errors import MalformedModelOutput

_FENCE_RE = re.compile(r"```(?:json|JSON)?")

TLDR_MIN = 3
TLDR_MAX = 5


def strip_fences(raw: str) -> str:
    return _FENCE_RE.sub("", raw).strip()


def locate_object(text: str) -> str:
    start = text.find("{")
    if start < 0:
        raise MalformedModelOutput("No JSON object found in model output.")
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    raise MalformedModelOutput("Unbalanced JSON object in model output.")


def parse_summary_payload(raw: str) -> Tuple[List[str], str]:
    """
    Return (tldr, summary) from a model reply, or raise MalformedModelOutput.
    """
    body = locate_object(strip_fences(raw))
    try:
        parsed = json.loads(body)
    except json.JSONDecodeError as e:
        raise MalformedModelOutput(f"Model output is not valid JSON: {e.msg}") from e

    if not isinstance(parsed, dict):
        raise MalformedModelOutput("Model output is not a JSON object.")
    tldr_raw = parsed.get("tldr")
    summary_raw = parsed.get("summary")
    if not isinstance(tldr_raw, list) or not isinstance(summary_raw, str):
        raise MalformedModelOutput("Model output is missing `tldr` or `summary`.")

    tldr = [e.strip() for e in tldr_raw if isinstance(e, str) and e.strip()][:TLDR_MAX]
    if len(tldr) < TLDR_MIN:
        raise MalformedModelOutput("Model output has too few TL;DR bullets.")
    summary = summary_raw.strip()
    if not summary:
        raise MalformedModelOutput("Model output has an empty summary.")
    return tldr, summary
