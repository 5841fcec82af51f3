"""
Structured response parsing for free-form model text.

Every public function here is pure and never raises: malformed or non-string
input yields ``None`` (or an empty string for ``strip_non_ascii``).

JSON extraction walks ``JSON_STRATEGIES`` in order, from the most structured
form to the least:
    1. a ```json fenced block
    2. any fenced block
    3. the span from the first ``{`` to the last ``}``
Each candidate is parsed strictly, then once more with trailing commas
removed. A candidate that still does not parse falls through to the next
strategy.
"""
import json
import logging
import re
from typing import Any, Callable, Dict, List, Optional, Sequence

logger = logging.getLogger(__name__)

_NON_PRINTABLE_ASCII = re.compile(r"[^\x20-\x7E\t\n\r]")
# Fence bodies are located with str.find: an unterminated fence is one linear scan
_JSON_FENCE_OPEN = re.compile(r"```json", re.IGNORECASE)
_FENCE_TAG_LINE = re.compile(r"[^\n`]*\n?")
_FENCE = "```"
_HTML_OPEN = re.compile(r"<html", re.IGNORECASE)
_HTML_CLOSE = re.compile(r"</html>", re.IGNORECASE)
_TRAILING_COMMA = re.compile(r",(\s*[}\]])")

DEFAULT_CODE_TAGS = ("js", "javascript")


def strip_non_ascii(text: str) -> str:
    """Drop every character outside printable ASCII (tab/newline/CR are kept)"""
    if not isinstance(text, str):
        return ""
    return _NON_PRINTABLE_ASCII.sub("", text)


def _fenced_body(text: str, body_start: int) -> Optional[str]:
    end = text.find(_FENCE, body_start)
    if end == -1:
        return None
    return text[body_start:end].strip()


def json_fence_candidate(text: str) -> Optional[str]:
    match = _JSON_FENCE_OPEN.search(text)
    return _fenced_body(text, match.end()) if match else None


def any_fence_candidate(text: str) -> Optional[str]:
    start = text.find(_FENCE)
    if start == -1:
        return None
    tag_line = _FENCE_TAG_LINE.match(text, start + len(_FENCE))
    return _fenced_body(text, tag_line.end())


def brace_span_candidate(text: str) -> Optional[str]:
    first = text.find("{")
    last = text.rfind("}")
    if first == -1 or last <= first:
        return None
    return text[first : last + 1]


JSON_STRATEGIES: List[Callable[[str], Optional[str]]] = [
    json_fence_candidate,
    any_fence_candidate,
    brace_span_candidate,
]


def parse_json_object(candidate: str) -> Optional[Dict[str, Any]]:
    """Parse ``candidate`` as a JSON object, retrying once without trailing commas"""
    for attempt in (candidate, _TRAILING_COMMA.sub(r"\1", candidate)):
        try:
            parsed = json.loads(attempt)
        except (json.JSONDecodeError, TypeError, ValueError):
            continue
        if isinstance(parsed, dict):
            return parsed
        return None
    return None


def extract_json(text: str) -> Optional[Dict[str, Any]]:
    """Best-effort extraction of a JSON object from model text"""
    if not isinstance(text, str) or not text.strip():
        return None

    for strategy in JSON_STRATEGIES:
        candidate = strategy(text)
        if not candidate:
            continue
        parsed = parse_json_object(candidate)
        if parsed is not None:
            return parsed
        logger.debug(f"JSON candidate from {strategy.__name__} did not parse, trying next strategy")

    return None


def extract_html(text: str) -> Optional[str]:
    """Full ``<html>...</html>`` span, case-insensitive"""
    if not isinstance(text, str):
        return None
    opening = _HTML_OPEN.search(text)
    if not opening:
        return None
    closing = None
    for closing in _HTML_CLOSE.finditer(text, opening.end()):
        pass
    return text[opening.start() : closing.end()] if closing else None


def extract_code(text: str, tags: Sequence[str] = DEFAULT_CODE_TAGS) -> Optional[str]:
    """Trimmed body of the first fenced block tagged with any of ``tags``"""
    if not isinstance(text, str) or not tags:
        return None
    alternatives = "|".join(re.escape(tag) for tag in sorted(tags, key=len, reverse=True))
    pattern = re.compile(r"```(?:" + alternatives + r")[ \t]*\n([\s\S]*?)```", re.IGNORECASE)
    match = pattern.search(text)
    if not match:
        return None
    body = match.group(1).strip()
    return body or None


def extract_text_or_whole(text: str) -> str:
    """Cleaned text, used when no structural marker is present at all"""
    return strip_non_ascii(text).strip()
