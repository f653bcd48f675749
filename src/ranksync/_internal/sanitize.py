"""Text normalization for persisted dump payloads.

Stored payloads travel through host property stores that sometimes
double-escape or inject raw control characters. sanitize_dump_text() is the
single step that turns such text back into strict JSON:

1. Escape sequences strict JSON rejects are rewritten to a canonical form:
   \\' -> ', \\& -> &, \\v -> \\u000b. Valid JSON escapes
   (\\" \\\\ \\/ \\b \\f \\n \\r \\t \\uXXXX) are kept as-is.
2. Raw control characters U+0000..U+001F are stripped. Inside JSON strings
   they are illegal; between tokens they are insignificant whitespace.

The function is pure and total: any str in, str out.
"""

import re
from typing import Optional

# backslash followed by one character; lone trailing backslash handled separately
_ESCAPE_RE = re.compile(r"\\(.)", re.DOTALL)
_CONTROL_RE = re.compile(r"[\x00-\x1f]+")

_CANONICAL_ESCAPES = {
    "'": "'",
    "&": "&",
    "v": "\\u000b",
}
_JSON_ESCAPES = frozenset('"\\/bfnrtu')

# Values meaning "nothing was ever persisted"
PLACEHOLDERS = frozenset({"", "{}", "undefined", "null"})


def _canonical_escape(match: "re.Match[str]") -> str:
    char = match.group(1)
    if char in _JSON_ESCAPES:
        return match.group(0)
    if char in _CANONICAL_ESCAPES:
        return _CANONICAL_ESCAPES[char]
    # unknown escape: keep the character, drop the backslash
    return char


def sanitize_dump_text(text: str) -> str:
    """Canonicalize escapes, then strip raw control characters."""
    normalized = _ESCAPE_RE.sub(_canonical_escape, text)
    return _CONTROL_RE.sub("", normalized)


def is_placeholder(text: Optional[str]) -> bool:
    """True when text is absent or one of the 'no value' placeholders."""
    if text is None:
        return True
    return text.strip() in PLACEHOLDERS
