"""
Version Extraction — Find the top-level `version` of a JSON document.

Remote documents can be large, so probes only read a fixed-size prefix.
A real JSON parse is tried first; when the prefix is truncated mid-document
the parse fails and a bounded textual scan takes over:

1. locate the first `{`
2. find the first `"version"` key (followed by a colon) within
   SCAN_WINDOW characters of it
3. accept it only if the braces before it leave exactly one object open
   (so a `version` inside a nested object is never mistaken for the root)
4. read the scalar that follows: a quoted string, or a run of digits/dots

A document that puts `version` beyond the prefix is reported as having
no version. Nothing here raises; "no version known" is None.
"""

from __future__ import annotations

import json
from typing import Any, Optional, Tuple

VERSION_KEY = "version"
SCAN_WINDOW = 500

_TOKEN = f'"{VERSION_KEY}"'
_DIGITS = "0123456789"
_WHITESPACE = " \t\r\n"


def decode_prefix(data: bytes) -> str:
    """Decode a byte prefix, dropping a BOM and any cut multibyte tail."""
    return data.decode("utf-8-sig", errors="ignore")


def extract_version(text: Optional[str]) -> Optional[str]:
    """
    Return the top-level `version` of a (possibly truncated) document.

    Numbers keep their literal spelling ("1.0" stays "1.0"); booleans are
    returned as "true"/"false". Objects, arrays and null yield None.
    """
    if not text:
        return None

    try:
        # Numbers stay as their source text so comparisons are exact
        document = json.loads(text, parse_int=str, parse_float=str)
    except (ValueError, RecursionError):
        return scan_top_level_version(text)

    if not isinstance(document, dict):
        return None
    return _scalar_text(document.get(VERSION_KEY))


def scan_top_level_version(text: str) -> Optional[str]:
    """Best-effort scan of a truncated document for its root `version`."""
    start = text.find("{")
    if start < 0:
        return None

    window = text[start:start + SCAN_WINDOW]
    index, colon = _find_key(window)
    if index < 0:
        return None

    before = window[:index]
    if before.count("{") != before.count("}") + 1:
        return None

    pos = _skip_whitespace(window, colon + 1)
    if pos >= len(window):
        return None

    first = window[pos]
    if first == '"':
        end = window.find('"', pos + 1)
        if end < 0:
            return None
        return window[pos + 1:end]

    if first in _DIGITS:
        end = pos
        while end < len(window) and (window[end] in _DIGITS or window[end] == "."):
            end += 1
        if end >= len(window):
            # Number runs into the cut-off point and may be incomplete
            return None
        return window[pos:end]

    return None


def _find_key(window: str) -> Tuple[int, int]:
    """Position of the first `"version"` used as a key, and of its colon."""
    index = window.find(_TOKEN)
    while index >= 0:
        colon = _skip_whitespace(window, index + len(_TOKEN))
        if colon < len(window) and window[colon] == ":":
            return index, colon
        index = window.find(_TOKEN, index + 1)
    return -1, -1


def _scalar_text(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    return None


def _skip_whitespace(text: str, pos: int) -> int:
    while pos < len(text) and text[pos] in _WHITESPACE:
        pos += 1
    return pos
