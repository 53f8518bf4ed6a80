"""
Response decoding: raw model text -> JSON value.

Models wrap JSON in markdown fences even when asked not to, and chat-style
providers in JSON-object mode cannot return a bare array, so they tend to
wrap a requested list in a named envelope ({"questions": [...]}). Both are
undone here. Required fields are NOT checked: call sites fill defaults.
"""

from __future__ import annotations

import json
import re
from typing import Any

from src.llm_errors import DecodeError

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)


def clean_json(text: str | None) -> str:
    """Strip code-fence markers and surrounding whitespace."""
    if not text:
        return ""
    return _FENCE_RE.sub("", text).strip()


def ensure_sequence(value: Any) -> list[Any]:
    """Coerce a decoded value into a list.

    An object with exactly one list-valued property is unwrapped; any other
    object becomes a one-element list. None becomes an empty list.
    """
    if isinstance(value, list):
        return value
    if value is None:
        return []
    if isinstance(value, dict):
        list_props = [v for v in value.values() if isinstance(v, list)]
        if len(list_props) == 1:
            return list_props[0]
    return [value]


def decode(raw_text: str | None, expect_sequence: bool = False) -> Any:
    """Parse model output as JSON. Raises DecodeError on empty or unparseable text."""
    cleaned = clean_json(raw_text)
    if not cleaned:
        raise DecodeError("Empty response text", raw_text=raw_text or "")
    try:
        value = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise DecodeError(f"Invalid JSON in response: {e.msg} at position {e.pos}", raw_text=cleaned[:500]) from e
    if expect_sequence:
        return ensure_sequence(value)
    return value
