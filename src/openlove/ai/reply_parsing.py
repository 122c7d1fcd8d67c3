"""Normalization of the advice webhook's loosely shaped replies.

Workflow builders return the answer in many shapes: a bare string, an object
keyed by one of several synonyms, the same object wrapped one level deeper,
or a single-element list of any of those. :func:`extract_reply_text` walks
those shapes in a fixed order and :func:`normalize_reply_text` cleans the
text that comes out.
"""

from __future__ import annotations

import json
from typing import Any, Mapping

REPLY_FIELDS: tuple[str, ...] = (
    "output",
    "response",
    "message",
    "answer",
    "reply",
    "result",
    "content",
    "text",
    "ai_response",
    "data",
)
WRAPPER_FIELDS: tuple[str, ...] = ("data", "body", "result", "payload", "json")

_QUOTE_PAIRS = {'"': '"', "'": "'", "“": "”"}
_ESCAPES: tuple[tuple[str, str], ...] = (("\\n", "\n"), ("\\t", "\t"), ("\\/", "/"))


class MalformedBodyError(ValueError):
    """Raised when a body that looks like JSON cannot be decoded."""


def decode_body(body: str) -> Any:
    """Return the payload carried by a raw response body.

    Only bodies that start with ``{`` or ``[`` are parsed as JSON; anything
    else is the reply text itself. Blank bodies decode to ``None``.
    """

    stripped = (body or "").strip()
    if not stripped:
        return None
    if stripped[0] not in "{[":
        return stripped
    try:
        return json.loads(stripped)
    except json.JSONDecodeError as exc:
        raise MalformedBodyError(f"Response body is not valid JSON: {exc.msg}") from exc


def extract_reply_text(payload: Any) -> str | None:
    """Return the answer text carried by ``payload`` or ``None``."""

    if isinstance(payload, str):
        return payload if payload.strip() else None
    if isinstance(payload, Mapping):
        found = _known_field(payload)
        if found is not None:
            return found
        for wrapper in WRAPPER_FIELDS:
            nested = payload.get(wrapper)
            if isinstance(nested, Mapping):
                found = _known_field(nested)
                if found is not None:
                    return found
        return _first_string(payload)
    if isinstance(payload, list) and payload:
        return extract_reply_text(payload[0])
    return None


def normalize_reply_text(text: str) -> str:
    """Strip one pair of wrapping quotes, unescape literal escapes and trim."""

    cleaned = text.strip()
    if len(cleaned) >= 2:
        closing = _QUOTE_PAIRS.get(cleaned[0])
        if closing is not None and cleaned[-1] == closing:
            cleaned = cleaned[1:-1]
    for literal, actual in _ESCAPES:
        cleaned = cleaned.replace(literal, actual)
    return cleaned.strip()


def _known_field(payload: Mapping[str, Any]) -> str | None:
    for name in REPLY_FIELDS:
        value = payload.get(name)
        if isinstance(value, str) and value.strip():
            return value
    return None


def _first_string(payload: Any) -> str | None:
    # Last resort: first non-empty string anywhere, depth-first in key order.
    if isinstance(payload, str):
        return payload if payload.strip() else None
    if isinstance(payload, Mapping):
        values = payload.values()
    elif isinstance(payload, list):
        values = payload
    else:
        return None
    for value in values:
        found = _first_string(value)
        if found is not None:
            return found
    return None


__all__ = [
    "MalformedBodyError",
    "REPLY_FIELDS",
    "WRAPPER_FIELDS",
    "decode_body",
    "extract_reply_text",
    "normalize_reply_text",
]
