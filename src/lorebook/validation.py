"""Shared validation functions for all entry points.

Pure functions with no MCP, FastAPI or Click dependencies.
"""

from __future__ import annotations

import unicodedata
from typing import Any

_MAX_ACTOR_LENGTH = 128
_MAX_URL_LENGTH = 2048


def _first_control_char(value: str) -> str | None:
    for ch in value:
        if unicodedata.category(ch).startswith("C"):  # Cc (control) and Cf (format)
            return ch
    return None


def sanitize_actor(value: Any) -> tuple[str, str | None]:
    """Validate and clean an actor name.

    Returns (cleaned_actor, None) on success or ("", error_message) on failure.
    Strips whitespace, then checks: non-empty, max length, no control/format chars.
    """
    if not isinstance(value, str):
        return ("", "actor must be a string")
    # Check for control/format chars before stripping: reject "\nbad" rather
    # than silently absorbing the newline via strip().
    ch = _first_control_char(value)
    if ch is not None:
        return ("", f"actor must not contain control characters (found U+{ord(ch):04X})")
    cleaned = value.strip()
    if not cleaned:
        return ("", "actor must not be empty")
    if len(cleaned) > _MAX_ACTOR_LENGTH:
        return ("", f"actor must be at most {_MAX_ACTOR_LENGTH} characters")
    return (cleaned, None)


def sanitize_url(value: Any) -> tuple[str, str | None]:
    """Validate a resource URL for storage.

    Only surrounding whitespace is removed. The URL is otherwise kept
    byte-for-byte: duplicate detection compares stored URLs exactly.
    """
    if not isinstance(value, str):
        return ("", "url must be a string")
    cleaned = value.strip()
    if not cleaned:
        return ("", "url must not be empty")
    ch = _first_control_char(cleaned)
    if ch is not None:
        return ("", f"url must not contain control characters (found U+{ord(ch):04X})")
    if len(cleaned) > _MAX_URL_LENGTH:
        return ("", f"url must be at most {_MAX_URL_LENGTH} characters")
    return (cleaned, None)
