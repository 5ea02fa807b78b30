"""Pure helpers shared across MCP tool modules.

This module has NO dependency on ``mcp_server`` module globals, so it can
be imported freely without triggering circular-import issues.
"""

from __future__ import annotations

import json
from typing import Any

from mcp.types import TextContent

from lorebook.errors import NotFoundError, PartialWriteFailure, PrivatePlaybookError, StoreError
from lorebook.types.api import ErrorResponse
from lorebook.validation import sanitize_actor

ACTOR_SCHEMA = {"type": "string", "description": "Agent/user identity for the activity trail"}


def _text(content: object) -> list[TextContent]:
    if isinstance(content, str):
        return [TextContent(type="text", text=content)]
    return [TextContent(type="text", text=json.dumps(content, indent=2, default=str))]


def _error(exc: Exception) -> list[TextContent]:
    """Translate a core exception into the MCP error envelope."""
    data: ErrorResponse = {"error": str(exc), "code": "validation_error"}
    if isinstance(exc, NotFoundError):
        data["code"] = "not_found"
    elif isinstance(exc, PrivatePlaybookError):
        data["code"] = "private"
    elif isinstance(exc, PartialWriteFailure):
        data["code"] = "partial_write"
        data["written"] = exc.written
        data["total"] = exc.total
    elif isinstance(exc, StoreError):
        data["code"] = "store_error"
    return _text(data)


def _validate_str(value: Any, name: str, *, required: bool = False) -> list[TextContent] | None:
    """Return a validation error if *value* is not a string (or missing when required)."""
    if value is None:
        if required:
            return _text({"error": f"{name} is required", "code": "validation_error"})
        return None
    if not isinstance(value, str):
        return _text({"error": f"{name} must be a string", "code": "validation_error"})
    return None


def _validate_actor(value: Any) -> tuple[str, list[TextContent] | None]:
    """Sanitize actor, returning (cleaned, None) or ("", error_response)."""
    cleaned, err = sanitize_actor(value)
    if err:
        return ("", _text({"error": err, "code": "validation_error"}))
    return (cleaned, None)
