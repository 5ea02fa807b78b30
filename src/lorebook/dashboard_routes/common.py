"""Shared helpers for dashboard route modules."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from fastapi.responses import JSONResponse
    from starlette.requests import Request

from lorebook.errors import NotFoundError, PartialWriteFailure, PrivatePlaybookError, StoreError
from lorebook.validation import sanitize_actor as _sanitize_actor

logger = logging.getLogger(__name__)

_BOOL_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_BOOL_FALSE_VALUES = frozenset({"0", "false", "no", "off"})

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _error_response(
    message: str,
    code: str,
    status_code: int,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    """Return a structured error response and log the error."""
    from fastapi.responses import JSONResponse

    logger.warning("API error [%s] %s: %s", status_code, code, message)
    return JSONResponse(
        {"error": {"message": message, "code": code, "details": details or {}}},
        status_code=status_code,
    )


def _core_error_response(exc: Exception) -> JSONResponse:
    """Map a core exception onto the HTTP error envelope."""
    if isinstance(exc, NotFoundError):
        return _error_response(str(exc), "NOT_FOUND", 404)
    if isinstance(exc, PrivatePlaybookError):
        return _error_response(str(exc), "PRIVATE", 403, {"kind": exc.kind, "id": exc.resource_id})
    if isinstance(exc, PartialWriteFailure):
        return _error_response(
            str(exc),
            "PARTIAL_WRITE",
            500,
            {"playbook_id": exc.playbook_id, "written": exc.written, "total": exc.total},
        )
    if isinstance(exc, StoreError):
        return _error_response(str(exc), "STORE_ERROR", 500)
    return _error_response(str(exc), "VALIDATION_ERROR", 400)


async def _parse_json_body(request: Request) -> dict[str, Any] | JSONResponse:
    """Parse and validate a JSON object body, returning 400 on failure."""
    import json

    try:
        body = await request.json()
    except (json.JSONDecodeError, ValueError, UnicodeDecodeError):
        return _error_response("Invalid JSON body", "VALIDATION_ERROR", 400)
    if not isinstance(body, dict):
        return _error_response("Request body must be a JSON object", "VALIDATION_ERROR", 400)
    return body


def _validate_actor(value: Any) -> tuple[str, JSONResponse | None]:
    """Validate an actor name from JSON body.

    Returns (cleaned_actor, None) on success or ("", JSONResponse) on error.
    """
    cleaned, err = _sanitize_actor(value)
    if err:
        return ("", _error_response(err, "VALIDATION_ERROR", 400))
    return (cleaned, None)


def _require_str(body: dict[str, Any], name: str) -> str | JSONResponse:
    """Return a required, non-blank string field from a JSON body."""
    value = body.get(name)
    if not isinstance(value, str) or not value.strip():
        return _error_response(f"{name} is required and must be a non-empty string", "VALIDATION_ERROR", 400)
    return value


def _optional_str(body: dict[str, Any], name: str) -> str | None | JSONResponse:
    value = body.get(name)
    if value is None or isinstance(value, str):
        return value
    return _error_response(f"{name} must be a string", "VALIDATION_ERROR", 400)


def _parse_bool_value(raw: Any, name: str) -> bool | JSONResponse:
    """Accept JSON booleans or the usual true/false spellings."""
    if isinstance(raw, bool):
        return raw
    value = str(raw).strip().lower()
    if value in _BOOL_TRUE_VALUES:
        return True
    if value in _BOOL_FALSE_VALUES:
        return False
    return _error_response(
        f'Invalid value for {name}: "{raw}". Must be one of true/false, 1/0, yes/no, on/off.',
        "VALIDATION_ERROR",
        400,
        {"param": name, "value": raw},
    )
