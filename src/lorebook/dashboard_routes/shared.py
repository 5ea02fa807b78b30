"""Share-link and visibility route handlers.

``GET /api/shared/{kind}/{code}`` is what a share link renders: unknown
codes are 404 ``NOT_FOUND``, private resources are 403 ``PRIVATE``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from starlette.requests import Request

if TYPE_CHECKING:
    from fastapi import APIRouter

from lorebook.core import LorebookDB
from lorebook.dashboard_routes.common import _core_error_response, _error_response, _parse_bool_value, _parse_json_body
from lorebook.db_sharing import VALID_SHARE_KINDS, share_path
from lorebook.errors import LorebookError


def create_router() -> APIRouter:
    """Build the APIRouter for sharing endpoints."""
    from fastapi import APIRouter, Depends
    from fastapi.responses import JSONResponse

    from lorebook.dashboard import _get_db

    router = APIRouter()

    @router.post("/playbook/{playbook_id}/visibility")
    async def api_set_visibility(playbook_id: str, request: Request, db: LorebookDB = Depends(_get_db)) -> JSONResponse:
        body = await _parse_json_body(request)
        if isinstance(body, JSONResponse):
            return body
        if "public" not in body:
            return _error_response("public is required", "VALIDATION_ERROR", 400)
        is_public = _parse_bool_value(body["public"], "public")
        if not isinstance(is_public, bool):
            return is_public
        try:
            code = db.set_visibility(playbook_id, is_public)
            playbook = db.get_playbook(playbook_id)
        except LorebookError as e:
            return _core_error_response(e)
        return JSONResponse({"playbook": playbook.to_dict(), "share_code": code, "share_path": share_path("playbook", code)})

    @router.get("/shared/{kind}/{code}")
    async def api_shared(kind: str, code: str, db: LorebookDB = Depends(_get_db)) -> JSONResponse:
        if kind not in VALID_SHARE_KINDS:
            return _error_response(f"Unknown share kind: {kind}", "NOT_FOUND", 404)
        try:
            view = db.resolve_shared_view(kind, code)
        except LorebookError as e:
            return _core_error_response(e)
        if view["state"] == "not_found":
            return _error_response(f"No {kind} is shared under code: {code}", "NOT_FOUND", 404)
        if view["state"] == "private":
            return _error_response(f"This {kind} is private", "PRIVATE", 403)
        return JSONResponse(view)

    return router
