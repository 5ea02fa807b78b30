"""Playbook and item route handlers."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from starlette.requests import Request

if TYPE_CHECKING:
    from fastapi import APIRouter

from lorebook.core import LorebookDB, read_config
from lorebook.dashboard_routes.common import (
    _core_error_response,
    _error_response,
    _optional_str,
    _parse_bool_value,
    _parse_json_body,
    _require_str,
    _validate_actor,
)
from lorebook.errors import LorebookError
from lorebook.types.api import PlaybookDetail

logger = logging.getLogger(__name__)


def _default_workspace(db: LorebookDB) -> str | None:
    return read_config(db.db_path.parent).get("default_workspace")


# ---------------------------------------------------------------------------
# Router factory
# ---------------------------------------------------------------------------


def create_router() -> APIRouter:
    """Build the APIRouter for playbook and item endpoints.

    NOTE: All handlers are async despite doing synchronous SQLite I/O.
    This serializes DB access on the event loop thread, so the single
    shared connection is never used from two threads at once.
    """
    from fastapi import APIRouter, Depends
    from fastapi.responses import JSONResponse

    from lorebook.dashboard import _get_db

    router = APIRouter()

    @router.get("/playbooks")
    async def api_playbooks(request: Request, db: LorebookDB = Depends(_get_db)) -> JSONResponse:
        params = request.query_params
        workspace_id = params.get("workspace_id") or _default_workspace(db)
        if not workspace_id:
            return _error_response("workspace_id is required", "VALIDATION_ERROR", 400)
        include_archived = _parse_bool_value(params.get("include_archived", "false"), "include_archived")
        if not isinstance(include_archived, bool):
            return include_archived
        try:
            playbooks = db.list_playbooks(workspace_id, include_archived=include_archived, search=params.get("search"))
        except LorebookError as e:
            return _core_error_response(e)
        return JSONResponse([p.to_dict() for p in playbooks])

    @router.post("/playbooks")
    async def api_create_playbook(request: Request, db: LorebookDB = Depends(_get_db)) -> JSONResponse:
        body = await _parse_json_body(request)
        if isinstance(body, JSONResponse):
            return body
        title = _require_str(body, "title")
        if isinstance(title, JSONResponse):
            return title
        actor, actor_err = _validate_actor(body.get("actor", "dashboard"))
        if actor_err:
            return actor_err
        workspace_id = body.get("workspace_id") or _default_workspace(db)
        if not workspace_id:
            return _error_response("workspace_id is required", "VALIDATION_ERROR", 400)
        try:
            playbook = db.create_playbook(
                workspace_id,
                title,
                description=body.get("description") or "",
                tool_url=body.get("tool_url"),
                category_id=body.get("category_id"),
                visibility=body.get("visibility", "private"),
                actor=actor,
            )
        except (ValueError, LorebookError) as e:
            return _core_error_response(e)
        return JSONResponse(playbook.to_dict(), status_code=201)

    @router.get("/playbook/{playbook_id}")
    async def api_playbook_detail(playbook_id: str, db: LorebookDB = Depends(_get_db)) -> JSONResponse:
        """Playbook with ordered items and clone sync status."""
        try:
            playbook = db.get_playbook(playbook_id)
            items = db.list_items(playbook_id)
            status = db.get_sync_status(playbook_id)
        except LorebookError as e:
            return _core_error_response(e)
        detail = PlaybookDetail(**playbook.to_dict(), items=[i.to_dict() for i in items], sync=status)
        return JSONResponse(detail)

    @router.patch("/playbook/{playbook_id}")
    async def api_update_playbook(playbook_id: str, request: Request, db: LorebookDB = Depends(_get_db)) -> JSONResponse:
        body = await _parse_json_body(request)
        if isinstance(body, JSONResponse):
            return body
        fields: dict[str, str | None] = {}
        for name in ("title", "description", "tool_url", "category_id"):
            value = _optional_str(body, name)
            if isinstance(value, JSONResponse):
                return value
            fields[name] = value
        actor, actor_err = _validate_actor(body.get("actor", "dashboard"))
        if actor_err:
            return actor_err
        try:
            playbook = db.update_playbook(playbook_id, **fields, actor=actor)  # type: ignore[arg-type]
        except (ValueError, LorebookError) as e:
            return _core_error_response(e)
        return JSONResponse(playbook.to_dict())

    @router.post("/playbook/{playbook_id}/archive")
    async def api_archive_playbook(playbook_id: str, db: LorebookDB = Depends(_get_db)) -> JSONResponse:
        try:
            playbook = db.archive_playbook(playbook_id, actor="dashboard")
        except LorebookError as e:
            return _core_error_response(e)
        return JSONResponse(playbook.to_dict())

    @router.post("/playbook/{playbook_id}/items")
    async def api_add_item(playbook_id: str, request: Request, db: LorebookDB = Depends(_get_db)) -> JSONResponse:
        """Append an item. The duplicate check is returned alongside, never enforced."""
        body = await _parse_json_body(request)
        if isinstance(body, JSONResponse):
            return body
        title = _require_str(body, "title")
        if isinstance(title, JSONResponse):
            return title
        url = _require_str(body, "url")
        if isinstance(url, JSONResponse):
            return url
        description = _optional_str(body, "description")
        if isinstance(description, JSONResponse):
            return description
        actor, actor_err = _validate_actor(body.get("actor", "dashboard"))
        if actor_err:
            return actor_err
        try:
            warning = db.check_duplicate(url, playbook_id)
            item = db.append_item(playbook_id, title, url, description or "", actor=actor)
        except (ValueError, LorebookError) as e:
            return _core_error_response(e)
        return JSONResponse({**item.to_dict(), "duplicate": warning.to_dict()}, status_code=201)

    @router.patch("/item/{item_id}")
    async def api_update_item(item_id: str, request: Request, db: LorebookDB = Depends(_get_db)) -> JSONResponse:
        body = await _parse_json_body(request)
        if isinstance(body, JSONResponse):
            return body
        fields: dict[str, str | None] = {}
        for name in ("title", "url", "description"):
            value = _optional_str(body, name)
            if isinstance(value, JSONResponse):
                return value
            fields[name] = value
        try:
            item = db.update_item(item_id, **fields)
        except (ValueError, LorebookError) as e:
            return _core_error_response(e)
        return JSONResponse(item.to_dict())

    @router.delete("/item/{item_id}")
    async def api_delete_item(item_id: str, db: LorebookDB = Depends(_get_db)) -> JSONResponse:
        try:
            item = db.get_item(item_id)
            db.delete_item(item_id, actor="dashboard")
            remaining = db.list_items(item.playbook_id)
        except LorebookError as e:
            return _core_error_response(e)
        return JSONResponse({"deleted": item_id, "items": [i.to_dict() for i in remaining]})

    @router.post("/item/{item_id}/move")
    async def api_move_item(item_id: str, request: Request, db: LorebookDB = Depends(_get_db)) -> JSONResponse:
        body = await _parse_json_body(request)
        if isinstance(body, JSONResponse):
            return body
        direction = body.get("direction")
        if direction not in ("up", "down"):
            return _error_response("direction must be 'up' or 'down'", "VALIDATION_ERROR", 400)
        actor, actor_err = _validate_actor(body.get("actor", "dashboard"))
        if actor_err:
            return actor_err
        try:
            moved = db.move_item(item_id, direction, actor=actor)
            item = db.get_item(item_id)
            items = db.list_items(item.playbook_id)
        except (ValueError, LorebookError) as e:
            return _core_error_response(e)
        return JSONResponse({"moved": moved, "items": [i.to_dict() for i in items]})

    @router.get("/playbook/{playbook_id}/duplicate")
    async def api_check_duplicate(playbook_id: str, request: Request, db: LorebookDB = Depends(_get_db)) -> JSONResponse:
        url = request.query_params.get("url", "")
        if not url.strip():
            return _error_response("url query parameter is required", "VALIDATION_ERROR", 400)
        try:
            db.get_playbook(playbook_id)
            warning = db.check_duplicate(url, playbook_id)
        except LorebookError as e:
            return _core_error_response(e)
        return JSONResponse(warning.to_dict())

    return router
