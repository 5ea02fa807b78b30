"""Clone and sync route handlers."""

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
    _parse_bool_value,
    _parse_json_body,
    _validate_actor,
)
from lorebook.errors import LorebookError

logger = logging.getLogger(__name__)


def create_router() -> APIRouter:
    """Build the APIRouter for clone, divergence and sync endpoints."""
    from fastapi import APIRouter, Depends
    from fastapi.responses import JSONResponse

    from lorebook.dashboard import _get_db

    router = APIRouter()

    @router.get("/playbook/{playbook_id}/new-content")
    async def api_new_content(playbook_id: str, db: LorebookDB = Depends(_get_db)) -> JSONResponse:
        try:
            status = db.get_sync_status(playbook_id)
        except LorebookError as e:
            return _core_error_response(e)
        return JSONResponse(status)

    @router.post("/playbook/{playbook_id}/sync")
    async def api_sync(playbook_id: str, request: Request, db: LorebookDB = Depends(_get_db)) -> JSONResponse:
        """Recompute divergence and merge it. Repeating the call adds nothing."""
        body = await _parse_json_body(request) if await request.body() else {}
        if isinstance(body, JSONResponse):
            return body
        actor, actor_err = _validate_actor(body.get("actor", "dashboard"))
        if actor_err:
            return actor_err
        try:
            added = db.sync_playbook(playbook_id, actor=actor)
            playbook = db.get_playbook(playbook_id)
        except LorebookError as e:
            return _core_error_response(e)
        return JSONResponse({"added": added, "playbook": playbook.to_dict()})

    @router.post("/clone")
    async def api_clone(request: Request, db: LorebookDB = Depends(_get_db)) -> JSONResponse:
        """Clone by ``share_code`` (or ``playbook_id``) into ``workspace_id``.

        An existing clone in the destination is returned with 200 unless
        ``force`` is set; a new clone is 201.
        """
        body = await _parse_json_body(request)
        if isinstance(body, JSONResponse):
            return body
        share_code = body.get("share_code")
        source_id = body.get("playbook_id")
        if not isinstance(share_code, str) and not isinstance(source_id, str):
            return _error_response("share_code or playbook_id is required", "VALIDATION_ERROR", 400)
        workspace_id = body.get("workspace_id") or read_config(db.db_path.parent).get("default_workspace")
        if not isinstance(workspace_id, str) or not workspace_id:
            return _error_response("workspace_id is required", "VALIDATION_ERROR", 400)
        force = _parse_bool_value(body.get("force", False), "force")
        if not isinstance(force, bool):
            return force
        actor, actor_err = _validate_actor(body.get("actor", "dashboard"))
        if actor_err:
            return actor_err

        try:
            origin = db.resolve_share_code(share_code) if isinstance(share_code, str) else db.get_playbook(str(source_id))
            existing = db.find_existing_clone(origin.id, workspace_id)
            if existing is not None and not force:
                return JSONResponse({"status": "already_cloned", "playbook": existing.to_dict()})
            playbook = db.clone_playbook(origin.id, workspace_id, actor=actor)
        except LorebookError as e:
            return _core_error_response(e)
        return JSONResponse({"status": "cloned", "playbook": playbook.to_dict()}, status_code=201)

    return router
