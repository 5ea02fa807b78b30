"""MCP tools for cloning, origin sync and share links."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from mcp.types import TextContent, Tool

from lorebook.db_sharing import VALID_SHARE_KINDS, share_path
from lorebook.errors import LorebookError
from lorebook.mcp_tools.common import ACTOR_SCHEMA, _error, _text, _validate_actor, _validate_str


def register() -> tuple[list[Tool], dict[str, Callable[..., Any]]]:
    """Return (tool_definitions, handler_map) for clone, sync and sharing tools."""
    tools = [
        Tool(
            name="clone_playbook",
            description=(
                "Clone a public playbook (by share_code or playbook_id) into a workspace. "
                "Returns the existing clone instead when the workspace already has one, unless force is true."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "share_code": {"type": "string"},
                    "playbook_id": {"type": "string"},
                    "workspace_id": {"type": "string", "description": "Destination (default workspace if omitted)"},
                    "force": {"type": "boolean", "default": False},
                    "actor": ACTOR_SCHEMA,
                },
            },
        ),
        Tool(
            name="check_new_content",
            description="List origin items a cloned playbook does not have yet",
            inputSchema={
                "type": "object",
                "properties": {"playbook_id": {"type": "string", "description": "Clone playbook ID"}},
                "required": ["playbook_id"],
            },
        ),
        Tool(
            name="sync_playbook",
            description="Append the origin's new items to a cloned playbook. Safe to repeat",
            inputSchema={
                "type": "object",
                "properties": {"playbook_id": {"type": "string"}, "actor": ACTOR_SCHEMA},
                "required": ["playbook_id"],
            },
        ),
        Tool(
            name="set_visibility",
            description="Make a playbook public or private. The share code never changes",
            inputSchema={
                "type": "object",
                "properties": {"playbook_id": {"type": "string"}, "public": {"type": "boolean"}},
                "required": ["playbook_id", "public"],
            },
        ),
        Tool(
            name="open_shared",
            description="Open a share code: returns the content if public, else a not_found or private error",
            inputSchema={
                "type": "object",
                "properties": {
                    "code": {"type": "string"},
                    "kind": {"type": "string", "enum": sorted(VALID_SHARE_KINDS), "default": "playbook"},
                },
                "required": ["code"],
            },
        ),
    ]

    handlers: dict[str, Callable[..., Any]] = {
        "clone_playbook": _handle_clone_playbook,
        "check_new_content": _handle_check_new_content,
        "sync_playbook": _handle_sync_playbook,
        "set_visibility": _handle_set_visibility,
        "open_shared": _handle_open_shared,
    }
    return tools, handlers


async def _handle_clone_playbook(arguments: dict[str, Any]) -> list[TextContent]:
    from lorebook.mcp_server import _default_workspace, _get_db

    for name in ("share_code", "playbook_id", "workspace_id"):
        if err := _validate_str(arguments.get(name), name):
            return err
    if not arguments.get("share_code") and not arguments.get("playbook_id"):
        return _text({"error": "share_code or playbook_id is required", "code": "validation_error"})
    workspace_id = arguments.get("workspace_id") or _default_workspace()
    if not workspace_id:
        return _text({"error": "workspace_id is required", "code": "validation_error"})
    actor, actor_err = _validate_actor(arguments.get("actor", "mcp"))
    if actor_err:
        return actor_err

    tracker = _get_db()
    try:
        if arguments.get("share_code"):
            origin = tracker.resolve_share_code(arguments["share_code"])
        else:
            origin = tracker.get_playbook(arguments["playbook_id"])
        existing = tracker.find_existing_clone(origin.id, workspace_id)
        if existing is not None and not arguments.get("force", False):
            return _text({"status": "already_cloned", "playbook": existing.to_dict()})
        playbook = tracker.clone_playbook(origin.id, workspace_id, actor=actor)
    except LorebookError as e:
        return _error(e)
    return _text({"status": "cloned", "playbook": playbook.to_dict()})


async def _handle_check_new_content(arguments: dict[str, Any]) -> list[TextContent]:
    from lorebook.mcp_server import _get_db

    if err := _validate_str(arguments.get("playbook_id"), "playbook_id", required=True):
        return err
    tracker = _get_db()
    try:
        status = tracker.get_sync_status(arguments["playbook_id"])
    except LorebookError as e:
        return _error(e)
    return _text(status)


async def _handle_sync_playbook(arguments: dict[str, Any]) -> list[TextContent]:
    from lorebook.mcp_server import _get_db

    if err := _validate_str(arguments.get("playbook_id"), "playbook_id", required=True):
        return err
    actor, actor_err = _validate_actor(arguments.get("actor", "mcp"))
    if actor_err:
        return actor_err
    tracker = _get_db()
    try:
        added = tracker.sync_playbook(arguments["playbook_id"], actor=actor)
        playbook = tracker.get_playbook(arguments["playbook_id"])
    except LorebookError as e:
        return _error(e)
    return _text({"added": added, "sync_baseline": playbook.sync_baseline, "item_count": playbook.item_count})


async def _handle_set_visibility(arguments: dict[str, Any]) -> list[TextContent]:
    from lorebook.mcp_server import _get_db

    if err := _validate_str(arguments.get("playbook_id"), "playbook_id", required=True):
        return err
    is_public = arguments.get("public")
    if not isinstance(is_public, bool):
        return _text({"error": "public must be a boolean", "code": "validation_error"})
    tracker = _get_db()
    try:
        code = tracker.set_visibility(arguments["playbook_id"], is_public)
    except LorebookError as e:
        return _error(e)
    return _text(
        {
            "playbook_id": arguments["playbook_id"],
            "visibility": "public" if is_public else "private",
            "share_code": code,
            "share_path": share_path("playbook", code),
        }
    )


async def _handle_open_shared(arguments: dict[str, Any]) -> list[TextContent]:
    from lorebook.mcp_server import _get_db

    if err := _validate_str(arguments.get("code"), "code", required=True):
        return err
    kind = arguments.get("kind", "playbook")
    if kind not in VALID_SHARE_KINDS:
        return _text({"error": f"kind must be one of: {', '.join(sorted(VALID_SHARE_KINDS))}", "code": "validation_error"})
    tracker = _get_db()
    try:
        view = tracker.resolve_shared_view(kind, arguments["code"])
    except LorebookError as e:
        return _error(e)
    if view["state"] == "not_found":
        return _text({"error": f"No {kind} is shared under code: {arguments['code']}", "code": "not_found"})
    if view["state"] == "private":
        return _text({"error": f"This {kind} is private", "code": "private"})
    return _text(view)
