"""MCP tools for reading playbooks and editing their items."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from mcp.types import TextContent, Tool

from lorebook.errors import LorebookError
from lorebook.mcp_tools.common import ACTOR_SCHEMA, _error, _text, _validate_actor, _validate_str


def register() -> tuple[list[Tool], dict[str, Callable[..., Any]]]:
    """Return (tool_definitions, handler_map) for playbook and item tools."""
    tools = [
        Tool(
            name="list_playbooks",
            description="List playbooks in a workspace (default workspace if omitted), newest first",
            inputSchema={
                "type": "object",
                "properties": {
                    "workspace_id": {"type": "string", "description": "Workspace ID"},
                    "search": {"type": "string", "description": "Substring match on title and description"},
                    "include_archived": {"type": "boolean", "default": False},
                },
            },
        ),
        Tool(
            name="get_playbook",
            description="Get a playbook with its ordered items and clone sync status",
            inputSchema={
                "type": "object",
                "properties": {"playbook_id": {"type": "string", "description": "Playbook ID"}},
                "required": ["playbook_id"],
            },
        ),
        Tool(
            name="add_item",
            description="Append an item to a playbook. Returns the item plus an advisory duplicate-URL check",
            inputSchema={
                "type": "object",
                "properties": {
                    "playbook_id": {"type": "string"},
                    "title": {"type": "string"},
                    "url": {"type": "string"},
                    "description": {"type": "string", "default": ""},
                    "actor": ACTOR_SCHEMA,
                },
                "required": ["playbook_id", "title", "url"],
            },
        ),
        Tool(
            name="move_item",
            description="Move an item one position up or down within its playbook",
            inputSchema={
                "type": "object",
                "properties": {
                    "item_id": {"type": "string"},
                    "direction": {"type": "string", "enum": ["up", "down"]},
                    "actor": ACTOR_SCHEMA,
                },
                "required": ["item_id", "direction"],
            },
        ),
        Tool(
            name="check_duplicate",
            description="Check whether a URL already exists in this playbook or another playbook of its workspace",
            inputSchema={
                "type": "object",
                "properties": {
                    "playbook_id": {"type": "string"},
                    "url": {"type": "string"},
                },
                "required": ["playbook_id", "url"],
            },
        ),
    ]

    handlers: dict[str, Callable[..., Any]] = {
        "list_playbooks": _handle_list_playbooks,
        "get_playbook": _handle_get_playbook,
        "add_item": _handle_add_item,
        "move_item": _handle_move_item,
        "check_duplicate": _handle_check_duplicate,
    }
    return tools, handlers


async def _handle_list_playbooks(arguments: dict[str, Any]) -> list[TextContent]:
    from lorebook.mcp_server import _default_workspace, _get_db

    for name in ("workspace_id", "search"):
        if err := _validate_str(arguments.get(name), name):
            return err
    workspace_id = arguments.get("workspace_id") or _default_workspace()
    if not workspace_id:
        return _text({"error": "workspace_id is required", "code": "validation_error"})
    tracker = _get_db()
    try:
        playbooks = tracker.list_playbooks(
            workspace_id,
            include_archived=bool(arguments.get("include_archived", False)),
            search=arguments.get("search"),
        )
    except LorebookError as e:
        return _error(e)
    return _text([p.to_dict() for p in playbooks])


async def _handle_get_playbook(arguments: dict[str, Any]) -> list[TextContent]:
    from lorebook.mcp_server import _get_db

    if err := _validate_str(arguments.get("playbook_id"), "playbook_id", required=True):
        return err
    tracker = _get_db()
    playbook_id = arguments["playbook_id"]
    try:
        playbook = tracker.get_playbook(playbook_id)
        items = tracker.list_items(playbook_id)
        status = tracker.get_sync_status(playbook_id)
    except LorebookError as e:
        return _error(e)
    return _text({**playbook.to_dict(), "items": [i.to_dict() for i in items], "sync": status})


async def _handle_add_item(arguments: dict[str, Any]) -> list[TextContent]:
    from lorebook.mcp_server import _get_db

    for name in ("playbook_id", "title", "url"):
        if err := _validate_str(arguments.get(name), name, required=True):
            return err
    actor, actor_err = _validate_actor(arguments.get("actor", "mcp"))
    if actor_err:
        return actor_err
    tracker = _get_db()
    try:
        warning = tracker.check_duplicate(arguments["url"], arguments["playbook_id"])
        item = tracker.append_item(
            arguments["playbook_id"],
            arguments["title"],
            arguments["url"],
            arguments.get("description") or "",
            actor=actor,
        )
    except (ValueError, LorebookError) as e:
        return _error(e)
    return _text({**item.to_dict(), "duplicate": warning.to_dict()})


async def _handle_move_item(arguments: dict[str, Any]) -> list[TextContent]:
    from lorebook.mcp_server import _get_db

    if err := _validate_str(arguments.get("item_id"), "item_id", required=True):
        return err
    actor, actor_err = _validate_actor(arguments.get("actor", "mcp"))
    if actor_err:
        return actor_err
    tracker = _get_db()
    try:
        moved = tracker.move_item(arguments["item_id"], arguments.get("direction", ""), actor=actor)
        item = tracker.get_item(arguments["item_id"])
    except (ValueError, LorebookError) as e:
        return _error(e)
    return _text({"moved": moved, "item_id": item.id, "order": item.order})


async def _handle_check_duplicate(arguments: dict[str, Any]) -> list[TextContent]:
    from lorebook.mcp_server import _get_db

    for name in ("playbook_id", "url"):
        if err := _validate_str(arguments.get(name), name, required=True):
            return err
    tracker = _get_db()
    try:
        tracker.get_playbook(arguments["playbook_id"])
        warning = tracker.check_duplicate(arguments["url"], arguments["playbook_id"])
    except LorebookError as e:
        return _error(e)
    return _text(warning.to_dict())
