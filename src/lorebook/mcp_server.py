"""MCP server for lorebook.

Exposes playbook reading, item editing, cloning, sync and share links as
MCP tools. Direct SQLite, no daemon. Tool definitions and handlers live in
``mcp_tools/*.py``; each module's ``register()`` returns both.

Usage:
    lorebook-mcp                              # Auto-discover .lorebook/ from cwd
    lorebook-mcp --project /path/to/project   # Explicit project root
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from lorebook.core import DB_FILENAME, LOREBOOK_DIR_NAME, LorebookDB, find_lorebook_root, read_config
from lorebook.mcp_tools import playbooks as _playbook_tools
from lorebook.mcp_tools import sync as _sync_tools
from lorebook.mcp_tools.common import _text

# ---------------------------------------------------------------------------
# Server setup
# ---------------------------------------------------------------------------

server = Server("lorebook")
db: LorebookDB | None = None
_lorebook_dir: Path | None = None
_logger: logging.Logger | None = None

_TOOLS: list[Tool] = []
_HANDLERS: dict[str, Callable[..., Any]] = {}
for _register in (_playbook_tools.register, _sync_tools.register):
    _tools, _handlers = _register()
    _TOOLS.extend(_tools)
    _HANDLERS.update(_handlers)


def _get_db() -> LorebookDB:
    if db is None:
        msg = "Database not initialized"
        raise RuntimeError(msg)
    return db


def _default_workspace() -> str | None:
    if _lorebook_dir is None:
        return None
    return read_config(_lorebook_dir).get("default_workspace")


@server.list_tools()  # type: ignore[untyped-decorator,no-untyped-call]
async def list_tools() -> list[Tool]:
    return list(_TOOLS)


@server.call_tool()  # type: ignore[untyped-decorator]
async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
    handler = _HANDLERS.get(name)
    if handler is None:
        return _text({"error": f"Unknown tool: {name}", "code": "unknown_tool"})

    tracker = _get_db()
    t0 = time.monotonic()
    try:
        result: list[TextContent] = await handler(arguments)
    except Exception:
        if _logger:
            _logger.error("tool_error", extra={"tool": name, "args_data": arguments}, exc_info=True)
        raise
    else:
        duration_ms = round((time.monotonic() - t0) * 1000, 1)
        if _logger:
            _logger.info("tool_call", extra={"tool": name, "args_data": arguments, "duration_ms": duration_ms})
        return result
    finally:
        # Successful writes commit themselves; anything still open here is
        # left over from a failure and must not be flushed by a later commit.
        if tracker.conn.in_transaction:
            tracker.conn.rollback()


async def _run(project_path: Path | None) -> None:
    global db, _lorebook_dir, _logger

    if project_path:
        lorebook_dir = project_path / LOREBOOK_DIR_NAME
        if not lorebook_dir.is_dir():
            print(f"Error: {lorebook_dir} not found. Run 'lorebook init' first.", file=sys.stderr)
            sys.exit(1)
    else:
        try:
            lorebook_dir = find_lorebook_root()
        except FileNotFoundError:
            print(f"Error: No {LOREBOOK_DIR_NAME}/ found. Run 'lorebook init' first.", file=sys.stderr)
            sys.exit(1)

    _lorebook_dir = lorebook_dir
    config = read_config(lorebook_dir)
    db = LorebookDB(lorebook_dir / DB_FILENAME, prefix=config.get("prefix", "lore"))
    db.initialize()

    from lorebook.logging import setup_logging

    _logger = setup_logging(lorebook_dir)
    _logger.info("mcp_server_start", extra={"tool": "server", "args_data": {"project": str(lorebook_dir.parent)}})

    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())


def main() -> None:
    import asyncio

    parser = argparse.ArgumentParser(description="Lorebook MCP server")
    parser.add_argument("--project", type=Path, default=None, help="Project root (auto-discovers .lorebook/ if omitted)")
    args = parser.parse_args()

    asyncio.run(_run(args.project))


if __name__ == "__main__":
    main()
