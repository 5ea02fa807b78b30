"""Fixtures for MCP server tests."""

from __future__ import annotations

from collections.abc import Generator
from pathlib import Path

import pytest

from lorebook.core import DB_FILENAME, LOREBOOK_DIR_NAME, LorebookDB, write_config


@pytest.fixture
def mcp_db(tmp_path: Path) -> Generator[LorebookDB, None, None]:
    """Set up a LorebookDB with a default workspace and patch the MCP module globals."""
    lorebook_dir = tmp_path / LOREBOOK_DIR_NAME
    lorebook_dir.mkdir()

    d = LorebookDB(lorebook_dir / DB_FILENAME, prefix="mcp")
    d.initialize()
    workspace = d.create_workspace("Agent")
    write_config(lorebook_dir, {"prefix": "mcp", "version": 1, "default_workspace": workspace.id})

    import lorebook.mcp_server as mcp_mod

    original_db = mcp_mod.db
    original_dir = mcp_mod._lorebook_dir
    mcp_mod.db = d
    mcp_mod._lorebook_dir = lorebook_dir

    yield d

    mcp_mod.db = original_db
    mcp_mod._lorebook_dir = original_dir
    d.close()
