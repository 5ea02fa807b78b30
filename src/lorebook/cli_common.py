"""Shared CLI helpers for ``cli.py`` and the ``cli_commands/*.py`` modules.

Kept apart from ``cli.py`` so command modules can import them without
circular imports.
"""

from __future__ import annotations

import json as json_mod
import os
import sys
from typing import Any, NoReturn

import click

from lorebook.core import (
    DB_FILENAME,
    LOREBOOK_DIR_NAME,
    LorebookDB,
    find_lorebook_root,
    read_config,
)
from lorebook.errors import NotFoundError, PartialWriteFailure, PrivatePlaybookError, StoreError
from lorebook.logging import setup_logging

USER_ENV_VAR = "LOREBOOK_USER"


def get_db() -> LorebookDB:
    """Discover .lorebook/ and return an initialized LorebookDB."""
    try:
        lorebook_dir = find_lorebook_root()
    except FileNotFoundError:
        click.echo(f"No {LOREBOOK_DIR_NAME}/ found. Run 'lorebook init' first.", err=True)
        sys.exit(1)
    setup_logging(lorebook_dir)
    config = read_config(lorebook_dir)
    db = LorebookDB(lorebook_dir / DB_FILENAME, prefix=config.get("prefix", "lore"))
    db.initialize()
    return db


def current_workspace(ctx: click.Context) -> str:
    """Workspace from ``--workspace``, else the project's ``default_workspace``."""
    explicit = ctx.obj.get("workspace") if ctx.obj else None
    if explicit:
        return str(explicit)
    try:
        config = read_config(find_lorebook_root())
    except FileNotFoundError:
        click.echo(f"No {LOREBOOK_DIR_NAME}/ found. Run 'lorebook init' first.", err=True)
        sys.exit(1)
    workspace = config.get("default_workspace")
    if not workspace:
        click.echo("No workspace selected. Pass --workspace or re-run 'lorebook init'.", err=True)
        sys.exit(1)
    return workspace


def current_user() -> str:
    """Progress owner: ``$LOREBOOK_USER``, else config ``default_user``, else ``local``."""
    env_user = os.environ.get(USER_ENV_VAR, "").strip()
    if env_user:
        return env_user
    try:
        config = read_config(find_lorebook_root())
    except FileNotFoundError:
        return "local"
    return config.get("default_user") or "local"


def echo_json(data: Any) -> None:
    click.echo(json_mod.dumps(data, indent=2, default=str))


def fail(exc: Exception, *, as_json: bool = False) -> NoReturn:
    """Report a core error and exit 1. Partial writes report how far they got."""
    payload: dict[str, Any] = {"error": str(exc), "code": error_code(exc)}
    if isinstance(exc, PartialWriteFailure):
        payload.update(written=exc.written, total=exc.total, playbook_id=exc.playbook_id)
    if as_json:
        echo_json(payload)
    else:
        click.echo(f"Error: {exc}", err=True)
        if isinstance(exc, PartialWriteFailure):
            click.echo(f"  {exc.written}/{exc.total} items were written to {exc.playbook_id}; re-run to continue.", err=True)
    sys.exit(1)


def error_code(exc: Exception) -> str:
    if isinstance(exc, NotFoundError):
        return "not_found"
    if isinstance(exc, PrivatePlaybookError):
        return "private"
    if isinstance(exc, PartialWriteFailure):
        return "partial_write"
    if isinstance(exc, StoreError):
        return "store_error"
    return "validation_error"
