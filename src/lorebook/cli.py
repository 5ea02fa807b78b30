"""CLI for lorebook.

Convention-based: discovers .lorebook/ by walking up from cwd.

Usage:
    lorebook init                                   # Initialize .lorebook/ in cwd
    lorebook create "Learn Rust" -d "Start here"    # Create a playbook
    lorebook add-item <playbook> "Book" <url>       # Append a resource
    lorebook move <item> up                         # Reorder
    lorebook publish <playbook>                     # Make shareable
    lorebook clone <share-code>                     # Copy a shared playbook
    lorebook new-content <clone>                    # What the origin added
    lorebook sync <clone>                           # Pull origin additions
    lorebook dashboard                              # JSON API on localhost
"""

from __future__ import annotations

from pathlib import Path

import click

from lorebook import __version__
from lorebook.cli_commands import items as _items
from lorebook.cli_commands import playbooks as _playbooks
from lorebook.cli_commands import progress as _progress
from lorebook.cli_commands import server as _server
from lorebook.cli_commands import sharing as _sharing
from lorebook.cli_commands import sync as _sync
from lorebook.core import (
    DB_FILENAME,
    LOREBOOK_DIR_NAME,
    LorebookDB,
    read_config,
    write_config,
)
from lorebook.logging import setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="lorebook")
@click.option("--actor", default="cli", help="Actor identity for the activity trail (default: cli)")
@click.option("--workspace", "-w", default=None, help="Workspace ID (default: the project's default workspace)")
@click.pass_context
def cli(ctx: click.Context, actor: str, workspace: str | None) -> None:
    """Lorebook: a workspace knowledge base with clonable playbooks."""
    ctx.ensure_object(dict)
    ctx.obj["actor"] = actor
    ctx.obj["workspace"] = workspace


@cli.command()
@click.option("--prefix", default="lore", help="ID prefix (default: lore)")
@click.option("--workspace-name", default=None, help="Name of the default workspace (default: directory name)")
def init(prefix: str, workspace_name: str | None) -> None:
    """Initialize .lorebook/ in the current directory."""
    cwd = Path.cwd()
    lorebook_dir = cwd / LOREBOOK_DIR_NAME

    if lorebook_dir.exists():
        click.echo(f"{LOREBOOK_DIR_NAME}/ already exists in {cwd}")
        # Still ensure DB is initialized
        config = read_config(lorebook_dir)
        db = LorebookDB(lorebook_dir / DB_FILENAME, prefix=config.get("prefix", "lore"))
        db.initialize()
        db.close()
        return

    lorebook_dir.mkdir()
    setup_logging(lorebook_dir)

    db = LorebookDB(lorebook_dir / DB_FILENAME, prefix=prefix)
    db.initialize()
    workspace = db.create_workspace(workspace_name or cwd.name or "default")
    db.close()

    write_config(lorebook_dir, {"prefix": prefix, "version": 1, "default_workspace": workspace.id})

    click.echo(f"Initialized {LOREBOOK_DIR_NAME}/ in {cwd}")
    click.echo(f"  Prefix: {prefix}")
    click.echo(f"  Workspace: {workspace.id} ({workspace.name})")
    click.echo(f"  Database: {lorebook_dir / DB_FILENAME}")


_playbooks.register(cli)
_items.register(cli)
_sync.register(cli)
_sharing.register(cli)
_progress.register(cli)
_server.register(cli)


if __name__ == "__main__":
    cli()
