"""CLI commands for playbook items: add, edit, remove, move, reindex, import, duplicate check."""

from __future__ import annotations

import csv
import json as json_mod
import sys
from pathlib import Path
from typing import Any

import click

from lorebook.cli_common import echo_json, fail, get_db
from lorebook.errors import LorebookError


@click.command("add-item")
@click.argument("playbook_id")
@click.argument("title")
@click.argument("url")
@click.option("--description", "-d", default="", help="Description")
@click.option("--force", is_flag=True, help="Add even if the URL is already in this playbook")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def add_item(
    ctx: click.Context,
    playbook_id: str,
    title: str,
    url: str,
    description: str,
    force: bool,
    as_json: bool,
) -> None:
    """Append an item to a playbook, warning about duplicate URLs."""
    with get_db() as db:
        try:
            warning = db.check_duplicate(url, playbook_id)
            if warning.scope == "current" and not force:
                click.echo(f"Error: {url.strip()} is already in this playbook (use --force to add anyway)", err=True)
                sys.exit(1)
            item = db.append_item(playbook_id, title, url, description, actor=ctx.obj["actor"])
        except (ValueError, LorebookError) as e:
            fail(e, as_json=as_json)
        if as_json:
            echo_json({**item.to_dict(), "duplicate": warning.to_dict()})
            return
        click.echo(f"Added {item.id} at position {item.order}: {item.title}")
        if warning.scope == "other":
            click.echo(f"  Note: also in playbook {warning.other_playbook_id} ({warning.other_playbook_title})")


@click.command("edit-item")
@click.argument("item_id")
@click.option("--title", default=None, help="New title")
@click.option("--url", default=None, help="New URL")
@click.option("--description", "-d", default=None, help="New description")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def edit_item(item_id: str, title: str | None, url: str | None, description: str | None, as_json: bool) -> None:
    """Edit an item's content. Its position is unchanged."""
    with get_db() as db:
        try:
            item = db.update_item(item_id, title=title, url=url, description=description)
        except (ValueError, LorebookError) as e:
            fail(e, as_json=as_json)
        if as_json:
            echo_json(item.to_dict())
        else:
            click.echo(f"Updated {item.id}: {item.title}")


@click.command("remove-item")
@click.argument("item_id")
@click.pass_context
def remove_item(ctx: click.Context, item_id: str) -> None:
    """Delete an item; later items move up to close the gap."""
    with get_db() as db:
        try:
            db.delete_item(item_id, actor=ctx.obj["actor"])
        except LorebookError as e:
            fail(e)
        click.echo(f"Removed {item_id}")


@click.command()
@click.argument("item_id")
@click.argument("direction", type=click.Choice(["up", "down"]))
@click.pass_context
def move(ctx: click.Context, item_id: str, direction: str) -> None:
    """Move an item one position up or down."""
    with get_db() as db:
        try:
            moved = db.move_item(item_id, direction, actor=ctx.obj["actor"])  # type: ignore[arg-type]
            item = db.get_item(item_id)
        except (ValueError, LorebookError) as e:
            fail(e)
        if moved:
            click.echo(f"Moved {item_id} {direction} to position {item.order}")
        else:
            click.echo(f"{item_id} is already at the {'top' if direction == 'up' else 'bottom'}")


@click.command()
@click.argument("playbook_id")
def reindex(playbook_id: str) -> None:
    """Rewrite item positions to 1..N."""
    with get_db() as db:
        try:
            db.get_playbook(playbook_id)
            changed = db.reindex(playbook_id)
        except LorebookError as e:
            fail(e)
        click.echo(f"Reindexed {playbook_id}: {changed} item(s) changed")


def _read_rows(path: Path) -> list[dict[str, Any]]:
    if path.suffix.lower() == ".json":
        data = json_mod.loads(path.read_text())
        if not isinstance(data, list):
            msg = "JSON import file must contain a list of objects"
            raise ValueError(msg)
        return [row for row in data if isinstance(row, dict)]
    with path.open(newline="") as fh:
        return list(csv.DictReader(fh))


@click.command("import-items")
@click.argument("playbook_id")
@click.argument("source", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def import_items(ctx: click.Context, playbook_id: str, source: Path, as_json: bool) -> None:
    """Append items from a CSV (title,url,description columns) or JSON file."""
    try:
        rows = _read_rows(source)
    except (ValueError, OSError, csv.Error) as e:
        fail(ValueError(f"Cannot read {source}: {e}"), as_json=as_json)
    with get_db() as db:
        try:
            count = db.import_items(playbook_id, rows, actor=ctx.obj["actor"])
        except LorebookError as e:
            fail(e, as_json=as_json)
        if as_json:
            echo_json({"playbook_id": playbook_id, "imported": count, "skipped": len(rows) - count})
        else:
            click.echo(f"Imported {count} item(s) into {playbook_id} ({len(rows) - count} skipped)")


@click.command("check-dup")
@click.argument("playbook_id")
@click.argument("url")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def check_dup(playbook_id: str, url: str, as_json: bool) -> None:
    """Check whether a URL is already in this playbook or elsewhere in its workspace."""
    with get_db() as db:
        try:
            warning = db.check_duplicate(url, playbook_id)
        except LorebookError as e:
            fail(e, as_json=as_json)
        if as_json:
            echo_json(warning.to_dict())
        elif warning.scope == "current":
            click.echo("Already in this playbook")
        elif warning.scope == "other":
            click.echo(f"Already in playbook {warning.other_playbook_id} ({warning.other_playbook_title})")
        else:
            click.echo("No duplicate")


def register(cli: click.Group) -> None:
    """Register item commands with the CLI group."""
    cli.add_command(add_item)
    cli.add_command(edit_item)
    cli.add_command(remove_item)
    cli.add_command(move)
    cli.add_command(reindex)
    cli.add_command(import_items)
    cli.add_command(check_dup)
