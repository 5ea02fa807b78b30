"""CLI commands for cloning and origin sync: clone, clones, new-content, sync."""

from __future__ import annotations

import click

from lorebook.cli_common import current_workspace, echo_json, fail, get_db
from lorebook.errors import LorebookError, NotFoundError


@click.command()
@click.argument("source")
@click.option("--force", is_flag=True, help="Clone even if this workspace already has a clone of it")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def clone(ctx: click.Context, source: str, force: bool, as_json: bool) -> None:
    """Clone a public playbook into the current workspace.

    SOURCE is a share code or a playbook ID.
    """
    workspace_id = current_workspace(ctx)
    with get_db() as db:
        try:
            try:
                origin = db.resolve_share_code(source)
            except NotFoundError:
                origin = db.get_playbook(source)
            existing = db.find_existing_clone(origin.id, workspace_id)
            if existing is not None and not force:
                if as_json:
                    echo_json({"status": "already_cloned", "playbook": existing.to_dict()})
                else:
                    click.echo(f"Already cloned as {existing.id}: {existing.title} (use --force for another copy)")
                return
            playbook = db.clone_playbook(origin.id, workspace_id, actor=ctx.obj["actor"])
        except LorebookError as e:
            fail(e, as_json=as_json)
        if as_json:
            echo_json({"status": "cloned", "playbook": playbook.to_dict()})
        else:
            click.echo(f"Cloned {origin.id} as {playbook.id}: {playbook.title} ({playbook.item_count} items)")


@click.command()
@click.argument("playbook_id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def clones(playbook_id: str, as_json: bool) -> None:
    """List clones made from a playbook."""
    with get_db() as db:
        try:
            db.get_playbook(playbook_id)
            rows = db.list_clones(playbook_id)
        except LorebookError as e:
            fail(e, as_json=as_json)
        if as_json:
            echo_json([p.to_dict() for p in rows])
            return
        if not rows:
            click.echo(f"No clones of {playbook_id}")
            return
        for p in rows:
            click.echo(f"{p.id}  {p.title}  (workspace {p.workspace_id})")


@click.command("new-content")
@click.argument("playbook_id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def new_content(playbook_id: str, as_json: bool) -> None:
    """Show origin items this clone does not have yet."""
    with get_db() as db:
        try:
            status = db.get_sync_status(playbook_id)
        except LorebookError as e:
            fail(e, as_json=as_json)
        if as_json:
            echo_json(status)
            return
        if not status["is_clone"]:
            click.echo(f"{playbook_id} is not a clone")
        elif not status["origin_available"]:
            click.echo(f"Origin {status['origin_id']} is no longer available")
        elif not status["new_items"]:
            click.echo("Up to date")
        else:
            click.echo(f"{status['new_item_count']} new item(s) in {status['origin_title']}:")
            for item in status["new_items"]:
                click.echo(f"  + {item['title']}  <{item['url']}>")


@click.command("sync")
@click.argument("playbook_id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def sync_cmd(ctx: click.Context, playbook_id: str, as_json: bool) -> None:
    """Append the origin's new items to this clone."""
    with get_db() as db:
        try:
            added = db.sync_playbook(playbook_id, actor=ctx.obj["actor"])
            playbook = db.get_playbook(playbook_id)
        except LorebookError as e:
            fail(e, as_json=as_json)
        if as_json:
            echo_json({"playbook_id": playbook_id, "added": added, "sync_baseline": playbook.sync_baseline})
        elif added:
            click.echo(f"Synced {added} new item(s) into {playbook_id}")
        else:
            click.echo("Nothing to sync")


def register(cli: click.Group) -> None:
    """Register clone and sync commands with the CLI group."""
    cli.add_command(clone)
    cli.add_command(clones)
    cli.add_command(new_content)
    cli.add_command(sync_cmd)
