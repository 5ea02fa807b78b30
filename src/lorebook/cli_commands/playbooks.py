"""CLI commands for workspaces, playbooks and notes: create, show, list, edit, archive, events."""

from __future__ import annotations

import click

from lorebook.cli_common import current_user, current_workspace, echo_json, fail, get_db
from lorebook.errors import LorebookError


@click.command("workspace-create")
@click.argument("name")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def workspace_create(name: str, as_json: bool) -> None:
    """Create a workspace."""
    with get_db() as db:
        try:
            workspace = db.create_workspace(name)
        except (ValueError, LorebookError) as e:
            fail(e, as_json=as_json)
        if as_json:
            echo_json(workspace.to_dict())
        else:
            click.echo(f"Created workspace {workspace.id}: {workspace.name}")


@click.command("workspaces")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def workspaces(as_json: bool) -> None:
    """List workspaces."""
    with get_db() as db:
        rows = db.list_workspaces()
        if as_json:
            echo_json([w.to_dict() for w in rows])
            return
        for w in rows:
            click.echo(f"{w.id}  {w.name}")


@click.command()
@click.argument("title")
@click.option("--description", "-d", default="", help="Description")
@click.option("--tool-url", default=None, help="Link to the tool or topic this playbook covers")
@click.option("--category", "category_id", default=None, help="Category ID")
@click.option("--public", "is_public", is_flag=True, help="Create as public (shareable)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def create(
    ctx: click.Context,
    title: str,
    description: str,
    tool_url: str | None,
    category_id: str | None,
    is_public: bool,
    as_json: bool,
) -> None:
    """Create a playbook in the current workspace."""
    workspace_id = current_workspace(ctx)
    with get_db() as db:
        try:
            playbook = db.create_playbook(
                workspace_id,
                title,
                description=description,
                tool_url=tool_url,
                category_id=category_id,
                visibility="public" if is_public else "private",
                actor=ctx.obj["actor"],
            )
        except (ValueError, LorebookError) as e:
            fail(e, as_json=as_json)
        if as_json:
            echo_json(playbook.to_dict())
        else:
            click.echo(f"Created {playbook.id}: {playbook.title}")


@click.command()
@click.argument("playbook_id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def show(playbook_id: str, as_json: bool) -> None:
    """Show a playbook with its items and sync status."""
    with get_db() as db:
        try:
            playbook = db.get_playbook(playbook_id)
            items = db.list_items(playbook_id)
            status = db.get_sync_status(playbook_id)
            summary = db.get_progress_summary(current_user(), playbook_id)
        except LorebookError as e:
            fail(e, as_json=as_json)

        if as_json:
            echo_json({**playbook.to_dict(), "items": [i.to_dict() for i in items], "sync": status, "progress": summary})
            return

        click.echo(f"ID:          {playbook.id}")
        click.echo(f"Title:       {playbook.title}")
        click.echo(f"Visibility:  {playbook.visibility} (code {playbook.share_code})")
        if playbook.description:
            click.echo(f"Description: {playbook.description}")
        if playbook.tool_url:
            click.echo(f"Tool:        {playbook.tool_url}")
        if playbook.is_archived:
            click.echo("Archived:    yes")
        if status["is_clone"]:
            if status["origin_available"]:
                click.echo(f"Cloned from: {status['origin_id']} ({status['origin_title']})")
                if status["new_item_count"]:
                    click.echo(f"New in origin: {status['new_item_count']} item(s). Run: lorebook sync {playbook.id}")
            else:
                click.echo(f"Cloned from: {status['origin_id']} (no longer available)")
        click.echo(f"Progress:    {summary['completed']}/{summary['total']} ({summary['percent']}%)")
        click.echo(f"\nItems ({len(items)}):")
        for item in items:
            click.echo(f"  {item.order:>3}. {item.title}  <{item.url}>  [{item.id}]")


@click.command("list")
@click.option("--all", "include_archived", is_flag=True, help="Include archived playbooks")
@click.option("--search", "-s", default=None, help="Substring match on title and description")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def list_playbooks(ctx: click.Context, include_archived: bool, search: str | None, as_json: bool) -> None:
    """List playbooks in the current workspace, newest first."""
    workspace_id = current_workspace(ctx)
    with get_db() as db:
        try:
            playbooks = db.list_playbooks(workspace_id, include_archived=include_archived, search=search)
        except LorebookError as e:
            fail(e, as_json=as_json)
        if as_json:
            echo_json([p.to_dict() for p in playbooks])
            return
        if not playbooks:
            click.echo("No playbooks.")
            return
        for p in playbooks:
            flags = []
            if p.is_public:
                flags.append("public")
            if p.is_clone:
                flags.append("clone")
            if p.is_archived:
                flags.append("archived")
            suffix = f"  [{', '.join(flags)}]" if flags else ""
            click.echo(f"{p.id}  {p.title}  ({p.item_count} items){suffix}")


@click.command()
@click.argument("playbook_id")
@click.option("--title", default=None, help="New title")
@click.option("--description", "-d", default=None, help="New description")
@click.option("--tool-url", default=None, help="New tool URL (empty string to clear)")
@click.option("--category", "category_id", default=None, help="New category ID (empty string to clear)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def edit(
    ctx: click.Context,
    playbook_id: str,
    title: str | None,
    description: str | None,
    tool_url: str | None,
    category_id: str | None,
    as_json: bool,
) -> None:
    """Edit a playbook's descriptive fields."""
    with get_db() as db:
        try:
            playbook = db.update_playbook(
                playbook_id,
                title=title,
                description=description,
                tool_url=tool_url,
                category_id=category_id,
                actor=ctx.obj["actor"],
            )
        except (ValueError, LorebookError) as e:
            fail(e, as_json=as_json)
        if as_json:
            echo_json(playbook.to_dict())
        else:
            click.echo(f"Updated {playbook.id}: {playbook.title}")


@click.command()
@click.argument("playbook_id")
@click.pass_context
def archive(ctx: click.Context, playbook_id: str) -> None:
    """Archive a playbook (hidden from lists and duplicate checks)."""
    with get_db() as db:
        try:
            playbook = db.archive_playbook(playbook_id, actor=ctx.obj["actor"])
        except LorebookError as e:
            fail(e)
        click.echo(f"Archived {playbook.id}: {playbook.title}")


@click.command("events")
@click.argument("playbook_id")
@click.option("--limit", default=50, type=int, help="Max events (default 50)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def events_cmd(playbook_id: str, limit: int, as_json: bool) -> None:
    """Show a playbook's activity, newest first."""
    with get_db() as db:
        try:
            db.get_playbook(playbook_id)
            events = db.get_playbook_events(playbook_id, limit=limit)
        except LorebookError as e:
            fail(e, as_json=as_json)
        if as_json:
            echo_json(events)
            return
        for ev in events:
            change = ""
            if ev["old_value"] or ev["new_value"]:
                change = f": {ev['old_value'] or ''} -> {ev['new_value'] or ''}"
            actor = f" by {ev['actor']}" if ev["actor"] else ""
            click.echo(f"  {ev['created_at']}  {ev['event_type']}{actor}{change}")


@click.command("note-create")
@click.argument("title")
@click.option("--content", "-c", default="", help="Note body")
@click.option("--public", "is_public", is_flag=True, help="Create as public (shareable)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def note_create(ctx: click.Context, title: str, content: str, is_public: bool, as_json: bool) -> None:
    """Create a note in the current workspace."""
    workspace_id = current_workspace(ctx)
    with get_db() as db:
        try:
            note = db.create_note(workspace_id, title, content, visibility="public" if is_public else "private")
        except (ValueError, LorebookError) as e:
            fail(e, as_json=as_json)
        if as_json:
            echo_json(note.to_dict())
        else:
            click.echo(f"Created note {note.id}: {note.title}")
            if note.share_code:
                click.echo(f"  Share code: {note.share_code}")


def register(cli: click.Group) -> None:
    """Register workspace, playbook and note commands with the CLI group."""
    cli.add_command(workspace_create)
    cli.add_command(workspaces)
    cli.add_command(create)
    cli.add_command(show)
    cli.add_command(list_playbooks)
    cli.add_command(edit)
    cli.add_command(archive)
    cli.add_command(events_cmd)
    cli.add_command(note_create)
