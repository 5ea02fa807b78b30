"""CLI commands for learning progress: done, progress."""

from __future__ import annotations

import click

from lorebook.cli_common import current_user, echo_json, fail, get_db
from lorebook.errors import LorebookError


@click.command()
@click.argument("item_id")
@click.option("--undo", is_flag=True, help="Mark as not completed")
@click.option("--rating", type=click.IntRange(0, 5), default=None, help="Rate the resource 0-5")
@click.option("--notes", default=None, help="Personal notes")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def done(item_id: str, undo: bool, rating: int | None, notes: str | None, as_json: bool) -> None:
    """Mark an item completed for the current user."""
    user = current_user()
    with get_db() as db:
        try:
            record = db.set_item_progress(user, item_id, completed=not undo, rating=rating, notes=notes)
        except (ValueError, LorebookError) as e:
            fail(e, as_json=as_json)
        if as_json:
            echo_json(record)
        else:
            state = "completed" if record["completed"] else "not completed"
            click.echo(f"{item_id} marked {state} for {user}")


@click.command()
@click.argument("playbook_id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def progress(playbook_id: str, as_json: bool) -> None:
    """Show the current user's progress through a playbook."""
    user = current_user()
    with get_db() as db:
        try:
            summary = db.get_progress_summary(user, playbook_id)
            records = db.get_progress(user, playbook_id)
        except LorebookError as e:
            fail(e, as_json=as_json)
        if as_json:
            echo_json({"user_id": user, **summary, "items": records})
            return
        click.echo(f"{user}: {summary['completed']}/{summary['total']} completed ({summary['percent']}%)")
        for r in records:
            mark = "x" if r["completed"] else " "
            rating = f"  rating {r['rating']}" if r["rating"] is not None else ""
            click.echo(f"  [{mark}] {r['item_id']}{rating}")


def register(cli: click.Group) -> None:
    """Register progress commands with the CLI group."""
    cli.add_command(done)
    cli.add_command(progress)
