"""CLI commands for share links: publish, unpublish, shared."""

from __future__ import annotations

import sys

import click

from lorebook.cli_common import echo_json, fail, get_db
from lorebook.db_sharing import VALID_SHARE_KINDS, share_path
from lorebook.errors import LorebookError


def _set_visibility(kind: str, resource_id: str, is_public: bool) -> None:
    with get_db() as db:
        try:
            if kind == "playbook":
                code = db.set_visibility(resource_id, is_public)
            else:
                code = db.shares(kind).set_visibility(resource_id, is_public)
        except LorebookError as e:
            fail(e)
    if is_public:
        click.echo(f"Published {resource_id}: {share_path(kind, code)}")
    else:
        click.echo(f"Unpublished {resource_id} (share code {code} kept)")


@click.command()
@click.argument("resource_id")
@click.option("--kind", type=click.Choice(sorted(VALID_SHARE_KINDS)), default="playbook", help="Resource kind")
def publish(resource_id: str, kind: str) -> None:
    """Make a playbook (or note) public and print its share path."""
    _set_visibility(kind, resource_id, True)


@click.command()
@click.argument("resource_id")
@click.option("--kind", type=click.Choice(sorted(VALID_SHARE_KINDS)), default="playbook", help="Resource kind")
def unpublish(resource_id: str, kind: str) -> None:
    """Make a playbook (or note) private. Its share code does not change."""
    _set_visibility(kind, resource_id, False)


@click.command()
@click.argument("code")
@click.option("--kind", type=click.Choice(sorted(VALID_SHARE_KINDS)), default="playbook", help="Resource kind")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def shared(code: str, kind: str, as_json: bool) -> None:
    """Open a share code the way a share link would."""
    with get_db() as db:
        try:
            view = db.resolve_shared_view(kind, code)
        except LorebookError as e:
            fail(e, as_json=as_json)
    if as_json:
        echo_json(view)
        if view["state"] != "public":
            sys.exit(1)
        return
    if view["state"] == "not_found":
        click.echo(f"Error: no {kind} is shared under code {code}", err=True)
        sys.exit(1)
    if view["state"] == "private":
        click.echo(f"Error: this {kind} is private", err=True)
        sys.exit(1)
    if kind == "playbook":
        playbook = view["playbook"]
        click.echo(f"{playbook['title']}  ({playbook['item_count']} items)")
        if playbook["description"]:
            click.echo(playbook["description"])
        for item in view["items"]:
            click.echo(f"  {item['order']:>3}. {item['title']}  <{item['url']}>")
    else:
        note = view["note"]
        click.echo(note["title"])
        if note["content"]:
            click.echo(note["content"])


def register(cli: click.Group) -> None:
    """Register sharing commands with the CLI group."""
    cli.add_command(publish)
    cli.add_command(unpublish)
    cli.add_command(shared)
