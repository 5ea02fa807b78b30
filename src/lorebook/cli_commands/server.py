"""CLI command for the local JSON dashboard."""

from __future__ import annotations

import sys

import click


@click.command()
@click.option("--port", default=8377, type=int, help="Server port (default 8377)")
@click.option("--no-browser", is_flag=True, help="Don't auto-open browser")
def dashboard(port: int, no_browser: bool) -> None:
    """Serve the dashboard JSON API on localhost."""
    try:
        from lorebook.dashboard import main as dashboard_main
    except ImportError:
        click.echo('Dashboard requires extra dependencies. Install with: pip install "lorebook[dashboard]"', err=True)
        sys.exit(1)
    dashboard_main(port=port, no_browser=no_browser)


def register(cli: click.Group) -> None:
    """Register server commands with the CLI group."""
    cli.add_command(dashboard)
