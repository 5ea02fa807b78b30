"""Shared pytest fixtures for lorebook tests."""

from __future__ import annotations

from collections.abc import Generator
from dataclasses import dataclass, field
from pathlib import Path

import pytest
from click.testing import CliRunner

from lorebook.core import DB_FILENAME, LOREBOOK_DIR_NAME, LorebookDB, write_config
from tests._db_factory import make_db


@pytest.fixture
def db(tmp_path: Path) -> Generator[LorebookDB, None, None]:
    """Fresh LorebookDB for each test."""
    d = make_db(tmp_path)
    yield d
    d.close()


@dataclass
class PopulatedDB:
    """A DB with two workspaces and a public playbook ready to clone.

    ``ids`` keys: ``home`` and ``away`` (workspaces), ``origin`` (public
    playbook in ``home`` with items ``a``, ``b``, ``c``), ``private``
    (private playbook in ``home`` holding ``shared_url``).
    """

    db: LorebookDB
    ids: dict[str, str] = field(default_factory=dict)


@pytest.fixture
def populated_db(db: LorebookDB) -> PopulatedDB:
    home = db.create_workspace("Home")
    away = db.create_workspace("Away")
    origin = db.create_playbook(home.id, "Learn SQL", description="From zero", visibility="public")
    a = db.append_item(origin.id, "Intro", "https://example.com/intro")
    b = db.append_item(origin.id, "Joins", "https://example.com/joins")
    c = db.append_item(origin.id, "Indexes", "https://example.com/indexes")
    private = db.create_playbook(home.id, "Scratch")
    db.append_item(private.id, "Shared link", "https://example.com/shared")
    return PopulatedDB(
        db=db,
        ids={
            "home": home.id,
            "away": away.id,
            "origin": origin.id,
            "a": a.id,
            "b": b.id,
            "c": c.id,
            "private": private.id,
        },
    )


@pytest.fixture
def lorebook_project(tmp_path: Path) -> Path:
    """A tmp directory set up as a lorebook project (.lorebook/ with config + db).

    Returns the project root (parent of .lorebook/).
    """
    lorebook_dir = tmp_path / LOREBOOK_DIR_NAME
    lorebook_dir.mkdir()
    d = LorebookDB(lorebook_dir / DB_FILENAME, prefix="proj")
    d.initialize()
    workspace = d.create_workspace("Project")
    d.close()
    write_config(lorebook_dir, {"prefix": "proj", "version": 1, "default_workspace": workspace.id})
    return tmp_path


@pytest.fixture
def cli_runner() -> CliRunner:
    """Click CLI test runner."""
    return CliRunner()
