"""Fixtures for HTTP dashboard API tests (FastAPI)."""

from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient

import lorebook.dashboard as dash_module
from lorebook.core import LorebookDB
from lorebook.dashboard import create_app
from tests._db_factory import make_db
from tests.conftest import PopulatedDB


@pytest.fixture
def dashboard_db(populated_db: PopulatedDB) -> PopulatedDB:
    """Use the populated_db fixture for dashboard tests.

    Reconnects the underlying DB with check_same_thread=False so handlers
    can run wherever the ASGI transport schedules them. Returns the full
    PopulatedDB wrapper so tests can access ``.db`` and ``.ids``.
    """
    db = populated_db.db
    db.reconnect(check_same_thread=False)
    return populated_db


@pytest.fixture
async def client(dashboard_db: PopulatedDB) -> AsyncIterator[AsyncClient]:
    """Test client backed by the populated DB (no .lorebook/ config)."""
    dash_module._db = dashboard_db.db
    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    dash_module._db = None


@pytest.fixture
def project_db(tmp_path: Path) -> LorebookDB:
    """DB inside a .lorebook/ directory whose config names a default workspace."""
    return make_db(tmp_path, check_same_thread=False, with_project_dir=True)


@pytest.fixture
async def project_client(project_db: LorebookDB) -> AsyncIterator[AsyncClient]:
    """Test client for routes that fall back to the project's default workspace."""
    dash_module._db = project_db
    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    dash_module._db = None
    project_db.close()
