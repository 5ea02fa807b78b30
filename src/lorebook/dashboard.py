"""JSON dashboard API for lorebook.

Single-project local server: a module-level ``_db`` is set at startup (or
by test fixtures) and injected into every handler via ``Depends(_get_db)``.
Route handlers live in ``dashboard_routes/*.py``; each module exposes a
``create_router()`` factory.

Usage:
    lorebook dashboard                    # Serves http://localhost:8377/api
    lorebook dashboard --port 9000        # Custom port
"""

from __future__ import annotations

import logging
import webbrowser
from typing import TYPE_CHECKING, Any

from lorebook import __version__
from lorebook.core import DB_FILENAME, LorebookDB, find_lorebook_root, read_config

if TYPE_CHECKING:
    from fastapi.responses import JSONResponse

DEFAULT_PORT = 8377

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Module-level state, set by main() or test fixtures
# ---------------------------------------------------------------------------

_db: LorebookDB | None = None


def _get_db() -> LorebookDB:
    """Return the active database connection."""
    from fastapi import HTTPException

    if _db is None:
        raise HTTPException(status_code=500, detail="Database not initialized")
    return _db


def create_app() -> Any:
    """Create the FastAPI application with all dashboard endpoints."""
    from fastapi import FastAPI
    from fastapi.responses import JSONResponse

    from lorebook.dashboard_routes import playbooks, shared
    from lorebook.dashboard_routes import sync as sync_routes

    app = FastAPI(title="Lorebook Dashboard", version=__version__, docs_url=None, redoc_url=None)

    app.include_router(playbooks.create_router(), prefix="/api")
    app.include_router(sync_routes.create_router(), prefix="/api")
    app.include_router(shared.create_router(), prefix="/api")

    @app.get("/api/health")
    async def api_health() -> JSONResponse:
        return JSONResponse({"status": "ok", "version": __version__, "prefix": _db.prefix if _db is not None else None})

    return app


def main(port: int = DEFAULT_PORT, *, no_browser: bool = False) -> None:
    """Start the dashboard server for the project found from cwd."""
    import threading

    import uvicorn

    from lorebook.logging import setup_logging

    global _db

    lorebook_dir = find_lorebook_root()
    setup_logging(lorebook_dir)
    config = read_config(lorebook_dir)
    _db = LorebookDB(
        lorebook_dir / DB_FILENAME,
        prefix=config.get("prefix", "lore"),
        check_same_thread=False,
    )
    _db.initialize()

    app = create_app()

    if not no_browser:
        threading.Timer(0.5, lambda: webbrowser.open(f"http://localhost:{port}/api/health")).start()

    logger.info("Dashboard starting on port %d for %s", port, lorebook_dir)
    print(f"Lorebook Dashboard: http://localhost:{port}/api")
    uvicorn.run(app, host="127.0.0.1", port=port, log_level="warning")
