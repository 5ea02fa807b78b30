"""Core database operations for lorebook.

Single source of truth for all SQLite operations. The CLI, dashboard and
MCP server all import from this module. Each table is treated as a
document collection: the ``_get_doc``/``_query_docs``/``_create_doc``/
``_update_doc``/``_delete_doc`` helpers are the only way the domain mixins
read or write single documents, and each write commits on its own.

Convention-based discovery: each project has a `.lorebook/` directory
containing `lorebook.db` (SQLite) and `config.json` (prefix, default
workspace, default user).
"""

from __future__ import annotations

import json
import logging
import secrets
import sqlite3
import string
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from lorebook.db_base import Visibility, _now_iso, _store_errors
from lorebook.db_duplicates import DuplicatesMixin
from lorebook.db_events import EventsMixin
from lorebook.db_notes import NotesMixin
from lorebook.db_ordering import OrderingMixin
from lorebook.db_playbooks import PlaybooksMixin
from lorebook.db_progress import ProgressMixin
from lorebook.db_schema import CURRENT_SCHEMA_VERSION, SCHEMA_SQL
from lorebook.db_sharing import SharingMixin
from lorebook.db_sync import SyncMixin
from lorebook.errors import NotFoundError
from lorebook.types.core import ISOTimestamp, NoteDict, PlaybookDict, PlaybookItemDict, ProjectConfig, WorkspaceDict

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Convention-based discovery
# ---------------------------------------------------------------------------

LOREBOOK_DIR_NAME = ".lorebook"
DB_FILENAME = "lorebook.db"
CONFIG_FILENAME = "config.json"


def find_lorebook_root(start: Path | None = None) -> Path:
    """Walk up from start (default cwd) looking for .lorebook/ directory.

    Returns the .lorebook/ directory path (not the project root).
    """
    current = (start or Path.cwd()).resolve()
    for parent in [current, *current.parents]:
        candidate = parent / LOREBOOK_DIR_NAME
        if candidate.is_dir():
            return candidate
    msg = f"No {LOREBOOK_DIR_NAME}/ directory found in {current} or any parent"
    raise FileNotFoundError(msg)


def read_config(lorebook_dir: Path) -> ProjectConfig:
    """Read .lorebook/config.json. Returns defaults if missing or corrupt."""
    defaults = ProjectConfig(prefix="lore", version=1)
    config_path = lorebook_dir / CONFIG_FILENAME
    if not config_path.exists():
        return defaults
    try:
        result: ProjectConfig = json.loads(config_path.read_text())
        return result
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Failed to read %s, using defaults: %s", config_path, exc)
        return defaults


def write_config(lorebook_dir: Path, config: dict[str, Any] | ProjectConfig) -> None:
    """Write .lorebook/config.json."""
    config_path = lorebook_dir / CONFIG_FILENAME
    config_path.write_text(json.dumps(config, indent=2) + "\n")


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass
class Workspace:
    id: str
    name: str
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> WorkspaceDict:
        return WorkspaceDict(
            id=self.id,
            name=self.name,
            created_at=ISOTimestamp(self.created_at),
            updated_at=ISOTimestamp(self.updated_at),
        )


@dataclass
class Playbook:
    id: str
    workspace_id: str
    title: str
    share_code: str
    description: str = ""
    tool_url: str | None = None
    category_id: str | None = None
    visibility: Visibility = "private"
    origin_id: str | None = None
    sync_baseline: int = 0
    is_archived: bool = False
    created_at: str = ""
    updated_at: str = ""
    # Computed (not stored directly)
    item_count: int = 0

    @property
    def is_clone(self) -> bool:
        return self.origin_id is not None

    @property
    def is_public(self) -> bool:
        return self.visibility == "public"

    def to_dict(self) -> PlaybookDict:
        return {
            "id": self.id,
            "workspace_id": self.workspace_id,
            "title": self.title,
            "description": self.description,
            "tool_url": self.tool_url,
            "category_id": self.category_id,
            "visibility": self.visibility,
            "share_code": self.share_code,
            "origin_id": self.origin_id,
            "sync_baseline": self.sync_baseline,
            "is_archived": self.is_archived,
            "is_clone": self.is_clone,
            "item_count": self.item_count,
            "created_at": ISOTimestamp(self.created_at),
            "updated_at": ISOTimestamp(self.updated_at),
        }


@dataclass
class PlaybookItem:
    id: str
    playbook_id: str
    title: str
    url: str
    order: int
    description: str = ""
    source_item_id: str | None = None
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> PlaybookItemDict:
        return {
            "id": self.id,
            "playbook_id": self.playbook_id,
            "title": self.title,
            "url": self.url,
            "description": self.description,
            "order": self.order,
            "source_item_id": self.source_item_id,
            "created_at": ISOTimestamp(self.created_at),
            "updated_at": ISOTimestamp(self.updated_at),
        }


@dataclass
class Note:
    id: str
    workspace_id: str
    title: str
    content: str = ""
    visibility: Visibility = "private"
    share_code: str | None = None
    is_archived: bool = False
    created_at: str = ""
    updated_at: str = ""

    @property
    def is_public(self) -> bool:
        return self.visibility == "public"

    def to_dict(self) -> NoteDict:
        return {
            "id": self.id,
            "workspace_id": self.workspace_id,
            "title": self.title,
            "content": self.content,
            "visibility": self.visibility,
            "share_code": self.share_code,
            "is_archived": self.is_archived,
            "created_at": ISOTimestamp(self.created_at),
            "updated_at": ISOTimestamp(self.updated_at),
        }


# ---------------------------------------------------------------------------
# Document collections
# ---------------------------------------------------------------------------

# Table name -> writable columns. Anything else is rejected before it
# reaches an f-string.
_COLLECTIONS: dict[str, frozenset[str]] = {
    "workspaces": frozenset({"id", "name", "created_at", "updated_at"}),
    "playbooks": frozenset(
        {
            "id",
            "workspace_id",
            "title",
            "description",
            "tool_url",
            "category_id",
            "visibility",
            "share_code",
            "origin_id",
            "sync_baseline",
            "is_archived",
            "created_at",
            "updated_at",
        }
    ),
    "playbook_items": frozenset(
        {
            "id",
            "playbook_id",
            "title",
            "url",
            "description",
            "order",
            "source_item_id",
            "created_at",
            "updated_at",
        }
    ),
    "notes": frozenset(
        {
            "id",
            "workspace_id",
            "title",
            "content",
            "visibility",
            "share_code",
            "is_archived",
            "created_at",
            "updated_at",
        }
    ),
}

SHARE_CODE_LENGTH = 8
_SHARE_CODE_ALPHABET = string.ascii_lowercase + string.digits


def _columns(table: str, names: Any) -> list[str]:
    allowed = _COLLECTIONS.get(table)
    if allowed is None:
        msg = f"Unknown collection: {table}"
        raise ValueError(msg)
    bad = [n for n in names if n not in allowed]
    if bad:
        msg = f"Unknown field(s) for {table}: {', '.join(sorted(bad))}"
        raise ValueError(msg)
    return list(names)


def _quote(column: str) -> str:
    # "order" is a reserved word in SQL.
    return f'"{column}"'


# ---------------------------------------------------------------------------
# LorebookDB
# ---------------------------------------------------------------------------


class LorebookDB(
    EventsMixin,
    PlaybooksMixin,
    OrderingMixin,
    DuplicatesMixin,
    SyncMixin,
    SharingMixin,
    NotesMixin,
    ProgressMixin,
):
    """Direct SQLite operations. No daemon. Importable by CLI, dashboard and MCP."""

    def __init__(
        self,
        db_path: str | Path,
        *,
        prefix: str = "lore",
        check_same_thread: bool = True,
    ) -> None:
        self.db_path = Path(db_path)
        self.prefix = prefix
        self._conn: sqlite3.Connection | None = None
        self._check_same_thread = check_same_thread

    @classmethod
    def from_project(cls, project_path: Path | None = None) -> LorebookDB:
        """Create a LorebookDB by discovering .lorebook/ from project_path (or cwd)."""
        lorebook_dir = find_lorebook_root(project_path)
        config = read_config(lorebook_dir)
        db = cls(lorebook_dir / DB_FILENAME, prefix=config.get("prefix", "lore"))
        db.initialize()
        return db

    def __enter__(self) -> LorebookDB:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = sqlite3.connect(
                str(self.db_path),
                isolation_level="DEFERRED",
                check_same_thread=self._check_same_thread,
            )
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA foreign_keys=ON")
            self._conn.execute("PRAGMA busy_timeout=5000")
        return self._conn

    def initialize(self) -> None:
        """Create tables for a fresh database and stamp the schema version."""
        current_version = self.get_schema_version()
        if current_version == 0:
            self.conn.executescript(SCHEMA_SQL)
            self.conn.execute(f"PRAGMA user_version = {CURRENT_SCHEMA_VERSION}")
        elif current_version > CURRENT_SCHEMA_VERSION:
            msg = f"Database schema v{current_version} is newer than this lorebook (v{CURRENT_SCHEMA_VERSION})"
            raise RuntimeError(msg)
        self.conn.commit()

    def get_schema_version(self) -> int:
        """Return the current schema version from PRAGMA user_version."""
        result: int = self.conn.execute("PRAGMA user_version").fetchone()[0]
        return result

    def reconnect(self, *, check_same_thread: bool) -> None:
        """Reopen the connection with a different thread-affinity setting."""
        self.close()
        self._check_same_thread = check_same_thread

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def _generate_unique_id(self, table: str, infix: str = "") -> str:
        """Generate a unique ID using O(1) EXISTS checks against the PK index.

        *table* is always a hardcoded literal at the call site (never user input).
        """
        sep = f"-{infix}-" if infix else "-"
        for _ in range(10):
            candidate = f"{self.prefix}{sep}{uuid.uuid4().hex[:10]}"
            if self.conn.execute(f"SELECT 1 FROM {table} WHERE id = ?", (candidate,)).fetchone() is None:
                return candidate
        return f"{self.prefix}{sep}{uuid.uuid4().hex[:16]}"

    def _generate_share_code(self, table: str) -> str:
        """Mint an opaque share code that no row of *table* already uses."""
        while True:
            code = "".join(secrets.choice(_SHARE_CODE_ALPHABET) for _ in range(SHARE_CODE_LENGTH))
            if self.conn.execute(f"SELECT 1 FROM {table} WHERE share_code = ?", (code,)).fetchone() is None:
                return code

    # -- Document helpers ----------------------------------------------------

    def _get_doc(self, table: str, doc_id: str) -> sqlite3.Row | None:
        _columns(table, ())
        row: sqlite3.Row | None = self.conn.execute(f"SELECT * FROM {table} WHERE id = ?", (doc_id,)).fetchone()
        return row

    def _query_docs(self, table: str, *, order_by: str | None = None, **equals: object) -> list[sqlite3.Row]:
        cols = _columns(table, equals.keys())
        sql = f"SELECT * FROM {table}"
        if cols:
            sql += " WHERE " + " AND ".join(f"{_quote(c)} = ?" for c in cols)
        if order_by is not None:
            _columns(table, [order_by])
            sql += f" ORDER BY {_quote(order_by)}, created_at, id"
        return self.conn.execute(sql, [equals[c] for c in cols]).fetchall()

    def _create_doc(self, table: str, data: dict[str, object]) -> str:
        """Insert one document and commit. Returns its id."""
        cols = _columns(table, data.keys())
        placeholders = ", ".join("?" for _ in cols)
        self.conn.execute(
            f"INSERT INTO {table} ({', '.join(_quote(c) for c in cols)}) VALUES ({placeholders})",
            [data[c] for c in cols],
        )
        self.conn.commit()
        return str(data["id"])

    def _update_doc(self, table: str, doc_id: str, data: dict[str, object]) -> None:
        """Apply a partial update to one document and commit."""
        data = {**data, "updated_at": _now_iso()}
        cols = _columns(table, data.keys())
        cursor = self.conn.execute(
            f"UPDATE {table} SET {', '.join(f'{_quote(c)} = ?' for c in cols)} WHERE id = ?",
            [*(data[c] for c in cols), doc_id],
        )
        if cursor.rowcount == 0:
            self.conn.rollback()
            msg = f"{table} document not found: {doc_id}"
            raise NotFoundError(msg)
        self.conn.commit()

    def _delete_doc(self, table: str, doc_id: str) -> None:
        _columns(table, ())
        self.conn.execute(f"DELETE FROM {table} WHERE id = ?", (doc_id,))
        self.conn.commit()

    # -- Row builders ----------------------------------------------------------

    def _build_playbook(self, row: sqlite3.Row) -> Playbook:
        count: int = self.conn.execute("SELECT COUNT(*) FROM playbook_items WHERE playbook_id = ?", (row["id"],)).fetchone()[0]
        return Playbook(
            id=row["id"],
            workspace_id=row["workspace_id"],
            title=row["title"],
            share_code=row["share_code"],
            description=row["description"] or "",
            tool_url=row["tool_url"],
            category_id=row["category_id"],
            visibility=row["visibility"],
            origin_id=row["origin_id"],
            sync_baseline=row["sync_baseline"],
            is_archived=bool(row["is_archived"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            item_count=count,
        )

    @staticmethod
    def _build_item(row: sqlite3.Row) -> PlaybookItem:
        return PlaybookItem(
            id=row["id"],
            playbook_id=row["playbook_id"],
            title=row["title"],
            url=row["url"],
            order=row["order"],
            description=row["description"] or "",
            source_item_id=row["source_item_id"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    @staticmethod
    def _build_note(row: sqlite3.Row) -> Note:
        return Note(
            id=row["id"],
            workspace_id=row["workspace_id"],
            title=row["title"],
            content=row["content"] or "",
            visibility=row["visibility"],
            share_code=row["share_code"],
            is_archived=bool(row["is_archived"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    # -- Workspaces ------------------------------------------------------------

    def create_workspace(self, name: str) -> Workspace:
        if not name or not name.strip():
            msg = "Workspace name cannot be empty"
            raise ValueError(msg)
        now = _now_iso()
        with _store_errors(self.conn, "create_workspace"):
            workspace_id = self._generate_unique_id("workspaces", "ws")
            self._create_doc("workspaces", {"id": workspace_id, "name": name.strip(), "created_at": now, "updated_at": now})
        return self.get_workspace(workspace_id)

    def get_workspace(self, workspace_id: str) -> Workspace:
        with _store_errors(self.conn, "get_workspace"):
            row = self._get_doc("workspaces", workspace_id)
        if row is None:
            msg = f"Workspace not found: {workspace_id}"
            raise NotFoundError(msg)
        return Workspace(id=row["id"], name=row["name"], created_at=row["created_at"], updated_at=row["updated_at"])

    def list_workspaces(self) -> list[Workspace]:
        with _store_errors(self.conn, "list_workspaces"):
            rows = self.conn.execute("SELECT * FROM workspaces ORDER BY created_at, id").fetchall()
        return [Workspace(id=r["id"], name=r["name"], created_at=r["created_at"], updated_at=r["updated_at"]) for r in rows]
