"""PlaybooksMixin: Playbook CRUD, listing, archival.

All methods access ``self.conn``, ``self._create_doc()``, etc. via
Python's MRO when composed into ``LorebookDB``.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import TYPE_CHECKING

from lorebook.db_base import DBMixinProtocol, Visibility, _now_iso, _store_errors
from lorebook.errors import NotFoundError

if TYPE_CHECKING:
    from lorebook.core import Playbook, Workspace

logger = logging.getLogger(__name__)

VALID_VISIBILITIES: frozenset[str] = frozenset({"public", "private"})

_EDITABLE_FIELDS = ("title", "description", "tool_url", "category_id")


class PlaybooksMixin(DBMixinProtocol):
    """Playbook CRUD.

    Inherits ``DBMixinProtocol`` for type-safe access to shared attributes.
    Actual implementations provided by ``LorebookDB`` at composition time via MRO.
    """

    if TYPE_CHECKING:
        # From LorebookDB
        def _build_playbook(self, row: sqlite3.Row) -> Playbook: ...
        def _generate_share_code(self, table: str) -> str: ...
        def get_workspace(self, workspace_id: str) -> Workspace: ...

    def create_playbook(
        self,
        workspace_id: str,
        title: str,
        *,
        description: str = "",
        tool_url: str | None = None,
        category_id: str | None = None,
        visibility: Visibility = "private",
        actor: str = "",
    ) -> Playbook:
        if not title or not title.strip():
            msg = "Title cannot be empty"
            raise ValueError(msg)
        if visibility not in VALID_VISIBILITIES:
            msg = f"Invalid visibility '{visibility}'. Must be 'public' or 'private'"
            raise ValueError(msg)
        self.get_workspace(workspace_id)

        now = _now_iso()
        with _store_errors(self.conn, "create_playbook"):
            playbook_id = self._generate_unique_id("playbooks", "pb")
            self._record_event(playbook_id, "created", actor=actor, new_value=title)
            self._create_doc(
                "playbooks",
                {
                    "id": playbook_id,
                    "workspace_id": workspace_id,
                    "title": title.strip(),
                    "description": description,
                    "tool_url": tool_url or None,
                    "category_id": category_id or None,
                    "visibility": visibility,
                    "share_code": self._generate_share_code("playbooks"),
                    "sync_baseline": 0,
                    "is_archived": 0,
                    "created_at": now,
                    "updated_at": now,
                },
            )
        return self.get_playbook(playbook_id)

    def get_playbook(self, playbook_id: str) -> Playbook:
        with _store_errors(self.conn, "get_playbook"):
            row = self._get_doc("playbooks", playbook_id)
            if row is None:
                msg = f"Playbook not found: {playbook_id}"
                raise NotFoundError(msg)
            return self._build_playbook(row)

    def list_playbooks(
        self,
        workspace_id: str,
        *,
        include_archived: bool = False,
        search: str | None = None,
    ) -> list[Playbook]:
        """Playbooks of one workspace, newest first.

        *search* is a case-insensitive substring match on title and description.
        """
        sql = "SELECT * FROM playbooks WHERE workspace_id = ?"
        params: list[object] = [workspace_id]
        if not include_archived:
            sql += " AND is_archived = 0"
        if search:
            sql += " AND (title LIKE ? ESCAPE '\\' OR description LIKE ? ESCAPE '\\')"
            escaped = search.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
            params.extend([f"%{escaped}%", f"%{escaped}%"])
        sql += " ORDER BY created_at DESC, id"
        with _store_errors(self.conn, "list_playbooks"):
            rows = self.conn.execute(sql, params).fetchall()
            return [self._build_playbook(r) for r in rows]

    def update_playbook(
        self,
        playbook_id: str,
        *,
        title: str | None = None,
        description: str | None = None,
        tool_url: str | None = None,
        category_id: str | None = None,
        actor: str = "",
    ) -> Playbook:
        """Edit descriptive fields. Visibility, provenance and baseline are not editable here."""
        current = self.get_playbook(playbook_id)
        if title is not None and not title.strip():
            msg = "Title cannot be empty"
            raise ValueError(msg)
        requested = {"title": title, "description": description, "tool_url": tool_url, "category_id": category_id}
        changes: dict[str, object] = {}
        for name in _EDITABLE_FIELDS:
            value = requested[name]
            if value is None:
                continue
            if name == "title":
                value = value.strip()
            elif name in ("tool_url", "category_id"):
                value = value or None
            if value != getattr(current, name):
                changes[name] = value
        if not changes:
            return current

        with _store_errors(self.conn, "update_playbook"):
            if "title" in changes:
                self._record_event(playbook_id, "title_changed", actor=actor, old_value=current.title, new_value=str(changes["title"]))
            self._update_doc("playbooks", playbook_id, changes)
        return self.get_playbook(playbook_id)

    def archive_playbook(self, playbook_id: str, *, actor: str = "") -> Playbook:
        """Soft delete. Archived playbooks drop out of lists and duplicate checks."""
        current = self.get_playbook(playbook_id)
        if current.is_archived:
            return current
        with _store_errors(self.conn, "archive_playbook"):
            self._record_event(playbook_id, "archived", actor=actor)
            self._update_doc("playbooks", playbook_id, {"is_archived": 1})
        return self.get_playbook(playbook_id)

    def delete_playbook(self, playbook_id: str) -> None:
        """Hard delete a playbook with its items, progress and events.

        Clones of it keep their items; their ``origin_id`` simply stops
        resolving and they fall back to the origin-unavailable state.
        """
        self.get_playbook(playbook_id)
        with _store_errors(self.conn, "delete_playbook"):
            self.conn.execute("DELETE FROM playbook_progress WHERE playbook_id = ?", (playbook_id,))
            self.conn.execute("DELETE FROM playbook_items WHERE playbook_id = ?", (playbook_id,))
            self.conn.execute("DELETE FROM playbook_events WHERE playbook_id = ?", (playbook_id,))
            self._delete_doc("playbooks", playbook_id)
        logger.info("Deleted playbook %s", playbook_id)
