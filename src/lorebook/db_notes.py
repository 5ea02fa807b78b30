"""NotesMixin: Workspace notes, the second shareable resource kind."""

from __future__ import annotations

import sqlite3
from typing import TYPE_CHECKING

from lorebook.db_base import DBMixinProtocol, Visibility, _now_iso, _store_errors
from lorebook.errors import NotFoundError

if TYPE_CHECKING:
    from lorebook.core import Note, Workspace


class NotesMixin(DBMixinProtocol):
    """Note CRUD.

    Notes get a share code lazily, the first time they are published.
    """

    if TYPE_CHECKING:
        # From LorebookDB
        @staticmethod
        def _build_note(row: sqlite3.Row) -> Note: ...
        def _generate_share_code(self, table: str) -> str: ...
        def get_workspace(self, workspace_id: str) -> Workspace: ...

    def create_note(
        self,
        workspace_id: str,
        title: str,
        content: str = "",
        *,
        visibility: Visibility = "private",
    ) -> Note:
        if not title or not title.strip():
            msg = "Title cannot be empty"
            raise ValueError(msg)
        if visibility not in ("public", "private"):
            msg = f"Invalid visibility '{visibility}'. Must be 'public' or 'private'"
            raise ValueError(msg)
        self.get_workspace(workspace_id)
        now = _now_iso()
        with _store_errors(self.conn, "create_note"):
            note_id = self._generate_unique_id("notes", "nt")
            self._create_doc(
                "notes",
                {
                    "id": note_id,
                    "workspace_id": workspace_id,
                    "title": title.strip(),
                    "content": content,
                    "visibility": visibility,
                    "share_code": self._generate_share_code("notes") if visibility == "public" else None,
                    "is_archived": 0,
                    "created_at": now,
                    "updated_at": now,
                },
            )
        return self.get_note(note_id)

    def get_note(self, note_id: str) -> Note:
        with _store_errors(self.conn, "get_note"):
            row = self._get_doc("notes", note_id)
        if row is None:
            msg = f"Note not found: {note_id}"
            raise NotFoundError(msg)
        return self._build_note(row)

    def list_notes(self, workspace_id: str, *, include_archived: bool = False) -> list[Note]:
        with _store_errors(self.conn, "list_notes"):
            if include_archived:
                rows = self._query_docs("notes", order_by="created_at", workspace_id=workspace_id)
            else:
                rows = self._query_docs("notes", order_by="created_at", workspace_id=workspace_id, is_archived=0)
        return [self._build_note(r) for r in rows]
