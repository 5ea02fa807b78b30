"""ProgressMixin: Per-user learning progress on playbook items.

Progress rows are keyed ``(user_id, item_id)`` and merge on write: only the
fields a caller passes are changed. Progress is independent of cloning and
sync; a clone's items are new items with their own progress.
"""

from __future__ import annotations

import sqlite3
from typing import cast

from lorebook.db_base import DBMixinProtocol, _now_iso, _store_errors
from lorebook.types.api import ProgressRecord, ProgressSummary

_MAX_RATING = 5


class ProgressMixin(DBMixinProtocol):
    """Completion and rating tracking."""

    def set_item_progress(
        self,
        user_id: str,
        item_id: str,
        *,
        completed: bool | None = None,
        rating: int | None = None,
        notes: str | None = None,
    ) -> ProgressRecord:
        if not user_id or not user_id.strip():
            msg = "user_id cannot be empty"
            raise ValueError(msg)
        if rating is not None and not 0 <= rating <= _MAX_RATING:
            msg = f"Rating must be between 0 and {_MAX_RATING}, got {rating}"
            raise ValueError(msg)
        item = self.get_item(item_id)

        with _store_errors(self.conn, "set_item_progress"):
            existing = self.conn.execute(
                "SELECT * FROM playbook_progress WHERE user_id = ? AND item_id = ?", (user_id, item_id)
            ).fetchone()
            merged = {
                "completed": int(completed) if completed is not None else (existing["completed"] if existing else 0),
                "rating": rating if rating is not None else (existing["rating"] if existing else None),
                "notes": notes if notes is not None else (existing["notes"] if existing else ""),
            }
            self.conn.execute(
                "INSERT INTO playbook_progress (user_id, item_id, playbook_id, completed, rating, notes, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?) "
                "ON CONFLICT(user_id, item_id) DO UPDATE SET "
                "completed = excluded.completed, rating = excluded.rating, notes = excluded.notes, updated_at = excluded.updated_at",
                (user_id, item_id, item.playbook_id, merged["completed"], merged["rating"], merged["notes"], _now_iso()),
            )
            self.conn.commit()
            row = self.conn.execute(
                "SELECT * FROM playbook_progress WHERE user_id = ? AND item_id = ?", (user_id, item_id)
            ).fetchone()
        return _progress_record(row)

    def get_progress(self, user_id: str, playbook_id: str) -> list[ProgressRecord]:
        self.get_playbook(playbook_id)
        with _store_errors(self.conn, "get_progress"):
            rows = self.conn.execute(
                "SELECT pr.* FROM playbook_progress pr JOIN playbook_items i ON i.id = pr.item_id "
                'WHERE pr.user_id = ? AND pr.playbook_id = ? ORDER BY i."order"',
                (user_id, playbook_id),
            ).fetchall()
        return [_progress_record(r) for r in rows]

    def get_progress_summary(self, user_id: str, playbook_id: str) -> ProgressSummary:
        """Completed/total for one user. ``percent`` is 0 for an empty playbook."""
        self.get_playbook(playbook_id)
        with _store_errors(self.conn, "get_progress_summary"):
            total: int = self.conn.execute(
                "SELECT COUNT(*) FROM playbook_items WHERE playbook_id = ?", (playbook_id,)
            ).fetchone()[0]
            completed: int = self.conn.execute(
                "SELECT COUNT(*) FROM playbook_progress pr JOIN playbook_items i ON i.id = pr.item_id "
                "WHERE pr.user_id = ? AND i.playbook_id = ? AND pr.completed = 1",
                (user_id, playbook_id),
            ).fetchone()[0]
        percent = round(completed * 100 / total) if total else 0
        return ProgressSummary(completed=completed, total=total, percent=percent)


def _progress_record(row: sqlite3.Row) -> ProgressRecord:
    record = dict(row)
    record["completed"] = bool(record["completed"])
    record["notes"] = record["notes"] or ""
    return cast(ProgressRecord, record)
