"""EventsMixin: Per-playbook activity trail.

Events are written only against the playbook being mutated. Clone and
sync activity never records anything on an origin playbook.
"""

from __future__ import annotations

from typing import cast

from lorebook.db_base import DBMixinProtocol, _now_iso, _store_errors
from lorebook.types.api import EventRecord


class EventsMixin(DBMixinProtocol):
    """Event recording and retrieval.

    Inherits ``DBMixinProtocol`` for type-safe access to shared attributes.
    Actual implementations provided by ``LorebookDB`` at composition time via MRO.
    """

    # -- Events (private) ----------------------------------------------------

    def _record_event(
        self,
        playbook_id: str,
        event_type: str,
        *,
        actor: str = "",
        old_value: str | None = None,
        new_value: str | None = None,
    ) -> None:
        """Queue an event row on the current transaction. Caller commits."""
        self.conn.execute(
            "INSERT INTO playbook_events (playbook_id, event_type, actor, old_value, new_value, created_at) VALUES (?, ?, ?, ?, ?, ?)",
            (playbook_id, event_type, actor, old_value, new_value, _now_iso()),
        )

    # -- Events (public) -----------------------------------------------------

    def get_playbook_events(self, playbook_id: str, *, limit: int = 50) -> list[EventRecord]:
        """Events for one playbook, newest first."""
        with _store_errors(self.conn, "get_playbook_events"):
            rows = self.conn.execute(
                "SELECT * FROM playbook_events WHERE playbook_id = ? ORDER BY created_at DESC, id DESC LIMIT ?",
                (playbook_id, limit),
            ).fetchall()
        return cast(list[EventRecord], [dict(r) for r in rows])
