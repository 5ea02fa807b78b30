"""Shared utilities, types, and Protocol for DB mixins."""

from __future__ import annotations

import contextlib
import logging
import sqlite3
from collections.abc import Iterator
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Literal, Protocol

from lorebook.errors import StoreError

if TYPE_CHECKING:
    from lorebook.core import Playbook, PlaybookItem

Visibility = Literal["public", "private"]
Direction = Literal["up", "down"]

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


@contextlib.contextmanager
def _store_errors(conn: sqlite3.Connection, operation: str) -> Iterator[None]:
    """Roll back and re-raise ``sqlite3.Error`` as :class:`StoreError`."""
    try:
        yield
    except sqlite3.Error as exc:
        if conn.in_transaction:
            conn.rollback()
        logger.error("Store failure during %s: %s", operation, exc)
        raise StoreError(f"{operation} failed: {exc}") from exc


class DBMixinProtocol(Protocol):
    """Shared attributes and methods that DB mixins access via self.

    Mixins inherit this Protocol so mypy can type-check self.conn,
    self.get_playbook(), etc. without ``type: ignore`` on every call.
    Actual implementations are provided by LorebookDB at composition time.
    """

    db_path: Path
    prefix: str
    _conn: sqlite3.Connection | None

    @property
    def conn(self) -> sqlite3.Connection: ...

    def get_playbook(self, playbook_id: str) -> Playbook: ...

    def get_item(self, item_id: str) -> PlaybookItem: ...

    def _generate_unique_id(self, table: str, infix: str = "") -> str: ...

    def _get_doc(self, table: str, doc_id: str) -> sqlite3.Row | None: ...

    def _query_docs(self, table: str, *, order_by: str | None = None, **equals: object) -> list[sqlite3.Row]: ...

    def _create_doc(self, table: str, data: dict[str, object]) -> str: ...

    def _update_doc(self, table: str, doc_id: str, data: dict[str, object]) -> None: ...

    def _delete_doc(self, table: str, doc_id: str) -> None: ...

    def _record_event(
        self,
        playbook_id: str,
        event_type: str,
        *,
        actor: str = "",
        old_value: str | None = None,
        new_value: str | None = None,
    ) -> None: ...
