"""OrderingMixin: Item CRUD over a dense 1..N ``order`` field.

Every order computation starts from a fresh, order-sorted read taken
inside a ``BEGIN IMMEDIATE`` transaction. Two tabs reordering the same
playbook therefore serialize at the store instead of both computing
swaps from the same stale snapshot.
"""

from __future__ import annotations

import contextlib
import logging
import sqlite3
from collections.abc import Iterable, Iterator, Mapping
from typing import TYPE_CHECKING

from lorebook.db_base import DBMixinProtocol, Direction, _now_iso, _store_errors
from lorebook.errors import NotFoundError, OrderInvariantViolation, PartialWriteFailure, StoreError
from lorebook.validation import sanitize_url

if TYPE_CHECKING:
    from lorebook.core import PlaybookItem

logger = logging.getLogger(__name__)

VALID_DIRECTIONS: frozenset[str] = frozenset({"up", "down"})

# Column aliases accepted by import_items (matched case-insensitively).
_IMPORT_KEYS = {
    "title": ("title", "name"),
    "url": ("url", "link"),
    "description": ("description", "notes"),
}


def _check_contiguous(playbook_id: str, rows: list[sqlite3.Row]) -> None:
    orders = [r["order"] for r in rows]
    if orders != list(range(1, len(rows) + 1)):
        raise OrderInvariantViolation(playbook_id, orders)


def _pick(row: Mapping[str, object], field: str) -> str:
    lowered = {str(k).strip().lower(): v for k, v in row.items() if k is not None}
    for key in _IMPORT_KEYS[field]:
        value = lowered.get(key)
        if value is not None and str(value).strip():
            return str(value).strip()
    return ""


class OrderingMixin(DBMixinProtocol):
    """Append, move, delete and reindex playbook items.

    Inherits ``DBMixinProtocol`` for type-safe access to shared attributes.
    Actual implementations provided by ``LorebookDB`` at composition time via MRO.
    """

    if TYPE_CHECKING:
        # From LorebookDB
        @staticmethod
        def _build_item(row: sqlite3.Row) -> PlaybookItem: ...

    # -- Internals -----------------------------------------------------------

    @contextlib.contextmanager
    def _ordered_write(self, operation: str) -> Iterator[None]:
        """Hold the database write lock for a read-compute-write sequence."""
        with _store_errors(self.conn, operation):
            if not self.conn.in_transaction:
                self.conn.execute("BEGIN IMMEDIATE")
            try:
                yield
            except BaseException:
                if self.conn.in_transaction:
                    self.conn.rollback()
                raise
            if self.conn.in_transaction:
                self.conn.commit()

    def _fetch_ordered(self, playbook_id: str) -> list[sqlite3.Row]:
        return self._query_docs("playbook_items", order_by="order", playbook_id=playbook_id)

    def _reindex_rows(self, rows: list[sqlite3.Row]) -> int:
        """Rewrite orders to match list position. Caller owns the transaction."""
        changed = 0
        now = _now_iso()
        for position, row in enumerate(rows, start=1):
            if row["order"] != position:
                self.conn.execute(
                    'UPDATE playbook_items SET "order" = ?, updated_at = ? WHERE id = ?',
                    (position, now, row["id"]),
                )
                changed += 1
        return changed

    def _fetch_healed(self, playbook_id: str) -> list[sqlite3.Row]:
        """Fresh ordered rows, reindexed in-transaction if they drifted."""
        rows = self._fetch_ordered(playbook_id)
        try:
            _check_contiguous(playbook_id, rows)
        except OrderInvariantViolation as exc:
            logger.warning("Self-healing item order: %s", exc)
            self._reindex_rows(rows)
            rows = self._fetch_ordered(playbook_id)
        return rows

    # -- Reads -----------------------------------------------------------------

    def get_item(self, item_id: str) -> PlaybookItem:
        with _store_errors(self.conn, "get_item"):
            row = self._get_doc("playbook_items", item_id)
        if row is None:
            msg = f"Item not found: {item_id}"
            raise NotFoundError(msg)
        return self._build_item(row)

    def list_items(self, playbook_id: str) -> list[PlaybookItem]:
        """Items of a playbook sorted by order, self-healing a broken order."""
        self.get_playbook(playbook_id)
        with _store_errors(self.conn, "list_items"):
            rows = self._fetch_ordered(playbook_id)
        try:
            _check_contiguous(playbook_id, rows)
        except OrderInvariantViolation as exc:
            logger.warning("Self-healing item order on read: %s", exc)
            self.reindex(playbook_id)
            with _store_errors(self.conn, "list_items"):
                rows = self._fetch_ordered(playbook_id)
        return [self._build_item(r) for r in rows]

    # -- Writes ----------------------------------------------------------------

    def append_item(
        self,
        playbook_id: str,
        title: str,
        url: str,
        description: str = "",
        *,
        source_item_id: str | None = None,
        actor: str = "",
    ) -> PlaybookItem:
        """Add an item at the end (``order = N + 1``)."""
        if not title or not title.strip():
            msg = "Title cannot be empty"
            raise ValueError(msg)
        url, err = sanitize_url(url)
        if err:
            raise ValueError(err)
        self.get_playbook(playbook_id)

        with self._ordered_write("append_item"):
            rows = self._fetch_healed(playbook_id)
            item_id = self._generate_unique_id("playbook_items", "it")
            now = _now_iso()
            self._record_event(playbook_id, "item_added", actor=actor, new_value=item_id)
            self._create_doc(
                "playbook_items",
                {
                    "id": item_id,
                    "playbook_id": playbook_id,
                    "title": title.strip(),
                    "url": url,
                    "description": description or "",
                    "order": len(rows) + 1,
                    "source_item_id": source_item_id,
                    "created_at": now,
                    "updated_at": now,
                },
            )
        return self.get_item(item_id)

    def update_item(
        self,
        item_id: str,
        *,
        title: str | None = None,
        url: str | None = None,
        description: str | None = None,
    ) -> PlaybookItem:
        """Edit item content. Order and provenance are untouched."""
        current = self.get_item(item_id)
        changes: dict[str, object] = {}
        if title is not None:
            if not title.strip():
                msg = "Title cannot be empty"
                raise ValueError(msg)
            if title.strip() != current.title:
                changes["title"] = title.strip()
        if url is not None:
            cleaned, err = sanitize_url(url)
            if err:
                raise ValueError(err)
            if cleaned != current.url:
                changes["url"] = cleaned
        if description is not None and description != current.description:
            changes["description"] = description
        if not changes:
            return current
        with _store_errors(self.conn, "update_item"):
            self._update_doc("playbook_items", item_id, changes)
        return self.get_item(item_id)

    def delete_item(self, item_id: str, *, actor: str = "") -> None:
        """Delete an item and close the gap it leaves."""
        item = self.get_item(item_id)
        with self._ordered_write("delete_item"):
            self.conn.execute("DELETE FROM playbook_items WHERE id = ?", (item_id,))
            self.conn.execute("DELETE FROM playbook_progress WHERE item_id = ?", (item_id,))
            self._reindex_rows(self._fetch_ordered(item.playbook_id))
            self._record_event(item.playbook_id, "item_removed", actor=actor, old_value=item.title)

    def move_adjacent(self, playbook_id: str, index: int, direction: Direction, *, actor: str = "") -> bool:
        """Swap the item at 0-based *index* with its neighbour.

        Returns False (and writes nothing) when moving the first item up or
        the last item down.
        """
        self.get_playbook(playbook_id)
        return self._move(playbook_id, direction, index=index, actor=actor)

    def move_item(self, item_id: str, direction: Direction, *, actor: str = "") -> bool:
        """Move one item up or down, locating it in a fresh read."""
        item = self.get_item(item_id)
        return self._move(item.playbook_id, direction, item_id=item_id, actor=actor)

    def _move(
        self,
        playbook_id: str,
        direction: Direction,
        *,
        index: int | None = None,
        item_id: str | None = None,
        actor: str = "",
    ) -> bool:
        if direction not in VALID_DIRECTIONS:
            msg = f"Invalid direction '{direction}'. Must be 'up' or 'down'"
            raise ValueError(msg)
        with self._ordered_write("move_item"):
            rows = self._fetch_healed(playbook_id)
            if item_id is not None:
                ids = [r["id"] for r in rows]
                if item_id not in ids:
                    msg = f"Item not found: {item_id}"
                    raise NotFoundError(msg)
                index = ids.index(item_id)
            if index is None or not 0 <= index < len(rows):
                msg = f"No item at position {index} in playbook {playbook_id}"
                raise NotFoundError(msg)
            target = index - 1 if direction == "up" else index + 1
            if not 0 <= target < len(rows):
                return False
            now = _now_iso()
            moving, neighbour = rows[index], rows[target]
            self.conn.execute(
                'UPDATE playbook_items SET "order" = ?, updated_at = ? WHERE id = ?',
                (target + 1, now, moving["id"]),
            )
            self.conn.execute(
                'UPDATE playbook_items SET "order" = ?, updated_at = ? WHERE id = ?',
                (index + 1, now, neighbour["id"]),
            )
            self._record_event(playbook_id, "item_moved", actor=actor, old_value=str(index + 1), new_value=str(target + 1))
        return True

    def reindex(self, playbook_id: str) -> int:
        """Rewrite orders to 1..N following the current sort. Returns rows changed."""
        with self._ordered_write("reindex"):
            changed = self._reindex_rows(self._fetch_ordered(playbook_id))
        if changed:
            logger.info("Reindexed %d item(s) in playbook %s", changed, playbook_id)
        return changed

    def import_items(self, playbook_id: str, rows: Iterable[Mapping[str, object]], *, actor: str = "") -> int:
        """Append spreadsheet-style rows (title/url/description) in order.

        Rows without a title or URL are skipped. Returns the number appended.
        """
        self.get_playbook(playbook_id)
        entries = []
        for row in rows:
            title, url = _pick(row, "title"), _pick(row, "url")
            url, err = sanitize_url(url)
            if not title or err:
                continue
            entries.append((title, url, _pick(row, "description")))

        written = 0
        for title, url, description in entries:
            try:
                self.append_item(playbook_id, title, url, description, actor=actor)
            except StoreError as exc:
                raise PartialWriteFailure("import", playbook_id=playbook_id, written=written, total=len(entries)) from exc
            written += 1
        logger.info("Imported %d item(s) into playbook %s", written, playbook_id)
        return written
