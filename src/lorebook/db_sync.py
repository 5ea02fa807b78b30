"""SyncMixin: Clone a playbook, detect origin additions, merge them in.

Provenance is two back-references: ``playbooks.origin_id`` on a clone and
``playbook_items.source_item_id`` on every item that came from the origin.
Both are lookup-only. Writes in this module only ever target the clone
side; an origin playbook and its items are read, never written.

Merging is idempotent only through fresh recomputation: callers derive
the list to merge from :meth:`check_new_content` immediately before
calling :meth:`merge_new_content` (or use :meth:`sync_playbook`, which
does both). The merge itself does not deduplicate.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Sequence
from typing import TYPE_CHECKING

from lorebook.db_base import DBMixinProtocol, _now_iso, _store_errors
from lorebook.errors import NotFoundError, OriginUnavailableError, PartialWriteFailure, PrivatePlaybookError, StoreError
from lorebook.types.api import SyncStatus

if TYPE_CHECKING:
    from lorebook.core import Playbook, PlaybookItem, Workspace

logger = logging.getLogger(__name__)


class SyncMixin(DBMixinProtocol):
    """Clone, divergence detection and one-directional sync merge."""

    if TYPE_CHECKING:
        # From LorebookDB
        def _build_playbook(self, row: sqlite3.Row) -> Playbook: ...
        def _generate_share_code(self, table: str) -> str: ...
        def get_workspace(self, workspace_id: str) -> Workspace: ...

        # From OrderingMixin
        def list_items(self, playbook_id: str) -> list[PlaybookItem]: ...
        def append_item(
            self,
            playbook_id: str,
            title: str,
            url: str,
            description: str = "",
            *,
            source_item_id: str | None = None,
            actor: str = "",
        ) -> PlaybookItem: ...

        # From SharingMixin
        def resolve_share_code(self, code: str) -> Playbook: ...

    # -- Provenance lookups ----------------------------------------------------

    def find_existing_clone(self, source_playbook_id: str, workspace_id: str) -> Playbook | None:
        """Return a live clone of *source_playbook_id* in *workspace_id*, if any."""
        with _store_errors(self.conn, "find_existing_clone"):
            row = self.conn.execute(
                "SELECT * FROM playbooks WHERE workspace_id = ? AND origin_id = ? AND is_archived = 0 ORDER BY created_at, id LIMIT 1",
                (workspace_id, source_playbook_id),
            ).fetchone()
            return self._build_playbook(row) if row is not None else None

    def list_clones(self, source_playbook_id: str) -> list[Playbook]:
        with _store_errors(self.conn, "list_clones"):
            rows = self._query_docs("playbooks", order_by="created_at", origin_id=source_playbook_id)
            return [self._build_playbook(r) for r in rows]

    def get_origin(self, clone: Playbook) -> Playbook:
        """Resolve a clone's origin, raising :class:`OriginUnavailableError` if it is gone."""
        if clone.origin_id is None:
            msg = f"Playbook {clone.id} is not a clone"
            raise ValueError(msg)
        try:
            return self.get_playbook(clone.origin_id)
        except NotFoundError:
            raise OriginUnavailableError(clone.id, clone.origin_id) from None

    # -- Clone -------------------------------------------------------------------

    def clone_playbook(self, source_playbook_id: str, destination_workspace_id: str, *, actor: str = "") -> Playbook:
        """Copy a public playbook and its items into another workspace.

        Not idempotent: two calls make two clones. Use
        :meth:`find_existing_clone` first when that matters. If an item
        write fails the partially-filled clone is kept and
        :class:`PartialWriteFailure` names it; a later sync fills the gap.
        """
        source = self.get_playbook(source_playbook_id)
        if not source.is_public:
            raise PrivatePlaybookError(source.id)
        self.get_workspace(destination_workspace_id)
        source_items = self.list_items(source.id)

        now = _now_iso()
        with _store_errors(self.conn, "clone_playbook"):
            clone_id = self._generate_unique_id("playbooks", "pb")
            self._record_event(clone_id, "cloned", actor=actor, old_value=source.id, new_value=source.title)
            self._create_doc(
                "playbooks",
                {
                    "id": clone_id,
                    "workspace_id": destination_workspace_id,
                    "title": source.title,
                    "description": source.description,
                    "tool_url": source.tool_url,
                    "category_id": None,
                    "visibility": "private",
                    "share_code": self._generate_share_code("playbooks"),
                    "origin_id": source.id,
                    "sync_baseline": len(source_items),
                    "is_archived": 0,
                    "created_at": now,
                    "updated_at": now,
                },
            )

        written = 0
        for item in source_items:
            try:
                self.append_item(clone_id, item.title, item.url, item.description, source_item_id=item.id, actor=actor)
            except StoreError as exc:
                logger.error("Clone of %s into %s stopped after %d/%d items", source.id, clone_id, written, len(source_items))
                raise PartialWriteFailure("clone", playbook_id=clone_id, written=written, total=len(source_items)) from exc
            written += 1

        logger.info("Cloned playbook %s into %s (%d items, workspace %s)", source.id, clone_id, written, destination_workspace_id)
        return self.get_playbook(clone_id)

    def clone_by_share_code(self, code: str, destination_workspace_id: str, *, actor: str = "") -> Playbook:
        """Clone the playbook behind a share link."""
        source = self.resolve_share_code(code)
        return self.clone_playbook(source.id, destination_workspace_id, actor=actor)

    # -- Divergence ------------------------------------------------------------

    def find_new_content(self, origin_id: str, clone_items: Sequence[PlaybookItem]) -> list[PlaybookItem]:
        """Origin items not yet mirrored by any of *clone_items*, in origin order.

        Keyed on origin item identity, not content: edits to an already
        mirrored item never resurface it. A vanished origin yields ``[]``.
        """
        cloned_ids = {item.source_item_id for item in clone_items if item.source_item_id}
        try:
            origin_items = self.list_items(origin_id)
        except NotFoundError:
            logger.warning("Origin playbook %s unavailable; reporting no new content", origin_id)
            return []
        return [item for item in origin_items if item.id not in cloned_ids]

    def check_new_content(self, clone_playbook_id: str) -> list[PlaybookItem]:
        """Fresh divergence for a playbook. Origins (non-clones) always get ``[]``."""
        clone = self.get_playbook(clone_playbook_id)
        if clone.origin_id is None:
            return []
        return self.find_new_content(clone.origin_id, self.list_items(clone.id))

    def get_sync_status(self, playbook_id: str) -> SyncStatus:
        """Provenance and divergence summary for a playbook's detail view."""
        playbook = self.get_playbook(playbook_id)
        status = SyncStatus(
            is_clone=playbook.is_clone,
            origin_id=playbook.origin_id,
            origin_available=False,
            origin_title=None,
            sync_baseline=playbook.sync_baseline,
            item_count=playbook.item_count,
            new_item_count=0,
            new_items=[],
        )
        if not playbook.is_clone:
            return status
        try:
            origin = self.get_origin(playbook)
        except OriginUnavailableError as exc:
            logger.info("%s", exc)
            return status
        new_items = self.find_new_content(origin.id, self.list_items(playbook.id))
        status["origin_available"] = True
        status["origin_title"] = origin.title
        status["new_item_count"] = len(new_items)
        status["new_items"] = [i.to_dict() for i in new_items]
        return status

    # -- Merge -------------------------------------------------------------------

    def merge_new_content(self, clone_playbook_id: str, new_items: Sequence[PlaybookItem], *, actor: str = "") -> int:
        """Append *new_items* to the clone in the given order and advance the baseline.

        *new_items* must come from a fresh :meth:`check_new_content`. On a
        mid-way failure the appended items stay, the baseline is left
        alone, and :class:`PartialWriteFailure` reports the count.
        """
        clone = self.get_playbook(clone_playbook_id)
        if not new_items:
            return 0

        written = 0
        for item in new_items:
            try:
                self.append_item(clone.id, item.title, item.url, item.description, source_item_id=item.id, actor=actor)
            except StoreError as exc:
                logger.error("Sync of %s stopped after %d/%d items; baseline not updated", clone.id, written, len(new_items))
                raise PartialWriteFailure("sync", playbook_id=clone.id, written=written, total=len(new_items)) from exc
            written += 1

        with _store_errors(self.conn, "merge_new_content"):
            count: int = self.conn.execute("SELECT COUNT(*) FROM playbook_items WHERE playbook_id = ?", (clone.id,)).fetchone()[0]
            self._record_event(clone.id, "synced", actor=actor, old_value=str(clone.sync_baseline), new_value=str(count))
            self._update_doc("playbooks", clone.id, {"sync_baseline": count})
        logger.info("Synced %d new item(s) into %s; baseline %d -> %d", written, clone.id, clone.sync_baseline, count)
        return written

    def sync_playbook(self, clone_playbook_id: str, *, actor: str = "") -> int:
        """Recompute divergence and merge it. Safe to repeat."""
        return self.merge_new_content(clone_playbook_id, self.check_new_content(clone_playbook_id), actor=actor)
