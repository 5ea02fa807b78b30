"""DuplicatesMixin: Advisory URL duplicate detection.

The check never blocks an insert. It reports where a URL already lives
and leaves the decision to the caller. URLs are compared as exact strings.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

from lorebook.db_base import DBMixinProtocol
from lorebook.errors import StoreError
from lorebook.types.api import DuplicateCheckDict

if TYPE_CHECKING:
    from lorebook.core import PlaybookItem

logger = logging.getLogger(__name__)

DuplicateScope = Literal["current", "other", "none"]


@dataclass(frozen=True)
class DuplicateWarning:
    found: bool
    scope: DuplicateScope
    other_playbook_id: str | None = None
    other_playbook_title: str | None = None

    def to_dict(self) -> DuplicateCheckDict:
        return {
            "found": self.found,
            "scope": self.scope,
            "other_playbook_id": self.other_playbook_id,
            "other_playbook_title": self.other_playbook_title,
        }


NO_DUPLICATE = DuplicateWarning(found=False, scope="none")


class DuplicatesMixin(DBMixinProtocol):
    """URL duplicate checks scoped to a playbook or its workspace."""

    if TYPE_CHECKING:

        def list_items(self, playbook_id: str) -> list[PlaybookItem]: ...

    def check_duplicate(
        self,
        url: str,
        current_playbook_id: str,
        *,
        loaded_items: Sequence[PlaybookItem] | None = None,
        workspace_id: str | None = None,
        cross_scope: bool = True,
    ) -> DuplicateWarning:
        """Report whether *url* already exists in this playbook or elsewhere in the workspace.

        *loaded_items* is the caller's already-fetched item list for the
        current playbook; passing it skips a round trip for the cheap check.
        """
        candidate = url.strip()
        if not candidate:
            return NO_DUPLICATE

        items = loaded_items if loaded_items is not None else self.list_items(current_playbook_id)
        if any(item.url == candidate for item in items):
            return DuplicateWarning(found=True, scope="current")
        if not cross_scope:
            return NO_DUPLICATE

        try:
            if workspace_id is None:
                workspace_id = self.get_playbook(current_playbook_id).workspace_id
            row = self.conn.execute(
                "SELECT p.id, p.title FROM playbook_items i JOIN playbooks p ON p.id = i.playbook_id "
                "WHERE i.url = ? AND p.workspace_id = ? AND p.is_archived = 0 AND p.id != ? "
                "ORDER BY p.created_at, p.id LIMIT 1",
                (candidate, workspace_id, current_playbook_id),
            ).fetchone()
        except (sqlite3.Error, StoreError):
            logger.warning("Cross-playbook duplicate check failed for %s; reporting current scope only", candidate, exc_info=True)
            return NO_DUPLICATE

        if row is None:
            return NO_DUPLICATE
        return DuplicateWarning(found=True, scope="other", other_playbook_id=row["id"], other_playbook_title=row["title"])
