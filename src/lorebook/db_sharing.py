"""SharingMixin: Share codes, visibility and the shared-view decision.

A share code is minted once when a resource is created (or first
published, for notes) and never changes afterwards. Visibility toggles
only flip the ``visibility`` column; they never rotate the code.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Literal, Protocol

from lorebook.db_base import DBMixinProtocol, _store_errors
from lorebook.errors import NotFoundError
from lorebook.types.api import SharedView

if TYPE_CHECKING:
    import sqlite3

    from lorebook.core import LorebookDB, Note, Playbook, PlaybookItem

logger = logging.getLogger(__name__)

ShareKind = Literal["playbook", "note"]
VALID_SHARE_KINDS: frozenset[str] = frozenset({"playbook", "note"})


def share_path(kind: str, code: str) -> str:
    """Path a share link points at. The host is the deployment's concern."""
    return f"/shared/{kind}/{code}"


class ShareableResource(Protocol):
    """What the sharing gateway needs from a shareable collection."""

    kind: ShareKind

    def resolve_by_code(self, code: str) -> Playbook | Note: ...

    def set_visibility(self, resource_id: str, is_public: bool) -> str: ...


class _TableShares:
    """Share-code lookups over one collection table."""

    kind: ShareKind
    table: str

    def __init__(self, db: LorebookDB) -> None:
        self._db = db

    def _row_by_code(self, code: str) -> sqlite3.Row:
        with _store_errors(self._db.conn, f"resolve_{self.kind}_share"):
            row: sqlite3.Row | None = self._db.conn.execute(
                f"SELECT * FROM {self.table} WHERE share_code = ?", (code.strip().lower(),)
            ).fetchone()
        if row is None:
            msg = f"No {self.kind} is shared under code: {code}"
            raise NotFoundError(msg)
        return row

    def set_visibility(self, resource_id: str, is_public: bool) -> str:
        row = self._db._get_doc(self.table, resource_id)
        if row is None:
            msg = f"{self.kind.capitalize()} not found: {resource_id}"
            raise NotFoundError(msg)
        changes: dict[str, object] = {}
        code = row["share_code"]
        if not code:
            code = self._db._generate_share_code(self.table)
            changes["share_code"] = code
        visibility = "public" if is_public else "private"
        if row["visibility"] != visibility:
            changes["visibility"] = visibility
        if changes:
            with _store_errors(self._db.conn, f"set_{self.kind}_visibility"):
                if self.kind == "playbook" and "visibility" in changes:
                    self._db._record_event(resource_id, "visibility_changed", old_value=row["visibility"], new_value=visibility)
                self._db._update_doc(self.table, resource_id, changes)
            logger.info("%s %s is now %s (code %s)", self.kind.capitalize(), resource_id, visibility, code)
        return str(code)


class PlaybookShares(_TableShares):
    kind: ShareKind = "playbook"
    table = "playbooks"

    def resolve_by_code(self, code: str) -> Playbook:
        return self._db._build_playbook(self._row_by_code(code))


class NoteShares(_TableShares):
    kind: ShareKind = "note"
    table = "notes"

    def resolve_by_code(self, code: str) -> Note:
        return self._db._build_note(self._row_by_code(code))


class SharingMixin(DBMixinProtocol):
    """Share-code resolution and visibility for playbooks and notes."""

    if TYPE_CHECKING:
        # From OrderingMixin
        def list_items(self, playbook_id: str) -> list[PlaybookItem]: ...

    def shares(self, kind: str) -> ShareableResource:
        """The gateway for one shareable kind (``"playbook"`` or ``"note"``)."""
        if kind == "playbook":
            return PlaybookShares(self)  # type: ignore[arg-type]
        if kind == "note":
            return NoteShares(self)  # type: ignore[arg-type]
        msg = f"Unknown share kind '{kind}'. Must be one of: {', '.join(sorted(VALID_SHARE_KINDS))}"
        raise ValueError(msg)

    def resolve_share_code(self, code: str) -> Playbook:
        """The playbook behind *code*, whatever its visibility."""
        return PlaybookShares(self).resolve_by_code(code)  # type: ignore[arg-type]

    def set_visibility(self, playbook_id: str, is_public: bool) -> str:
        """Publish or unpublish a playbook. Returns its (unchanged) share code."""
        self.get_playbook(playbook_id)
        return PlaybookShares(self).set_visibility(playbook_id, is_public)  # type: ignore[arg-type]

    def resolve_shared_view(self, kind: str, code: str) -> SharedView:
        """Decide what a share link shows.

        ``not_found`` and ``private`` are distinct states; content is only
        included for ``public``.
        """
        gateway = self.shares(kind)
        try:
            resource = gateway.resolve_by_code(code)
        except NotFoundError:
            return SharedView(kind=kind, state="not_found")
        if not resource.is_public:
            return SharedView(kind=kind, state="private")

        view = SharedView(kind=kind, state="public")
        if kind == "playbook":
            view["playbook"] = resource.to_dict()  # type: ignore[typeddict-item]
            view["items"] = [item.to_dict() for item in self.list_items(resource.id)]
        else:
            view["note"] = resource.to_dict()  # type: ignore[typeddict-item]
        return view
