"""Error kinds raised across the lorebook core.

Surfaces (CLI, dashboard, MCP) translate these into their own envelopes.
Nothing from ``sqlite3`` is allowed past a public core method; store
failures arrive here as :class:`StoreError` or :class:`PartialWriteFailure`.
"""

from __future__ import annotations


class LorebookError(Exception):
    """Root of every error the core raises on purpose."""


class NotFoundError(LorebookError, KeyError):
    """A referenced playbook, item, workspace, note or share code does not resolve.

    Subclasses ``KeyError`` so ``except KeyError`` call sites keep working.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message.
        return self.message


class OriginUnavailableError(NotFoundError):
    """A clone's origin playbook no longer resolves."""

    def __init__(self, clone_id: str, origin_id: str) -> None:
        super().__init__(f"Origin playbook {origin_id} of clone {clone_id} is unavailable")
        self.clone_id = clone_id
        self.origin_id = origin_id


class PrivatePlaybookError(LorebookError):
    """The resource resolved but is not public."""

    def __init__(self, resource_id: str, kind: str = "playbook") -> None:
        super().__init__(f"{kind.capitalize()} {resource_id} is private")
        self.resource_id = resource_id
        self.kind = kind


class StoreError(LorebookError):
    """A single document-store operation failed."""


class PartialWriteFailure(StoreError):
    """A bulk write (clone, sync merge, import) stopped part-way.

    Items already written stay in place. ``written`` is what the caller
    should report; recovery is re-running the operation from fresh state.
    """

    def __init__(self, operation: str, *, playbook_id: str, written: int, total: int) -> None:
        super().__init__(f"{operation} wrote {written} of {total} items to playbook {playbook_id} before failing")
        self.operation = operation
        self.playbook_id = playbook_id
        self.written = written
        self.total = total


class OrderInvariantViolation(LorebookError):
    """Item orders in a playbook are not exactly 1..N. Internal only."""

    def __init__(self, playbook_id: str, orders: list[int]) -> None:
        super().__init__(f"Playbook {playbook_id} has non-contiguous orders: {orders}")
        self.playbook_id = playbook_id
        self.orders = orders
