"""TypedDicts for MCP tool handler and dashboard route API responses."""

from __future__ import annotations

from typing import Literal, NotRequired, TypedDict

from lorebook.types.core import NoteDict, PlaybookDict, PlaybookItemDict


class ErrorResponse(TypedDict):
    """Standard error envelope returned by MCP error paths."""

    error: str
    code: str
    written: NotRequired[int]
    total: NotRequired[int]


class DuplicateCheckDict(TypedDict):
    found: bool
    scope: Literal["current", "other", "none"]
    other_playbook_id: str | None
    other_playbook_title: str | None


class SyncStatus(TypedDict):
    """Clone detail-view summary: provenance plus divergence."""

    is_clone: bool
    origin_id: str | None
    origin_available: bool
    origin_title: str | None
    sync_baseline: int
    item_count: int
    new_item_count: int
    new_items: list[PlaybookItemDict]


class ProgressSummary(TypedDict):
    completed: int
    total: int
    percent: int


class ProgressRecord(TypedDict):
    user_id: str
    item_id: str
    playbook_id: str
    completed: bool
    rating: int | None
    notes: str
    updated_at: str


class EventRecord(TypedDict):
    id: int
    playbook_id: str
    event_type: str
    actor: str
    old_value: str | None
    new_value: str | None
    created_at: str


class SharedView(TypedDict):
    """What a public share link renders.

    ``state`` keeps "no such code" and "code exists but private" apart.
    """

    kind: str
    state: Literal["not_found", "private", "public"]
    playbook: NotRequired[PlaybookDict]
    items: NotRequired[list[PlaybookItemDict]]
    note: NotRequired[NoteDict]


class PlaybookDetail(PlaybookDict):
    items: list[PlaybookItemDict]
    sync: SyncStatus
