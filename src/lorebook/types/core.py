"""Foundational TypedDicts for dataclass to_dict() returns."""

from __future__ import annotations

from typing import NewType, TypedDict

ISOTimestamp = NewType("ISOTimestamp", str)


class ProjectConfig(TypedDict, total=False):
    """Shape of .lorebook/config.json."""

    prefix: str
    version: int
    default_workspace: str
    default_user: str


class WorkspaceDict(TypedDict):
    id: str
    name: str
    created_at: ISOTimestamp
    updated_at: ISOTimestamp


class PlaybookDict(TypedDict):
    id: str
    workspace_id: str
    title: str
    description: str
    tool_url: str | None
    category_id: str | None
    visibility: str
    share_code: str
    origin_id: str | None
    sync_baseline: int
    is_archived: bool
    is_clone: bool
    item_count: int
    created_at: ISOTimestamp
    updated_at: ISOTimestamp


class PlaybookItemDict(TypedDict):
    id: str
    playbook_id: str
    title: str
    url: str
    description: str
    order: int
    source_item_id: str | None
    created_at: ISOTimestamp
    updated_at: ISOTimestamp


class NoteDict(TypedDict):
    id: str
    workspace_id: str
    title: str
    content: str
    visibility: str
    share_code: str | None
    is_archived: bool
    created_at: ISOTimestamp
    updated_at: ISOTimestamp
