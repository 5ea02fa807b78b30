# IMPORT CONSTRAINT: types/ modules must only import from typing, stdlib, and each other.
# NEVER import from core.py, db_base.py, or any mixin, to keep imports acyclic.
"""Typed return-value contracts for lorebook core and API layers."""

from __future__ import annotations

from lorebook.types.core import (
    ISOTimestamp,
    NoteDict,
    PlaybookDict,
    PlaybookItemDict,
    ProjectConfig,
    WorkspaceDict,
)

__all__ = [
    "ISOTimestamp",
    "NoteDict",
    "PlaybookDict",
    "PlaybookItemDict",
    "ProjectConfig",
    "WorkspaceDict",
]
