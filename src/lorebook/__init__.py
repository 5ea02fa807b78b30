"""Lorebook: a workspace knowledge base with clonable, syncable playbooks."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("lorebook")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"

from lorebook.core import LorebookDB, Playbook, PlaybookItem

__all__ = ["LorebookDB", "Playbook", "PlaybookItem", "__version__"]
