"""Version-control collaborator contract."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol


class VersionControlError(Exception):
    """Raised when a version-control query cannot be answered."""

    def __init__(self, reason: str, hint: str) -> None:
        super().__init__(reason)
        self.reason = reason
        self.hint = hint


class WorkingTreeDirtyError(Exception):
    """Raised when a write run would start on top of uncommitted changes."""

    def __init__(self, reason: str, hint: str) -> None:
        super().__init__(reason)
        self.reason = reason
        self.hint = hint


@dataclass(slots=True, frozen=True)
class ChangeQuery:
    """Paths changed since a reference, plus the head they were compared against."""

    paths: tuple[str, ...]
    head: str | None


class VersionControlPort(Protocol):
    """Read-only queries the orchestrator needs from version control."""

    def is_clean(self, root: Path) -> bool:
        """Return True when tracked files carry no uncommitted changes."""

    def changed_since(self, root: Path, ref: str) -> ChangeQuery:
        """Return project-relative paths changed between `ref` and the current head."""

    def head(self, root: Path) -> str | None:
        """Return the current head reference, or None when there is none."""
