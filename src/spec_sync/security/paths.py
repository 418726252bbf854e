"""Containment checks for paths reported by version control."""

from __future__ import annotations

from pathlib import Path


class PathBlockedError(Exception):
    """Raised when a path reported by a collaborator escapes the project root."""

    def __init__(self, reason: str, hint: str) -> None:
        super().__init__(reason)
        self.reason = reason
        self.hint = hint


def resolve_project_path(project_root: Path, candidate: str) -> Path:
    """Resolve a project-relative path, refusing anything that leaves the root."""
    root = project_root.resolve()
    normalized = candidate.strip().replace("\\", "/")
    if not normalized:
        raise PathBlockedError(
            reason="Path is empty.",
            hint="Provide a project-relative path such as 'lib/calc.js'.",
        )
    if normalized.startswith("/"):
        raise PathBlockedError(
            reason="Path must be project-relative.",
            hint="Version control output is read relative to the project root.",
        )

    parts = [part for part in normalized.split("/") if part not in ("", ".")]
    if ".." in parts:
        raise PathBlockedError(
            reason="Path traversal is blocked.",
            hint="Remove '..' segments and use a project-relative path.",
        )

    # Symlinks may still point outside.
    resolved = (root / Path(*parts)).resolve(strict=False)
    if not resolved.is_relative_to(root):
        raise PathBlockedError(
            reason="Resolved path escapes the project root.",
            hint="Only files under the project root are synchronized.",
        )
    return resolved


def relative_posix(project_root: Path, path: Path) -> str:
    """Return a project-relative POSIX path string."""
    return path.resolve(strict=False).relative_to(project_root.resolve()).as_posix()
