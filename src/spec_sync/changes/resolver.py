"""Decide which source files a run should analyze."""

from __future__ import annotations

from dataclasses import dataclass

from spec_sync.changes.discovery import discover_source_files, is_source_candidate
from spec_sync.config import SyncConfig
from spec_sync.diagnostics import (
    WARNING_MISSING_SOURCE,
    WARNING_NO_CHECKPOINT,
    WARNING_PATH_BLOCKED,
    WARNING_VCS_FALLBACK,
    SyncWarning,
)
from spec_sync.security import PathBlockedError, relative_posix, resolve_project_path
from spec_sync.vcs import VersionControlError, VersionControlPort

STRATEGY_INCREMENTAL = "incremental"
STRATEGY_FULL = "full"

STATUS_CHANGED = "changed"
STATUS_DISCOVERED = "discovered"


@dataclass(slots=True, frozen=True)
class FileRef:
    """One source file selected for analysis."""

    path: str
    status: str


@dataclass(slots=True, frozen=True)
class ChangeSet:
    """Files to analyze plus how they were found."""

    files: tuple[FileRef, ...]
    strategy: str
    head: str | None
    warnings: tuple[SyncWarning, ...] = ()

    @property
    def paths(self) -> tuple[str, ...]:
        """Return project-relative paths in analysis order."""
        return tuple(item.path for item in self.files)


class ChangeSetResolver:
    """Resolve the change set from version control, falling back to a full walk.

    Never raises for collaborator failures; every fallback is reported as a
    warning on the returned change set.
    """

    def __init__(self, config: SyncConfig, vcs: VersionControlPort) -> None:
        self._config = config
        self._vcs = vcs

    def resolve(self, checkpoint: str | None, incremental: bool = True) -> ChangeSet:
        warnings: list[SyncWarning] = []
        if incremental and checkpoint is None:
            warnings.append(
                SyncWarning(
                    kind=WARNING_NO_CHECKPOINT,
                    message="No previous sync checkpoint; analyzing all source files.",
                )
            )
        if incremental and checkpoint is not None:
            try:
                query = self._vcs.changed_since(self._config.project_root, checkpoint)
            except VersionControlError as exc:
                warnings.append(
                    SyncWarning(
                        kind=WARNING_VCS_FALLBACK,
                        message=f"Change query failed ({exc.reason}); analyzing all source files.",
                    )
                )
            else:
                files = self._filter_changed(query.paths, warnings)
                return ChangeSet(
                    files=tuple(FileRef(path=path, status=STATUS_CHANGED) for path in files),
                    strategy=STRATEGY_INCREMENTAL,
                    head=query.head,
                    warnings=tuple(warnings),
                )
        return self._full(warnings)

    def _full(self, warnings: list[SyncWarning]) -> ChangeSet:
        paths = discover_source_files(self._config.project_root, self._config.sources)
        return ChangeSet(
            files=tuple(FileRef(path=path, status=STATUS_DISCOVERED) for path in paths),
            strategy=STRATEGY_FULL,
            head=self._current_head(),
            warnings=tuple(warnings),
        )

    def _current_head(self) -> str | None:
        try:
            return self._vcs.head(self._config.project_root)
        except VersionControlError:
            return None

    def _filter_changed(self, paths: tuple[str, ...], warnings: list[SyncWarning]) -> list[str]:
        root = self._config.project_root
        kept: set[str] = set()
        missing: set[str] = set()
        for candidate in paths:
            try:
                resolved = resolve_project_path(root, candidate)
            except PathBlockedError as exc:
                warnings.append(
                    SyncWarning(kind=WARNING_PATH_BLOCKED, message=exc.reason, path=candidate)
                )
                continue
            relative = relative_posix(root, resolved)
            if not is_source_candidate(relative, self._config.sources):
                continue
            if not resolved.is_file():
                if relative not in missing:
                    missing.add(relative)
                    warnings.append(
                        SyncWarning(
                            kind=WARNING_MISSING_SOURCE,
                            message="Changed file no longer exists; skipped.",
                            path=relative,
                        )
                    )
                continue
            kept.add(relative)
        return sorted(kept)
