"""Run modes, states, exit codes and the aggregate run result."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path
from typing import Final

from spec_sync.diagnostics import SyncWarning
from spec_sync.drift import DriftRecord, DriftSummary
from spec_sync.proposals import ProposalBatch

MODE_CHECK: Final = "check"
MODE_SYNC: Final = "sync"
MODE_DRY_RUN: Final = "dry_run"
SYNC_MODES: Final = (MODE_CHECK, MODE_SYNC, MODE_DRY_RUN)

STATE_CHECKING_PRECONDITIONS: Final = "checking_preconditions"
STATE_RESOLVING_FILES: Final = "resolving_files"
STATE_ANALYZING: Final = "analyzing"
STATE_NO_DRIFT: Final = "no_drift"
STATE_REVIEWING: Final = "reviewing"
STATE_APPLYING: Final = "applying"
STATE_DONE: Final = "done"
STATE_BLOCKED: Final = "blocked"


class ExitCode(IntEnum):
    """Process exit codes reported by every run."""

    SUCCESS = 0
    DRIFT_DETECTED = 1
    SYNC_REQUIRED = 2
    USER_DECLINED = 3
    WORKING_TREE_DIRTY = 4
    SYSTEM_ERROR = 5
    TIMEOUT = 124
    INTERRUPTED = 130


@dataclass(slots=True, frozen=True)
class FileAnalysis:
    """Drift and proposals for one source file and its paired spec."""

    source_path: str
    spec_path: str
    drifts: tuple[DriftRecord, ...]
    batch: ProposalBatch

    def to_dict(self) -> dict[str, object]:
        """Return serializable analysis snapshot."""
        return {
            "source_path": self.source_path,
            "spec_path": self.spec_path,
            "drifts": [drift.to_dict() for drift in self.drifts],
            "proposals": self.batch.to_dict(),
        }


@dataclass(slots=True, frozen=True)
class Observation:
    """Short record of one applied spec update."""

    timestamp: str
    spec_path: str
    source_paths: tuple[str, ...]
    summary: str
    diff: str


@dataclass(slots=True, frozen=True)
class Backup:
    """One stored copy of a spec file taken before it was rewritten."""

    spec_path: str
    timestamp: str
    path: Path

    def to_dict(self) -> dict[str, object]:
        """Return serializable backup snapshot."""
        return {"spec_path": self.spec_path, "timestamp": self.timestamp, "path": str(self.path)}


@dataclass(slots=True, frozen=True)
class SyncRunResult:
    """Aggregate outcome of one orchestrator run."""

    run_id: str
    mode: str
    state: str
    exit_code: ExitCode
    files_checked: int = 0
    drifts_found: int = 0
    applied: int = 0
    declined: int = 0
    deferred: int = 0
    warnings: tuple[SyncWarning, ...] = ()
    files: tuple[FileAnalysis, ...] = ()
    updated_specs: tuple[str, ...] = ()
    previews: tuple[str, ...] = ()
    strategy: str | None = None
    checkpoint: str | None = None
    message: str = ""
    error: str | None = None
    backups: tuple[Backup, ...] = ()
    drift_summary: DriftSummary | None = None

    @property
    def ok(self) -> bool:
        """Return True when the run finished with nothing left to do."""
        return self.exit_code == ExitCode.SUCCESS

    def to_dict(self) -> dict[str, object]:
        """Return serializable run snapshot."""
        return {
            "run_id": self.run_id,
            "mode": self.mode,
            "state": self.state,
            "exit_code": int(self.exit_code),
            "files_checked": self.files_checked,
            "drifts_found": self.drifts_found,
            "applied": self.applied,
            "declined": self.declined,
            "deferred": self.deferred,
            "warnings": [warning.to_dict() for warning in self.warnings],
            "files": [analysis.to_dict() for analysis in self.files],
            "updated_specs": list(self.updated_specs),
            "previews": list(self.previews),
            "strategy": self.strategy,
            "checkpoint": self.checkpoint,
            "message": self.message,
            "error": self.error,
            "backups": [backup.to_dict() for backup in self.backups],
            "drift_summary": (
                self.drift_summary.to_dict() if self.drift_summary is not None else None
            ),
        }
