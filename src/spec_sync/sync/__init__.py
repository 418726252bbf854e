"""Synchronization orchestrator and its persistence helpers."""

from .backups import BackupStore, backup_timestamp
from .models import (
    MODE_CHECK,
    MODE_DRY_RUN,
    MODE_SYNC,
    STATE_ANALYZING,
    STATE_APPLYING,
    STATE_BLOCKED,
    STATE_CHECKING_PRECONDITIONS,
    STATE_DONE,
    STATE_NO_DRIFT,
    STATE_RESOLVING_FILES,
    STATE_REVIEWING,
    SYNC_MODES,
    Backup,
    ExitCode,
    FileAnalysis,
    Observation,
    SyncRunResult,
)
from .observations import MarkdownObservationSink, ObservationSink, render_observation
from .orchestrator import (
    ConfirmCallback,
    DeadlineExceededError,
    SyncOrchestrator,
    rollback_project,
    sync_project,
)
from .pairing import find_related_spec, spec_candidates

__all__ = [
    "Backup",
    "BackupStore",
    "ConfirmCallback",
    "DeadlineExceededError",
    "ExitCode",
    "FileAnalysis",
    "MODE_CHECK",
    "MODE_DRY_RUN",
    "MODE_SYNC",
    "MarkdownObservationSink",
    "Observation",
    "ObservationSink",
    "STATE_ANALYZING",
    "STATE_APPLYING",
    "STATE_BLOCKED",
    "STATE_CHECKING_PRECONDITIONS",
    "STATE_DONE",
    "STATE_NO_DRIFT",
    "STATE_RESOLVING_FILES",
    "STATE_REVIEWING",
    "SYNC_MODES",
    "SyncOrchestrator",
    "SyncRunResult",
    "backup_timestamp",
    "find_related_spec",
    "render_observation",
    "rollback_project",
    "spec_candidates",
    "sync_project",
]
