"""Change-set resolution, source discovery and the sync checkpoint."""

from .checkpoint import CheckpointStore
from .discovery import discover_source_files, is_source_candidate, is_test_or_spec_name
from .resolver import (
    STATUS_CHANGED,
    STATUS_DISCOVERED,
    STRATEGY_FULL,
    STRATEGY_INCREMENTAL,
    ChangeSet,
    ChangeSetResolver,
    FileRef,
)

__all__ = [
    "STATUS_CHANGED",
    "STATUS_DISCOVERED",
    "STRATEGY_FULL",
    "STRATEGY_INCREMENTAL",
    "ChangeSet",
    "ChangeSetResolver",
    "CheckpointStore",
    "FileRef",
    "discover_source_files",
    "is_source_candidate",
    "is_test_or_spec_name",
]
