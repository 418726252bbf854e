"""Recoverable problems reported on a run result instead of raised."""

from __future__ import annotations

from dataclasses import dataclass

WARNING_NO_CHECKPOINT = "no_checkpoint"
WARNING_VCS_FALLBACK = "vcs_fallback"
WARNING_MISSING_SOURCE = "missing_source"
WARNING_PATH_BLOCKED = "path_blocked"
WARNING_NO_SPEC = "no_spec"
WARNING_UNREADABLE = "unreadable"
WARNING_DEFERRED = "deferred"
WARNING_DECLINED = "declined"
WARNING_NO_OP_PATCH = "no_op_patch"
WARNING_APPLY_FAILED = "apply_failed"
WARNING_PROPOSAL = "proposal"


@dataclass(slots=True, frozen=True)
class SyncWarning:
    """One recoverable per-file or per-run problem."""

    kind: str
    message: str
    path: str | None = None

    def to_dict(self) -> dict[str, object]:
        """Return serializable warning snapshot."""
        return {"kind": self.kind, "path": self.path, "message": self.message}
