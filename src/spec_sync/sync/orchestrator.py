"""Sequential check, sync and dry-run pipeline over paired source/spec files."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from spec_sync.changes import ChangeSetResolver, CheckpointStore
from spec_sync.config import CliOverrides, SyncConfig, load_effective_config
from spec_sync.diagnostics import (
    WARNING_APPLY_FAILED,
    WARNING_DECLINED,
    WARNING_DEFERRED,
    WARNING_NO_OP_PATCH,
    WARNING_NO_SPEC,
    WARNING_PROPOSAL,
    WARNING_UNREADABLE,
    SyncWarning,
)
from spec_sync.drift import detect, summarize_drifts
from spec_sync.logging import JsonlAuditLogger, SyncEvent, new_run_id, sanitize_metadata
from spec_sync.proposals import (
    UpdateProposal,
    apply_updates,
    generate_diff_preview,
    propose,
    validate_updates,
)
from spec_sync.security import relative_posix
from spec_sync.signatures import KIND_CODE, KIND_SPEC, ExtractorRegistry, extract
from spec_sync.sync.backups import BackupStore
from spec_sync.sync.models import (
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
from spec_sync.sync.observations import MarkdownObservationSink, ObservationSink
from spec_sync.sync.pairing import find_related_spec
from spec_sync.vcs import (
    GitCommandPort,
    VersionControlError,
    VersionControlPort,
    WorkingTreeDirtyError,
)

ConfirmCallback = Callable[[FileAnalysis], bool]
Clock = Callable[[], datetime]

_EXIT_MESSAGES: dict[ExitCode, str] = {
    ExitCode.SUCCESS: "Specs are in sync with code.",
    ExitCode.DRIFT_DETECTED: "Spec/code drift detected.",
    ExitCode.SYNC_REQUIRED: "Spec updates are still required.",
    ExitCode.USER_DECLINED: "All proposed spec updates were declined.",
    ExitCode.WORKING_TREE_DIRTY: "Working tree is not clean.",
    ExitCode.SYSTEM_ERROR: "Synchronization failed with an internal error.",
    ExitCode.TIMEOUT: "Deadline exceeded; remaining files were not processed.",
    ExitCode.INTERRUPTED: "Interrupted; remaining files were not processed.",
}


class DeadlineExceededError(Exception):
    """Raised between files once the run deadline has passed."""


@dataclass(slots=True)
class _RunProgress:
    """Mutable accumulator for one run; frozen into a SyncRunResult at the end."""

    state: str = STATE_CHECKING_PRECONDITIONS
    strategy: str | None = None
    head: str | None = None
    files_checked: int = 0
    applied: int = 0
    declined: int = 0
    deferred: int = 0
    unapplied: int = 0
    warnings: list[SyncWarning] = field(default_factory=list)
    analyses: list[FileAnalysis] = field(default_factory=list)
    updated_specs: list[str] = field(default_factory=list)
    previews: list[str] = field(default_factory=list)
    backups: list[Backup] = field(default_factory=list)

    @property
    def drifts_found(self) -> int:
        return sum(len(analysis.drifts) for analysis in self.analyses)


@dataclass(slots=True, frozen=True)
class _EditGroup:
    """Approved proposals that resolve to the same literal edit."""

    proposals: tuple[UpdateProposal, ...]


class SyncOrchestrator:
    """Drive precondition checks, analysis, review and apply for one project.

    Files are processed sequentially. Deadlines and interrupts are honored
    between files, and each spec file is written at most once per run, after
    a backup, with an atomic replace.
    """

    def __init__(
        self,
        config: SyncConfig,
        vcs: VersionControlPort,
        confirm: ConfirmCallback | None = None,
        observation_sink: ObservationSink | None = None,
        audit_logger: JsonlAuditLogger | None = None,
        clock: Clock | None = None,
        registry: ExtractorRegistry | None = None,
    ) -> None:
        self._config = config
        self._vcs = vcs
        self._confirm = confirm
        self._observation_sink = observation_sink
        self._audit_logger = audit_logger
        self._clock = clock or (lambda: datetime.now(tz=UTC))
        self._registry = registry
        self._backups = BackupStore(config.project_root, config.backups_dir, clock=self._clock)

    @property
    def backups(self) -> BackupStore:
        """Return the backup store used for spec writes."""
        return self._backups

    def run(
        self,
        mode: str,
        checkpoint: str | None = None,
        *,
        interactive: bool = True,
        incremental: bool = True,
        deadline: float | None = None,
    ) -> SyncRunResult:
        """Run one pipeline pass.

        ``deadline`` is an absolute ``time.monotonic()`` value. The returned
        result carries the checkpoint to persist: the current head after a
        successful sync, otherwise the incoming ``checkpoint``.
        """
        if mode not in SYNC_MODES:
            raise ValueError(f"Unknown sync mode: {mode}")
        run_id = new_run_id()
        progress = _RunProgress()
        try:
            result = self._run(run_id, mode, checkpoint, progress, interactive, incremental, deadline)
        except WorkingTreeDirtyError as error:
            progress.state = STATE_BLOCKED
            result = self._result(
                run_id,
                mode,
                progress,
                ExitCode.WORKING_TREE_DIRTY,
                checkpoint,
                message=f"{error.reason} {error.hint}",
            )
        except DeadlineExceededError:
            result = self._result(run_id, mode, progress, ExitCode.TIMEOUT, checkpoint)
        except KeyboardInterrupt:
            result = self._result(run_id, mode, progress, ExitCode.INTERRUPTED, checkpoint)
        except Exception as error:
            result = self._result(
                run_id,
                mode,
                progress,
                ExitCode.SYSTEM_ERROR,
                checkpoint,
                error=f"{type(error).__name__}: {error}",
            )
        self._log_run(result)
        return result

    def _run(
        self,
        run_id: str,
        mode: str,
        checkpoint: str | None,
        progress: _RunProgress,
        interactive: bool,
        incremental: bool,
        deadline: float | None,
    ) -> SyncRunResult:
        progress.state = STATE_CHECKING_PRECONDITIONS
        if mode == MODE_SYNC:
            self._require_clean_tree()

        progress.state = STATE_RESOLVING_FILES
        change_set = ChangeSetResolver(self._config, self._vcs).resolve(
            checkpoint, incremental=incremental
        )
        progress.strategy = change_set.strategy
        progress.head = change_set.head
        progress.warnings.extend(change_set.warnings)

        progress.state = STATE_ANALYZING
        for file_ref in change_set.files:
            _check_deadline(deadline)
            analysis = self._analyze(file_ref.path, progress)
            if analysis is not None:
                progress.analyses.append(analysis)

        if not progress.analyses:
            progress.state = STATE_NO_DRIFT
            next_checkpoint = (progress.head or checkpoint) if mode == MODE_SYNC else checkpoint
            return self._result(run_id, mode, progress, ExitCode.SUCCESS, next_checkpoint)

        progress.previews.extend(
            f"--- {analysis.spec_path} ({analysis.source_path}) ---\n{analysis.batch.diff_preview}"
            for analysis in progress.analyses
        )
        if mode == MODE_CHECK:
            progress.state = STATE_DONE
            return self._result(run_id, mode, progress, ExitCode.DRIFT_DETECTED, checkpoint)
        if mode == MODE_DRY_RUN:
            progress.state = STATE_DONE
            return self._result(run_id, mode, progress, ExitCode.SYNC_REQUIRED, checkpoint)

        progress.state = STATE_REVIEWING
        plan = self._review(progress, interactive)
        if not plan and progress.declined:
            progress.state = STATE_BLOCKED
            return self._result(run_id, mode, progress, ExitCode.USER_DECLINED, checkpoint)

        progress.state = STATE_APPLYING
        for spec_path, analyses in plan.items():
            _check_deadline(deadline)
            self._apply_spec(run_id, spec_path, analyses, progress)

        progress.state = STATE_DONE
        if progress.declined and not progress.applied:
            return self._result(run_id, mode, progress, ExitCode.USER_DECLINED, checkpoint)
        if progress.declined or progress.deferred or progress.unapplied:
            return self._result(run_id, mode, progress, ExitCode.SYNC_REQUIRED, checkpoint)
        return self._result(run_id, mode, progress, ExitCode.SUCCESS, progress.head or checkpoint)

    def _require_clean_tree(self) -> None:
        root = self._config.project_root
        try:
            clean = self._vcs.is_clean(root)
        except VersionControlError as error:
            raise WorkingTreeDirtyError(
                reason=f"Working tree status could not be verified ({error.reason}).",
                hint="Run sync inside a clean git work tree, or use check / dry-run.",
            ) from error
        if not clean:
            raise WorkingTreeDirtyError(
                reason="Working tree has uncommitted changes.",
                hint="Commit or stash your changes before running sync, then retry.",
            )

    def _analyze(self, source_path: str, progress: _RunProgress) -> FileAnalysis | None:
        root = self._config.project_root
        spec_file = find_related_spec(root, source_path, self._config.specs)
        if spec_file is None:
            progress.warnings.append(
                SyncWarning(
                    kind=WARNING_NO_SPEC,
                    message="No paired spec document found; file skipped.",
                    path=source_path,
                )
            )
            return None
        spec_path = relative_posix(root, spec_file)

        code_text = _read_text(root / source_path, source_path, progress)
        if code_text is None:
            return None
        spec_text = _read_text(spec_file, spec_path, progress)
        if spec_text is None:
            return None
        progress.files_checked += 1

        code_signatures = extract(code_text, KIND_CODE, path=source_path, registry=self._registry)
        spec_signatures = extract(spec_text, KIND_SPEC)
        drifts = detect(spec_signatures, code_signatures)
        if not drifts:
            return None
        batch = propose(drifts, code_signatures)
        progress.warnings.extend(
            SyncWarning(kind=WARNING_PROPOSAL, message=warning.message, path=spec_path)
            for warning in batch.warnings
        )
        return FileAnalysis(
            source_path=source_path,
            spec_path=spec_path,
            drifts=tuple(drifts),
            batch=batch,
        )

    def _review(
        self, progress: _RunProgress, interactive: bool
    ) -> dict[str, list[tuple[FileAnalysis, tuple[UpdateProposal, ...]]]]:
        """Approve, decline or defer each batch; group approved proposals per spec file."""
        plan: dict[str, list[tuple[FileAnalysis, tuple[UpdateProposal, ...]]]] = {}
        for analysis in progress.analyses:
            updates = analysis.batch.updates
            validation = validate_updates(updates)
            invalid = validation.invalid_subjects()
            allowed = tuple(update for update in updates if update.subject not in invalid)
            deferred = len(updates) - len(allowed)
            if deferred:
                progress.deferred += deferred
                progress.warnings.append(
                    SyncWarning(
                        kind=WARNING_DEFERRED,
                        message="; ".join(issue.message for issue in validation.issues),
                        path=analysis.spec_path,
                    )
                )
            if not allowed:
                continue
            if self._approve(analysis, interactive):
                plan.setdefault(analysis.spec_path, []).append((analysis, allowed))
                continue
            progress.declined += len(allowed)
            progress.warnings.append(
                SyncWarning(
                    kind=WARNING_DECLINED,
                    message=f"{len(allowed)} proposed update(s) declined for {analysis.source_path}.",
                    path=analysis.spec_path,
                )
            )
        return plan

    def _approve(self, analysis: FileAnalysis, interactive: bool) -> bool:
        if not interactive:
            return True
        if analysis.batch.all_auto_applicable:
            return True
        if self._confirm is None:
            return False
        return bool(self._confirm(analysis))

    def _apply_spec(
        self,
        run_id: str,
        spec_path: str,
        analyses: list[tuple[FileAnalysis, tuple[UpdateProposal, ...]]],
        progress: _RunProgress,
    ) -> None:
        """Patch one spec file with every approved proposal, writing it once."""
        target = self._config.project_root / spec_path
        proposals = [proposal for _, allowed in analyses for proposal in allowed]
        groups = _edit_groups(proposals)
        try:
            original = target.read_text(encoding="utf-8")
            text = original
            skipped = 0
            for group in groups:
                patched = apply_updates(text, group.proposals)
                if patched == text:
                    skipped += len(group.proposals)
                    continue
                text = patched
            if text != original:
                progress.backups.append(self._backups.create(target))
                _write_atomic(target, text)
        except (OSError, UnicodeDecodeError) as error:
            progress.unapplied += len(proposals)
            progress.warnings.append(
                SyncWarning(kind=WARNING_APPLY_FAILED, message=str(error), path=spec_path)
            )
            self._log_spec(run_id, spec_path, ok=False, applied=0, error=str(error))
            return

        applied = len(proposals) - skipped
        if skipped:
            progress.unapplied += skipped
            progress.warnings.append(
                SyncWarning(
                    kind=WARNING_NO_OP_PATCH,
                    message=(
                        f"{skipped} update(s) no longer match the document text and were skipped."
                    ),
                    path=spec_path,
                )
            )
        if not applied:
            return
        progress.applied += applied
        progress.updated_specs.append(spec_path)
        self._log_spec(run_id, spec_path, ok=True, applied=applied)
        self._observe(spec_path, analyses, proposals)

    def _observe(
        self,
        spec_path: str,
        analyses: list[tuple[FileAnalysis, tuple[UpdateProposal, ...]]],
        proposals: list[UpdateProposal],
    ) -> None:
        if self._observation_sink is None:
            return
        observation = Observation(
            timestamp=_utc_iso(self._clock()),
            spec_path=spec_path,
            source_paths=tuple(analysis.source_path for analysis, _ in analyses),
            summary=f"{len(proposals)} update(s) applied",
            diff=generate_diff_preview(proposals),
        )
        # Observation records are best effort.
        try:
            self._observation_sink.record(observation)
        except Exception:
            return

    def _result(
        self,
        run_id: str,
        mode: str,
        progress: _RunProgress,
        exit_code: ExitCode,
        checkpoint: str | None,
        *,
        message: str | None = None,
        error: str | None = None,
    ) -> SyncRunResult:
        return SyncRunResult(
            run_id=run_id,
            mode=mode,
            state=progress.state,
            exit_code=exit_code,
            files_checked=progress.files_checked,
            drifts_found=progress.drifts_found,
            applied=progress.applied,
            declined=progress.declined,
            deferred=progress.deferred,
            warnings=tuple(progress.warnings),
            files=tuple(progress.analyses),
            updated_specs=tuple(progress.updated_specs),
            previews=tuple(progress.previews),
            strategy=progress.strategy,
            checkpoint=checkpoint,
            message=message or _EXIT_MESSAGES[exit_code],
            error=error,
            backups=tuple(progress.backups),
            drift_summary=summarize_drifts(
                drift for analysis in progress.analyses for drift in analysis.drifts
            ),
        )

    def _log_run(self, result: SyncRunResult) -> None:
        if self._audit_logger is None:
            return
        self._audit_logger.append(
            SyncEvent(
                timestamp=_utc_iso(self._clock()),
                run_id=result.run_id,
                stage="run",
                ok=result.ok,
                blocked=result.state == STATE_BLOCKED,
                exit_code=int(result.exit_code),
                metadata=sanitize_metadata(
                    {
                        "mode": result.mode,
                        "state": result.state,
                        "strategy": result.strategy,
                        "checkpoint": result.checkpoint,
                        "files_checked": result.files_checked,
                        "drifts_found": result.drifts_found,
                        "applied": result.applied,
                        "declined": result.declined,
                        "deferred": result.deferred,
                        "warnings": len(result.warnings),
                        "error": result.error,
                    }
                ),
            )
        )

    def _log_spec(
        self,
        run_id: str,
        spec_path: str,
        *,
        ok: bool,
        applied: int,
        error: str | None = None,
    ) -> None:
        if self._audit_logger is None:
            return
        self._audit_logger.append(
            SyncEvent(
                timestamp=_utc_iso(self._clock()),
                run_id=run_id,
                stage="apply",
                ok=ok,
                blocked=False,
                exit_code=None,
                metadata=sanitize_metadata(
                    {"spec_path": spec_path, "applied": applied, "error": error}
                ),
            )
        )


def sync_project(
    project_root: Path,
    mode: str,
    *,
    vcs: VersionControlPort | None = None,
    overrides: CliOverrides | None = None,
    confirm: ConfirmCallback | None = None,
    interactive: bool = True,
    incremental: bool = True,
    deadline: float | None = None,
) -> SyncRunResult:
    """Load config and checkpoint, run once, and persist the returned checkpoint."""
    config = load_effective_config(project_root, overrides)
    store = CheckpointStore(config.checkpoint_path)
    checkpoint = store.load()
    orchestrator = SyncOrchestrator(
        config,
        vcs or GitCommandPort(),
        confirm=confirm,
        observation_sink=MarkdownObservationSink(config.observations_dir),
        audit_logger=JsonlAuditLogger(config.log_path),
    )
    result = orchestrator.run(
        mode,
        checkpoint,
        interactive=interactive,
        incremental=incremental,
        deadline=deadline,
    )
    if result.checkpoint is not None and result.checkpoint != checkpoint:
        store.save(result.checkpoint)
    return result


def rollback_project(project_root: Path, overrides: CliOverrides | None = None) -> list[str]:
    """Restore the newest backup of every spec file; return restored paths."""
    config = load_effective_config(project_root, overrides)
    return BackupStore(config.project_root, config.backups_dir).rollback()


def _edit_groups(proposals: list[UpdateProposal]) -> list[_EditGroup]:
    """Group proposals that produce the same literal edit, keeping first-seen order."""
    grouped: dict[tuple[str, str, str | None, str | None, str | None], list[UpdateProposal]] = {}
    for proposal in proposals:
        key = (
            proposal.action,
            proposal.subject,
            proposal.before,
            proposal.after,
            proposal.table_row,
        )
        grouped.setdefault(key, []).append(proposal)
    return [_EditGroup(proposals=tuple(items)) for items in grouped.values()]


def _read_text(path: Path, display_path: str, progress: _RunProgress) -> str | None:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as error:
        progress.warnings.append(
            SyncWarning(kind=WARNING_UNREADABLE, message=str(error), path=display_path)
        )
        return None


def _write_atomic(path: Path, text: str) -> None:
    tmp = path.with_suffix(path.suffix + ".tmp")
    with tmp.open("w", encoding="utf-8") as handle:
        handle.write(text)
    tmp.replace(path)


def _check_deadline(deadline: float | None) -> None:
    if deadline is not None and time.monotonic() >= deadline:
        raise DeadlineExceededError()


def _utc_iso(moment: datetime) -> str:
    return moment.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")
