from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

import pytest

from spec_sync.config import default_config
from spec_sync.logging import JsonlAuditLogger
from spec_sync.signatures import ExtractorRegistry
from spec_sync.sync import (
    MODE_CHECK,
    MODE_DRY_RUN,
    MODE_SYNC,
    STATE_BLOCKED,
    STATE_DONE,
    STATE_NO_DRIFT,
    ExitCode,
    FileAnalysis,
    MarkdownObservationSink,
    Observation,
    SyncOrchestrator,
)
from spec_sync.vcs import ChangeQuery, VersionControlError

SPEC = "\n".join(
    [
        "# Calc",
        "",
        "## 派生产物",
        "",
        "| 类型 | 路径 | 说明 |",
        "|------|------|------|",
        "| 函数 | `add(a, b)` | Add |",
        "| 函数 | `save(path)` | Save |",
        "",
    ]
)

IN_SYNC_CODE = "function add(a, b) {}\nfunction save(path) {}\n"
ADDED_CODE = IN_SYNC_CODE + "function multiply(a, b) {}\n"
REMOVED_CODE = "function add(a, b) {}\n"

FIXED_NOW = datetime(2026, 1, 2, 3, 4, 5, tzinfo=UTC)


class FakeVcs:
    def __init__(
        self,
        clean: bool = True,
        head: str | None = "h1",
        changed: tuple[str, ...] = (),
        status_error: VersionControlError | None = None,
    ) -> None:
        self.clean = clean
        self.head_ref = head
        self.changed = changed
        self.status_error = status_error
        self.calls: list[str] = []

    def is_clean(self, root: Path) -> bool:
        self.calls.append("is_clean")
        if self.status_error is not None:
            raise self.status_error
        return self.clean

    def changed_since(self, root: Path, ref: str) -> ChangeQuery:
        self.calls.append(f"changed_since:{ref}")
        return ChangeQuery(paths=self.changed, head=self.head_ref)

    def head(self, root: Path) -> str | None:
        self.calls.append("head")
        return self.head_ref


class RecordingSink:
    def __init__(self) -> None:
        self.observations: list[Observation] = []

    def record(self, observation: Observation) -> None:
        self.observations.append(observation)


class ExplodingSink:
    def record(self, observation: Observation) -> None:
        raise OSError("disk full")


def _project(
    tmp_path: Path, code: str, spec: str = SPEC, source: str = "lib/calc.js"
) -> Path:
    source_file = tmp_path / source
    source_file.parent.mkdir(parents=True, exist_ok=True)
    source_file.write_text(code, encoding="utf-8")
    spec_file = tmp_path / "openspec" / "specs" / "calc.fspec.md"
    spec_file.parent.mkdir(parents=True, exist_ok=True)
    spec_file.write_text(spec, encoding="utf-8")
    return spec_file


def _orchestrator(tmp_path: Path, vcs: FakeVcs, **kwargs) -> SyncOrchestrator:
    kwargs.setdefault("clock", lambda: FIXED_NOW)
    return SyncOrchestrator(default_config(tmp_path), vcs, **kwargs)


def test_check_mode_reports_drift_without_writing(tmp_path: Path) -> None:
    spec_file = _project(tmp_path, ADDED_CODE)
    vcs = FakeVcs(clean=False)

    result = _orchestrator(tmp_path, vcs).run(MODE_CHECK)

    assert result.exit_code == ExitCode.DRIFT_DETECTED
    assert result.state == STATE_DONE
    assert result.files_checked == 1
    assert result.drifts_found == 1
    assert result.files[0].spec_path == "openspec/specs/calc.fspec.md"
    assert "multiply(a, b)" in result.previews[0]
    assert spec_file.read_text(encoding="utf-8") == SPEC
    assert "is_clean" not in vcs.calls


def test_in_sync_project_reports_no_drift(tmp_path: Path) -> None:
    _project(tmp_path, IN_SYNC_CODE)

    result = _orchestrator(tmp_path, FakeVcs()).run(MODE_CHECK)

    assert result.exit_code == ExitCode.SUCCESS
    assert result.state == STATE_NO_DRIFT
    assert result.files_checked == 1
    assert result.checkpoint is None


def test_no_drift_sync_advances_checkpoint_to_head(tmp_path: Path) -> None:
    _project(tmp_path, IN_SYNC_CODE)

    result = _orchestrator(tmp_path, FakeVcs(head="h2")).run(MODE_SYNC, "h1")

    assert result.exit_code == ExitCode.SUCCESS
    assert result.state == STATE_NO_DRIFT
    assert result.checkpoint == "h2"


def test_dirty_tree_blocks_sync_before_any_analysis(tmp_path: Path) -> None:
    spec_file = _project(tmp_path, ADDED_CODE)
    vcs = FakeVcs(clean=False)

    result = _orchestrator(tmp_path, vcs).run(MODE_SYNC, "h0")

    assert result.exit_code == ExitCode.WORKING_TREE_DIRTY
    assert result.state == STATE_BLOCKED
    assert result.files_checked == 0
    assert result.checkpoint == "h0"
    assert "uncommitted changes" in result.message
    assert vcs.calls == ["is_clean"]
    assert spec_file.read_text(encoding="utf-8") == SPEC


def test_failed_status_query_blocks_sync(tmp_path: Path) -> None:
    _project(tmp_path, ADDED_CODE)
    vcs = FakeVcs(status_error=VersionControlError(reason="not a git repository", hint="init"))

    result = _orchestrator(tmp_path, vcs).run(MODE_SYNC)

    assert result.exit_code == ExitCode.WORKING_TREE_DIRTY
    assert "could not be verified" in result.message


def test_auto_applicable_add_is_applied_with_backup(tmp_path: Path) -> None:
    spec_file = _project(tmp_path, ADDED_CODE)
    orchestrator = _orchestrator(tmp_path, FakeVcs(head="h9"))

    result = orchestrator.run(MODE_SYNC)

    assert result.exit_code == ExitCode.SUCCESS
    assert result.state == STATE_DONE
    assert result.applied == 1
    assert result.updated_specs == ("openspec/specs/calc.fspec.md",)
    assert result.checkpoint == "h9"
    assert "| 函数 | `multiply(a, b)` |" in spec_file.read_text(encoding="utf-8")
    backups = orchestrator.backups.list_backups()
    assert len(backups) == 1
    assert backups[0].path.read_text(encoding="utf-8") == SPEC
    assert not spec_file.with_suffix(".md.tmp").exists()


def test_removal_without_confirmation_is_declined(tmp_path: Path) -> None:
    spec_file = _project(tmp_path, REMOVED_CODE)

    result = _orchestrator(tmp_path, FakeVcs()).run(MODE_SYNC, "h0", incremental=False)

    assert result.exit_code == ExitCode.USER_DECLINED
    assert result.state == STATE_BLOCKED
    assert result.declined == 1
    assert result.applied == 0
    assert result.checkpoint == "h0"
    assert [warning.kind for warning in result.warnings][-1] == "declined"
    assert spec_file.read_text(encoding="utf-8") == SPEC


def test_confirmed_removal_is_applied(tmp_path: Path) -> None:
    spec_file = _project(tmp_path, REMOVED_CODE)
    seen: list[FileAnalysis] = []

    def confirm(analysis: FileAnalysis) -> bool:
        seen.append(analysis)
        return True

    result = _orchestrator(tmp_path, FakeVcs(), confirm=confirm).run(MODE_SYNC)

    assert result.exit_code == ExitCode.SUCCESS
    assert [analysis.source_path for analysis in seen] == ["lib/calc.js"]
    assert "save(path)" not in spec_file.read_text(encoding="utf-8")


def test_non_interactive_run_applies_without_prompting(tmp_path: Path) -> None:
    spec_file = _project(tmp_path, REMOVED_CODE)

    def confirm(analysis: FileAnalysis) -> bool:
        raise AssertionError("confirm must not be called")

    result = _orchestrator(tmp_path, FakeVcs(), confirm=confirm).run(
        MODE_SYNC, interactive=False
    )

    assert result.exit_code == ExitCode.SUCCESS
    assert result.applied == 1
    assert "save(path)" not in spec_file.read_text(encoding="utf-8")


def test_dry_run_reports_required_updates_without_writing(tmp_path: Path) -> None:
    spec_file = _project(tmp_path, ADDED_CODE)
    vcs = FakeVcs(clean=False)
    orchestrator = _orchestrator(tmp_path, vcs)

    result = orchestrator.run(MODE_DRY_RUN)

    assert result.exit_code == ExitCode.SYNC_REQUIRED
    assert result.applied == 0
    assert result.previews
    assert spec_file.read_text(encoding="utf-8") == SPEC
    assert orchestrator.backups.list_backups() == []
    assert "is_clean" not in vcs.calls


def test_second_sync_is_a_no_op(tmp_path: Path) -> None:
    spec_file = _project(tmp_path, ADDED_CODE)
    orchestrator = _orchestrator(tmp_path, FakeVcs())

    first = orchestrator.run(MODE_SYNC)
    after_first = spec_file.read_text(encoding="utf-8")
    second = orchestrator.run(MODE_SYNC, incremental=False)

    assert first.exit_code == ExitCode.SUCCESS
    assert second.exit_code == ExitCode.SUCCESS
    assert second.state == STATE_NO_DRIFT
    assert second.applied == 0
    assert spec_file.read_text(encoding="utf-8") == after_first


def test_protected_section_drift_is_deferred(tmp_path: Path) -> None:
    spec = SPEC + "\n## 功能需求\n\n- **divide**(a) must reject zero.\n"
    spec_file = _project(tmp_path, IN_SYNC_CODE + "function divide(a, b) {}\n", spec=spec)

    result = _orchestrator(tmp_path, FakeVcs()).run(MODE_SYNC, interactive=False)

    assert result.exit_code == ExitCode.SYNC_REQUIRED
    assert result.deferred == 1
    assert result.applied == 0
    kinds = [warning.kind for warning in result.warnings]
    assert "proposal" in kinds
    assert "deferred" in kinds
    assert spec_file.read_text(encoding="utf-8") == spec


def test_patch_that_matches_nothing_is_reported(tmp_path: Path) -> None:
    spec = SPEC + "\n## Notes\n\n**scale**(x)\n"
    spec_file = _project(tmp_path, IN_SYNC_CODE + "function scale(x, factor) {}\n", spec=spec)
    orchestrator = _orchestrator(tmp_path, FakeVcs())

    result = orchestrator.run(MODE_SYNC)

    assert result.exit_code == ExitCode.SYNC_REQUIRED
    assert result.applied == 0
    assert "no_op_patch" in [warning.kind for warning in result.warnings]
    assert spec_file.read_text(encoding="utf-8") == spec
    assert orchestrator.backups.list_backups() == []


def test_past_deadline_stops_before_first_file(tmp_path: Path) -> None:
    _project(tmp_path, ADDED_CODE)

    result = _orchestrator(tmp_path, FakeVcs()).run(MODE_CHECK, deadline=0.0)

    assert result.exit_code == ExitCode.TIMEOUT
    assert result.files_checked == 0


def test_interrupt_during_review_is_reported(tmp_path: Path) -> None:
    spec_file = _project(tmp_path, REMOVED_CODE)

    def confirm(analysis: FileAnalysis) -> bool:
        raise KeyboardInterrupt

    result = _orchestrator(tmp_path, FakeVcs(), confirm=confirm).run(MODE_SYNC)

    assert result.exit_code == ExitCode.INTERRUPTED
    assert spec_file.read_text(encoding="utf-8") == SPEC


def test_unexpected_failure_becomes_system_error(tmp_path: Path) -> None:
    _project(tmp_path, ADDED_CODE)

    result = _orchestrator(tmp_path, FakeVcs(), registry=ExtractorRegistry()).run(MODE_CHECK)

    assert result.exit_code == ExitCode.SYSTEM_ERROR
    assert result.error is not None
    assert result.error.startswith("LookupError")


def test_unknown_mode_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="Unknown sync mode"):
        _orchestrator(tmp_path, FakeVcs()).run("apply")


def test_source_without_spec_is_skipped_with_warning(tmp_path: Path) -> None:
    _project(tmp_path, IN_SYNC_CODE)
    orphan = tmp_path / "lib" / "orphan.js"
    orphan.write_text("function lonely() {}\n", encoding="utf-8")

    result = _orchestrator(tmp_path, FakeVcs()).run(MODE_CHECK)

    assert result.exit_code == ExitCode.SUCCESS
    no_spec = [warning for warning in result.warnings if warning.kind == "no_spec"]
    assert [warning.path for warning in no_spec] == ["lib/orphan.js"]


def test_two_sources_sharing_a_spec_write_it_once(tmp_path: Path) -> None:
    spec_file = _project(tmp_path, ADDED_CODE)
    python_source = tmp_path / "src" / "calc.py"
    python_source.parent.mkdir(parents=True)
    python_source.write_text(
        "def add(a, b):\n    pass\n\n\ndef save(path):\n    pass\n\n\ndef multiply(a, b):\n    pass\n",
        encoding="utf-8",
    )
    orchestrator = _orchestrator(tmp_path, FakeVcs())

    result = orchestrator.run(MODE_SYNC)

    assert result.exit_code == ExitCode.SUCCESS
    assert result.files_checked == 2
    assert result.updated_specs == ("openspec/specs/calc.fspec.md",)
    assert spec_file.read_text(encoding="utf-8").count("multiply(a, b)") == 1
    assert len(orchestrator.backups.list_backups()) == 1


def test_observation_is_recorded_for_applied_updates(tmp_path: Path) -> None:
    _project(tmp_path, ADDED_CODE)
    sink = RecordingSink()

    _orchestrator(tmp_path, FakeVcs(), observation_sink=sink).run(MODE_SYNC)

    assert len(sink.observations) == 1
    observation = sink.observations[0]
    assert observation.spec_path == "openspec/specs/calc.fspec.md"
    assert observation.source_paths == ("lib/calc.js",)
    assert observation.timestamp == "2026-01-02T03:04:05.000Z"
    assert "multiply(a, b)" in observation.diff


def test_markdown_observations_land_in_existing_directory(tmp_path: Path) -> None:
    _project(tmp_path, ADDED_CODE)
    observations_dir = tmp_path / ".seed" / "observations"
    observations_dir.mkdir(parents=True)

    _orchestrator(
        tmp_path, FakeVcs(), observation_sink=MarkdownObservationSink(observations_dir)
    ).run(MODE_SYNC)

    written = sorted(path.name for path in observations_dir.iterdir())
    assert written == ["obs-sync-2026-01-02T03-04-05-000Z-calc.md"]


def test_failing_observation_sink_does_not_fail_the_run(tmp_path: Path) -> None:
    _project(tmp_path, ADDED_CODE)

    result = _orchestrator(tmp_path, FakeVcs(), observation_sink=ExplodingSink()).run(MODE_SYNC)

    assert result.exit_code == ExitCode.SUCCESS
    assert result.applied == 1


def test_run_log_records_spec_writes_and_run_outcome(tmp_path: Path) -> None:
    _project(tmp_path, ADDED_CODE)
    logger = JsonlAuditLogger(tmp_path / ".seed" / "sync-log.jsonl")

    result = _orchestrator(tmp_path, FakeVcs(), audit_logger=logger).run(MODE_SYNC)

    events = logger.read()
    assert [event["stage"] for event in events] == ["apply", "run"]
    assert {event["run_id"] for event in events} == {result.run_id}
    assert events[0]["metadata"]["spec_path"] == "openspec/specs/calc.fspec.md"
    assert events[1]["exit_code"] == 0
    assert events[1]["metadata"]["mode"] == "sync"
    assert events[1]["metadata"]["applied"] == 1


def test_result_lists_backups_and_drift_summary(tmp_path: Path) -> None:
    _project(tmp_path, ADDED_CODE)
    orchestrator = _orchestrator(tmp_path, FakeVcs())

    result = orchestrator.run(MODE_SYNC)

    assert result.backups == tuple(orchestrator.backups.list_backups())
    assert result.backups[0].spec_path == "openspec/specs/calc.fspec.md"
    assert result.drift_summary is not None
    assert result.drift_summary.total == 1
    assert result.drift_summary.by_type == {"method_added": 1}
    payload = result.to_dict()
    assert payload["backups"][0]["spec_path"] == "openspec/specs/calc.fspec.md"
    assert payload["drift_summary"]["by_severity"] == {"high": 0, "medium": 1, "low": 0}


def test_check_mode_summarizes_drift_without_backups(tmp_path: Path) -> None:
    _project(tmp_path, REMOVED_CODE)

    result = _orchestrator(tmp_path, FakeVcs()).run(MODE_CHECK)

    assert result.backups == ()
    assert result.drift_summary is not None
    assert result.drift_summary.has_critical is True


def test_table_rows_without_backticks_are_synchronized(tmp_path: Path) -> None:
    spec = SPEC.replace("`add(a, b)`", "add(a, b)")
    spec_file = _project(tmp_path, "function add(a, b, c) {}\nfunction save(path) {}\n", spec=spec)

    result = _orchestrator(tmp_path, FakeVcs()).run(MODE_SYNC, interactive=False)

    assert result.exit_code == ExitCode.SUCCESS
    assert result.applied == 1
    assert "| 函数 | add(a, b, c) | Add |" in spec_file.read_text(encoding="utf-8")


def test_specs_updated_in_the_same_instant_get_separate_observations(tmp_path: Path) -> None:
    _project(tmp_path, ADDED_CODE)
    tax_source = tmp_path / "lib" / "tax.js"
    tax_source.write_text("function rate(region) {}\n", encoding="utf-8")
    (tmp_path / "openspec" / "specs" / "tax.fspec.md").write_text(
        SPEC.replace("`add(a, b)`", "`rate()`"), encoding="utf-8"
    )
    observations_dir = tmp_path / ".seed" / "observations"
    observations_dir.mkdir(parents=True)

    result = _orchestrator(
        tmp_path, FakeVcs(), observation_sink=MarkdownObservationSink(observations_dir)
    ).run(MODE_SYNC, interactive=False)

    assert result.updated_specs == (
        "openspec/specs/calc.fspec.md",
        "openspec/specs/tax.fspec.md",
    )
    assert sorted(path.name for path in observations_dir.iterdir()) == [
        "obs-sync-2026-01-02T03-04-05-000Z-calc.md",
        "obs-sync-2026-01-02T03-04-05-000Z-tax.md",
    ]
