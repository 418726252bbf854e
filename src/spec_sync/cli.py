"""Command-line entry point."""

from __future__ import annotations

import argparse
import json
import sys
import time
from pathlib import Path
from typing import TextIO

from spec_sync.config import CliOverrides
from spec_sync.drift import SEVERITY_ORDER, filter_drifts, format_drift_report
from spec_sync.sync import (
    MODE_CHECK,
    MODE_DRY_RUN,
    MODE_SYNC,
    ExitCode,
    FileAnalysis,
    rollback_project,
    sync_project,
)

_COMMAND_MODES = {"check": MODE_CHECK, "sync": MODE_SYNC, "dry-run": MODE_DRY_RUN}


def build_arg_parser() -> argparse.ArgumentParser:
    """Build argument parser for the spec-sync command."""
    parser = argparse.ArgumentParser(prog="spec-sync")
    parser.add_argument("--project-root", required=False, default=".")
    parser.add_argument("--data-dir", required=False, default=None)
    parser.add_argument("--source-root", action="append", default=None, dest="source_roots")
    parser.add_argument("--spec-dir", action="append", default=None, dest="spec_dirs")
    subparsers = parser.add_subparsers(dest="command", required=True)
    for name in ("check", "sync", "dry-run"):
        command = subparsers.add_parser(name)
        command.add_argument(
            "--full",
            action="store_true",
            help="Analyze every source file instead of changes since the last sync.",
        )
        command.add_argument("--timeout", type=float, required=False, default=None)
        command.add_argument(
            "--min-severity",
            choices=SEVERITY_ORDER,
            default=None,
            help="Limit the drift report printed on stderr to this severity and above.",
        )
        if name == "sync":
            command.add_argument(
                "--yes",
                action="store_true",
                help="Approve every proposal without prompting.",
            )
    subparsers.add_parser("rollback")
    return parser


def prompt_confirm(
    analysis: FileAnalysis,
    in_stream: TextIO | None = None,
    out_stream: TextIO | None = None,
) -> bool:
    """Show a batch preview and ask whether to apply it."""
    source = in_stream or sys.stdin
    target = out_stream or sys.stderr
    target.write(f"{analysis.spec_path} <- {analysis.source_path}\n")
    target.write(analysis.batch.diff_preview)
    for update in analysis.batch.updates:
        if update.warning:
            target.write(f"! {update.warning}\n")
    target.write("Apply these updates? [y/N] ")
    target.flush()
    answer = source.readline()
    return answer.strip().lower() in {"y", "yes"}


def main(argv: list[str] | None = None) -> int:
    """Entrypoint for the spec-sync command."""
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    project_root = Path(args.project_root).resolve()
    overrides = CliOverrides(
        data_dir=Path(args.data_dir).resolve() if args.data_dir is not None else None,
        source_roots=tuple(args.source_roots) if args.source_roots else None,
        spec_dirs=tuple(args.spec_dirs) if args.spec_dirs else None,
    )

    if args.command == "rollback":
        try:
            restored = rollback_project(project_root, overrides)
        except (OSError, ValueError) as error:
            _emit({"ok": False, "error": str(error)})
            return int(ExitCode.SYSTEM_ERROR)
        _emit({"ok": bool(restored), "restored": restored})
        return int(ExitCode.SUCCESS)

    deadline = time.monotonic() + args.timeout if args.timeout is not None else None
    approve_all = bool(getattr(args, "yes", False))
    try:
        result = sync_project(
            project_root,
            _COMMAND_MODES[args.command],
            overrides=overrides,
            confirm=prompt_confirm,
            interactive=not approve_all,
            incremental=not args.full,
            deadline=deadline,
        )
    except (OSError, ValueError) as error:
        _emit({"ok": False, "error": str(error)})
        return int(ExitCode.SYSTEM_ERROR)
    if result.files:
        drifts = [drift for analysis in result.files for drift in analysis.drifts]
        sys.stderr.write(format_drift_report(filter_drifts(drifts, min_severity=args.min_severity)))
    _emit(result.to_dict())
    return int(result.exit_code)


def _emit(payload: dict[str, object]) -> None:
    sys.stdout.write(json.dumps(payload, indent=2, sort_keys=True, ensure_ascii=False))
    sys.stdout.write("\n")


if __name__ == "__main__":
    raise SystemExit(main())
