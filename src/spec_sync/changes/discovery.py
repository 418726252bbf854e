"""Deterministic source-file discovery."""

from __future__ import annotations

import os
import re
from collections.abc import Iterable
from pathlib import Path, PurePosixPath

from spec_sync.config import SourcesConfig

_TEST_NAME_PATTERN = re.compile(
    r"(?:\.(?:test|spec)\.[A-Za-z0-9]+$)|(?:^test_.*\.py$)|(?:_test\.py$)"
)


def is_test_or_spec_name(file_name: str) -> bool:
    """Return True for test modules and spec-named source files."""
    return _TEST_NAME_PATTERN.search(file_name) is not None


def has_allowed_extension(relative_path: str, include_extensions: Iterable[str]) -> bool:
    """Return True when file extension is included."""
    suffix = PurePosixPath(relative_path).suffix.lower()
    return suffix in tuple(include_extensions)


def in_excluded_dir(relative_path: str, exclude_dirs: Iterable[str]) -> bool:
    """Return True when any parent directory of the path is excluded."""
    excluded = set(exclude_dirs)
    return any(part in excluded for part in PurePosixPath(relative_path).parts[:-1])


def is_source_candidate(relative_path: str, config: SourcesConfig) -> bool:
    """Apply extension, directory and file-name filters to a project-relative path."""
    if not has_allowed_extension(relative_path, config.include_extensions):
        return False
    if in_excluded_dir(relative_path, config.exclude_dirs):
        return False
    return not is_test_or_spec_name(PurePosixPath(relative_path).name)


def discover_source_files(project_root: Path, config: SourcesConfig) -> list[str]:
    """Walk configured source roots and return sorted project-relative paths."""
    root = project_root.resolve()
    excluded_dir_names = set(config.exclude_dirs)
    found: set[str] = set()
    for source_root in config.roots:
        start = root / source_root
        if not start.is_dir():
            continue
        found.update(_walk(root, start, config, excluded_dir_names))
    return sorted(found)


def _walk(
    root: Path,
    start: Path,
    config: SourcesConfig,
    excluded_dir_names: set[str],
) -> list[str]:
    """Walk one tree deterministically, pruning excluded directories."""
    output: list[str] = []
    stack: list[Path] = [start]
    while stack:
        current = stack.pop()
        try:
            with os.scandir(current) as entries:
                ordered_entries = sorted(entries, key=lambda item: item.name)
        except OSError:
            continue
        for entry in reversed(ordered_entries):
            full_path = Path(entry.path)
            if entry.is_dir(follow_symlinks=False):
                if entry.name in excluded_dir_names:
                    continue
                stack.append(full_path)
                continue
            if not entry.is_file(follow_symlinks=False):
                continue
            relative = full_path.relative_to(root).as_posix()
            if is_source_candidate(relative, config):
                output.append(relative)
    return output
