from __future__ import annotations

from pathlib import Path

import pytest

from spec_sync.security import PathBlockedError, resolve_project_path


def test_path_traversal_is_blocked(tmp_path: Path) -> None:
    with pytest.raises(PathBlockedError) as error:
        resolve_project_path(project_root=tmp_path, candidate="../outside.js")

    assert error.value.reason == "Path traversal is blocked."


def test_empty_path_is_blocked(tmp_path: Path) -> None:
    with pytest.raises(PathBlockedError) as error:
        resolve_project_path(project_root=tmp_path, candidate="   ")

    assert error.value.reason == "Path is empty."


def test_windows_separator_path_normalizes_to_same_file(tmp_path: Path) -> None:
    lib_dir = tmp_path / "lib"
    lib_dir.mkdir()
    js_file = lib_dir / "calc.js"
    js_file.write_text("function add(a, b) {}\n", encoding="utf-8")

    resolved = resolve_project_path(project_root=tmp_path, candidate=r"lib\calc.js")

    assert resolved == js_file.resolve()
