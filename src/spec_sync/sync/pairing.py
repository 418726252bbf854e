"""Locate the specification document paired with a source file."""

from __future__ import annotations

from pathlib import Path, PurePosixPath

from spec_sync.config import SpecsConfig


def spec_candidates(project_root: Path, source_path: str, specs: SpecsConfig) -> list[Path]:
    """Return candidate spec paths in lookup order."""
    stem = PurePosixPath(source_path).stem
    root = project_root.resolve()
    primary, *secondary = specs.dirs
    candidates = [
        root / primary / f"{stem}{specs.suffix}",
        root / primary / f"{stem}-spec{specs.suffix}",
    ]
    candidates.extend(root / directory / f"{stem}{specs.suffix}" for directory in secondary)
    return candidates


def find_related_spec(project_root: Path, source_path: str, specs: SpecsConfig) -> Path | None:
    """Return the first existing spec for a source file, or None."""
    for candidate in spec_candidates(project_root, source_path, specs):
        if candidate.is_file():
            return candidate
    return None
