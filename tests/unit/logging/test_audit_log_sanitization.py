from __future__ import annotations

import json
from pathlib import Path

from spec_sync.logging import sanitize_metadata


def test_free_text_values_are_reduced_to_lengths() -> None:
    metadata = sanitize_metadata({"diff": "- foo(a)\n+ foo(a, b)", "path": "lib/calc.js"})

    assert metadata == {"diff_length": len("- foo(a)\n+ foo(a, b)"), "path": "lib/calc.js"}
    assert "foo(a, b)" not in json.dumps(metadata, sort_keys=True)


def test_allowed_scalars_and_short_string_lists_survive() -> None:
    metadata = sanitize_metadata(
        {
            "mode": "sync",
            "applied": 2,
            "elapsed": 0.5,
            "ok": True,
            "checkpoint": None,
            "updated_specs": ["openspec/specs/calc.fspec.md"],
        }
    )

    assert metadata == {
        "applied": 2,
        "checkpoint": None,
        "elapsed": 0.5,
        "mode": "sync",
        "ok": True,
        "updated_specs": ["openspec/specs/calc.fspec.md"],
    }


def test_bulky_values_are_summarized() -> None:
    metadata = sanitize_metadata(
        {
            "files": [f"lib/{index}.js" for index in range(25)],
            "warnings": [{"kind": "no_spec"}],
            "batch": {"updates": [], "summary": "x"},
            "root": Path("/tmp/project"),
        }
    )

    assert metadata["files_type"] == "list"
    assert metadata["files_length"] == 25
    assert metadata["warnings_type"] == "list"
    assert metadata["batch_type"] == "dict"
    assert metadata["batch_keys"] == ["summary", "updates"]
    assert metadata["root"] == "/tmp/project"
