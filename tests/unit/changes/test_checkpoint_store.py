from __future__ import annotations

import json
from pathlib import Path

from spec_sync.changes import CheckpointStore


def test_missing_checkpoint_loads_as_none(tmp_path: Path) -> None:
    assert CheckpointStore(tmp_path / ".seed" / "defend-cache.json").load() is None


def test_checkpoint_round_trip_writes_expected_payload(tmp_path: Path) -> None:
    path = tmp_path / ".seed" / "defend-cache.json"
    store = CheckpointStore(path)

    store.save("abc123")

    payload = json.loads(path.read_text(encoding="utf-8"))
    assert set(payload.keys()) == {"lastCommit", "updatedAt"}
    assert payload["lastCommit"] == "abc123"
    assert payload["updatedAt"].endswith("Z")
    assert store.load() == "abc123"
    assert not path.with_suffix(".json.tmp").exists()


def test_corrupt_checkpoint_loads_as_none(tmp_path: Path) -> None:
    path = tmp_path / "defend-cache.json"
    path.write_text("{not json", encoding="utf-8")

    assert CheckpointStore(path).load() is None

    path.write_text(json.dumps({"lastCommit": 42}), encoding="utf-8")
    assert CheckpointStore(path).load() is None
