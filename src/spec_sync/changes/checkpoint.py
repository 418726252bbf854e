"""Persisted last-synchronized commit."""

from __future__ import annotations

import json
from pathlib import Path

from spec_sync.logging import utc_timestamp


class CheckpointStore:
    """Read and atomically write the checkpoint file."""

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        """Return on-disk checkpoint path."""
        return self._path

    def load(self) -> str | None:
        """Return the stored commit, or None when missing or unreadable."""
        if not self._path.exists():
            return None
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError):
            return None
        if not isinstance(payload, dict):
            return None
        value = payload.get("lastCommit")
        if not isinstance(value, str) or not value.strip():
            return None
        return value.strip()

    def save(self, commit: str) -> None:
        """Persist a new checkpoint."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = {"lastCommit": commit, "updatedAt": utc_timestamp()}
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        with tmp.open("w", encoding="utf-8") as handle:
            json.dump(payload, handle, indent=2, sort_keys=True)
            handle.write("\n")
        tmp.replace(self._path)
