"""Timestamped spec backups and rollback."""

from __future__ import annotations

import os
import re
import shutil
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path

from spec_sync.security import relative_posix
from spec_sync.sync.models import Backup

BACKUP_SUFFIX = ".backup"
_BACKUP_NAME_RE = re.compile(r"^(?P<name>.+)\.(?P<timestamp>\d{8}T\d{12}Z)\.backup$")


def backup_timestamp(moment: datetime) -> str:
    """Return a fixed-width, lexically sortable UTC timestamp."""
    return moment.astimezone(UTC).strftime("%Y%m%dT%H%M%S%fZ")


class BackupStore:
    """Copy spec files aside before they are rewritten, and restore them."""

    def __init__(
        self,
        project_root: Path,
        backups_dir: Path,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._root = project_root.resolve()
        self._dir = backups_dir
        self._clock = clock or (lambda: datetime.now(tz=UTC))

    @property
    def directory(self) -> Path:
        """Return backup directory path."""
        return self._dir

    def create(self, spec_path: Path) -> Backup:
        """Copy a spec file into the backup tree, mirroring its project-relative path."""
        relative = relative_posix(self._root, spec_path)
        timestamp = backup_timestamp(self._clock())
        target = self._dir / f"{relative}.{timestamp}{BACKUP_SUFFIX}"
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(spec_path, target)
        return Backup(spec_path=relative, timestamp=timestamp, path=target)

    def list_backups(self) -> list[Backup]:
        """Return all backups sorted by spec path, then timestamp."""
        if not self._dir.is_dir():
            return []
        backups: list[Backup] = []
        for directory, dir_names, file_names in os.walk(self._dir):
            dir_names.sort()
            for file_name in sorted(file_names):
                match = _BACKUP_NAME_RE.match(file_name)
                if match is None:
                    continue
                full_path = Path(directory) / file_name
                parent = full_path.parent.relative_to(self._dir).as_posix()
                name = match.group("name")
                spec_path = name if parent == "." else f"{parent}/{name}"
                backups.append(
                    Backup(spec_path=spec_path, timestamp=match.group("timestamp"), path=full_path)
                )
        backups.sort(key=lambda item: (item.spec_path, item.timestamp))
        return backups

    def latest(self) -> dict[str, Backup]:
        """Return the newest backup per spec path."""
        newest: dict[str, Backup] = {}
        for backup in self.list_backups():
            newest[backup.spec_path] = backup
        return newest

    def rollback(self) -> list[str]:
        """Restore the newest backup of every spec that still exists; return restored paths."""
        restored: list[str] = []
        for spec_path, backup in sorted(self.latest().items()):
            target = self._root / spec_path
            if not target.is_file():
                continue
            tmp = target.with_suffix(target.suffix + ".tmp")
            shutil.copyfile(backup.path, tmp)
            tmp.replace(target)
            restored.append(spec_path)
        return restored
