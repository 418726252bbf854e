"""Git-backed implementation of the version-control port."""

from __future__ import annotations

import subprocess
from pathlib import Path

from spec_sync.vcs.port import ChangeQuery, VersionControlError


class GitCommandPort:
    """Answer version-control queries by running the `git` executable."""

    def __init__(self, executable: str = "git", timeout_seconds: float = 30.0) -> None:
        self._executable = executable
        self._timeout_seconds = timeout_seconds

    def is_clean(self, root: Path) -> bool:
        # Untracked files (including the tool's own data dir) do not count.
        output = self._git(root, ["status", "--porcelain", "--untracked-files=no"])
        return not output.strip()

    def changed_since(self, root: Path, ref: str) -> ChangeQuery:
        head = self.head(root)
        if head is None:
            raise VersionControlError(
                reason="Repository has no commits.",
                hint="Commit once before running an incremental sync.",
            )
        base = self._resolve_commit(root, ref)
        # Paths relative to the project root, limited to its subtree.
        output = self._git(root, ["diff", "--name-only", "--relative", f"{base}..{head}"])
        paths = tuple(line.strip() for line in output.splitlines() if line.strip())
        return ChangeQuery(paths=paths, head=head)

    def head(self, root: Path) -> str | None:
        try:
            value = self._git(root, ["rev-parse", "--verify", "HEAD"])
        except VersionControlError:
            return None
        return value.strip() or None

    def _resolve_commit(self, root: Path, ref: str) -> str:
        """Return the commit id a stored reference names, refusing option-like input."""
        try:
            value = self._git(
                root, ["rev-parse", "--verify", "--quiet", "--end-of-options", f"{ref}^{{commit}}"]
            )
        except VersionControlError as exc:
            raise VersionControlError(
                reason=f"Checkpoint {ref!r} is not a commit in this repository.",
                hint="Run a full sync to record a new checkpoint.",
            ) from exc
        return value.strip()

    def _git(self, root: Path, args: list[str]) -> str:
        try:
            completed = subprocess.run(
                [self._executable, *args],
                cwd=root,
                check=False,
                capture_output=True,
                text=True,
                timeout=self._timeout_seconds,
            )
        except FileNotFoundError as exc:
            raise VersionControlError(
                reason=f"{self._executable} executable not found.",
                hint="Install git or run without incremental change detection.",
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise VersionControlError(
                reason=f"git {' '.join(args)} timed out.",
                hint="Retry, or run a full sync without incremental change detection.",
            ) from exc
        if completed.returncode != 0:
            raise VersionControlError(
                reason=completed.stderr.strip() or "git command failed",
                hint="Check that the project root is a git work tree.",
            )
        return completed.stdout
