"""Observation records written after successful spec updates."""

from __future__ import annotations

from pathlib import Path, PurePosixPath
from typing import Protocol

from spec_sync.sync.models import Observation


class ObservationSink(Protocol):
    """Receiver for short records of applied spec updates."""

    def record(self, observation: Observation) -> None:
        """Persist or forward one observation."""


class MarkdownObservationSink:
    """Write one Markdown file per observation into an existing directory.

    Nothing is written when the directory is absent; creating it is how a
    project opts in. Files are named by timestamp and spec name, and an
    existing file is never overwritten.
    """

    def __init__(self, directory: Path) -> None:
        self._directory = directory

    def record(self, observation: Observation) -> None:
        if not self._directory.is_dir():
            return
        stamp = observation.timestamp.replace(":", "-").replace(".", "-")
        stem = PurePosixPath(observation.spec_path).name.split(".", 1)[0]
        base = f"obs-sync-{stamp}-{stem}"
        content = render_observation(observation)
        attempt = 0
        while True:
            suffix = f"-{attempt}" if attempt else ""
            path = self._directory / f"{base}{suffix}.md"
            try:
                with path.open("x", encoding="utf-8") as handle:
                    handle.write(content)
            except FileExistsError:
                attempt += 1
                continue
            return


def render_observation(observation: Observation) -> str:
    """Render an observation as front-matter plus summary and diff."""
    sources = ", ".join(observation.source_paths)
    return (
        "---\n"
        "type: spec_sync\n"
        f"source: {sources}\n"
        f"specFile: {observation.spec_path}\n"
        f"timestamp: {observation.timestamp}\n"
        "---\n"
        "\n"
        "# Spec sync observation\n"
        "\n"
        "## Summary\n"
        "\n"
        f"{observation.summary}\n"
        "\n"
        "## Changes\n"
        "\n"
        f"{observation.diff}\n"
    )
