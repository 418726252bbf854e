"""Apply approved proposals to specification text.

Only the derived-outputs table is edited. Replacements are literal: when the
document no longer contains the text that was analyzed, the edit is skipped
instead of guessed at.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

from spec_sync.proposals.models import (
    ACTION_ADD,
    ACTION_REMOVE,
    ACTION_UPDATE,
    UpdateProposal,
)

DERIVED_OUTPUTS_HEADING = "## 派生产物 (Derived Outputs)"
DERIVED_OUTPUTS_TABLE_HEADER = "| 类型 | 路径 | 说明 |"
DERIVED_OUTPUTS_TABLE_SEPARATOR = "|------|------|------|"

_REGION_HEADING_RE = re.compile(r"^##\s+.*(?:派生产物|derived outputs)", re.IGNORECASE)
_REGION_END_RE = re.compile(r"^#{1,2}\s")


class PatchStrategy(Protocol):
    """Contract for turning a document plus proposals into a new document."""

    name: str

    def apply(self, text: str, updates: Sequence[UpdateProposal]) -> str:
        """Return patched text; unchanged text means nothing applied."""


@dataclass(slots=True, frozen=True)
class TableRegion:
    """Line span of the derived-outputs section and its table."""

    heading: int
    end: int
    table_start: int | None
    table_end: int | None


class LiteralTextPatch:
    """Edit derived-outputs table rows by exact text substitution."""

    name = "literal-text-patch"

    def apply(self, text: str, updates: Sequence[UpdateProposal]) -> str:
        if not updates:
            return text
        trailing_newline = text.endswith("\n")
        lines = text.splitlines()

        region = find_table_region(lines)
        if region is not None:
            lines = self._apply_updates(lines, region, updates)
            lines = self._apply_removals(lines, updates)
            region = find_table_region(lines)

        rows = self._rows_to_add(lines, region, updates)
        if rows:
            lines = _insert_rows(lines, region, rows)

        patched = "\n".join(lines)
        if trailing_newline or (rows and region is None):
            patched += "\n"
        return patched

    def _apply_updates(
        self,
        lines: list[str],
        region: TableRegion,
        updates: Sequence[UpdateProposal],
    ) -> list[str]:
        output = list(lines)
        if region.table_start is None or region.table_end is None:
            return output
        seen: set[tuple[str, str, str]] = set()
        for update in updates:
            if update.action != ACTION_UPDATE or not update.before or not update.after:
                continue
            key = (update.subject, update.before, update.after)
            if key in seen:
                continue
            seen.add(key)
            for index in range(region.table_start, region.table_end + 1):
                line = output[index]
                if documents_subject(line, update.subject) and update.before in line:
                    output[index] = line.replace(update.before, update.after, 1)
        return output

    def _apply_removals(
        self,
        lines: list[str],
        updates: Sequence[UpdateProposal],
    ) -> list[str]:
        region = find_table_region(lines)
        if region is None or region.table_start is None or region.table_end is None:
            return lines
        removals = [update for update in updates if update.action == ACTION_REMOVE]
        if not removals:
            return lines
        drop: set[int] = set()
        for index in range(region.table_start, region.table_end + 1):
            line = lines[index]
            for update in removals:
                if not documents_subject(line, update.subject):
                    continue
                if update.before and update.before not in line:
                    continue
                drop.add(index)
        return [line for index, line in enumerate(lines) if index not in drop]

    def _rows_to_add(
        self,
        lines: list[str],
        region: TableRegion | None,
        updates: Sequence[UpdateProposal],
    ) -> list[str]:
        existing: list[str] = []
        if region is not None and region.table_start is not None and region.table_end is not None:
            existing = lines[region.table_start : region.table_end + 1]
        rows: list[str] = []
        for update in updates:
            if update.action != ACTION_ADD or not update.table_row:
                continue
            if any(documents_subject(line, update.subject) for line in existing):
                continue
            if update.table_row in rows:
                continue
            rows.append(update.table_row)
        return rows


LITERAL_TEXT_PATCH = LiteralTextPatch()


def apply_updates(
    text: str,
    updates: Sequence[UpdateProposal],
    strategy: PatchStrategy = LITERAL_TEXT_PATCH,
) -> str:
    """Apply proposals to document text with the given strategy."""
    return strategy.apply(text, tuple(updates))


def documents_subject(line: str, subject: str) -> bool:
    """Return True when a table row documents the named callable."""
    if not line.lstrip().startswith("|"):
        return False
    return re.search(rf"(?:`|\|\s*){re.escape(subject)}\s*\(", line) is not None


def find_table_region(lines: Sequence[str]) -> TableRegion | None:
    """Locate the derived-outputs heading and the first table beneath it."""
    heading: int | None = None
    for index, line in enumerate(lines):
        if _REGION_HEADING_RE.match(line):
            heading = index
            break
    if heading is None:
        return None

    end = len(lines)
    for index in range(heading + 1, len(lines)):
        if _REGION_END_RE.match(lines[index]):
            end = index
            break

    table_start: int | None = None
    table_end: int | None = None
    for index in range(heading + 1, end):
        is_row = lines[index].lstrip().startswith("|")
        if is_row and table_start is None:
            table_start = index
        if is_row and table_start is not None:
            table_end = index
        elif table_start is not None:
            break
    return TableRegion(heading=heading, end=end, table_start=table_start, table_end=table_end)


def _insert_rows(lines: list[str], region: TableRegion | None, rows: list[str]) -> list[str]:
    if region is None:
        output = list(lines)
        while output and not output[-1].strip():
            output.pop()
        if output:
            output.append("")
        output.extend(
            [DERIVED_OUTPUTS_HEADING, "", DERIVED_OUTPUTS_TABLE_HEADER, DERIVED_OUTPUTS_TABLE_SEPARATOR]
        )
        output.extend(rows)
        return output
    if region.table_end is None:
        block = ["", DERIVED_OUTPUTS_TABLE_HEADER, DERIVED_OUTPUTS_TABLE_SEPARATOR, *rows]
        return [*lines[: region.heading + 1], *block, *lines[region.heading + 1 :]]
    insert_at = region.table_end + 1
    return [*lines[:insert_at], *rows, *lines[insert_at:]]
