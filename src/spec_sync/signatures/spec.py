"""Signature extraction from specification documents.

Spec authors document callables with one of several conventions. Each
convention is an ``ExtractionRule``; rules are tried in the order listed in
``SPEC_CONVENTIONS`` and merged first-seen-wins, so a table row always takes
precedence over a bold heading or a plain declaration of the same name.
"""

from __future__ import annotations

import bisect
import re

from spec_sync.signatures.base import SignatureCollection, build_signature, collect_signatures
from spec_sync.signatures.scanner import ExtractionRule, scan_rules

TABLE_ROW = ExtractionRule(
    name="table_row",
    pattern=re.compile(
        r"^[ \t]*\|[ \t]*(?:函数|方法|function|method)[ \t]*\|[ \t]*`?(?P<name>\w+)\(",
        re.M | re.I,
    ),
)
BOLD_HEADING = ExtractionRule(
    name="bold_heading",
    pattern=re.compile(r"\*\*(?P<name>\w+)\*\*[ \t]*\("),
)
PLAIN_DECLARATION = ExtractionRule(
    name="plain_declaration",
    pattern=re.compile(r"(?<![\w$.])function\s+(?P<name>\w+)\s*\("),
)

SPEC_CONVENTIONS = (TABLE_ROW, BOLD_HEADING, PLAIN_DECLARATION)

_HEADING_RE = re.compile(r"^#{1,6}[ \t]+(?P<title>.+?)[ \t#]*$", re.M)
_SECTION_ALIASES: dict[str, tuple[str, ...]] = {
    "derived_outputs": ("派生产物", "derived outputs", "derived output"),
    "technical_design": ("技术设计", "technical design"),
    "api_reference": ("api 参考", "api参考", "api reference"),
    "non_functional_requirements": ("非功能需求", "non-functional requirements", "non functional requirements"),
    "functional_requirements": ("功能需求", "functional requirements"),
    "acceptance_criteria": ("验收标准", "acceptance criteria"),
    "business_rules": ("业务规则", "business rules"),
    "constraints": ("约束", "constraints"),
    "requirements": ("需求", "requirements"),
}
# Longest aliases first so "functional requirements" is not read as "requirements".
_ORDERED_ALIASES = tuple(
    sorted(
        ((alias, key) for key, aliases in _SECTION_ALIASES.items() for alias in aliases),
        key=lambda item: len(item[0]),
        reverse=True,
    )
)


class SpecDocumentExtractor:
    """Extractor for markdown specification documents."""

    name = "spec"

    def supports_path(self, path: str) -> bool:
        """Return True for markdown documents."""
        return path.lower().endswith(".md")

    def extract(self, text: str) -> SignatureCollection:
        """Extract signatures from every convention, tagged with their section."""
        sections = section_index(text)
        signatures = [
            build_signature(
                match.name,
                match.params_text,
                section=section_at(sections, match.start),
            )
            for match in scan_rules(text, SPEC_CONVENTIONS)
        ]
        return collect_signatures(signatures, first_wins=True)


def normalize_section(title: str) -> str:
    """Map a heading title to a canonical section key."""
    lowered = title.strip().lower()
    for alias, key in _ORDERED_ALIASES:
        if alias in lowered:
            return key
    slug = re.sub(r"[^\w]+", "_", lowered).strip("_")
    return slug or "untitled"


def section_index(text: str) -> tuple[tuple[int, ...], tuple[str, ...]]:
    """Return heading offsets and their canonical section keys."""
    offsets: list[int] = []
    keys: list[str] = []
    for match in _HEADING_RE.finditer(text):
        offsets.append(match.start())
        keys.append(normalize_section(match.group("title")))
    return tuple(offsets), tuple(keys)


def section_at(sections: tuple[tuple[int, ...], tuple[str, ...]], offset: int) -> str | None:
    """Return the section key governing a character offset, if any heading precedes it."""
    offsets, keys = sections
    position = bisect.bisect_right(offsets, offset) - 1
    if position < 0:
        return None
    return keys[position]
