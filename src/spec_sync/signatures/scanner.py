"""Deterministic lexical scanning helpers shared by signature extractors."""

from __future__ import annotations

import re
from dataclasses import dataclass

_OPENERS = {"(": ")", "[": "]", "{": "}"}
_CLOSERS = {")", "]", "}"}
_QUOTES = ("'''", '"""', "'", '"', "`")


@dataclass(slots=True, frozen=True)
class LexicalRules:
    """Configurable lexical markers used while masking non-code text."""

    line_comment_prefixes: tuple[str, ...] = ("//",)
    block_comment_pairs: tuple[tuple[str, str], ...] = (("/*", "*/"),)
    string_delimiters: tuple[str, ...] = ("'", '"', "`")
    escape_char: str = "\\"


SCRIPT_RULES = LexicalRules()
PYTHON_RULES = LexicalRules(
    line_comment_prefixes=("#",),
    block_comment_pairs=(),
    string_delimiters=("'''", '"""', "'", '"'),
)


@dataclass(slots=True, frozen=True)
class ExtractionRule:
    """Named declaration pattern.

    The pattern must define a ``name`` group and end on the opening
    parenthesis of the parameter list. ``follow``, when set, must match right
    after the closing parenthesis.
    """

    name: str
    pattern: re.Pattern[str]
    follow: re.Pattern[str] | None = None


@dataclass(slots=True, frozen=True)
class RuleMatch:
    """One declaration found by a rule, with its raw parameter text."""

    rule: str
    name: str
    params_text: str
    start: int
    end: int
    line: int


def mask_comments_and_strings(text: str, rules: LexicalRules | None = None) -> str:
    """Mask comments and strings while preserving original line count and character offsets."""
    active_rules = rules or SCRIPT_RULES
    line_prefixes = tuple(
        sorted(
            (prefix for prefix in active_rules.line_comment_prefixes if prefix),
            key=len,
            reverse=True,
        )
    )
    block_pairs = tuple(
        sorted(
            ((start, end) for start, end in active_rules.block_comment_pairs if start and end),
            key=lambda pair: len(pair[0]),
            reverse=True,
        )
    )
    string_delimiters = tuple(
        sorted(
            (marker for marker in active_rules.string_delimiters if marker),
            key=len,
            reverse=True,
        )
    )

    chars = list(text)
    length = len(text)
    index = 0
    state: tuple[str, str] | None = None

    while index < length:
        if state is None:
            line_marker = _match_any(text, index, line_prefixes)
            if line_marker is not None:
                _blank(chars, index, len(line_marker))
                state = ("line_comment", line_marker)
                index += len(line_marker)
                continue

            block_marker = _match_block_start(text, index, block_pairs)
            if block_marker is not None:
                start_marker, end_marker = block_marker
                _blank(chars, index, len(start_marker))
                state = ("block_comment", end_marker)
                index += len(start_marker)
                continue

            string_marker = _match_any(text, index, string_delimiters)
            if string_marker is not None:
                # Delimiters stay visible so `x = ""` still reads as a default value.
                state = ("string", string_marker)
                index += len(string_marker)
                continue

            index += 1
            continue

        mode, marker = state
        if mode == "line_comment":
            if text[index] == "\n":
                state = None
            else:
                chars[index] = " "
            index += 1
            continue

        if mode == "block_comment":
            if text.startswith(marker, index):
                _blank(chars, index, len(marker))
                state = None
                index += len(marker)
            else:
                if text[index] != "\n":
                    chars[index] = " "
                index += 1
            continue

        if text.startswith(marker, index) and not _is_escaped(
            text, index, marker, active_rules.escape_char
        ):
            state = None
            index += len(marker)
        else:
            if text[index] != "\n":
                chars[index] = " "
            index += 1

    return "".join(chars)


def capture_balanced(text: str, open_index: int) -> tuple[str, int] | None:
    """Return inner text and closing index of the bracket group opened at open_index."""
    if open_index >= len(text) or text[open_index] not in _OPENERS:
        return None
    stack: list[str] = [_OPENERS[text[open_index]]]
    index = open_index + 1
    length = len(text)
    while index < length:
        char = text[index]
        quote = _match_any(text, index, _QUOTES)
        if quote is not None:
            index = _skip_string(text, index, quote)
            continue
        if char in _OPENERS:
            stack.append(_OPENERS[char])
        elif char in _CLOSERS:
            if char != stack[-1]:
                return None
            stack.pop()
            if not stack:
                return text[open_index + 1 : index], index
        index += 1
    return None


def split_top_level(params_text: str) -> list[str]:
    """Split a parameter list on commas that are not nested in brackets or strings."""
    parts: list[str] = []
    current: list[str] = []
    depth = 0
    angle = 0
    index = 0
    length = len(params_text)
    while index < length:
        char = params_text[index]
        quote = _match_any(params_text, index, _QUOTES)
        if quote is not None:
            end = _skip_string(params_text, index, quote)
            current.append(params_text[index:end])
            index = end
            continue
        if char in _OPENERS:
            depth += 1
        elif char in _CLOSERS:
            depth = max(0, depth - 1)
        elif char == "<" and _opens_generic(params_text, index):
            angle += 1
        elif char == ">" and angle > 0 and params_text[index - 1] != "=":
            angle -= 1
        elif char == "," and depth == 0 and angle == 0:
            parts.append("".join(current))
            current = []
            index += 1
            continue
        current.append(char)
        index += 1
    tail = "".join(current)
    if tail.strip() or parts:
        parts.append(tail)
    return [part for part in parts if part.strip()]


def _opens_generic(text: str, index: int) -> bool:
    """Return True when `<` follows a name and is closed by a matching `>` later on."""
    if index == 0 or not (text[index - 1].isalnum() or text[index - 1] == "_"):
        return False
    depth = 0
    nested = 0
    for cursor in range(index + 1, len(text)):
        char = text[cursor]
        if char in _OPENERS:
            depth += 1
        elif char in _CLOSERS:
            if depth == 0:
                return False
            depth -= 1
        elif char == "<":
            nested += 1
        elif char == ">" and text[cursor - 1] != "=":
            if nested:
                nested -= 1
            elif depth == 0:
                return True
    return False


def strip_annotation_and_default(parameter: str) -> str:
    """Return the parameter text before its first top-level `=` or `:`."""
    depth = 0
    for index, char in enumerate(parameter):
        if char in _OPENERS:
            depth += 1
        elif char in _CLOSERS:
            depth = max(0, depth - 1)
        elif char in "=:" and depth == 0:
            return parameter[:index]
    return parameter


def collapse_params(params_text: str) -> str:
    """Fold a multi-line parameter list onto one line."""
    if "\n" not in params_text:
        return params_text
    pieces = [line.strip() for line in params_text.splitlines() if line.strip()]
    return " ".join(pieces).rstrip(",").strip()


def scan_rules(
    text: str,
    rules: tuple[ExtractionRule, ...],
    masked: str | None = None,
) -> list[RuleMatch]:
    """Apply rules in order and return matches grouped by rule, then by position.

    Patterns run against the masked text so declarations inside comments or
    strings are ignored; parameter text is sliced from the original.
    """
    haystack = masked if masked is not None else text
    matches: list[RuleMatch] = []
    for rule in rules:
        for match in rule.pattern.finditer(haystack):
            open_index = match.end() - 1
            captured = capture_balanced(haystack, open_index)
            if captured is None:
                continue
            _, close_index = captured
            if rule.follow is not None and rule.follow.match(haystack, close_index + 1) is None:
                continue
            matches.append(
                RuleMatch(
                    rule=rule.name,
                    name=match.group("name"),
                    params_text=text[open_index + 1 : close_index],
                    start=match.start("name"),
                    end=close_index + 1,
                    line=line_number_at(text, match.start("name")),
                )
            )
    return matches


def line_number_at(text: str, offset: int) -> int:
    """Return the 1-based line number of a character offset."""
    return text.count("\n", 0, offset) + 1


def _blank(chars: list[str], index: int, count: int) -> None:
    for offset in range(count):
        chars[index + offset] = " "


def _skip_string(text: str, index: int, quote: str) -> int:
    cursor = index + len(quote)
    length = len(text)
    while cursor < length:
        if text.startswith(quote, cursor) and not _is_escaped(text, cursor, quote, "\\"):
            return cursor + len(quote)
        cursor += 1
    return length


def _match_any(text: str, index: int, markers: tuple[str, ...]) -> str | None:
    for marker in markers:
        if text.startswith(marker, index):
            return marker
    return None


def _match_block_start(
    text: str,
    index: int,
    pairs: tuple[tuple[str, str], ...],
) -> tuple[str, str] | None:
    for start, end in pairs:
        if text.startswith(start, index):
            return start, end
    return None


def _is_escaped(text: str, index: int, marker: str, escape_char: str) -> bool:
    if len(marker) > 1:
        return False
    backslashes = 0
    cursor = index - 1
    while cursor >= 0 and text[cursor] == escape_char:
        backslashes += 1
        cursor -= 1
    return backslashes % 2 == 1
