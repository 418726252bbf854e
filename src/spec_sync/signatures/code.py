"""Lexical signature extractors for implementation files."""

from __future__ import annotations

import re

from spec_sync.signatures.base import (
    SignatureCollection,
    build_signature,
    collect_signatures,
)
from spec_sync.signatures.scanner import (
    PYTHON_RULES,
    SCRIPT_RULES,
    ExtractionRule,
    RuleMatch,
    collapse_params,
    mask_comments_and_strings,
    scan_rules,
)

_IDENT = r"[A-Za-z_$][A-Za-z0-9_$]*"

FUNCTION_DECLARATION = ExtractionRule(
    name="function_declaration",
    pattern=re.compile(
        rf"(?<![\w$.])(?:async\s+)?function\s*\*?\s*(?P<name>{_IDENT})\s*\("
    ),
)
ARROW_BINDING = ExtractionRule(
    name="arrow_binding",
    pattern=re.compile(
        rf"(?<![\w$.])(?:const|let|var)\s+(?P<name>{_IDENT})\s*(?::[^=\n]+)?=\s*(?:async\s*)?\("
    ),
    follow=re.compile(r"\s*(?::[^=\n{]+)?=>"),
)
FUNCTION_EXPRESSION_BINDING = ExtractionRule(
    name="function_expression_binding",
    pattern=re.compile(
        rf"(?<![\w$.])(?:const|let|var)\s+(?P<name>{_IDENT})\s*=\s*(?:async\s+)?"
        rf"function\s*\*?\s*(?:{_IDENT})?\s*\("
    ),
)
PYTHON_DEF = ExtractionRule(
    name="python_def",
    pattern=re.compile(r"^[ \t]*(?:async[ \t]+)?def[ \t]+(?P<name>[A-Za-z_]\w*)[ \t]*\(", re.M),
)

SCRIPT_DECLARATION_RULES = (
    FUNCTION_DECLARATION,
    ARROW_BINDING,
    FUNCTION_EXPRESSION_BINDING,
)

_MODULE_EXPORTS_RE = re.compile(r"module\.exports\s*=\s*\{([^}]*)\}", re.S)
_NAMED_EXPORT_RE = re.compile(
    rf"^\s*export\s+(?:default\s+)?(?:async\s+)?(?:function\s*\*?|const|let|var|class)\s+"
    rf"(?P<name>{_IDENT})",
    re.M,
)
_COMMONJS_EXPORT_RE = re.compile(rf"^\s*(?:module\.)?exports\.(?P<name>{_IDENT})\s*=", re.M)
_PY_ALL_RE = re.compile(r"^__all__\s*=\s*[\[(]([^\])]*)[\])]", re.M)
_PY_STRING_RE = re.compile(r"""["']([A-Za-z_]\w*)["']""")
_PY_DOCSTRING_RE = re.compile(r"""[^\n]*\n\s*[rRbBuU]?(\"\"\"|''')(?P<body>.*?)\1""", re.S)


class ScriptCodeExtractor:
    """JavaScript/TypeScript extractor over comment- and string-masked text."""

    name = "script"
    _extensions = (".js", ".jsx", ".mjs", ".cjs", ".ts", ".tsx", ".mts", ".cts")

    def supports_path(self, path: str) -> bool:
        """Return True when path is a JavaScript or TypeScript source file."""
        return path.lower().endswith(self._extensions)

    def extract(self, text: str) -> SignatureCollection:
        """Extract declared and name-bound callables plus exported names."""
        masked = mask_comments_and_strings(text, SCRIPT_RULES)
        matches = _in_source_order(scan_rules(text, SCRIPT_DECLARATION_RULES, masked=masked))
        signatures = [
            build_signature(
                match.name,
                collapse_params(match.params_text),
                doc=_jsdoc_before(text, match),
            )
            for match in matches
        ]
        return collect_signatures(signatures, first_wins=False, exports=script_exports(masked))


class PythonCodeExtractor:
    """Python extractor for `def` declarations; not an AST parser."""

    name = "python"

    def supports_path(self, path: str) -> bool:
        """Return True when path is a Python source file."""
        return path.lower().endswith(".py")

    def extract(self, text: str) -> SignatureCollection:
        """Extract functions and methods; leading self/cls parameters are dropped."""
        masked = mask_comments_and_strings(text, PYTHON_RULES)
        matches = scan_rules(text, (PYTHON_DEF,), masked=masked)
        signatures = [
            build_signature(
                match.name,
                collapse_params(match.params_text),
                doc=_python_docstring_after(text, match),
                drop_leading=("self", "cls"),
            )
            for match in matches
        ]
        return collect_signatures(
            signatures,
            first_wins=False,
            exports=python_exports(text, matches),
        )


class GenericCodeExtractor:
    """Fallback applying every declaration rule to unmasked text."""

    name = "generic"

    def supports_path(self, path: str) -> bool:
        """Fallback supports any path."""
        _ = path
        return True

    def extract(self, text: str) -> SignatureCollection:
        """Extract signatures with all known rules, later declarations overwrite."""
        matches = _in_source_order(scan_rules(text, (*SCRIPT_DECLARATION_RULES, PYTHON_DEF)))
        signatures = [
            build_signature(match.name, collapse_params(match.params_text)) for match in matches
        ]
        return collect_signatures(signatures, first_wins=False, exports=script_exports(text))


def script_exports(masked: str) -> tuple[str, ...]:
    """Return exported names in first-seen order."""
    names: list[str] = []
    block = _MODULE_EXPORTS_RE.search(masked)
    if block is not None:
        for entry in block.group(1).split(","):
            name = entry.split(":")[0].strip()
            if name and re.fullmatch(_IDENT, name):
                names.append(name)
    names.extend(match.group("name") for match in _NAMED_EXPORT_RE.finditer(masked))
    names.extend(match.group("name") for match in _COMMONJS_EXPORT_RE.finditer(masked))
    return tuple(dict.fromkeys(names))


def python_exports(text: str, matches: list[RuleMatch]) -> tuple[str, ...]:
    """Return names from `__all__`, else public top-level function names."""
    declared = _PY_ALL_RE.search(text)
    if declared is not None:
        return tuple(dict.fromkeys(_PY_STRING_RE.findall(declared.group(1))))
    top_level = [
        match.name
        for match in matches
        if not match.name.startswith("_") and _is_top_level(text, match)
    ]
    return tuple(dict.fromkeys(top_level))


def _in_source_order(matches: list[RuleMatch]) -> list[RuleMatch]:
    return sorted(matches, key=lambda item: (item.start, item.rule))


def _jsdoc_before(text: str, match: RuleMatch) -> str | None:
    line_start = text.rfind("\n", 0, match.start) + 1
    preceding = text[:line_start].rstrip()
    if not preceding.endswith("*/"):
        return None
    opening = preceding.rfind("/**")
    if opening < 0:
        return None
    body = preceding[opening + 3 : -2]
    for raw_line in body.splitlines():
        line = raw_line.strip().lstrip("*").strip()
        if not line:
            continue
        if line.startswith("@"):
            return None
        return line
    return None


def _python_docstring_after(text: str, match: RuleMatch) -> str | None:
    found = _PY_DOCSTRING_RE.match(text, match.end)
    if found is None:
        return None
    for raw_line in found.group("body").splitlines():
        line = raw_line.strip()
        if line:
            return line
    return None


def _is_top_level(text: str, match: RuleMatch) -> bool:
    line_start = text.rfind("\n", 0, match.start) + 1
    return not text[line_start : line_start + 1].isspace()
