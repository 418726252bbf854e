"""Extractor registry with deterministic selection behavior."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from spec_sync.signatures.base import (
    KIND_CODE,
    KIND_SPEC,
    SignatureCollection,
    SignatureExtractor,
)
from spec_sync.signatures.code import GenericCodeExtractor, PythonCodeExtractor, ScriptCodeExtractor
from spec_sync.signatures.spec import SpecDocumentExtractor


@dataclass(slots=True)
class ExtractorRegistry:
    """Ordered code extractor registry with explicit fallback extractor."""

    _extractors: list[SignatureExtractor] = field(default_factory=list)
    _fallback: SignatureExtractor | None = None

    def register(self, extractor: SignatureExtractor, *, fallback: bool = False) -> None:
        """Register an extractor in deterministic insertion order."""
        if fallback:
            self._fallback = extractor
            return
        self._extractors.append(extractor)

    def select(self, path: str | None) -> SignatureExtractor:
        """Select the first extractor that supports the path, else fallback."""
        if path is not None:
            for extractor in self._extractors:
                if extractor.supports_path(path):
                    return extractor
        if self._fallback is not None:
            return self._fallback
        raise LookupError(f"No extractor supports path: {path}")

    def names(self) -> tuple[str, ...]:
        """Return registered extractor names in deterministic order."""
        ordered = [extractor.name for extractor in self._extractors]
        if self._fallback is not None:
            ordered.append(self._fallback.name)
        return tuple(ordered)


def build_extractor_registry() -> ExtractorRegistry:
    """Build the default code extractor registry."""
    registry = ExtractorRegistry()
    registry.register(PythonCodeExtractor())
    registry.register(ScriptCodeExtractor())
    registry.register(GenericCodeExtractor(), fallback=True)
    return registry


_DEFAULT_REGISTRY = build_extractor_registry()
_SPEC_EXTRACTOR = SpecDocumentExtractor()


def extract(
    text: str,
    kind: str,
    path: str | None = None,
    registry: ExtractorRegistry | None = None,
) -> SignatureCollection:
    """Extract a signature collection from document text.

    ``kind`` selects the strategy: ``spec`` documents use the authoring
    conventions, ``code`` documents use the dialect chosen by ``path``.
    """
    if kind == KIND_SPEC:
        return _SPEC_EXTRACTOR.extract(text)
    if kind == KIND_CODE:
        return (registry or _DEFAULT_REGISTRY).select(path).extract(text)
    raise ValueError(f"Unknown document kind: {kind}")


def extract_file(
    path: Path,
    kind: str,
    registry: ExtractorRegistry | None = None,
) -> SignatureCollection:
    """Extract from a file on disk; unreadable or missing files yield an empty collection."""
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return SignatureCollection()
    return extract(text, kind, path=path.as_posix(), registry=registry)
