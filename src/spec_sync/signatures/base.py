"""Core signature data types and normalization."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import Final, Protocol

from spec_sync.signatures.scanner import split_top_level, strip_annotation_and_default

KIND_CODE: Final = "code"
KIND_SPEC: Final = "spec"
DOCUMENT_KINDS: Final = (KIND_CODE, KIND_SPEC)


@dataclass(slots=True, frozen=True)
class Signature:
    """Single discoverable callable unit."""

    name: str
    raw_signature: str
    parameters: tuple[str, ...]
    doc: str | None = None
    section: str | None = None


@dataclass(slots=True, frozen=True)
class SignatureCollection:
    """Ordered name -> signature mapping built from one document."""

    signatures: Mapping[str, Signature] = field(default_factory=dict)
    exports: tuple[str, ...] = ()

    def __contains__(self, name: object) -> bool:
        return name in self.signatures

    def __iter__(self) -> Iterator[Signature]:
        return iter(self.signatures.values())

    def __len__(self) -> int:
        return len(self.signatures)

    def get(self, name: str) -> Signature | None:
        """Return signature by name, if present."""
        return self.signatures.get(name)

    def names(self) -> tuple[str, ...]:
        """Return signature names in document order."""
        return tuple(self.signatures.keys())


class SignatureContractError(ValueError):
    """Raised when extracted signatures violate the shared contract."""


class SignatureExtractor(Protocol):
    """Protocol implemented by per-dialect extractors."""

    name: str

    def supports_path(self, path: str) -> bool:
        """Return True when extractor supports a file path."""

    def extract(self, text: str) -> SignatureCollection:
        """Return signatures found in document text."""


def build_signature(
    name: str,
    params_text: str,
    *,
    doc: str | None = None,
    section: str | None = None,
    drop_leading: tuple[str, ...] = (),
) -> Signature:
    """Build a signature from a name and the raw text between its parentheses.

    A leading parameter named in ``drop_leading`` (a method receiver) is
    removed from both the parameter tuple and the raw signature.
    """
    parameters = extract_parameters(params_text)
    if drop_leading and parameters and parameters[0] in drop_leading:
        parameters = parameters[1:]
        params_text = ", ".join(part.strip() for part in split_top_level(params_text)[1:])
    return Signature(
        name=name,
        raw_signature=f"{name}({params_text})",
        parameters=parameters,
        doc=doc,
        section=section,
    )


def extract_parameters(params_text: str) -> tuple[str, ...]:
    """Return parameter names with defaults and annotations stripped."""
    names: list[str] = []
    for part in split_top_level(params_text):
        name = strip_annotation_and_default(part).strip()
        if name:
            names.append(name)
    return tuple(names)


def parameters_of(raw_signature: str | None) -> tuple[str, ...]:
    """Return parameter names parsed from a raw `name(params)` string."""
    if not raw_signature:
        return ()
    open_index = raw_signature.find("(")
    close_index = raw_signature.rfind(")")
    if open_index < 0 or close_index < open_index:
        return ()
    return extract_parameters(raw_signature[open_index + 1 : close_index])


def normalize_signature(raw_signature: str | None) -> str:
    """Normalize a raw signature for comparison only.

    Whitespace, default values and type annotations are removed and the result
    is lower-cased. Two signatures are equal only when these forms match.
    """
    if not raw_signature:
        return ""
    open_index = raw_signature.find("(")
    close_index = raw_signature.rfind(")")
    if open_index < 0 or close_index < open_index:
        return "".join(raw_signature.split()).lower()
    name = "".join(raw_signature[:open_index].split())
    params = [
        "".join(strip_annotation_and_default(part).split())
        for part in split_top_level(raw_signature[open_index + 1 : close_index])
    ]
    joined = ",".join(param for param in params if param)
    return f"{name}({joined})".lower()


def signatures_equal(left: Signature, right: Signature) -> bool:
    """Return True when two signatures normalize identically."""
    return normalize_signature(left.raw_signature) == normalize_signature(right.raw_signature)


def validate_signatures(signatures: list[Signature]) -> None:
    """Validate signatures against required invariant fields."""
    for signature in signatures:
        if not signature.name.strip():
            raise SignatureContractError("Signature name must be non-empty.")
        if not signature.raw_signature.startswith(signature.name):
            raise SignatureContractError(
                f"Signature raw text must start with its name: {signature.name}"
            )
        if any(not parameter for parameter in signature.parameters):
            raise SignatureContractError(
                f"Signature parameters must be non-empty names: {signature.name}"
            )


def collect_signatures(
    signatures: list[Signature],
    *,
    first_wins: bool,
    exports: tuple[str, ...] = (),
) -> SignatureCollection:
    """Validate and merge signatures into a collection with an explicit merge policy."""
    validate_signatures(signatures)
    merged: dict[str, Signature] = {}
    for signature in signatures:
        if first_wins and signature.name in merged:
            continue
        merged[signature.name] = signature
    return SignatureCollection(signatures=merged, exports=exports)
