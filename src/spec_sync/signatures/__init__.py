"""Signature model and extractors."""

from .base import (
    DOCUMENT_KINDS,
    KIND_CODE,
    KIND_SPEC,
    Signature,
    SignatureCollection,
    SignatureContractError,
    SignatureExtractor,
    build_signature,
    collect_signatures,
    extract_parameters,
    normalize_signature,
    parameters_of,
    signatures_equal,
)
from .code import GenericCodeExtractor, PythonCodeExtractor, ScriptCodeExtractor
from .registry import ExtractorRegistry, build_extractor_registry, extract, extract_file
from .scanner import (
    ExtractionRule,
    LexicalRules,
    RuleMatch,
    capture_balanced,
    mask_comments_and_strings,
    scan_rules,
    split_top_level,
)
from .spec import SPEC_CONVENTIONS, SpecDocumentExtractor, normalize_section

__all__ = [
    "DOCUMENT_KINDS",
    "ExtractionRule",
    "ExtractorRegistry",
    "GenericCodeExtractor",
    "KIND_CODE",
    "KIND_SPEC",
    "LexicalRules",
    "PythonCodeExtractor",
    "RuleMatch",
    "SPEC_CONVENTIONS",
    "ScriptCodeExtractor",
    "Signature",
    "SignatureCollection",
    "SignatureContractError",
    "SignatureExtractor",
    "SpecDocumentExtractor",
    "build_extractor_registry",
    "build_signature",
    "capture_balanced",
    "collect_signatures",
    "extract",
    "extract_file",
    "extract_parameters",
    "mask_comments_and_strings",
    "normalize_section",
    "normalize_signature",
    "parameters_of",
    "scan_rules",
    "signatures_equal",
    "split_top_level",
]
