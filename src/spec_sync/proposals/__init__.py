"""Spec update proposals and the patch applier."""

from .models import (
    ACTION_ADD,
    ACTION_REMOVE,
    ACTION_UPDATE,
    PROTECTED_SECTIONS,
    RISK_HIGH,
    RISK_LOW,
    RISK_MEDIUM,
    SECTION_API_REFERENCE,
    SECTION_DERIVED_OUTPUTS,
    SECTION_TECHNICAL_DESIGN,
    UPDATABLE_SECTIONS,
    ProposalBatch,
    ProposalWarning,
    UpdateProposal,
    ValidationIssue,
    ValidationResult,
)
from .patching import (
    DERIVED_OUTPUTS_HEADING,
    LITERAL_TEXT_PATCH,
    LiteralTextPatch,
    PatchStrategy,
    apply_updates,
    documents_subject,
    find_table_region,
)
from .proposer import (
    calculate_risk_level,
    format_table_row,
    generate_diff_preview,
    propose,
    validate_updates,
)

__all__ = [
    "ACTION_ADD",
    "ACTION_REMOVE",
    "ACTION_UPDATE",
    "DERIVED_OUTPUTS_HEADING",
    "LITERAL_TEXT_PATCH",
    "LiteralTextPatch",
    "PROTECTED_SECTIONS",
    "PatchStrategy",
    "ProposalBatch",
    "ProposalWarning",
    "RISK_HIGH",
    "RISK_LOW",
    "RISK_MEDIUM",
    "SECTION_API_REFERENCE",
    "SECTION_DERIVED_OUTPUTS",
    "SECTION_TECHNICAL_DESIGN",
    "UPDATABLE_SECTIONS",
    "UpdateProposal",
    "ValidationIssue",
    "ValidationResult",
    "apply_updates",
    "calculate_risk_level",
    "documents_subject",
    "find_table_region",
    "format_table_row",
    "generate_diff_preview",
    "propose",
    "validate_updates",
]
