"""Typed update proposals and validation results."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

ACTION_ADD: Final = "add"
ACTION_UPDATE: Final = "update"
ACTION_REMOVE: Final = "remove"

SECTION_DERIVED_OUTPUTS: Final = "derived_outputs"
SECTION_TECHNICAL_DESIGN: Final = "technical_design"
SECTION_API_REFERENCE: Final = "api_reference"
UPDATABLE_SECTIONS: Final = (
    SECTION_DERIVED_OUTPUTS,
    SECTION_TECHNICAL_DESIGN,
    SECTION_API_REFERENCE,
)

PROTECTED_SECTIONS: Final = frozenset(
    {
        "requirements",
        "functional_requirements",
        "non_functional_requirements",
        "acceptance_criteria",
        "business_rules",
        "constraints",
    }
)

RISK_LOW: Final = "low"
RISK_MEDIUM: Final = "medium"
RISK_HIGH: Final = "high"


@dataclass(slots=True, frozen=True)
class UpdateProposal:
    """One candidate spec edit derived from exactly one drift record."""

    action: str
    section: str
    subject: str
    auto_applicable: bool
    risk: str
    drift_type: str
    diff_preview: str
    before: str | None = None
    after: str | None = None
    parameter: str | None = None
    table_row: str | None = None
    description: str | None = None
    reason: str = ""
    warning: str | None = None

    def to_dict(self) -> dict[str, object]:
        """Return serializable proposal snapshot."""
        return {
            "action": self.action,
            "section": self.section,
            "subject": self.subject,
            "auto_applicable": self.auto_applicable,
            "risk": self.risk,
            "drift_type": self.drift_type,
            "diff_preview": self.diff_preview,
            "before": self.before,
            "after": self.after,
            "parameter": self.parameter,
            "table_row": self.table_row,
            "description": self.description,
            "reason": self.reason,
            "warning": self.warning,
        }


@dataclass(slots=True, frozen=True)
class ProposalWarning:
    """Batch-level warning attached to a proposal result."""

    kind: str
    message: str


@dataclass(slots=True, frozen=True)
class ProposalBatch:
    """All proposals derived from one spec/code comparison."""

    updates: tuple[UpdateProposal, ...]
    warnings: tuple[ProposalWarning, ...]
    diff_preview: str
    risk_level: str
    summary: str

    @property
    def auto_applicable_count(self) -> int:
        """Return number of proposals that may be applied without review."""
        return sum(1 for update in self.updates if update.auto_applicable)

    @property
    def requires_review_count(self) -> int:
        """Return number of proposals that need human review."""
        return len(self.updates) - self.auto_applicable_count

    @property
    def all_auto_applicable(self) -> bool:
        """Return True when every proposal is auto-applicable."""
        return bool(self.updates) and all(update.auto_applicable for update in self.updates)

    def to_dict(self) -> dict[str, object]:
        """Return serializable batch snapshot."""
        return {
            "updates": [update.to_dict() for update in self.updates],
            "warnings": [{"kind": item.kind, "message": item.message} for item in self.warnings],
            "diff_preview": self.diff_preview,
            "risk_level": self.risk_level,
            "summary": self.summary,
            "auto_applicable": self.auto_applicable_count,
            "requires_review": self.requires_review_count,
        }


@dataclass(slots=True, frozen=True)
class ValidationIssue:
    """Reason a proposal must not be applied automatically."""

    kind: str
    subject: str
    message: str


@dataclass(slots=True, frozen=True)
class ValidationResult:
    """Outcome of validating a set of proposals."""

    valid: bool
    issues: tuple[ValidationIssue, ...]

    def invalid_subjects(self) -> frozenset[str]:
        """Return subjects named by at least one issue."""
        return frozenset(issue.subject for issue in self.issues)
