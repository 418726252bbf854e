"""Typed drift records and their fixed severities."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Final

METHOD_ADDED: Final = "method_added"
METHOD_REMOVED: Final = "method_removed"
SIGNATURE_CHANGED: Final = "signature_changed"
PARAMETER_ADDED: Final = "parameter_added"
PARAMETER_REMOVED: Final = "parameter_removed"

DRIFT_TYPES: Final = (
    METHOD_ADDED,
    METHOD_REMOVED,
    SIGNATURE_CHANGED,
    PARAMETER_ADDED,
    PARAMETER_REMOVED,
)

SEVERITY_HIGH: Final = "high"
SEVERITY_MEDIUM: Final = "medium"
SEVERITY_LOW: Final = "low"

# Ascending order; index comparisons rank severities and risks alike.
SEVERITY_ORDER: Final = (SEVERITY_LOW, SEVERITY_MEDIUM, SEVERITY_HIGH)

SEVERITY_BY_TYPE: Final[dict[str, str]] = {
    METHOD_ADDED: SEVERITY_MEDIUM,
    METHOD_REMOVED: SEVERITY_HIGH,
    SIGNATURE_CHANGED: SEVERITY_MEDIUM,
    PARAMETER_ADDED: SEVERITY_MEDIUM,
    PARAMETER_REMOVED: SEVERITY_HIGH,
}


@dataclass(slots=True, frozen=True)
class DriftRecord:
    """One detected structural inconsistency between spec and code."""

    type: str
    severity: str
    subject: str
    before: str | None = None
    after: str | None = None
    parameter: str | None = None
    section: str | None = None

    @property
    def description(self) -> str:
        """Return a one-line human-readable description."""
        if self.type == METHOD_ADDED:
            return f"Method {self.subject} exists in code but is not documented in the spec"
        if self.type == METHOD_REMOVED:
            return f"Method {self.subject} is documented in the spec but no longer exists in code"
        if self.type == PARAMETER_ADDED:
            return f"Method {self.subject} gained parameter {self.parameter}"
        if self.type == PARAMETER_REMOVED:
            return f"Method {self.subject} lost parameter {self.parameter}"
        if self.type == SIGNATURE_CHANGED:
            return f"Method {self.subject} signature changed"
        return f"{self.type}: {self.subject}"

    def to_dict(self) -> dict[str, object]:
        """Return serializable drift snapshot."""
        return {
            "type": self.type,
            "severity": self.severity,
            "subject": self.subject,
            "before": self.before,
            "after": self.after,
            "parameter": self.parameter,
            "section": self.section,
            "description": self.description,
        }


@dataclass(slots=True, frozen=True)
class DriftSummary:
    """Aggregate counts over a drift list."""

    total: int
    by_type: dict[str, int] = field(default_factory=dict)
    by_severity: dict[str, int] = field(default_factory=dict)
    has_critical: bool = False

    def to_dict(self) -> dict[str, object]:
        """Return serializable summary snapshot."""
        return {
            "total": self.total,
            "by_type": dict(self.by_type),
            "by_severity": dict(self.by_severity),
            "has_critical": self.has_critical,
        }


def severity_rank(severity: str) -> int:
    """Return ascending rank of a severity or risk label; unknown labels rank lowest."""
    if severity not in SEVERITY_ORDER:
        return -1
    return SEVERITY_ORDER.index(severity)
