"""Drift detection between specification and implementation."""

from .detector import (
    detect,
    detect_signature_drift,
    filter_drifts,
    format_drift_report,
    summarize_drifts,
)
from .models import (
    DRIFT_TYPES,
    METHOD_ADDED,
    METHOD_REMOVED,
    PARAMETER_ADDED,
    PARAMETER_REMOVED,
    SEVERITY_BY_TYPE,
    SEVERITY_HIGH,
    SEVERITY_LOW,
    SEVERITY_MEDIUM,
    SEVERITY_ORDER,
    SIGNATURE_CHANGED,
    DriftRecord,
    DriftSummary,
    severity_rank,
)

__all__ = [
    "DRIFT_TYPES",
    "DriftRecord",
    "DriftSummary",
    "METHOD_ADDED",
    "METHOD_REMOVED",
    "PARAMETER_ADDED",
    "PARAMETER_REMOVED",
    "SEVERITY_BY_TYPE",
    "SEVERITY_HIGH",
    "SEVERITY_LOW",
    "SEVERITY_MEDIUM",
    "SEVERITY_ORDER",
    "SIGNATURE_CHANGED",
    "detect",
    "detect_signature_drift",
    "filter_drifts",
    "format_drift_report",
    "severity_rank",
    "summarize_drifts",
]
