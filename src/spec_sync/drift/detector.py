"""Pure drift detection between spec and code signature collections."""

from __future__ import annotations

from collections.abc import Iterable

from spec_sync.drift.models import (
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
from spec_sync.signatures import Signature, SignatureCollection, normalize_signature


def detect(
    spec_signatures: SignatureCollection | None,
    code_signatures: SignatureCollection | None,
) -> list[DriftRecord]:
    """Compare spec and code signatures and return drift records in a fixed order.

    Order: methods added (code order), methods removed (spec order), then
    parameter or signature changes for names present on both sides (code
    order). An empty or missing side means there is nothing to compare.
    """
    if not spec_signatures or not code_signatures:
        return []

    drifts: list[DriftRecord] = []
    for code_signature in code_signatures:
        if code_signature.name in spec_signatures:
            continue
        drifts.append(
            _record(METHOD_ADDED, code_signature.name, after=code_signature.raw_signature)
        )

    for spec_signature in spec_signatures:
        if spec_signature.name in code_signatures:
            continue
        drifts.append(
            _record(
                METHOD_REMOVED,
                spec_signature.name,
                before=spec_signature.raw_signature,
                section=spec_signature.section,
            )
        )

    for code_signature in code_signatures:
        spec_signature = spec_signatures.get(code_signature.name)
        if spec_signature is None:
            continue
        drifts.extend(detect_signature_drift(spec_signature, code_signature))
    return drifts


def detect_signature_drift(spec_signature: Signature, code_signature: Signature) -> list[DriftRecord]:
    """Return parameter-level drift, or one signature change when only the shape differs."""
    if normalize_signature(spec_signature.raw_signature) == normalize_signature(
        code_signature.raw_signature
    ):
        return []

    common = {
        "before": spec_signature.raw_signature,
        "after": code_signature.raw_signature,
        "section": spec_signature.section,
    }
    drifts: list[DriftRecord] = []
    for parameter in code_signature.parameters:
        if parameter not in spec_signature.parameters:
            drifts.append(
                _record(PARAMETER_ADDED, code_signature.name, parameter=parameter, **common)
            )
    for parameter in spec_signature.parameters:
        if parameter not in code_signature.parameters:
            drifts.append(
                _record(PARAMETER_REMOVED, code_signature.name, parameter=parameter, **common)
            )
    if not drifts:
        drifts.append(_record(SIGNATURE_CHANGED, code_signature.name, **common))
    return drifts


def summarize_drifts(drifts: Iterable[DriftRecord]) -> DriftSummary:
    """Count drifts by type and severity."""
    by_type: dict[str, int] = {}
    by_severity = {SEVERITY_HIGH: 0, SEVERITY_MEDIUM: 0, SEVERITY_LOW: 0}
    total = 0
    for drift in drifts:
        total += 1
        by_type[drift.type] = by_type.get(drift.type, 0) + 1
        if drift.severity in by_severity:
            by_severity[drift.severity] += 1
    return DriftSummary(
        total=total,
        by_type=by_type,
        by_severity=by_severity,
        has_critical=by_severity[SEVERITY_HIGH] > 0,
    )


def filter_drifts(
    drifts: Iterable[DriftRecord],
    *,
    min_severity: str | None = None,
    types: Iterable[str] | None = None,
) -> list[DriftRecord]:
    """Filter drifts by minimum severity and/or type, preserving order."""
    if min_severity is not None and min_severity not in SEVERITY_ORDER:
        raise ValueError(f"Unknown severity: {min_severity}")
    wanted_types = set(types) if types else None
    output: list[DriftRecord] = []
    for drift in drifts:
        if min_severity is not None and severity_rank(drift.severity) < severity_rank(min_severity):
            continue
        if wanted_types is not None and drift.type not in wanted_types:
            continue
        output.append(drift)
    return output


def format_drift_report(drifts: list[DriftRecord]) -> str:
    """Render drifts grouped by severity, highest first."""
    if not drifts:
        return "No spec/code drift detected.\n"
    lines = ["Spec/code drift detected:", ""]
    headings = (
        (SEVERITY_HIGH, "High risk (act now):"),
        (SEVERITY_MEDIUM, "Medium risk (should update):"),
        (SEVERITY_LOW, "Low risk (optional):"),
    )
    for severity, heading in headings:
        group = [drift for drift in drifts if drift.severity == severity]
        if not group:
            continue
        lines.append(heading)
        lines.extend(f"  - {drift.description}" for drift in group)
        lines.append("")
    return "\n".join(lines).rstrip() + "\n"


def _record(
    drift_type: str,
    subject: str,
    *,
    before: str | None = None,
    after: str | None = None,
    parameter: str | None = None,
    section: str | None = None,
) -> DriftRecord:
    return DriftRecord(
        type=drift_type,
        severity=SEVERITY_BY_TYPE[drift_type],
        subject=subject,
        before=before,
        after=after,
        parameter=parameter,
        section=section,
    )
