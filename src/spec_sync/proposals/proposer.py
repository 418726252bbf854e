"""Turn drift records into reviewable spec update proposals."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import replace

from spec_sync.drift import (
    METHOD_ADDED,
    METHOD_REMOVED,
    PARAMETER_ADDED,
    PARAMETER_REMOVED,
    SIGNATURE_CHANGED,
    DriftRecord,
    severity_rank,
)
from spec_sync.proposals.models import (
    ACTION_ADD,
    ACTION_REMOVE,
    ACTION_UPDATE,
    PROTECTED_SECTIONS,
    RISK_HIGH,
    RISK_LOW,
    RISK_MEDIUM,
    SECTION_DERIVED_OUTPUTS,
    ProposalBatch,
    ProposalWarning,
    UpdateProposal,
    ValidationIssue,
    ValidationResult,
)
from spec_sync.signatures import SignatureCollection

DEFAULT_METHOD_DESCRIPTION = "New method"
TABLE_ROW_KIND = "函数"

ProposalHandler = Callable[[DriftRecord, SignatureCollection], UpdateProposal]


def propose(
    drifts: Iterable[DriftRecord],
    code_signatures: SignatureCollection | None = None,
) -> ProposalBatch:
    """Map each drift to one proposal and aggregate warnings, preview and risk.

    Drifts touching a protected section never produce auto-applicable
    proposals, whatever the per-type default says.
    """
    signatures = code_signatures or SignatureCollection()
    updates: list[UpdateProposal] = []
    protected_count = 0
    for drift in drifts:
        handler = _HANDLERS.get(drift.type)
        if handler is None:
            continue
        proposal = handler(drift, signatures)
        if drift.section in PROTECTED_SECTIONS:
            protected_count += 1
            proposal = replace(proposal, auto_applicable=False, section=drift.section)
        updates.append(proposal)

    warnings: list[ProposalWarning] = []
    if protected_count:
        warnings.append(
            ProposalWarning(
                kind="protected_section",
                message=(
                    f"{protected_count} change(s) touch protected sections and need manual review."
                ),
            )
        )
    return ProposalBatch(
        updates=tuple(updates),
        warnings=tuple(warnings),
        diff_preview=generate_diff_preview(updates),
        risk_level=calculate_risk_level(updates),
        summary=f"{len(updates)} suggested update(s)",
    )


def propose_method_add(drift: DriftRecord, signatures: SignatureCollection) -> UpdateProposal:
    """Document a method that exists only in code."""
    code_signature = signatures.get(drift.subject)
    description = (code_signature.doc if code_signature else None) or DEFAULT_METHOD_DESCRIPTION
    raw = drift.after or (code_signature.raw_signature if code_signature else drift.subject)
    row = format_table_row(raw, description)
    return UpdateProposal(
        action=ACTION_ADD,
        section=SECTION_DERIVED_OUTPUTS,
        subject=drift.subject,
        auto_applicable=True,
        risk=RISK_LOW,
        drift_type=drift.type,
        diff_preview=f"+ {row}",
        after=raw,
        table_row=row,
        description=description,
        reason="Method added in code",
    )


def propose_method_remove(drift: DriftRecord, signatures: SignatureCollection) -> UpdateProposal:
    """Drop a documented method that no longer exists in code."""
    _ = signatures
    return UpdateProposal(
        action=ACTION_REMOVE,
        section=SECTION_DERIVED_OUTPUTS,
        subject=drift.subject,
        auto_applicable=False,
        risk=RISK_HIGH,
        drift_type=drift.type,
        diff_preview=f"- {drift.before or drift.subject}",
        before=drift.before,
        reason="Method removed from code",
        warning=(
            f"Removing {drift.subject} from the spec may drop documented behavior; "
            "confirm manually before applying."
        ),
    )


def propose_signature_update(
    drift: DriftRecord, signatures: SignatureCollection
) -> UpdateProposal:
    """Rewrite a documented signature whose shape changed."""
    code_signature = signatures.get(drift.subject)
    return UpdateProposal(
        action=ACTION_UPDATE,
        section=SECTION_DERIVED_OUTPUTS,
        subject=drift.subject,
        auto_applicable=False,
        risk=RISK_MEDIUM,
        drift_type=drift.type,
        diff_preview=_update_preview(drift),
        before=drift.before,
        after=drift.after,
        description=code_signature.doc if code_signature else None,
        reason="Signature changed in code",
    )


def propose_parameter_add(drift: DriftRecord, signatures: SignatureCollection) -> UpdateProposal:
    """Document a parameter that exists only in code."""
    _ = signatures
    return UpdateProposal(
        action=ACTION_UPDATE,
        section=SECTION_DERIVED_OUTPUTS,
        subject=drift.subject,
        auto_applicable=True,
        risk=RISK_MEDIUM,
        drift_type=drift.type,
        diff_preview=_update_preview(drift),
        before=drift.before,
        after=drift.after,
        parameter=drift.parameter,
        reason=f"Parameter {drift.parameter} added in code",
    )


def propose_parameter_remove(
    drift: DriftRecord, signatures: SignatureCollection
) -> UpdateProposal:
    """Drop a documented parameter that no longer exists in code."""
    _ = signatures
    return UpdateProposal(
        action=ACTION_UPDATE,
        section=SECTION_DERIVED_OUTPUTS,
        subject=drift.subject,
        auto_applicable=False,
        risk=RISK_HIGH,
        drift_type=drift.type,
        diff_preview=_update_preview(drift),
        before=drift.before,
        after=drift.after,
        parameter=drift.parameter,
        reason=f"Parameter {drift.parameter} removed from code",
        warning=f"Removing parameter {drift.parameter} of {drift.subject} may be a breaking change.",
    )


_HANDLERS: dict[str, ProposalHandler] = {
    METHOD_ADDED: propose_method_add,
    METHOD_REMOVED: propose_method_remove,
    SIGNATURE_CHANGED: propose_signature_update,
    PARAMETER_ADDED: propose_parameter_add,
    PARAMETER_REMOVED: propose_parameter_remove,
}


def format_table_row(raw_signature: str, description: str) -> str:
    """Render one derived-outputs table row."""
    return f"| {TABLE_ROW_KIND} | `{raw_signature}` | {description} |"


def generate_diff_preview(updates: Iterable[UpdateProposal]) -> str:
    """Render a before/after preview grouped by target section."""
    lines: list[str] = []
    for update in updates:
        lines.append(f"--- {update.section} ---")
        lines.extend(update.diff_preview.splitlines())
        lines.append("")
    return "\n".join(lines)


def calculate_risk_level(updates: Iterable[UpdateProposal]) -> str:
    """Return the highest risk across proposals, `low` when there are none."""
    level = RISK_LOW
    for update in updates:
        if severity_rank(update.risk) > severity_rank(level):
            level = update.risk
    return level


def validate_updates(updates: Iterable[UpdateProposal]) -> ValidationResult:
    """Flag proposals that must never be auto-applied."""
    issues: list[ValidationIssue] = []
    for update in updates:
        if update.section in PROTECTED_SECTIONS:
            issues.append(
                ValidationIssue(
                    kind="protected_section",
                    subject=update.subject,
                    message=f"Protected section cannot be modified automatically: {update.section}",
                )
            )
        if update.risk == RISK_HIGH and update.auto_applicable:
            issues.append(
                ValidationIssue(
                    kind="high_risk_auto",
                    subject=update.subject,
                    message=f"High-risk update must not be auto-applied: {update.subject}",
                )
            )
    return ValidationResult(valid=not issues, issues=tuple(issues))


def _update_preview(drift: DriftRecord) -> str:
    lines: list[str] = []
    if drift.before:
        lines.append(f"- {drift.before}")
    if drift.after:
        lines.append(f"+ {drift.after}")
    return "\n".join(lines)
