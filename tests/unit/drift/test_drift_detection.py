from __future__ import annotations

from spec_sync.drift import (
    METHOD_ADDED,
    METHOD_REMOVED,
    PARAMETER_ADDED,
    PARAMETER_REMOVED,
    SIGNATURE_CHANGED,
    detect,
)
from spec_sync.signatures import KIND_CODE, KIND_SPEC, SignatureCollection, extract


def _spec(*rows: str) -> SignatureCollection:
    lines = ["## 派生产物", "", "| 类型 | 路径 | 说明 |", "|------|------|------|"]
    lines.extend(f"| 函数 | `{row}` | doc |" for row in rows)
    return extract("\n".join(lines) + "\n", KIND_SPEC)


def _code(source: str) -> SignatureCollection:
    return extract(source, KIND_CODE, path="lib/module.js")


def test_method_added_when_code_has_undocumented_function() -> None:
    drifts = detect(_spec("calc(a, b)"), _code("function calc(a, b) {}\nfunction add(a, b) {}\n"))

    assert len(drifts) == 1
    assert drifts[0].type == METHOD_ADDED
    assert drifts[0].severity == "medium"
    assert drifts[0].subject == "add"
    assert drifts[0].after == "add(a, b)"


def test_method_removed_when_documented_function_is_gone() -> None:
    drifts = detect(_spec("calc(a, b)", "save(path)"), _code("function calc(a, b) {}\n"))

    assert len(drifts) == 1
    assert drifts[0].type == METHOD_REMOVED
    assert drifts[0].severity == "high"
    assert drifts[0].before == "save(path)"
    assert drifts[0].section == "derived_outputs"


def test_identical_normalized_signatures_produce_no_drift() -> None:
    assert detect(_spec("calc(a, b)"), _code("function calc( a,b ) {}\n")) == []


def test_annotation_only_difference_produces_no_drift() -> None:
    code = extract("function calc(a: number, b: number = 2) {}\n", KIND_CODE, path="lib/calc.ts")

    assert detect(_spec("calc(a, b)"), code) == []


def test_parameter_added_carries_raw_signatures() -> None:
    drifts = detect(_spec("foo(a, b)"), _code("function foo(a, b, c) {}\n"))

    assert [(drift.type, drift.parameter) for drift in drifts] == [(PARAMETER_ADDED, "c")]
    assert drifts[0].before == "foo(a, b)"
    assert drifts[0].after == "foo(a, b, c)"


def test_renamed_parameter_reports_added_then_removed() -> None:
    drifts = detect(_spec("foo(a, b)"), _code("function foo(a, c) {}\n"))

    assert [(drift.type, drift.parameter) for drift in drifts] == [
        (PARAMETER_ADDED, "c"),
        (PARAMETER_REMOVED, "b"),
    ]
    assert drifts[1].severity == "high"


def test_reordered_parameters_report_signature_change() -> None:
    drifts = detect(_spec("foo(a, b)"), _code("function foo(b, a) {}\n"))

    assert [drift.type for drift in drifts] == [SIGNATURE_CHANGED]
    assert drifts[0].severity == "medium"


def test_drift_order_is_added_removed_then_changed() -> None:
    spec = _spec("gone(x)", "shared(a)")
    code = _code("function shared(a, b) {}\nfunction fresh() {}\n")

    drifts = detect(spec, code)

    assert [drift.type for drift in drifts] == [METHOD_ADDED, METHOD_REMOVED, PARAMETER_ADDED]
    assert [drift.subject for drift in drifts] == ["fresh", "gone", "shared"]


def test_records_within_a_group_keep_document_order() -> None:
    spec = _spec("zeta(x)", "alpha(x)")
    code = _code("function yank() {}\nfunction bump() {}\n")

    drifts = detect(spec, code)

    assert [drift.subject for drift in drifts] == ["yank", "bump", "zeta", "alpha"]


def test_empty_or_missing_inputs_produce_no_drift() -> None:
    code = _code("function add(a, b) {}\n")

    assert detect(SignatureCollection(), code) == []
    assert detect(_spec("add(a)"), SignatureCollection()) == []
    assert detect(None, code) == []
    assert detect(_spec("add(a)"), None) == []


def test_detection_is_deterministic() -> None:
    spec = _spec("gone(x)", "shared(a)", "moved(b, a)")
    code = _code("function shared(a, b) {}\nfunction fresh() {}\nfunction moved(a, b) {}\n")

    first = detect(spec, code)
    second = detect(spec, code)

    assert first == second
    assert [drift.to_dict() for drift in first] == [drift.to_dict() for drift in second]
