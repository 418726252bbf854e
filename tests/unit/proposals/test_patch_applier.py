from __future__ import annotations

from spec_sync.drift import METHOD_ADDED, METHOD_REMOVED, PARAMETER_ADDED, detect
from spec_sync.proposals import (
    LITERAL_TEXT_PATCH,
    UpdateProposal,
    apply_updates,
    find_table_region,
    propose,
)
from spec_sync.signatures import KIND_CODE, KIND_SPEC, extract, normalize_signature

SPEC = "\n".join(
    [
        "# Calc",
        "",
        "## 派生产物",
        "",
        "| 类型 | 路径 | 说明 |",
        "|------|------|------|",
        "| 函数 | `foo(a, b)` | Foo |",
        "| 函数 | `save(path)` | Save |",
        "",
        "## Notes",
        "",
        "foo(a, b) is referenced here too.",
        "",
    ]
)


def _update(subject: str, before: str, after: str) -> UpdateProposal:
    return UpdateProposal(
        action="update",
        section="derived_outputs",
        subject=subject,
        auto_applicable=True,
        risk="medium",
        drift_type=PARAMETER_ADDED,
        diff_preview="",
        before=before,
        after=after,
    )


def _add(subject: str, raw: str) -> UpdateProposal:
    row = f"| 函数 | `{raw}` | New method |"
    return UpdateProposal(
        action="add",
        section="derived_outputs",
        subject=subject,
        auto_applicable=True,
        risk="low",
        drift_type=METHOD_ADDED,
        diff_preview=f"+ {row}",
        after=raw,
        table_row=row,
    )


def _remove(subject: str, raw: str) -> UpdateProposal:
    return UpdateProposal(
        action="remove",
        section="derived_outputs",
        subject=subject,
        auto_applicable=False,
        risk="high",
        drift_type=METHOD_REMOVED,
        diff_preview=f"- {raw}",
        before=raw,
    )


def test_update_rewrites_only_table_rows_for_the_subject() -> None:
    patched = apply_updates(SPEC, [_update("foo", "foo(a, b)", "foo(a, b, c)")])

    assert "| 函数 | `foo(a, b, c)` | Foo |" in patched
    assert "foo(a, b) is referenced here too." in patched


def test_remove_deletes_matching_row() -> None:
    patched = apply_updates(SPEC, [_remove("save", "save(path)")])

    assert "save(path)" not in patched
    assert "| 函数 | `foo(a, b)` | Foo |" in patched


def test_add_appends_row_at_end_of_table() -> None:
    patched = apply_updates(SPEC, [_add("bar", "bar(x)")])

    lines = patched.splitlines()
    assert lines[8] == "| 函数 | `bar(x)` | New method |"
    assert lines[9] == ""
    assert lines[10] == "## Notes"


def test_add_is_idempotent() -> None:
    once = apply_updates(SPEC, [_add("bar", "bar(x)")])
    twice = apply_updates(once, [_add("bar", "bar(x)")])

    assert once == twice


def test_stale_literal_is_a_no_op() -> None:
    patched = apply_updates(SPEC, [_update("foo", "foo(x)", "foo(x, y)")])

    assert patched == SPEC


def test_missing_region_is_created_with_add_rows() -> None:
    text = "# Title\n\nSome text.\n"

    patched = apply_updates(text, [_add("bar", "bar(x)")])

    assert patched == (
        "# Title\n\nSome text.\n\n"
        "## 派生产物 (Derived Outputs)\n\n"
        "| 类型 | 路径 | 说明 |\n"
        "|------|------|------|\n"
        "| 函数 | `bar(x)` | New method |\n"
    )


def test_missing_region_ignores_updates_and_removals() -> None:
    text = "# Title\n\n**foo**(a, b)\n"

    patched = apply_updates(text, [_update("foo", "foo(a, b)", "foo(a, b, c)")])

    assert patched == text


def test_english_heading_is_recognized() -> None:
    text = SPEC.replace("## 派生产物", "## Derived Outputs")

    region = find_table_region(text.splitlines())

    assert region is not None
    assert (region.table_start, region.table_end) == (4, 7)


def test_heading_without_table_gets_a_table() -> None:
    text = "## 派生产物\n\nNothing yet.\n"

    patched = apply_updates(text, [_add("bar", "bar(x)")])

    assert "| 类型 | 路径 | 说明 |\n|------|------|------|\n| 函数 | `bar(x)` | New method |" in patched


def test_empty_update_list_returns_text_unchanged() -> None:
    assert apply_updates(SPEC, []) == SPEC
    assert LITERAL_TEXT_PATCH.name == "literal-text-patch"


def test_auto_applied_parameter_change_round_trips() -> None:
    spec = extract(SPEC, KIND_SPEC)
    code = extract("function foo(a, b, c) {}\nfunction save(path) {}\n", KIND_CODE, path="lib/calc.js")
    batch = propose(detect(spec, code), code)

    patched = apply_updates(SPEC, [update for update in batch.updates if update.auto_applicable])

    reextracted = extract(patched, KIND_SPEC).get("foo")
    assert reextracted is not None
    assert normalize_signature(reextracted.raw_signature) == normalize_signature("foo(a, b, c)")
    assert detect(extract(patched, KIND_SPEC), code) == []


def test_rows_without_backticks_are_patched() -> None:
    text = SPEC.replace("`foo(a, b)`", "foo(a, b)").replace("`save(path)`", "save(path)")

    updated = apply_updates(text, [_update("foo", "foo(a, b)", "foo(a, b, c)")])
    removed = apply_updates(text, [_remove("save", "save(path)")])
    added = apply_updates(text, [_add("foo", "foo(a, b)")])

    assert "| 函数 | foo(a, b, c) | Foo |" in updated
    assert "foo(a, b) is referenced here too." in updated
    assert "| 函数 | save(path) | Save |" not in removed
    assert added == text


def test_subject_must_start_the_cell_or_code_span() -> None:
    text = SPEC.replace("`foo(a, b)`", "refoo(a, b)")

    assert apply_updates(text, [_update("foo", "foo(a, b)", "foo(a, b, c)")]) == text
