"""
test_methods.py — The four single-rule comparison methods, run through execute_rules.

Covers:
  - equals: column mode is value-based and order-independent
  - equals: row mode is positional, with missing-target and differing cells
  - contains: case-insensitive substring search
  - lookup: one match per target sharing the key
  - validate: empty/None rejected, target ignored
  - unknown method recorded as an error
"""
from __future__ import annotations

from sheetcompare.engine import execute_rules
from sheetcompare.models import (
    ColumnDefinition, ComparisonRule, ElementRef, ParsedSpreadsheet, RowData, Sheet, SheetMetadata,
)


# ══════════════════════════════════════════════════════════════════════════════
# HELPERS
# ══════════════════════════════════════════════════════════════════════════════

def _book(book_id, headers, rows, file_name=None):
    sheet = Sheet(
        name="Sheet1",
        columns=[ColumnDefinition(i, h) for i, h in enumerate(headers)],
        rows=[RowData(i, dict(zip(headers, r))) for i, r in enumerate(rows)],
        metadata=SheetMetadata(row_count=len(rows) + 1, column_count=len(headers)),
    )
    return ParsedSpreadsheet(id=book_id, file_name=file_name or f"{book_id}.xlsx", sheets=[sheet])


def _single_column(book_id, values):
    return _book(book_id, ["Value"], [[v] for v in values])


def _rule(method, element_type="column", src=0, tgt=0, rule_id="r1", step=1):
    return ComparisonRule(
        id=rule_id,
        step_number=step,
        element_type=element_type,
        method=method,
        source=ElementRef("a", "Sheet1", element_type, src),
        target=ElementRef("b", "Sheet1", element_type, tgt),
    )


def _run(books, rule):
    return execute_rules(books, [rule]).details[0]


# ══════════════════════════════════════════════════════════════════════════════
# EQUALS — COLUMNS
# ══════════════════════════════════════════════════════════════════════════════

def test_equals_column_one_match_one_mismatch():
    books = [_single_column("a", ["A", "B"]), _single_column("b", ["A", "C"])]
    d = _run(books, _rule("equals"))

    assert d.status == "failed"
    assert d.match_count == 1 and d.mismatch_count == 1
    assert d.matches[0].source_value == "A"
    assert d.matches[0].target_value == "A"
    assert d.mismatches[0].source_value == "B"
    assert d.mismatches[0].target_value == "N/A"
    assert d.mismatches[0].reason == "Value not found in target column"


def test_equals_column_is_order_independent():
    books = [_single_column("a", ["C", "A"]), _single_column("b", ["A", "X", "C"])]
    d = _run(books, _rule("equals"))
    assert d.status == "passed"
    assert d.match_count == 2


def test_equals_column_reports_found_target_value():
    books = [_single_column("a", [100]), _single_column("b", [" 100 "])]
    d = _run(books, _rule("equals"))
    assert d.matches[0].target_value == " 100 "


def test_equals_column_records_display_names():
    books = [
        _book("a", ["Value"], [["x"]], file_name="left.csv"),
        _book("b", ["Value"], [["x"]], file_name="right.csv"),
    ]
    d = _run(books, _rule("equals"))
    assert d.matches[0].source_spreadsheet == "left.csv"
    assert d.matches[0].target_spreadsheet == "right.csv"


def test_equals_column_passes_iff_every_source_value_is_found():
    cases = [
        (["a", "b"], ["b", "a"], True),
        (["a", "a"], ["a"], True),
        (["a", "z"], ["a"], False),
        ([], ["a"], True),
        (["a"], [], False),
    ]
    for source, target, expected in cases:
        books = [_single_column("a", source), _single_column("b", target)]
        assert (_run(books, _rule("equals")).status == "passed") is expected


# ══════════════════════════════════════════════════════════════════════════════
# EQUALS — ROWS
# ══════════════════════════════════════════════════════════════════════════════

def test_equals_row_is_positional():
    books = [
        _book("a", ["c1", "c2", "c3"], [[1, 2, 3]]),
        _book("b", ["x", "y"], [["1", "5"]]),
    ]
    d = _run(books, _rule("equals", element_type="row"))

    assert d.match_count == 1
    assert d.matches[0].source_value == 1
    assert [m.reason for m in d.mismatches] == [
        "Values do not match",
        "Column not found in target row",
    ]
    assert d.mismatches[0].target_value == "5"
    assert d.mismatches[1].target_value == "N/A"


def test_equals_row_same_values_in_other_order_fail():
    books = [
        _book("a", ["c1", "c2"], [["x", "y"]]),
        _book("b", ["c1", "c2"], [["y", "x"]]),
    ]
    d = _run(books, _rule("equals", element_type="row"))
    assert d.mismatch_count == 2


# ══════════════════════════════════════════════════════════════════════════════
# CONTAINS
# ══════════════════════════════════════════════════════════════════════════════

def test_contains_matches_substring_case_insensitive():
    books = [_single_column("a", ["app", "zz"]), _single_column("b", ["pear", "Green Apple"])]
    d = _run(books, _rule("contains"))

    assert d.match_count == 1
    assert d.matches[0].target_value == "Green Apple"
    assert d.mismatches[0].source_value == "zz"
    assert d.mismatches[0].reason == "Value not found in target"


def test_contains_none_source_is_a_mismatch():
    books = [_single_column("a", [None]), _single_column("b", ["anything"])]
    d = _run(books, _rule("contains"))
    assert d.status == "failed"


# ══════════════════════════════════════════════════════════════════════════════
# LOOKUP
# ══════════════════════════════════════════════════════════════════════════════

def test_lookup_emits_one_match_per_target_with_same_key():
    books = [_single_column("a", ["a", "b"]), _single_column("b", ["A", " a ", "c"])]
    d = _run(books, _rule("lookup"))

    assert d.match_count == 2
    assert [m.target_value for m in d.matches] == ["A", " a "]
    assert d.mismatch_count == 1
    assert d.mismatches[0].reason == "No matching value found in target"


def test_lookup_pairs_blank_cells():
    books = [_single_column("a", [None]), _single_column("b", [None, "x"])]
    d = _run(books, _rule("lookup"))
    assert d.status == "passed"
    assert d.match_count == 1


# ══════════════════════════════════════════════════════════════════════════════
# VALIDATE
# ══════════════════════════════════════════════════════════════════════════════

def test_validate_two_valid_two_invalid():
    books = [_single_column("a", ["x", "", None, "y"]), _single_column("b", [])]
    d = _run(books, _rule("validate"))

    assert d.match_count == 2
    assert d.mismatch_count == 2
    assert {m.target_value for m in d.matches} == {"Valid"}
    assert {m.target_value for m in d.mismatches} == {"Invalid"}
    assert {m.reason for m in d.mismatches} == {"Value is empty or invalid"}


def test_validate_keeps_zero_false_and_zero_text():
    books = [_single_column("a", [0, False, "0"]), _single_column("b", ["unused"])]
    d = _run(books, _rule("validate"))
    assert d.status == "passed"
    assert d.match_count == 3


# ══════════════════════════════════════════════════════════════════════════════
# UNKNOWN METHOD
# ══════════════════════════════════════════════════════════════════════════════

def test_unknown_method_is_an_error_result():
    books = [_single_column("a", ["x"]), _single_column("b", ["x"])]
    d = _run(books, _rule("fuzzy"))
    assert d.status == "error"
    assert d.error_message == "Unknown comparison method: fuzzy"
    assert d.matches == [] and d.mismatches == []
