"""
sheetcompare/methods.py — Single-rule comparison methods.

Method behaviour:
  equals    — column rules: value-based, order-independent. Each source value
              is searched for anywhere in the target column.
              row rules: positional. The i-th source cell is compared with the
              i-th target cell.
  contains  — each source value must appear as a substring of some target value.
  lookup    — target values are grouped by normalized key; a source value
              produces one match per target sharing its key.
  validate  — target is ignored; a source value passes unless it is None or "".

All text comparison goes through values.to_comparable_string().
Status is "passed" when there are no mismatches, otherwise "failed".
"""
from __future__ import annotations

from typing import Any, Callable, Dict, List, Mapping

from .errors import AppError, UNKNOWN_METHOD
from .models import (
    ComparisonMatch, ComparisonMismatch, ComparisonRule, IndexedValue, RuleResult,
)
from .values import values_equal, value_contains, is_valid_value, lookup_key


NOT_AVAILABLE = "N/A"

REASON_NOT_IN_TARGET_COLUMN = "Value not found in target column"
REASON_NOT_IN_TARGET_ROW = "Column not found in target row"
REASON_VALUES_DIFFER = "Values do not match"
REASON_NOT_CONTAINED = "Value not found in target"
REASON_NO_LOOKUP_MATCH = "No matching value found in target"
REASON_INVALID = "Value is empty or invalid"

Store = Mapping[str, RuleResult]
Comparator = Callable[..., RuleResult]


class _Collector:
    """Accumulates match/mismatch records for one rule."""

    def __init__(self, source_name: str, target_name: str) -> None:
        self.source_name = source_name
        self.target_name = target_name
        self.matches: List[ComparisonMatch] = []
        self.mismatches: List[ComparisonMismatch] = []

    def match(self, source_value: Any, target_value: Any) -> None:
        self.matches.append(ComparisonMatch(
            source_value=source_value,
            target_value=target_value,
            source_spreadsheet=self.source_name,
            target_spreadsheet=self.target_name,
        ))

    def mismatch(self, source_value: Any, target_value: Any, reason: str) -> None:
        self.mismatches.append(ComparisonMismatch(
            source_value=source_value,
            target_value=target_value,
            source_spreadsheet=self.source_name,
            target_spreadsheet=self.target_name,
            reason=reason,
        ))

    def result(self, rule: ComparisonRule) -> RuleResult:
        return RuleResult.from_records(rule.id, rule.step_number, self.matches, self.mismatches)


def compare_equals(
    source: List[IndexedValue],
    target: List[IndexedValue],
    rule: ComparisonRule,
    source_name: str,
    target_name: str,
    store: Store,
) -> RuleResult:
    out = _Collector(source_name, target_name)

    if rule.element_type == "column":
        for item in source:
            found = next((t for t in target if values_equal(item.value, t.value)), None)
            if found is not None:
                out.match(item.value, found.value)
            else:
                out.mismatch(item.value, NOT_AVAILABLE, REASON_NOT_IN_TARGET_COLUMN)
        return out.result(rule)

    for i, item in enumerate(source):
        if i >= len(target):
            out.mismatch(item.value, NOT_AVAILABLE, REASON_NOT_IN_TARGET_ROW)
            continue
        other = target[i].value
        if values_equal(item.value, other):
            out.match(item.value, other)
        else:
            out.mismatch(item.value, other, REASON_VALUES_DIFFER)
    return out.result(rule)


def compare_contains(
    source: List[IndexedValue],
    target: List[IndexedValue],
    rule: ComparisonRule,
    source_name: str,
    target_name: str,
    store: Store,
) -> RuleResult:
    out = _Collector(source_name, target_name)
    for item in source:
        found = next((t for t in target if value_contains(t.value, item.value)), None)
        if found is not None:
            out.match(item.value, found.value)
        else:
            out.mismatch(item.value, NOT_AVAILABLE, REASON_NOT_CONTAINED)
    return out.result(rule)


def compare_lookup(
    source: List[IndexedValue],
    target: List[IndexedValue],
    rule: ComparisonRule,
    source_name: str,
    target_name: str,
    store: Store,
) -> RuleResult:
    out = _Collector(source_name, target_name)

    by_key: Dict[str, List[IndexedValue]] = {}
    for t in target:
        by_key.setdefault(lookup_key(t.value), []).append(t)

    for item in source:
        hits = by_key.get(lookup_key(item.value))
        if hits:
            for t in hits:
                out.match(item.value, t.value)
        else:
            out.mismatch(item.value, NOT_AVAILABLE, REASON_NO_LOOKUP_MATCH)
    return out.result(rule)


def compare_validate(
    source: List[IndexedValue],
    target: List[IndexedValue],
    rule: ComparisonRule,
    source_name: str,
    target_name: str,
    store: Store,
) -> RuleResult:
    out = _Collector(source_name, target_name)
    for item in source:
        if is_valid_value(item.value):
            out.match(item.value, "Valid")
        else:
            out.mismatch(item.value, "Invalid", REASON_INVALID)
    return out.result(rule)


METHODS: Dict[str, Comparator] = {
    "equals": compare_equals,
    "contains": compare_contains,
    "lookup": compare_lookup,
    "validate": compare_validate,
}


def get_comparator(method: str) -> Comparator:
    try:
        return METHODS[method]
    except KeyError:
        raise AppError(UNKNOWN_METHOD, f"Unknown comparison method: {method}", {"method": method})
