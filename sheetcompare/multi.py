"""
sheetcompare/multi.py — Two-step conditional comparison ("Multi mode").

Rule 1 joins source rows to target rows by value. Rule 2 is then checked
only for joined pairs, reading the rule-2 source cell at the rule-1 source
row and the rule-2 target cell at the matched rule-1 target row.

  no rule-1 match         -> mismatch, step-2 values None
  rule-1 match, equal     -> match carrying both steps
  rule-1 match, not equal -> mismatch carrying both steps

The pair collapses into one RuleResult. Any failure yields a single "error"
result with no partial matches.
"""
from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from .errors import AppError, ELEMENT_TYPE_MISMATCH
from .extract import (
    check_element_type, get_data_with_indices, get_value_at_row_index, spreadsheet_name,
)
from .models import (
    ComparisonMatch, ComparisonMismatch, ComparisonResults, ComparisonRule,
    IndexedValue, ParsedSpreadsheet, RuleResult, utc_timestamp,
)
from .values import values_equal


logger = logging.getLogger(__name__)

COMBINED_RULE_ID = "multi-mode-combined"

REASON_STEP1_NO_MATCH = "Found no matching value for comparison 1"
REASON_STEP2_FAILED = "Comparison 1 matched, but comparison 2 failed"


def is_multi_mode(sorted_rules: Sequence[ComparisonRule]) -> bool:
    """Exactly two rules numbered 1 and 2 run as one conditional comparison."""
    return (
        len(sorted_rules) == 2
        and sorted_rules[0].step_number == 1
        and sorted_rules[1].step_number == 2
    )


def _check_pairing(rule1: ComparisonRule, rule2: ComparisonRule) -> None:
    if rule1.element_type != rule2.element_type:
        raise AppError(
            ELEMENT_TYPE_MISMATCH,
            f"Comparison 1 uses {rule1.element_type}s but comparison 2 uses {rule2.element_type}s",
        )
    for rule in (rule1, rule2):
        check_element_type(rule.element_type, rule.source, "source")
        check_element_type(rule.element_type, rule.target, "target")


def compare_two_step(
    spreadsheets: Sequence[ParsedSpreadsheet],
    rule1: ComparisonRule,
    rule2: ComparisonRule,
) -> RuleResult:
    """Build the combined result. Raises on any resolution failure."""
    _check_pairing(rule1, rule2)

    source1 = get_data_with_indices(spreadsheets, rule1.source)
    target1 = get_data_with_indices(spreadsheets, rule1.target)
    source_name = spreadsheet_name(spreadsheets, rule1.source.spreadsheet_id)
    target_name = spreadsheet_name(spreadsheets, rule1.target.spreadsheet_id)

    matches: List[ComparisonMatch] = []
    mismatches: List[ComparisonMismatch] = []

    for item in source1:
        joined: Optional[IndexedValue] = next(
            (t for t in target1 if values_equal(item.value, t.value)), None
        )

        if joined is None:
            mismatches.append(ComparisonMismatch(
                source_value=item.value,
                target_value="N/A",
                source_spreadsheet=source_name,
                target_spreadsheet=target_name,
                step1_source_value=item.value,
                step2_source_value=None,
                step2_target_value=None,
                two_step=True,
                reason=REASON_STEP1_NO_MATCH,
            ))
            continue

        step2_source = get_value_at_row_index(spreadsheets, rule2.source, item.row_index)
        step2_target = get_value_at_row_index(spreadsheets, rule2.target, joined.row_index)

        if values_equal(step2_source, step2_target):
            matches.append(ComparisonMatch(
                source_value=item.value,
                target_value=joined.value,
                source_spreadsheet=source_name,
                target_spreadsheet=target_name,
                step1_source_value=item.value,
                step2_source_value=step2_source,
                step2_target_value=step2_target,
                two_step=True,
            ))
        else:
            mismatches.append(ComparisonMismatch(
                source_value=item.value,
                target_value=joined.value,
                source_spreadsheet=source_name,
                target_spreadsheet=target_name,
                step1_source_value=item.value,
                step2_source_value=step2_source,
                step2_target_value=step2_target,
                two_step=True,
                reason=REASON_STEP2_FAILED,
            ))

    return RuleResult.from_records(COMBINED_RULE_ID, 1, matches, mismatches)


def execute_multi_mode(
    spreadsheets: Sequence[ParsedSpreadsheet],
    rule1: ComparisonRule,
    rule2: ComparisonRule,
    executed_at: Optional[str] = None,
) -> ComparisonResults:
    try:
        result = compare_two_step(spreadsheets, rule1, rule2)
    except AppError as e:
        logger.warning("two-step comparison %s/%s failed: %s", rule1.id, rule2.id, e)
        result = RuleResult.error(COMBINED_RULE_ID, 1, e.message)
    except Exception as e:
        logger.exception("two-step comparison %s/%s raised unexpectedly", rule1.id, rule2.id)
        result = RuleResult.error(COMBINED_RULE_ID, 1, str(e))

    return ComparisonResults(
        executed_at=executed_at or utc_timestamp(),
        total_rules=2,
        passed_rules=1 if result.status == "passed" else 0,
        failed_rules=0 if result.status == "passed" else 1,
        details=[result],
    )

