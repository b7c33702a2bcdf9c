"""
sheetcompare/engine.py — Rule execution coordinator.

Responsible for:
  - Sorting rules by step number
  - Routing a 1-and-2 rule pair to the two-step comparison (multi.py)
  - Running every other rule independently, one RuleResult per rule
  - Turning any per-rule failure into an "error" result without stopping
    the rest of the batch
  - Keeping the explicit intermediate store for rules with store_result
  - Emitting optional progress callbacks

This module never reads files and never mutates the spreadsheets or rules
it is given. Each call returns a freshly built ComparisonResults.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, MutableMapping, Optional, Sequence

from .errors import AppError
from .extract import check_element_type, get_data_with_indices, spreadsheet_name
from .methods import get_comparator
from .models import ComparisonResults, ComparisonRule, ParsedSpreadsheet, RuleResult, utc_timestamp
from .multi import execute_multi_mode, is_multi_mode


logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, Any], None]


def execute_rule(
    spreadsheets: Sequence[ParsedSpreadsheet],
    rule: ComparisonRule,
    store: Optional[MutableMapping[str, RuleResult]] = None,
) -> RuleResult:
    """
    Run one rule's comparison method. Raises AppError when a reference does
    not resolve or the method is unknown; execute_rules catches it.
    """
    check_element_type(rule.element_type, rule.source, "source")
    check_element_type(rule.element_type, rule.target, "target")

    source = get_data_with_indices(spreadsheets, rule.source)
    target = get_data_with_indices(spreadsheets, rule.target)
    compare = get_comparator(rule.method)

    return compare(
        source,
        target,
        rule,
        source_name=spreadsheet_name(spreadsheets, rule.source.spreadsheet_id),
        target_name=spreadsheet_name(spreadsheets, rule.target.spreadsheet_id),
        store=store if store is not None else {},
    )


def execute_rules(
    spreadsheets: Sequence[ParsedSpreadsheet],
    rules: Iterable[ComparisonRule],
    on_progress: Optional[ProgressCallback] = None,
    store: Optional[MutableMapping[str, RuleResult]] = None,
) -> ComparisonResults:
    """
    Execute all rules in step order and tally the outcome.

    Exactly two rules numbered 1 and 2 are a two-step conditional comparison
    and produce a single combined detail entry (total_rules stays 2).

    store: optional mapping that receives rule_id -> RuleResult for every
           rule with store_result=True. Pass one in to read those results
           back; otherwise a private mapping is used for this call only.

    Never raises for rule-level problems: they become "error" results, and
    errors count as failed.
    """
    sorted_rules = sorted(rules, key=lambda r: r.step_number)
    if store is None:
        store = {}

    def _emit(event: str, payload: Any) -> None:
        if on_progress is not None:
            try:
                on_progress(event, payload)
            except Exception:
                logger.debug("progress callback raised on %r", event, exc_info=True)

    if is_multi_mode(sorted_rules):
        rule1, rule2 = sorted_rules
        logger.debug("running rules %s and %s as a two-step comparison", rule1.id, rule2.id)
        _emit("start", {"rule_id": rule1.id, "step_number": 1})
        results = execute_multi_mode(spreadsheets, rule1, rule2)
        combined = results.details[0]
        _emit("error" if combined.status == "error" else "result", combined)
        _emit("done", results)
        return results

    details: List[RuleResult] = []

    for rule in sorted_rules:
        _emit("start", {"rule_id": rule.id, "step_number": rule.step_number})

        try:
            result = execute_rule(spreadsheets, rule, store)
        except AppError as e:
            logger.warning("rule %s failed: %s", rule.id, e)
            result = RuleResult.error(rule.id, rule.step_number, e.message)
        except Exception as e:
            logger.exception("rule %s raised unexpectedly", rule.id)
            result = RuleResult.error(rule.id, rule.step_number, str(e))

        if rule.store_result:
            store[rule.id] = result

        details.append(result)
        _emit("error" if result.status == "error" else "result", result)

    results = ComparisonResults(
        executed_at=utc_timestamp(),
        total_rules=len(sorted_rules),
        passed_rules=sum(1 for d in details if d.status == "passed"),
        failed_rules=sum(1 for d in details if d.status in ("failed", "error")),
        details=details,
    )
    _emit("done", results)
    return results


class ComparisonEngine:
    """
    Holds a spreadsheet collection so several rule sets can be run against it.
    Equivalent to calling execute_rules(spreadsheets, rules).
    """

    def __init__(self, spreadsheets: Sequence[ParsedSpreadsheet]) -> None:
        self.spreadsheets = list(spreadsheets)
        self.store: Dict[str, RuleResult] = {}

    def execute_rules(
        self,
        rules: Iterable[ComparisonRule],
        on_progress: Optional[ProgressCallback] = None,
    ) -> ComparisonResults:
        self.store = {}
        return execute_rules(self.spreadsheets, rules, on_progress=on_progress, store=self.store)
