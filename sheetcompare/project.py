from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from .errors import AppError, BAD_PROJECT, INVALID_RULE
from .io import load_spreadsheet
from .models import ComparisonRule, ElementRef, ParsedSpreadsheet


METHODS = ("equals", "contains", "lookup", "validate")
ELEMENT_TYPES = ("column", "row")


@dataclass
class SourceFile:
    id: str
    path: str


@dataclass
class ComparisonProject:
    """
    A saved comparison: which files to load (under which ids) and which rules to run.
    """
    sources: List[SourceFile] = field(default_factory=list)
    rules: List[ComparisonRule] = field(default_factory=list)

    # ---------- Serialization ----------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sources": [{"id": s.id, "path": s.path} for s in self.sources],
            "rules": [r.to_dict() for r in self.rules],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ComparisonProject":
        try:
            sources = [SourceFile(id=s["id"], path=s["path"]) for s in data.get("sources", [])]
            rules = [ComparisonRule.from_dict(r) for r in data.get("rules", [])]
        except (KeyError, TypeError, ValueError) as e:
            raise AppError(BAD_PROJECT, f"Malformed project data: {e}")

        for rule in rules:
            validate_rule(rule)
        return cls(sources=sources, rules=rules)

    # ---------- File IO ----------

    def save_json(self, path: str) -> None:
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load_json(cls, path: str) -> "ComparisonProject":
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise AppError(BAD_PROJECT, f"Could not read project {path}: {e}", {"path": path})
        if not isinstance(data, dict):
            raise AppError(BAD_PROJECT, "Project file must contain a JSON object", {"path": path})
        return cls.from_dict(data)

    # ---------- Engine inputs ----------

    def load_spreadsheets(self) -> List[ParsedSpreadsheet]:
        """Parse every source file, keeping the ids the rules refer to."""
        return [load_spreadsheet(s.path, spreadsheet_id=s.id) for s in self.sources]


def validate_rule(rule: ComparisonRule) -> None:
    """
    Reject rules a form would never produce. Unknown methods are left for the
    engine, which reports them per rule.
    """
    if rule.element_type not in ELEMENT_TYPES:
        raise AppError(INVALID_RULE, f"Bad element type: {rule.element_type!r}", {"rule_id": rule.id})
    if rule.step_number < 1:
        raise AppError(INVALID_RULE, f"Step numbers start at 1 (got {rule.step_number})", {"rule_id": rule.id})
    for role, ref in (("source", rule.source), ("target", rule.target)):
        if not ref.spreadsheet_id or not ref.sheet_name or ref.element_identifier in (None, ""):
            raise AppError(
                INVALID_RULE,
                f"Rule {rule.id} {role} needs a spreadsheet, sheet and {rule.element_type}",
                {"rule_id": rule.id, "role": role},
            )


def build_rules_from_selection(
    source: ElementRef,
    targets: Sequence[ElementRef],
    method: str = "equals",
    id_prefix: str = "single",
) -> List[ComparisonRule]:
    """
    One rule per target, element type taken from the source. Every rule is
    step 1 so that two targets never turn into a two-step comparison.
    """
    rules = []
    for n, target in enumerate(targets, start=1):
        rule = ComparisonRule(
            id=f"{id_prefix}-{n}",
            step_number=1,
            element_type=source.element_type,
            method=method,
            source=source,
            target=target,
        )
        validate_rule(rule)
        rules.append(rule)
    return rules


def find_rule(rules: Sequence[ComparisonRule], rule_id: str) -> Optional[ComparisonRule]:
    for r in rules:
        if r.id == rule_id:
            return r
    return None


def build_two_step_rules(
    first: Sequence[ElementRef],
    second: Sequence[ElementRef],
    id_prefix: str = "multi",
) -> List[ComparisonRule]:
    """
    The (source, target) pair of each comparison becomes steps 1 and 2 of a
    conditional comparison: the second pair is only checked on rows joined by the first.
    """
    rules = []
    for step, (source, target) in enumerate((first, second), start=1):
        rule = ComparisonRule(
            id=f"{id_prefix}-{step}",
            step_number=step,
            element_type=source.element_type,
            method="equals",
            source=source,
            target=target,
        )
        validate_rule(rule)
        rules.append(rule)
    return rules
