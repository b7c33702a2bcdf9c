"""Tests for sheetcompare.project — project JSON round trip, validation, rule builders."""
from __future__ import annotations

import os
from tempfile import TemporaryDirectory

import pytest
from openpyxl import Workbook

from sheetcompare.engine import execute_rules
from sheetcompare.errors import AppError, BAD_PROJECT, INVALID_RULE
from sheetcompare.models import ElementRef
from sheetcompare.project import (
    ComparisonProject,
    build_rules_from_selection,
    build_two_step_rules,
    find_rule,
)


def _rule_dict(**overrides):
    data = {
        "id": "rule-1",
        "stepNumber": 1,
        "elementType": "column",
        "method": "equals",
        "source": {"spreadsheetId": "left", "sheetName": "Sheet1", "elementType": "column", "elementIdentifier": 0},
        "target": {"spreadsheetId": "right", "sheetName": "Sheet1", "elementType": "column", "elementIdentifier": 0},
    }
    data.update(overrides)
    return data


def _make_xlsx(path, values):
    wb = Workbook()
    ws = wb.active
    ws.title = "Sheet1"
    ws["A1"] = "Code"
    for i, v in enumerate(values, start=2):
        ws.cell(row=i, column=1, value=v)
    wb.save(path)


def test_from_dict_reads_camel_case_rules():
    project = ComparisonProject.from_dict({
        "sources": [{"id": "left", "path": "l.xlsx"}],
        "rules": [_rule_dict(storeResult=True)],
    })
    rule = project.rules[0]
    assert rule.step_number == 1
    assert rule.source.spreadsheet_id == "left"
    assert rule.target.element_identifier == 0
    assert rule.store_result is True


def test_save_and_load_json_roundtrip():
    project = ComparisonProject.from_dict({
        "sources": [{"id": "left", "path": "l.xlsx"}, {"id": "right", "path": "r.csv"}],
        "rules": [_rule_dict()],
    })
    with TemporaryDirectory() as td:
        path = os.path.join(td, "project.json")
        project.save_json(path)
        loaded = ComparisonProject.load_json(path)
    assert loaded == project


def test_load_json_rejects_garbage():
    with TemporaryDirectory() as td:
        path = os.path.join(td, "project.json")
        with open(path, "w", encoding="utf-8") as f:
            f.write("{not json")
        with pytest.raises(AppError) as ei:
            ComparisonProject.load_json(path)
    assert ei.value.code == BAD_PROJECT


def test_rule_missing_source_is_bad_project():
    data = _rule_dict()
    del data["source"]
    with pytest.raises(AppError) as ei:
        ComparisonProject.from_dict({"rules": [data]})
    assert ei.value.code == BAD_PROJECT


def test_rule_with_bad_element_type_is_invalid():
    with pytest.raises(AppError) as ei:
        ComparisonProject.from_dict({"rules": [_rule_dict(elementType="cell")]})
    assert ei.value.code == INVALID_RULE


def test_rule_without_identifier_is_invalid():
    data = _rule_dict()
    data["target"]["elementIdentifier"] = ""
    with pytest.raises(AppError) as ei:
        ComparisonProject.from_dict({"rules": [data]})
    assert ei.value.code == INVALID_RULE


def test_unknown_method_is_left_for_the_engine():
    project = ComparisonProject.from_dict({"rules": [_rule_dict(method="fuzzy")]})
    assert project.rules[0].method == "fuzzy"


def test_load_spreadsheets_keeps_project_ids_and_runs():
    with TemporaryDirectory() as td:
        left = os.path.join(td, "left.xlsx")
        right = os.path.join(td, "right.xlsx")
        _make_xlsx(left, ["A", "B"])
        _make_xlsx(right, ["A", "C"])
        project = ComparisonProject.from_dict({
            "sources": [{"id": "left", "path": left}, {"id": "right", "path": right}],
            "rules": [_rule_dict()],
        })
        books = project.load_spreadsheets()

    assert [b.id for b in books] == ["left", "right"]
    d = execute_rules(books, project.rules).details[0]
    assert d.match_count == 1
    assert d.mismatches[0].source_value == "B"
    assert d.matches[0].source_spreadsheet == "left.xlsx"


def test_selection_rules_never_pair_into_two_step():
    source = ElementRef("left", "Sheet1", "column", 0)
    targets = [ElementRef("right", "Sheet1", "column", 0), ElementRef("other", "Sheet1", "column", 2)]
    rules = build_rules_from_selection(source, targets, method="lookup")

    assert [r.id for r in rules] == ["single-1", "single-2"]
    assert {r.step_number for r in rules} == {1}
    assert {r.method for r in rules} == {"lookup"}


def test_two_step_rules_are_numbered_one_and_two():
    first = (ElementRef("l", "S", "column", 0), ElementRef("r", "S", "column", 0))
    second = (ElementRef("l", "S", "column", 1), ElementRef("r", "S", "column", 3))
    rules = build_two_step_rules(first, second)
    assert [r.step_number for r in rules] == [1, 2]
    assert rules[1].target.element_identifier == 3
    assert find_rule(rules, "multi-2") is rules[1]
    assert find_rule(rules, "nope") is None
