"""
sheetcompare/writer.py — Exports ComparisonResults.

export_results() writes a workbook with three sheets:
  Summary     — run totals, then one line per rule result
  Matches     — every match record
  Mismatches  — every mismatch record, with its reason

Two-step results add the step-1 / step-2 value columns to both tables.
None values are never written to cells, so blank cells stay truly empty.
"""
from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, List, Sequence

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.worksheet.worksheet import Worksheet

from .errors import AppError, SAVE_FAILED
from .models import ComparisonMatch, ComparisonResults


BASE_HEADERS = ["Rule", "Step", "Source Spreadsheet", "Source Value", "Target Spreadsheet", "Target Value"]
TWO_STEP_HEADERS = ["Step 1 Source Value", "Step 2 Source Value", "Step 2 Target Value"]


def _write_row(ws: Worksheet, row_num: int, values: Sequence[Any]) -> None:
    for col, value in enumerate(values, start=1):
        if value is None:
            continue
        ws.cell(row=row_num, column=col, value=value)


def _write_header(ws: Worksheet, headers: Sequence[str]) -> None:
    _write_row(ws, 1, headers)
    for cell in ws[1]:
        cell.font = Font(bold=True)


def _cell_value(value: Any) -> Any:
    """openpyxl accepts str/int/float/bool; anything else is written as text."""
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)


def _record_rows(results: ComparisonResults, mismatches: bool, two_step: bool) -> List[List[Any]]:
    rows = []
    for detail in results.details:
        records: Sequence[ComparisonMatch] = detail.mismatches if mismatches else detail.matches
        for rec in records:
            row = [
                detail.rule_id,
                detail.step_number,
                rec.source_spreadsheet,
                _cell_value(rec.source_value),
                rec.target_spreadsheet,
                _cell_value(rec.target_value),
            ]
            if two_step:
                row += [
                    _cell_value(rec.step1_source_value),
                    _cell_value(rec.step2_source_value),
                    _cell_value(rec.step2_target_value),
                ]
            if mismatches:
                row.append(getattr(rec, "reason", ""))
            rows.append(row)
    return rows


def _has_two_step(results: ComparisonResults) -> bool:
    return any(
        rec.two_step
        for d in results.details
        for rec in list(d.matches) + list(d.mismatches)
    )


def build_workbook(results: ComparisonResults) -> Workbook:
    wb = Workbook()

    summary = wb.active
    summary.title = "Summary"
    _write_row(summary, 1, ["Executed At", results.executed_at])
    _write_row(summary, 2, ["Total Rules", results.total_rules])
    _write_row(summary, 3, ["Passed", results.passed_rules])
    _write_row(summary, 4, ["Failed", results.failed_rules])
    _write_row(summary, 6, ["Rule", "Step", "Status", "Matches", "Mismatches", "Error"])
    for cell in summary[6]:
        cell.font = Font(bold=True)
    for offset, d in enumerate(results.details):
        _write_row(summary, 7 + offset, [
            d.rule_id, d.step_number, d.status, d.match_count, d.mismatch_count, d.error_message,
        ])

    two_step = _has_two_step(results)
    headers = BASE_HEADERS + (TWO_STEP_HEADERS if two_step else [])
    for title, mismatches in (("Matches", False), ("Mismatches", True)):
        ws = wb.create_sheet(title=title)
        _write_header(ws, headers + (["Reason"] if mismatches else []))
        for offset, row in enumerate(_record_rows(results, mismatches, two_step)):
            _write_row(ws, 2 + offset, row)

    return wb


def export_results(results: ComparisonResults, path: str) -> str:
    """Write the results workbook. Returns the path written."""
    wb = build_workbook(results)
    try:
        wb.save(path)
    except PermissionError:
        raise AppError(SAVE_FAILED, f"Results file is locked: {path}", {"path": path})
    except Exception as e:
        raise AppError(SAVE_FAILED, str(e), {"path": path})
    return path


def save_results_json(results: ComparisonResults, path: str) -> str:
    """Atomic write of results.to_dict()."""
    p = Path(path)
    try:
        p.parent.mkdir(parents=True, exist_ok=True)
        tmp = p.with_suffix(p.suffix + ".tmp")
        tmp.write_text(json.dumps(results.to_dict(), indent=2, default=str), encoding="utf-8")
        os.replace(str(tmp), str(p))
    except OSError as e:
        raise AppError(SAVE_FAILED, str(e), {"path": path})
    return str(p)
