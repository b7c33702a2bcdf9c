"""
sheetcompare/cli.py — Run a saved comparison project from the command line.

    sheetcompare project.json [--export results.xlsx] [--json results.json]

Exit codes: 0 every rule passed, 1 a rule failed or errored, 2 the project
or one of its files could not be used.
"""
from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional, TextIO

from .config import resolve_export_path, resolve_log_level
from .engine import execute_rules
from .errors import AppError, friendly_message
from .models import ComparisonResults
from .project import ComparisonProject
from .writer import export_results, save_results_json


EXIT_PASSED = 0
EXIT_FAILED = 1
EXIT_PROJECT_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sheetcompare",
        description="Check whether values in one spreadsheet match values in another.",
        epilog="Sources may be .xlsx, .xlsm or .csv files. Legacy .xls workbooks are not read; "
               "save them as .xlsx first.",
    )
    parser.add_argument("project", help="comparison project JSON (sources + rules)")
    parser.add_argument("--export", metavar="XLSX", help="write a results workbook")
    parser.add_argument("--json", metavar="JSON", dest="json_path", help="write results as JSON")
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING (default) or ERROR")
    return parser


def format_summary(results: ComparisonResults) -> List[str]:
    lines = [
        f"Executed {results.total_rules} rule(s). "
        f"{results.passed_rules} passed, {results.failed_rules} failed."
    ]
    for d in results.details:
        mark = "✓" if d.status == "passed" else "✗"
        line = f"  {mark} Step {d.step_number} [{d.rule_id}] {d.status}: {d.match_count} match(es), {d.mismatch_count} mismatch(es)"
        if d.error_message:
            line += f": {d.error_message}"
        lines.append(line)
        for m in d.mismatches[:5]:
            lines.append(f"      {m.source_value!r}: {m.reason}")
        if d.mismatch_count > 5:
            lines.append(f"      ... {d.mismatch_count - 5} more")
    return lines


def main(argv: Optional[List[str]] = None, out: TextIO = sys.stdout) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=resolve_log_level(args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        project = ComparisonProject.load_json(args.project)
        spreadsheets = project.load_spreadsheets()
    except AppError as e:
        print(friendly_message(e), file=out)
        return EXIT_PROJECT_ERROR

    results = execute_rules(spreadsheets, project.rules)
    for line in format_summary(results):
        print(line, file=out)

    try:
        if args.export:
            print(f"Results workbook: {export_results(results, resolve_export_path(args.export))}", file=out)
        if args.json_path:
            print(f"Results JSON: {save_results_json(results, resolve_export_path(args.json_path))}", file=out)
    except AppError as e:
        print(friendly_message(e), file=out)
        return EXIT_PROJECT_ERROR

    return EXIT_PASSED if results.ok else EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())
