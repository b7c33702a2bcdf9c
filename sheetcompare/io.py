"""
sheetcompare/io.py — Spreadsheet normalizer.

Turns an .xlsx/.xlsm (openpyxl) or .csv file into a ParsedSpreadsheet:

  - every worksheet becomes a Sheet, in workbook order
  - cells are rendered as display text; blank cells are None
  - completely blank rows are dropped
  - headers come from the first row ("Column N" when blank)
  - merged ranges starting on row 1 mark the extra header rows to skip
  - columns are listed only when some cell in them has content
  - row_count is the larger of the physical extent and the parsed rows

The comparison engine never calls into this module; it only consumes the
ParsedSpreadsheet shape.
"""
from __future__ import annotations

import csv
import logging
import os
import random
import string
import time
from datetime import date, datetime, time as dt_time
from typing import Any, Iterable, List, Optional, Tuple

from openpyxl import load_workbook

from .errors import AppError, SOURCE_READ_FAILED, UNSUPPORTED_FORMAT
from .models import ColumnDefinition, ParsedSpreadsheet, RowData, Sheet, SheetMetadata, utc_timestamp
from .values import number_text


logger = logging.getLogger(__name__)

WORKBOOK_EXTENSIONS = (".xlsx", ".xlsm")
CSV_EXTENSIONS = (".csv",)

# (sheet name, raw rows, merged ranges as (min_row, max_row) 1-based, physical row count)
RawSheet = Tuple[str, List[List[Any]], List[Tuple[int, int]], int]


def is_occupied(value: Any) -> bool:
    """Row occupancy: anything but None and ""."""
    if value is None:
        return False
    if isinstance(value, str) and value == "":
        return False
    return True


def has_content(value: Any) -> bool:
    """Column occupancy: like is_occupied, but whitespace-only text is blank."""
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    return True


def cell_text(value: Any) -> Optional[str]:
    """
    Render a cell the way a spreadsheet displays it.
    Floats use number_text() (100.0 -> "100", 5e-05 -> "0.00005"), booleans
    are TRUE/FALSE, dates drop a zero time.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float):
        return number_text(value)
    if isinstance(value, datetime):
        if value.time() == dt_time(0, 0):
            return value.date().isoformat()
        return value.isoformat(sep=" ")
    if isinstance(value, date):
        return value.isoformat()
    text = str(value)
    return text if text != "" else None


def normalize_table(rows: List[List[Any]], width: int = 0) -> List[List[Any]]:
    """
    Pad ragged rows to the used width (or to `width`, when larger).
    """
    if not rows:
        return []

    used_width = max(width, max(len(r) for r in rows))
    return [list(r) + [None] * (used_width - len(r)) for r in rows]


def header_key(header: Any, col_index: int) -> str:
    if header is None:
        return f"Column {col_index + 1}"
    trimmed = str(header).strip()
    return trimmed if trimmed else f"Column {col_index + 1}"


def detect_header_row_count(merged_rows: Iterable[Tuple[int, int]]) -> int:
    """
    Number of leading rows covered by merged ranges that start on row 1.
    0 when no merge starts there.
    """
    deepest = 0
    for min_row, max_row in merged_rows:
        if min_row == 1:
            deepest = max(deepest, max_row)
    return deepest


def parse_table(
    name: str,
    raw_rows: List[List[Any]],
    physical_rows: int = 0,
    header_row_count: int = 0,
) -> Sheet:
    """
    Build a Sheet from a raw table.

    The first non-blank row supplies the headers and is never a data row.
    header_row_count (physical rows from the top, see detect_header_row_count)
    can push the data start further down. Blank rows never become data rows.
    """
    table = normalize_table(raw_rows)
    occupied = [i for i, r in enumerate(table) if any(is_occupied(v) for v in r)]

    if not occupied:
        return Sheet(
            name=name,
            metadata=SheetMetadata(row_count=physical_rows, column_count=0, header_row_count=header_row_count),
        )

    header_pos = occupied[0]
    headers = table[header_pos]
    data_start = max(header_pos + 1, header_row_count)

    columns = [
        ColumnDefinition(index=c, header=header_key(headers[c], c))
        for c in range(len(headers))
        if any(has_content(table[i][c]) for i in occupied)
    ]

    keys = [header_key(h, c) for c, h in enumerate(headers)]
    rows: List[RowData] = []
    for i in occupied:
        if i < data_start:
            continue
        rows.append(RowData(index=len(rows), data=dict(zip(keys, table[i]))))

    return Sheet(
        name=name,
        columns=columns,
        rows=rows,
        metadata=SheetMetadata(
            row_count=max(physical_rows, len(occupied)),
            column_count=len(columns),
            header_row_count=header_row_count,
        ),
    )


def load_csv(path: str) -> List[RawSheet]:
    with open(path, newline="", encoding="utf-8-sig") as f:
        reader = csv.reader(f)
        rows = [[cell_text(v) for v in row] for row in reader]

    name = os.path.splitext(os.path.basename(path))[0] or "Sheet1"
    return [(name, normalize_table(rows), [], len(rows))]


def load_xlsx(path: str) -> List[RawSheet]:
    wb = load_workbook(path, data_only=True)
    sheets: List[RawSheet] = []
    try:
        for ws in wb.worksheets:
            merged = [(r.min_row, r.max_row) for r in ws.merged_cells.ranges]
            widest = max([ws.max_column] + [r.max_col for r in ws.merged_cells.ranges])
            rows = [[cell_text(v) for v in row] for row in ws.iter_rows(values_only=True)]
            physical = max([ws.max_row] + [max_row for _, max_row in merged])
            sheets.append((ws.title, normalize_table(rows, widest), merged, physical))
    finally:
        wb.close()
    return sheets


def generate_id() -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"sheet-{int(time.time() * 1000)}-{suffix}"


def load_spreadsheet(
    path: str,
    spreadsheet_id: Optional[str] = None,
    file_name: Optional[str] = None,
) -> ParsedSpreadsheet:
    """
    Parse a spreadsheet file into the normalized shape. Raises AppError on failure.
    """
    file_name = file_name or os.path.basename(path)
    ext = os.path.splitext(path)[1].lower()

    if ext not in WORKBOOK_EXTENSIONS + CSV_EXTENSIONS:
        raise AppError(
            UNSUPPORTED_FORMAT,
            f"Cannot read {ext or 'extensionless'} files: {file_name}",
            {"path": path},
        )

    try:
        raw_sheets = load_csv(path) if ext in CSV_EXTENSIONS else load_xlsx(path)
        file_size = os.path.getsize(path)
    except PermissionError as e:
        raise AppError(SOURCE_READ_FAILED, f"Failed to parse file {file_name}: permission denied ({e})", {"path": path})
    except FileNotFoundError:
        raise AppError(SOURCE_READ_FAILED, f"Failed to parse file {file_name}: no such file", {"path": path})
    except Exception as e:
        raise AppError(SOURCE_READ_FAILED, f"Failed to parse file {file_name}: {e}", {"path": path})

    sheets = [
        parse_table(name, rows, physical, detect_header_row_count(merged))
        for name, rows, merged, physical in raw_sheets
    ]
    logger.info("loaded %s: %d sheet(s)", file_name, len(sheets))

    return ParsedSpreadsheet(
        id=spreadsheet_id or generate_id(),
        file_name=file_name,
        sheets=sheets,
        file_size=file_size,
        uploaded_at=utc_timestamp(),
    )
