"""
sheetcompare/extract.py — Resolve a rule's source/target reference into values.

Lookup order: spreadsheet by id -> sheet by name -> column or row.
Each step raises AppError with a *_NOT_FOUND code when it does not resolve.

Column references yield one IndexedValue per data row, in row-list order,
with row_index = position in sheet.rows. Row references yield one
IndexedValue per cell of that row, with row_index = position of the cell
inside the row mapping. has_header never skips a row: the normalizer has
already removed structural header rows.

Nothing here mutates the spreadsheets it reads.
"""
from __future__ import annotations

import logging
from typing import Any, List, Optional, Sequence, Union

from .errors import (
    AppError,
    SPREADSHEET_NOT_FOUND, SHEET_NOT_FOUND, COLUMN_NOT_FOUND, ROW_NOT_FOUND,
    ELEMENT_TYPE_MISMATCH,
)
from .models import ElementRef, IndexedValue, ParsedSpreadsheet, RowData, Sheet


logger = logging.getLogger(__name__)


def find_spreadsheet(
    spreadsheets: Sequence[ParsedSpreadsheet],
    spreadsheet_id: str,
) -> Optional[ParsedSpreadsheet]:
    for s in spreadsheets:
        if s.id == spreadsheet_id:
            return s
    return None


def spreadsheet_name(spreadsheets: Sequence[ParsedSpreadsheet], spreadsheet_id: str) -> str:
    """Display name for results tables; 'Unknown' when the id is not loaded."""
    s = find_spreadsheet(spreadsheets, spreadsheet_id)
    if s is None or not s.file_name:
        return "Unknown"
    return s.file_name


def get_sheet(
    spreadsheets: Sequence[ParsedSpreadsheet],
    spreadsheet_id: str,
    sheet_name: str,
) -> Sheet:
    spreadsheet = find_spreadsheet(spreadsheets, spreadsheet_id)
    if spreadsheet is None:
        raise AppError(
            SPREADSHEET_NOT_FOUND,
            f"Spreadsheet not found: {spreadsheet_id}",
            {"spreadsheet_id": spreadsheet_id},
        )
    sheet = spreadsheet.get_sheet(sheet_name)
    if sheet is None:
        raise AppError(
            SHEET_NOT_FOUND,
            f"Sheet not found: {sheet_name}",
            {"spreadsheet_id": spreadsheet_id, "sheet_name": sheet_name},
        )
    return sheet


def check_element_type(expected: str, ref: ElementRef, role: str) -> None:
    """A reference must select the same kind of element as its rule."""
    if ref.element_type != expected:
        raise AppError(
            ELEMENT_TYPE_MISMATCH,
            f"Rule compares {expected}s but {role} selects a {ref.element_type}",
            {"role": role, "expected": expected, "actual": ref.element_type},
        )


def _as_index(identifier: Union[int, str]) -> Optional[int]:
    if isinstance(identifier, bool):
        return None
    if isinstance(identifier, int):
        return identifier
    s = str(identifier).strip()
    if s.lstrip("-").isdigit():
        return int(s)
    return None


def resolve_column_header(sheet: Sheet, identifier: Union[int, str]) -> str:
    """
    Column identifiers are the zero-based physical column index.
    Any string is also accepted as a header name; a digit string tries the
    index first, then the header text ("2024").
    """
    idx = _as_index(identifier)
    if idx is not None:
        for col in sheet.columns:
            if col.index == idx:
                return col.header
    if isinstance(identifier, str):
        for col in sheet.columns:
            if col.header == identifier:
                return col.header
    raise AppError(
        COLUMN_NOT_FOUND,
        f"Column not found: {identifier}",
        {"sheet_name": sheet.name, "identifier": identifier},
    )


def find_row(sheet: Sheet, identifier: Union[int, str]) -> Optional[RowData]:
    idx = _as_index(identifier)
    if idx is None:
        return None
    for row in sheet.rows:
        if row.index == idx:
            return row
    return None


def _require_row(sheet: Sheet, identifier: Union[int, str]) -> RowData:
    row = find_row(sheet, identifier)
    if row is None:
        raise AppError(
            ROW_NOT_FOUND,
            f"Row not found: {identifier}",
            {"sheet_name": sheet.name, "identifier": identifier},
        )
    return row


def get_data_with_indices(
    spreadsheets: Sequence[ParsedSpreadsheet],
    ref: ElementRef,
) -> List[IndexedValue]:
    sheet = get_sheet(spreadsheets, ref.spreadsheet_id, ref.sheet_name)

    if ref.element_type == "column":
        header = resolve_column_header(sheet, ref.element_identifier)
        values = [IndexedValue(row.data.get(header), i) for i, row in enumerate(sheet.rows)]
    else:
        row = _require_row(sheet, ref.element_identifier)
        values = [IndexedValue(v, i) for i, v in enumerate(row.data.values())]

    logger.debug(
        "extracted %d value(s) from %s/%s %s %r",
        len(values), ref.spreadsheet_id, ref.sheet_name, ref.element_type, ref.element_identifier,
    )
    return values


def get_data(spreadsheets: Sequence[ParsedSpreadsheet], ref: ElementRef) -> List[Any]:
    """Plain values of a column or row, in order."""
    return [item.value for item in get_data_with_indices(spreadsheets, ref)]


def get_value_at_row_index(
    spreadsheets: Sequence[ParsedSpreadsheet],
    ref: ElementRef,
    row_index: int,
) -> Any:
    """
    Direct positional lookup used by the two-step comparison.

    Column refs: the cell under the column's header in sheet.rows[row_index].
    Row refs: the row_index-th cell of the referenced row.
    Positions outside the data (and blank cells) give None rather than an error;
    an unresolvable spreadsheet, sheet or column still raises.
    """
    sheet = get_sheet(spreadsheets, ref.spreadsheet_id, ref.sheet_name)

    if ref.element_type == "column":
        header = resolve_column_header(sheet, ref.element_identifier)
        if not 0 <= row_index < len(sheet.rows):
            return None
        return sheet.rows[row_index].data.get(header)

    row = find_row(sheet, ref.element_identifier)
    if row is None:
        return None
    cells = list(row.data.values())
    if not 0 <= row_index < len(cells):
        return None
    value = cells[row_index]
    return None if value == "" else value
