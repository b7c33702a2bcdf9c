from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class AppError(Exception):
    """
    User-facing error with a short code and structured details.
    Raise AppError from sheetcompare modules; callers display .message cleanly.
    """
    code: str
    message: str
    details: Optional[Dict[str, Any]] = None

    def __str__(self) -> str:
        if self.details:
            return f"{self.code}: {self.message} ({self.details})"
        return f"{self.code}: {self.message}"


# ── Error codes (keep stable for tests and presentation layers) ───────────────

SPREADSHEET_NOT_FOUND = "SPREADSHEET_NOT_FOUND"
SHEET_NOT_FOUND       = "SHEET_NOT_FOUND"
COLUMN_NOT_FOUND      = "COLUMN_NOT_FOUND"
ROW_NOT_FOUND         = "ROW_NOT_FOUND"
UNKNOWN_METHOD        = "UNKNOWN_METHOD"
ELEMENT_TYPE_MISMATCH = "ELEMENT_TYPE_MISMATCH"
INVALID_RULE          = "INVALID_RULE"
SOURCE_READ_FAILED    = "SOURCE_READ_FAILED"
UNSUPPORTED_FORMAT    = "UNSUPPORTED_FORMAT"
BAD_PROJECT           = "BAD_PROJECT"
SAVE_FAILED           = "SAVE_FAILED"

NOT_FOUND_CODES = (SPREADSHEET_NOT_FOUND, SHEET_NOT_FOUND, COLUMN_NOT_FOUND, ROW_NOT_FOUND)


# ── Friendly message lookup ───────────────────────────────────────────────────

def friendly_message(e: AppError) -> str:
    """
    Return a plain-English one-liner suitable for a results banner or CLI.
    Never exposes raw tracebacks or internal code paths.
    """
    code = e.code
    msg  = e.message or ""

    if code == SPREADSHEET_NOT_FOUND:
        return f"A rule refers to a spreadsheet that is not loaded. Re-upload it or edit the rule.\n({msg})"

    if code == SHEET_NOT_FOUND:
        return f"Sheet not found in spreadsheet. Check that the sheet name is correct.\n({msg})"

    if code == COLUMN_NOT_FOUND:
        return f"The selected column has no data in this sheet.\n({msg})"

    if code == ROW_NOT_FOUND:
        return f"The selected row has no data in this sheet.\n({msg})"

    if code == UNKNOWN_METHOD:
        return f"Unknown comparison method. Use equals, contains, lookup or validate.\n({msg})"

    if code == ELEMENT_TYPE_MISMATCH:
        return f"Source and target must both be columns or both be rows.\n({msg})"

    if code == INVALID_RULE:
        return f"A comparison rule has an invalid setting.\n({msg})"

    if code == SOURCE_READ_FAILED:
        if "permission" in msg.lower() or "locked" in msg.lower():
            return "Spreadsheet file is open in another program. Close it and try again."
        if "no such file" in msg.lower():
            return "Spreadsheet file not found. Check that the file path is correct."
        return f"Could not read the spreadsheet. Check that it is a valid XLSX or CSV.\n({msg})"

    if code == UNSUPPORTED_FORMAT:
        return f"Unsupported file type. Save the file as .xlsx or .csv and try again.\n({msg})"

    if code == BAD_PROJECT:
        return f"The comparison project file is invalid.\n({msg})"

    if code == SAVE_FAILED:
        fname = ""
        if e.details and "path" in e.details:
            fname = f" ({os.path.basename(e.details['path'])})"
        if "permission" in msg.lower() or "locked" in msg.lower():
            return f"Could not save: file is open in another program{fname}. Close it and try again."
        return f"Could not save the results file{fname}. Check that the folder exists."

    clean = msg.splitlines()[0] if msg else "An unexpected error occurred."
    return clean
