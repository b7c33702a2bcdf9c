from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Literal, Union


ElementType = Literal["column", "row"]
Method = Literal["equals", "contains", "lookup", "validate"]
Status = Literal["passed", "failed", "error"]

CellValue = Union[str, int, float, bool, None]


def _pick(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    """First present key wins (camelCase from the browser app, snake_case from Python callers)."""
    for k in keys:
        if k in data:
            return data[k]
    return default


# ---- Normalized spreadsheet shape (produced by io.load_spreadsheet) ----

@dataclass
class ColumnDefinition:
    index: int
    header: str
    data_type: str = "mixed"


@dataclass
class RowData:
    """
    One data row. `data` maps column header -> cell value (None when blank).
    """
    index: int
    data: Dict[str, CellValue] = field(default_factory=dict)


@dataclass
class SheetMetadata:
    row_count: int = 0
    column_count: int = 0
    header_row_count: int = 1


@dataclass
class Sheet:
    name: str
    columns: List[ColumnDefinition] = field(default_factory=list)
    rows: List[RowData] = field(default_factory=list)
    metadata: SheetMetadata = field(default_factory=SheetMetadata)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Sheet":
        meta = data.get("metadata") or {}
        return cls(
            name=data["name"],
            columns=[
                ColumnDefinition(
                    index=c["index"],
                    header=c["header"],
                    data_type=_pick(c, "dataType", "data_type", default="mixed"),
                )
                for c in data.get("columns", [])
            ],
            rows=[RowData(index=r["index"], data=dict(r.get("data") or {})) for r in data.get("rows", [])],
            metadata=SheetMetadata(
                row_count=_pick(meta, "rowCount", "row_count", default=0),
                column_count=_pick(meta, "columnCount", "column_count", default=0),
                header_row_count=_pick(meta, "headerRowCount", "header_row_count", default=1),
            ),
        )


@dataclass
class ParsedSpreadsheet:
    id: str
    file_name: str = ""
    sheets: List[Sheet] = field(default_factory=list)
    file_size: int = 0
    uploaded_at: str = ""

    def get_sheet(self, name: str) -> Optional[Sheet]:
        for sheet in self.sheets:
            if sheet.name == name:
                return sheet
        return None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ParsedSpreadsheet":
        return cls(
            id=data["id"],
            file_name=_pick(data, "fileName", "file_name", default=""),
            sheets=[Sheet.from_dict(s) for s in data.get("sheets", [])],
            file_size=_pick(data, "fileSize", "file_size", default=0),
            uploaded_at=_pick(data, "uploadedAt", "uploaded_at", default=""),
        )


# ---- Comparison rules ----

@dataclass
class ElementRef:
    """
    Locates one column (by column index or header) or one row (by row index)
    inside a sheet of a loaded spreadsheet.
    has_header is informational only; no data row is ever skipped for it.
    """
    spreadsheet_id: str
    sheet_name: str
    element_type: ElementType = "column"
    element_identifier: Union[int, str] = 0
    has_header: Optional[bool] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "spreadsheetId": self.spreadsheet_id,
            "sheetName": self.sheet_name,
            "elementType": self.element_type,
            "elementIdentifier": self.element_identifier,
        }
        if self.has_header is not None:
            out["hasHeader"] = self.has_header
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ElementRef":
        return cls(
            spreadsheet_id=_pick(data, "spreadsheetId", "spreadsheet_id"),
            sheet_name=_pick(data, "sheetName", "sheet_name"),
            element_type=_pick(data, "elementType", "element_type", default="column"),
            element_identifier=_pick(data, "elementIdentifier", "element_identifier", default=0),
            has_header=_pick(data, "hasHeader", "has_header"),
        )


ComparisonSource = ElementRef
ComparisonTarget = ElementRef


@dataclass
class ComparisonRule:
    id: str
    step_number: int
    element_type: ElementType
    method: Method
    source: ElementRef
    target: ElementRef
    store_result: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "stepNumber": self.step_number,
            "elementType": self.element_type,
            "method": self.method,
            "source": self.source.to_dict(),
            "target": self.target.to_dict(),
            "storeResult": self.store_result,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ComparisonRule":
        return cls(
            id=data["id"],
            step_number=int(_pick(data, "stepNumber", "step_number", default=1)),
            element_type=_pick(data, "elementType", "element_type", default="column"),
            method=data.get("method", "equals"),
            source=ElementRef.from_dict(data["source"]),
            target=ElementRef.from_dict(data["target"]),
            store_result=bool(_pick(data, "storeResult", "store_result", default=False)),
        )


# ---- Extraction ----

@dataclass
class IndexedValue:
    """
    An extracted value plus the position it came from.
    Column mode: position in the sheet's row list. Row mode: position among the row's cells.
    """
    value: CellValue
    row_index: int


# ---- Results ----

@dataclass
class ComparisonMatch:
    source_value: Any
    target_value: Any
    source_spreadsheet: str
    target_spreadsheet: str
    step1_source_value: Any = None
    step2_source_value: Any = None
    step2_target_value: Any = None
    two_step: bool = False

    def to_dict(self) -> Dict[str, Any]:
        out = {
            "sourceValue": self.source_value,
            "targetValue": self.target_value,
            "sourceSpreadsheet": self.source_spreadsheet,
            "targetSpreadsheet": self.target_spreadsheet,
        }
        if self.two_step:
            out["step1SourceValue"] = self.step1_source_value
            out["step2SourceValue"] = self.step2_source_value
            out["step2TargetValue"] = self.step2_target_value
        return out


@dataclass
class ComparisonMismatch(ComparisonMatch):
    reason: str = ""

    def to_dict(self) -> Dict[str, Any]:
        out = super().to_dict()
        out["reason"] = self.reason
        return out


@dataclass
class RuleResult:
    rule_id: str
    step_number: int
    status: Status
    match_count: int = 0
    mismatch_count: int = 0
    error_message: Optional[str] = None
    matches: List[ComparisonMatch] = field(default_factory=list)
    mismatches: List[ComparisonMismatch] = field(default_factory=list)

    @classmethod
    def from_records(
        cls,
        rule_id: str,
        step_number: int,
        matches: List[ComparisonMatch],
        mismatches: List[ComparisonMismatch],
    ) -> "RuleResult":
        return cls(
            rule_id=rule_id,
            step_number=step_number,
            status="passed" if not mismatches else "failed",
            match_count=len(matches),
            mismatch_count=len(mismatches),
            matches=matches,
            mismatches=mismatches,
        )

    @classmethod
    def error(cls, rule_id: str, step_number: int, message: str) -> "RuleResult":
        return cls(
            rule_id=rule_id,
            step_number=step_number,
            status="error",
            error_message=message or "Unknown error",
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "ruleId": self.rule_id,
            "stepNumber": self.step_number,
            "status": self.status,
            "matchCount": self.match_count,
            "mismatchCount": self.mismatch_count,
            "matches": [m.to_dict() for m in self.matches],
            "mismatches": [m.to_dict() for m in self.mismatches],
        }
        if self.error_message is not None:
            out["errorMessage"] = self.error_message
        return out


@dataclass
class ComparisonResults:
    """
    Returned by engine.execute_rules. Presentation layers render this; tests can assert it.
    """
    executed_at: str
    total_rules: int
    passed_rules: int
    failed_rules: int
    details: List[RuleResult] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.failed_rules == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "executedAt": self.executed_at,
            "totalRules": self.total_rules,
            "passedRules": self.passed_rules,
            "failedRules": self.failed_rules,
            "details": [d.to_dict() for d in self.details],
        }


def utc_timestamp(now: Optional[datetime] = None) -> str:
    """ISO-8601 UTC with millisecond precision and a Z suffix (2026-01-28T00:00:00.000Z)."""
    now = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"
