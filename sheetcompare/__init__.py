from .engine import ComparisonEngine, execute_rules
from .errors import AppError
from .models import (
    ComparisonMatch,
    ComparisonMismatch,
    ComparisonResults,
    ComparisonRule,
    ElementRef,
    ParsedSpreadsheet,
    RuleResult,
)
from .values import values_equal, value_contains

__all__ = [
    "AppError",
    "ComparisonEngine",
    "ComparisonMatch",
    "ComparisonMismatch",
    "ComparisonResults",
    "ComparisonRule",
    "ElementRef",
    "ParsedSpreadsheet",
    "RuleResult",
    "execute_rules",
    "value_contains",
    "values_equal",
]
