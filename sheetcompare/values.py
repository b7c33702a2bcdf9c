"""
sheetcompare/values.py — Value equality and containment semantics.

Every comparison funnels both sides through to_comparable_string():

  None        — "null"
  bool        — "true" / "false"
  float       — number_text(): integral floats drop the trailing ".0"
                (100.0 -> "100"), small values stay decimal (5e-05 ->
                "0.00005"), NaN -> "nan", infinities -> "infinity"
  anything    — str(value)

The result is lowercased and stripped, so 100 equals "100" and "  Foo "
equals "foo". It is a text comparison, not a numeric one: "100" and "100.0"
are different values, as are "1e2" and "100".

equals    — both None is equal; exactly one None is not equal.
contains  — None on either side never contains / is never contained.
validate  — None and "" are invalid; everything else (0, False, "0") is valid.
"""
from __future__ import annotations

import math
from decimal import Decimal
from typing import Any


def number_text(value: float) -> str:
    """
    Render a float the way a spreadsheet UI's JavaScript String() does:
    shortest round-trip digits, plain decimals for 1e-6 <= |x| < 1e21, and an
    unpadded exponent otherwise (0.00005 -> "0.00005", 1.5e-7 -> "1.5e-7").
    """
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value == 0:
        return "0"

    sign, digit_tuple, exponent = Decimal(repr(value)).as_tuple()
    digits = "".join(str(d) for d in digit_tuple).rstrip("0")
    exponent += len(digit_tuple) - len(digits)
    k = len(digits)
    n = exponent + k  # value == 0.<digits> * 10**n

    if k <= n <= 21:
        text = digits + "0" * (n - k)
    elif 0 < n <= 21:
        text = digits[:n] + "." + digits[n:]
    elif -6 < n <= 0:
        text = "0." + "0" * -n + digits
    else:
        mantissa = digits[0] + ("." + digits[1:] if k > 1 else "")
        text = f"{mantissa}e{'+' if n - 1 > 0 else '-'}{abs(n - 1)}"
    return ("-" if sign else "") + text


def _display_text(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return number_text(value)
    return str(value)



def to_comparable_string(value: Any) -> str:
    """The single text form both sides are reduced to before comparing."""
    return _display_text(value).lower().strip()


def values_equal(value1: Any, value2: Any) -> bool:
    if value1 is None and value2 is None:
        return True
    if value1 is None or value2 is None:
        return False
    return to_comparable_string(value1) == to_comparable_string(value2)


def value_contains(target_value: Any, source_value: Any) -> bool:
    """True when the target's text contains the source's text."""
    if target_value is None or source_value is None:
        return False
    return to_comparable_string(source_value) in to_comparable_string(target_value)


def is_valid_value(value: Any) -> bool:
    return value is not None and not (isinstance(value, str) and value == "")


def lookup_key(value: Any) -> str:
    # None keys to "null" so blank cells on both sides still pair up in lookups.
    return to_comparable_string(value)
