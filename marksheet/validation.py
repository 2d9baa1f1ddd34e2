"""
    02 validation

Checksum rule for a marks sheet: the row totals must add up to the bubble
digits. The written total is reported alongside but never decides validity.
"""

import re
from typing import Any, Iterable, Tuple

from marksheet.models import TableRow, TotalsSummary

_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)", re.ASCII)


def parse_int(value: Any) -> int:
    """Read the leading integer of a value, 0 when there is none.

    "12" -> 12, " 7/10" -> 7, "7.9" -> 7, "-" -> 0, None -> 0.
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if value != value or value in (float("inf"), float("-inf")):
            return 0
        return int(value)
    m = _LEADING_INT_RE.match(str(value))
    return int(m.group(1)) if m else 0


def calculate_total(rows: Iterable[TableRow]) -> int:
    return sum(parse_int(row.total) for row in rows)


def validate_totals(rows: Iterable[TableRow], written: Any, bubble_digits: Any) -> Tuple[TotalsSummary, bool]:
    """Sum the row totals and compare them with the bubble digits.

    Returns the totals summary and whether the sheet passed.
    """
    totals = TotalsSummary(
        calculated=calculate_total(rows),
        written=parse_int(written),
        bubble_digits=parse_int(bubble_digits),
    )
    return totals, totals.calculated == totals.bubble_digits
