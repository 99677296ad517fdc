"""
Cell parsers (dates, counts, names)
===================================

The CSVs are read as plain strings. These helpers turn one cell into a typed
value and never raise on bad input:

- `parse_date` returns None for anything that is not `M/D/YY` or `YYYY-MM-DD`
- `parse_count` returns NaN (`INVALID_COUNT`) for anything without leading digits

Bad cells therefore flow downstream as sentinels instead of stopping a load.
"""

from __future__ import annotations
from datetime import date, datetime
from typing import Optional
import math
import re

INVALID_COUNT = float("nan")

_DATE_FORMATS = ("%m/%d/%y", "%Y-%m-%d", "%m/%d/%Y")
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def parse_date(text) -> Optional[date]:
    """Parse `M/D/YY` (CSSE headers) or `YYYY-MM-DD` (lockdown table)."""
    if text is None:
        return None
    s = str(text).strip()
    if not s:
        return None
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(s, fmt).date()
        except ValueError:
            continue
    return None


def parse_count(text) -> float:
    """Read the leading integer of a cell.

    "12" -> 12, "12abc" -> 12, "3.7" -> 3, "" -> NaN, "n/a" -> NaN.
    """
    if text is None:
        return INVALID_COUNT
    if isinstance(text, (int, float)) and not isinstance(text, bool):
        return int(text) if math.isfinite(text) else INVALID_COUNT
    m = _LEADING_INT.match(str(text))
    if not m:
        return INVALID_COUNT
    return int(m.group(1))


def is_invalid(value) -> bool:
    return isinstance(value, float) and math.isnan(value)


def display_name(region_key: str, sub_region_key: str) -> str:
    """Human name of a region.

    ("US", "") -> "US", ("France", "France") -> "France",
    ("China", "Hubei") -> "Hubei, China".
    """
    if sub_region_key == "" or sub_region_key == region_key:
        return region_key
    return f"{sub_region_key}, {region_key}"
