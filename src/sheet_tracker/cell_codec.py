"""Scalar <-> cell conversion for Sheet Tracker.

Every comparison the engine makes (content digest, allow-list membership,
baseline diff) goes through the canonical string form defined here, so the
same value always hashes and compares identically no matter whether it came
from the generation request or was read back from an uploaded workbook.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime, time, timezone
from decimal import Decimal
from numbers import Integral, Real
from typing import Any

# Tolerance for numeric rounding introduced by the spreadsheet application.
EPSILON = 1e-6

_NUMBER_TEXT = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")


def is_empty(value: Any) -> bool:
    """Return True for values that render as an empty cell."""
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and value == ""


def _is_number(value: Any) -> bool:
    return isinstance(value, (Real, Decimal)) and not isinstance(value, bool)


def _is_temporal(value: Any) -> bool:
    return isinstance(value, (date, time))


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _format_number(value: Any) -> str:
    if isinstance(value, Integral):
        return str(int(value))
    if isinstance(value, Decimal):
        if not value.is_finite():
            return str(value).lower()
        text = format(value, "f")
    else:
        value = float(value)
        if math.isnan(value) or math.isinf(value):
            return str(value)
        if value.is_integer():
            return str(int(value))
        # repr gives the shortest round-trip digits; Decimal drops the exponent.
        text = format(Decimal(repr(value)), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"


def to_canonical_string(value: Any) -> str:
    """Return the locale-independent canonical form of ``value``.

    ``None`` and NaN become ``""``, booleans ``"true"``/``"false"``, numbers a
    fixed-point decimal without exponent (``10.0`` -> ``"10"``), datetimes ISO
    8601 with a ``T`` separator, dates ``YYYY-MM-DD``. Anything else falls back
    to ``str``.
    """
    if is_empty(value):
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if _is_number(value):
        return _format_number(value)
    if isinstance(value, datetime):
        return _naive_utc(value).isoformat(sep="T")
    if isinstance(value, (date, time)):
        return value.isoformat()
    return str(value)


def content_fragment(value: Any) -> str:
    """Trimmed canonical form used when building the content digest."""
    return to_canonical_string(value).strip()


def allow_list_token(value: Any) -> str:
    """Canonical form used for allow-list membership.

    Number-like text is reduced to the canonical number, so the list entry
    ``"2.00"`` and a reviewer typing ``2.00`` (a numeric cell) both become
    ``"2"``, as they do for the sheet's own ``COUNTIF`` rule. Other values are
    their trimmed canonical string.
    """
    text = to_canonical_string(value).strip()
    if isinstance(value, str) and _NUMBER_TEXT.match(text):
        return _format_number(Decimal(text))
    return text


def to_cell_value(value: Any) -> Any:
    """Convert a request scalar to something openpyxl writes natively.

    Numbers become numeric cells, booleans boolean cells, dates and datetimes
    date cells. Everything else is written as text.
    """
    if is_empty(value):
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, Integral):
        return int(value)
    if isinstance(value, Real):
        return float(value)
    if isinstance(value, datetime):
        return _naive_utc(value)
    if isinstance(value, (date, time)):
        return value
    return str(value)


def _as_datetime(value: Any) -> Any:
    if isinstance(value, datetime):
        return _naive_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    return value


def values_equal(current: Any, baseline: Any) -> bool:
    """Type-aware equality used when diffing a visible cell against its baseline."""
    if _is_number(current) and _is_number(baseline):
        return abs(float(current) - float(baseline)) <= EPSILON
    if _is_temporal(current) and _is_temporal(baseline):
        if isinstance(current, time) or isinstance(baseline, time):
            return current == baseline
        return _as_datetime(current) == _as_datetime(baseline)
    return to_canonical_string(current).strip() == to_canonical_string(baseline).strip()


__all__ = [
    "EPSILON",
    "is_empty",
    "to_canonical_string",
    "content_fragment",
    "allow_list_token",
    "to_cell_value",
    "values_equal",
]
