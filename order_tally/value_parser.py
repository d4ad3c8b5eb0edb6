"""
Shared cell parsing utilities for loosely-typed spreadsheet values.

Quantities arrive as ints, floats ("3.0" after a numeric column round trip),
or strings with separators and unit suffixes ("1,200", "3개"). Text cells may be
NaN, None, or numbers that should read back without a trailing ".0".
"""

from __future__ import annotations

import math
import re
from typing import Any

import pandas as pd

_NULL_TOKENS = {"", "null", "n/a", "none", "nan", "-", "--"}
_LEADING_INT = re.compile(r"^[+-]?\d+")


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def clean_cell(value: Any) -> str:
    """Render one cell as trimmed text; missing values become ""."""
    if _is_missing(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def parse_quantity(value: Any) -> int:
    """
    Parse an order quantity.

    Returns 0 for missing, blank, infinite or unparsable values so the caller
    can treat "no quantity" uniformly.
    """
    if _is_missing(value) or isinstance(value, bool):
        return 0

    if isinstance(value, float) and not math.isfinite(value):
        return 0

    if isinstance(value, (int, float)):
        return int(value)

    text = str(value).strip()
    if text.lower() in _NULL_TOKENS:
        return 0

    cleaned = text.replace(",", "").replace(" ", "").replace("\u00a0", "")
    match = _LEADING_INT.match(cleaned)
    if not match:
        return 0
    return int(match.group(0))
