"""
Brazilian-formatted number parsing ("R$ 1.234,56", "35,5%").

Both parsers return ``nan`` instead of raising; callers pick the fallback.
"""
from __future__ import annotations

import math
import re
from typing import Any

_CURRENCY_PREFIX = re.compile(r"^R\$?", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")
# Longest leading float literal, like JavaScript's parseFloat.
_LEADING_FLOAT = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def parse_br_number(value: Any) -> float:
    if value is None:
        return math.nan
    if isinstance(value, bool):
        return math.nan
    if isinstance(value, (int, float)):
        return float(value)

    s = str(value).strip()
    if not s:
        return math.nan

    cleaned = _WHITESPACE.sub("", s)
    cleaned = _CURRENCY_PREFIX.sub("", cleaned)
    cleaned = cleaned.replace(".", "")  # thousands
    cleaned = cleaned.replace(",", ".")  # decimal

    m = _LEADING_FLOAT.match(cleaned)
    if not m:
        return math.nan
    try:
        return float(m.group(0))
    except ValueError:
        return math.nan


def parse_percent_br(value: Any) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    s = str(value if value is not None else "").strip()
    if not s:
        return math.nan
    cleaned = _WHITESPACE.sub("", s.replace("%", ""))
    return parse_br_number(cleaned)
