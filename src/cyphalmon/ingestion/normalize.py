"""Normalization helpers.

Centralizes defensive parsing of optional heartbeat fields.
"""

from __future__ import annotations

import math
from typing import Any


def safe_float(value: Any) -> float | None:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def safe_int(value: Any) -> int | None:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    parsed = safe_float(value)
    if parsed is None:
        return None
    return int(parsed)


def safe_number(value: Any) -> int | float | None:
    """Like :func:`safe_float` but keeps integers as ``int``."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return safe_float(value)


def safe_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text if text else None
