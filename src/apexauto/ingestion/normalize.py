"""Normalization helpers.

Centralizes defensive parsing of loosely-typed row values (form input,
JSON blobs, hand-edited rows).
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
    if not math.isfinite(result):
        return None
    return result


def safe_int(value: Any) -> int | None:
    parsed = safe_float(value)
    if parsed is None:
        return None
    return int(parsed)


def non_negative_or_none(value: Any) -> int | None:
    """Parse an integer quantity; negative values are treated as malformed."""
    parsed = safe_int(value)
    if parsed is None or parsed < 0:
        return None
    return parsed


def safe_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text if text else None


def unique_strings(values: Any) -> list[str]:
    """Return the non-empty string entries of *values*, de-duplicated, order kept."""
    if values is None or isinstance(values, (str, bytes)):
        return []
    seen: set[str] = set()
    result: list[str] = []
    for item in values:
        text = safe_str(item)
        if text is None or text in seen:
            continue
        seen.add(text)
        result.append(text)
    return result

