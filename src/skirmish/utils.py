"""Shared utility functions for the combat core."""
from __future__ import annotations

import math


def safe_float(value, default: float = 0.0) -> float:
    """Coerce a number or numeric string to float, or return default.

    Content tables are hand-authored, so stat fields may arrive as strings,
    None, or garbage. Non-finite values are treated as garbage too.
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return default
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(result):
        return default
    return result


def safe_int(value, default: int = 0) -> int:
    """Like safe_float, but floors the result to an int."""
    result = safe_float(value, None)
    if result is None:
        return default
    return math.floor(result)


def id_variants(content_id: str) -> list[str]:
    """Return the id plus its hyphen/underscore spellings, original first."""
    variants = [content_id]
    for alt in (content_id.replace("_", "-"), content_id.replace("-", "_")):
        if alt not in variants:
            variants.append(alt)
    return variants
