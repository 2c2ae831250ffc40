"""Defensive numeric coercion for values arriving from clients."""

from __future__ import annotations

import math
from typing import Any


def to_number(value: Any, fallback: float) -> float:
    """Return *value* as a finite float, or *fallback*."""
    if isinstance(value, bool):
        return float(value)
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return fallback
    return parsed if math.isfinite(parsed) else fallback


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def to_int(value: Any, fallback: int) -> int:
    return round_half_up(to_number(value, fallback))


def clamp(value, lo, hi):
    return max(lo, min(value, hi))


def clamp_int(value: Any, fallback: int, lo: int, hi: int) -> int:
    return clamp(to_int(value, fallback), lo, hi)
