"""Snap-to-grid quantization of start times and lengths.

The grid unit is ``FRAMES_PER_BAR / time_signature``.  Both snaps round
*down* and are idempotent: snapping an already-snapped value is a no-op.
"""

from __future__ import annotations

from typing import Any

from ..utils.numbers import clamp_int, to_int
from .constants import FRAMES_PER_BAR, TIME_SIGNATURE_MAX, TIME_SIGNATURE_MIN
from .fretboard import clamp_event_length
from .model import Lane


def unit_frames(lane: Lane) -> int:
    divisions = clamp_int(lane.time_signature, 4, TIME_SIGNATURE_MIN, TIME_SIGNATURE_MAX)
    return max(1, FRAMES_PER_BAR // divisions)


def snap_start(lane: Lane, value: Any, enabled: bool) -> int:
    safe = max(0, to_int(value, 0))
    if not enabled:
        return safe
    unit = unit_frames(lane)
    bar_offset = (safe // FRAMES_PER_BAR) * FRAMES_PER_BAR
    return max(0, (safe - bar_offset) // unit * unit + bar_offset)


def snap_length(lane: Lane, value: Any, enabled: bool) -> int:
    safe = clamp_event_length(value)
    if not enabled:
        return safe
    unit = unit_frames(lane)
    return clamp_event_length(max(1, safe // unit) * unit)
