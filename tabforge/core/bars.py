"""Whole-bar structural edits: add, remove, reorder.

Removing a bar drops every event that overlaps it, including events that
start earlier or end later; those cannot be represented once the bar's
frames are gone.
"""

from __future__ import annotations

import logging
import math
from typing import Any

from ..utils.numbers import clamp, to_int
from .constants import FRAMES_PER_BAR
from .cuts import extend_to_total, reset
from .errors import InvalidOperation
from .fretboard import clamp_event_length
from .model import CutSegment, Lane

log = logging.getLogger(__name__)


def add_bars(lane: Lane, count: Any = 1) -> None:
    count = max(1, to_int(count, 1))
    lane.total_frames = max(FRAMES_PER_BAR, lane.total_frames + count * FRAMES_PER_BAR)
    extend_to_total(lane)


def _outside(start: int, length: int, lo: int, hi: int) -> bool:
    end = start + clamp_event_length(length)
    return end <= lo or start >= hi


def remove_bar(lane: Lane, index: Any) -> None:
    total_bars = lane.bar_count
    if total_bars <= 1:
        raise InvalidOperation("Cannot remove the only bar.")
    index = clamp(to_int(index, 0), 0, total_bars - 1)
    lo = index * FRAMES_PER_BAR
    hi = lo + FRAMES_PER_BAR

    kept_notes = [n for n in lane.notes if _outside(n.start_time, n.length, lo, hi)]
    kept_chords = [c for c in lane.chords if _outside(c.start_time, c.length, lo, hi)]
    dropped = len(lane.notes) - len(kept_notes) + len(lane.chords) - len(kept_chords)
    for event in [*kept_notes, *kept_chords]:
        if event.start_time >= hi:
            event.start_time -= FRAMES_PER_BAR
    lane.notes = kept_notes
    lane.chords = kept_chords

    def collapse(t: int) -> int:
        if t <= lo:
            return t
        return lo if t < hi else t - FRAMES_PER_BAR

    segments = []
    for seg in lane.cut_segments:
        start, end = collapse(seg.start), collapse(seg.end)
        if start < end:
            segments.append(CutSegment(start, end, seg.coord))
    lane.total_frames = max(FRAMES_PER_BAR, lane.total_frames - FRAMES_PER_BAR)
    lane.cut_segments = segments
    if not segments:
        reset(lane)
    lane.sort_events()
    log.debug("Removed bar %d from lane %s (%d events dropped)", index, lane.id, dropped)


def reorder_bar(lane: Lane, from_index: Any, to_index: Any) -> None:
    """Move bar *from_index* so it lands before bar *to_index*.

    ``to_index`` ranges over ``[0, bar_count]``; ``bar_count`` moves the bar
    to the end.  The timeline grows, in whole bars, when a moved event would
    end past it.  Cut segments fall back to the single default segment.
    """
    total_bars = lane.bar_count
    src = clamp(to_int(from_index, 0), 0, total_bars - 1)
    dst = clamp(to_int(to_index, 0), 0, total_bars)
    if src == dst or src + 1 == dst:
        return
    if total_bars <= 1:
        raise InvalidOperation("Cannot reorder a single bar.")

    lo = src * FRAMES_PER_BAR
    hi = lo + FRAMES_PER_BAR
    insert_at = (dst - 1 if dst > src else dst) * FRAMES_PER_BAR

    def relocate(t: int) -> int:
        if lo <= t < hi:
            return t - lo + insert_at
        if t >= hi:
            t -= FRAMES_PER_BAR
        return t + FRAMES_PER_BAR if t >= insert_at else t

    def keep(start: int, length: int) -> bool:
        return lo <= start < hi or _outside(start, length, lo, hi)

    lane.notes = [n for n in lane.notes if keep(n.start_time, n.length)]
    lane.chords = [c for c in lane.chords if keep(c.start_time, c.length)]
    for event in [*lane.notes, *lane.chords]:
        event.start_time = relocate(event.start_time)
    extent = max((e.start_time + clamp_event_length(e.length) for e in [*lane.notes, *lane.chords]), default=0)
    if extent > lane.total_frames:
        lane.total_frames = math.ceil(extent / FRAMES_PER_BAR) * FRAMES_PER_BAR
    lane.sort_events()
    reset(lane)
    log.debug("Moved bar %d before bar %d in lane %s", src, dst, lane.id)
