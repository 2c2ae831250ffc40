"""Cut segment editor.

Cut segments partition ``[0, total_frames)`` into contiguous half-open
ranges, each tagged with a single reference fret position for the legacy
export format.  Every operation here leaves that partition intact.  Stale
boundary indices are ignored.
"""

from __future__ import annotations

from typing import Any

from ..utils.numbers import clamp, to_int
from .constants import FRAMES_PER_BAR
from .fretboard import clamp_tab
from .model import CutSegment, Lane, TabCoord


def default_segments(lane: Lane) -> list[CutSegment]:
    end = max(FRAMES_PER_BAR, lane.total_frames)
    return [CutSegment(0, end, clamp_tab(lane.tab_ref))]


def reset(lane: Lane) -> None:
    lane.cut_segments = default_segments(lane)


def is_partition(segments: list[CutSegment], total_frames: int) -> bool:
    """True when *segments* exactly tile ``[0, total_frames)``."""
    if not segments:
        return False
    cursor = 0
    for seg in segments:
        if seg.start != cursor or seg.end <= seg.start:
            return False
        cursor = seg.end
    return cursor == total_frames


def _repair(lane: Lane, segments: list[CutSegment]) -> list[CutSegment]:
    """Snap a sorted segment list onto ``[0, total_frames)`` without gaps."""
    total = lane.total_frames
    result: list[CutSegment] = []
    cursor = 0
    for seg in sorted(segments, key=lambda s: (s.start, s.end)):
        end = min(seg.end, total)
        if end <= cursor:
            continue
        result.append(CutSegment(cursor, end, seg.coord))
        cursor = end
    if not result:
        return default_segments(lane)
    if cursor < total:
        result[-1].end = total
    return result


def extend_to_total(lane: Lane) -> None:
    """Stretch the last segment after the timeline grew."""
    if not lane.cut_segments:
        reset(lane)
        return
    last = lane.cut_segments[-1]
    if last.end < lane.total_frames:
        last.end = lane.total_frames


# ── Operations ──────────────────────────────────────────────


def generate(lane: Lane) -> None:
    """Rebuild segments from note starts and chord starts.

    Each segment takes the position of the latest event at or before its
    start, or the default position when none precedes it.
    """
    anchors: list[tuple[int, TabCoord]] = [
        (note.start_time, clamp_tab(lane.tab_ref, note.tab)) for note in lane.notes
    ]
    anchors.extend(
        (chord.start_time, clamp_tab(lane.tab_ref, chord.current_tabs[0]))
        for chord in lane.chords
        if chord.current_tabs
    )
    anchors.sort(key=lambda a: a[0])
    if not anchors:
        reset(lane)
        return

    total = lane.total_frames
    points = sorted({0, total, *(clamp(t, 0, total) for t, _ in anchors)})
    segments: list[CutSegment] = []
    for start, end in zip(points, points[1:]):
        coord = clamp_tab(lane.tab_ref)
        for time, anchor in anchors:
            if time > start:
                break
            coord = anchor
        segments.append(CutSegment(start, end, coord))
    lane.cut_segments = segments


def apply_manual(lane: Lane, segments: list[Any]) -> None:
    """Replace the segment list with user-supplied ``[[start, end], coord]`` entries.

    Well-formed partitions are kept as given; gaps and overlaps are closed.
    """
    parsed: list[CutSegment] = []
    for entry in segments or []:
        if isinstance(entry, CutSegment):
            region, coord = (entry.start, entry.end), entry.coord
        elif isinstance(entry, (list, tuple)) and len(entry) >= 2 and isinstance(entry[0], (list, tuple)):
            region, coord = entry[0], entry[1]
            if len(region) < 2:
                continue
        else:
            continue
        start = max(0, to_int(region[0], 0))
        end = to_int(region[1], start)
        if end <= start:
            continue
        parsed.append(CutSegment(start, end, clamp_tab(lane.tab_ref, coord)))
    lane.cut_segments = _repair(lane, parsed) if parsed else default_segments(lane)


def shift_boundary(lane: Lane, index: Any, new_time: Any) -> None:
    """Move the edge shared by segments ``index`` and ``index + 1``."""
    cuts = lane.cut_segments
    index = to_int(index, -1)
    if index < 0 or index >= len(cuts) - 1:
        return
    left, right = cuts[index], cuts[index + 1]
    if right.end - left.start < 2:
        return
    time = clamp(to_int(new_time, left.end), left.start + 1, right.end - 1)
    left.end = time
    right.start = time


def insert_at(lane: Lane, time: Any, coord: Any = None) -> None:
    """Split the segment straddling *time*; the right half takes *coord*."""
    if not lane.cut_segments:
        reset(lane)
    cuts = lane.cut_segments
    at = clamp(to_int(time, 1), 1, max(1, lane.total_frames - 1))
    for index, seg in enumerate(cuts):
        if seg.start < at < seg.end:
            right_coord = clamp_tab(lane.tab_ref, coord if coord is not None else seg.coord)
            cuts[index:index + 1] = [
                CutSegment(seg.start, at, seg.coord),
                CutSegment(at, seg.end, right_coord),
            ]
            return


def delete_boundary(lane: Lane, index: Any) -> None:
    """Merge segments ``index`` and ``index + 1``, keeping the left position."""
    if not lane.cut_segments:
        reset(lane)
    cuts = lane.cut_segments
    index = to_int(index, -1)
    if index < 0 or index >= len(cuts) - 1:
        return
    left, right = cuts[index], cuts[index + 1]
    cuts[index:index + 2] = [CutSegment(left.start, right.end, left.coord)]
