"""ASCII tablature rendering and parsing.

Rendering lays every note and chord tab out on six fixed-width lines per
bar.  A fret number that would land on already-written text is moved to the
nearest free span (forward first, then backward) or silently dropped;
existing digits are never overwritten.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from ..utils.numbers import clamp, round_half_up, to_int
from .constants import (
    DEFAULT_BAR_WIDTH,
    DEFAULT_BARS_PER_ROW,
    FRAMES_PER_BAR,
    MIN_BAR_WIDTH,
    REST_SYMBOL,
    STRING_COUNT,
    STRING_LABELS,
)
from .model import Lane, Stamp


@dataclass(frozen=True, slots=True)
class TabEvent:
    start: int
    string: int
    fret: int


def collect_events(lane: Lane) -> list[TabEvent]:
    events: list[TabEvent] = []
    tabs = [(n.start_time, n.tab) for n in lane.notes]
    for chord in lane.chords:
        tabs.extend((chord.start_time, tab) for tab in chord.current_tabs)
    for start, (string, fret) in tabs:
        if 0 <= string < STRING_COUNT and fret >= 0:
            events.append(TabEvent(max(0, start), string, fret))
    events.sort(key=lambda e: (e.start, e.string, e.fret))
    return events


def _can_write(line: list[str], at: int, text: str) -> bool:
    return all(line[at + i] == REST_SYMBOL for i in range(len(text)))


def write_fret(line: list[str], column: int, fret: int) -> bool:
    """Write *fret* at or near *column*; returns False when no span is free."""
    text = str(max(0, fret))
    last = len(line) - len(text)
    if last < 0:
        return False
    col = clamp(column, 0, last)
    if not _can_write(line, col, text):
        candidates = [*range(col + 1, last + 1), *range(col - 1, -1, -1)]
        col = next((p for p in candidates if _can_write(line, p, text)), -1)
        if col < 0:
            return False
    line[col:col + len(text)] = list(text)
    return True


def render_tab_text(
    lane: Lane,
    bars_per_row: int = DEFAULT_BARS_PER_ROW,
    bar_width: int = DEFAULT_BAR_WIDTH,
) -> str:
    bars_per_row = max(1, to_int(bars_per_row, DEFAULT_BARS_PER_ROW))
    bar_width = max(MIN_BAR_WIDTH, to_int(bar_width, DEFAULT_BAR_WIDTH))
    events = collect_events(lane)
    latest = max((e.start for e in events), default=0)
    total_frames = max(FRAMES_PER_BAR, lane.total_frames, latest + 1)
    total_bars = max(1, -(-total_frames // FRAMES_PER_BAR))

    bars = [
        [[REST_SYMBOL] * bar_width for _ in range(STRING_COUNT)]
        for _ in range(total_bars)
    ]
    for event in events:
        bar = clamp(event.start // FRAMES_PER_BAR, 0, total_bars - 1)
        offset = event.start - bar * FRAMES_PER_BAR
        col = clamp(round_half_up(offset / FRAMES_PER_BAR * (bar_width - 1)), 0, bar_width - 1)
        write_fret(bars[bar][event.string], col, event.fret)

    rows: list[str] = []
    for row_start in range(0, total_bars, bars_per_row):
        row_end = min(total_bars, row_start + bars_per_row)
        for string, label in enumerate(STRING_LABELS):
            cells = "|".join("".join(bars[b][string]) for b in range(row_start, row_end))
            rows.append(f"{label}|{cells}|")
        if row_end < total_bars:
            rows.append("")
    return "\n".join(rows)


# ── Parsing ─────────────────────────────────────────────────

_LABEL_PREFIX = re.compile(r"^([eEBDGA])\s*[|:]")
_FRET_RUN = re.compile(r"\d+")


def split_tab_segments(text: str) -> list[list[str]]:
    """Split pasted tab text into blank-line separated segments."""
    segments: list[list[str]] = []
    current: list[str] = []
    for line in text.splitlines():
        if line.strip():
            current.append(line)
        elif current:
            segments.append(current)
            current = []
    if current:
        segments.append(current)
    return segments


def _normalize_segment(segment: list[str]) -> list[str]:
    lines = [line for line in segment if line and line.strip()]
    labeled = [line for line in lines if line.strip()[:1] in "eEBDGA"]
    picked = labeled[:STRING_COUNT] if len(labeled) >= STRING_COUNT else lines[:STRING_COUNT]
    result = []
    for line in picked:
        stripped = line.strip()
        match = _LABEL_PREFIX.match(stripped)
        if match:
            stripped = stripped[match.end():]
        result.append(re.sub(r"\s+", "", stripped))
    return result


def tab_text_to_stamps(segments: list[list[str]]) -> tuple[list[Stamp], int]:
    """Turn ASCII tab segments into one-frame stamps, one per fret number.

    Each text column is one frame; segments follow each other with a one
    frame gap.  Returns ``(stamps, total_frames)``.
    """
    stamps: list[Stamp] = []
    offset = 0
    for segment in segments:
        lines = _normalize_segment(segment)
        if not lines:
            continue
        lines += [""] * (STRING_COUNT - len(lines))
        width = max(len(line) for line in lines)
        for string, line in enumerate(lines):
            for match in _FRET_RUN.finditer(line.ljust(width, REST_SYMBOL)):
                stamps.append((offset + match.start(), (string, int(match.group())), 1))
        offset += width + 1
    stamps.sort(key=lambda st: (st[0], st[1][0]))
    return stamps, offset
