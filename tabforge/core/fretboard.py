"""Fretboard solver — pitch lookup, position search, and blocked-string analysis.

A *TabRef* is a per-lane tuning matrix: ``tab_ref[string][fret]`` is the
MIDI note produced at that position.  String 0 is the high e string.  When a
lane carries no TabRef, positions fall back to standard tuning.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

from ..utils.numbers import clamp_int, to_number
from .constants import (
    DEFAULT_CUT_COORD,
    DEFAULT_MAX_FRET,
    MAX_EVENT_LENGTH,
    STANDARD_TUNING_MIDI,
    STRING_COUNT,
)
from .model import Lane, Note, TabCoord

TabRef = list[list[int]]


@dataclass
class OptimalTabs:
    """Candidate positions for one note, split by availability."""

    possible_tabs: list[TabCoord] = field(default_factory=list)
    blocked_tabs: list[TabCoord] = field(default_factory=list)

    @property
    def all_tabs(self) -> list[TabCoord]:
        return [*self.possible_tabs, *self.blocked_tabs]

    def to_dict(self) -> dict:
        return {
            "possibleTabs": [[s, f] for s, f in self.possible_tabs],
            "blockedTabs": [[s, f] for s, f in self.blocked_tabs],
        }


# ── TabRef ──────────────────────────────────────────────────


def build_default_tab_ref(max_fret: int = DEFAULT_MAX_FRET) -> TabRef:
    """Standard tuning matrix with ``max_fret + 1`` columns per string."""
    return [[base + fret for fret in range(max_fret + 1)] for base in STANDARD_TUNING_MIDI]


def max_fret(tab_ref: TabRef | None, string: int = 0) -> int:
    """Highest fret on *string*, derived from the TabRef row width."""
    if tab_ref and 0 <= string < len(tab_ref) and tab_ref[string]:
        return len(tab_ref[string]) - 1
    return DEFAULT_MAX_FRET


def clamp_tab(tab_ref: TabRef | None, tab: Any = None) -> TabCoord:
    """Coerce *tab* into a valid (string, fret) pair for this TabRef."""
    if tab is None or not isinstance(tab, (list, tuple)) or len(tab) < 2:
        tab = DEFAULT_CUT_COORD
    string = clamp_int(tab[0], 0, 0, STRING_COUNT - 1)
    fret = clamp_int(tab[1], 0, 0, max_fret(tab_ref, string))
    return (string, fret)


def clamp_event_length(value: Any) -> int:
    return clamp_int(value, 1, 1, MAX_EVENT_LENGTH)


# ── Solver ──────────────────────────────────────────────────


def pitch_of(tab_ref: TabRef | None, coord: TabCoord) -> int:
    """MIDI note at *coord*, falling back to the standard-tuning formula."""
    string, fret = coord
    if tab_ref and 0 <= string < len(tab_ref):
        row = tab_ref[string]
        if 0 <= fret < len(row):
            value = to_number(row[fret], math.nan)
            if math.isfinite(value):
                return int(value)
    if 0 <= string < len(STANDARD_TUNING_MIDI):
        return STANDARD_TUNING_MIDI[string] + fret
    return 0


def all_positions_for(tab_ref: TabRef | None, midi: int) -> list[TabCoord]:
    """Every (string, fret) cell producing *midi*.

    Never empty: with no match a single clamped default coordinate is returned.
    """
    result: list[TabCoord] = []
    for string, row in enumerate(tab_ref or []):
        for fret, value in enumerate(row or []):
            if to_number(value, math.nan) == midi:
                result.append((string, fret))
    return result or [clamp_tab(tab_ref)]


def _overlaps(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    return a_start < b_end and b_start < a_end


def occupied_strings(lane: Lane, start: int, end: int, exclude_note: int | None = None) -> set[int]:
    """Strings used by any note or chord sounding within ``[start, end)``."""
    strings: set[int] = set()
    for other in lane.notes:
        if other.id == exclude_note:
            continue
        if _overlaps(start, end, other.start_time, other.start_time + clamp_event_length(other.length)):
            strings.add(other.tab[0])
    for chord in lane.chords:
        if _overlaps(start, end, chord.start_time, chord.start_time + clamp_event_length(chord.length)):
            strings.update(tab[0] for tab in chord.current_tabs)
    return strings


def optimals_for(lane: Lane, note: Note) -> OptimalTabs:
    """Partition every position for the note's pitch into playable and blocked.

    A position is blocked when a time-overlapping event already occupies its
    string, whatever the fret.  Both lists are always returned so callers can
    fall back to manual reassignment when nothing is playable.
    """
    midi = note.midi_num or pitch_of(lane.tab_ref, note.tab)
    candidates = all_positions_for(lane.tab_ref, midi)
    start = note.start_time
    end = start + clamp_event_length(note.length)
    busy = occupied_strings(lane, start, end, exclude_note=note.id)

    result = OptimalTabs()
    for tab in candidates:
        if tab[0] in busy:
            result.blocked_tabs.append(tab)
        else:
            result.possible_tabs.append(tab)
    return result
