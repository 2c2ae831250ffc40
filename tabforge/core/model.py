"""Timeline data model: notes, chords, cut segments, lanes, and canvases.

Pure Python.  All time positions are integer *frames*; a bar is always
``FRAMES_PER_BAR`` frames wide.  Every container here is mutable, so callers
that need an independent value use the explicit ``copy()`` routines rather
than sharing references.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone

from ..utils.numbers import round_half_up
from .constants import (
    DEFAULT_SECONDS_PER_BAR,
    DEFAULT_TIME_SIGNATURE,
    DEFAULT_TOTAL_FRAMES,
    FRAMES_PER_BAR,
    SCHEMA_VERSION,
)

# (string index, fret)
TabCoord = tuple[int, int]

# (start frame, tab, length)
Stamp = tuple[int, TabCoord, int]


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _tabs_to_json(tabs: list[TabCoord]) -> list[list[int]]:
    return [[s, f] for s, f in tabs]


# ── Events ──────────────────────────────────────────────────


@dataclass
class Note:
    """A single fretted note on one string."""

    id: int
    start_time: int
    length: int
    midi_num: int
    tab: TabCoord
    optimals: list[TabCoord] = field(default_factory=list)

    @property
    def end(self) -> int:
        return self.start_time + self.length

    def copy(self) -> Note:
        return replace(self, optimals=list(self.optimals))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "startTime": self.start_time,
            "length": self.length,
            "midiNum": self.midi_num,
            "tab": [self.tab[0], self.tab[1]],
            "optimals": _tabs_to_json(self.optimals),
        }


@dataclass
class Chord:
    """Two or more notes grouped under a shared start and length.

    ``og_tabs`` is the fingering captured when the chord was formed and is
    kept so the user can revert to it.
    """

    id: int
    start_time: int
    length: int
    original_midi: list[int]
    current_tabs: list[TabCoord]
    og_tabs: list[TabCoord]

    @property
    def end(self) -> int:
        return self.start_time + self.length

    def copy(self) -> Chord:
        return replace(
            self,
            original_midi=list(self.original_midi),
            current_tabs=list(self.current_tabs),
            og_tabs=list(self.og_tabs),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "startTime": self.start_time,
            "length": self.length,
            "originalMidi": list(self.original_midi),
            "currentTabs": _tabs_to_json(self.current_tabs),
            "ogTabs": _tabs_to_json(self.og_tabs),
        }


@dataclass
class CutSegment:
    """Half-open frame range ``[start, end)`` tagged with a reference position."""

    start: int
    end: int
    coord: TabCoord

    def to_json(self) -> list:
        return [[self.start, self.end], [self.coord[0], self.coord[1]]]


# ── Lane ────────────────────────────────────────────────────


@dataclass
class Lane:
    """One tablature track."""

    id: str
    name: str = "Editor 1"
    total_frames: int = DEFAULT_TOTAL_FRAMES
    time_signature: int = DEFAULT_TIME_SIGNATURE
    seconds_per_bar: float = DEFAULT_SECONDS_PER_BAR
    tab_ref: list[list[int]] | None = None
    notes: list[Note] = field(default_factory=list)
    chords: list[Chord] = field(default_factory=list)
    cut_segments: list[CutSegment] = field(default_factory=list)
    updated_at: str = field(default_factory=utc_now)

    @property
    def fps(self) -> int:
        return max(1, round_half_up(FRAMES_PER_BAR / max(0.1, self.seconds_per_bar)))

    @property
    def bar_count(self) -> int:
        return max(1, math.ceil(max(FRAMES_PER_BAR, self.total_frames) / FRAMES_PER_BAR))

    def find_note(self, note_id: int) -> Note | None:
        for note in self.notes:
            if note.id == note_id:
                return note
        return None

    def find_chord(self, chord_id: int) -> Chord | None:
        for chord in self.chords:
            if chord.id == chord_id:
                return chord
        return None

    def next_note_id(self) -> int:
        return max((n.id for n in self.notes), default=0) + 1

    def next_chord_id(self) -> int:
        return max((c.id for c in self.chords), default=0) + 1

    def sort_events(self) -> None:
        self.notes.sort(key=lambda n: (n.start_time, n.id))
        self.chords.sort(key=lambda c: (c.start_time, c.id))

    def copy(self) -> Lane:
        return replace(
            self,
            tab_ref=[list(row) for row in self.tab_ref] if self.tab_ref is not None else None,
            notes=[n.copy() for n in self.notes],
            chords=[c.copy() for c in self.chords],
            cut_segments=[replace(seg) for seg in self.cut_segments],
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "framesPerBar": FRAMES_PER_BAR,
            "totalFrames": self.total_frames,
            "timeSignature": self.time_signature,
            "secondsPerBar": self.seconds_per_bar,
            "fps": self.fps,
            "tabRef": [list(row) for row in self.tab_ref] if self.tab_ref is not None else None,
            "notes": [n.to_dict() for n in self.notes],
            "chords": [c.to_dict() for c in self.chords],
            "cutSegments": [seg.to_json() for seg in self.cut_segments],
            "updatedAt": self.updated_at,
        }


# ── Canvas ──────────────────────────────────────────────────


@dataclass
class Canvas:
    """Ordered lanes sharing a tempo, versioned as one unit."""

    id: str
    name: str = "Untitled"
    version: int = 1
    updated_at: str = field(default_factory=utc_now)
    seconds_per_bar: float = DEFAULT_SECONDS_PER_BAR
    lanes: list[Lane] = field(default_factory=list)

    def find_lane(self, lane_id: str) -> tuple[int, Lane] | None:
        for index, lane in enumerate(self.lanes):
            if lane.id == lane_id:
                return index, lane
        return None

    def copy(self) -> Canvas:
        return replace(self, lanes=[lane.copy() for lane in self.lanes])

    def same_content(self, other: Canvas) -> bool:
        """Structural equality ignoring version and timestamps."""
        return self._content() == other._content()

    def _content(self) -> tuple:
        return (
            self.id,
            self.name,
            self.seconds_per_bar,
            [replace(lane, updated_at="") for lane in self.lanes],
        )

    def to_dict(self) -> dict:
        return {
            "schemaVersion": SCHEMA_VERSION,
            "id": self.id,
            "name": self.name,
            "version": self.version,
            "updatedAt": self.updated_at,
            "secondsPerBar": self.seconds_per_bar,
            "lanes": [lane.to_dict() for lane in self.lanes],
        }
