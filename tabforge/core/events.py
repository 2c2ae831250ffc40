"""Note and chord CRUD on a single lane.

All functions mutate the lane in place.  Overlapping notes on the same
string are allowed; collisions are only reported through
:func:`~tabforge.core.fretboard.optimals_for`.
"""

from __future__ import annotations

import math
from typing import Any, Iterable

from ..utils.numbers import clamp, to_int
from .constants import FRAMES_PER_BAR, OCTAVE
from .cuts import extend_to_total
from .errors import InvalidRange, InvalidSelection, NotFound
from .fretboard import OptimalTabs, clamp_event_length, clamp_tab, max_fret, optimals_for, pitch_of
from .model import Chord, Lane, Note, TabCoord
from .quantize import snap_length, snap_start


def ensure_extent(lane: Lane, end: int) -> None:
    """Grow the timeline, in whole bars, so that *end* fits."""
    if end > lane.total_frames:
        lane.total_frames = math.ceil(end / FRAMES_PER_BAR) * FRAMES_PER_BAR
        extend_to_total(lane)


def require_note(lane: Lane, note_id: Any) -> Note:
    note = lane.find_note(to_int(note_id, 0))
    if note is None:
        raise NotFound("Note not found.")
    return note


def require_chord(lane: Lane, chord_id: Any) -> Chord:
    chord = lane.find_chord(to_int(chord_id, 0))
    if chord is None:
        raise NotFound("Chord not found.")
    return chord


def _id_set(ids: Iterable[Any]) -> set[int]:
    return {to_int(i, 0) for i in ids or []}


# ── Notes ───────────────────────────────────────────────────


def add_note(lane: Lane, tab: Any, start_time: Any, length: Any, snap: bool = False) -> Note:
    tab = clamp_tab(lane.tab_ref, tab)
    start = snap_start(lane, start_time, snap)
    length = snap_length(lane, length, snap)
    note = Note(
        id=lane.next_note_id(),
        start_time=start,
        length=length,
        midi_num=pitch_of(lane.tab_ref, tab),
        tab=tab,
    )
    lane.notes.append(note)
    lane.sort_events()
    ensure_extent(lane, note.end)
    return note


def delete_note(lane: Lane, note_id: Any) -> bool:
    """Remove a note; returns False when it was already absent."""
    target = to_int(note_id, 0)
    before = len(lane.notes)
    lane.notes = [n for n in lane.notes if n.id != target]
    return len(lane.notes) != before


def assign_tab(lane: Lane, note_id: Any, tab: Any) -> Note:
    note = require_note(lane, note_id)
    note.tab = clamp_tab(lane.tab_ref, tab if tab is not None else note.tab)
    note.midi_num = pitch_of(lane.tab_ref, note.tab)
    return note


def set_note_start_time(lane: Lane, note_id: Any, start_time: Any, snap: bool = False) -> Note:
    note = require_note(lane, note_id)
    note.start_time = snap_start(lane, start_time, snap)
    lane.sort_events()
    ensure_extent(lane, note.end)
    return note


def set_note_length(lane: Lane, note_id: Any, length: Any, snap: bool = False) -> Note:
    note = require_note(lane, note_id)
    note.length = snap_length(lane, length, snap)
    ensure_extent(lane, note.end)
    return note


def note_optimals(lane: Lane, note_id: Any) -> OptimalTabs:
    return optimals_for(lane, require_note(lane, note_id))


def assign_optimals(lane: Lane, note_ids: Iterable[Any]) -> None:
    """Move each selected note to its first playable position.

    Falls back to the first blocked position, then to the current one.
    Notes are processed in timeline order against the lane as it changes.
    """
    wanted = _id_set(note_ids)
    for note in lane.notes:
        if note.id not in wanted:
            continue
        found = optimals_for(lane, note)
        choice = (found.possible_tabs or found.blocked_tabs or [note.tab])[0]
        note.tab = (choice[0], choice[1])
        note.midi_num = pitch_of(lane.tab_ref, note.tab)
        note.optimals = list(found.possible_tabs)


# ── Chords ──────────────────────────────────────────────────


def make_chord(lane: Lane, note_ids: Iterable[Any]) -> Chord:
    wanted = _id_set(note_ids)
    notes = sorted(
        (n for n in lane.notes if n.id in wanted),
        key=lambda n: (n.start_time, n.tab[0]),
    )
    if len(notes) < 2:
        raise InvalidSelection("Select at least two notes.")

    start = min(n.start_time for n in notes)
    end = max(n.start_time + clamp_event_length(n.length) for n in notes)
    tabs = [n.tab for n in notes]
    chord = Chord(
        id=lane.next_chord_id(),
        start_time=start,
        length=clamp_event_length(end - start),
        original_midi=[n.midi_num or pitch_of(lane.tab_ref, n.tab) for n in notes],
        current_tabs=list(tabs),
        og_tabs=list(tabs),
    )
    lane.chords.append(chord)
    lane.notes = [n for n in lane.notes if n.id not in wanted]
    lane.sort_events()
    return chord


def delete_chord(lane: Lane, chord_id: Any) -> bool:
    target = to_int(chord_id, 0)
    before = len(lane.chords)
    lane.chords = [c for c in lane.chords if c.id != target]
    return len(lane.chords) != before


def disband_chord(lane: Lane, chord_id: Any) -> list[Note]:
    """Split a chord back into one note per current tab."""
    chord = require_chord(lane, chord_id)
    base_id = lane.next_note_id()
    notes = [
        Note(
            id=base_id + offset,
            start_time=chord.start_time,
            length=chord.length,
            midi_num=pitch_of(lane.tab_ref, tab),
            tab=(tab[0], tab[1]),
        )
        for offset, tab in enumerate(chord.current_tabs)
    ]
    lane.notes.extend(notes)
    lane.chords = [c for c in lane.chords if c.id != chord.id]
    lane.sort_events()
    return notes


def slice_chord(lane: Lane, chord_id: Any, time: Any) -> Chord:
    """Cut a chord in two at *time*; both halves keep the same fingering."""
    chord = require_chord(lane, chord_id)
    original_end = chord.start_time + clamp_event_length(chord.length)
    split = to_int(time, chord.start_time)
    if not chord.start_time < split < original_end:
        raise InvalidRange(
            f"Slice time {split} is outside chord span "
            f"({chord.start_time}, {original_end})."
        )
    chord.length = clamp_event_length(split - chord.start_time)
    tail = Chord(
        id=lane.next_chord_id(),
        start_time=split,
        length=clamp_event_length(original_end - split),
        original_midi=list(chord.original_midi),
        current_tabs=list(chord.current_tabs),
        og_tabs=list(chord.og_tabs),
    )
    lane.chords.append(tail)
    lane.sort_events()
    return tail


def set_chord_start_time(lane: Lane, chord_id: Any, start_time: Any, snap: bool = False) -> Chord:
    chord = require_chord(lane, chord_id)
    chord.start_time = snap_start(lane, start_time, snap)
    lane.sort_events()
    ensure_extent(lane, chord.end)
    return chord


def set_chord_length(lane: Lane, chord_id: Any, length: Any, snap: bool = False) -> Chord:
    chord = require_chord(lane, chord_id)
    chord.length = snap_length(lane, length, snap)
    ensure_extent(lane, chord.end)
    return chord


def set_chord_tabs(lane: Lane, chord_id: Any, tabs: list[Any]) -> Chord:
    chord = require_chord(lane, chord_id)
    tabs = list(tabs or [])
    if len(tabs) != len(chord.original_midi):
        raise InvalidSelection(
            f"Chord {chord.id} needs {len(chord.original_midi)} tabs, got {len(tabs)}."
        )
    chord.current_tabs = [clamp_tab(lane.tab_ref, tab) for tab in tabs]
    return chord


def shift_chord_octave(lane: Lane, chord_id: Any, direction: Any) -> Chord:
    """Move every current tab one octave up (direction > 0) or down (< 0)."""
    chord = require_chord(lane, chord_id)
    step = to_int(direction, 0)
    delta = ((step > 0) - (step < 0)) * OCTAVE
    chord.current_tabs = [
        (s, clamp(f + delta, 0, max_fret(lane.tab_ref, s))) for s, f in chord.current_tabs
    ]
    return chord


def chord_alternatives(lane: Lane, chord_id: Any) -> list[list[TabCoord]]:
    """The distinct fingerings tracked for a chord: current, then original."""
    chord = require_chord(lane, chord_id)
    current = list(chord.current_tabs)
    original = list(chord.og_tabs)
    return [current] if original == current else [current, original]
