"""Stamp interchange with the transcription pipeline.

A stamp is ``(start_frame, (string, fret), length)``.  Export flattens
chords into one stamp per tab, so chord grouping does not survive a round
trip through stamps.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Iterable

from ..utils.numbers import to_int
from .constants import FRAMES_PER_BAR, STRING_LABELS
from .cuts import reset
from .fretboard import clamp_event_length, clamp_tab, pitch_of
from .model import Lane, Note, Stamp

log = logging.getLogger(__name__)


def _round_up_to_bar(frames: int) -> int:
    return math.ceil(max(0, frames) / FRAMES_PER_BAR) * FRAMES_PER_BAR


def export_stamps(lane: Lane) -> list[Stamp]:
    stamps: list[Stamp] = [
        (note.start_time, (note.tab[0], note.tab[1]), clamp_event_length(note.length))
        for note in lane.notes
    ]
    for chord in lane.chords:
        length = clamp_event_length(chord.length)
        stamps.extend((chord.start_time, (s, f), length) for s, f in chord.current_tabs)
    stamps.sort(key=lambda st: st[0])
    return stamps


def export_payload(lane: Lane) -> dict:
    """Stamps plus the timing metadata the pipeline expects alongside them."""
    return {
        "stamps": [[start, [s, f], length] for start, (s, f), length in export_stamps(lane)],
        "framesPerBar": FRAMES_PER_BAR,
        "fps": lane.fps,
        "totalFrames": lane.total_frames,
        "tabStrings": list(STRING_LABELS),
    }


def import_stamps(
    lane: Lane,
    stamps: Iterable[Any],
    append: bool = False,
    total_frames: Any = None,
) -> list[Note]:
    """Build one note per stamp.

    Replacing clears every note and chord first.  Appending shifts the
    imported stamps to start after the lane's last bar.  Malformed entries
    are skipped.
    """
    offset = _round_up_to_bar(lane.total_frames) if append else 0
    next_id = lane.next_note_id()
    if not append:
        lane.notes = []
        lane.chords = []

    imported: list[Note] = []
    extent = 0
    for entry in stamps or []:
        if not isinstance(entry, (list, tuple)) or len(entry) < 3:
            continue
        tab = clamp_tab(lane.tab_ref, entry[1])
        start = max(0, to_int(entry[0], 0)) + offset
        length = clamp_event_length(entry[2])
        imported.append(Note(
            id=next_id,
            start_time=start,
            length=length,
            midi_num=pitch_of(lane.tab_ref, tab),
            tab=tab,
        ))
        next_id += 1
        extent = max(extent, start + length)

    declared = offset + max(0, to_int(total_frames, 0)) if total_frames is not None else 0
    lane.notes.extend(imported)
    lane.sort_events()
    lane.total_frames = max(
        FRAMES_PER_BAR,
        lane.total_frames,
        _round_up_to_bar(extent),
        _round_up_to_bar(declared),
    )
    reset(lane)
    log.debug("Imported %d stamps into lane %s (append=%s)", len(imported), lane.id, append)
    return imported
