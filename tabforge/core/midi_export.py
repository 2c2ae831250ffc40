"""Save lanes and canvases as .mid files via mido.

A bar is written as four beats, so at 120 ticks per beat one frame is
exactly one tick and tempo follows directly from seconds-per-bar.
"""

from __future__ import annotations

from pathlib import Path

import mido

from ..utils.numbers import clamp, round_half_up
from .constants import FRAMES_PER_BAR
from .fretboard import clamp_event_length, pitch_of
from .model import Canvas, Lane

BEATS_PER_BAR = 4
TICKS_PER_BEAT = FRAMES_PER_BAR // BEATS_PER_BAR
DEFAULT_VELOCITY = 96


def tempo_bpm(seconds_per_bar: float) -> float:
    return 60.0 * BEATS_PER_BAR / max(0.1, seconds_per_bar)


def lane_note_events(lane: Lane) -> list[tuple[int, int, int]]:
    """``(start_frame, end_frame, midi)`` for every sounding pitch in a lane."""
    result = []
    for note in lane.notes:
        midi = note.midi_num or pitch_of(lane.tab_ref, note.tab)
        result.append((note.start_time, note.start_time + clamp_event_length(note.length), midi))
    for chord in lane.chords:
        end = chord.start_time + clamp_event_length(chord.length)
        for tab in chord.current_tabs:
            result.append((chord.start_time, end, pitch_of(lane.tab_ref, tab)))
    return result


def _build_track(lane: Lane, channel: int, velocity: int, ticks_per_beat: int) -> mido.MidiTrack:
    scale = ticks_per_beat / TICKS_PER_BEAT
    messages: list[tuple[int, int, mido.Message]] = []
    for start, end, midi in lane_note_events(lane):
        note = clamp(midi, 0, 127)
        # note_off sorts before note_on at the same tick
        messages.append((round_half_up(start * scale), 1, mido.Message(
            "note_on", note=note, velocity=velocity, channel=channel)))
        messages.append((round_half_up(end * scale), 0, mido.Message(
            "note_off", note=note, velocity=0, channel=channel)))
    messages.sort(key=lambda m: (m[0], m[1]))

    track = mido.MidiTrack()
    track.append(mido.MetaMessage("track_name", name=lane.name, time=0))
    prev_tick = 0
    for tick, _, msg in messages:
        track.append(msg.copy(time=max(0, tick - prev_tick)))
        prev_tick = tick
    track.append(mido.MetaMessage("end_of_track", time=0))
    return track


class MidiExporter:
    """Write lanes to standard MIDI files."""

    @staticmethod
    def save_lane(
        lane: Lane,
        file_path: str | Path,
        velocity: int = DEFAULT_VELOCITY,
        ticks_per_beat: int = TICKS_PER_BEAT,
    ) -> None:
        """Save one lane as a Type 0 MIDI file."""
        mid = mido.MidiFile(type=0, ticks_per_beat=ticks_per_beat)
        track = _build_track(lane, 0, velocity, ticks_per_beat)
        track.insert(0, mido.MetaMessage(
            "set_tempo", tempo=mido.bpm2tempo(tempo_bpm(lane.seconds_per_bar)), time=0))
        mid.tracks.append(track)
        Path(file_path).parent.mkdir(parents=True, exist_ok=True)
        mid.save(str(file_path))

    @staticmethod
    def save_canvas(
        canvas: Canvas,
        file_path: str | Path,
        velocity: int = DEFAULT_VELOCITY,
        ticks_per_beat: int = TICKS_PER_BEAT,
    ) -> None:
        """Save a canvas as a Type 1 file: conductor track plus one track per lane."""
        mid = mido.MidiFile(type=1, ticks_per_beat=ticks_per_beat)

        conductor = mido.MidiTrack()
        conductor.append(mido.MetaMessage(
            "set_tempo", tempo=mido.bpm2tempo(tempo_bpm(canvas.seconds_per_bar)), time=0))
        conductor.append(mido.MetaMessage("end_of_track", time=0))
        mid.tracks.append(conductor)

        for index, lane in enumerate(canvas.lanes):
            mid.tracks.append(_build_track(lane, index & 0x0F, velocity, ticks_per_beat))

        Path(file_path).parent.mkdir(parents=True, exist_ok=True)
        mid.save(str(file_path))
