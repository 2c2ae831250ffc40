"""Tests for fretboard — TabRef helpers and the position solver."""

from __future__ import annotations

from tabforge.core.fretboard import (
    OptimalTabs,
    all_positions_for,
    build_default_tab_ref,
    clamp_event_length,
    clamp_tab,
    max_fret,
    occupied_strings,
    optimals_for,
    pitch_of,
)
from tabforge.core.model import Chord, Note


def _note(note_id, tab, start=0, length=40, midi=0):
    return Note(id=note_id, start_time=start, length=length, midi_num=midi, tab=tab)


# ── TabRef ──────────────────────────────────────────────────


class TestTabRef:
    def test_default_shape(self):
        ref = build_default_tab_ref()
        assert len(ref) == 6
        assert all(len(row) == 23 for row in ref)

    def test_default_pitches(self):
        ref = build_default_tab_ref()
        assert ref[0][0] == 64
        assert ref[5][0] == 40
        assert ref[5][22] == 62

    def test_custom_fret_count(self):
        ref = build_default_tab_ref(12)
        assert max_fret(ref) == 12

    def test_max_fret_without_ref(self):
        assert max_fret(None) == 22
        assert max_fret([[1, 2, 3]], 4) == 22

    def test_max_fret_from_row_width(self):
        assert max_fret([[1, 2, 3]], 0) == 2


class TestClamp:
    def test_default_coord(self):
        assert clamp_tab(None) == (2, 0)
        assert clamp_tab(None, "junk") == (2, 0)
        assert clamp_tab(None, [1]) == (2, 0)

    def test_clamps_both_axes(self):
        ref = build_default_tab_ref()
        assert clamp_tab(ref, (9, 40)) == (5, 22)
        assert clamp_tab(ref, (-1, -3)) == (0, 0)

    def test_coerces_strings(self):
        assert clamp_tab(None, ["1", "4"]) == (1, 4)

    def test_fret_bound_follows_row(self):
        ref = build_default_tab_ref(5)
        assert clamp_tab(ref, (0, 9)) == (0, 5)

    def test_event_length(self):
        assert clamp_event_length(0) == 1
        assert clamp_event_length(5000) == 800
        assert clamp_event_length("abc") == 1
        assert clamp_event_length(40) == 40


# ── Solver ──────────────────────────────────────────────────


class TestPitchOf:
    def test_lookup(self):
        ref = build_default_tab_ref()
        assert pitch_of(ref, (0, 3)) == 67
        assert pitch_of(ref, (4, 5)) == 50

    def test_standard_fallback_without_ref(self):
        assert pitch_of(None, (5, 0)) == 40
        assert pitch_of(None, (1, 1)) == 60

    def test_fallback_past_row_end(self):
        assert pitch_of([[10]], (0, 5)) == 69

    def test_unknown_string(self):
        assert pitch_of(None, (7, 0)) == 0


class TestAllPositions:
    def test_every_cell_for_pitch(self):
        ref = build_default_tab_ref()
        assert all_positions_for(ref, 64) == [(0, 0), (1, 5), (2, 9), (3, 14), (4, 19)]

    def test_no_match_returns_default(self):
        ref = build_default_tab_ref()
        assert all_positions_for(ref, 20) == [(2, 0)]

    def test_never_empty_without_ref(self):
        assert all_positions_for(None, 64) == [(2, 0)]


class TestOccupiedStrings:
    def test_overlap_only(self, lane):
        lane.notes = [_note(1, (0, 3), 0, 40), _note(2, (1, 3), 40, 40)]
        assert occupied_strings(lane, 0, 40) == {0}
        assert occupied_strings(lane, 30, 50) == {0, 1}

    def test_exclude_note(self, lane):
        lane.notes = [_note(1, (0, 3))]
        assert occupied_strings(lane, 0, 40, exclude_note=1) == set()

    def test_chord_strings(self, lane):
        lane.chords = [Chord(1, 0, 40, [67, 61], [(0, 3), (1, 2)], [(0, 3), (1, 2)])]
        assert occupied_strings(lane, 10, 20) == {0, 1}


class TestOptimals:
    def test_free_lane_all_possible(self, lane):
        note = _note(1, (0, 3), midi=67)
        lane.notes = [note]
        found = optimals_for(lane, note)
        assert found.blocked_tabs == []
        assert found.possible_tabs == [(0, 3), (1, 8), (2, 12), (3, 17), (4, 22)]

    def test_same_string_overlap_blocks_each_other(self, lane):
        a = _note(1, (0, 3), 0, 40, 67)
        b = _note(2, (0, 5), 20, 40, 69)
        lane.notes = [a, b]

        found_a = optimals_for(lane, a)
        assert (0, 3) in found_a.blocked_tabs
        assert (0, 3) not in found_a.possible_tabs

        found_b = optimals_for(lane, b)
        assert (0, 5) in found_b.blocked_tabs
        assert (0, 5) not in found_b.possible_tabs

    def test_touching_ranges_do_not_block(self, lane):
        a = _note(1, (0, 3), 0, 40, 67)
        b = _note(2, (0, 5), 40, 40, 69)
        lane.notes = [a, b]
        assert optimals_for(lane, a).blocked_tabs == []

    def test_everything_blocked_still_lists_positions(self, lane):
        note = _note(1, (0, 3), 0, 40, 67)
        chord = Chord(1, 0, 40, [], [(s, 0) for s in range(6)], [])
        lane.notes = [note]
        lane.chords = [chord]
        found = optimals_for(lane, note)
        assert found.possible_tabs == []
        assert len(found.all_tabs) == 5

    def test_to_dict(self):
        found = OptimalTabs([(0, 3)], [(1, 8)])
        assert found.to_dict() == {"possibleTabs": [[0, 3]], "blockedTabs": [[1, 8]]}
