"""Tests for schema — snapshot normalization and legacy migration."""

from __future__ import annotations

from tabforge.core import canvas as canvas_ops
from tabforge.core import events
from tabforge.core.constants import SCHEMA_VERSION
from tabforge.core.model import CutSegment
from tabforge.core.schema import canvas_from_dict, migrate_canvas_dict

LEGACY = {
    "id": "c1",
    "name": "Song",
    "editors": [
        {
            "id": "ed-1",
            "name": "Lead",
            "framesPerMessure": 240,
            "fps": 120,
            "totalFrames": 480,
            "notes": [{"id": 1, "startTime": 120, "length": 20, "tab": [0, 3], "midiNum": 67}],
            "chords": [],
            "cutPositionsWithCoords": [[[0, 240], [1, 1]], [[240, 480], [2, 2]]],
        }
    ],
}


class TestRoundTrip:
    def test_current_layout(self, canvas):
        result = canvas_ops.mutate_lane(canvas, "ed-1", events.add_note, (0, 3), 100, 40)
        result = canvas_ops.mutate_lane(result.canvas, "ed-1", events.add_note, (1, 2), 100, 40)
        result = canvas_ops.mutate_lane(result.canvas, "ed-1", events.make_chord, [1, 2])
        result = canvas_ops.mutate_lane(result.canvas, "ed-1", events.add_note, (3, 5), 600, 40)
        result = canvas_ops.add_lane(result.canvas, "Bass")
        source = result.canvas

        data = source.to_dict()
        assert data["schemaVersion"] == SCHEMA_VERSION
        restored = canvas_from_dict(data)
        assert restored.same_content(source)
        assert restored.version == source.version

    def test_garbage_gives_default(self):
        restored = canvas_from_dict(None, "fallback")
        assert restored.id == "fallback"
        assert [lane.id for lane in restored.lanes] == ["ed-1"]


class TestLegacy:
    def test_migrate_keys(self):
        data = migrate_canvas_dict(LEGACY)
        assert data["schemaVersion"] == SCHEMA_VERSION
        assert "editors" not in data
        lane = data["lanes"][0]
        assert "cutSegments" in lane
        assert "framesPerMessure" not in lane
        assert lane["framesPerBar"] == 480

    def test_rescales_frames(self):
        restored = canvas_from_dict(LEGACY)
        assert restored.id == "c1"
        assert restored.name == "Song"
        lane = restored.lanes[0]
        assert lane.name == "Lead"
        assert lane.total_frames == 960
        assert lane.notes[0].start_time == 240
        assert lane.notes[0].length == 40
        assert lane.cut_segments == [CutSegment(0, 480, (1, 1)), CutSegment(480, 960, (2, 2))]

    def test_infers_tempo_from_fps(self):
        restored = canvas_from_dict(LEGACY)
        assert restored.seconds_per_bar == 2.0
        assert restored.lanes[0].seconds_per_bar == 2.0

    def test_rescale_rounds_half_up(self):
        raw = {"framesPerMessure": 960, "totalFrames": 960, "notes": [{"id": 1, "startTime": 5, "length": 3, "tab": [0, 0]}]}
        note = canvas_from_dict(raw).lanes[0].notes[0]
        assert (note.start_time, note.length) == (3, 2)

    def test_bare_lane(self):
        raw = {"totalFrames": 960, "notes": [{"id": 4, "startTime": 0, "length": 40, "tab": [1, 1]}]}
        restored = canvas_from_dict(raw, "guest")
        assert restored.id == "guest"
        assert len(restored.lanes) == 1
        assert restored.lanes[0].id == "ed-1"
        assert restored.lanes[0].notes[0].midi_num == 60


class TestNormalize:
    def _lane(self, **fields):
        return canvas_from_dict({"schemaVersion": 2, "lanes": [{"id": "ed-1", **fields}]}).lanes[0]

    def test_one_tab_chord_becomes_note(self):
        lane = self._lane(chords=[{"id": 1, "startTime": 0, "length": 40, "currentTabs": [[0, 3]]}])
        assert lane.chords == []
        assert [(n.tab, n.start_time) for n in lane.notes] == [((0, 3), 0)]

    def test_duplicate_ids(self):
        note = {"id": 1, "startTime": 0, "length": 40, "tab": [0, 0]}
        lane = self._lane(notes=[note, {**note, "startTime": 50}])
        assert sorted(n.id for n in lane.notes) == [1, 2]

    def test_total_covers_events(self):
        lane = self._lane(totalFrames=480, notes=[{"id": 1, "startTime": 1000, "length": 100, "tab": [0, 0]}])
        assert lane.total_frames == 1440
        assert lane.cut_segments == [CutSegment(0, 1440, (2, 0))]

    def test_total_rounded_to_bar(self):
        assert self._lane(totalFrames=500).total_frames == 960

    def test_clamps_tabs(self):
        lane = self._lane(notes=[{"id": 1, "startTime": 0, "length": 0, "tab": [9, 99]}])
        assert lane.notes[0].tab == (5, 22)
        assert lane.notes[0].length == 1

    def test_drops_tabless_notes(self):
        lane = self._lane(notes=[{"id": 1, "startTime": 0, "length": 40}, "junk"])
        assert lane.notes == []

    def test_chord_og_tabs_fallback(self):
        lane = self._lane(chords=[{"id": 1, "startTime": 0, "length": 40, "currentTabs": [[0, 3], [1, 2]]}])
        chord = lane.chords[0]
        assert chord.og_tabs == [(0, 3), (1, 2)]
        assert chord.original_midi == [67, 61]

    def test_duplicate_lane_ids(self):
        restored = canvas_from_dict({"schemaVersion": 2, "lanes": [{"id": "a"}, {"id": "a"}]})
        ids = [lane.id for lane in restored.lanes]
        assert len(set(ids)) == 2
