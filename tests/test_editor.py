"""Tests for editor — host-facing operations over a stored canvas."""

from __future__ import annotations

import pytest

from tabforge.core.config import ConfigManager
from tabforge.core.editor import CanvasEditor
from tabforge.core.errors import InvalidOperation, InvalidSelection, NotFound
from tabforge.core.store import MemoryCanvasStore, StoreKey


@pytest.fixture
def editor(store):
    return CanvasEditor(store, "session-1")


# ── Basics ──────────────────────────────────────────────────


class TestEditorBasics:
    def test_creates_default_canvas(self, editor):
        assert editor.key == StoreKey("session-1", "local")
        assert [lane.id for lane in editor.canvas.lanes] == ["ed-1"]

    def test_loads_existing(self, store):
        first = CanvasEditor(store, "s")
        first.rename_canvas("Saved")
        second = CanvasEditor(store, "s")
        assert second.canvas.name == "Saved"

    def test_mutation_persists_to_store(self, editor, store):
        result = editor.add_note("ed-1", (0, 3), 100, 40)
        assert result.lane.notes[0].id == 1
        assert len(store.get(editor.key).lanes[0].notes) == 1

    def test_returned_values_are_detached(self, editor):
        result = editor.add_note("ed-1", (0, 3), 100, 40)
        result.canvas.lanes[0].notes.clear()
        assert len(editor.lane("ed-1").notes) == 1

    def test_unknown_lane(self, editor):
        with pytest.raises(NotFound):
            editor.add_note("ed-7", (0, 0), 0, 10)

    def test_summary(self, editor):
        editor.add_note("ed-1", (0, 3), 0, 40)
        assert editor.summary()["noteCount"] == 1


class TestUndoRedo:
    def test_undo_redo(self, editor):
        editor.add_note("ed-1", (0, 3), 0, 40)
        assert editor.can_undo
        undone = editor.undo()
        assert undone.lanes[0].notes == []
        assert editor.lane("ed-1").notes == []
        redone = editor.redo()
        assert len(redone.lanes[0].notes) == 1

    def test_failed_operation_records_nothing(self, editor):
        with pytest.raises(NotFound):
            editor.delete_note("ed-1", 99)
        assert not editor.can_undo

    def test_noop_records_nothing(self, editor):
        editor.reorder_lane("ed-1", 0)
        editor.shift_cut_boundary("ed-1", 5, 100)
        assert not editor.can_undo

    def test_undo_restores_store(self, editor, store):
        editor.rename_canvas("A")
        editor.undo()
        assert store.get(editor.key).name == "Untitled"

    def test_undo_redo_results_are_detached(self, editor):
        editor.add_note("ed-1", (0, 3), 0, 40)
        editor.add_note("ed-1", (0, 5), 100, 40)
        editor.undo().lanes[0].notes.clear()
        assert len(editor.lane("ed-1").notes) == 1
        editor.redo().lanes[0].notes.clear()
        assert len(editor.lane("ed-1").notes) == 2

    def test_version_keeps_increasing(self, editor, store):
        versions = [editor.add_note("ed-1", (0, 3), 0, 40).canvas.version]
        versions.append(editor.undo().version)
        versions.append(editor.redo().version)
        versions.append(editor.undo().version)
        versions.append(editor.add_note("ed-1", (1, 2), 0, 40).canvas.version)
        assert versions == sorted(set(versions))
        assert store.get(editor.key).version == versions[-1]


# ── Operations ──────────────────────────────────────────────


class TestOperations:
    def test_snap_default(self, store):
        editor = CanvasEditor(store, "s", snap_to_grid=True)
        note = editor.add_note("ed-1", (0, 0), 130, 50).value
        assert (note.start_time, note.length) == (120, 120)
        note = editor.add_note("ed-1", (0, 0), 130, 50, snap=False).value
        assert (note.start_time, note.length) == (130, 50)

    def test_chord_flow(self, editor):
        editor.add_note("ed-1", (0, 3), 0, 40)
        editor.add_note("ed-1", (1, 2), 0, 40)
        chord = editor.make_chord("ed-1", [1, 2]).value
        assert editor.chord_alternatives("ed-1", chord.id) == [[(0, 3), (1, 2)]]
        editor.shift_chord_octave("ed-1", chord.id, 1)
        assert len(editor.chord_alternatives("ed-1", chord.id)) == 2
        editor.slice_chord("ed-1", chord.id, 20)
        assert len(editor.lane("ed-1").chords) == 2
        editor.disband_chord("ed-1", chord.id)
        assert len(editor.lane("ed-1").notes) == 2

    def test_chord_errors(self, editor):
        editor.add_note("ed-1", (0, 3), 0, 40)
        with pytest.raises(InvalidSelection):
            editor.make_chord("ed-1", [1])
        with pytest.raises(NotFound):
            editor.delete_chord("ed-1", 1)

    def test_note_edits(self, editor):
        editor.add_note("ed-1", (0, 3), 0, 40)
        editor.assign_tab("ed-1", 1, (1, 8))
        editor.set_note_start_time("ed-1", 1, 200)
        lane = editor.set_note_length("ed-1", 1, 80).lane
        note = lane.notes[0]
        assert (note.tab, note.start_time, note.length, note.midi_num) == ((1, 8), 200, 80, 67)
        assert editor.note_optimals("ed-1", 1).possible_tabs[0] == (0, 3)
        editor.assign_optimals("ed-1", [1])
        assert editor.lane("ed-1").notes[0].tab == (0, 3)

    def test_bars_and_cuts(self, editor):
        editor.add_bars("ed-1", 2)
        editor.insert_cut("ed-1", 500, (1, 1))
        editor.delete_cut_boundary("ed-1", 0)
        editor.remove_bar("ed-1", 3)
        editor.reorder_bar("ed-1", 0, 2)
        lane = editor.generate_cuts("ed-1").lane
        assert lane.total_frames == 1440
        editor.apply_manual_cuts("ed-1", [[[0, 100], [0, 0]], [[100, 1440], [1, 1]]])
        assert len(editor.lane("ed-1").cut_segments) == 2

    def test_import_export(self, editor):
        editor.import_stamps("ed-1", [[0, [0, 3], 40], [100, [1, 2], 40]])
        assert editor.export_stamps("ed-1") == [(0, (0, 3), 40), (100, (1, 2), 40)]
        assert editor.export_payload("ed-1")["totalFrames"] == 960
        editor.import_tab_text("ed-1", "e|-3-|\nB|---|\nG|---|\nD|---|\nA|---|\nE|0--|\n", append=True)
        assert len(editor.lane("ed-1").notes) == 4
        assert editor.render("ed-1").startswith("e|3")

    def test_lanes(self, editor):
        added = editor.add_lane("Bass")
        assert added.lane.id == "ed-2"
        editor.rename_lane("ed-2", "Rhythm")
        editor.set_time_signature("ed-2", 3)
        editor.reorder_lane("ed-2", 0)
        assert [lane.id for lane in editor.canvas.lanes] == ["ed-2", "ed-1"]
        editor.set_seconds_per_bar(1.0, "ed-2")
        assert editor.lane("ed-2").seconds_per_bar == 1.0
        editor.set_seconds_per_bar(4.0)
        assert all(lane.seconds_per_bar == 4.0 for lane in editor.canvas.lanes)
        editor.remove_lane("ed-2")
        with pytest.raises(InvalidOperation):
            editor.remove_lane("ed-1")


# ── Persistence channels ────────────────────────────────────


class TestPersistence:
    def test_draft_accepts_snapshot(self, editor, store):
        other = CanvasEditor(MemoryCanvasStore(), "x", "elsewhere")
        other.add_note("ed-1", (0, 3), 0, 40)
        assert editor.draft(other.canvas.to_dict()) is True
        assert editor.canvas.id == "local"
        assert len(store.get(editor.key).lanes[0].notes) == 1

    def test_draft_never_lowers_version(self, editor, store):
        for name in ("a", "b", "c"):
            editor.rename_canvas(name)
        before = editor.canvas.version
        stale = CanvasEditor(MemoryCanvasStore(), "x").canvas.to_dict()
        assert stale["version"] < before
        assert editor.draft(stale) is True
        assert editor.canvas.version == before + 1
        assert store.get(editor.key).version == before + 1

    def test_draft_rejects_silently(self, editor):
        assert editor.draft("not a snapshot") is False
        assert editor.draft({"schemaVersion": 2, "lanes": [{"notes": 5}]}) is False
        assert editor.canvas.lanes[0].notes == []

    def test_commit_bumps_version(self, editor, store):
        before = editor.canvas.version
        committed = editor.commit()
        assert committed.version == before + 1
        assert store.get(editor.key).version == before + 1

    def test_delete(self, editor, store):
        editor.commit()
        assert editor.delete() is True
        assert editor.key not in store


class TestFromConfig:
    def test_reads_settings(self, tmp_path, store):
        config = ConfigManager(config_dir=tmp_path)
        config.set("editor.snap_to_grid", False)
        config.set("history.max_entries", 2)
        editor = CanvasEditor.from_config(store, "s", config=config)
        assert editor.snap_to_grid is False
        for name in ("a", "b", "c"):
            editor.rename_canvas(name)
        editor.undo()
        editor.undo()
        assert editor.undo() is None
