"""Host-facing operation contracts for one canvas.

``CanvasEditor`` binds a canvas key to a :class:`CanvasStore` and exposes
every engine operation.  Each mutation produces a new canvas value, stores
it, and records it in the undo history; queries never change state.
Mutations return the whole updated lane (and canvas) in a
:class:`LaneResult`, or the new :class:`Canvas` for canvas-level edits.

Two persistence channels are offered: :meth:`draft` accepts a full
snapshot silently and never raises, while :meth:`commit` bumps the version
and is the authoritative save point.
"""

from __future__ import annotations

import logging
from typing import Any

from . import bars, canvas as canvas_ops, codec, cuts, events
from .constants import DEFAULT_BAR_WIDTH, DEFAULT_BARS_PER_ROW, MAX_HISTORY
from .errors import NotFound, TabEngineError
from .fretboard import OptimalTabs
from .history import CanvasHistory
from .model import Canvas, Lane, Stamp, TabCoord
from .schema import canvas_from_dict
from .store import CanvasStore, StoreKey
from .tab_text import render_tab_text, split_tab_segments, tab_text_to_stamps

log = logging.getLogger(__name__)

LaneResult = canvas_ops.LaneResult


def _delete_note(lane: Lane, note_id: Any) -> None:
    if not events.delete_note(lane, note_id):
        raise NotFound("Note not found.")


def _delete_chord(lane: Lane, chord_id: Any) -> None:
    if not events.delete_chord(lane, chord_id):
        raise NotFound("Chord not found.")


class CanvasEditor:
    """Single-writer editing session over one stored canvas."""

    def __init__(
        self,
        store: CanvasStore,
        session_id: str,
        canvas_id: str = "local",
        history_limit: int = MAX_HISTORY,
        snap_to_grid: bool = False,
    ) -> None:
        self._store = store
        self._key = StoreKey(session_id, canvas_id)
        existing = store.get(self._key)
        self._canvas: Canvas = existing if existing is not None else canvas_ops.new_canvas(canvas_id)
        self._history = CanvasHistory(self._canvas, history_limit)
        self.snap_to_grid = snap_to_grid

    @classmethod
    def from_config(cls, store: CanvasStore, session_id: str, canvas_id: str = "local", config=None) -> CanvasEditor:
        if config is None:
            from .config import get_config
            config = get_config()
        return cls(
            store,
            session_id,
            canvas_id,
            history_limit=config.get("history.max_entries", MAX_HISTORY),
            snap_to_grid=bool(config.get("editor.snap_to_grid", False)),
        )

    # ── Properties ──────────────────────────────────────────

    @property
    def key(self) -> StoreKey:
        return self._key

    @property
    def canvas(self) -> Canvas:
        return self._canvas.copy()

    @property
    def can_undo(self) -> bool:
        return self._history.can_undo

    @property
    def can_redo(self) -> bool:
        return self._history.can_redo

    def lane(self, lane_id: str) -> Lane:
        return canvas_ops.require_lane(self._canvas, lane_id)[1].copy()

    def summary(self) -> dict:
        return canvas_ops.summary(self._canvas)

    # ── Internals ───────────────────────────────────────────

    def _apply(self, canvas: Canvas) -> Canvas:
        self._canvas = canvas.copy()
        self._store.put(self._key, canvas)
        self._history.record(canvas)
        return canvas

    def _advance(self, canvas: Canvas) -> Canvas:
        """Stamp *canvas* with a version above the current one."""
        canvas.version = max(canvas.version, self._canvas.version)
        return canvas_ops.touch(canvas)

    def _snap(self, snap: bool | None) -> bool:
        return self.snap_to_grid if snap is None else snap

    def _lane_op(self, lane_id: str, mutate, *args, **kwargs) -> LaneResult:
        result = canvas_ops.mutate_lane(self._canvas, lane_id, mutate, *args, **kwargs)
        self._apply(result.canvas)
        return result

    def _query_lane(self, lane_id: str) -> Lane:
        return canvas_ops.require_lane(self._canvas, lane_id)[1]

    # ── Persistence channels ────────────────────────────────

    def draft(self, snapshot: Any) -> bool:
        """Accept a full client snapshot; failures are logged, never raised."""
        if not isinstance(snapshot, dict):
            log.warning("Rejected draft for %s: snapshot is %s", self._key, type(snapshot).__name__)
            return False
        try:
            canvas = canvas_from_dict(snapshot, self._key.canvas_id)
        except (TabEngineError, ValueError, TypeError, AttributeError):
            log.warning("Rejected draft for %s", self._key, exc_info=True)
            return False
        canvas.id = self._key.canvas_id
        self._apply(self._advance(canvas))
        return True

    def commit(self) -> Canvas:
        canvas = canvas_ops.touch(self._canvas.copy())
        self._canvas = canvas
        self._store.put(self._key, canvas)
        log.info("Committed canvas %s at version %d", canvas.id, canvas.version)
        return canvas.copy()

    def delete(self) -> bool:
        return self._store.delete(self._key)

    def undo(self) -> Canvas | None:
        return self._restore(self._history.undo())

    def redo(self) -> Canvas | None:
        return self._restore(self._history.redo())

    def _restore(self, canvas: Canvas | None) -> Canvas | None:
        if canvas is None:
            return None
        canvas = self._advance(canvas)
        self._canvas = canvas.copy()
        self._store.put(self._key, canvas)
        return canvas

    # ── Notes ───────────────────────────────────────────────

    def add_note(self, lane_id: str, tab: Any, start_time: Any, length: Any, snap: bool | None = None) -> LaneResult:
        return self._lane_op(lane_id, events.add_note, tab, start_time, length, snap=self._snap(snap))

    def delete_note(self, lane_id: str, note_id: Any) -> LaneResult:
        return self._lane_op(lane_id, _delete_note, note_id)

    def assign_tab(self, lane_id: str, note_id: Any, tab: Any) -> LaneResult:
        return self._lane_op(lane_id, events.assign_tab, note_id, tab)

    def set_note_start_time(self, lane_id: str, note_id: Any, start_time: Any, snap: bool | None = None) -> LaneResult:
        return self._lane_op(lane_id, events.set_note_start_time, note_id, start_time, snap=self._snap(snap))

    def set_note_length(self, lane_id: str, note_id: Any, length: Any, snap: bool | None = None) -> LaneResult:
        return self._lane_op(lane_id, events.set_note_length, note_id, length, snap=self._snap(snap))

    def note_optimals(self, lane_id: str, note_id: Any) -> OptimalTabs:
        return events.note_optimals(self._query_lane(lane_id), note_id)

    def assign_optimals(self, lane_id: str, note_ids: list[Any]) -> LaneResult:
        return self._lane_op(lane_id, events.assign_optimals, note_ids)

    # ── Chords ──────────────────────────────────────────────

    def make_chord(self, lane_id: str, note_ids: list[Any]) -> LaneResult:
        return self._lane_op(lane_id, events.make_chord, note_ids)

    def delete_chord(self, lane_id: str, chord_id: Any) -> LaneResult:
        return self._lane_op(lane_id, _delete_chord, chord_id)

    def disband_chord(self, lane_id: str, chord_id: Any) -> LaneResult:
        return self._lane_op(lane_id, events.disband_chord, chord_id)

    def slice_chord(self, lane_id: str, chord_id: Any, time: Any) -> LaneResult:
        return self._lane_op(lane_id, events.slice_chord, chord_id, time)

    def set_chord_start_time(self, lane_id: str, chord_id: Any, start_time: Any, snap: bool | None = None) -> LaneResult:
        return self._lane_op(lane_id, events.set_chord_start_time, chord_id, start_time, snap=self._snap(snap))

    def set_chord_length(self, lane_id: str, chord_id: Any, length: Any, snap: bool | None = None) -> LaneResult:
        return self._lane_op(lane_id, events.set_chord_length, chord_id, length, snap=self._snap(snap))

    def set_chord_tabs(self, lane_id: str, chord_id: Any, tabs: list[Any]) -> LaneResult:
        return self._lane_op(lane_id, events.set_chord_tabs, chord_id, tabs)

    def shift_chord_octave(self, lane_id: str, chord_id: Any, direction: Any) -> LaneResult:
        return self._lane_op(lane_id, events.shift_chord_octave, chord_id, direction)

    def chord_alternatives(self, lane_id: str, chord_id: Any) -> list[list[TabCoord]]:
        return events.chord_alternatives(self._query_lane(lane_id), chord_id)

    # ── Bars ────────────────────────────────────────────────

    def add_bars(self, lane_id: str, count: Any = 1) -> LaneResult:
        return self._lane_op(lane_id, bars.add_bars, count)

    def remove_bar(self, lane_id: str, index: Any) -> LaneResult:
        return self._lane_op(lane_id, bars.remove_bar, index)

    def reorder_bar(self, lane_id: str, from_index: Any, to_index: Any) -> LaneResult:
        return self._lane_op(lane_id, bars.reorder_bar, from_index, to_index)

    # ── Cut segments ────────────────────────────────────────

    def generate_cuts(self, lane_id: str) -> LaneResult:
        return self._lane_op(lane_id, cuts.generate)

    def apply_manual_cuts(self, lane_id: str, segments: list[Any]) -> LaneResult:
        return self._lane_op(lane_id, cuts.apply_manual, segments)

    def shift_cut_boundary(self, lane_id: str, index: Any, new_time: Any) -> LaneResult:
        return self._lane_op(lane_id, cuts.shift_boundary, index, new_time)

    def insert_cut(self, lane_id: str, time: Any, coord: Any = None) -> LaneResult:
        return self._lane_op(lane_id, cuts.insert_at, time, coord)

    def delete_cut_boundary(self, lane_id: str, index: Any) -> LaneResult:
        return self._lane_op(lane_id, cuts.delete_boundary, index)

    # ── Import / export ─────────────────────────────────────

    def export_stamps(self, lane_id: str) -> list[Stamp]:
        return codec.export_stamps(self._query_lane(lane_id))

    def export_payload(self, lane_id: str) -> dict:
        return codec.export_payload(self._query_lane(lane_id))

    def import_stamps(self, lane_id: str, stamps: list[Any], append: bool = False, total_frames: Any = None) -> LaneResult:
        return self._lane_op(lane_id, codec.import_stamps, stamps, append, total_frames)

    def import_tab_text(self, lane_id: str, text: str, append: bool = False) -> LaneResult:
        stamps, total_frames = tab_text_to_stamps(split_tab_segments(text))
        return self.import_stamps(lane_id, stamps, append, total_frames)

    def render(self, lane_id: str, bars_per_row: int = DEFAULT_BARS_PER_ROW, bar_width: int = DEFAULT_BAR_WIDTH) -> str:
        return render_tab_text(self._query_lane(lane_id), bars_per_row, bar_width)

    # ── Lanes / canvas ──────────────────────────────────────

    def add_lane(self, name: Any = None) -> LaneResult:
        result = canvas_ops.add_lane(self._canvas, name)
        self._apply(result.canvas)
        return result

    def remove_lane(self, lane_id: str) -> Canvas:
        return self._apply(canvas_ops.remove_lane(self._canvas, lane_id))

    def reorder_lane(self, lane_id: str, to_index: Any) -> Canvas:
        return self._apply(canvas_ops.reorder_lane(self._canvas, lane_id, to_index))

    def rename_canvas(self, name: Any) -> Canvas:
        return self._apply(canvas_ops.rename_canvas(self._canvas, name))

    def rename_lane(self, lane_id: str, name: Any) -> LaneResult:
        result = canvas_ops.rename_lane(self._canvas, lane_id, name)
        self._apply(result.canvas)
        return result

    def set_seconds_per_bar(self, seconds: Any, lane_id: str | None = None) -> Canvas:
        if lane_id is None:
            return self._apply(canvas_ops.set_seconds_per_bar(self._canvas, seconds))
        return self._apply(canvas_ops.set_lane_seconds_per_bar(self._canvas, lane_id, seconds).canvas)

    def set_time_signature(self, lane_id: str, time_signature: Any) -> LaneResult:
        result = canvas_ops.set_time_signature(self._canvas, lane_id, time_signature)
        self._apply(result.canvas)
        return result
