"""Canvas composition: lane lifecycle, tempo, naming, and versioning.

Every function here is a pure transition: it copies the canvas, applies the
change to the copy, bumps ``version`` and ``updated_at``, and returns the
new value.  The input canvas is never modified.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, NamedTuple, TypeVar

from ..utils.numbers import clamp, to_int, to_number
from .constants import (
    DEFAULT_SECONDS_PER_BAR,
    DEFAULT_TIME_SIGNATURE,
    DEFAULT_TOTAL_FRAMES,
    FRAMES_PER_BAR,
    MIN_SECONDS_PER_BAR,
    TIME_SIGNATURE_MAX,
    TIME_SIGNATURE_MIN,
)
from .cuts import reset
from .errors import InvalidOperation, NotFound
from .fretboard import build_default_tab_ref
from .model import Canvas, Lane, utc_now

T = TypeVar("T")


class LaneRef(NamedTuple):
    """Address of one lane inside one canvas."""

    canvas_id: str
    lane_id: str


@dataclass
class LaneResult:
    """Outcome of a lane mutation: the whole new canvas and the touched lane."""

    canvas: Canvas
    lane: Lane
    value: Any = None

    @property
    def ref(self) -> LaneRef:
        return LaneRef(self.canvas.id, self.lane.id)


def clean_seconds(value: Any, fallback: float = DEFAULT_SECONDS_PER_BAR) -> float:
    seconds = to_number(value, fallback)
    return max(MIN_SECONDS_PER_BAR, seconds if seconds > 0 else fallback)


def clean_name(value: Any, fallback: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return fallback


# ── Construction ────────────────────────────────────────────


def new_lane(
    lane_id: str,
    name: str = "Editor 1",
    seconds_per_bar: float = DEFAULT_SECONDS_PER_BAR,
    time_signature: int = DEFAULT_TIME_SIGNATURE,
) -> Lane:
    lane = Lane(
        id=lane_id,
        name=name,
        total_frames=DEFAULT_TOTAL_FRAMES,
        time_signature=time_signature,
        seconds_per_bar=clean_seconds(seconds_per_bar),
        tab_ref=build_default_tab_ref(),
    )
    reset(lane)
    return lane


def new_canvas(
    canvas_id: str,
    name: str = "Untitled",
    seconds_per_bar: float = DEFAULT_SECONDS_PER_BAR,
) -> Canvas:
    seconds = clean_seconds(seconds_per_bar)
    return Canvas(
        id=canvas_id,
        name=clean_name(name, "Untitled"),
        seconds_per_bar=seconds,
        lanes=[new_lane("ed-1", "Editor 1", seconds)],
    )


def touch(canvas: Canvas) -> Canvas:
    canvas.version = max(1, canvas.version) + 1
    canvas.updated_at = utc_now()
    return canvas


# ── Lookup ──────────────────────────────────────────────────


def require_lane(canvas: Canvas, lane_id: str) -> tuple[int, Lane]:
    found = canvas.find_lane(lane_id) if lane_id else None
    if found is None:
        raise NotFound(f"Track {lane_id!r} not found.")
    return found


def summary(canvas: Canvas) -> dict:
    """List-view metadata for one canvas."""
    return {
        "id": canvas.id,
        "name": canvas.name,
        "updatedAt": canvas.updated_at,
        "version": canvas.version,
        "framesPerBar": FRAMES_PER_BAR,
        "totalFrames": max([FRAMES_PER_BAR, *(lane.total_frames for lane in canvas.lanes)]),
        "noteCount": sum(len(lane.notes) for lane in canvas.lanes),
        "chordCount": sum(len(lane.chords) for lane in canvas.lanes),
    }


# ── Lane mutation ───────────────────────────────────────────


def mutate_lane(canvas: Canvas, lane_id: str, mutate: Callable[..., T], *args, **kwargs) -> LaneResult:
    """Apply ``mutate(lane, *args, **kwargs)`` to a copy of one lane.

    If *mutate* raises, the original canvas is left exactly as it was.
    """
    index, lane = require_lane(canvas, lane_id)
    draft = lane.copy()
    value = mutate(draft, *args, **kwargs)
    draft.updated_at = utc_now()
    nxt = canvas.copy()
    nxt.lanes[index] = draft
    return LaneResult(touch(nxt), draft, value)


def set_lane_seconds_per_bar(canvas: Canvas, lane_id: str, seconds: Any) -> LaneResult:
    def apply(lane: Lane) -> None:
        lane.seconds_per_bar = clean_seconds(seconds)
    return mutate_lane(canvas, lane_id, apply)


def set_time_signature(canvas: Canvas, lane_id: str, time_signature: Any) -> LaneResult:
    def apply(lane: Lane) -> None:
        lane.time_signature = clamp(
            to_int(time_signature, DEFAULT_TIME_SIGNATURE), TIME_SIGNATURE_MIN, TIME_SIGNATURE_MAX
        )
    return mutate_lane(canvas, lane_id, apply)


def rename_lane(canvas: Canvas, lane_id: str, name: Any) -> LaneResult:
    index, _ = require_lane(canvas, lane_id)

    def apply(lane: Lane) -> None:
        lane.name = clean_name(name, f"Editor {index + 1}")
    return mutate_lane(canvas, lane_id, apply)


# ── Canvas mutation ─────────────────────────────────────────


def rename_canvas(canvas: Canvas, name: Any) -> Canvas:
    nxt = canvas.copy()
    nxt.name = clean_name(name, "Untitled")
    return touch(nxt)


def set_seconds_per_bar(canvas: Canvas, seconds: Any) -> Canvas:
    """Set the shared tempo and propagate it to every lane."""
    nxt = canvas.copy()
    nxt.seconds_per_bar = clean_seconds(seconds)
    for lane in nxt.lanes:
        lane.seconds_per_bar = nxt.seconds_per_bar
    return touch(nxt)


def _free_lane_id(canvas: Canvas) -> tuple[str, int]:
    taken = {lane.id for lane in canvas.lanes}
    number = len(canvas.lanes) + 1
    while f"ed-{number}" in taken:
        number += 1
    return f"ed-{number}", number


def add_lane(canvas: Canvas, name: Any = None) -> LaneResult:
    lane_id, number = _free_lane_id(canvas)
    lane = new_lane(lane_id, clean_name(name, f"Editor {number}"), canvas.seconds_per_bar)
    nxt = canvas.copy()
    nxt.lanes.append(lane)
    return LaneResult(touch(nxt), lane)


def remove_lane(canvas: Canvas, lane_id: str) -> Canvas:
    if len(canvas.lanes) <= 1:
        raise InvalidOperation("Cannot remove the final track.")
    index, _ = require_lane(canvas, lane_id)
    nxt = canvas.copy()
    del nxt.lanes[index]
    return touch(nxt)


def reorder_lane(canvas: Canvas, lane_id: str, to_index: Any) -> Canvas:
    source, _ = require_lane(canvas, lane_id)
    target = clamp(to_int(to_index, source), 0, len(canvas.lanes) - 1)
    if source == target:
        return canvas
    nxt = canvas.copy()
    moved = nxt.lanes.pop(source)
    nxt.lanes.insert(target, moved)
    return touch(nxt)
