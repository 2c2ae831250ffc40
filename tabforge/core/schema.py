"""Snapshot loading, normalization, and schema migration.

Snapshots are JSON-shaped dicts exchanged with the host.  ``schemaVersion``
tags the layout:

* **1** (or missing) — legacy layout.  A canvas holds ``editors``; a lane
  stores cuts under ``cutPositionsWithCoords`` and may use a different
  ``framesPerMessure``.  A bare lane snapshot may appear where a canvas is
  expected.
* **2** — current layout, as produced by ``Canvas.to_dict()``.

:func:`migrate_canvas_dict` lifts any supported snapshot to the current
layout; :func:`canvas_from_dict` then coerces every field into range.
"""

from __future__ import annotations

import math
from typing import Any

from ..utils.numbers import clamp_int, round_half_up, to_int, to_number
from .canvas import clean_name, clean_seconds, new_lane
from .constants import (
    DEFAULT_SECONDS_PER_BAR,
    DEFAULT_TIME_SIGNATURE,
    FRAMES_PER_BAR,
    SCHEMA_VERSION,
    STRING_COUNT,
    TIME_SIGNATURE_MAX,
    TIME_SIGNATURE_MIN,
)
from .cuts import apply_manual
from .fretboard import build_default_tab_ref, clamp_event_length, clamp_tab, pitch_of
from .model import Canvas, Chord, Lane, Note, TabCoord, utc_now

# ── Migration ───────────────────────────────────────────────


def _frame_ratio(raw: dict) -> float:
    source = to_int(raw.get("framesPerBar", raw.get("framesPerMessure")), FRAMES_PER_BAR)
    return FRAMES_PER_BAR / max(1, source)


def _scale(value: Any, ratio: float, minimum: int = 0) -> int:
    base = max(0, to_int(value, 0))
    return max(minimum, round_half_up(base * ratio))


def _infer_seconds(raw: dict, fallback: float) -> float:
    seconds = to_number(raw.get("secondsPerBar"), math.nan)
    if math.isfinite(seconds) and seconds > 0:
        return seconds
    fps = to_number(raw.get("fps"), math.nan)
    if math.isfinite(fps) and fps > 0:
        frames = to_number(raw.get("framesPerMessure", raw.get("framesPerBar")), FRAMES_PER_BAR)
        return frames / fps
    return fallback


def migrate_lane_dict(raw: dict) -> dict:
    """Rescale frames to ``FRAMES_PER_BAR`` and rename legacy keys."""
    ratio = _frame_ratio(raw)
    out = dict(raw)
    out.pop("framesPerMessure", None)
    out.pop("optimalsByTime", None)
    out["framesPerBar"] = FRAMES_PER_BAR
    if "cutSegments" not in out and "cutPositionsWithCoords" in out:
        out["cutSegments"] = out.pop("cutPositionsWithCoords")
    out["secondsPerBar"] = _infer_seconds(raw, to_number(raw.get("secondsPerBar"), math.nan))
    if abs(ratio - 1.0) < 1e-9:
        return out

    out["totalFrames"] = _scale(raw.get("totalFrames"), ratio, FRAMES_PER_BAR)
    out["notes"] = [
        {**n, "startTime": _scale(n.get("startTime"), ratio), "length": _scale(n.get("length"), ratio, 1)}
        for n in raw.get("notes") or [] if isinstance(n, dict)
    ]
    out["chords"] = [
        {**c, "startTime": _scale(c.get("startTime"), ratio), "length": _scale(c.get("length"), ratio, 1)}
        for c in raw.get("chords") or [] if isinstance(c, dict)
    ]
    cuts = []
    for entry in out.get("cutSegments") or []:
        if isinstance(entry, (list, tuple)) and len(entry) >= 2 and isinstance(entry[0], (list, tuple)) and len(entry[0]) >= 2:
            start = _scale(entry[0][0], ratio)
            cuts.append([[start, max(start + 1, _scale(entry[0][1], ratio))], entry[1]])
    out["cutSegments"] = cuts
    return out


def migrate_canvas_dict(raw: Any) -> dict:
    """Lift any supported snapshot to the current canvas layout."""
    if not isinstance(raw, dict):
        raw = {}
    version = to_int(raw.get("schemaVersion"), 1)
    if version >= SCHEMA_VERSION and isinstance(raw.get("lanes"), list):
        return {**raw, "lanes": [migrate_lane_dict(lane) for lane in raw["lanes"] if isinstance(lane, dict)]}

    if isinstance(raw.get("editors"), list):
        lanes = raw["editors"]
        out = {k: v for k, v in raw.items() if k not in ("editors", "canvasSchemaVersion")}
    elif isinstance(raw.get("lanes"), list):
        lanes = raw["lanes"]
        out = dict(raw)
    else:
        # A bare lane snapshot: wrap it in a single-lane canvas.
        lanes = [{**raw, "id": "ed-1"}]
        out = {
            "id": raw.get("id"),
            "name": raw.get("name"),
            "updatedAt": raw.get("updatedAt"),
            "secondsPerBar": raw.get("secondsPerBar"),
        }
    out["schemaVersion"] = SCHEMA_VERSION
    out["lanes"] = [migrate_lane_dict(lane) for lane in lanes if isinstance(lane, dict)]
    return out


# ── Normalization ───────────────────────────────────────────


def _tab_ref(value: Any) -> list[list[int]]:
    fallback = build_default_tab_ref()
    if not isinstance(value, list):
        return fallback
    rows = []
    for string in range(STRING_COUNT):
        source = value[string] if string < len(value) else None
        if not isinstance(source, list):
            rows.append(fallback[string])
            continue
        base = fallback[string][0]
        row = []
        for fret, cell in enumerate(source):
            number = to_number(cell, math.nan)
            row.append(int(number) if math.isfinite(number) else (row[0] if row else base) + fret)
        rows.append(row or fallback[string])
    return rows


def _tabs(tab_ref: list[list[int]], value: Any) -> list[TabCoord]:
    if not isinstance(value, list):
        return []
    return [clamp_tab(tab_ref, t) for t in value if isinstance(t, (list, tuple)) and len(t) >= 2]


def _unique_ids(items: list) -> None:
    seen: set[int] = set()
    top = max((i.id for i in items), default=0)
    for item in items:
        if item.id <= 0 or item.id in seen:
            top += 1
            item.id = top
        seen.add(item.id)


def lane_from_dict(raw: Any, lane_id: str, seconds_fallback: float, index: int = 0) -> Lane:
    """Build a fully valid lane from a (current-layout) lane dict."""
    raw = raw if isinstance(raw, dict) else {}
    lane = new_lane(
        lane_id,
        clean_name(raw.get("name"), f"Editor {index + 1}"),
        clean_seconds(raw.get("secondsPerBar"), seconds_fallback),
        clamp_int(raw.get("timeSignature"), DEFAULT_TIME_SIGNATURE, TIME_SIGNATURE_MIN, TIME_SIGNATURE_MAX),
    )
    lane.tab_ref = _tab_ref(raw.get("tabRef"))
    if isinstance(raw.get("updatedAt"), str) and raw["updatedAt"]:
        lane.updated_at = raw["updatedAt"]

    for item in raw.get("notes") or []:
        if not isinstance(item, dict) or not isinstance(item.get("tab"), (list, tuple)) or len(item["tab"]) < 2:
            continue
        tab = clamp_tab(lane.tab_ref, item["tab"])
        lane.notes.append(Note(
            id=to_int(item.get("id"), 0),
            start_time=max(0, to_int(item.get("startTime"), 0)),
            length=clamp_event_length(item.get("length")),
            midi_num=to_int(item.get("midiNum"), 0) or pitch_of(lane.tab_ref, tab),
            tab=tab,
            optimals=_tabs(lane.tab_ref, item.get("optimals")),
        ))

    stray_notes: list[Note] = []
    for item in raw.get("chords") or []:
        if not isinstance(item, dict):
            continue
        current = _tabs(lane.tab_ref, item.get("currentTabs"))
        if not current:
            continue
        start = max(0, to_int(item.get("startTime"), 0))
        length = clamp_event_length(item.get("length"))
        if len(current) == 1:
            # A one-tab chord cannot exist; keep its content as a plain note.
            stray_notes.append(Note(0, start, length, pitch_of(lane.tab_ref, current[0]), current[0]))
            continue
        og = _tabs(lane.tab_ref, item.get("ogTabs"))
        midi = [to_int(m, 0) for m in item.get("originalMidi") or []]
        lane.chords.append(Chord(
            id=to_int(item.get("id"), 0),
            start_time=start,
            length=length,
            original_midi=midi if len(midi) == len(current) else [pitch_of(lane.tab_ref, t) for t in current],
            current_tabs=current,
            og_tabs=og if len(og) == len(current) else list(current),
        ))
    lane.notes.extend(stray_notes)
    _unique_ids(lane.notes)
    _unique_ids(lane.chords)
    lane.sort_events()

    extent = max([0, *(n.end for n in lane.notes), *(c.end for c in lane.chords)])
    frames = max(FRAMES_PER_BAR, to_int(raw.get("totalFrames"), FRAMES_PER_BAR), extent)
    lane.total_frames = math.ceil(frames / FRAMES_PER_BAR) * FRAMES_PER_BAR
    apply_manual(lane, raw.get("cutSegments") or [])
    return lane


def canvas_from_dict(raw: Any, fallback_id: str = "local") -> Canvas:
    """Migrate and normalize a canvas snapshot of any supported version."""
    data = migrate_canvas_dict(raw)
    lanes_raw = data.get("lanes") or []
    first_seconds = lanes_raw[0].get("secondsPerBar") if lanes_raw else None
    seconds = clean_seconds(data.get("secondsPerBar"), clean_seconds(first_seconds, DEFAULT_SECONDS_PER_BAR))

    lanes: list[Lane] = []
    taken: set[str] = set()
    for index, item in enumerate(lanes_raw):
        lane_id = item.get("id") if isinstance(item.get("id"), str) and item.get("id") else f"ed-{index + 1}"
        while lane_id in taken:
            lane_id = f"{lane_id}-{index + 1}"
        taken.add(lane_id)
        lanes.append(lane_from_dict(item, lane_id, seconds, index))
    if not lanes:
        lanes.append(new_lane("ed-1", "Editor 1", seconds))

    canvas_id = data.get("id") if isinstance(data.get("id"), str) and data.get("id") else fallback_id
    return Canvas(
        id=canvas_id,
        name=clean_name(data.get("name"), "Untitled"),
        version=max(1, to_int(data.get("version"), 1)),
        updated_at=data.get("updatedAt") if isinstance(data.get("updatedAt"), str) and data.get("updatedAt") else utc_now(),
        seconds_per_bar=seconds,
        lanes=lanes,
    )
