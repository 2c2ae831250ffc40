"""Command-line entry point: render, import, and export tab projects."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from .core import canvas as canvas_ops
from .core import codec, project_file
from .core.config import get_config
from .core.errors import TabEngineError
from .core.midi_export import MidiExporter
from .core.tab_text import render_tab_text, split_tab_segments, tab_text_to_stamps

log = logging.getLogger(__name__)


def _load_or_new(path: Path):
    if path.exists():
        return project_file.load(path)
    return canvas_ops.new_canvas(path.stem, seconds_per_bar=get_config().get("editor.seconds_per_bar", 2.0))


def _first_lane_id(canvas, lane_id: str | None) -> str:
    return lane_id or canvas.lanes[0].id


def cmd_render(args: argparse.Namespace) -> int:
    canvas = project_file.load(args.project)
    config = get_config()
    bars_per_row = args.bars_per_row or config.get("render.bars_per_row", 3)
    bar_width = args.bar_width or config.get("render.bar_width", 32)
    lanes = canvas.lanes
    if args.lane:
        lanes = [canvas_ops.require_lane(canvas, args.lane)[1]]
    for lane in lanes:
        print(f"# {lane.name}")
        print(render_tab_text(lane, bars_per_row, bar_width))
        print()
    return 0


def _import(args: argparse.Namespace, stamps, total_frames) -> int:
    path = Path(args.project)
    canvas = _load_or_new(path)
    lane_id = _first_lane_id(canvas, args.lane)
    result = canvas_ops.mutate_lane(canvas, lane_id, codec.import_stamps, stamps, args.append, total_frames)
    project_file.save(path, result.canvas)
    log.info("Imported %d notes into %s/%s", len(result.value), *result.ref)
    return 0


def cmd_import_stamps(args: argparse.Namespace) -> int:
    data = json.loads(Path(args.stamps).read_text(encoding="utf-8"))
    if isinstance(data, dict):
        return _import(args, data.get("stamps", []), data.get("totalFrames"))
    return _import(args, data, None)


def cmd_import_text(args: argparse.Namespace) -> int:
    text = Path(args.tab_file).read_text(encoding="utf-8")
    stamps, total_frames = tab_text_to_stamps(split_tab_segments(text))
    return _import(args, stamps, total_frames)


def cmd_export_stamps(args: argparse.Namespace) -> int:
    canvas = project_file.load(args.project)
    _, lane = canvas_ops.require_lane(canvas, _first_lane_id(canvas, args.lane))
    json.dump(codec.export_payload(lane), sys.stdout, indent=2)
    print()
    return 0


def cmd_export_midi(args: argparse.Namespace) -> int:
    canvas = project_file.load(args.project)
    config = get_config()
    velocity = config.get("midi.velocity", 96)
    ticks = config.get("midi.ticks_per_beat", 120)
    if args.lane:
        _, lane = canvas_ops.require_lane(canvas, args.lane)
        MidiExporter.save_lane(lane, args.output, velocity, ticks)
    else:
        MidiExporter.save_canvas(canvas, args.output, velocity, ticks)
    log.info("Wrote %s", args.output)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tabforge", description="Guitar tab timeline tools")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("render", help="print ASCII tablature")
    p.add_argument("project")
    p.add_argument("--lane")
    p.add_argument("--bars-per-row", type=int)
    p.add_argument("--bar-width", type=int)
    p.set_defaults(func=cmd_render)

    p = sub.add_parser("import-stamps", help="load a stamp JSON file into a project")
    p.add_argument("stamps")
    p.add_argument("project")
    p.add_argument("--lane")
    p.add_argument("--append", action="store_true")
    p.set_defaults(func=cmd_import_stamps)

    p = sub.add_parser("import-text", help="load ASCII tablature into a project")
    p.add_argument("tab_file")
    p.add_argument("project")
    p.add_argument("--lane")
    p.add_argument("--append", action="store_true")
    p.set_defaults(func=cmd_import_text)

    p = sub.add_parser("export-stamps", help="print a lane as stamp JSON")
    p.add_argument("project")
    p.add_argument("--lane")
    p.set_defaults(func=cmd_export_stamps)

    p = sub.add_parser("export-midi", help="write a project (or one lane) as MIDI")
    p.add_argument("project")
    p.add_argument("output")
    p.add_argument("--lane")
    p.set_defaults(func=cmd_export_midi)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )
    try:
        return args.func(args)
    except TabEngineError as e:
        log.error("%s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
