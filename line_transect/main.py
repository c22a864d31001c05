"""Command line entry point for inspecting and editing transect files."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path

from line_transect.editing.errors import TransectValidationError
from line_transect.editing.operations import LineTransectEditor
from line_transect.geometry.measure import distance_ticks, line_distance_range, total_length
from line_transect.model.geometry_io import GeometryFormatError
from line_transect.model.geometry_store import GeometryStore
from line_transect.model.invariants import InvariantError
from line_transect.services.geometry_file_io import load_transect_feature, save_transect_feature
from line_transect.services.settings_store import EditorSettings, SettingsStore

logger = logging.getLogger(__name__)

EXIT_INVALID = 2


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Line transect editor")
    parser.add_argument(
        "--log-level",
        default=os.getenv("LINE_TRANSECT_LOG_LEVEL", "WARNING"),
        help=(
            "Logging level (e.g. DEBUG, INFO). Defaults to LINE_TRANSECT_LOG_LEVEL "
            "environment variable or WARNING."
        ),
    )
    parser.add_argument(
        "--log-file",
        default=os.getenv("LINE_TRANSECT_LOG_PATH"),
        help="Optional log file path. Defaults to LINE_TRANSECT_LOG_PATH.",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Shortcut for --log-level DEBUG",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="INI file with a [line_transect] section. Defaults to line_transect.ini.",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    info = commands.add_parser("info", help="Summarize lines, groups and overlaps")
    info.add_argument("file", type=Path)

    split = commands.add_parser("split", help="Split the transect at a distance from its start")
    split.add_argument("file", type=Path)
    split.add_argument("--at", type=float, required=True, dest="distance")

    remove = commands.add_parser("remove-point", help="Remove one point")
    remove.add_argument("file", type=Path)
    remove.add_argument("--line", type=int, required=True)
    remove.add_argument("--point", type=int, required=True)
    remove.add_argument(
        "--prefer",
        choices=("first", "last"),
        help="Which of two coincident points to remove",
    )

    shift = commands.add_parser("shift-start", help="Start the first group at another line boundary")
    shift.add_argument("file", type=Path)
    shift.add_argument("--line", type=int, required=True)
    shift.add_argument("--point", type=int, required=True)
    shift.add_argument("--prefer", choices=("first", "last"))

    merge = commands.add_parser("merge", help="Merge a range of segments (flat indices)")
    merge.add_argument("file", type=Path)
    merge.add_argument("--first", type=int, required=True)
    merge.add_argument("--last", type=int, required=True)

    for command in (split, remove, shift, merge):
        command.add_argument("-o", "--output", type=Path, help="Write the result here instead of stdout")

    return parser.parse_args(argv)


def configure_logging(log_level_name: str, log_path: str | None) -> str | None:
    resolved_level_name = log_level_name.upper()
    log_level = getattr(logging, resolved_level_name, logging.WARNING)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_path:
        handlers.append(logging.FileHandler(log_path, mode="a", encoding="utf-8"))

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=handlers,
    )

    return log_path


def build_editor(settings: EditorSettings, prefer: str | None = None) -> LineTransectEditor:
    store = GeometryStore(
        half_width=settings.corridor_half_width,
        overlap_tolerance=settings.overlap_tolerance,
    )
    chooser = None
    if prefer is not None:
        def chooser(first, last, resolve):
            resolve(first if prefer == "first" else last)

    return LineTransectEditor(
        store,
        chooser=chooser,
        endpoint_snap_distance=settings.endpoint_snap_distance,
    )


def describe(editor: LineTransectEditor, settings: EditorSettings) -> str:
    store = editor.store
    lines = store.lines
    rows = [
        f"lines: {store.line_count}",
        f"segments: {len(store.all_segments)}",
        f"groups: {store.group_count}",
        f"total length: {total_length(lines, store.geo_ops):.1f}",
    ]
    for line_idx in range(store.line_count):
        start, end = line_distance_range(lines, line_idx, store.geo_ops)
        rows.append(
            f"  line {line_idx} (group {store.line_group(line_idx)}): "
            f"{store.point_count(line_idx)} points, {start:g}-{end:g}"
        )
    for record in store.all_points:
        partner = store.nonadjacent_overlap(record.idx)
        if partner is not None and record.idx < partner:
            rows.append(
                f"  overlap: {record.idx[0]}-{record.idx[1]} <-> {partner[0]}-{partner[1]}"
            )
    ticks = distance_ticks(lines, store.geo_ops, settings.tick_spacing, store.half_width)
    rows.append(f"distance ticks every {settings.tick_spacing:g}: {len(ticks)}")
    return "\n".join(rows)


def run(args: argparse.Namespace) -> int:
    settings = SettingsStore(args.config).load()
    editor = build_editor(settings, getattr(args, "prefer", None))
    editor.load_feature(load_transect_feature(args.file))

    if args.command == "info":
        print(describe(editor, settings))
        return 0

    point = (args.line, args.point) if args.command in ("remove-point", "shift-start") else None
    if args.command == "split":
        editor.split_at_distance(args.distance)
    elif args.command == "remove-point":
        editor.resolve_point(point, editor.remove_point)
    elif args.command == "shift-start":
        editor.resolve_point(point, editor.shift_group_start)
    elif args.command == "merge":
        store = editor.store
        editor.merge_range(store.segment_at_flat(args.first), store.segment_at_flat(args.last))

    feature = editor.feature()
    if args.output is not None:
        save_transect_feature(args.output, feature)
        logger.info("Wrote %s", args.output)
    else:
        print(json.dumps(feature, indent=2))
    return 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    log_level_name = "DEBUG" if args.debug else args.log_level
    configure_logging(log_level_name, args.log_file)

    try:
        return run(args)
    except (TransectValidationError, GeometryFormatError, InvariantError) as exc:
        logger.error("%s", exc)
        return EXIT_INVALID


if __name__ == "__main__":
    sys.exit(main())
