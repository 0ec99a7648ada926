"""Command line front end: inspect, convert and simplify GPX/KML files."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Optional, Sequence

import pandas as pd

from .config import DEFAULT_SIMPLIFY_TOLERANCE_M
from .errors import ParseError, ValidationError
from .formats import SUPPORTED_FORMATS, detect_format
from .geometry.kernel import document_bounds
from .store import DocumentStore
from .summary import build_statistics_frame, totals_row

LOGGER = logging.getLogger(__name__)


def _setup_logging(level: str = "INFO") -> None:
    if not logging.getLogger().hasHandlers():
        logging.basicConfig(
            level=getattr(logging, level),
            format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        )


def _load(path: Path, fmt: Optional[str] = None) -> DocumentStore:
    store = DocumentStore()
    text = path.read_text(encoding="utf-8")
    store.load_from_string(text, filename=path.name, fmt=fmt)
    return store


def _write(store: DocumentStore, path: Path, fmt: Optional[str]) -> None:
    fmt = fmt or detect_format(path.name)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(store.export_to_string(fmt))
    LOGGER.info("Output written to %s", path)


def _cmd_info(args: argparse.Namespace) -> int:
    store = _load(args.input, args.input_format)
    document = store.document
    frame = build_statistics_frame(document)
    if args.csv:
        frame.to_csv(args.csv, index=False)
        LOGGER.info("Statistics written to %s", args.csv)
    if frame.empty:
        print("No tracks or routes.")
    else:
        totals = pd.DataFrame([totals_row(frame)], columns=frame.columns)
        print(pd.concat([frame, totals], ignore_index=True).to_string(index=False))
    print(f"Waypoints: {len(document.waypoints)}")
    bounds = document_bounds(document)
    if bounds.valid:
        print(
            f"Bounds: N {bounds.north:.6f} S {bounds.south:.6f} "
            f"E {bounds.east:.6f} W {bounds.west:.6f}"
        )
    return 0


def _cmd_convert(args: argparse.Namespace) -> int:
    store = _load(args.input, args.input_format)
    _write(store, args.output, args.output_format)
    return 0


def _cmd_simplify(args: argparse.Namespace) -> int:
    store = _load(args.input, args.input_format)
    before = after = 0
    for track in list(store.document.tracks):
        old, new = store.simplify_track(track.id, args.tolerance)
        before += old
        after += new
    for route in list(store.document.routes):
        old, new = store.simplify_route(route.id, args.tolerance)
        before += old
        after += new
    LOGGER.info(
        "Simplified %d points to %d at %.1f m tolerance", before, after, args.tolerance
    )
    _write(store, args.output, args.output_format)
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gpx-workbench",
        description="Inspect, convert and simplify GPX/KML track files",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Python logging level",
    )
    parser.add_argument(
        "--input-format",
        choices=SUPPORTED_FORMATS,
        help="Input format (default: detect from the file)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    info = sub.add_parser("info", help="Print per-track statistics")
    info.add_argument("input", type=Path)
    info.add_argument("--csv", type=Path, help="Also write the table to this CSV file")
    info.set_defaults(handler=_cmd_info)

    convert = sub.add_parser("convert", help="Convert between GPX and KML")
    convert.add_argument("input", type=Path)
    convert.add_argument("output", type=Path)
    convert.add_argument(
        "--output-format",
        choices=SUPPORTED_FORMATS,
        help="Output format (default: from the output extension)",
    )
    convert.set_defaults(handler=_cmd_convert)

    simplify = sub.add_parser("simplify", help="Douglas-Peucker every track and route")
    simplify.add_argument("input", type=Path)
    simplify.add_argument("output", type=Path)
    simplify.add_argument(
        "--tolerance",
        type=float,
        default=DEFAULT_SIMPLIFY_TOLERANCE_M,
        help=f"Maximum deviation in metres (default: {DEFAULT_SIMPLIFY_TOLERANCE_M})",
    )
    simplify.add_argument(
        "--output-format",
        choices=SUPPORTED_FORMATS,
        help="Output format (default: from the output extension)",
    )
    simplify.set_defaults(handler=_cmd_simplify)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLI entry point used via ``gpx-workbench`` or ``python run.py``."""

    parser = _build_parser()
    args = parser.parse_args(argv)
    _setup_logging(args.log_level)

    try:
        return args.handler(args)
    except FileNotFoundError as exc:
        LOGGER.error("File not found: %s", exc.filename or exc)
    except (ParseError, ValidationError) as exc:
        LOGGER.error("%s", exc)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
