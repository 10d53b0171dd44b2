#!/usr/bin/env python3
"""
make_chart.py
Turn images into small-palette knitting charts.

Usage:
  python make_chart.py INPUT [--outdir DIR] --resolution N --max-colors K
                       [--dither] [--enhance-edges] [--remove-background]
                       [--recolor INDEX=#rrggbb ...] [--seed S] [--jobs J] [--debug]

Input:
  Any Pillow-readable image, or a folder of them. Alpha is preserved; only
  visible pixels take part in palette extraction and mapping.

Output:
  PNG. Writes <stem>_chart.png next to INPUT unless --outdir is given.

Notes:
  Pipeline: [sharpen] -> downsample -> k-means palette -> quantize | dither.
  Edits (--remove-background, --recolor) run on the finished grid in that order.
"""

from __future__ import annotations

import argparse
import sys
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from knit_chart.constants import (
    DEFAULT_MAX_COLORS,
    DEFAULT_RESOLUTION,
    IMAGE_EXTENSIONS,
    OUTPUT_SUFFIX,
)
from knit_chart.core_types import RGBTuple, hex_to_rgb, rgb_to_hex
from knit_chart.image_io import ImageDecodeError
from knit_chart.session import ChartSettings, EditSession
from knit_chart.utils import (
    debug_log,
    enable_line_buffered_stdout,
    error,
    format_seconds_compact,
    format_total_duration_compact,
    key_value_pairs_to_string,
    log,
    print_banner,
    print_config_line,
)

# CLI args & small helpers


def parse_recolor(text: str) -> Tuple[int, RGBTuple]:
    """Parse 'INDEX=#rrggbb' into (index, rgb)."""
    index_text, sep, hex_text = text.partition("=")
    if not sep:
        raise argparse.ArgumentTypeError(f"expected INDEX=#rrggbb, got {text!r}")
    try:
        return int(index_text), hex_to_rgb(hex_text)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"bad recolor {text!r}: {exc}") from exc


def parse_cli_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """
    Parse CLI arguments for chart generation.

    Returns:
      argparse.Namespace with:
        src: Path to image or folder
        outdir: optional Path for outputs
        resolution: grid width in cells
        max_colors: palette size
        dither: bool, Floyd-Steinberg mapping
        enhance_edges: bool, sharpen before downsampling
        remove_background: bool, clear corner-coloured pixels
        recolor: list of (index, rgb)
        seed: optional int for reproducible palettes
        jobs: parallel file workers
        debug: bool for verbose details
    """
    parser = argparse.ArgumentParser(
        prog="make_chart",
        description="Convert image(s) into small-palette knitting charts.",
    )
    parser.add_argument("src", type=Path, help="Input image or folder")
    parser.add_argument(
        "--outdir", type=Path, default=None, help="Output directory (optional)"
    )
    parser.add_argument(
        "--resolution",
        type=int,
        default=DEFAULT_RESOLUTION,
        help="Grid width in cells (8-128).",
    )
    parser.add_argument(
        "--max-colors",
        type=int,
        default=DEFAULT_MAX_COLORS,
        help="Palette size (2-16).",
    )
    parser.add_argument(
        "--dither", action="store_true", help="Floyd-Steinberg error diffusion"
    )
    parser.add_argument(
        "--enhance-edges",
        action="store_true",
        help="Sharpen the source before downsampling",
    )
    parser.add_argument(
        "--remove-background",
        action="store_true",
        help="Make corner-coloured pixels transparent",
    )
    parser.add_argument(
        "--recolor",
        type=parse_recolor,
        action="append",
        default=[],
        metavar="INDEX=#RRGGBB",
        help="Replace palette entry INDEX (repeatable).",
    )
    parser.add_argument(
        "--seed", type=int, default=None, help="Seed for palette clustering"
    )
    parser.add_argument(
        "--jobs", type=int, default=2, help="Files processed in parallel"
    )
    parser.add_argument("--debug", action="store_true", help="Verbose details")
    return parser.parse_args(argv)


def _settings_from_args(args: argparse.Namespace) -> ChartSettings:
    return ChartSettings(
        resolution=args.resolution,
        max_colors=args.max_colors,
        use_dithering=args.dither,
        enhance_edges=args.enhance_edges,
        seed=args.seed,
    ).validated()


# Per-file processing


@dataclass
class ChartResult:
    """Outcome of one file: the session, where it was written, and report lines."""

    src_path: Path
    session: Optional[EditSession] = None
    written: Optional[Path] = None
    notes: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    pipeline_secs: float = 0.0
    total_secs: float = 0.0

    @property
    def ok(self) -> bool:
        return self.written is not None


def render_chart(
    src_path: Path,
    out_path: Optional[Path],
    settings: ChartSettings,
    remove_background: bool,
    recolors: List[Tuple[int, RGBTuple]],
    debug: bool = False,
) -> ChartResult:
    """
    Process a single image path end-to-end without printing the report:
      load -> pipeline -> edits -> save.
    Decode and write failures are recorded on the result.
    """
    t_start = time.perf_counter()
    result = ChartResult(src_path)
    if out_path is None:
        out_path = src_path.with_name(f"{src_path.stem}{OUTPUT_SUFFIX}.png")

    session = EditSession(settings, debug=debug)
    try:
        session.load_path(src_path)
    except ImageDecodeError as exc:
        result.errors.append(str(exc))
        return result
    result.session = session
    result.pipeline_secs = time.perf_counter() - t_start

    if remove_background:
        cleared = session.remove_background()
        result.notes.append(f"Background: cleared {cleared:,} cells")

    for index, rgb in recolors:
        try:
            repainted = session.recolor_palette(index, rgb)
        except IndexError as exc:
            result.errors.append(str(exc))
            continue
        result.notes.append(f"Recolor {index} -> {rgb_to_hex(rgb)}: {repainted:,} cells")

    try:
        result.written = session.save_png(out_path)
    except OSError:
        pass  # reported by save_png
    result.total_secs = time.perf_counter() - t_start
    return result


def report_chart(result: ChartResult, debug: bool) -> None:
    """Print the banner, edits, palette and colour usage for one result."""
    print_banner(result.src_path.name)
    for message in result.errors:
        error(message)
    session = result.session
    if session is None:
        return

    if debug:
        source = session.source
        debug_log(
            key_value_pairs_to_string(
                [
                    ("Loaded", f"{source.shape[1]}x{source.shape[0]}"),
                    ("Pipeline", format_seconds_compact(result.pipeline_secs)),
                ]
            )
        )
    for note in result.notes:
        log(note)
    if result.written is None:
        return

    width, height = session.grid_size
    log(
        f"Wrote {result.written.name} | grid={width}x{height} | palette_size={len(session.palette)}"
    )
    log("Palette:")
    for i, rgb in enumerate(session.palette):
        log(f"  [{i}] {rgb_to_hex(rgb)}")
    log("Colours used:")
    usage = session.colour_usage()
    for hex_code, count in usage:
        log(f"  {hex_code}: {count:,}")
    log(f"Total cells: {sum(c for _h, c in usage):,}")

    if debug:
        debug_log(
            f"Total {format_total_duration_compact(result.total_secs)}  "
            f"(pipeline={format_seconds_compact(result.pipeline_secs)}, "
            f"edits+save={format_seconds_compact(result.total_secs - result.pipeline_secs)})"
        )
    else:
        log(f"Total time {format_total_duration_compact(result.total_secs)}")


def _render_one(
    path: Path,
    args: argparse.Namespace,
    settings: ChartSettings,
    session_debug: bool,
) -> ChartResult:
    dst = (args.outdir / f"{path.stem}{OUTPUT_SUFFIX}.png") if args.outdir else None
    return render_chart(
        path, dst, settings, args.remove_background, args.recolor, session_debug
    )


# Entry point


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    CLI entry point.

    Handles single file or folder. In folder mode supports --jobs parallelism
    while preserving readable output ordering. Returns the exit status.
    """
    enable_line_buffered_stdout()
    args = parse_cli_args(argv)
    settings = _settings_from_args(args)

    print_config_line(
        "run",
        [
            ("Resolution", settings.resolution),
            ("Colours", settings.max_colors),
            ("Dither", settings.use_dithering),
            ("Edges", settings.enhance_edges),
            ("Jobs", args.jobs),
        ],
        debug=False,
    )

    src = args.src
    if not src.exists():
        error(f"not found: {src}")
        return 2
    if args.outdir is not None:
        args.outdir.mkdir(parents=True, exist_ok=True)

    if not src.is_dir():
        result = _render_one(src, args, settings, args.debug)
        report_chart(result, args.debug)
        return 0 if result.ok else 1

    all_entries = list(src.iterdir())
    files = [
        p
        for p in all_entries
        if p.is_file()
        and p.suffix.lower() in IMAGE_EXTENSIONS
        and not p.stem.endswith(OUTPUT_SUFFIX)
    ]
    files.sort(key=lambda p: p.name.lower())
    if args.debug:
        debug_log(
            key_value_pairs_to_string(
                [
                    ("Folder entries", len(all_entries)),
                    ("Images", len(files)),
                    ("Jobs", args.jobs),
                ]
            )
        )

    ok = True
    if args.jobs <= 1:
        for p in files:
            result = _render_one(p, args, settings, args.debug)
            report_chart(result, args.debug)
            ok = ok and result.ok
    else:
        # Worker sessions run without debug logging; reports print here in file order.
        with ThreadPoolExecutor(max_workers=args.jobs) as ex:
            futures = [
                ex.submit(_render_one, p, args, settings, False) for p in files
            ]
            for fut in futures:
                result = fut.result()
                report_chart(result, args.debug)
                ok = ok and result.ok
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
