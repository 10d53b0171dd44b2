from __future__ import annotations

"""
Shared utilities for knit_chart.

Includes visible-colour statistics, colour usage reporting, duration
formatting and tidy logging used by the session and the CLI.
"""

import sys
from typing import Any, Iterable, List, Tuple

import numpy as np

from .constants import VISIBLE_ALPHA_MIN
from .core_types import Bitmap, U8Image, rgb_to_hex


#  Time formatting


def format_seconds_compact(seconds: float) -> str:
    """Human-friendly seconds: '<ms>ms', '<s>s', or 'Mm Ss'."""
    if seconds < 1.0:
        return f"{seconds * 1000.0:.1f}ms"
    if seconds < 60.0:
        return f"{seconds:.3f}s"
    minutes = int(seconds // 60)
    return f"{minutes}m {seconds - 60 * minutes:.1f}s"


def format_total_duration_compact(seconds: float) -> str:
    """Compact total duration: 'Mm Ss', 'Ss.s', or 'ms'."""
    if seconds >= 60.0:
        minutes = int(seconds // 60)
        rem = int(round(seconds - 60 * minutes))
        return f"{minutes}m {rem}s"
    if seconds >= 1.0:
        return f"{seconds:.1f}s"
    return f"{seconds * 1000.0:.1f}ms"


# Visible-colour helpers


def visible_mask(bitmap: Bitmap) -> np.ndarray:
    """Boolean (H,W) mask of pixels with alpha above the visibility threshold."""
    return bitmap[..., 3] > VISIBLE_ALPHA_MIN


def unique_visible_rgb(bitmap: Bitmap) -> Tuple[U8Image, np.ndarray]:
    """Return (unique RGB rows among visible pixels, counts)."""
    mask = visible_mask(bitmap)
    if not np.any(mask):
        return np.zeros((0, 3), dtype=np.uint8), np.zeros((0,), dtype=np.int64)
    flat_rgb = bitmap[..., :3][mask].reshape(-1, 3)
    uniques, counts = np.unique(flat_rgb, axis=0, return_counts=True)
    return uniques.astype(np.uint8, copy=False), counts.astype(np.int64, copy=False)


def colour_usage_report(bitmap: Bitmap) -> List[Tuple[str, int]]:
    """
    Colour usage for visible pixels.

    Returns a list of (hex, count) sorted by count descending.
    """
    uniques, counts = unique_visible_rgb(bitmap)
    report: List[Tuple[str, int]] = []
    for rgb_row, count in sorted(zip(uniques, counts), key=lambda x: -int(x[1])):
        report.append((rgb_to_hex(rgb_row), int(count)))
    return report


#  CLI output


def enable_line_buffered_stdout() -> None:
    """
    Enable line-buffered stdout when supported.
    Helps live progress printing in terminals that expose .reconfigure().
    """
    reconfig = getattr(sys.stdout, "reconfigure", None)
    if callable(reconfig):
        try:
            reconfig(line_buffering=True, write_through=True)
        except (OSError, ValueError):
            pass


# Pretty logging


def format_bool_on_off(value: Any) -> str:
    """Pretty boolean: 'on'/'off' for bools; str(value) otherwise."""
    if isinstance(value, bool):
        return "on" if value else "off"
    return str(value)


def format_number_compact(value: Any) -> str:
    """Pretty number: 1_234 style for ints; compact for floats; passthrough otherwise."""
    if isinstance(value, int):
        return f"{value:,}"
    if isinstance(value, float):
        return f"{value:.3f}".rstrip("0").rstrip(".")
    return str(value)


def key_value_pairs_to_string(
    pairs: Iterable[Tuple[str, Any]], sep: str = "  ", eq: str = ": "
) -> str:
    """
    Format (name, value) pairs as 'Name: value' blocks separated by sep.
    Uses format_bool_on_off / format_number_compact for readability.
    """
    out: List[str] = []
    for name, value in pairs:
        display = (
            format_bool_on_off(value)
            if isinstance(value, bool)
            else format_number_compact(value)
        )
        out.append(f"{name}{eq}{display}")
    return sep.join(out)


def print_config_line(
    section: str, pairs: Iterable[Tuple[str, Any]], debug: bool
) -> None:
    """
    Emit a single human-readable config line, e.g.:
      [chart] Resolution: 32  Colours: 8  Dither: off  Edges: on
    Routes to debug_log() when debug=True, else to log().
    """
    line = f"[{section}] {key_value_pairs_to_string(pairs)}"
    (debug_log if debug else log)(line)


def print_banner(title: str) -> None:
    """Section banner."""
    print(f"\n=== {title} ===", flush=True)


def log(message: str) -> None:
    """Plain log line."""
    print(message, flush=True)


def debug_log(message: str) -> None:
    """Debug log line."""
    print(f"[debug] {message}", flush=True)


def error(message: str) -> None:
    """Error log line to stderr."""
    print(f"[error] {message}", file=sys.stderr, flush=True)


__all__ = [
    # formatting
    "format_seconds_compact",
    "format_total_duration_compact",
    "format_bool_on_off",
    "format_number_compact",
    # visible colour helpers
    "visible_mask",
    "unique_visible_rgb",
    "colour_usage_report",
    # logging
    "enable_line_buffered_stdout",
    "key_value_pairs_to_string",
    "print_config_line",
    "print_banner",
    "log",
    "debug_log",
    "error",
]
