from __future__ import annotations

"""
Edit session: owns the working grid, its palette and the undo history.

Pipeline (re-run on load and on every settings change):
  source -> [sharpen] -> downsample -> extract palette -> quantize | dither

The palette is re-derived only when the image, resolution, colour count, edge
filter or seed changes. Otherwise the grid is re-mapped against the palette
k-means produced, and the user's recolours are replayed by index on top, so
recoloured swatches survive a dithering toggle. A re-run replaces the grid and
restarts the history; a failing run leaves the previous state in place.

Interactive edits (paint, background removal, colour removal, recolour) mutate
the working grid and commit one history snapshot each. Drag painting commits
once per stroke.
"""

import threading
from contextlib import contextmanager
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Iterator, Optional, Tuple

import numpy as np

from .constants import (
    BACKGROUND_THRESHOLD,
    DEFAULT_BLOCK_SIZE,
    DEFAULT_EXPORT_NAME,
    DEFAULT_MAX_COLORS,
    DEFAULT_RESOLUTION,
    HISTORY_LIMIT,
    MAX_COLORS_MAX,
    MAX_COLORS_MIN,
    RESOLUTION_MAX,
    RESOLUTION_MIN,
)
from .core_types import (
    Bitmap,
    ColourLike,
    Palette,
    RGBTuple,
    assert_u8_rgba,
    coerce_to_rgb_tuple,
    rgb_to_hex,
)
from .downsample import pixelate
from .edges import sharpen
from .history import History
from .image_io import decode_image_bytes, encode_png, load_image_rgba, save_png_rgba
from .palette_extract import extract_palette
from .pixel_map import map_to_palette
from .utils import (
    colour_usage_report,
    debug_log,
    error,
    key_value_pairs_to_string,
    print_config_line,
)

PaletteKey = Tuple[int, int, int, bool, Optional[int]]


@dataclass(frozen=True)
class ChartSettings:
    """User-adjustable pipeline and editing options."""

    resolution: int = DEFAULT_RESOLUTION
    max_colors: int = DEFAULT_MAX_COLORS
    use_dithering: bool = False
    enhance_edges: bool = False
    block_size: int = DEFAULT_BLOCK_SIZE
    seed: Optional[int] = None

    def validated(self) -> "ChartSettings":
        """Copy with integers clamped to their configured ranges."""
        return replace(
            self,
            resolution=int(min(max(int(self.resolution), RESOLUTION_MIN), RESOLUTION_MAX)),
            max_colors=int(min(max(int(self.max_colors), MAX_COLORS_MIN), MAX_COLORS_MAX)),
            use_dithering=bool(self.use_dithering),
            enhance_edges=bool(self.enhance_edges),
            block_size=max(1, int(self.block_size)),
            seed=None if self.seed is None else int(self.seed),
        )


class EditSession:
    """Single working grid + palette + linear history behind an explicit API."""

    def __init__(
        self,
        settings: Optional[ChartSettings] = None,
        *,
        history_limit: int = HISTORY_LIMIT,
        debug: bool = False,
    ) -> None:
        self._initial_settings = (settings or ChartSettings()).validated()
        self._settings = self._initial_settings
        self._history = History(history_limit)
        self._debug = debug
        self._lock = threading.RLock()

        self._source: Optional[Bitmap] = None
        self._source_token = 0
        self._bitmap: Optional[Bitmap] = None
        self._base_palette: Palette = []
        self._palette: Palette = []
        self._palette_key: Optional[PaletteKey] = None

        self._stroke_open = False
        self._stroke_dirty = False

    # Read-only views

    @property
    def settings(self) -> ChartSettings:
        return self._settings

    @property
    def is_loaded(self) -> bool:
        return self._bitmap is not None

    @property
    def bitmap(self) -> Optional[Bitmap]:
        """Copy of the working grid, None before load."""
        return None if self._bitmap is None else self._bitmap.copy()

    @property
    def source(self) -> Optional[Bitmap]:
        return None if self._source is None else self._source.copy()

    @property
    def palette(self) -> Palette:
        return list(self._palette)

    @property
    def grid_size(self) -> Optional[Tuple[int, int]]:
        """(width, height) of the working grid."""
        if self._bitmap is None:
            return None
        return int(self._bitmap.shape[1]), int(self._bitmap.shape[0])

    @property
    def can_undo(self) -> bool:
        return self._history.can_undo

    @property
    def history(self) -> History:
        return self._history

    def colour_usage(self):
        """(hex, count) per visible colour of the working grid, most used first."""
        if self._bitmap is None:
            return []
        return colour_usage_report(self._bitmap)

    # Loading / pipeline

    def load(self, source: Bitmap) -> None:
        """Replace the source image and run the full pipeline."""
        src = np.array(assert_u8_rgba(source), copy=True)
        if src.shape[0] == 0 or src.shape[1] == 0:
            raise ValueError("source bitmap is empty")
        with self._lock:
            token = self._source_token + 1
            self._run(src, token, self._settings)

    def load_path(self, path: Path) -> None:
        """Decode a file and load it. ImageDecodeError leaves the session untouched."""
        self.load(load_image_rgba(path))

    def load_bytes(self, data: bytes) -> None:
        """Decode in-memory bytes and load them. ImageDecodeError leaves the session untouched."""
        self.load(decode_image_bytes(data))

    def configure(self, **changes) -> ChartSettings:
        """
        Update settings and re-run the pipeline if an image is loaded.
        Unknown names raise TypeError. Returns the effective settings.
        """
        with self._lock:
            new_settings = replace(self._settings, **changes).validated()
            if self._source is not None and _needs_rerun(self._settings, new_settings):
                self._run(self._source, self._source_token, new_settings)
            else:
                self._settings = new_settings
            return self._settings

    def process(self) -> None:
        """
        Re-run the pipeline with the current settings.
        The palette is kept (recolours included) unless its key changed;
        after configure(seed=...) this draws a fresh palette.
        """
        with self._lock:
            if self._source is None:
                return
            self._run(self._source, self._source_token, self._settings)

    def _run(self, source: Bitmap, token: int, settings: ChartSettings) -> None:
        """Compute into locals, then commit everything at once."""
        if self._debug:
            print_config_line(
                "chart",
                [
                    ("Resolution", settings.resolution),
                    ("Colours", settings.max_colors),
                    ("Dither", settings.use_dithering),
                    ("Edges", settings.enhance_edges),
                ],
                debug=True,
            )

        work = sharpen(source) if settings.enhance_edges else source
        grid = pixelate(work, settings.resolution)

        key: PaletteKey = (
            token,
            settings.resolution,
            settings.max_colors,
            settings.enhance_edges,
            settings.seed,
        )
        if key == self._palette_key:
            base = list(self._base_palette)
            palette = list(self._palette)
        else:
            base = extract_palette(
                grid, settings.max_colors, seed=settings.seed, debug=self._debug
            )
            palette = list(base)
        mapped = map_to_palette(grid, base, dither=settings.use_dithering)
        _apply_recolours(mapped, base, palette)

        self._source = source
        self._source_token = token
        self._settings = settings
        self._bitmap = mapped
        self._base_palette = base
        self._palette = palette
        self._palette_key = key
        self._stroke_open = False
        self._stroke_dirty = False
        self._history.clear()
        self._history.push(mapped, palette)

        if self._debug:
            debug_log(
                key_value_pairs_to_string(
                    [
                        ("Grid", f"{mapped.shape[1]}x{mapped.shape[0]}"),
                        ("Palette", " ".join(rgb_to_hex(c) for c in palette) or "-"),
                    ]
                )
            )

    # History

    def _commit(self) -> None:
        if self._stroke_open:
            self._stroke_dirty = True
            return
        self._history.push(self._bitmap, self._palette)

    def begin_stroke(self) -> None:
        """Start a drag gesture; paints until end_stroke() share one snapshot."""
        with self._lock:
            self._stroke_open = True
            self._stroke_dirty = False

    def end_stroke(self) -> bool:
        """Finish a drag gesture. Returns True if a snapshot was committed."""
        with self._lock:
            committed = self._stroke_open and self._stroke_dirty
            self._stroke_open = False
            self._stroke_dirty = False
            if committed and self._bitmap is not None:
                self._history.push(self._bitmap, self._palette)
            return committed

    @contextmanager
    def stroke(self) -> Iterator["EditSession"]:
        self.begin_stroke()
        try:
            yield self
        finally:
            self.end_stroke()

    def undo(self) -> bool:
        """Restore the previous snapshot. Returns False when there is nothing to undo."""
        with self._lock:
            if self._stroke_open:
                self.end_stroke()
            snap = self._history.undo()
            if snap is None:
                return False
            self._bitmap = snap.bitmap
            self._palette = list(snap.palette)
            return True

    def reset(self) -> None:
        """Drop image, grid, palette and history; settings return to their initial values."""
        with self._lock:
            self._source = None
            self._bitmap = None
            self._base_palette = []
            self._palette = []
            self._palette_key = None
            self._settings = self._initial_settings
            self._stroke_open = False
            self._stroke_dirty = False
            self._history.clear()

    # Edits

    def paint(self, x: int, y: int, colour: ColourLike, commit: bool = True) -> bool:
        """
        Paint the block containing (x, y) with an opaque colour.
        Out-of-bounds coordinates are ignored. Returns True if anything changed.
        """
        with self._lock:
            if self._bitmap is None:
                return False
            height, width = int(self._bitmap.shape[0]), int(self._bitmap.shape[1])
            x, y = int(x), int(y)
            if not (0 <= x < width and 0 <= y < height):
                return False
            r, g, b = coerce_to_rgb_tuple(colour)
            block = self._settings.block_size
            bx, by = (x // block) * block, (y // block) * block
            region = self._bitmap[by : by + block, bx : bx + block]
            value = np.array([r, g, b, 255], dtype=np.uint8)
            if np.all(region == value):
                return False
            region[...] = value
            if commit or self._stroke_open:
                self._commit()
            return True

    def remove_background(self, threshold: float = BACKGROUND_THRESHOLD) -> int:
        """
        Make every pixel close to any visible corner colour transparent.
        Returns the number of pixels whose alpha changed.
        """
        with self._lock:
            if self._bitmap is None:
                return 0
            bm = self._bitmap
            h, w = int(bm.shape[0]), int(bm.shape[1])
            corners = {
                tuple(int(c) for c in bm[cy, cx, :3])
                for cy, cx in ((0, 0), (0, w - 1), (h - 1, 0), (h - 1, w - 1))
                if bm[cy, cx, 3] > 0
            }
            if not corners:
                return 0
            refs = np.array(sorted(corners), dtype=np.float64)
            rgb = bm[..., :3].astype(np.float64)
            diff = rgb[:, :, None, :] - refs[None, None, :, :]
            dist = np.sqrt(np.sum(diff * diff, axis=3))
            hit = np.any(dist < float(threshold), axis=2) & (bm[..., 3] > 0)
            changed = int(np.count_nonzero(hit))
            if changed:
                bm[..., 3][hit] = 0
                self._commit()
            return changed

    def remove_color(self, colour: ColourLike) -> int:
        """Make every pixel with exactly this RGB transparent. Returns pixels changed."""
        with self._lock:
            if self._bitmap is None:
                return 0
            rgb = np.array(coerce_to_rgb_tuple(colour), dtype=np.uint8)
            bm = self._bitmap
            hit = np.all(bm[..., :3] == rgb, axis=2) & (bm[..., 3] > 0)
            changed = int(np.count_nonzero(hit))
            if changed:
                bm[..., 3][hit] = 0
                self._commit()
            return changed

    def recolor_palette(self, index: int, colour: ColourLike) -> int:
        """
        Replace palette[index] and repaint every pixel that exactly matches the old colour.
        Returns the number of repainted pixels. Raises IndexError for a bad index.
        """
        with self._lock:
            if not 0 <= int(index) < len(self._palette):
                raise IndexError(
                    f"palette index {index} out of range (0..{len(self._palette) - 1})"
                )
            new_rgb: RGBTuple = coerce_to_rgb_tuple(colour)
            old_rgb = self._palette[int(index)]
            self._palette[int(index)] = new_rgb
            changed = 0
            if self._bitmap is not None and new_rgb != old_rgb:
                bm = self._bitmap
                hit = np.all(bm[..., :3] == np.array(old_rgb, dtype=np.uint8), axis=2)
                changed = int(np.count_nonzero(hit))
                bm[..., :3][hit] = np.array(new_rgb, dtype=np.uint8)
            if new_rgb != old_rgb:
                self._commit()
            return changed

    # Export

    def export_png(self) -> bytes:
        """PNG bytes of the working grid."""
        with self._lock:
            if self._bitmap is None:
                raise ValueError("nothing to export: no image loaded")
            return encode_png(self._bitmap)

    def save_png(self, path: Optional[Path] = None) -> Path:
        """Write the working grid as PNG. I/O failures are logged and re-raised."""
        target = Path(path) if path is not None else Path(DEFAULT_EXPORT_NAME)
        with self._lock:
            if self._bitmap is None:
                raise ValueError("nothing to export: no image loaded")
            try:
                return save_png_rgba(target, self._bitmap)
            except OSError as exc:
                error(f"failed to write {target}: {exc}")
                raise


def _apply_recolours(bitmap: Bitmap, base: Palette, palette: Palette) -> None:
    """Swap base[i] for palette[i] wherever they differ. Masks are taken before any write."""
    changes = [
        (np.all(bitmap[..., :3] == np.array(old, dtype=np.uint8), axis=2), new)
        for old, new in zip(base, palette)
        if old != new
    ]
    for hit, new in changes:
        bitmap[..., :3][hit] = np.array(new, dtype=np.uint8)


def _needs_rerun(old: ChartSettings, new: ChartSettings) -> bool:
    """Only grid-shaping options trigger the pipeline; block size and seed do not."""
    return (
        old.resolution != new.resolution
        or old.max_colors != new.max_colors
        or old.use_dithering != new.use_dithering
        or old.enhance_edges != new.enhance_edges
    )


__all__ = ["ChartSettings", "EditSession"]
