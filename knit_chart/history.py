from __future__ import annotations

"""
Linear undo history of working-bitmap snapshots.

Each entry keeps a copy of the bitmap and the palette it was shown with, so
undoing a recolour brings the swatches back too. Pushing after an undo
discards everything past the cursor. There is no redo.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import numpy as np

from .constants import HISTORY_LIMIT
from .core_types import Bitmap, ColourLike, Palette, coerce_to_rgb_tuple


@dataclass(frozen=True)
class Snapshot:
    """Bitmap copy plus the palette in effect when it was taken."""

    bitmap: Bitmap
    palette: Palette = field(default_factory=list)

    def copy(self) -> "Snapshot":
        return Snapshot(self.bitmap.copy(), list(self.palette))


class History:
    """Ordered snapshots plus a cursor that always points at a valid entry once non-empty."""

    def __init__(self, limit: int = HISTORY_LIMIT) -> None:
        if limit < 1:
            raise ValueError("history limit must be >= 1")
        self.limit = int(limit)
        self._snapshots: List[Snapshot] = []
        self._position = -1

    def __len__(self) -> int:
        return len(self._snapshots)

    @property
    def position(self) -> int:
        """Cursor index, -1 when empty."""
        return self._position

    @property
    def current(self) -> Optional[Snapshot]:
        """Copy of the snapshot under the cursor, or None when empty."""
        if self._position < 0:
            return None
        return self._snapshots[self._position].copy()

    @property
    def can_undo(self) -> bool:
        return self._position > 0

    def push(self, bitmap: Bitmap, palette: Sequence[ColourLike] = ()) -> None:
        """Append a copy after the cursor, dropping any undone entries."""
        del self._snapshots[self._position + 1 :]
        self._snapshots.append(
            Snapshot(
                np.array(bitmap, dtype=np.uint8, copy=True),
                [coerce_to_rgb_tuple(c) for c in palette],
            )
        )
        overflow = len(self._snapshots) - self.limit
        if overflow > 0:
            del self._snapshots[:overflow]
        self._position = len(self._snapshots) - 1

    def undo(self) -> Optional[Snapshot]:
        """Step back one entry and return a copy of it; None when already at the start."""
        if not self.can_undo:
            return None
        self._position -= 1
        return self.current

    def clear(self) -> None:
        self._snapshots.clear()
        self._position = -1


__all__ = ["Snapshot", "History"]
