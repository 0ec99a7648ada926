"""Display color assignment.

The palette position is an explicit value handed to every import or creation
call and returned advanced, so parsing stays free of hidden global state.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from .config import TRACK_COLORS


@dataclass(frozen=True)
class PaletteCursor:
    """Position in ``TRACK_COLORS``; wraps around on overflow."""

    index: int = 0

    @property
    def color(self) -> str:
        """Color the next call to ``next_color`` will hand out."""
        return TRACK_COLORS[self.index % len(TRACK_COLORS)]

    def next_color(self) -> Tuple[str, "PaletteCursor"]:
        return self.color, PaletteCursor((self.index + 1) % len(TRACK_COLORS))


__all__ = ["PaletteCursor"]
