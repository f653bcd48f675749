"""Palette allocation for numeric column colors.

Allocation is a pure function of an integer cursor: callers pass the cursor in
and receive the color together with the advanced cursor. Colors are stable for
as long as column order is stable and the cursor is never reset.
"""

from dataclasses import dataclass
from typing import Tuple


DEFAULT_COLORS: Tuple[str, ...] = (
    "#01B8AA",
    "#374649",
    "#FD625E",
    "#F2C80F",
    "#5F6B6D",
    "#8AD4EB",
    "#FE9666",
    "#A66999",
    "#3599B8",
    "#DFBFBF",
)


@dataclass(frozen=True)
class Palette:
    """An ordered, immutable set of colors handed out round-robin."""
    colors: Tuple[str, ...] = DEFAULT_COLORS

    def __post_init__(self):
        if not self.colors:
            raise ValueError("Palette requires at least one color")

    def color_at(self, cursor: int) -> str:
        return self.colors[cursor % len(self.colors)]

    def allocate(self, cursor: int) -> Tuple[str, int]:
        """Return (color for cursor, next cursor)."""
        if cursor < 0:
            raise ValueError(f"Palette cursor must be >= 0, got {cursor}")
        return self.color_at(cursor), cursor + 1
