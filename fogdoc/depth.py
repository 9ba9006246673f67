"""Tracking of nesting depth while walking a stream of encoded elements."""

from __future__ import annotations

import enum

from .errors import ParseLimit

MAX_DEPTH = 100


class ElementKind(enum.Enum):
    """How an element affects nesting."""

    MAP = "map"
    ARRAY = "array"
    OTHER = "other"


class DepthTracker:
    """Counts how many elements remain at each open nesting level."""

    def __init__(self, max_depth: int = MAX_DEPTH) -> None:
        self.max_depth = max_depth
        self._remaining: list[int] = []

    def __len__(self) -> int:
        return len(self._remaining)

    def __repr__(self) -> str:
        return f"DepthTracker(remaining={self._remaining!r})"

    def update_elem(self, kind: ElementKind, length: int = 0) -> None:
        """Account for one element; maps and arrays open a new level."""
        if self._remaining:
            self._remaining[-1] -= 1

        if kind is ElementKind.MAP:
            self._remaining.append(2 * length)
        elif kind is ElementKind.ARRAY:
            self._remaining.append(length)

        if len(self._remaining) > self.max_depth:
            raise ParseLimit("Depth limit exceeded")

        self.purge_zeros()

    def purge_zeros(self) -> None:
        """Close every innermost level that has no elements left."""
        while self._remaining and self._remaining[-1] == 0:
            self._remaining.pop()

    def early_end(self) -> None:
        """Close the innermost level before all its elements were seen."""
        if self._remaining:
            self._remaining.pop()
        self.purge_zeros()