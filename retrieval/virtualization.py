"""Visible-window arithmetic for rendering long result lists.

Updates:
  v0.1.1 - 2026-10-16 - Support grid rows with several items per row.
  v0.1.0 - 2026-10-14 - Introduce compute_window and Virtualizer.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

DEFAULT_ROW_HEIGHT_PX = 400
DEFAULT_OVERSCAN_ROWS = 2


@dataclass(slots=True, frozen=True)
class ViewportWindow:
    """Half-open item range ``[start, end)`` to render, with layout offsets."""

    start: int
    end: int
    offset_top: float
    total_height: float

    def __len__(self) -> int:
        return self.end - self.start

    def indices(self) -> range:
        return range(self.start, self.end)


def compute_window(
    scroll_offset: float,
    viewport_height: float,
    row_height: float,
    item_count: int,
    overscan: int = DEFAULT_OVERSCAN_ROWS,
    items_per_row: int = 1,
) -> ViewportWindow:
    """Return the smallest item range covering the viewport plus *overscan* rows.

    Rows are laid out at fixed *row_height*; with ``items_per_row > 1`` every
    row holds that many items and the window always starts on a row boundary.
    """
    if row_height <= 0:
        raise ValueError("row_height must be positive")
    if items_per_row <= 0:
        raise ValueError("items_per_row must be positive")
    count = max(0, int(item_count))
    row_count = math.ceil(count / items_per_row)
    total_height = row_count * row_height
    if row_count == 0 or viewport_height <= 0:
        return ViewportWindow(0, 0, 0.0, float(total_height))

    offset = min(max(0.0, float(scroll_offset)), max(0.0, total_height - viewport_height))
    first_row = int(offset // row_height)
    last_row = math.ceil((offset + viewport_height) / row_height) - 1
    first_row = max(0, first_row - max(0, overscan))
    last_row = min(row_count - 1, last_row + max(0, overscan))
    start = first_row * items_per_row
    end = min(count, (last_row + 1) * items_per_row)
    return ViewportWindow(start, end, float(first_row * row_height), float(total_height))


class Virtualizer:
    """Track scroll position and viewport size for a growing item list."""

    def __init__(
        self,
        *,
        row_height: float = DEFAULT_ROW_HEIGHT_PX,
        overscan: int = DEFAULT_OVERSCAN_ROWS,
        items_per_row: int = 1,
    ) -> None:
        if row_height <= 0:
            raise ValueError("row_height must be positive")
        self.row_height = row_height
        self.overscan = overscan
        self.items_per_row = items_per_row
        self.scroll_offset = 0.0
        self.viewport_height = 0.0
        self._item_count = 0

    @property
    def item_count(self) -> int:
        return self._item_count

    @property
    def content_height(self) -> float:
        return math.ceil(self._item_count / self.items_per_row) * self.row_height

    def update_viewport(self, scroll_offset: float, viewport_height: float) -> ViewportWindow:
        self.scroll_offset = max(0.0, float(scroll_offset))
        self.viewport_height = max(0.0, float(viewport_height))
        return self.window()

    def set_item_count(self, item_count: int) -> ViewportWindow:
        """Resize the list, clamping the scroll offset only when it shrinks."""
        count = max(0, int(item_count))
        shrinking = count < self._item_count
        self._item_count = count
        if shrinking:
            limit = max(0.0, self.content_height - self.viewport_height)
            self.scroll_offset = min(self.scroll_offset, limit)
        return self.window()

    def reset(self) -> None:
        self.scroll_offset = 0.0
        self._item_count = 0

    def window(self) -> ViewportWindow:
        return compute_window(
            self.scroll_offset,
            self.viewport_height,
            self.row_height,
            self._item_count,
            self.overscan,
            self.items_per_row,
        )


__all__ = [
    "DEFAULT_OVERSCAN_ROWS",
    "DEFAULT_ROW_HEIGHT_PX",
    "ViewportWindow",
    "compute_window",
    "Virtualizer",
]
