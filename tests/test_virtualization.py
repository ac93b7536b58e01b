"""Tests for visible-window arithmetic.

Updates:
  v0.1.0 - 2026-10-14 - Cover list and grid windows and scroll clamping.
"""

from __future__ import annotations

import pytest

from retrieval.virtualization import ViewportWindow, Virtualizer, compute_window


def test_window_covers_viewport_plus_overscan() -> None:
    window = compute_window(0, 800, 400, 100, overscan=2)

    assert (window.start, window.end) == (0, 4)
    assert window.offset_top == 0
    assert window.total_height == 40_000

    window = compute_window(4000, 800, 400, 100, overscan=2)

    assert list(window.indices()) == [8, 9, 10, 11, 12, 13]
    assert window.offset_top == 3200


def test_scroll_past_end_is_clamped() -> None:
    window = compute_window(99_999, 800, 400, 100, overscan=2)

    assert (window.start, window.end) == (96, 100)
    assert len(window) == 4


def test_grid_rows_start_on_row_boundary() -> None:
    middle = compute_window(400, 400, 400, 10, overscan=0, items_per_row=3)
    last = compute_window(1200, 400, 400, 10, overscan=0, items_per_row=3)

    assert (middle.start, middle.end) == (3, 6)
    assert (last.start, last.end) == (9, 10)
    assert last.total_height == 1600


@pytest.mark.parametrize(("viewport_height", "item_count"), [(800, 0), (0, 10), (-5, 10)])
def test_empty_window(viewport_height: float, item_count: int) -> None:
    window = compute_window(0, viewport_height, 400, item_count)

    assert len(window) == 0


def test_invalid_layout_is_rejected() -> None:
    with pytest.raises(ValueError):
        compute_window(0, 800, 0, 10)
    with pytest.raises(ValueError):
        compute_window(0, 800, 400, 10, items_per_row=0)
    with pytest.raises(ValueError):
        Virtualizer(row_height=-1)


def test_virtualizer_clamps_scroll_only_when_list_shrinks() -> None:
    virtualizer = Virtualizer(row_height=400, overscan=2)

    assert virtualizer.update_viewport(4000, 800) == ViewportWindow(0, 0, 0.0, 0.0)
    assert virtualizer.scroll_offset == 4000

    grown = virtualizer.set_item_count(100)
    assert (grown.start, grown.end) == (8, 14)
    assert virtualizer.scroll_offset == 4000

    shrunk = virtualizer.set_item_count(5)
    assert virtualizer.scroll_offset == 1200
    assert virtualizer.content_height == 2000
    assert (shrunk.start, shrunk.end) == (1, 5)

    virtualizer.reset()
    assert virtualizer.item_count == 0
    assert virtualizer.scroll_offset == 0
