"""Tests for grid snapping, overlap detection and auto-placement."""
import pytest

from core.constants import snap_to_grid
from core.errors import PlacementError
from core.layout import (
    Bounds,
    Offsets,
    Point,
    Rect,
    find_free_position,
    max_search_iterations,
    overlaps,
    place_at_explicit_position,
)


def test_snap_rounds_up_to_grid():
    assert snap_to_grid(0) == 0
    assert snap_to_grid(1) == 10
    assert snap_to_grid(10) == 10
    assert snap_to_grid(10.5) == 20
    assert snap_to_grid(-5) == 0


def test_rect_rejects_empty_size():
    with pytest.raises(ValueError):
        Rect(0, 0, 0, 10)


def test_overlapping_rects():
    assert overlaps(Rect(0, 0, 100, 50), Rect(50, 25, 100, 50))
    assert overlaps(Rect(0, 0, 100, 100), Rect(10, 10, 10, 10))


def test_touching_edges_do_not_overlap():
    a = Rect(0, 0, 100, 50)
    assert not overlaps(a, Rect(100, 0, 100, 50))
    assert not overlaps(a, Rect(0, 50, 100, 50))
    assert not overlaps(a, Rect(100, 50, 10, 10))


def test_first_block_on_empty_canvas():
    rect = find_free_position(100, 50, [], Bounds(800, 600))
    assert rect == Rect(0, 10, 100, 50)


def test_stacks_below_anchor():
    anchor = Rect(0, 10, 100, 50)
    rect = find_free_position(100, 50, [anchor], Bounds(800, 600), anchor=anchor)
    assert rect == Rect(0, 60, 100, 50)
    assert not overlaps(rect, anchor)


def test_skips_occupied_slots():
    placed = [Rect(0, 10, 100, 50), Rect(0, 60, 100, 50)]
    rect = find_free_position(100, 50, placed, Bounds(800, 600))
    assert rect.top == 110
    assert all(not overlaps(rect, other) for other in placed)


def test_wraps_to_next_column():
    bounds = Bounds(800, 130)
    placed = [Rect(0, 10, 100, 50), Rect(0, 60, 100, 50)]
    rect = find_free_position(100, 50, placed, bounds, anchor=placed[-1])
    assert rect == Rect(200, 10, 100, 50)


def test_full_canvas_raises():
    bounds = Bounds(250, 70)
    placed = [Rect(0, 10, 100, 50), Rect(200, 10, 50, 50)]
    with pytest.raises(PlacementError):
        find_free_position(100, 50, placed, bounds)


def test_block_larger_than_canvas_raises():
    with pytest.raises(PlacementError):
        find_free_position(100, 700, [], Bounds(800, 600))
    with pytest.raises(PlacementError):
        find_free_position(900, 50, [], Bounds(800, 600))


def test_fills_canvas_without_overlap_then_fails():
    bounds = Bounds(600, 300)
    placed = []
    anchor = None
    while True:
        try:
            rect = find_free_position(100, 50, placed, bounds, anchor=anchor)
        except PlacementError:
            break
        assert rect.left % 10 == 0 and rect.top % 10 == 0
        assert rect.right <= bounds.width and rect.bottom <= bounds.height
        assert all(not overlaps(rect, other) for other in placed)
        placed.append(rect)
        anchor = rect
        assert len(placed) <= max_search_iterations(bounds)
    # 3 columns (0, 200, 400) x 5 rows (10..210)
    assert len(placed) == 15


def test_unaligned_anchor_snaps_to_grid():
    anchor = Rect(13, 27, 100, 50)
    rect = find_free_position(100, 50, [], Bounds(800, 600), anchor=anchor)
    assert rect.left % 10 == 0
    assert rect.top % 10 == 0


def test_explicit_position_subtracts_offsets_and_snaps():
    rect = place_at_explicit_position(Point(143, 88), 100, 50, Offsets(left=20, top=30))
    assert rect == Rect(130, 60, 100, 50)


def test_explicit_position_ignores_collisions_and_clamps():
    rect = place_at_explicit_position(Point(5, 5), 100, 50, Offsets(left=20, top=30))
    assert rect == Rect(0, 0, 100, 50)
