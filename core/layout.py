"""
Block layout on a bounded, grid-snapped canvas.

Auto-placement scans a column top to bottom in fixed steps, then jumps to
the next column, until it finds a slot that overlaps nothing. Explicit
placement (a user drop) is snapped to the grid but never collision
checked.
"""
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

from core.constants import (
    ANCHOR_MARGIN,
    COLUMN_WIDTH,
    GRID_SIZE,
    PLACEMENT_STEP,
    snap_to_grid,
)
from core.errors import PlacementError


@dataclass(frozen=True)
class Rect:
    """
    Page-local block rectangle.

    Attributes:
        left: X of the left edge
        top: Y of the top edge
        width: Width (positive)
        height: Height (positive)
    """
    left: int
    top: int
    width: int
    height: int

    def __post_init__(self):
        """Validate rectangle size."""
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Rect size must be positive, got {self.width}x{self.height}")

    @property
    def right(self) -> int:
        return self.left + self.width

    @property
    def bottom(self) -> int:
        return self.top + self.height

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "left": self.left,
            "top": self.top,
            "width": self.width,
            "height": self.height,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Rect":
        """Create Rect from dictionary."""
        return cls(
            left=int(data["left"]),
            top=int(data["top"]),
            width=int(data["width"]),
            height=int(data["height"]),
        )


@dataclass(frozen=True)
class Bounds:
    """Canvas size."""
    width: int
    height: int


@dataclass(frozen=True)
class Point:
    """Absolute (screen/window) coordinate of a drop."""
    x: float
    y: float


@dataclass(frozen=True)
class Offsets:
    """Position of the canvas origin inside the window chrome."""
    left: float = 0.0
    top: float = 0.0


def overlaps(a: Rect, b: Rect) -> bool:
    """
    Axis-aligned intersection test.

    Rectangles that only share an edge do not overlap.
    """
    return (
        a.left < b.right
        and b.left < a.right
        and a.top < b.bottom
        and b.top < a.bottom
    )


def max_search_iterations(bounds: Bounds,
                          step: int = PLACEMENT_STEP,
                          column_width: int = COLUMN_WIDTH) -> int:
    """Upper bound on candidate positions find_free_position() will try."""
    rows = bounds.height // step + 2
    columns = bounds.width // column_width + 2
    return rows * columns


def find_free_position(width: int,
                       height: int,
                       placed: Iterable[Rect],
                       bounds: Bounds,
                       anchor: Optional[Rect] = None,
                       grid_size: int = GRID_SIZE,
                       step: int = PLACEMENT_STEP,
                       margin: int = ANCHOR_MARGIN,
                       column_width: int = COLUMN_WIDTH) -> Rect:
    """
    Find a grid-aligned slot that overlaps no placed rectangle.

    The search starts at the canvas origin, or just below the anchor
    (usually the last placed block) so batches stack left-aligned. Each
    attempt moves down one step; when the block would cross the bottom
    edge the search wraps to the top of the next column.

    Args:
        width: Block width
        height: Block height
        placed: Rectangles already on the canvas
        bounds: Canvas size
        anchor: Rectangle to stack below (optional)
        grid_size: Snap grid
        step: Vertical nudge per attempt
        margin: Amount subtracted from anchor bottom for the seed position
        column_width: Horizontal jump on column wrap

    Returns:
        Accepted rectangle

    Raises:
        PlacementError: If no slot is free (canvas full)
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Block size must be positive, got {width}x{height}")

    placed = list(placed)

    if anchor is not None:
        left, top = anchor.left, anchor.bottom - margin
    else:
        left, top = 0, 0

    for _ in range(max_search_iterations(bounds, step, column_width)):
        left = snap_to_grid(left, grid_size)
        top = snap_to_grid(top, grid_size)

        # Wrap before the nudge would push the block past the bottom edge
        if top + step + height > bounds.height:
            top = 0
            left = snap_to_grid(left + column_width, grid_size)

        top += step

        if left + width > bounds.width or top + height > bounds.height:
            raise PlacementError(f"No room for {width}x{height} block on {bounds.width}x{bounds.height} canvas")

        candidate = Rect(left=left, top=top, width=width, height=height)
        if not any(overlaps(candidate, other) for other in placed):
            return candidate

    raise PlacementError("Placement search exhausted")


def place_at_explicit_position(point: Point,
                               width: int,
                               height: int,
                               offsets: Offsets = Offsets(),
                               grid_size: int = GRID_SIZE) -> Rect:
    """
    Convert a drop point to a page-local, grid-snapped rectangle.

    Never fails and never checks collisions: a drop is user intent.
    Coordinates left of/above the canvas origin clamp to zero.

    Args:
        point: Drop position in window coordinates
        width: Block width
        height: Block height
        offsets: Canvas origin inside the window
        grid_size: Snap grid

    Returns:
        Rectangle in page-local coordinates
    """
    left = snap_to_grid(max(0.0, point.x - offsets.left), grid_size)
    top = snap_to_grid(max(0.0, point.y - offsets.top), grid_size)
    return Rect(left=left, top=top, width=width, height=height)
