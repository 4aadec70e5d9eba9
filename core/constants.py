"""
Layout and storage constants.

Canvas grid, auto-placement steps, default sizes, file formats.
"""
import math

# Placement grid (all rect coordinates are multiples of this)
GRID_SIZE = 10

# Auto-placement search
PLACEMENT_STEP = 10      # Vertical nudge per attempt
ANCHOR_MARGIN = 10       # Overlap subtracted from anchor bottom when stacking
COLUMN_WIDTH = 200       # Horizontal jump when a column is full

# Default canvas and block geometry
CANVAS_WIDTH = 1200
CANVAS_HEIGHT = 800
BLOCK_WIDTH = 180
BLOCK_HEIGHT = 40

# Storage format version written by LibraryFile
LIBRARY_VERSION = "1.0.0"

# Export file "type" field
EXPORT_TYPE_PAGE = "page"

# Audio files picked up by folder scans
AUDIO_EXTENSIONS = (".wav", ".mp3", ".ogg", ".flac", ".aiff", ".aif")

# Legacy (pre-JSON) page format
LEGACY_ENCODING = "cp1251"
LEGACY_DELIMITER = "*"

# Block color tags
BLOCK_COLORS = {
    "red": (220, 80, 80),
    "orange": (230, 140, 60),
    "yellow": (220, 180, 80),
    "green": (80, 160, 80),
    "blue": (0, 122, 204),
    "purple": (150, 90, 200),
}


def snap_to_grid(value: float, grid_size: int = GRID_SIZE) -> int:
    """
    Round a coordinate up to the next grid line.

    Args:
        value: Raw coordinate
        grid_size: Grid spacing

    Returns:
        Integer multiple of grid_size

    Example:
        >>> snap_to_grid(13)
        20
        >>> snap_to_grid(20)
        20
    """
    if grid_size <= 0:
        raise ValueError(f"Grid size must be positive, got {grid_size}")
    return int(math.ceil(value / grid_size)) * grid_size
