"""
Library operations: pages, projects, and block placement.

Every operation takes the aggregate it mutates (Library or Page)
explicitly. Identity and placement failures are recovered here and
reported through return values; after any call returns, every page
still satisfies: block.rect is set <=> block id is in placed_ids.
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from audio.base import PlaybackGateway
from core.constants import BLOCK_HEIGHT, BLOCK_WIDTH, CANVAS_HEIGHT, CANVAS_WIDTH, GRID_SIZE, snap_to_grid
from core.errors import DuplicateBlockError, DuplicateNameError, PlacementError, ResourceUnavailableError
from core.hashing import hash_file, hash_text
from core.layout import Bounds, Offsets, Point, Rect, find_free_position, place_at_explicit_position
from core.models import Block, Library, Page, Project

DEFAULT_BOUNDS = Bounds(CANVAS_WIDTH, CANVAS_HEIGHT)

PLACED = "placed"
DECK = "deck"


@dataclass
class AddResult:
    """Outcome of adding files to a page."""
    added: List[str] = field(default_factory=list)
    skipped: int = 0
    failed: List[str] = field(default_factory=list)


@dataclass
class PlacementResult:
    """Outcome of placing one block."""
    block_id: str
    rect: Optional[Rect] = None

    @property
    def ok(self) -> bool:
        return self.rect is not None


@dataclass
class BatchResult:
    """Aggregate counts for batch operations."""
    processed: int = 0
    failed: int = 0


# ---------------------------------------------------------------------------
# Blocks
# ---------------------------------------------------------------------------

def _get_block(page: Page, block_id: str) -> Block:
    try:
        return page.blocks[block_id]
    except KeyError:
        raise KeyError(f"Block {block_id[:8]} not on page {page.name!r}") from None


def block_state(page: Page, block_id: str) -> str:
    """Return PLACED or DECK for a block on the page."""
    return PLACED if _get_block(page, block_id).rect is not None else DECK


def add_block(page: Page, source_path: str,
              hasher: Callable[[str], str] = hash_file) -> Block:
    """
    Add an audio file to the page's deck.

    Args:
        page: Target page
        source_path: Audio file
        hasher: Content hasher (file path -> id)

    Returns:
        The new block (in the deck)

    Raises:
        DuplicateBlockError: If the same content is already on the page
        OSError: If the file cannot be read
    """
    block_id = hasher(source_path)
    if block_id in page.blocks:
        raise DuplicateBlockError(block_id, page.id)

    block = Block(id=block_id, text=Path(source_path).stem, path=str(source_path))
    page.blocks[block_id] = block
    return block


def add_blocks(page: Page, source_paths: Iterable[str],
               hasher: Callable[[str], str] = hash_file) -> AddResult:
    """
    Add several files, counting duplicates and unreadable files.

    Args:
        page: Target page
        source_paths: Resolved file paths (from a picker or folder scan)
        hasher: Content hasher

    Returns:
        AddResult with added ids, duplicate count, and unreadable paths
    """
    result = AddResult()
    for source_path in source_paths:
        try:
            block = add_block(page, source_path, hasher)
        except DuplicateBlockError:
            result.skipped += 1
            continue
        except OSError as e:
            print(f"[LIBRARY] Cannot read {source_path}: {e}")
            result.failed.append(str(source_path))
            continue
        result.added.append(block.id)

    if result.skipped:
        print(f"[LIBRARY] Skipped {result.skipped} duplicate file(s) on {page.name!r}")
    return result


def remove_block(page: Page, block_id: str,
                 playback: Optional[PlaybackGateway] = None) -> bool:
    """
    Delete a block from the page and release its audio.

    Returns:
        False if the block was not on the page
    """
    if block_id not in page.blocks:
        return False

    if playback is not None:
        playback.unload(block_id)
    if block_id in page.placed_ids:
        page.placed_ids.remove(block_id)
    del page.blocks[block_id]
    return True


def place_from_deck(page: Page, block_id: str,
                    bounds: Bounds = DEFAULT_BOUNDS,
                    position: Optional[Point] = None,
                    offsets: Offsets = Offsets(),
                    width: int = BLOCK_WIDTH,
                    height: int = BLOCK_HEIGHT) -> PlacementResult:
    """
    Move a deck block onto the canvas.

    With a drop position the block goes there (grid snapped, overlap
    allowed). Without one, a free slot is searched below the last placed
    block. If the canvas is full the block stays in the deck.

    Args:
        page: Page holding the block
        block_id: Block to place (must be in the deck)
        bounds: Canvas size
        position: Drop point in window coordinates (optional)
        offsets: Canvas origin inside the window
        width: Block width
        height: Block height

    Returns:
        PlacementResult (rect is None on failure)
    """
    block = _get_block(page, block_id)
    if block.rect is not None:
        return PlacementResult(block_id, block.rect)

    if position is not None:
        rect = place_at_explicit_position(position, width, height, offsets)
    else:
        anchor = page.last_placed()
        try:
            rect = find_free_position(
                width, height,
                page.placed_rects(),
                bounds,
                anchor=anchor.rect if anchor is not None else None,
            )
        except PlacementError as e:
            print(f"[LIBRARY] Cannot place {block.text!r}: {e}")
            return PlacementResult(block_id)

    block.rect = rect
    page.placed_ids.append(block_id)
    return PlacementResult(block_id, rect)


def return_to_deck(page: Page, block_id: str) -> bool:
    """
    Take a placed block off the canvas (clears rect and color).

    Returns:
        False if the block was already in the deck
    """
    block = _get_block(page, block_id)
    if block.rect is None:
        return False

    block.rect = None
    block.color = None
    page.placed_ids.remove(block_id)
    return True


def move_block(page: Page, block_id: str, position: Point,
               offsets: Offsets = Offsets()) -> Optional[Rect]:
    """
    Drag a placed block to a new position (no collision check).

    Returns:
        New rect, or None if the block is in the deck
    """
    block = _get_block(page, block_id)
    if block.rect is None:
        return None

    rect = place_at_explicit_position(position, block.rect.width, block.rect.height, offsets)
    block.rect = rect
    # Most recently touched block becomes the stacking anchor
    page.placed_ids.remove(block_id)
    page.placed_ids.append(block_id)
    return rect


def resize_block(page: Page, block_id: str, width: int, height: int) -> Optional[Rect]:
    """
    Resize a placed block; size snaps to the grid, minimum one cell.

    Returns:
        New rect, or None if the block is in the deck
    """
    block = _get_block(page, block_id)
    if block.rect is None:
        return None

    rect = Rect(
        left=block.rect.left,
        top=block.rect.top,
        width=max(GRID_SIZE, snap_to_grid(width)),
        height=max(GRID_SIZE, snap_to_grid(height)),
    )
    block.rect = rect
    return rect


def set_block_text(page: Page, block_id: str, text: str):
    """Relabel a block. Blank labels fall back to the file name."""
    block = _get_block(page, block_id)
    text = text.strip()
    if not text and block.path:
        text = Path(block.path).stem
    block.text = text


def set_block_color(page: Page, block_id: str, color: Optional[str]) -> bool:
    """
    Tag a placed block with a color (None clears it).

    Returns:
        False if the block is in the deck
    """
    block = _get_block(page, block_id)
    if block.rect is None:
        return False
    block.color = color
    return True


def place_deck_blocks(page: Page, bounds: Bounds = DEFAULT_BOUNDS,
                      block_ids: Optional[Iterable[str]] = None,
                      width: int = BLOCK_WIDTH,
                      height: int = BLOCK_HEIGHT) -> BatchResult:
    """
    Auto-place deck blocks one at a time, in deck order.

    Stops at the first block that does not fit; already placed blocks
    stay placed.

    Returns:
        BatchResult (processed = placed, failed = left in the deck)
    """
    candidates = list(block_ids) if block_ids is not None else page.deck_ids()
    pending = []
    for block_id in candidates:
        block = page.blocks.get(block_id)
        if block is not None and block.rect is None and block_id not in pending:
            pending.append(block_id)

    result = BatchResult()
    for index, block_id in enumerate(pending):
        placement = place_from_deck(page, block_id, bounds, width=width, height=height)
        if not placement.ok:
            result.failed = len(pending) - index
            break
        result.processed += 1
    return result


def flush_placed_blocks(page: Page) -> BatchResult:
    """Return every placed block to the deck, oldest first."""
    result = BatchResult()
    for block_id in list(page.placed_ids):
        if return_to_deck(page, block_id):
            result.processed += 1
    return result


def flush_deck_blocks(page: Page, playback: Optional[PlaybackGateway] = None) -> BatchResult:
    """Delete every deck block from the page."""
    result = BatchResult()
    for block_id in page.deck_ids():
        if remove_block(page, block_id, playback):
            result.processed += 1
    return result


# ---------------------------------------------------------------------------
# Playback
# ---------------------------------------------------------------------------

def trigger_block(page: Page, block_id: str, playback: PlaybackGateway) -> bool:
    """
    Play a block, loading its audio on first use, and count the play.

    A block whose audio fails to load is flagged unavailable but kept.
    A failing output device says nothing about the block, so it leaves
    the block untouched and propagates.

    Returns:
        True if playback started

    Raises:
        OutputUnavailableError: If the output device cannot be opened
    """
    block = _get_block(page, block_id)
    if not block.path:
        block.unavailable = True
        return False

    try:
        if not playback.is_loaded(block_id):
            playback.load(block_id, block.path)
        playback.play(block_id)
    except ResourceUnavailableError as e:
        print(f"[PLAYBACK] {e}")
        block.unavailable = True
        return False

    block.unavailable = False
    block.stats = block.stats.played()
    return True


def stop_block(block_id: str, playback: PlaybackGateway) -> bool:
    """Stop a block if it was ever loaded."""
    if not playback.is_loaded(block_id):
        return False
    playback.stop(block_id)
    return True


def unload_page(page: Page, playback: Optional[PlaybackGateway]):
    """Release the audio of every block on the page."""
    if playback is None:
        return
    for block_id in page.blocks:
        playback.unload(block_id)


# ---------------------------------------------------------------------------
# Pages
# ---------------------------------------------------------------------------

def create_page(library: Library, name: str) -> Page:
    """
    Create an empty page and register it in the library.

    Raises:
        DuplicateNameError: If a page with the same normalized name exists
        ValueError: If the name is blank
    """
    if not name.strip():
        raise ValueError("Page name must not be blank")

    page = Page.create(name.strip())
    if page.id in library.pages:
        raise DuplicateNameError(name, page.id)

    library.pages[page.id] = page
    return page


def rename_page(library: Library, page_id: str, new_name: str) -> str:
    """
    Rename a page and re-key it everywhere it is referenced.

    The page dict, active order, current pointer and projects are each
    swapped in a single assignment, so the page is always reachable.

    Returns:
        New page id

    Raises:
        DuplicateNameError: If another page already has the new name
        ValueError: If the name is blank
    """
    page = library.get_page(page_id)
    new_name = new_name.strip()
    if not new_name:
        raise ValueError("Page name must not be blank")

    new_id = hash_text(new_name)
    if new_id != page_id and new_id in library.pages:
        raise DuplicateNameError(new_name, new_id)

    page.name = new_name
    if new_id == page_id:
        return page_id

    page.id = new_id
    library.pages = {
        (new_id if key == page_id else key): value
        for key, value in library.pages.items()
    }
    library.active_page_order = [
        new_id if pid == page_id else pid for pid in library.active_page_order
    ]
    if library.current_page_id == page_id:
        library.current_page_id = new_id
    for project in library.projects.values():
        project.page_ids = [new_id if pid == page_id else pid for pid in project.page_ids]
    return new_id


def open_page(library: Library, page_id: str) -> Page:
    """Add a page to the open tabs (if needed) and make it current."""
    page = library.get_page(page_id)
    if page_id not in library.active_page_order:
        library.active_page_order.append(page_id)
    library.current_page_id = page_id
    return page


def select_page(library: Library, page_id: str) -> bool:
    """Switch the current page among the open ones."""
    if page_id not in library.active_page_order:
        return False
    library.current_page_id = page_id
    return True


def reorder_active_pages(library: Library, page_ids: List[str]) -> bool:
    """
    Replace the tab order.

    Returns:
        False (order unchanged) unless page_ids is a permutation of the
        open pages
    """
    if sorted(page_ids) != sorted(library.active_page_order):
        return False
    library.active_page_order = list(page_ids)
    return True


def close_active_page(library: Library, page_id: str,
                      playback: Optional[PlaybackGateway] = None) -> bool:
    """
    Close an open page: unload its audio and drop it from the tabs.

    If it was current, the tab before it becomes current (or the new
    first tab, or nothing when no tabs remain). The page stays saved in
    the library.

    Returns:
        False if the page was not open
    """
    if page_id not in library.active_page_order:
        return False

    unload_page(library.get_page(page_id), playback)

    index = library.active_page_order.index(page_id)
    library.active_page_order.remove(page_id)

    if library.current_page_id == page_id:
        remaining = library.active_page_order
        if not remaining:
            library.current_page_id = None
        elif index > 0:
            library.current_page_id = remaining[index - 1]
        else:
            library.current_page_id = remaining[0]
    return True


def delete_page(library: Library, page_id: str,
                playback: Optional[PlaybackGateway] = None) -> bool:
    """
    Remove a page from the library and from every project referencing it.

    Returns:
        False if the page is unknown
    """
    if page_id not in library.pages:
        return False

    if not close_active_page(library, page_id, playback):
        unload_page(library.pages[page_id], playback)
    for project in library.projects.values():
        project.page_ids = [pid for pid in project.page_ids if pid != page_id]
    del library.pages[page_id]
    return True


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------

def create_project(library: Library, name: str,
                   page_ids: Optional[List[str]] = None) -> Project:
    """
    Create a project over known pages (unknown ids are dropped).

    Raises:
        DuplicateNameError: If a project with the same name exists
        ValueError: If the name is blank
    """
    if not name.strip():
        raise ValueError("Project name must not be blank")

    project = Project.create(name.strip())
    if project.id in library.projects:
        raise DuplicateNameError(name, project.id)

    for page_id in page_ids or []:
        if page_id in library.pages and page_id not in project.page_ids:
            project.page_ids.append(page_id)

    library.projects[project.id] = project
    return project


def save_active_as_project(library: Library, name: str) -> Project:
    """Create a project from the currently open tabs."""
    project = create_project(library, name, library.active_page_order)
    library.current_project_id = project.id
    return project


def rename_project(library: Library, project_id: str, new_name: str) -> str:
    """
    Rename a project and re-key it.

    Returns:
        New project id

    Raises:
        DuplicateNameError: If another project already has the new name
    """
    project = library.get_project(project_id)
    new_name = new_name.strip()
    if not new_name:
        raise ValueError("Project name must not be blank")

    new_id = hash_text(new_name)
    if new_id != project_id and new_id in library.projects:
        raise DuplicateNameError(new_name, new_id)

    project.name = new_name
    if new_id == project_id:
        return project_id

    project.id = new_id
    library.projects = {
        (new_id if key == project_id else key): value
        for key, value in library.projects.items()
    }
    if library.current_project_id == project_id:
        library.current_project_id = new_id
    return new_id


def delete_project(library: Library, project_id: str) -> bool:
    """Remove a project. Its pages are untouched."""
    if project_id not in library.projects:
        return False
    del library.projects[project_id]
    if library.current_project_id == project_id:
        library.current_project_id = None
    return True


def add_page_to_project(library: Library, project_id: str, page_id: str) -> bool:
    """Append a page to a project (no-op if already there)."""
    project = library.get_project(project_id)
    library.get_page(page_id)
    if page_id in project.page_ids:
        return False
    project.page_ids.append(page_id)
    return True


def remove_page_from_project(library: Library, project_id: str, page_id: str) -> bool:
    """Drop a page reference from a project. The page itself stays."""
    project = library.get_project(project_id)
    if page_id not in project.page_ids:
        return False
    project.page_ids.remove(page_id)
    return True


def open_project(library: Library, project_id: str) -> List[str]:
    """
    Open every page of a project, in project order.

    The first project page becomes current.

    Returns:
        Ids of the pages opened
    """
    project = library.get_project(project_id)
    opened = []
    for page_id in project.page_ids:
        if page_id in library.pages:
            open_page(library, page_id)
            opened.append(page_id)

    if opened:
        library.current_page_id = opened[0]
    library.current_project_id = project_id
    return opened
