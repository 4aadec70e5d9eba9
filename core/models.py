"""
Data models for the soundboard library.

Hierarchy: Library -> Page -> Block, with Projects referencing Pages by id.
Rect and BlockStats are immutable values; Block, Page, Project and Library
are mutated in place by the operations in core.library.
"""
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, List, Optional

from core.constants import LIBRARY_VERSION
from core.hashing import hash_text
from core.layout import Rect


def now_iso() -> str:
    """Current local time as an ISO-8601 string."""
    return datetime.now().isoformat(timespec="seconds")


@dataclass(frozen=True)
class BlockStats:
    """
    Advisory usage counters. Never affect identity or placement.

    Attributes:
        added_at: When the block was added (ISO-8601)
        last_played_at: Last playback trigger (ISO-8601, None if never)
        play_count: Number of playback triggers
    """
    added_at: str = field(default_factory=now_iso)
    last_played_at: Optional[str] = None
    play_count: int = 0

    def __post_init__(self):
        """Validate counters."""
        if self.play_count < 0:
            raise ValueError(f"Play count must be non-negative, got {self.play_count}")

    def played(self, at: Optional[str] = None) -> "BlockStats":
        """Return stats with one more playback recorded."""
        return replace(self, last_played_at=at or now_iso(), play_count=self.play_count + 1)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "added_at": self.added_at,
            "last_played_at": self.last_played_at,
            "play_count": self.play_count,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BlockStats":
        """Create BlockStats from dictionary."""
        return cls(
            added_at=data.get("added_at") or now_iso(),
            last_played_at=data.get("last_played_at"),
            play_count=int(data.get("play_count", 0)),
        )


@dataclass
class Block:
    """
    One audio clip reference on a page.

    Attributes:
        id: SHA-256 of the audio file's bytes
        text: User-editable label
        path: Audio file location (None = unresolved/broken)
        rect: Placement on the canvas (None = in the deck)
        color: Presentational color tag
        stats: Usage counters
        unavailable: Set when playback failed to load the file (not saved)
    """
    id: str
    text: str
    path: Optional[str] = None
    rect: Optional[Rect] = None
    color: Optional[str] = None
    stats: BlockStats = field(default_factory=BlockStats)
    unavailable: bool = field(default=False, compare=False)

    @property
    def is_placed(self) -> bool:
        return self.rect is not None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        result = {
            "id": self.id,
            "text": self.text,
            "path": self.path,
            "color": self.color,
            "stats": self.stats.to_dict(),
        }
        if self.rect is not None:
            result["rect"] = self.rect.to_dict()
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Block":
        """Create Block from dictionary."""
        rect = None
        if data.get("rect"):
            rect = Rect.from_dict(data["rect"])

        return cls(
            id=data["id"],
            text=data.get("text", ""),
            path=data.get("path"),
            rect=rect,
            color=data.get("color"),
            stats=BlockStats.from_dict(data.get("stats", {})),
        )


@dataclass
class Page:
    """
    A named canvas of blocks.

    Invariant: block.rect is set exactly for the ids listed in placed_ids.

    Attributes:
        id: Hash of the normalized name
        name: Display name (unique among all pages)
        blocks: Block id -> Block
        placed_ids: Placed block ids, oldest first (z-order and anchor)
    """
    id: str
    name: str
    blocks: Dict[str, Block] = field(default_factory=dict)
    placed_ids: List[str] = field(default_factory=list)

    @classmethod
    def create(cls, name: str) -> "Page":
        """Create an empty page keyed by its name."""
        return cls(id=hash_text(name), name=name)

    def deck_ids(self) -> List[str]:
        """Ids of blocks not on the canvas, in insertion order."""
        return [block_id for block_id, block in self.blocks.items() if block.rect is None]

    def placed_rects(self, exclude: Optional[str] = None) -> List[Rect]:
        """Rectangles of placed blocks, optionally skipping one."""
        return [
            self.blocks[block_id].rect
            for block_id in self.placed_ids
            if block_id != exclude
        ]

    def last_placed(self) -> Optional[Block]:
        """Most recently placed block (auto-placement anchor)."""
        if not self.placed_ids:
            return None
        return self.blocks[self.placed_ids[-1]]

    def check(self) -> List[str]:
        """
        Audit the placed/deck invariant.

        Returns:
            Problem descriptions (empty if consistent)
        """
        problems = []
        seen = set()
        for block_id in self.placed_ids:
            if block_id in seen:
                problems.append(f"{block_id[:8]} listed twice in placed_ids")
            seen.add(block_id)
            block = self.blocks.get(block_id)
            if block is None:
                problems.append(f"{block_id[:8]} placed but not on page")
            elif block.rect is None:
                problems.append(f"{block_id[:8]} placed without rect")
        for block_id, block in self.blocks.items():
            if block.id != block_id:
                problems.append(f"{block_id[:8]} keyed under wrong id {block.id[:8]}")
            if block.rect is not None and block_id not in seen:
                problems.append(f"{block_id[:8]} has rect but is not placed")
        return problems

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "name": self.name,
            "blocks": [b.to_dict() for b in self.blocks.values()],
            "placed_ids": list(self.placed_ids),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Page":
        """
        Create Page from dictionary.

        Stored data that breaks the placed/deck invariant is repaired:
        dangling placed ids are dropped and stray rects cleared.
        """
        blocks = {}
        for block_data in data.get("blocks", []):
            block = Block.from_dict(block_data)
            blocks[block.id] = block

        placed_ids = []
        for block_id in data.get("placed_ids", []):
            block = blocks.get(block_id)
            if block is not None and block.rect is not None and block_id not in placed_ids:
                placed_ids.append(block_id)

        for block_id, block in blocks.items():
            if block.rect is not None and block_id not in placed_ids:
                print(f"[LIBRARY] Returning stray block {block_id[:8]} to deck")
                block.rect = None
                block.color = None

        name = data.get("name", "Untitled")
        return cls(
            id=data.get("id") or hash_text(name),
            name=name,
            blocks=blocks,
            placed_ids=placed_ids,
        )


@dataclass
class Project:
    """
    Named, ordered working set of pages.

    Attributes:
        id: Hash of the normalized name
        name: Display name
        page_ids: Pages opened together, in tab order
    """
    id: str
    name: str
    page_ids: List[str] = field(default_factory=list)

    @classmethod
    def create(cls, name: str, page_ids: Optional[List[str]] = None) -> "Project":
        """Create a project keyed by its name."""
        return cls(id=hash_text(name), name=name, page_ids=list(page_ids or []))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "name": self.name,
            "page_ids": list(self.page_ids),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Project":
        """Create Project from dictionary."""
        name = data.get("name", "Untitled")
        return cls(
            id=data.get("id") or hash_text(name),
            name=name,
            page_ids=list(data.get("page_ids", [])),
        )


@dataclass
class Library:
    """
    Root aggregate: every known page and project plus session pointers.

    Attributes:
        pages: Page id -> Page (saved pages, open or not)
        projects: Project id -> Project
        active_page_order: Open pages in tab order
        current_page_id: Page shown on the canvas
        current_project_id: Project last opened
    """
    pages: Dict[str, Page] = field(default_factory=dict)
    projects: Dict[str, Project] = field(default_factory=dict)
    active_page_order: List[str] = field(default_factory=list)
    current_page_id: Optional[str] = None
    current_project_id: Optional[str] = None

    def get_page(self, page_id: str) -> Page:
        """
        Look up a page.

        Raises:
            KeyError: If the page is unknown
        """
        try:
            return self.pages[page_id]
        except KeyError:
            raise KeyError(f"Unknown page: {page_id[:8]}") from None

    def get_project(self, project_id: str) -> Project:
        """
        Look up a project.

        Raises:
            KeyError: If the project is unknown
        """
        try:
            return self.projects[project_id]
        except KeyError:
            raise KeyError(f"Unknown project: {project_id[:8]}") from None

    def current_page(self) -> Optional[Page]:
        """Currently shown page, if any."""
        if self.current_page_id is None:
            return None
        return self.pages.get(self.current_page_id)

    def find_page_by_name(self, name: str) -> Optional[Page]:
        """Page whose normalized name matches, if any."""
        return self.pages.get(hash_text(name))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "version": LIBRARY_VERSION,
            "pages": [p.to_dict() for p in self.pages.values()],
            "projects": [p.to_dict() for p in self.projects.values()],
            "active_page_order": list(self.active_page_order),
            "current_page_id": self.current_page_id,
            "current_project_id": self.current_project_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Library":
        """Create Library from dictionary, dropping references to unknown pages."""
        pages = {}
        for page_data in data.get("pages", []):
            page = Page.from_dict(page_data)
            pages[page.id] = page

        projects = {}
        for project_data in data.get("projects", []):
            project = Project.from_dict(project_data)
            project.page_ids = [pid for pid in project.page_ids if pid in pages]
            projects[project.id] = project

        active = [pid for pid in data.get("active_page_order", []) if pid in pages]

        current_page_id = data.get("current_page_id")
        if current_page_id not in active:
            current_page_id = active[0] if active else None

        current_project_id = data.get("current_project_id")
        if current_project_id not in projects:
            current_project_id = None

        return cls(
            pages=pages,
            projects=projects,
            active_page_order=active,
            current_page_id=current_page_id,
            current_project_id=current_project_id,
        )


class AppState:
    """
    Session flags for the UI layer.

    Manages:
    - Edit mode (layout editing allowed) vs play mode
    - Unsaved-changes flag
    """

    def __init__(self):
        """Initialize in play mode with no unsaved changes."""
        self._edit_mode: bool = False
        self._is_dirty: bool = False

    def is_edit_mode(self) -> bool:
        """Check if layout-mutating operations may be invoked."""
        return self._edit_mode

    def set_edit_mode(self, enabled: bool):
        """Switch between edit and play mode."""
        self._edit_mode = enabled

    def toggle_edit_mode(self) -> bool:
        """Flip edit mode and return the new value."""
        self._edit_mode = not self._edit_mode
        return self._edit_mode

    def is_dirty(self) -> bool:
        """Check if library has unsaved changes."""
        return self._is_dirty

    def mark_dirty(self):
        """Mark library as having unsaved changes."""
        self._is_dirty = True

    def mark_clean(self):
        """Mark library as saved."""
        self._is_dirty = False
