"""
Page export/import.

Exported pages carry labels and layout but no audio or paths. Importing
re-binds blocks to files by content hash; blocks whose file is not found
are dropped, so an imported page never holds a block without audio.

Two input formats:
- JSON export: {"type": "page", "hash", "name", "added": [...], "blocks": {...}}
- Legacy text: cp1251, header line, then path*left*top*width*height*label
"""
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from core.constants import AUDIO_EXTENSIONS, EXPORT_TYPE_PAGE, LEGACY_DELIMITER, LEGACY_ENCODING
from core.errors import DuplicatePageError
from core.hashing import hash_file, hash_text
from core.layout import Rect
from core.models import Block, Library, Page


@dataclass
class ImportResult:
    """
    Outcome of a page import.

    Attributes:
        page_id: Id the page was (or would have been) stored under
        added: Blocks bound to a file
        skipped: Blocks dropped (file missing, unreadable, or malformed)
        duplicate: True if a page with this id already existed
    """
    page_id: Optional[str]
    added: int = 0
    skipped: int = 0
    duplicate: bool = False

    @property
    def ok(self) -> bool:
        return not self.duplicate and self.added > 0


def scan_audio_files(folder: Union[str, Path]) -> List[str]:
    """
    List audio files under a folder, recursively, in sorted order.

    Args:
        folder: Folder to scan

    Returns:
        File paths with a known audio extension
    """
    folder = Path(folder)
    if not folder.is_dir():
        return []
    return sorted(
        str(path) for path in folder.rglob("*")
        if path.is_file() and path.suffix.lower() in AUDIO_EXTENSIONS
    )


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------

def export_page(page: Page) -> Dict[str, Any]:
    """
    Snapshot a page for sharing.

    Returns:
        JSON-ready dictionary (paths, stats and audio stripped)
    """
    blocks = {}
    for block_id, block in page.blocks.items():
        entry = {"text": block.text}
        if block.rect is not None:
            entry["rect"] = block.rect.to_dict()
        if block.color is not None:
            entry["color"] = block.color
        blocks[block_id] = entry

    return {
        "type": EXPORT_TYPE_PAGE,
        "hash": page.id,
        "name": page.name,
        "added": list(page.placed_ids),
        "blocks": blocks,
    }


def export_page_file(page: Page, path: Union[str, Path]) -> Path:
    """
    Write a page snapshot to a JSON file.

    Raises:
        IOError: If the file cannot be written
    """
    path = Path(path)
    if path.suffix != ".json":
        path = path.with_suffix(".json")

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(export_page(page), f, indent=2, ensure_ascii=False)
    except OSError as e:
        raise IOError(f"Failed to export page to {path}: {e}") from e
    return path


def read_page_file(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load a page snapshot from a JSON file.

    Raises:
        IOError: If the file cannot be read
        ValueError: If the file is not a page export
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            snapshot = json.load(f)
    except OSError as e:
        raise IOError(f"Failed to read page file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid page file {path}: {e}") from e

    if not isinstance(snapshot, dict) or snapshot.get("type") != EXPORT_TYPE_PAGE:
        raise ValueError(f"Not a page export: {path}")
    return snapshot


# ---------------------------------------------------------------------------
# Import
# ---------------------------------------------------------------------------

def _snapshot_page_id(snapshot: Dict[str, Any]) -> Optional[str]:
    name = snapshot.get("name")
    if isinstance(name, str) and name.strip():
        return hash_text(name)
    page_hash = snapshot.get("hash")
    if isinstance(page_hash, str) and page_hash:
        return page_hash
    return None


def _snapshot_block(block_id: str, entry: Any) -> Block:
    """Decode one snapshot entry; raises KeyError/TypeError/ValueError if malformed."""
    if not isinstance(entry, dict):
        raise TypeError(f"entry is {type(entry).__name__}, not a mapping")
    rect = Rect.from_dict(entry["rect"]) if entry.get("rect") else None
    return Block(
        id=block_id,
        text=str(entry.get("text", "")),
        rect=rect,
        color=entry.get("color"),
    )


def import_page(library: Library, snapshot: Dict[str, Any],
                candidate_paths: Iterable[str],
                hasher: Callable[[str], str] = hash_file) -> ImportResult:
    """
    Rebuild an exported page against a set of audio files.

    Args:
        library: Library receiving the page
        snapshot: Output of export_page()/read_page_file()
        candidate_paths: Files that may match the snapshot's blocks
        hasher: Content hasher

    Returns:
        ImportResult; the page is only stored when result.ok
    """
    page_id = _snapshot_page_id(snapshot)
    result = ImportResult(page_id=page_id)

    if page_id is None:
        print("[IMPORT] Snapshot has neither a name nor a hash, nothing imported")
        return result

    if page_id in library.pages:
        print(f"[IMPORT] {DuplicatePageError(snapshot.get('name', ''), page_id)}")
        result.duplicate = True
        return result

    entries = snapshot.get("blocks") or {}
    if not isinstance(entries, dict):
        print("[IMPORT] Snapshot blocks are not a mapping, ignoring them")
        entries = {}

    pending: Dict[str, Block] = {}
    malformed = 0
    for block_id, entry in entries.items():
        try:
            pending[block_id] = _snapshot_block(block_id, entry)
        except (KeyError, TypeError, ValueError) as e:
            print(f"[IMPORT] Skipping malformed block {str(block_id)[:8]}: {e}")
            malformed += 1

    for source_path in candidate_paths:
        try:
            block_id = hasher(source_path)
        except OSError as e:
            print(f"[IMPORT] Cannot read {source_path}: {e}")
            continue
        block = pending.get(block_id)
        if block is not None and block.path is None:
            block.path = str(source_path)
            result.added += 1

    # Drop every block that never found its file
    blocks = {block_id: block for block_id, block in pending.items() if block.path is not None}
    unmatched = len(pending) - len(blocks)
    if unmatched:
        print(f"[IMPORT] Dropped {unmatched} block(s) with no matching file")
    result.skipped = malformed + unmatched

    if result.added == 0:
        return result

    placed_ids = []
    for block_id in snapshot.get("added") or []:
        block = blocks.get(block_id)
        if block is not None and block.rect is not None and block_id not in placed_ids:
            placed_ids.append(block_id)
    for block_id, block in blocks.items():
        if block_id not in placed_ids:
            block.rect = None
            block.color = None

    library.pages[page_id] = Page(
        id=page_id,
        name=snapshot.get("name") or "Imported",
        blocks=blocks,
        placed_ids=placed_ids,
    )
    return result


def import_page_folder(library: Library, page_file: Union[str, Path],
                       folder: Union[str, Path],
                       hasher: Callable[[str], str] = hash_file) -> ImportResult:
    """Import a JSON page export, matching blocks against a folder's audio files."""
    snapshot = read_page_file(page_file)
    return import_page(library, snapshot, scan_audio_files(folder), hasher)


def parse_legacy_line(line: str) -> Optional[Dict[str, Any]]:
    """
    Parse one legacy record: path*left*top*width*height*label.

    Returns:
        Field dictionary, or None if the record is malformed or has an
        empty path or label
    """
    fields = line.rstrip("\r\n").split(LEGACY_DELIMITER, 5)
    if len(fields) != 6:
        return None

    rel_path, left, top, width, height, label = fields
    rel_path = rel_path.strip()
    label = label.strip()
    if not rel_path or not label:
        return None

    try:
        return {
            "path": rel_path.replace("\\", "/"),
            "left": int(left),
            "top": int(top),
            "width": int(width),
            "height": int(height),
            "label": label,
        }
    except ValueError:
        return None


def import_legacy_file(library: Library, path: Union[str, Path],
                       name: Optional[str] = None,
                       encoding: str = LEGACY_ENCODING,
                       hasher: Callable[[str], str] = hash_file) -> ImportResult:
    """
    Import a page from the legacy text format.

    Paths are relative to the file's folder. Records with a negative left
    go to the deck; the rest keep their stored rectangle as-is.

    Args:
        library: Library receiving the page
        path: Legacy page file
        name: Page name (defaults to the file name)
        encoding: Text encoding of the file
        hasher: Content hasher

    Returns:
        ImportResult; the page is only stored when result.ok

    Raises:
        IOError: If the file cannot be read
    """
    path = Path(path)
    name = name or path.stem
    page_id = hash_text(name)
    result = ImportResult(page_id=page_id)

    if page_id in library.pages:
        print(f"[IMPORT] {DuplicatePageError(name, page_id)}")
        result.duplicate = True
        return result

    try:
        lines = path.read_text(encoding=encoding).splitlines()
    except (OSError, UnicodeDecodeError) as e:
        raise IOError(f"Failed to read legacy page {path}: {e}") from e

    page = Page(id=page_id, name=name)
    for line in lines[1:]:
        if not line.strip():
            continue

        record = parse_legacy_line(line)
        if record is None:
            result.skipped += 1
            continue

        audio_path = path.parent / record["path"]
        if not audio_path.is_file():
            result.skipped += 1
            continue

        try:
            block_id = hasher(str(audio_path))
        except OSError:
            result.skipped += 1
            continue
        if block_id in page.blocks:
            result.skipped += 1
            continue

        block = Block(id=block_id, text=record["label"], path=str(audio_path))
        if record["left"] >= 0 and record["width"] > 0 and record["height"] > 0:
            block.rect = Rect(record["left"], record["top"], record["width"], record["height"])
            page.placed_ids.append(block_id)
        page.blocks[block_id] = block
        result.added += 1

    if result.skipped:
        print(f"[IMPORT] Skipped {result.skipped} legacy record(s) from {path.name}")

    if result.added:
        library.pages[page_id] = page
    return result
