"""
Library storage.

The library is saved through a flat key/value store:
- "version": storage format version
- "page:<id>": one entry per page
- "projects", "active_page_order", "current_page_id", "current_project_id"

MsgpackStore keeps the whole namespace in one MessagePack file and
rewrites it atomically on flush().
"""
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Union

import msgpack

from core.constants import LIBRARY_VERSION
from core.models import Library

PAGE_PREFIX = "page:"
SESSION_KEYS = ("projects", "active_page_order", "current_page_id", "current_project_id")


class KeyValueStore(ABC):
    """Flat key/value namespace."""

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        """Value stored under key, or default."""
        raise NotImplementedError()

    @abstractmethod
    def set(self, key: str, value: Any):
        """Store a value (msgpack-serializable)."""
        raise NotImplementedError()

    @abstractmethod
    def delete(self, key: str):
        """Remove a key. Missing keys are ignored."""
        raise NotImplementedError()

    @abstractmethod
    def keys(self) -> Iterator[str]:
        """Iterate over stored keys."""
        raise NotImplementedError()

    def flush(self):
        """Persist pending writes."""


class MemoryStore(KeyValueStore):
    """Dictionary-backed store."""

    def __init__(self, data: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = dict(data or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any):
        self._data[key] = value

    def delete(self, key: str):
        self._data.pop(key, None)

    def keys(self) -> Iterator[str]:
        return iter(list(self._data))


class MsgpackStore(MemoryStore):
    """
    Store backed by a single MessagePack file.

    Reads the file once on construction; writes on flush().
    """

    def __init__(self, path: Union[str, Path]):
        """
        Args:
            path: Store file (created on first flush)

        Raises:
            ValueError: If the file exists but is not a msgpack map
        """
        self.path = Path(path)
        super().__init__(self._read())

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}

        with open(self.path, "rb") as f:
            packed_data = f.read()
        try:
            data = msgpack.unpackb(packed_data, raw=False)
        except (msgpack.exceptions.ExtraData, ValueError) as e:
            raise ValueError(f"Invalid library file {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise ValueError(f"Invalid library file {self.path}: expected a map")
        return data

    def flush(self):
        """Write the namespace to disk via a temp file and atomic rename."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        packed_data = msgpack.packb(self._data, use_bin_type=True)
        with open(tmp_path, "wb") as f:
            f.write(packed_data)
        os.replace(tmp_path, self.path)


class LibraryFile:
    """Saves and restores the Library through a KeyValueStore."""

    @staticmethod
    def save(library: Library, store: KeyValueStore):
        """
        Write the whole library, removing pages no longer present.

        Raises:
            IOError: If the store cannot be written
        """
        try:
            data = library.to_dict()
            store.set("version", data["version"])

            live_keys = set()
            for page in library.pages.values():
                key = PAGE_PREFIX + page.id
                store.set(key, page.to_dict())
                live_keys.add(key)

            for key in list(store.keys()):
                if key.startswith(PAGE_PREFIX) and key not in live_keys:
                    store.delete(key)

            for key in SESSION_KEYS:
                store.set(key, data[key])

            store.flush()
        except Exception as e:
            raise IOError(f"Failed to save library: {e}") from e

    @staticmethod
    def load(store: KeyValueStore) -> Library:
        """
        Read the library back. An empty store yields an empty library.

        Raises:
            ValueError: If the stored format version is incompatible
            IOError: If the stored data cannot be decoded
        """
        version = store.get("version")
        if version is None:
            return Library()
        if not str(version).startswith(LIBRARY_VERSION.split(".")[0] + "."):
            raise ValueError(f"Incompatible library version: {version}. Expected {LIBRARY_VERSION}")

        try:
            data = {
                "pages": [
                    store.get(key) for key in sorted(store.keys())
                    if key.startswith(PAGE_PREFIX)
                ],
                "projects": store.get("projects", []),
                "active_page_order": store.get("active_page_order", []),
                "current_page_id": store.get("current_page_id"),
                "current_project_id": store.get("current_project_id"),
            }
            return Library.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise IOError(f"Failed to load library: {e}") from e

    @staticmethod
    def open_file(path: Union[str, Path]) -> Library:
        """Load a library from a msgpack file (empty if the file is missing)."""
        return LibraryFile.load(MsgpackStore(path))

    @staticmethod
    def save_file(library: Library, path: Union[str, Path]):
        """Save a library to a msgpack file."""
        LibraryFile.save(library, MsgpackStore(path))

    @staticmethod
    def save_on_close(library: Library, path: Union[str, Path], backup: bool = True) -> bool:
        """
        Write the library to the file it is loaded from at startup.

        If that write fails the library goes to the auto-save file instead
        (when backup is enabled), so closing never loses work silently.

        Returns:
            True if the library file itself was written
        """
        try:
            LibraryFile.save_file(library, path)
            return True
        except (IOError, ValueError) as e:
            print(f"[PERSISTENCE] Save on close failed: {e}")
        if backup:
            LibraryFile.auto_save(library)
        return False

    @staticmethod
    def auto_save(library: Library, name: str = "library"):
        """
        Save a backup copy, reporting (not raising) failures.

        Args:
            library: Library to back up
            name: Backup file name
        """
        try:
            LibraryFile.save_file(library, LibraryFile.get_auto_save_path(name))
        except (IOError, ValueError) as e:
            print(f"[PERSISTENCE] Auto-save failed: {e}")

    @staticmethod
    def get_auto_save_path(name: str) -> Path:
        """
        Get path to the auto-save file for a library.

        Args:
            name: Library name

        Returns:
            Path under ~/.soundboard/autosave
        """
        auto_save_dir = Path.home() / ".soundboard" / "autosave"
        auto_save_dir.mkdir(parents=True, exist_ok=True)

        safe_name = "".join(c for c in name if c.isalnum() or c in (' ', '-', '_')).strip()
        if not safe_name:
            safe_name = "library"

        return auto_save_dir / f"{safe_name}.msgpack"
