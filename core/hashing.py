"""
Content hashing for block, page and project identity.

Blocks are keyed by the SHA-256 of their audio bytes; pages and projects
by the SHA-256 of their normalized display name.
"""
import hashlib
import re
from pathlib import Path
from typing import Union

_WHITESPACE = re.compile(r"\s+")
_CHUNK_SIZE = 1 << 20


def normalize_name(text: str) -> str:
    """
    Normalize a display name for identity purposes.

    Collapses whitespace runs to one space, trims, and lowercases.

    Example:
        >>> normalize_name("  Intro   Sounds ")
        'intro sounds'
    """
    return _WHITESPACE.sub(" ", text).strip().lower()


def hash_bytes(data: bytes) -> str:
    """Hash a byte blob. Empty input is valid."""
    return hashlib.sha256(data).hexdigest()


def hash_text(text: str) -> str:
    """Hash a page/project name after normalization."""
    return hash_bytes(normalize_name(text).encode("utf-8"))


def hash_file(path: Union[str, Path]) -> str:
    """
    Hash the contents of a file without reading it into memory at once.

    Args:
        path: File to hash

    Returns:
        Same digest hash_bytes() would give for the file's bytes

    Raises:
        OSError: If the file cannot be read
    """
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()
