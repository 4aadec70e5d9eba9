"""
Error taxonomy for the soundboard core.

Identity and placement failures are recovered inside core operations and
reported as counts/flags; these exceptions mark the points where that
recovery happens.
"""


class SoundboardError(Exception):
    """Base class for all soundboard core errors."""


class DuplicateBlockError(SoundboardError):
    """File content is already present on the page."""

    def __init__(self, block_id: str, page_id: str):
        super().__init__(f"Block {block_id[:8]} already exists on page {page_id[:8]}")
        self.block_id = block_id
        self.page_id = page_id


class DuplicateNameError(SoundboardError):
    """A page or project with the same normalized name already exists."""

    def __init__(self, name: str, item_id: str):
        super().__init__(f"Name already in use: {name!r}")
        self.name = name
        self.item_id = item_id


class DuplicatePageError(DuplicateNameError):
    """Imported page collides with a page already in the library."""


class PlacementError(SoundboardError):
    """No free position left on the canvas."""


class BrokenReferenceError(SoundboardError):
    """Block has no resolvable audio file."""


class ResourceUnavailableError(SoundboardError):
    """Audio resource could not be loaded or played."""

    def __init__(self, block_id: str, reason: str):
        super().__init__(f"Audio for block {block_id[:8]} unavailable: {reason}")
        self.block_id = block_id
        self.reason = reason


class OutputUnavailableError(SoundboardError):
    """The audio output device could not be opened."""

    def __init__(self, reason: str):
        super().__init__(f"Audio output unavailable: {reason}")
        self.reason = reason
