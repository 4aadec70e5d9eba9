"""
Playback interface consumed by the soundboard core.

The core only drives playback through this interface, keyed by block id;
it never touches audio devices directly.
"""
from abc import ABC, abstractmethod


class PlaybackGateway(ABC):
    """Base class for audio playback backends."""

    @abstractmethod
    def load(self, block_id: str, path: str):
        """
        Decode an audio file and keep it ready for playback.

        Args:
            block_id: Block the resource belongs to
            path: Audio file location

        Raises:
            ResourceUnavailableError: If the file cannot be decoded
        """
        raise NotImplementedError()

    @abstractmethod
    def unload(self, block_id: str):
        """Release a block's resource. Unknown ids are ignored."""
        raise NotImplementedError()

    @abstractmethod
    def play(self, block_id: str):
        """
        Start (or restart) playback of a loaded block.

        Raises:
            ResourceUnavailableError: If the block cannot be played
            OutputUnavailableError: If the output device cannot be opened
        """
        raise NotImplementedError()

    @abstractmethod
    def stop(self, block_id: str):
        """Stop playback of a loaded block."""
        raise NotImplementedError()

    @abstractmethod
    def is_loaded(self, block_id: str) -> bool:
        """Check if a block's resource is loaded."""
        raise NotImplementedError()

    def is_playing(self, block_id: str) -> bool:
        """Check if a block is currently audible."""
        return False

    def stop_all(self):
        """Stop every playing block."""

    def set_volume(self, volume: float):
        """Set master volume (0.0-1.0)."""

    def position(self, block_id: str) -> float:
        """Playback position in seconds (0.0 if not playing)."""
        return 0.0

    def duration(self, block_id: str) -> float:
        """Length of a loaded resource in seconds (0.0 if not loaded)."""
        return 0.0
