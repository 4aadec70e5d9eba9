"""
Voice mixer for overlapping soundboard clips.

Handles:
- One voice per block (retriggering restarts the clip)
- Master volume
- Summing voices into a stereo output buffer
"""
import threading
from typing import Dict

import numpy as np

CHANNELS = 2


class Voice:
    """Playback cursor over one decoded clip."""

    __slots__ = ("audio", "position")

    def __init__(self, audio: np.ndarray):
        """
        Args:
            audio: Float32 samples shaped (frames, 2)
        """
        self.audio = audio
        self.position = 0

    @property
    def finished(self) -> bool:
        return self.position >= len(self.audio)

    def render(self, frames: int) -> np.ndarray:
        """Take up to `frames` frames and advance the cursor."""
        chunk = self.audio[self.position:self.position + frames]
        self.position += len(chunk)
        return chunk


class Mixer:
    """Sums active voices; safe to call mix() from the audio thread."""

    def __init__(self, volume: float = 0.8):
        """
        Args:
            volume: Master volume (0.0-1.0)
        """
        self._voices: Dict[str, Voice] = {}
        self._lock = threading.Lock()
        self._volume = 0.0
        self.set_volume(volume)

    def set_volume(self, volume: float):
        """Set master volume, clamped to 0.0-1.0."""
        self._volume = float(min(1.0, max(0.0, volume)))

    def get_volume(self) -> float:
        return self._volume

    def start(self, block_id: str, audio: np.ndarray):
        """Start (or restart) a block's clip from the beginning."""
        with self._lock:
            self._voices[block_id] = Voice(audio)

    def stop(self, block_id: str):
        with self._lock:
            self._voices.pop(block_id, None)

    def stop_all(self):
        with self._lock:
            self._voices.clear()

    def is_playing(self, block_id: str) -> bool:
        with self._lock:
            voice = self._voices.get(block_id)
            return voice is not None and not voice.finished

    def position(self, block_id: str) -> int:
        """Frames already played for a block (0 if not playing)."""
        with self._lock:
            voice = self._voices.get(block_id)
            return voice.position if voice is not None else 0

    def mix(self, frames: int) -> np.ndarray:
        """
        Render the next buffer.

        Args:
            frames: Buffer length in frames

        Returns:
            Float32 array shaped (frames, 2), clipped to -1.0..1.0
        """
        output = np.zeros((frames, CHANNELS), dtype=np.float32)

        with self._lock:
            for block_id in list(self._voices):
                voice = self._voices[block_id]
                chunk = voice.render(frames)
                output[:len(chunk)] += chunk
                if voice.finished:
                    del self._voices[block_id]

        output *= self._volume
        np.clip(output, -1.0, 1.0, out=output)
        return output
