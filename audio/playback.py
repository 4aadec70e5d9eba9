"""
sounddevice playback backend.

All loaded clips are mixed in a single sounddevice OutputStream callback.
"""
from typing import Dict, Optional

import numpy as np
import sounddevice as sd

from audio.base import PlaybackGateway
from audio.decode import load_clip
from audio.mixer import CHANNELS, Mixer
from core.errors import OutputUnavailableError, ResourceUnavailableError


class SoundDevicePlayback(PlaybackGateway):
    """
    Plays soundboard blocks through the default (or chosen) output device.

    The output stream is opened on first play() and runs until close().
    """

    def __init__(self,
                 sample_rate: int = 44100,
                 block_size: int = 512,
                 device: Optional[str] = None,
                 volume: float = 0.8):
        """
        Args:
            sample_rate: Output sample rate (Hz)
            block_size: Stream buffer size (frames)
            device: Output device name (None or "Default" = system default)
            volume: Master volume (0.0-1.0)
        """
        self.sample_rate = sample_rate
        self.block_size = block_size
        self.device = None if device in (None, "Default") else device
        self.mixer = Mixer(volume)
        self._clips: Dict[str, np.ndarray] = {}
        self._stream: Optional[sd.OutputStream] = None

    def _callback(self, outdata, frames, time_info, status):
        outdata[:] = self.mixer.mix(frames)

    def _ensure_stream(self):
        if self._stream is not None:
            return
        try:
            self._stream = sd.OutputStream(
                samplerate=self.sample_rate,
                blocksize=self.block_size,
                channels=CHANNELS,
                dtype="float32",
                device=self.device,
                callback=self._callback,
            )
            self._stream.start()
        except sd.PortAudioError as e:
            self._stream = None
            raise OutputUnavailableError(str(e)) from e

    def load(self, block_id: str, path: str):
        self._clips[block_id] = load_clip(block_id, path, self.sample_rate)

    def unload(self, block_id: str):
        self.mixer.stop(block_id)
        self._clips.pop(block_id, None)

    def play(self, block_id: str):
        clip = self._clips.get(block_id)
        if clip is None:
            raise ResourceUnavailableError(block_id, "not loaded")
        self._ensure_stream()
        self.mixer.start(block_id, clip)

    def stop(self, block_id: str):
        self.mixer.stop(block_id)

    def is_loaded(self, block_id: str) -> bool:
        return block_id in self._clips

    def is_playing(self, block_id: str) -> bool:
        return self.mixer.is_playing(block_id)

    def stop_all(self):
        self.mixer.stop_all()

    def set_volume(self, volume: float):
        self.mixer.set_volume(volume)

    def position(self, block_id: str) -> float:
        return self.mixer.position(block_id) / self.sample_rate

    def duration(self, block_id: str) -> float:
        clip = self._clips.get(block_id)
        return len(clip) / self.sample_rate if clip is not None else 0.0

    def close(self):
        """Stop playback and release the output stream."""
        self.mixer.stop_all()
        if self._stream is not None:
            self._stream.stop()
            self._stream.close()
            self._stream = None
