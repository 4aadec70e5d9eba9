"""
Audio file decoding.

Clips are read with soundfile and converted to float32 stereo at the
output sample rate, ready for the mixer.
"""
import numpy as np
import soundfile as sf

from audio.mixer import CHANNELS
from core.errors import ResourceUnavailableError


def to_stereo(data: np.ndarray) -> np.ndarray:
    """Shape decoded samples as (frames, 2) float32."""
    data = np.asarray(data, dtype=np.float32)
    if data.ndim == 1:
        data = data[:, np.newaxis]
    if data.shape[1] == 1:
        data = np.repeat(data, CHANNELS, axis=1)
    elif data.shape[1] > CHANNELS:
        data = data[:, :CHANNELS]
    return np.ascontiguousarray(data)


def resample(data: np.ndarray, src_rate: int, dst_rate: int) -> np.ndarray:
    """Linear-interpolation resample of (frames, channels) audio."""
    if src_rate == dst_rate or len(data) == 0:
        return data
    dst_frames = max(1, int(round(len(data) * dst_rate / src_rate)))
    src_x = np.arange(len(data), dtype=np.float64)
    dst_x = np.linspace(0, len(data) - 1, dst_frames)
    channels = [np.interp(dst_x, src_x, data[:, c]) for c in range(data.shape[1])]
    return np.stack(channels, axis=1).astype(np.float32)


def load_clip(block_id: str, path: str, sample_rate: int) -> np.ndarray:
    """
    Decode an audio file for playback.

    Args:
        block_id: Block the clip belongs to (for error reporting)
        path: Audio file
        sample_rate: Output sample rate

    Returns:
        Float32 array shaped (frames, 2)

    Raises:
        ResourceUnavailableError: If the file cannot be read or decoded
    """
    try:
        data, rate = sf.read(path, dtype="float32", always_2d=True)
    except (RuntimeError, OSError) as e:
        raise ResourceUnavailableError(block_id, str(e)) from e
    return resample(to_stereo(data), rate, sample_rate)
