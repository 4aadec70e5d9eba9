"""Tests for voice mixing (no audio device needed)."""
import numpy as np

from audio.mixer import Mixer


def clip(value, frames):
    return np.full((frames, 2), value, dtype=np.float32)


def test_silence_when_idle():
    mixer = Mixer()
    out = mixer.mix(64)
    assert out.shape == (64, 2)
    assert not out.any()


def test_voices_are_summed_and_scaled():
    mixer = Mixer(volume=0.5)
    mixer.start("a", clip(0.2, 100))
    mixer.start("b", clip(0.4, 100))
    out = mixer.mix(10)
    assert np.allclose(out, 0.3)
    assert mixer.position("a") == 10


def test_output_is_clipped():
    mixer = Mixer(volume=1.0)
    mixer.start("a", clip(0.9, 10))
    mixer.start("b", clip(0.9, 10))
    assert mixer.mix(10).max() == 1.0


def test_finished_voice_is_dropped():
    mixer = Mixer(volume=1.0)
    mixer.start("a", clip(0.5, 15))
    first = mixer.mix(10)
    second = mixer.mix(10)
    assert np.allclose(first, 0.5)
    assert np.allclose(second[:5], 0.5)
    assert not second[5:].any()
    assert not mixer.is_playing("a")


def test_retrigger_restarts_and_stop():
    mixer = Mixer()
    mixer.start("a", clip(0.5, 100))
    mixer.mix(40)
    mixer.start("a", clip(0.5, 100))
    assert mixer.position("a") == 0
    mixer.stop("a")
    assert not mixer.is_playing("a")
    mixer.start("b", clip(0.5, 100))
    mixer.stop_all()
    assert not mixer.is_playing("b")


def test_volume_is_clamped():
    mixer = Mixer()
    mixer.set_volume(3.0)
    assert mixer.get_volume() == 1.0
    mixer.set_volume(-1.0)
    assert mixer.get_volume() == 0.0
