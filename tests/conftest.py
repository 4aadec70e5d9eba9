"""Shared fixtures: temporary audio files, a fake playback backend, stores."""
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from audio.base import PlaybackGateway
from core.errors import OutputUnavailableError, ResourceUnavailableError
from core.models import Library, Page
from core.persistence import MemoryStore


class FakePlayback(PlaybackGateway):
    """Records calls instead of producing sound."""

    def __init__(self, broken=(), no_output=False):
        self.calls = []
        self.loaded = {}
        self.playing = set()
        self.broken = set(broken)
        self.no_output = no_output

    def load(self, block_id, path):
        self.calls.append(("load", block_id))
        if block_id in self.broken:
            raise ResourceUnavailableError(block_id, "cannot decode")
        self.loaded[block_id] = path

    def unload(self, block_id):
        self.calls.append(("unload", block_id))
        self.loaded.pop(block_id, None)
        self.playing.discard(block_id)

    def play(self, block_id):
        assert block_id in self.loaded, "play() before load()"
        if self.no_output:
            raise OutputUnavailableError("no device")
        self.calls.append(("play", block_id))
        self.playing.add(block_id)

    def stop(self, block_id):
        assert block_id in self.loaded, "stop() before load()"
        self.calls.append(("stop", block_id))
        self.playing.discard(block_id)

    def is_loaded(self, block_id):
        return block_id in self.loaded

    def unloaded(self):
        return [block_id for call, block_id in self.calls if call == "unload"]


@pytest.fixture
def audio_dir(tmp_path):
    """Folder with five clips of distinct content plus a copy of the first."""
    folder = tmp_path / "sounds"
    folder.mkdir()
    for i in range(5):
        (folder / f"clip{i}.wav").write_bytes(b"RIFF" + bytes([i]) * (64 + i))
    (folder / "copy_of_clip0.wav").write_bytes((folder / "clip0.wav").read_bytes())
    (folder / "notes.txt").write_text("not audio")
    return folder


@pytest.fixture
def clips(audio_dir):
    """Paths of the five distinct clips."""
    return [str(audio_dir / f"clip{i}.wav") for i in range(5)]


@pytest.fixture
def library():
    return Library()


@pytest.fixture
def page(library):
    page = Page.create("Main")
    library.pages[page.id] = page
    return page


@pytest.fixture
def playback():
    return FakePlayback()


@pytest.fixture
def store():
    return MemoryStore()
