"""Tests for JSON settings loading."""
import json

from core.layout import Bounds
from core.settings import DEFAULT_SETTINGS, Settings


def test_missing_file_is_created_with_defaults(tmp_path):
    path = tmp_path / "cfg" / "settings.json"
    settings = Settings(path)
    assert path.exists()
    assert json.loads(path.read_text()) == DEFAULT_SETTINGS
    assert settings.canvas_bounds() == Bounds(DEFAULT_SETTINGS["canvas"]["width"],
                                              DEFAULT_SETTINGS["canvas"]["height"])


def test_loaded_values_merge_over_defaults(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"canvas": {"width": 640}, "unknown": {"x": 1}}))
    settings = Settings(path)
    assert settings.get("canvas", "width") == 640
    assert settings.get("canvas", "height") == DEFAULT_SETTINGS["canvas"]["height"]
    assert settings.get("audio", "sample_rate") == 44100
    assert settings.get("unknown", "x") is None


def test_corrupt_file_falls_back_to_defaults(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text("{broken")
    settings = Settings(path)
    assert settings.data == DEFAULT_SETTINGS


def test_set_and_save(tmp_path):
    path = tmp_path / "settings.json"
    settings = Settings(path)
    settings.set("canvas", "block_width", 120)
    settings.save()
    assert Settings(path).block_size() == (120, DEFAULT_SETTINGS["canvas"]["block_height"])


def test_defaults_are_not_shared_between_instances(tmp_path):
    first = Settings(tmp_path / "a.json")
    first.set("audio", "volume", 0.1)
    second = Settings(tmp_path / "b.json")
    assert second.get("audio", "volume") == DEFAULT_SETTINGS["audio"]["volume"]
