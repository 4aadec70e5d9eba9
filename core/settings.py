"""
User settings stored as JSON under ~/.soundboard/settings.json.

Loaded values are merged over the defaults category by category, so
settings added in newer versions appear automatically.
"""
import copy
import json
from pathlib import Path
from typing import Any, Dict, Optional, Union

from core.constants import BLOCK_HEIGHT, BLOCK_WIDTH, CANVAS_HEIGHT, CANVAS_WIDTH, LEGACY_ENCODING
from core.layout import Bounds

DEFAULT_SETTINGS: Dict[str, Dict[str, Any]] = {
    "canvas": {
        "width": CANVAS_WIDTH,
        "height": CANVAS_HEIGHT,
        "block_width": BLOCK_WIDTH,
        "block_height": BLOCK_HEIGHT,
    },
    "audio": {
        "sample_rate": 44100,
        "block_size": 512,
        "output_device": "Default",
        "volume": 0.8,
    },
    "general": {
        "autosave_enabled": True,
        "library_path": str(Path.home() / ".soundboard" / "library.msgpack"),
        "legacy_encoding": LEGACY_ENCODING,
    },
}


def default_settings_path() -> Path:
    return Path.home() / ".soundboard" / "settings.json"


class Settings:
    """Category/key settings with JSON persistence."""

    def __init__(self, path: Optional[Union[str, Path]] = None):
        """
        Args:
            path: Settings file (defaults to ~/.soundboard/settings.json)
        """
        self.path = Path(path) if path is not None else default_settings_path()
        self.data = self._load()

    def _load(self) -> Dict[str, Dict[str, Any]]:
        """Load settings, creating the file with defaults if missing."""
        defaults = copy.deepcopy(DEFAULT_SETTINGS)

        if not self.path.exists():
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with open(self.path, "w") as f:
                    json.dump(defaults, f, indent=2)
                print("[SETTINGS] Created new settings file with defaults")
            except OSError as e:
                print(f"[SETTINGS] Failed to save default settings: {e}")
            return defaults

        try:
            with open(self.path, "r") as f:
                loaded = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            print(f"[SETTINGS] Failed to load settings: {e}")
            return defaults

        if not isinstance(loaded, dict):
            print("[SETTINGS] Ignoring malformed settings file")
            return defaults

        for category, values in loaded.items():
            if category in defaults and isinstance(values, dict):
                defaults[category].update(values)
        return defaults

    def save(self):
        """Write settings to disk (failures are reported, not raised)."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w") as f:
                json.dump(self.data, f, indent=2)
        except OSError as e:
            print(f"[SETTINGS] Failed to save settings: {e}")

    def get(self, category: str, key: str, default: Any = None) -> Any:
        return self.data.get(category, {}).get(key, default)

    def set(self, category: str, key: str, value: Any):
        self.data.setdefault(category, {})[key] = value

    def canvas_bounds(self) -> Bounds:
        """Canvas size used for auto-placement."""
        return Bounds(
            int(self.get("canvas", "width", CANVAS_WIDTH)),
            int(self.get("canvas", "height", CANVAS_HEIGHT)),
        )

    def block_size(self) -> tuple:
        """Default (width, height) for newly placed blocks."""
        return (
            int(self.get("canvas", "block_width", BLOCK_WIDTH)),
            int(self.get("canvas", "block_height", BLOCK_HEIGHT)),
        )
