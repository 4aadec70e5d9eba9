"""
Soundboard - clip launcher
Main entry point
"""
import dearpygui.dearpygui as dpg
from pathlib import Path

from audio.playback import SoundDevicePlayback
from core.models import AppState, Library
from core.persistence import LibraryFile
from core.settings import Settings
from ui.theme import apply_vscode_theme
from ui.views.SoundboardView import SoundboardView


# Module-level variables (accessed by callbacks)
settings = None
library = None
app_state = None
playback = None
view = None


def main():
    """Launch the soundboard."""
    global settings, library, app_state, playback, view

    print("=== Soundboard ===")
    print("Initializing...")

    settings = Settings()
    library_path = Path(settings.get("general", "library_path"))

    try:
        library = LibraryFile.open_file(library_path)
    except (IOError, ValueError) as e:
        print(f"[PERSISTENCE] Could not load {library_path}: {e}")
        print("[PERSISTENCE] Starting with an empty library")
        library = Library()

    print(f"Loaded {len(library.pages)} page(s), {len(library.projects)} project(s)")

    app_state = AppState()
    playback = SoundDevicePlayback(
        sample_rate=settings.get("audio", "sample_rate", 44100),
        block_size=settings.get("audio", "block_size", 512),
        device=settings.get("audio", "output_device"),
        volume=settings.get("audio", "volume", 0.8),
    )

    dpg.create_context()

    view = SoundboardView(
        library=library,
        app_state=app_state,
        playback=playback,
        settings=settings,
        on_save=on_save,
    )
    window_tag = view.create()

    apply_vscode_theme()

    bounds = settings.canvas_bounds()
    dpg.create_viewport(title="Soundboard", width=bounds.width + 340, height=bounds.height + 200)
    dpg.setup_dearpygui()
    dpg.show_viewport()
    dpg.set_primary_window(window_tag, True)

    print("Ready!")

    while dpg.is_dearpygui_running():
        dpg.render_dearpygui_frame()

        # Ctrl+S saves the library
        if dpg.is_key_down(dpg.mvKey_Control) and dpg.is_key_pressed(dpg.mvKey_S):
            on_save()

    on_exit()
    dpg.destroy_context()
    print("Soundboard closed.")


def on_save():
    """Save the library to its configured location."""
    library_path = Path(settings.get("general", "library_path"))
    try:
        LibraryFile.save_file(library, library_path)
    except IOError as e:
        print(f"[PERSISTENCE] {e}")
        view.set_status("Save failed")
        return
    app_state.mark_clean()
    view.set_status(f"Saved to {library_path}")


def on_exit():
    """Persist unsaved work and release audio."""
    if app_state.is_dirty():
        library_path = Path(settings.get("general", "library_path"))
        backup = settings.get("general", "autosave_enabled", True)
        if LibraryFile.save_on_close(library, library_path, backup=backup):
            app_state.mark_clean()
    settings.save()
    playback.close()


if __name__ == "__main__":
    main()
