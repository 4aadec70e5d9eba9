"""
Soundboard view.
Page tabs on top, canvas of placed blocks on the left, deck on the right.

The view holds no state of its own: every action calls a core.library
operation and then redraws from the Library.
"""
import dearpygui.dearpygui as dpg
from typing import Callable, Optional

from audio.base import PlaybackGateway
from core import library as ops
from core.constants import BLOCK_COLORS
from core.errors import DuplicateNameError, OutputUnavailableError
from core.models import AppState, Library, Page
from core.settings import Settings


class SoundboardView:
    """
    Main soundboard window.

    Play mode: clicking a placed block plays it.
    Edit mode: clicking a placed block returns it to the deck, clicking a
    deck entry auto-places it, and batch/page actions are enabled.
    """

    def __init__(self,
                 library: Library,
                 app_state: AppState,
                 playback: PlaybackGateway,
                 settings: Settings,
                 on_save: Optional[Callable] = None):
        """
        Args:
            library: Library to display and edit
            app_state: Session flags (edit mode, dirty)
            playback: Audio backend
            settings: Canvas/block geometry
            on_save: Callback for the Save button
        """
        self.library = library
        self.app_state = app_state
        self.playback = playback
        self.settings = settings
        self.on_save = on_save

        self._window_tag = "soundboard_window"
        self._tab_bar_tag = "page_tab_bar"
        self._canvas_tag = "page_canvas"
        self._deck_tag = "page_deck"
        self._status_tag = "status_text"
        self._file_dialog_tag = "add_files_dialog"
        self._page_name_tag = "new_page_name"

        self._block_themes = {}
        self._error_theme = None

    def create(self) -> str:
        """
        Create the soundboard window.

        Returns:
            Window tag
        """
        from ui.theme import create_accent_button_theme, create_block_color_themes, create_error_button_theme

        self._block_themes = create_block_color_themes()
        self._error_theme = create_error_button_theme()
        bounds = self.settings.canvas_bounds()

        with dpg.file_dialog(directory_selector=False, show=False, tag=self._file_dialog_tag,
                             callback=self._on_files_selected, file_count=100,
                             width=700, height=400):
            dpg.add_file_extension(".*")

        with dpg.window(label="Soundboard", tag=self._window_tag,
                        width=bounds.width + 300, height=bounds.height + 140):
            with dpg.group(horizontal=True):
                dpg.add_checkbox(label="Edit mode", default_value=self.app_state.is_edit_mode(),
                                 callback=self._on_edit_mode)
                add_btn = dpg.add_button(label="Add Files",
                                         callback=lambda: dpg.show_item(self._file_dialog_tag))
                dpg.bind_item_theme(add_btn, create_accent_button_theme())
                dpg.add_button(label="Auto-place", callback=self._on_auto_place)
                dpg.add_button(label="Flush Placed", callback=self._on_flush_placed)
                dpg.add_button(label="Flush Deck", callback=self._on_flush_deck)
                dpg.add_button(label="Stop All", callback=lambda: self.playback.stop_all())
                dpg.add_spacer(width=20)
                dpg.add_input_text(tag=self._page_name_tag, hint="Page name", width=160)
                dpg.add_button(label="New Page", callback=self._on_new_page)
                dpg.add_button(label="Close Page", callback=self._on_close_page)
                dpg.add_button(label="Save", callback=lambda: self.on_save() if self.on_save else None)

            dpg.add_tab_bar(tag=self._tab_bar_tag, callback=self._on_tab_selected)

            with dpg.group(horizontal=True):
                dpg.add_child_window(tag=self._canvas_tag, width=bounds.width, height=bounds.height)
                dpg.add_child_window(tag=self._deck_tag, width=260, height=bounds.height)

            dpg.add_text("", tag=self._status_tag)

        self.refresh()
        return self._window_tag

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def refresh(self):
        """Redraw tabs, canvas and deck from the library."""
        self._refresh_tabs()
        self._refresh_page()

    def _refresh_tabs(self):
        dpg.delete_item(self._tab_bar_tag, children_only=True)
        for page_id in self.library.active_page_order:
            page = self.library.pages[page_id]
            dpg.add_tab(label=page.name, parent=self._tab_bar_tag, user_data=page_id)

    def _refresh_page(self):
        dpg.delete_item(self._canvas_tag, children_only=True)
        dpg.delete_item(self._deck_tag, children_only=True)

        page = self.library.current_page()
        if page is None:
            dpg.add_text("No page open", parent=self._canvas_tag)
            return

        for block_id in page.placed_ids:
            block = page.blocks[block_id]
            rect = block.rect
            btn = dpg.add_button(label=block.text, parent=self._canvas_tag,
                                 pos=[rect.left, rect.top], width=rect.width, height=rect.height,
                                 callback=self._on_block_clicked, user_data=block_id)
            if block.unavailable:
                dpg.bind_item_theme(btn, self._error_theme)
            elif block.color in self._block_themes:
                dpg.bind_item_theme(btn, self._block_themes[block.color])
            if self.app_state.is_edit_mode():
                self._add_color_menu(btn, block_id)

        dpg.add_text(f"Deck ({len(page.deck_ids())})", parent=self._deck_tag)
        for block_id in page.deck_ids():
            dpg.add_button(label=page.blocks[block_id].text, parent=self._deck_tag, width=-1,
                           callback=self._on_deck_clicked, user_data=block_id)

    def _add_color_menu(self, button, block_id: str):
        with dpg.popup(button, mousebutton=dpg.mvMouseButton_Right):
            for color in list(BLOCK_COLORS) + [None]:
                dpg.add_selectable(label=color or "none", user_data=(block_id, color),
                                   callback=self._on_color_selected)

    def set_status(self, text: str):
        dpg.set_value(self._status_tag, text)

    # ------------------------------------------------------------------
    # Callbacks
    # ------------------------------------------------------------------

    def _page(self) -> Optional[Page]:
        return self.library.current_page()

    def _edited(self):
        self.app_state.mark_dirty()
        self.refresh()

    def _on_edit_mode(self, sender, app_data):
        self.app_state.set_edit_mode(bool(app_data))
        self.refresh()

    def _on_tab_selected(self, sender, app_data):
        page_id = dpg.get_item_user_data(app_data)
        if page_id and ops.select_page(self.library, page_id):
            self._refresh_page()

    def _on_block_clicked(self, sender, app_data, block_id: str):
        page = self._page()
        if page is None:
            return
        if self.app_state.is_edit_mode():
            ops.return_to_deck(page, block_id)
            self._edited()
            return
        try:
            played = ops.trigger_block(page, block_id, self.playback)
        except OutputUnavailableError as e:
            print(f"[PLAYBACK] {e}")
            self.set_status("No audio output device")
            return
        if played:
            # play stats changed
            self.app_state.mark_dirty()
        else:
            self.set_status(f"Cannot play {page.blocks[block_id].text!r}")
            self._refresh_page()

    def _on_deck_clicked(self, sender, app_data, block_id: str):
        page = self._page()
        if page is None or not self.app_state.is_edit_mode():
            return
        width, height = self.settings.block_size()
        result = ops.place_from_deck(page, block_id, self.settings.canvas_bounds(),
                                     width=width, height=height)
        if not result.ok:
            self.set_status("Canvas is full")
        self._edited()

    def _on_color_selected(self, sender, app_data, user_data):
        page = self._page()
        block_id, color = user_data
        if page is not None and ops.set_block_color(page, block_id, color):
            self._edited()

    def _on_files_selected(self, sender, app_data):
        page = self._page()
        if page is None:
            self.set_status("Open a page first")
            return
        paths = list(app_data.get("selections", {}).values())
        result = ops.add_blocks(page, paths)
        self.set_status(f"Added: {len(result.added)}, duplicates: {result.skipped}, "
                        f"unreadable: {len(result.failed)}")
        self._edited()

    def _on_auto_place(self):
        page = self._page()
        if page is None or not self.app_state.is_edit_mode():
            return
        width, height = self.settings.block_size()
        result = ops.place_deck_blocks(page, self.settings.canvas_bounds(), width=width, height=height)
        self.set_status(f"Placed: {result.processed}, left in deck: {result.failed}")
        self._edited()

    def _on_flush_placed(self):
        page = self._page()
        if page is None or not self.app_state.is_edit_mode():
            return
        result = ops.flush_placed_blocks(page)
        self.set_status(f"Returned to deck: {result.processed}")
        self._edited()

    def _on_flush_deck(self):
        page = self._page()
        if page is None or not self.app_state.is_edit_mode():
            return
        result = ops.flush_deck_blocks(page, self.playback)
        self.set_status(f"Removed from deck: {result.processed}")
        self._edited()

    def _on_new_page(self):
        name = dpg.get_value(self._page_name_tag)
        try:
            page = ops.create_page(self.library, name)
        except DuplicateNameError:
            self.set_status(f"Page {name!r} already exists")
            return
        except ValueError as e:
            self.set_status(str(e))
            return
        ops.open_page(self.library, page.id)
        dpg.set_value(self._page_name_tag, "")
        self._edited()

    def _on_close_page(self):
        page = self._page()
        if page is not None:
            ops.close_active_page(self.library, page.id, self.playback)
            self._edited()
