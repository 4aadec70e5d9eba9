"""
VS Code Dark Mode theme for the soundboard.
Provides color palette and DearPyGui theme configuration.
"""
import dearpygui.dearpygui as dpg
from typing import Dict, Tuple

from core.constants import BLOCK_COLORS


class VSCodeDark:
    """VS Code dark mode color constants."""

    BG_EDITOR = (30, 30, 30, 255)          # #1E1E1E - Main window
    BG_SIDEBAR = (37, 37, 38, 255)         # #252526 - Inactive tabs
    BG_PANEL = (51, 51, 51, 255)           # #333333 - Canvas, deck, popups
    BG_INPUT = (60, 60, 60, 255)           # #3C3C3C - Page name, edit checkbox
    BG_HOVER = (45, 45, 45, 255)           # #2D2D2D

    TEXT_PRIMARY = (212, 212, 212, 255)
    ACCENT_BLUE = (0, 122, 204, 255)
    ERROR = (220, 80, 80, 255)             # Unavailable blocks

    BUTTON_NORMAL = (60, 60, 60, 255)
    BUTTON_HOVER = (70, 70, 70, 255)

    FRAME_PADDING = (8, 6)
    ITEM_SPACING = (8, 4)


# Only the widgets the soundboard window actually draws
_GLOBAL_COLORS = (
    (dpg.mvThemeCol_WindowBg, VSCodeDark.BG_EDITOR),
    (dpg.mvThemeCol_ChildBg, VSCodeDark.BG_PANEL),
    (dpg.mvThemeCol_PopupBg, VSCodeDark.BG_PANEL),
    (dpg.mvThemeCol_Text, VSCodeDark.TEXT_PRIMARY),
    (dpg.mvThemeCol_FrameBg, VSCodeDark.BG_INPUT),
    (dpg.mvThemeCol_FrameBgHovered, VSCodeDark.BG_HOVER),
    (dpg.mvThemeCol_CheckMark, VSCodeDark.ACCENT_BLUE),
    (dpg.mvThemeCol_Button, VSCodeDark.BUTTON_NORMAL),
    (dpg.mvThemeCol_ButtonHovered, VSCodeDark.BUTTON_HOVER),
    (dpg.mvThemeCol_HeaderHovered, VSCodeDark.BUTTON_HOVER),
    (dpg.mvThemeCol_Tab, VSCodeDark.BG_SIDEBAR),
    (dpg.mvThemeCol_TabActive, VSCodeDark.BG_PANEL),
)


def apply_vscode_theme() -> None:
    """Bind the dark theme globally. Call once after the context exists."""
    with dpg.theme() as global_theme:
        with dpg.theme_component(dpg.mvAll):
            for target, color in _GLOBAL_COLORS:
                dpg.add_theme_color(target, color)
            dpg.add_theme_style(dpg.mvStyleVar_FramePadding, *VSCodeDark.FRAME_PADDING)
            dpg.add_theme_style(dpg.mvStyleVar_ItemSpacing, *VSCodeDark.ITEM_SPACING)
            dpg.add_theme_style(dpg.mvStyleVar_FrameRounding, 3)

    dpg.bind_theme(global_theme)


def _button_theme(color: Tuple[int, int, int, int]) -> int:
    hover = tuple(min(255, c + 20) for c in color[:3]) + (255,)
    active = tuple(max(0, c - 20) for c in color[:3]) + (255,)
    with dpg.theme() as theme:
        with dpg.theme_component(dpg.mvButton):
            dpg.add_theme_color(dpg.mvThemeCol_Button, color)
            dpg.add_theme_color(dpg.mvThemeCol_ButtonHovered, hover)
            dpg.add_theme_color(dpg.mvThemeCol_ButtonActive, active)
            dpg.add_theme_color(dpg.mvThemeCol_Text, (255, 255, 255, 255))
    return theme


def create_accent_button_theme() -> int:
    """Theme for primary actions (Save, Add Files)."""
    return _button_theme(VSCodeDark.ACCENT_BLUE)


def create_error_button_theme() -> int:
    """Theme for blocks whose audio could not be loaded."""
    return _button_theme(VSCodeDark.ERROR)


def create_block_color_themes() -> Dict[str, int]:
    """One button theme per block color tag."""
    return {name: _button_theme(rgb + (255,)) for name, rgb in BLOCK_COLORS.items()}
