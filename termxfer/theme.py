"""Theme definitions and lookup helpers for termxfer."""

from dataclasses import dataclass
import curses
from typing import Optional

from .constants import (
    C_BUTTON,
    C_BUTTON_SEL,
    C_DIALOG,
    C_DIALOG_TITLE,
    C_EXPLORER,
    C_EXPLORER_FOCUS,
    C_FATAL,
    C_FILE_DIRECTORY,
    C_FILE_MARKED,
    C_FILE_SELECTED,
    C_FILE_SYMLINK,
    C_FOOTER,
    C_INPUT,
    C_LOG_ERROR,
    C_LOG_INFO,
    C_LOG_WARN,
    C_PROGRESS,
    C_STATUS,
)

# Test doubles may expose only a subset of color constants.
for _name, _fallback in {
    "COLOR_BLACK": 0,
    "COLOR_RED": 1,
    "COLOR_GREEN": 2,
    "COLOR_YELLOW": 3,
    "COLOR_BLUE": 4,
    "COLOR_MAGENTA": 5,
    "COLOR_CYAN": 6,
    "COLOR_WHITE": 7,
}.items():
    if not hasattr(curses, _name):
        setattr(curses, _name, _fallback)

DEFAULT_THEME = "classic"

ROLE_TO_PAIR_ID = {
    "explorer": C_EXPLORER,
    "explorer_focus": C_EXPLORER_FOCUS,
    "file_selected": C_FILE_SELECTED,
    "file_directory": C_FILE_DIRECTORY,
    "file_symlink": C_FILE_SYMLINK,
    "file_marked": C_FILE_MARKED,
    "status": C_STATUS,
    "footer": C_FOOTER,
    "dialog": C_DIALOG,
    "dialog_title": C_DIALOG_TITLE,
    "button": C_BUTTON,
    "button_selected": C_BUTTON_SEL,
    "input": C_INPUT,
    "progress": C_PROGRESS,
    "log_info": C_LOG_INFO,
    "log_warn": C_LOG_WARN,
    "log_error": C_LOG_ERROR,
    "fatal": C_FATAL,
}


def _mk_pairs(base, accent, highlight, alert):
    """Expand four (fg, bg) pairs into the full semantic role table."""
    return {
        "explorer": base,
        "explorer_focus": accent,
        "file_selected": highlight,
        "file_directory": (accent[0], base[1]),
        "file_symlink": (curses.COLOR_MAGENTA, base[1]),
        "file_marked": (curses.COLOR_YELLOW, base[1]),
        "status": highlight,
        "footer": highlight,
        "dialog": base,
        "dialog_title": accent,
        "button": base,
        "button_selected": highlight,
        "input": highlight,
        "progress": (accent[0], base[1]),
        "log_info": base,
        "log_warn": (curses.COLOR_YELLOW, base[1]),
        "log_error": (alert[0], base[1]),
        "fatal": alert,
    }


@dataclass(frozen=True)
class Theme:
    """termxfer semantic theme definition."""

    key: str
    label: str
    pairs: dict[str, tuple[int, int]]


THEMES = {
    "classic": Theme(
        key="classic",
        label="Classic",
        pairs=_mk_pairs(
            (curses.COLOR_WHITE, -1),
            (curses.COLOR_CYAN, -1),
            (curses.COLOR_BLACK, curses.COLOR_CYAN),
            (curses.COLOR_WHITE, curses.COLOR_RED),
        ),
    ),
    "commander": Theme(
        key="commander",
        label="Commander",
        pairs=_mk_pairs(
            (curses.COLOR_WHITE, curses.COLOR_BLUE),
            (curses.COLOR_YELLOW, curses.COLOR_BLUE),
            (curses.COLOR_BLACK, curses.COLOR_CYAN),
            (curses.COLOR_WHITE, curses.COLOR_RED),
        ),
    ),
    "hacker": Theme(
        key="hacker",
        label="Hacker",
        pairs=_mk_pairs(
            (curses.COLOR_GREEN, curses.COLOR_BLACK),
            (curses.COLOR_GREEN, curses.COLOR_BLACK),
            (curses.COLOR_BLACK, curses.COLOR_GREEN),
            (curses.COLOR_BLACK, curses.COLOR_RED),
        ),
    ),
}


def get_theme(theme_key: Optional[str]) -> Theme:
    """Resolve theme by key with fallback to default."""
    if not theme_key:
        return THEMES[DEFAULT_THEME]
    return THEMES.get(theme_key, THEMES[DEFAULT_THEME])
