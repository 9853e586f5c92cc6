"""Read-only config loader for termxfer."""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass
from pathlib import Path

from ..constants import (
    DEFAULT_CHUNK_SIZE,
    RECONNECT_ATTEMPTS,
    RECONNECT_BACKOFF_MAX,
    WATCHER_MAX_PATHS,
    WATCHER_POLL_INTERVAL,
)
from ..explorer import FileSorting, GroupDirs
from ..theme import DEFAULT_THEME, THEMES

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class AppConfig:
    """User-facing configuration."""

    theme: str = DEFAULT_THEME
    show_hidden: bool = False
    file_sorting: FileSorting = FileSorting.NAME
    group_dirs: GroupDirs = GroupDirs.FIRST
    text_editor: str | None = None
    chunk_size: int = DEFAULT_CHUNK_SIZE
    watcher_interval: float = WATCHER_POLL_INTERVAL
    watcher_max_paths: int = WATCHER_MAX_PATHS
    reconnect_attempts: int = RECONNECT_ATTEMPTS
    reconnect_backoff_max: float = RECONNECT_BACKOFF_MAX


def default_config_path() -> Path:
    """Return default config path (~/.config/termxfer/config.toml)."""
    return Path.home() / ".config" / "termxfer" / "config.toml"


def _coerce_bool(value, default=False):
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lower = value.strip().lower()
        if lower in ("1", "true", "yes", "on"):
            return True
        if lower in ("0", "false", "no", "off"):
            return False
    return default


def _coerce_positive(value, default, cast=int):
    if isinstance(value, bool):
        return default
    try:
        number = cast(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


def _coerce_enum(enum_cls, value, default):
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        return default


def _section(raw: dict, name: str) -> dict:
    section = raw.get(name, {})
    return section if isinstance(section, dict) else {}


def _normalize_config(raw: dict) -> AppConfig:
    ui = _section(raw, "ui")
    transfer = _section(raw, "transfer")

    theme = str(ui.get("theme", DEFAULT_THEME)).strip().lower() or DEFAULT_THEME
    if theme not in THEMES:
        theme = DEFAULT_THEME

    editor = ui.get("text_editor")
    editor = str(editor).strip() if editor else None

    return AppConfig(
        theme=theme,
        show_hidden=_coerce_bool(ui.get("show_hidden"), default=False),
        file_sorting=_coerce_enum(FileSorting, ui.get("file_sorting", "name"), FileSorting.NAME),
        group_dirs=_coerce_enum(GroupDirs, ui.get("group_dirs", "first"), GroupDirs.FIRST),
        text_editor=editor or None,
        chunk_size=_coerce_positive(transfer.get("chunk_size"), DEFAULT_CHUNK_SIZE),
        watcher_interval=_coerce_positive(transfer.get("watcher_interval"), WATCHER_POLL_INTERVAL, float),
        watcher_max_paths=_coerce_positive(transfer.get("watcher_max_paths"), WATCHER_MAX_PATHS),
        reconnect_attempts=_coerce_positive(transfer.get("reconnect_attempts"), RECONNECT_ATTEMPTS),
        reconnect_backoff_max=_coerce_positive(
            transfer.get("reconnect_backoff_max"), RECONNECT_BACKOFF_MAX, float
        ),
    )


def load_config(path: str | Path | None = None) -> AppConfig:
    """Load config from TOML file; return defaults when missing/invalid."""
    cfg_path = Path(path) if path is not None else default_config_path()
    try:
        text = cfg_path.read_text(encoding="utf-8")
    except OSError:
        return AppConfig()
    try:
        raw = tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        LOGGER.warning("ignoring invalid config %s: %s", cfg_path, exc)
        return AppConfig()
    return _normalize_config(raw)
