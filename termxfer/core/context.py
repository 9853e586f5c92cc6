"""Shared state handed to activities by the event loop."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..filetransfer import FileTransferParams
from ..theme import Theme, get_theme
from .bootstrap import Terminal
from .config import AppConfig


@dataclass
class Context:
    """Terminal, configuration and connection parameters for one session."""

    terminal: Terminal
    config: AppConfig
    ft_params: Optional[FileTransferParams] = None
    error: Optional[str] = None

    @property
    def theme(self) -> Theme:
        return get_theme(self.config.theme)

    def set_error(self, message: str) -> None:
        self.error = message

    def take_error(self) -> Optional[str]:
        message, self.error = self.error, None
        return message
