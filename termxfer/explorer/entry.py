"""
Snapshot value describing one directory entry.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class FileKind(str, Enum):
    """Kind of a filesystem entry."""

    FILE = "file"
    DIRECTORY = "directory"
    SYMLINK = "symlink"


@dataclass(frozen=True)
class FileEntry:
    """Represents a file, directory or symlink on either side.

    Entries are rebuilt on every listing and never patched in place.
    """

    name: str
    path: str
    kind: FileKind = FileKind.FILE
    size: int = 0
    modified_time: float = 0.0
    permissions: Optional[int] = None
    symlink_target: Optional[str] = None

    @property
    def is_dir(self) -> bool:
        return self.kind == FileKind.DIRECTORY

    @property
    def is_symlink(self) -> bool:
        return self.kind == FileKind.SYMLINK

    @property
    def is_hidden(self) -> bool:
        return self.name.startswith('.')

    def display_name(self) -> str:
        """Name decorated the way the explorer lists it."""
        if self.is_dir:
            return f'{self.name}/'
        if self.is_symlink:
            return f'{self.name} -> {self.symlink_target or "?"}'
        return self.name
