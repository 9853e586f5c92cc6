"""Filesystem panes: entries, sorting and filtering."""

from .entry import FileEntry, FileKind
from .explorer import FileExplorer, FileSorting, GroupDirs

__all__ = ['FileEntry', 'FileKind', 'FileExplorer', 'FileSorting', 'GroupDirs']
