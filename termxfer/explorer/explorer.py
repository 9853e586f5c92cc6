"""
File explorer pane: listing snapshot, cursor, marks, sorting and filters.
"""
from collections import deque
from enum import Enum


class FileSorting(str, Enum):
    """Sort keys supported by the explorer."""

    NAME = "name"
    MODIFY_TIME = "mtime"
    SIZE = "size"

    def next(self):
        members = list(FileSorting)
        return members[(members.index(self) + 1) % len(members)]

    @property
    def label(self):
        return {
            FileSorting.NAME: 'By name',
            FileSorting.MODIFY_TIME: 'By modify time',
            FileSorting.SIZE: 'By size',
        }[self]


class GroupDirs(str, Enum):
    """Where directories are placed relative to files."""

    FIRST = "first"
    LAST = "last"
    NONE = "none"


class FileExplorer:
    """One side's browsing state.

    `entries` holds the last successful listing of `wrkdir` as returned by the
    filesystem; `files` is the sorted and filtered view shown to the user.
    """

    def __init__(self, wrkdir='/', sorting=FileSorting.NAME, group_dirs=GroupDirs.FIRST,
                 show_hidden=False, stack_size=16):
        self.wrkdir = wrkdir
        self.sorting = FileSorting(sorting)
        self.group_dirs = GroupDirs(group_dirs)
        self.show_hidden = bool(show_hidden)
        self.entries = []
        self.cursor = 0
        self.marked = set()
        self.dirstack = deque(maxlen=stack_size)
        self._view = []

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    def set_files(self, entries):
        """Replace the listing wholesale and rebuild the visible view."""
        self.entries = list(entries)
        present = {entry.path for entry in self.entries}
        self.marked &= present
        self._rebuild()

    @property
    def files(self):
        """Visible entries, filtered and sorted."""
        return list(self._view)

    def __len__(self):
        return len(self._view)

    def _rebuild(self):
        visible = [e for e in self.entries if self.show_hidden or not e.is_hidden]
        visible.sort(key=self._sort_key)
        if self.group_dirs == GroupDirs.FIRST:
            visible.sort(key=lambda e: not e.is_dir)
        elif self.group_dirs == GroupDirs.LAST:
            visible.sort(key=lambda e: e.is_dir)
        self._view = visible
        self.cursor = max(0, min(self.cursor, len(visible) - 1))

    def _sort_key(self, entry):
        if self.sorting == FileSorting.MODIFY_TIME:
            return (-entry.modified_time, entry.name.lower())
        if self.sorting == FileSorting.SIZE:
            return (-entry.size, entry.name.lower())
        return (entry.name.lower(), entry.name)

    def sort(self, sorting):
        self.sorting = FileSorting(sorting)
        self._rebuild()

    def toggle_hidden(self):
        self.show_hidden = not self.show_hidden
        self._rebuild()
        return self.show_hidden

    # ------------------------------------------------------------------
    # Cursor and selection
    # ------------------------------------------------------------------

    def selected_entry(self):
        """Entry under the cursor, or None on an empty listing."""
        if not self._view:
            return None
        return self._view[self.cursor]

    def selection(self):
        """Marked entries, falling back to the entry under the cursor."""
        marked = [e for e in self._view if e.path in self.marked]
        if marked:
            return marked
        entry = self.selected_entry()
        return [entry] if entry is not None else []

    def move_cursor(self, delta):
        if not self._view:
            self.cursor = 0
            return
        self.cursor = max(0, min(self.cursor + delta, len(self._view) - 1))

    def cursor_home(self):
        self.cursor = 0

    def cursor_end(self):
        self.cursor = max(0, len(self._view) - 1)

    def select_name(self, name):
        """Move the cursor onto the entry called `name` if it is visible."""
        for idx, entry in enumerate(self._view):
            if entry.name == name:
                self.cursor = idx
                return True
        return False

    def toggle_mark(self):
        entry = self.selected_entry()
        if entry is None:
            return
        if entry.path in self.marked:
            self.marked.discard(entry.path)
        else:
            self.marked.add(entry.path)

    def mark_all(self):
        self.marked = {e.path for e in self._view}

    def clear_marks(self):
        self.marked.clear()

    # ------------------------------------------------------------------
    # Directory stack
    # ------------------------------------------------------------------

    def pushd(self, path):
        self.dirstack.append(path)

    def popd(self):
        if not self.dirstack:
            return None
        return self.dirstack.pop()
