"""
Dual browser: the local pane, the remote pane and the optional found pane.

Sync browsing keeps the two working directories at the same path relative
to their sync roots: the local directory the activity started in and the
remote directory reached on connect.
"""
import logging
import os
import posixpath
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ...errors import HostError, RemoteError
from ...explorer import FileExplorer

LOGGER = logging.getLogger(__name__)


class Side(str, Enum):
    LOCAL = "local"
    REMOTE = "remote"

    @property
    def other(self):
        return Side.REMOTE if self == Side.LOCAL else Side.LOCAL

    @property
    def pathmod(self):
        return os.path if self == Side.LOCAL else posixpath


class SyncStatus(str, Enum):
    DISABLED = "disabled"
    IN_SYNC = "in_sync"
    CHANGED = "changed"
    MISSING = "missing"
    OUTSIDE_ROOT = "outside_root"
    UNAVAILABLE = "unavailable"
    FAILED = "failed"


@dataclass(frozen=True)
class SyncResult:
    status: SyncStatus
    side: Optional[Side] = None
    path: Optional[str] = None


class Browser:
    """Owns both panes, the search results and the sync-browsing flag."""

    def __init__(self, host, session, log, local, remote, on_change=None):
        self.host = host
        self.session = session
        self.log = log
        self.local = local
        self.remote = remote
        self.found = None
        self.found_side = None
        self.focus = Side.LOCAL
        self.sync_browsing = False
        self.roots = {Side.LOCAL: local.wrkdir, Side.REMOTE: None}
        self._on_change = on_change

    # ------------------------------------------------------------------
    # Panes
    # ------------------------------------------------------------------

    def pane(self, side):
        return self.local if side == Side.LOCAL else self.remote

    def focused_explorer(self):
        """Explorer receiving navigation keys: the found pane while searching."""
        if self.found is not None:
            return self.found
        return self.pane(self.focus)

    def switch_focus(self):
        self.close_found()
        self.focus = self.focus.other
        return self.focus

    def _changed(self):
        if self._on_change is not None:
            self._on_change()

    # ------------------------------------------------------------------
    # Listing and navigation
    # ------------------------------------------------------------------

    def _read_dir(self, side, path):
        if side == Side.LOCAL:
            return self.host.list_dir(path)
        return self.session.invoke('list_dir', path)

    def list(self, side):
        """Re-read a pane; on failure the previous listing is kept."""
        pane = self.pane(side)
        try:
            entries = self._read_dir(side, pane.wrkdir)
        except (HostError, RemoteError) as exc:
            self.log.warn(f'Could not list {side.value} directory {pane.wrkdir}: {exc}')
            return False
        pane.set_files(entries)
        self._changed()
        return True

    def set_remote_root(self, wrkdir):
        """Adopt the remote working directory reached on connect."""
        self.remote.wrkdir = wrkdir
        if self.roots[Side.REMOTE] is None:
            self.roots[Side.REMOTE] = wrkdir

    def enter_directory(self, side, path, push_stack=True):
        """Change the pane's directory and re-list it, restoring on failure."""
        pane = self.pane(side)
        previous = pane.wrkdir
        try:
            if side == Side.LOCAL:
                target = self.host.change_wrkdir(path)
            else:
                target = self.session.invoke('change_dir', path)
            entries = self._read_dir(side, target)
        except (HostError, RemoteError) as exc:
            self.log.error(f'Could not change {side.value} directory to {path}: {exc}')
            self._restore(side, previous)
            return False
        if push_stack and target != previous:
            pane.pushd(previous)
        pane.wrkdir = target
        pane.cursor = 0
        pane.clear_marks()
        pane.set_files(entries)
        self._changed()
        LOGGER.debug('%s pane now at %s', side.value, target)
        return True

    def _restore(self, side, previous):
        pane = self.pane(side)
        pane.wrkdir = previous
        try:
            if side == Side.LOCAL:
                self.host.change_wrkdir(previous)
            else:
                self.session.invoke('change_dir', previous)
        except (HostError, RemoteError) as exc:
            LOGGER.warning('could not restore %s directory %s: %s', side.value, previous, exc)

    def go_to_parent(self, side):
        pane = self.pane(side)
        parent = side.pathmod.dirname(pane.wrkdir.rstrip(side.pathmod.sep)) or side.pathmod.sep
        if parent == pane.wrkdir:
            return False
        child = side.pathmod.basename(pane.wrkdir.rstrip(side.pathmod.sep))
        if self.enter_directory(side, parent):
            pane.select_name(child)
            return True
        return False

    def go_to_previous(self, side):
        pane = self.pane(side)
        previous = pane.popd()
        if previous is None:
            return False
        return self.enter_directory(side, previous, push_stack=False)

    def resolve_path(self, side, path):
        """Absolute path for user input relative to the pane's directory."""
        mod = side.pathmod
        if side == Side.LOCAL:
            path = os.path.expanduser(path)
        if not mod.isabs(path):
            path = mod.join(self.pane(side).wrkdir, path)
        return mod.normpath(path)

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def search(self, side, pattern, cancel=None, on_directory=None):
        """Fill the found pane with entries below the pane's directory matching `pattern`.

        Raises `TransferAborted` when `cancel` is set during the walk; the
        found pane is left as it was.
        """
        pane = self.pane(side)
        try:
            if side == Side.LOCAL:
                results = self.host.find(pane.wrkdir, pattern, cancel, on_directory)
            else:
                results = self.session.invoke('find', pane.wrkdir, pattern, cancel, on_directory)
        except (HostError, RemoteError) as exc:
            self.log.error(f'Search for "{pattern}" failed: {exc}')
            return None
        found = FileExplorer(
            wrkdir=pane.wrkdir,
            sorting=pane.sorting,
            group_dirs=pane.group_dirs,
            show_hidden=True,
        )
        found.set_files(results)
        self.found = found
        self.found_side = side
        self._changed()
        self.log.info(f'Search for "{pattern}" found {len(results)} result(s)')
        return len(results)

    def close_found(self):
        if self.found is None:
            return
        self.found = None
        self.found_side = None
        self._changed()

    # ------------------------------------------------------------------
    # Sync browsing
    # ------------------------------------------------------------------

    def relative_parts(self, side):
        """Path components of the side's directory below its sync root.

        Returns None when there is no root or the directory is outside it.
        """
        root = self.roots[side]
        if root is None:
            return None
        mod = side.pathmod
        rel = mod.relpath(self.pane(side).wrkdir, root)
        if rel == mod.pardir or rel.startswith(mod.pardir + mod.sep):
            return None
        if rel == mod.curdir:
            return []
        return rel.split(mod.sep)

    def mirror_path(self, side):
        """Path on the other side matching the side's position below its root."""
        parts = self.relative_parts(side)
        other = side.other
        root = self.roots[other]
        if parts is None or root is None:
            return None
        return other.pathmod.join(root, *parts) if parts else root

    def toggle_sync_browsing(self):
        self.sync_browsing = not self.sync_browsing
        self.log.info(f'Synchronized browsing {"enabled" if self.sync_browsing else "disabled"}')
        self._changed()
        if self.sync_browsing:
            return self.equalize(self.focus)
        return SyncResult(SyncStatus.DISABLED)

    def equalize(self, side):
        """Move the other pane to mirror `side`'s directory.

        Returns MISSING with the target path when the mirrored directory
        does not exist; nothing is created here.
        """
        if not self.sync_browsing:
            return SyncResult(SyncStatus.DISABLED)
        other = side.other
        if self.roots[other] is None or (other == Side.REMOTE and not self.session.connected):
            return SyncResult(SyncStatus.UNAVAILABLE, other)
        target = self.mirror_path(side)
        if target is None:
            self.log.warn(
                f'Cannot synchronize: {self.pane(side).wrkdir} is outside {self.roots[side]}'
            )
            return SyncResult(SyncStatus.OUTSIDE_ROOT, side, self.pane(side).wrkdir)
        if self.pane(other).wrkdir == target:
            return SyncResult(SyncStatus.IN_SYNC, other, target)
        try:
            exists = self.host.exists(target) if other == Side.LOCAL else self.session.invoke('exists', target)
        except RemoteError as exc:
            self.log.error(f'Cannot synchronize with {target}: {exc}')
            return SyncResult(SyncStatus.FAILED, other, target)
        if not exists:
            return SyncResult(SyncStatus.MISSING, other, target)
        if self.enter_directory(other, target):
            return SyncResult(SyncStatus.CHANGED, other, target)
        return SyncResult(SyncStatus.FAILED, other, target)
