"""
Local filesystem bridge.

Every operation is synchronous and raises HostError on failure.
"""
import fnmatch
import logging
import os
import shutil
import stat
import subprocess

from .errors import HostError, TransferAborted
from .explorer import FileEntry, FileKind

LOGGER = logging.getLogger(__name__)


def _entry_from_stat(name, path, st, symlink_target=None):
    if stat.S_ISLNK(st.st_mode):
        kind = FileKind.SYMLINK
    elif stat.S_ISDIR(st.st_mode):
        kind = FileKind.DIRECTORY
    else:
        kind = FileKind.FILE
    return FileEntry(
        name=name,
        path=path,
        kind=kind,
        size=0 if kind == FileKind.DIRECTORY else st.st_size,
        modified_time=st.st_mtime,
        permissions=stat.S_IMODE(st.st_mode),
        symlink_target=symlink_target,
    )


class Localhost:
    """Bridge to the local filesystem."""

    def __init__(self, wrkdir=None):
        self.wrkdir = os.path.realpath(wrkdir or os.getcwd())

    def stat(self, path):
        """Return a FileEntry for `path` without following symlinks."""
        try:
            st = os.lstat(path)
            target = os.readlink(path) if stat.S_ISLNK(st.st_mode) else None
        except OSError as exc:
            raise HostError.from_os_error(exc, path) from exc
        name = os.path.basename(path.rstrip(os.sep)) or path
        return _entry_from_stat(name, path, st, target)

    def exists(self, path):
        return os.path.lexists(path)

    def list_dir(self, path):
        """Return the entries of directory `path`."""
        entries = []
        try:
            with os.scandir(path) as it:
                for dirent in it:
                    try:
                        st = dirent.stat(follow_symlinks=False)
                        target = os.readlink(dirent.path) if dirent.is_symlink() else None
                    except OSError:
                        LOGGER.debug('skipping unreadable entry %s', dirent.path)
                        continue
                    entries.append(_entry_from_stat(dirent.name, dirent.path, st, target))
        except OSError as exc:
            raise HostError.from_os_error(exc, path) from exc
        return entries

    def change_wrkdir(self, path):
        """Validate and set the working directory."""
        real = os.path.realpath(os.path.expanduser(path))
        if not os.path.isdir(real):
            raise HostError(f'Not a directory: {real}', path=real)
        if not os.access(real, os.R_OK | os.X_OK):
            raise HostError(f'Permission denied: {real}', path=real)
        self.wrkdir = real
        return real

    def mkdir(self, path):
        try:
            os.mkdir(path)
        except OSError as exc:
            raise HostError.from_os_error(exc, path) from exc

    def create_file(self, path):
        if os.path.lexists(path):
            raise HostError(f'File already exists: {path}', path=path)
        try:
            with open(path, 'a', encoding='utf-8'):
                pass
        except OSError as exc:
            raise HostError.from_os_error(exc, path) from exc

    def remove(self, entry):
        """Remove a file, symlink or directory tree."""
        try:
            if entry.is_dir:
                shutil.rmtree(entry.path)
            else:
                os.remove(entry.path)
        except OSError as exc:
            raise HostError.from_os_error(exc, entry.path) from exc

    def rename(self, src, dst):
        try:
            os.rename(src, dst)
        except OSError as exc:
            raise HostError.from_os_error(exc, src) from exc

    def copy(self, entry, dst):
        """Copy a file or directory tree to `dst`."""
        try:
            if entry.is_dir:
                shutil.copytree(entry.path, dst, symlinks=True)
            else:
                shutil.copy2(entry.path, dst, follow_symlinks=False)
        except (OSError, shutil.Error) as exc:
            raise HostError(str(exc), path=entry.path) from exc

    def symlink(self, target, link):
        try:
            os.symlink(target, link)
        except OSError as exc:
            raise HostError.from_os_error(exc, link) from exc

    def open_read(self, path):
        try:
            return open(path, 'rb')
        except OSError as exc:
            raise HostError.from_os_error(exc, path) from exc

    def open_write(self, path):
        try:
            return open(path, 'wb')
        except OSError as exc:
            raise HostError.from_os_error(exc, path) from exc

    def exec(self, command):
        """Run a shell command in the working directory and return its output."""
        try:
            result = subprocess.run(
                command,
                shell=True,
                cwd=self.wrkdir,
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as exc:
            raise HostError.from_os_error(exc) from exc
        return (result.stdout or '') + (result.stderr or '')

    def find(self, root, pattern, cancel=None, on_directory=None):
        """Recursively collect entries under `root` whose name matches `pattern`.

        `on_directory(path)` runs before each directory is scanned.
        """
        found = []
        for dirpath, dirnames, filenames in os.walk(root, onerror=None):
            if on_directory is not None:
                on_directory(dirpath)
            if cancel is not None and cancel.cancelled:
                raise TransferAborted('search aborted')
            for name in dirnames + filenames:
                if not fnmatch.fnmatch(name, pattern):
                    continue
                try:
                    found.append(self.stat(os.path.join(dirpath, name)))
                except HostError:
                    continue
        return found
