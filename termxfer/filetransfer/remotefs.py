"""
Remote filesystem capability.

Backends subclass RemoteFs and translate their library errors into
RemoteError at this boundary. Paths are POSIX paths on the remote host.
"""
import fnmatch
import logging
import posixpath

from ..errors import RemoteError, RemoteErrorKind, TransferAborted

LOGGER = logging.getLogger(__name__)


class RemoteFs:
    """Contract every transfer backend implements."""

    protocol = None

    def connect(self):
        """Open the connection and return the initial working directory."""
        raise NotImplementedError

    def disconnect(self):
        raise NotImplementedError

    def is_connected(self):
        raise NotImplementedError

    def pwd(self):
        raise NotImplementedError

    def change_dir(self, path):
        """Enter `path` and return the resolved absolute path."""
        raise NotImplementedError

    def list_dir(self, path):
        """Return the FileEntry list of directory `path`."""
        raise NotImplementedError

    def stat(self, path):
        raise NotImplementedError

    def get(self, path, writer):
        """Stream remote file `path` into the binary `writer`."""
        raise NotImplementedError

    def put(self, reader, path, size=None):
        """Stream the binary `reader` into remote file `path`."""
        raise NotImplementedError

    def mkdir(self, path):
        raise NotImplementedError

    def remove(self, entry):
        """Remove a file or a directory tree."""
        raise NotImplementedError

    def rename(self, src, dst):
        raise NotImplementedError

    def symlink(self, target, link):
        raise RemoteError(RemoteErrorKind.UNSUPPORTED, 'symlinks are not supported by this protocol')

    def copy(self, entry, dst):
        raise RemoteError(RemoteErrorKind.UNSUPPORTED, 'copy is not supported by this protocol')

    def exec(self, command):
        raise RemoteError(RemoteErrorKind.UNSUPPORTED, 'exec is not supported by this protocol')

    def exists(self, path):
        try:
            self.stat(path)
        except RemoteError as exc:
            if exc.kind == RemoteErrorKind.NO_SUCH_FILE:
                return False
            raise
        return True

    def find(self, root, pattern, cancel=None, on_directory=None):
        """Walk the tree under `root` with repeated listings."""
        found = []
        pending = [root]
        while pending:
            if on_directory is not None:
                on_directory(pending[0])
            if cancel is not None and cancel.cancelled:
                raise TransferAborted('search aborted')
            directory = pending.pop(0)
            try:
                entries = self.list_dir(directory)
            except RemoteError as exc:
                if exc.kind == RemoteErrorKind.CONNECTION_LOST:
                    raise
                LOGGER.debug('find: cannot list %s: %s', directory, exc)
                continue
            for entry in entries:
                if fnmatch.fnmatch(entry.name, pattern):
                    found.append(entry)
                if entry.is_dir:
                    pending.append(entry.path)
        return found

    def _abspath(self, path):
        if posixpath.isabs(path):
            return posixpath.normpath(path)
        return posixpath.normpath(posixpath.join(self.pwd(), path))
