"""Error taxonomy shared by the termxfer engine and its backends."""

from enum import Enum


class TermxferError(Exception):
    """Base class for every error raised by termxfer."""


class HostError(TermxferError):
    """Local filesystem operation failed."""

    def __init__(self, message, path=None):
        super().__init__(message)
        self.path = path

    @classmethod
    def from_os_error(cls, exc, path=None):
        """Wrap an OSError raised by the local bridge."""
        reason = exc.strerror or str(exc)
        target = path or exc.filename
        if target:
            return cls(f'{reason}: {target}', path=target)
        return cls(reason, path=target)


class RemoteErrorKind(str, Enum):
    """Classification of transport failures."""

    CONNECTION_LOST = "connection_lost"
    NO_SUCH_FILE = "no_such_file"
    PERMISSION_DENIED = "permission_denied"
    UNSUPPORTED = "unsupported"
    PROTOCOL = "protocol"
    AUTHENTICATION = "authentication"
    IO = "io"


class RemoteError(TermxferError):
    """Remote transport operation failed."""

    def __init__(self, kind, message=''):
        self.kind = RemoteErrorKind(kind)
        self.message = message
        super().__init__(f'{self.kind.value}: {message}' if message else self.kind.value)


class ConnectionLostError(RemoteError):
    """The remote connection dropped while an operation was running."""

    def __init__(self, message='connection lost'):
        super().__init__(RemoteErrorKind.CONNECTION_LOST, message)


class WatcherError(TermxferError):
    """Filesystem watcher failure."""


class WatcherInitError(WatcherError):
    """The watcher could not be started."""


class CapacityExceeded(WatcherError):
    """Too many watched paths."""

    def __init__(self, capacity):
        super().__init__(f'cannot watch more than {capacity} paths')
        self.capacity = capacity


class TransferAborted(TermxferError):
    """Raised at a chunk boundary once the transfer was aborted."""


class FatalError(TermxferError):
    """Construction-time or unrecoverable failure."""
