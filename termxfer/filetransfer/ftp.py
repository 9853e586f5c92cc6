"""FTP/FTPS backend built on ftplib."""

import calendar
import ftplib
import logging
import posixpath
import time
from contextlib import contextmanager

from ..constants import DEFAULT_CHUNK_SIZE
from ..errors import ConnectionLostError, RemoteError, RemoteErrorKind, TransferAborted
from ..explorer import FileEntry, FileKind
from .params import Protocol
from .remotefs import RemoteFs

LOGGER = logging.getLogger(__name__)

CONNECT_TIMEOUT = 15
MLSD_FACTS = ['type', 'size', 'modify', 'unix.mode']


def _parse_modify(value):
    """Convert an MLSD `modify` fact (YYYYMMDDHHMMSS[.sss]) to a timestamp."""
    if not value:
        return 0.0
    try:
        return float(calendar.timegm(time.strptime(value[:14], '%Y%m%d%H%M%S')))
    except ValueError:
        return 0.0


def entry_from_facts(directory, name, facts):
    """Build a FileEntry from an MLSD fact dictionary."""
    kind_fact = facts.get('type', 'file').lower()
    if kind_fact in ('dir', 'cdir', 'pdir'):
        kind = FileKind.DIRECTORY
    elif kind_fact.startswith('os.unix=symlink') or kind_fact.startswith('os.unix=slink'):
        kind = FileKind.SYMLINK
    else:
        kind = FileKind.FILE
    mode = facts.get('unix.mode')
    try:
        permissions = int(mode, 8) if mode else None
    except ValueError:
        permissions = None
    try:
        size = int(facts.get('size', 0))
    except ValueError:
        size = 0
    return FileEntry(
        name=name,
        path=posixpath.join(directory, name),
        kind=kind,
        size=0 if kind == FileKind.DIRECTORY else size,
        modified_time=_parse_modify(facts.get('modify')),
        permissions=permissions,
    )


class FtpFs(RemoteFs):
    """Remote filesystem over FTP, optionally secured with TLS."""

    protocol = Protocol.FTP

    def __init__(self, host, port=21, username=None, password=None, remote_path=None, secure=False):
        self._host = host
        self._port = port
        self._username = username or 'anonymous'
        self._password = password or ''
        self._initial_path = remote_path
        self._secure = secure
        self._ftp = None
        self._wrkdir = '/'
        if secure:
            self.protocol = Protocol.FTPS

    def connect(self):
        ftp = ftplib.FTP_TLS() if self._secure else ftplib.FTP()
        LOGGER.info('Connecting to %s@%s:%s', self._username, self._host, self._port)
        try:
            ftp.connect(self._host, self._port, timeout=CONNECT_TIMEOUT)
            ftp.login(self._username, self._password)
            if self._secure:
                ftp.prot_p()
            if self._initial_path:
                ftp.cwd(self._initial_path)
            self._wrkdir = ftp.pwd()
        except ftplib.error_perm as exc:
            ftp.close()
            if str(exc).startswith('530'):
                raise RemoteError(RemoteErrorKind.AUTHENTICATION, str(exc)) from exc
            raise RemoteError(RemoteErrorKind.PROTOCOL, str(exc)) from exc
        except ftplib.all_errors as exc:
            ftp.close()
            raise RemoteError(RemoteErrorKind.CONNECTION_LOST, str(exc)) from exc
        self._ftp = ftp
        return self._wrkdir

    def disconnect(self):
        if self._ftp is None:
            return
        try:
            self._ftp.quit()
        except ftplib.all_errors:
            self._ftp.close()
        finally:
            self._ftp = None

    def is_connected(self):
        if self._ftp is None:
            return False
        try:
            self._ftp.voidcmd('NOOP')
        except ftplib.all_errors:
            return False
        return True

    @contextmanager
    def _translate(self, path=''):
        if self._ftp is None:
            raise ConnectionLostError('not connected')
        try:
            yield self._ftp
        except TransferAborted:
            self._settle_cancelled_transfer()
            raise
        except ftplib.error_perm as exc:
            code = str(exc)[:3]
            if code == '550':
                raise RemoteError(RemoteErrorKind.NO_SUCH_FILE, f'{path}: {exc}') from exc
            if code in ('530', '532', '553'):
                raise RemoteError(RemoteErrorKind.PERMISSION_DENIED, f'{path}: {exc}') from exc
            if code in ('500', '502', '504'):
                raise RemoteError(RemoteErrorKind.UNSUPPORTED, str(exc)) from exc
            raise RemoteError(RemoteErrorKind.PROTOCOL, str(exc)) from exc
        except ftplib.all_errors as exc:
            if not self.is_connected():
                raise ConnectionLostError(str(exc)) from exc
            raise RemoteError(RemoteErrorKind.IO, f'{path}: {exc}') from exc

    def _settle_cancelled_transfer(self):
        """Read the 226/426 reply a cancelled RETR or STOR leaves on the control channel."""
        try:
            self._ftp.voidresp()
        except (ftplib.error_temp, ftplib.error_perm) as exc:
            LOGGER.debug('reply after cancelled transfer: %s', exc)
        except ftplib.all_errors as exc:
            LOGGER.warning('control channel unusable after cancelled transfer: %s', exc)
            self._ftp.close()
            self._ftp = None

    def pwd(self):
        return self._wrkdir

    def change_dir(self, path):
        target = self._abspath(path)
        with self._translate(target) as ftp:
            ftp.cwd(target)
            self._wrkdir = ftp.pwd()
        return self._wrkdir

    def list_dir(self, path):
        directory = self._abspath(path)
        entries = []
        with self._translate(directory) as ftp:
            for name, facts in ftp.mlsd(directory, facts=MLSD_FACTS):
                if name in ('.', '..') or facts.get('type') in ('cdir', 'pdir'):
                    continue
                entries.append(entry_from_facts(directory, name, facts))
        return entries

    def stat(self, path):
        target = self._abspath(path)
        parent = posixpath.dirname(target) or '/'
        name = posixpath.basename(target)
        if not name:
            return FileEntry(name='/', path='/', kind=FileKind.DIRECTORY)
        for entry in self.list_dir(parent):
            if entry.name == name:
                return entry
        raise RemoteError(RemoteErrorKind.NO_SUCH_FILE, target)

    def get(self, path, writer):
        with self._translate(path) as ftp:
            ftp.retrbinary(f'RETR {self._abspath(path)}', writer.write, blocksize=DEFAULT_CHUNK_SIZE)

    def put(self, reader, path, size=None):
        with self._translate(path) as ftp:
            ftp.storbinary(f'STOR {self._abspath(path)}', reader, blocksize=DEFAULT_CHUNK_SIZE)

    def mkdir(self, path):
        with self._translate(path) as ftp:
            ftp.mkd(self._abspath(path))

    def remove(self, entry):
        if entry.is_dir:
            for child in self.list_dir(entry.path):
                self.remove(child)
            with self._translate(entry.path) as ftp:
                ftp.rmd(entry.path)
            return
        with self._translate(entry.path) as ftp:
            ftp.delete(entry.path)

    def rename(self, src, dst):
        with self._translate(src) as ftp:
            ftp.rename(self._abspath(src), self._abspath(dst))
