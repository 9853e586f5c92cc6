"""SFTP backend built on paramiko."""

from __future__ import annotations

import errno
import logging
import posixpath
import shlex
import socket
import stat
from contextlib import contextmanager
from typing import Optional

import paramiko

from ..errors import ConnectionLostError, RemoteError, RemoteErrorKind, TransferAborted
from ..explorer import FileEntry, FileKind
from .params import Protocol
from .remotefs import RemoteFs

LOGGER = logging.getLogger(__name__)

CONNECT_TIMEOUT = 15


def entry_from_attr(directory: str, attr: paramiko.SFTPAttributes, target: Optional[str] = None) -> FileEntry:
    """Build a FileEntry from paramiko attributes."""
    mode = attr.st_mode or 0
    if stat.S_ISLNK(mode):
        kind = FileKind.SYMLINK
    elif stat.S_ISDIR(mode):
        kind = FileKind.DIRECTORY
    else:
        kind = FileKind.FILE
    return FileEntry(
        name=attr.filename,
        path=posixpath.join(directory, attr.filename),
        kind=kind,
        size=0 if kind == FileKind.DIRECTORY else (attr.st_size or 0),
        modified_time=float(attr.st_mtime or 0),
        permissions=stat.S_IMODE(mode) if mode else None,
        symlink_target=target,
    )


class SftpFs(RemoteFs):
    """Remote filesystem over an SSH connection with the SFTP subsystem."""

    protocol = Protocol.SFTP

    def __init__(self, host, port=22, username=None, password=None, remote_path=None):
        self._host = host
        self._port = port
        self._username = username
        self._password = password
        self._initial_path = remote_path
        self._client: Optional[paramiko.SSHClient] = None
        self._sftp: Optional[paramiko.SFTPClient] = None
        self._wrkdir = '/'

    # -- connection -----------------------------------------------------

    def connect(self):
        client = paramiko.SSHClient()
        client.load_system_host_keys()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        LOGGER.info('Connecting to %s@%s:%s', self._username, self._host, self._port)
        try:
            client.connect(
                hostname=self._host,
                port=self._port,
                username=self._username,
                password=self._password,
                allow_agent=True,
                look_for_keys=True,
                timeout=CONNECT_TIMEOUT,
            )
            sftp = client.open_sftp()
        except paramiko.AuthenticationException as exc:
            client.close()
            raise RemoteError(RemoteErrorKind.AUTHENTICATION, str(exc)) from exc
        except (paramiko.SSHException, socket.error, EOFError) as exc:
            client.close()
            raise RemoteError(RemoteErrorKind.CONNECTION_LOST, str(exc)) from exc
        self._client = client
        self._sftp = sftp
        self._wrkdir = self._sftp.normalize(self._initial_path or '.')
        if self._initial_path:
            self.change_dir(self._wrkdir)
        return self._wrkdir

    def disconnect(self):
        if self._sftp is not None:
            self._sftp.close()
            self._sftp = None
        if self._client is not None:
            self._client.close()
            self._client = None

    def is_connected(self):
        if self._client is None:
            return False
        transport = self._client.get_transport()
        return bool(transport and transport.is_active())

    def transport(self):
        if self._client is None:
            raise ConnectionLostError('not connected')
        transport = self._client.get_transport()
        if transport is None or not transport.is_active():
            raise ConnectionLostError('transport is closed')
        return transport

    @contextmanager
    def _translate(self, path=''):
        """Convert paramiko/socket failures into RemoteError."""
        if self._sftp is None:
            raise ConnectionLostError('not connected')
        try:
            yield self._sftp
        except TransferAborted:
            raise
        except IOError as exc:
            if exc.errno == errno.ENOENT or isinstance(exc, FileNotFoundError):
                raise RemoteError(RemoteErrorKind.NO_SUCH_FILE, path or str(exc)) from exc
            if exc.errno == errno.EACCES or isinstance(exc, PermissionError):
                raise RemoteError(RemoteErrorKind.PERMISSION_DENIED, path or str(exc)) from exc
            if not self.is_connected():
                raise ConnectionLostError(str(exc)) from exc
            raise RemoteError(RemoteErrorKind.IO, f'{path}: {exc}') from exc
        except (paramiko.SSHException, socket.error, EOFError) as exc:
            if not self.is_connected():
                raise ConnectionLostError(str(exc)) from exc
            raise RemoteError(RemoteErrorKind.PROTOCOL, str(exc)) from exc

    # -- navigation -----------------------------------------------------

    def pwd(self):
        return self._wrkdir

    def change_dir(self, path):
        target = self._abspath(path)
        with self._translate(target) as sftp:
            sftp.chdir(target)
            self._wrkdir = sftp.getcwd() or target
        return self._wrkdir

    def list_dir(self, path):
        directory = self._abspath(path)
        entries = []
        with self._translate(directory) as sftp:
            for attr in sftp.listdir_attr(directory):
                target = None
                if stat.S_ISLNK(attr.st_mode or 0):
                    target = sftp.readlink(posixpath.join(directory, attr.filename))
                entries.append(entry_from_attr(directory, attr, target))
        return entries

    def stat(self, path):
        target = self._abspath(path)
        with self._translate(target) as sftp:
            attr = sftp.lstat(target)
            attr.filename = posixpath.basename(target.rstrip('/')) or '/'
            link = sftp.readlink(target) if stat.S_ISLNK(attr.st_mode or 0) else None
        return entry_from_attr(posixpath.dirname(target), attr, link)

    # -- transfers ------------------------------------------------------

    def get(self, path, writer):
        with self._translate(path) as sftp:
            sftp.getfo(self._abspath(path), writer)

    def put(self, reader, path, size=None):
        with self._translate(path) as sftp:
            sftp.putfo(reader, self._abspath(path), file_size=size or 0, confirm=True)

    # -- mutations ------------------------------------------------------

    def mkdir(self, path):
        with self._translate(path) as sftp:
            sftp.mkdir(self._abspath(path))

    def remove(self, entry):
        if entry.is_dir:
            for child in self.list_dir(entry.path):
                self.remove(child)
            with self._translate(entry.path) as sftp:
                sftp.rmdir(entry.path)
            return
        with self._translate(entry.path) as sftp:
            sftp.remove(entry.path)

    def rename(self, src, dst):
        with self._translate(src) as sftp:
            sftp.posix_rename(self._abspath(src), self._abspath(dst))

    def symlink(self, target, link):
        with self._translate(link) as sftp:
            sftp.symlink(target, self._abspath(link))

    def copy(self, entry, dst):
        output = self._run(f'cp -rf {shlex.quote(entry.path)} {shlex.quote(self._abspath(dst))}')
        if output.strip():
            raise RemoteError(RemoteErrorKind.IO, output.strip())

    def exec(self, command):
        return self._run(f'cd {shlex.quote(self._wrkdir)}; {command}')

    def _run(self, command):
        if self._client is None:
            raise ConnectionLostError('not connected')
        LOGGER.debug('exec: %s', command)
        try:
            _, stdout, stderr = self._client.exec_command(command, timeout=CONNECT_TIMEOUT)
            out = stdout.read().decode('utf-8', errors='replace')
            err = stderr.read().decode('utf-8', errors='replace')
        except (paramiko.SSHException, socket.error, EOFError) as exc:
            if not self.is_connected():
                raise ConnectionLostError(str(exc)) from exc
            raise RemoteError(RemoteErrorKind.PROTOCOL, str(exc)) from exc
        return out + err
