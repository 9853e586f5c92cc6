"""SCP backend: SFTP for metadata, scp for payload transfers."""

import logging
import os
import posixpath
import shutil
import socket
import tempfile

import paramiko
from scp import SCPClient, SCPException

from ..constants import DEFAULT_CHUNK_SIZE
from ..errors import ConnectionLostError, RemoteError, RemoteErrorKind, TransferAborted
from .params import Protocol
from .sftp import SftpFs

LOGGER = logging.getLogger(__name__)


class ScpFs(SftpFs):
    """Remote filesystem whose file payloads travel through scp."""

    protocol = Protocol.SCP

    def _scp_errors(self, path, exc):
        if not self.is_connected():
            return ConnectionLostError(str(exc))
        message = str(exc)
        if 'No such file' in message:
            return RemoteError(RemoteErrorKind.NO_SUCH_FILE, path)
        if 'Permission denied' in message:
            return RemoteError(RemoteErrorKind.PERMISSION_DENIED, path)
        return RemoteError(RemoteErrorKind.PROTOCOL, message)

    def put(self, reader, path, size=None):
        target = self._abspath(path)
        try:
            with SCPClient(self.transport()) as scp:
                scp.putfo(reader, target, size=size)
        except TransferAborted:
            raise
        except (SCPException, paramiko.SSHException, socket.error) as exc:
            raise self._scp_errors(target, exc) from exc

    def get(self, path, writer):
        """Download into a scratch file, then stream it into `writer`."""
        source = self._abspath(path)
        scratch_dir = tempfile.mkdtemp(prefix='termxfer-scp-')
        scratch = os.path.join(scratch_dir, posixpath.basename(source) or 'file')
        try:
            try:
                with SCPClient(self.transport()) as scp:
                    scp.get(source, scratch)
            except (SCPException, paramiko.SSHException, socket.error) as exc:
                raise self._scp_errors(source, exc) from exc
            try:
                with open(scratch, 'rb') as fh:
                    shutil.copyfileobj(fh, writer, DEFAULT_CHUNK_SIZE)
            except OSError as exc:
                raise RemoteError(RemoteErrorKind.IO, f'{source}: {exc}') from exc
        finally:
            shutil.rmtree(scratch_dir, ignore_errors=True)
