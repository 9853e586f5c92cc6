"""Select and construct the transfer backend for a set of parameters."""

import logging

from ..errors import FatalError
from .ftp import FtpFs
from .params import Protocol
from .scp import ScpFs
from .sftp import SftpFs

LOGGER = logging.getLogger(__name__)


def build_client(params):
    """Return an unconnected RemoteFs for `params`.

    Raises FatalError when the parameters cannot produce a backend.
    """
    if not params.host:
        raise FatalError('No remote host given')
    try:
        protocol = Protocol(params.protocol)
    except ValueError as exc:
        raise FatalError(f'Unsupported protocol: {params.protocol}') from exc

    LOGGER.debug('building %s client for %s', protocol.value, params.describe())
    common = {
        'host': params.host,
        'port': params.port,
        'username': params.username,
        'password': params.password,
        'remote_path': params.remote_path,
    }
    if protocol == Protocol.SFTP:
        return SftpFs(**common)
    if protocol == Protocol.SCP:
        return ScpFs(**common)
    if protocol == Protocol.FTP:
        return FtpFs(**common)
    if protocol == Protocol.FTPS:
        return FtpFs(secure=True, **common)
    raise FatalError(f'Unsupported protocol: {protocol.value}')
