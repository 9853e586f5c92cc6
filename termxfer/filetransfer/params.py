"""Connection parameters and remote address parsing."""

from __future__ import annotations

import getpass
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Protocol(str, Enum):
    """Supported transfer protocols."""

    SFTP = "sftp"
    SCP = "scp"
    FTP = "ftp"
    FTPS = "ftps"

    @property
    def default_port(self) -> int:
        return 21 if self in (Protocol.FTP, Protocol.FTPS) else 22


@dataclass(frozen=True)
class FileTransferParams:
    """Everything a backend needs to reach the remote host."""

    protocol: Protocol
    host: str
    port: int
    username: Optional[str] = None
    password: Optional[str] = None
    remote_path: Optional[str] = None

    def describe(self) -> str:
        user = f'{self.username}@' if self.username else ''
        return f'{self.protocol.value}://{user}{self.host}:{self.port}'


_ADDRESS_RE = re.compile(
    r'^(?:(?P<protocol>[a-zA-Z]+)://)?'
    r'(?:(?P<username>[^@]+)@)?'
    r'(?P<host>\[[^\]]+\]|[^:/]+)'
    r'(?::(?P<port>\d+))?'
    r'(?::(?P<path>.+))?$'
)


def parse_remote_address(address, password=None, default_protocol=Protocol.SFTP):
    """Parse `[protocol://][user@]host[:port][:/path]` into FileTransferParams."""
    match = _ADDRESS_RE.match(str(address or '').strip())
    if match is None:
        raise ValueError(f'Bad remote address: {address!r}')

    raw_protocol = match.group('protocol')
    try:
        protocol = Protocol(raw_protocol.lower()) if raw_protocol else Protocol(default_protocol)
    except ValueError as exc:
        raise ValueError(f'Unknown protocol: {raw_protocol}') from exc

    host = match.group('host').strip('[]')
    port = int(match.group('port')) if match.group('port') else protocol.default_port
    if not 0 < port < 65536:
        raise ValueError(f'Bad port: {port}')

    username = match.group('username')
    if username is None and protocol in (Protocol.SFTP, Protocol.SCP):
        username = getpass.getuser()

    return FileTransferParams(
        protocol=protocol,
        host=host,
        port=port,
        username=username,
        password=password,
        remote_path=match.group('path'),
    )
