"""Remote filesystem capability, connection parameters and backends."""

from .builder import build_client
from .params import FileTransferParams, Protocol, parse_remote_address
from .remotefs import RemoteFs

__all__ = ['FileTransferParams', 'Protocol', 'RemoteFs', 'build_client', 'parse_remote_address']
