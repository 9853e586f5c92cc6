"""Dual-pane file transfer activity."""

from .activity import FileTransferActivity
from .browser import Browser, Side, SyncResult, SyncStatus
from .logring import LogLevel, LogRing
from .messages import ExitReason, Id, Msg, PendingActionMsg, TransferMsg, UiMsg
from .pending import PendingActionQueue, PendingKind
from .session import ConnectionManager, ConnectionState
from .transfer import (
    ExecOutcome,
    TransferDecision,
    TransferDirection,
    TransferExecutor,
    TransferQueue,
    TransferStatus,
)

__all__ = [
    'Browser',
    'ConnectionManager',
    'ConnectionState',
    'ExecOutcome',
    'ExitReason',
    'FileTransferActivity',
    'Id',
    'LogLevel',
    'LogRing',
    'Msg',
    'PendingActionMsg',
    'PendingActionQueue',
    'PendingKind',
    'Side',
    'SyncResult',
    'SyncStatus',
    'TransferDecision',
    'TransferDirection',
    'TransferExecutor',
    'TransferMsg',
    'TransferQueue',
    'TransferStatus',
    'UiMsg',
]
