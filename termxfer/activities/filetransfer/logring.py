"""
Bounded log of operational messages shown in the log panel.
"""
import logging
import time
from collections import deque
from dataclasses import dataclass
from enum import Enum

from ...constants import LOG_RING_CAPACITY

LOGGER = logging.getLogger(__name__)


class LogLevel(str, Enum):
    ERROR = "error"
    WARN = "warn"
    INFO = "info"


_FORWARD = {
    LogLevel.ERROR: logging.ERROR,
    LogLevel.WARN: logging.WARNING,
    LogLevel.INFO: logging.INFO,
}


@dataclass(frozen=True)
class LogRecord:
    time: float
    level: LogLevel
    message: str


class LogRing:
    """Fixed-capacity record ring; the oldest record is evicted on overflow.

    Every record is also forwarded to the Python logger at the matching level.
    """

    def __init__(self, capacity=LOG_RING_CAPACITY, clock=time.time):
        self.capacity = capacity
        self._records = deque(maxlen=capacity)
        self._clock = clock

    def log(self, level, message):
        level = LogLevel(level)
        record = LogRecord(self._clock(), level, str(message))
        self._records.append(record)
        LOGGER.log(_FORWARD[level], '%s', record.message)
        return record

    def error(self, message):
        return self.log(LogLevel.ERROR, message)

    def warn(self, message):
        return self.log(LogLevel.WARN, message)

    def info(self, message):
        return self.log(LogLevel.INFO, message)

    def records(self):
        """Records from newest to oldest."""
        return list(reversed(self._records))

    def __len__(self):
        return len(self._records)

    def __iter__(self):
        return iter(self._records)
