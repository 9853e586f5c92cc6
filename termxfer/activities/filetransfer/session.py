"""
Connection manager: owns the remote client and its connection state.
"""
import logging
import time
from enum import Enum

from ...constants import (
    LIVENESS_CHECK_INTERVAL,
    RECONNECT_ATTEMPTS,
    RECONNECT_BACKOFF_BASE,
    RECONNECT_BACKOFF_MAX,
)
from ...errors import ConnectionLostError, FatalError, RemoteError, RemoteErrorKind
from ...filetransfer import build_client

LOGGER = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    FATAL = "fatal"


class ConnectionManager:
    """Drives `Disconnected -> Connecting -> Connected` and back.

    Failed attempts are retried with exponential backoff; after
    `attempts` consecutive failures, or on an authentication failure, the
    manager goes `Fatal`. A connection that drops while connected is retried
    on the next tick without waiting.
    """

    def __init__(self, params, log, builder=build_client, attempts=RECONNECT_ATTEMPTS,
                 backoff_base=RECONNECT_BACKOFF_BASE, backoff_max=RECONNECT_BACKOFF_MAX,
                 liveness_interval=LIVENESS_CHECK_INTERVAL, clock=time.monotonic):
        self.params = params
        self.log = log
        self.state = ConnectionState.DISCONNECTED
        self.error = None
        self.client = None
        self.failures = 0
        self.next_attempt = 0.0
        self.wrkdir = None
        self._builder = builder
        self._attempts = attempts
        self._backoff_base = backoff_base
        self._backoff_max = backoff_max
        self._liveness_interval = liveness_interval
        self._last_liveness_check = 0.0
        self._clock = clock

    def build(self):
        """Construct the backend; any failure is fatal."""
        try:
            self.client = self._builder(self.params)
        except FatalError as exc:
            self._fatal(f'Could not create the file transfer client: {exc}')
            return False
        LOGGER.debug('built %s client for %s', self.client.protocol, self.params.host)
        return True

    @property
    def connected(self):
        return self.state == ConnectionState.CONNECTED

    @property
    def fatal(self):
        return self.state == ConnectionState.FATAL

    def should_connect(self, now=None):
        now = self._clock() if now is None else now
        return (
            self.client is not None
            and self.state == ConnectionState.DISCONNECTED
            and now >= self.next_attempt
        )

    def backoff_delay(self):
        """Delay before the next attempt after `failures` consecutive failures."""
        if self.failures <= 0:
            return 0.0
        return min(self._backoff_max, self._backoff_base * (2 ** (self.failures - 1)))

    def connect(self, now=None):
        """Attempt one connection. Returns True once connected."""
        if self.client is None or self.state == ConnectionState.FATAL:
            return False
        now = self._clock() if now is None else now
        self.state = ConnectionState.CONNECTING
        try:
            self.wrkdir = self.client.connect()
        except RemoteError as exc:
            self.failures += 1
            self.log.error(f'Could not connect to {self.params.host}: {exc}')
            if exc.kind == RemoteErrorKind.AUTHENTICATION:
                self._fatal(f'Authentication failed: {exc.message}')
            elif self.failures >= self._attempts:
                self._fatal(f'Could not connect to {self.params.host} after {self.failures} attempts: {exc.message}')
            else:
                self.state = ConnectionState.DISCONNECTED
                self.next_attempt = now + self.backoff_delay()
                LOGGER.debug('next connection attempt in %.1fs', self.backoff_delay())
            return False
        self.state = ConnectionState.CONNECTED
        self.failures = 0
        self._last_liveness_check = now
        self.log.info(f'Connected to {self.params.describe()}; working directory {self.wrkdir}')
        return True

    def check_liveness(self, now=None):
        """Check the connection at most once per liveness interval."""
        if self.state != ConnectionState.CONNECTED:
            return False
        now = self._clock() if now is None else now
        if now - self._last_liveness_check < self._liveness_interval:
            return True
        self._last_liveness_check = now
        if self.client.is_connected():
            return True
        self.mark_lost('liveness check failed')
        return False

    def mark_lost(self, reason='connection lost'):
        if self.state != ConnectionState.CONNECTED:
            return
        self.state = ConnectionState.DISCONNECTED
        self.next_attempt = self._clock()
        self.log.error(f'Connection to {self.params.host} lost: {reason}')

    def invoke(self, operation, *args, **kwargs):
        """Run a client operation, tracking connection loss."""
        if self.state != ConnectionState.CONNECTED:
            raise ConnectionLostError('not connected')
        try:
            return getattr(self.client, operation)(*args, **kwargs)
        except ConnectionLostError as exc:
            self.mark_lost(exc.message)
            raise
        except RemoteError as exc:
            if exc.kind == RemoteErrorKind.CONNECTION_LOST or not self.client.is_connected():
                self.mark_lost(exc.message)
                raise ConnectionLostError(exc.message) from exc
            raise

    def disconnect(self):
        """Close the connection; safe to call in any state."""
        if self.client is None:
            return
        try:
            self.client.disconnect()
        except RemoteError as exc:
            LOGGER.warning('error while disconnecting: %s', exc)
        finally:
            if self.state != ConnectionState.FATAL:
                self.state = ConnectionState.DISCONNECTED

    def _fatal(self, message):
        self.state = ConnectionState.FATAL
        self.error = message
        self.log.error(message)
