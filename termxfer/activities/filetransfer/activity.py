"""
File transfer activity: the orchestrator owning the browser, the transfer
executor, the pending action queue, the connection manager and the log.
"""
import logging
import os
import posixpath
import tempfile
import time
from collections import deque

from ...constants import (
    CACHE_DIR_PREFIX,
    PROGRESS_REDRAW_INTERVAL,
    TICK_INTERVAL_MS,
    WATCHED_EVENTS_HISTORY,
)
from ...errors import HostError, RemoteError, TermxferError, WatcherError, WatcherInitError
from ...explorer import FileExplorer
from ...filetransfer import build_client
from ...host import Localhost
from ...utils import normalize_key_code
from ...watcher import FsChange, FsWatcher
from .browser import Browser, Side
from .logring import LogRing
from .messages import ExitReason, Id, Msg, PendingActionMsg
from .pending import PendingActionQueue
from .session import ConnectionManager
from .transfer import ExecOutcome, TransferDirection, TransferExecutor
from .update import dispatch, run_pending_action
from .view import View

LOGGER = logging.getLogger(__name__)


class FileTransferActivity:
    """Dual-pane transfer session driven by the event loop hooks.

    Collaborators are built in `on_create` from the context. The watcher and
    the temporary cache are optional: when they cannot be created the
    related features report an error and the rest keeps working.
    """

    def __init__(self, builder=build_client, watcher_factory=FsWatcher.init, clock=time.monotonic):
        self._builder = builder
        self._watcher_factory = watcher_factory
        self._clock = clock
        self.context = None
        self.exit_reason = None
        self.redraw = True
        self.log = LogRing()
        self.host = None
        self.session = None
        self.browser = None
        self.executor = None
        self.pending = PendingActionQueue()
        self.watcher = None
        self.cache = None
        self.view = None
        self.watched_events = deque(maxlen=WATCHED_EVENTS_HISTORY)
        self._connected_once = False
        self._last_progress_draw = 0.0

    # ------------------------------------------------------------------
    # Lifecycle hooks
    # ------------------------------------------------------------------

    def on_create(self, context):
        self.context = context
        config = context.config

        self.host = Localhost()
        self.session = ConnectionManager(
            context.ft_params,
            self.log,
            builder=self._builder,
            attempts=config.reconnect_attempts,
            backoff_max=config.reconnect_backoff_max,
            clock=self._clock,
        )
        explorer_opts = dict(sorting=config.file_sorting, group_dirs=config.group_dirs,
                             show_hidden=config.show_hidden)
        self.browser = Browser(
            self.host,
            self.session,
            self.log,
            FileExplorer(self.host.wrkdir, **explorer_opts),
            FileExplorer('/', **explorer_opts),
            on_change=self.set_redraw,
        )
        self.executor = TransferExecutor(
            self.host,
            self.session,
            self.log,
            chunk_size=config.chunk_size,
            on_progress=self.on_progress,
            clock=self._clock,
            is_watched=self._is_watched,
        )

        try:
            self.cache = tempfile.TemporaryDirectory(prefix=CACHE_DIR_PREFIX)
        except OSError as exc:
            self.log.error(f'Could not create the temporary cache: {exc}')
        try:
            self.watcher = self._watcher_factory(
                poll_interval=config.watcher_interval,
                max_paths=config.watcher_max_paths,
            )
        except WatcherInitError as exc:
            self.log.error(f'Could not start the file watcher: {exc}')

        context.terminal.enable_raw_mode(TICK_INTERVAL_MS)
        self.view = View(self)
        self.view.init()
        self.browser.list(Side.LOCAL)

        if not self.session.build():
            self.view.show_fatal(self.session.error)
        pending_error = context.take_error()
        if pending_error:
            self.show_error(pending_error)
        self.redraw = True

    def on_draw(self):
        """One tick: keep the connection up, drain the watcher, handle one input, render."""
        self._tick_connection()
        self.poll_watcher()
        key = self.context.terminal.read_key(TICK_INTERVAL_MS)
        if key is not None:
            msg = self.view.on_key(key)
            if msg is not None:
                self.update(msg)
        if self.redraw:
            self.view.render()
            self.redraw = False

    def will_umount(self):
        return self.exit_reason

    def on_destroy(self):
        """Release every resource; each step runs even when another fails."""
        steps = (
            ('abort transfers', self._abort_transfers),
            ('stop watcher', self._close_watcher),
            ('remove cache', self._close_cache),
            ('disable raw mode', lambda: self.context.terminal.disable_raw_mode()),
            ('clear screen', lambda: self.context.terminal.clear_screen()),
            ('disconnect', self._disconnect),
        )
        for label, step in steps:
            try:
                step()
            except Exception as exc:
                LOGGER.error('destroy: %s failed: %s', label, exc)
        return self.context

    def _abort_transfers(self):
        if self.executor is not None:
            self.executor.abort()

    def _disconnect(self):
        if self.session is not None:
            self.session.disconnect()

    def _close_watcher(self):
        if self.watcher is not None:
            self.watcher.close()
            self.watcher = None
        if self.executor is not None:
            self.executor.local_writes.clear()

    def _is_watched(self, path):
        return self.watcher is not None and self.watcher.is_watched(path)

    def _close_cache(self):
        if self.cache is not None:
            self.cache.cleanup()
            self.cache = None

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def set_redraw(self):
        self.redraw = True

    def update(self, msg=None):
        """Handle a message and everything it cascades into.

        With no message, only ready pending actions are drained.
        """
        while True:
            if msg is not None:
                msg = dispatch(self, msg)
                continue
            drained, msg = self._drain_pending()
            if not drained:
                break
        self.redraw = True

    def _drain_pending(self):
        """Run the ready head of the pending queue; returns (drained, follow_up)."""
        try:
            drained = self.pending.drain_one(lambda action: run_pending_action(self, action))
        except TermxferError as exc:
            self.show_error(f'Pending operation failed: {exc}')
            return True, None
        if drained is None:
            return False, None
        _, follow_up = drained
        return True, follow_up

    def show_error(self, message):
        self.log.error(message)
        self.view.show_error(message)
        self.redraw = True

    def quit(self):
        self.exit_reason = ExitReason.QUIT

    def disconnect(self):
        self.exit_reason = ExitReason.DISCONNECT

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    def _tick_connection(self):
        session = self.session
        if session.client is None or self.view.mounted(Id.FATAL_POPUP):
            return
        if session.fatal:
            self.view.show_fatal(session.error)
            self.redraw = True
            return
        if session.connected:
            if not session.check_liveness():
                self.redraw = True
            return
        if session.should_connect():
            self.connect()

    def connect(self):
        """Attempt one connection with the wait popup shown."""
        self.view.show_wait(f'Connecting to {self.session.params.host}...')
        self.view.render()
        try:
            connected = self.session.connect()
        finally:
            self.view.umount(Id.WAIT_POPUP)
        self.redraw = True
        if not connected:
            if self.session.fatal:
                self.view.show_fatal(self.session.error)
            return False
        if not self._connected_once:
            self._connected_once = True
            self.browser.set_remote_root(self.session.wrkdir)
            self.browser.list(Side.REMOTE)
        elif not self.browser.enter_directory(Side.REMOTE, self.browser.remote.wrkdir, push_stack=False):
            self.browser.remote.wrkdir = self.session.wrkdir
            self.browser.list(Side.REMOTE)
        if self.executor.queue.paused:
            self.executor.queue.paused = False
            self.log.info('Connection restored, resuming transfers')
            self.update(Msg(PendingActionMsg.TRANSFER_PENDING_FILE))
        return True

    # ------------------------------------------------------------------
    # Transfers
    # ------------------------------------------------------------------

    def run_transfers(self):
        """Run the queue; prompt for conflicts or reload panes when it stops."""
        self.view.show_progress()
        self._last_progress_draw = 0.0
        try:
            outcome = self.executor.run()
        finally:
            self.view.umount(Id.PROGRESS_BAR)
        self.redraw = True
        if outcome == ExecOutcome.NEEDS_DECISION:
            self.prompt_conflicts()
            return outcome
        self.browser.list(Side.LOCAL)
        if self.session.connected:
            self.browser.list(Side.REMOTE)
        return outcome

    def prompt_conflicts(self):
        queue = self.executor.queue
        conflicts = queue.conflicts()
        if not conflicts:
            return
        if len(conflicts) == 1 or queue.ask_each:
            self.view.show_replace(conflicts[0])
        else:
            self.view.show_replacing_files_list(conflicts)
        self.pending.await_conflict_resolution_then(
            conflicts[0],
            then=Msg(PendingActionMsg.TRANSFER_PENDING_FILE),
        )

    def on_progress(self, states):
        """Redraw the progress popup and poll the abort key between chunks."""
        now = self._clock()
        if now - self._last_progress_draw < PROGRESS_REDRAW_INTERVAL:
            return
        self._last_progress_draw = now
        self.view.update_progress(states, now)
        self.view.render()
        if self.abort_key_pressed():
            self.executor.abort()

    def abort_key_pressed(self):
        """Non-blocking check for a waiting Escape key."""
        key = self.context.terminal.read_key(0)
        return key is not None and normalize_key_code(key) == 27

    # ------------------------------------------------------------------
    # Watcher
    # ------------------------------------------------------------------

    def poll_watcher(self):
        """Drain watcher events; with sync browsing, mirror changes under the local cwd."""
        if self.watcher is None:
            return
        try:
            events = self.watcher.poll()
        except WatcherError as exc:
            self.log.error(f'File watcher stopped: {exc}')
            self._close_watcher()
            return
        if not events:
            return
        self.redraw = True
        queued = False
        wait_mkdir = False
        created_dirs = []
        for event in events:
            self.watched_events.append(event)
            if event.path in self.executor.local_writes:
                self.executor.local_writes.discard(event.path)
                continue
            if not self._syncable(event.path):
                continue
            if any(event.path.startswith(parent + os.sep) for parent in created_dirs):
                continue
            if event.change == FsChange.CREATED and event.is_dir:
                created_dirs.append(event.path)
            try:
                result = self.queue_sync_mutation(event)
            except (HostError, RemoteError) as exc:
                self.log.error(f'Could not synchronize {event.path}: {exc}')
                continue
            queued = queued or result is not None
            wait_mkdir = wait_mkdir or result == 'mkdir'
        if queued and not wait_mkdir and not self.view.awaiting_decision():
            self.update(Msg(PendingActionMsg.TRANSFER_PENDING_FILE))
        elif wait_mkdir:
            self.update()

    def _syncable(self, path):
        if not (self.browser.sync_browsing and self.session.connected):
            return False
        wrkdir = self.browser.local.wrkdir
        return path.startswith(wrkdir.rstrip(os.sep) + os.sep)

    def remote_mirror(self, local_path):
        rel = os.path.relpath(local_path, self.browser.local.wrkdir)
        return posixpath.join(self.browser.remote.wrkdir, *rel.split(os.sep))

    def queue_sync_mutation(self, event):
        """Queue the remote counterpart of a local change.

        Returns None when nothing was queued, 'mkdir' when the remote parent
        must be created first, 'transfer' otherwise.
        """
        remote_path = self.remote_mirror(event.path)
        if event.change == FsChange.REMOVED:
            self.executor.enqueue_remove(remote_path, is_dir=event.is_dir)
            return 'transfer'
        if event.is_dir and event.change == FsChange.MODIFIED:
            return None
        if not self.host.exists(event.path):
            return None
        entry = self.host.stat(event.path)
        remote_parent = posixpath.dirname(remote_path)
        needs_parent = not self.session.invoke('exists', remote_parent)
        self.executor.enqueue([entry], TransferDirection.UPLOAD, remote_parent)
        if needs_parent:
            self.pending.make_directory_then(
                Side.REMOTE,
                remote_parent,
                then=Msg(PendingActionMsg.TRANSFER_PENDING_FILE),
                confirmed=True,
            )
            return 'mkdir'
        return 'transfer'
