"""
Polling filesystem watcher.

A background thread rescans the registered local paths every poll interval
and hands change events to the tick thread through a bounded queue; the
tick side drains it with `poll()` and never blocks.
"""
import logging
import os
import queue
import threading
from dataclasses import dataclass
from enum import Enum

from .constants import (
    WATCHER_EVENT_QUEUE_SIZE,
    WATCHER_JOIN_TIMEOUT,
    WATCHER_MAX_PATHS,
    WATCHER_POLL_INTERVAL,
)
from .errors import CapacityExceeded, WatcherError, WatcherInitError

LOGGER = logging.getLogger(__name__)


class FsChange(str, Enum):
    """Kind of change observed on a path."""

    CREATED = "created"
    MODIFIED = "modified"
    REMOVED = "removed"


@dataclass(frozen=True)
class FsEvent:
    """One change reported by the watcher."""

    change: FsChange
    path: str
    is_dir: bool = False


def _snapshot(root):
    """Map every path under `root` to (is_dir, mtime_ns, size)."""
    state = {}
    try:
        st = os.stat(root)
    except OSError:
        return state
    if not os.path.isdir(root):
        state[root] = (False, st.st_mtime_ns, st.st_size)
        return state
    state[root] = (True, st.st_mtime_ns, 0)
    for dirpath, dirnames, filenames in os.walk(root):
        for name in dirnames:
            path = os.path.join(dirpath, name)
            try:
                state[path] = (True, os.stat(path).st_mtime_ns, 0)
            except OSError:
                continue
        for name in filenames:
            path = os.path.join(dirpath, name)
            try:
                fst = os.stat(path)
            except OSError:
                continue
            state[path] = (False, fst.st_mtime_ns, fst.st_size)
    return state


def _diff(before, after):
    events = []
    for path, (is_dir, mtime, size) in after.items():
        previous = before.get(path)
        if previous is None:
            events.append(FsEvent(FsChange.CREATED, path, is_dir))
        elif not is_dir and previous[1:] != (mtime, size):
            events.append(FsEvent(FsChange.MODIFIED, path, is_dir))
    for path, (is_dir, _, _) in before.items():
        if path not in after:
            events.append(FsEvent(FsChange.REMOVED, path, is_dir))
    events.sort(key=lambda event: event.path)
    return events


class FsWatcher:
    """Watches a bounded set of local paths for changes."""

    def __init__(self, poll_interval=WATCHER_POLL_INTERVAL, max_paths=WATCHER_MAX_PATHS,
                 queue_size=WATCHER_EVENT_QUEUE_SIZE):
        self.poll_interval = float(poll_interval)
        self.max_paths = int(max_paths)
        self._snapshots = {}
        self._lock = threading.Lock()
        self._scan_lock = threading.Lock()
        self._events = queue.Queue(maxsize=queue_size)
        self._stop = threading.Event()
        self._thread = None
        self._failure = None
        self.dropped_events = 0

    @classmethod
    def init(cls, poll_interval=WATCHER_POLL_INTERVAL, **kwargs):
        """Create a watcher and start its polling thread."""
        if poll_interval <= 0:
            raise WatcherInitError(f'invalid poll interval: {poll_interval}')
        watcher = cls(poll_interval, **kwargs)
        watcher.start()
        return watcher

    def start(self):
        thread = threading.Thread(target=self._run, name='termxfer-fswatcher', daemon=True)
        try:
            thread.start()
        except RuntimeError as exc:
            raise WatcherInitError(f'cannot start watcher thread: {exc}') from exc
        self._thread = thread

    def close(self):
        """Stop the polling thread and wait for it to exit."""
        self._stop.set()
        thread = self._thread
        if thread is not None and thread.is_alive():
            thread.join(WATCHER_JOIN_TIMEOUT)
        self._thread = None

    @property
    def running(self):
        return self._thread is not None and self._thread.is_alive()

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def watch(self, path):
        """Start watching `path`; raises CapacityExceeded when full."""
        path = os.path.abspath(path)
        with self._lock:
            if path in self._snapshots:
                return
            if len(self._snapshots) >= self.max_paths:
                raise CapacityExceeded(self.max_paths)
            self._snapshots[path] = _snapshot(path)
        LOGGER.info('watching %s', path)

    def unwatch(self, path):
        path = os.path.abspath(path)
        with self._lock:
            removed = self._snapshots.pop(path, None) is not None
        if removed:
            LOGGER.info('stopped watching %s', path)
        return removed

    def watched(self):
        with self._lock:
            return sorted(self._snapshots)

    def is_watched(self, path):
        """Return True when `path` or one of its ancestors is watched."""
        path = os.path.abspath(path)
        with self._lock:
            roots = list(self._snapshots)
        return any(path == root or path.startswith(root.rstrip(os.sep) + os.sep) for root in roots)

    def __len__(self):
        with self._lock:
            return len(self._snapshots)

    # ------------------------------------------------------------------
    # Detection
    # ------------------------------------------------------------------

    def poll(self):
        """Drain pending events without blocking."""
        failure, self._failure = self._failure, None
        if failure is not None:
            raise WatcherError(f'watcher stopped: {failure}')
        events = []
        while True:
            try:
                events.append(self._events.get_nowait())
            except queue.Empty:
                return events

    def rescan(self):
        """Compare every watched path against its last snapshot and queue changes."""
        with self._scan_lock:
            with self._lock:
                roots = list(self._snapshots.items())
            for root, before in roots:
                after = _snapshot(root)
                with self._lock:
                    if root not in self._snapshots:
                        continue
                    self._snapshots[root] = after
                for event in _diff(before, after):
                    try:
                        self._events.put_nowait(event)
                    except queue.Full:
                        self.dropped_events += 1
                        LOGGER.warning('watcher queue full, dropped %s', event.path)

    def _run(self):
        while not self._stop.wait(self.poll_interval):
            try:
                self.rescan()
            except Exception as exc:
                LOGGER.exception('watcher thread failed')
                self._failure = exc
                return
