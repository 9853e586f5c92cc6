"""
Transfer queue and executor.

Entries run strictly in enqueue order, one at a time, on the caller's
thread. A directory entry expands into its children only when it is
dequeued, after its own conflict decision is known. Progress is counted
per chunk by wrapping the byte streams handed to the backend; the same
wrappers raise `TransferAborted` once the cancel token is set.
"""
from __future__ import annotations

import logging
import os
import posixpath
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ...constants import DEFAULT_CHUNK_SIZE
from ...errors import ConnectionLostError, HostError, RemoteError, RemoteErrorKind, TransferAborted
from ...explorer import FileEntry, FileKind

LOGGER = logging.getLogger(__name__)


class TransferDirection(str, Enum):
    UPLOAD = "upload"
    DOWNLOAD = "download"


class TransferOp(str, Enum):
    TRANSFER = "transfer"
    REMOVE = "remove"


class TransferStatus(str, Enum):
    PENDING = "pending"
    CONFLICT = "conflict"
    SKIPPED = "skipped"
    IN_PROGRESS = "in_progress"
    DONE = "done"
    FAILED = "failed"


class TransferDecision(str, Enum):
    REPLACE_THIS = "replace_this"
    REPLACE_ALL = "replace_all"
    SKIP_THIS = "skip_this"
    SKIP_ALL = "skip_all"
    ABORT = "abort"


class ExecOutcome(str, Enum):
    COMPLETED = "completed"
    NEEDS_DECISION = "needs_decision"
    ABORTED = "aborted"
    CONNECTION_LOST = "connection_lost"


_OPEN_STATUSES = (TransferStatus.PENDING, TransferStatus.CONFLICT, TransferStatus.IN_PROGRESS)


@dataclass(eq=False)
class TransferEntry:
    """One unit of work in the transfer queue."""

    source: FileEntry
    dest_path: str
    direction: TransferDirection
    op: TransferOp = TransferOp.TRANSFER
    status: TransferStatus = TransferStatus.PENDING
    reason: Optional[str] = None
    replace: bool = False
    parent: Optional["TransferEntry"] = None

    @property
    def source_path(self) -> str:
        return self.source.path

    @property
    def kind(self) -> FileKind:
        return FileKind.DIRECTORY if self.source.is_dir else FileKind.FILE

    @property
    def is_dir(self) -> bool:
        return self.source.is_dir

    @property
    def size_hint(self) -> int:
        return 0 if self.source.is_dir else self.source.size

    @property
    def in_conflict(self) -> bool:
        return self.status == TransferStatus.CONFLICT

    def fail(self, reason):
        self.status = TransferStatus.FAILED
        self.reason = str(reason)


class CancelToken:
    """Cooperative cancellation flag checked at chunk boundaries."""

    def __init__(self):
        self.cancelled = False

    def cancel(self):
        self.cancelled = True

    def reset(self):
        self.cancelled = False

    def check(self):
        if self.cancelled:
            raise TransferAborted('transfer aborted')


@dataclass
class TransferStates:
    """Progress counters for the running queue."""

    active_entry: Optional[TransferEntry] = None
    bytes_total: int = 0
    bytes_done: int = 0
    file_total: int = 0
    file_done: int = 0
    started_at: Optional[float] = None
    aborted: bool = False
    file_bytes_total: int = 0
    file_bytes_done: int = 0
    _file_base: int = field(default=0, repr=False)

    def grow(self, files, nbytes):
        self.file_total += files
        self.bytes_total += nbytes

    def discount(self, entry):
        """Remove a skipped entry from the totals."""
        self.file_total = max(self.file_done, self.file_total - 1)
        self.bytes_total = max(self.bytes_done, self.bytes_total - entry.size_hint)

    def begin_file(self, entry, now):
        if self.started_at is None:
            self.started_at = now
        self.active_entry = entry
        self.file_bytes_total = entry.size_hint
        self.file_bytes_done = 0
        self._file_base = self.bytes_done

    def advance(self, nbytes):
        self.file_bytes_done = min(self.file_bytes_total, self.file_bytes_done + nbytes)
        self.bytes_done = min(self.bytes_total, self._file_base + self.file_bytes_done)

    def finish_file(self):
        self.file_bytes_done = self.file_bytes_total
        self.bytes_done = min(self.bytes_total, self._file_base + self.file_bytes_total)
        self.file_done = min(self.file_total, self.file_done + 1)
        self.active_entry = None

    def rewind_file(self):
        """Forget the bytes of an entry that will be transferred again."""
        self.bytes_done = self._file_base
        self.file_bytes_done = 0
        self.active_entry = None

    @property
    def full_ratio(self):
        if self.bytes_total:
            return self.bytes_done / self.bytes_total
        if self.file_total:
            return self.file_done / self.file_total
        return 0.0

    @property
    def partial_ratio(self):
        if not self.file_bytes_total:
            return 0.0
        return self.file_bytes_done / self.file_bytes_total

    def bytes_per_second(self, now):
        if self.started_at is None or now <= self.started_at:
            return 0.0
        return self.bytes_done / (now - self.started_at)


class ProgressReader:
    """File-like reader reporting every chunk it hands out."""

    def __init__(self, raw, cancel, on_chunk, chunk_size=DEFAULT_CHUNK_SIZE):
        self._raw = raw
        self._cancel = cancel
        self._on_chunk = on_chunk
        self._chunk_size = chunk_size

    def read(self, size=-1):
        self._cancel.check()
        if size is None or size < 0:
            size = self._chunk_size
        data = self._raw.read(size)
        if data:
            self._on_chunk(len(data))
        return data

    def tell(self):
        return self._raw.tell()

    def seek(self, offset, whence=os.SEEK_SET):
        return self._raw.seek(offset, whence)


class ProgressWriter:
    """File-like writer reporting every chunk it receives."""

    def __init__(self, raw, cancel, on_chunk):
        self._raw = raw
        self._cancel = cancel
        self._on_chunk = on_chunk

    def write(self, data):
        self._cancel.check()
        written = self._raw.write(data)
        self._on_chunk(len(data))
        return written

    def flush(self):
        self._raw.flush()


class TransferQueue:
    """Ordered transfer entries plus the queue-wide conflict policy."""

    def __init__(self):
        self.entries = []
        self.policy = None
        self.paused = False
        self.ask_each = False

    def __iter__(self):
        return iter(list(self.entries))

    def __len__(self):
        return len(self.entries)

    def add(self, entry):
        self.entries.append(entry)

    def insert_after(self, parent, children):
        idx = self.entries.index(parent) + 1
        self.entries[idx:idx] = children

    def next_actionable(self):
        for entry in self.entries:
            if entry.status in (TransferStatus.PENDING, TransferStatus.CONFLICT):
                return entry
        return None

    def conflicts(self):
        return [entry for entry in self.entries if entry.in_conflict]

    def next_conflict(self):
        for entry in self.entries:
            if entry.in_conflict:
                return entry
        return None

    def finished(self):
        return all(entry.status not in _OPEN_STATUSES for entry in self.entries)

    def apply_policy(self, entry):
        """Resolve a fresh conflict with a ReplaceAll/SkipAll decision, if any."""
        if not entry.in_conflict or self.policy is None:
            return False
        if self.policy == TransferDecision.REPLACE_ALL:
            entry.replace = True
            entry.status = TransferStatus.PENDING
        else:
            entry.status = TransferStatus.SKIPPED
        return True

    def resolve(self, entry, decision):
        """Apply a decision; returns the entries it marked skipped."""
        decision = TransferDecision(decision)
        skipped = []
        if decision == TransferDecision.REPLACE_THIS:
            entry.replace = True
            entry.status = TransferStatus.PENDING
        elif decision == TransferDecision.SKIP_THIS:
            entry.status = TransferStatus.SKIPPED
            skipped.append(entry)
        elif decision == TransferDecision.REPLACE_ALL:
            self.policy = decision
            for conflict in self.conflicts():
                conflict.replace = True
                conflict.status = TransferStatus.PENDING
        else:
            if decision == TransferDecision.SKIP_ALL:
                self.policy = decision
            for conflict in self.conflicts():
                conflict.status = TransferStatus.SKIPPED
                skipped.append(conflict)
        return skipped


class TransferExecutor:
    """Builds transfer entries and runs them against the local and remote sides."""

    def __init__(self, host, session, log, chunk_size=DEFAULT_CHUNK_SIZE, on_progress=None,
                 clock=time.monotonic, is_watched=None):
        self.host = host
        self.session = session
        self.log = log
        self.chunk_size = chunk_size
        self.on_progress = on_progress
        self.queue = TransferQueue()
        self.states = TransferStates()
        self.cancel = CancelToken()
        self.local_writes = set()
        self.is_watched = is_watched
        self._clock = clock

    # ------------------------------------------------------------------
    # Queue building
    # ------------------------------------------------------------------

    @property
    def idle(self):
        return self.queue.finished() or self.states.aborted

    def reset(self):
        """Start a fresh queue; the previous one is discarded."""
        self.queue = TransferQueue()
        self.states = TransferStates()
        self.cancel.reset()

    def _join(self, direction, directory, name):
        if direction == TransferDirection.UPLOAD:
            return posixpath.join(directory, name)
        return os.path.join(directory, name)

    def _dest_exists(self, direction, path):
        if direction == TransferDirection.UPLOAD:
            return self.session.invoke('exists', path)
        return self.host.exists(path)

    def _admit(self, entry):
        """Check the destination and account for a new entry."""
        if entry.status == TransferStatus.CONFLICT:
            self.queue.apply_policy(entry)
        if entry.status != TransferStatus.SKIPPED:
            self.states.grow(1, entry.size_hint)

    def enqueue(self, selection, direction, dest_dir, rename=None):
        """Queue `selection` for transfer into `dest_dir`.

        Entries whose destination already exists are marked CONFLICT unless
        a ReplaceAll/SkipAll policy already applies.
        """
        if self.idle:
            self.reset()
        direction = TransferDirection(direction)
        entries = []
        for source in selection:
            name = rename if rename and len(selection) == 1 else source.name
            entry = TransferEntry(source, self._join(direction, dest_dir, name), direction)
            if self._dest_exists(direction, entry.dest_path):
                entry.status = TransferStatus.CONFLICT
            self.queue.add(entry)
            self._admit(entry)
            entries.append(entry)
        LOGGER.debug('queued %d %s entr(ies) into %s', len(entries), direction.value, dest_dir)
        return entries

    def enqueue_remove(self, remote_path, is_dir=False):
        """Queue the removal of a remote path."""
        if self.idle:
            self.reset()
        kind = FileKind.DIRECTORY if is_dir else FileKind.FILE
        source = FileEntry(name=posixpath.basename(remote_path), path=remote_path, kind=kind)
        entry = TransferEntry(source, remote_path, TransferDirection.UPLOAD, op=TransferOp.REMOVE)
        self.queue.add(entry)
        self._admit(entry)
        return entry

    def resolve(self, decision, entry=None):
        """Resolve the first open conflict (or `entry`) with `decision`."""
        decision = TransferDecision(decision)
        entry = entry or self.queue.next_conflict()
        if entry is None:
            return None
        for skipped in self.queue.resolve(entry, decision):
            self.states.discount(skipped)
        if decision == TransferDecision.ABORT:
            self.states.aborted = True
            self.log.warn('Transfer aborted')
        return entry

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def abort(self):
        """End the current queue.

        The in-flight entry stops at its next chunk boundary. Open conflicts
        are skipped so nothing keeps waiting on a decision.
        """
        self.cancel.cancel()
        if self.idle:
            return
        self.states.aborted = True
        for conflict in self.queue.conflicts():
            conflict.status = TransferStatus.SKIPPED
            self.states.discount(conflict)
        if self.states.active_entry is None:
            self.log.warn('Transfer aborted')

    def run(self):
        """Execute entries until the queue completes or must stop."""
        while True:
            outcome = self.step()
            if outcome is not None:
                return outcome

    def step(self):
        """Execute the next entry. Returns an outcome when execution must stop."""
        if self.states.aborted:
            return ExecOutcome.ABORTED
        if self.queue.paused:
            return ExecOutcome.CONNECTION_LOST
        entry = self.queue.next_actionable()
        if entry is None:
            self._report_completion()
            return ExecOutcome.COMPLETED
        if entry.in_conflict:
            return ExecOutcome.NEEDS_DECISION
        return self._execute(entry)

    def _execute(self, entry):
        entry.status = TransferStatus.IN_PROGRESS
        self.states.begin_file(entry, self._clock())
        try:
            self.cancel.check()
            if entry.op == TransferOp.REMOVE:
                self._remove(entry)
            elif entry.is_dir:
                self._expand(entry)
            else:
                self._transfer_file(entry)
        except TransferAborted:
            entry.fail('aborted')
            self.states.aborted = True
            self.states.active_entry = None
            self.log.warn(f'Transfer aborted while processing {entry.source_path}')
            return ExecOutcome.ABORTED
        except ConnectionLostError as exc:
            entry.status = TransferStatus.PENDING
            self.states.rewind_file()
            self.queue.paused = True
            self.log.error(f'Connection lost while transferring {entry.source_path}: {exc.message}')
            return ExecOutcome.CONNECTION_LOST
        except (HostError, RemoteError) as exc:
            entry.fail(exc)
            self.states.finish_file()
            self.log.error(f'Could not transfer {entry.source_path}: {exc}')
            return None
        entry.status = TransferStatus.DONE
        self.states.finish_file()
        self._notify()
        return None

    def _advance(self, nbytes):
        self.states.advance(nbytes)
        self._notify()

    def _notify(self):
        if self.on_progress is not None:
            self.on_progress(self.states)

    def _record_local_write(self, path):
        """Remember a local write so the watcher does not mirror it back."""
        if self.is_watched is not None and self.is_watched(path):
            self.local_writes.add(path)

    def _transfer_file(self, entry):
        source = entry.source
        if entry.direction == TransferDirection.UPLOAD:
            with self.host.open_read(source.path) as raw:
                reader = ProgressReader(raw, self.cancel, self._advance, self.chunk_size)
                self.session.invoke('put', reader, entry.dest_path, size=source.size)
            LOGGER.info('uploaded %s -> %s', source.path, entry.dest_path)
        else:
            self._record_local_write(entry.dest_path)
            with self.host.open_write(entry.dest_path) as raw:
                writer = ProgressWriter(raw, self.cancel, self._advance)
                self.session.invoke('get', source.path, writer)
            LOGGER.info('downloaded %s -> %s', source.path, entry.dest_path)

    def _expand(self, entry):
        source = entry.source
        if entry.direction == TransferDirection.UPLOAD:
            existed = self.session.invoke('exists', entry.dest_path)
            if not existed:
                self.session.invoke('mkdir', entry.dest_path)
            children = self.host.list_dir(source.path)
        else:
            existed = self.host.exists(entry.dest_path)
            if not existed:
                self._record_local_write(entry.dest_path)
                self.host.mkdir(entry.dest_path)
            children = self.session.invoke('list_dir', source.path)

        expanded = []
        for child in sorted(children, key=lambda item: item.name):
            child_entry = TransferEntry(
                child,
                self._join(entry.direction, entry.dest_path, child.name),
                entry.direction,
                parent=entry,
            )
            if existed and self._dest_exists(entry.direction, child_entry.dest_path):
                if entry.replace:
                    child_entry.replace = True
                else:
                    child_entry.status = TransferStatus.CONFLICT
            expanded.append(child_entry)
        self.queue.insert_after(entry, expanded)
        for child_entry in expanded:
            self._admit(child_entry)

    def _remove(self, entry):
        try:
            self.session.invoke('remove', entry.source)
        except RemoteError as exc:
            if exc.kind != RemoteErrorKind.NO_SUCH_FILE:
                raise
            LOGGER.debug('%s already gone', entry.source_path)
        LOGGER.info('removed remote %s', entry.source_path)

    def _report_completion(self):
        if not self.queue.entries or self.states.started_at is None:
            return
        counts = {}
        for entry in self.queue.entries:
            counts[entry.status] = counts.get(entry.status, 0) + 1
        elapsed = self._clock() - self.states.started_at
        self.log.info(
            f'Transfer completed in {elapsed:.1f}s: '
            f'{counts.get(TransferStatus.DONE, 0)} done, '
            f'{counts.get(TransferStatus.SKIPPED, 0)} skipped, '
            f'{counts.get(TransferStatus.FAILED, 0)} failed'
        )
        self.states.started_at = None
