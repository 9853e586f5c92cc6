"""
Pending action queue: multi-step operations waiting on a precondition.
"""
import itertools
import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from ...errors import TermxferError

LOGGER = logging.getLogger(__name__)


class PendingKind(str, Enum):
    MAKE_DIRECTORY_THEN = "make_directory_then"
    AWAIT_CONFLICT_RESOLUTION_THEN = "await_conflict_resolution_then"


@dataclass
class PendingAction:
    """A deferred step.

    `MAKE_DIRECTORY_THEN` carries the side and path to create and becomes
    ready once confirmed. `AWAIT_CONFLICT_RESOLUTION_THEN` carries a transfer
    entry and becomes ready once that entry is no longer in conflict.
    `then` is the message dispatched after the effect succeeds.
    """

    kind: PendingKind
    chain: int
    side: Any = None
    path: Optional[str] = None
    entry: Any = None
    then: Any = None
    confirmed: bool = False

    def ready(self):
        if self.kind == PendingKind.MAKE_DIRECTORY_THEN:
            return self.confirmed
        return self.entry is not None and not self.entry.in_conflict


class PendingActionQueue:
    """Strict FIFO of pending actions grouped into causal chains."""

    def __init__(self):
        self._items = deque()
        self._chains = itertools.count(1)

    def new_chain(self):
        return next(self._chains)

    def push(self, action):
        self._items.append(action)
        LOGGER.debug('pending action queued: %s (chain %d)', action.kind.value, action.chain)

    def make_directory_then(self, side, path, then=None, chain=None, confirmed=False):
        action = PendingAction(
            PendingKind.MAKE_DIRECTORY_THEN,
            chain or self.new_chain(),
            side=side,
            path=path,
            then=then,
            confirmed=confirmed,
        )
        self.push(action)
        return action

    def await_conflict_resolution_then(self, entry, then=None, chain=None):
        action = PendingAction(
            PendingKind.AWAIT_CONFLICT_RESOLUTION_THEN,
            chain or self.new_chain(),
            entry=entry,
            then=then,
        )
        self.push(action)
        return action

    def head(self):
        return self._items[0] if self._items else None

    def confirm(self, kind=PendingKind.MAKE_DIRECTORY_THEN):
        """Mark the first unconfirmed action of `kind` as confirmed."""
        for action in self._items:
            if action.kind == kind and not action.confirmed:
                action.confirmed = True
                return action
        return None

    def drain_one(self, execute):
        """Pop the head if ready and run `execute(action)`.

        Returns `(action, result)`, or None when the queue is empty or the
        head is not ready. On failure the rest of the head's chain is dropped
        and the error propagates.
        """
        head = self.head()
        if head is None or not head.ready():
            return None
        self._items.popleft()
        try:
            result = execute(head)
        except TermxferError:
            dropped = self.drop_chain(head.chain)
            LOGGER.debug('pending chain %d failed, dropped %d action(s)', head.chain, dropped)
            raise
        return head, result

    def drop_chain(self, chain):
        before = len(self._items)
        self._items = deque(action for action in self._items if action.chain != chain)
        return before - len(self._items)

    def drop_kind(self, kind):
        """Drop every chain holding an action of `kind`."""
        chains = {action.chain for action in self._items if action.kind == kind}
        for chain in chains:
            self.drop_chain(chain)
        return chains

    def clear(self):
        self._items.clear()

    def __len__(self):
        return len(self._items)

    def __iter__(self):
        return iter(list(self._items))
