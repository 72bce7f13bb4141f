"""
Transactions and deferred effects for the form store.

Every store action runs inside ``transaction()``. Transactions nest; only the
outermost one commits. On commit the ``on_commit`` hook runs first (change
token, listeners), then the deferred effects queued during the transaction
are drained in FIFO order, each inside its own transaction.

That ordering is what a collection insert relies on: its key list change is
committed and visible to listeners before the value write it queued is
applied. Listeners may themselves call store actions while being notified;
those commits notify again but leave draining to the outer commit.
"""
from collections import deque
from contextlib import contextmanager
import logging
from typing import Callable, Deque, Generator, List, Optional, Tuple

logger = logging.getLogger(__name__)

Effect = Callable[[], None]


class EffectQueue:

    def __init__(self, on_commit: Optional[Callable[[str], None]] = None):
        self._on_commit = on_commit
        self._depth = 0
        self._label: Optional[str] = None
        self._pending: Deque[Tuple[str, Effect]] = deque()
        self._committing = False
        self._draining = False

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    @property
    def pending_labels(self) -> List[str]:
        return [label for label, _ in self._pending]

    def defer(self, effect: Effect, label: str = "deferred") -> None:
        """Queue ``effect`` to run after the outermost transaction commits.

        Outside any transaction the effect runs right away (in its own
        transaction).
        """
        self._pending.append((label, effect))
        logger.debug(f"Deferred effect queued: {label} (pending={len(self._pending)})")
        if not self.in_transaction and not self._committing:
            self._drain()

    @contextmanager
    def transaction(self, label: str) -> Generator[None, None, None]:
        """Group mutations into one commit.

        Example:
            with queue.transaction("insert members"):
                ...  # mutations; effects deferred here run after the commit
        """
        self._depth += 1
        if self._depth == 1:
            self._label = label
        try:
            yield
        finally:
            self._depth -= 1
            if self._depth == 0:
                final_label = self._label or label
                self._label = None
                self._commit(final_label)

    def _commit(self, label: str) -> None:
        outermost = not self._committing
        self._committing = True
        try:
            if self._on_commit is not None:
                self._on_commit(label)
        finally:
            if outermost:
                self._committing = False
        if outermost:
            self._drain()

    def _drain(self) -> None:
        # Effects committing their own transaction land back here; the outer loop handles them
        if self._draining:
            return
        self._draining = True
        try:
            while self._pending:
                label, effect = self._pending.popleft()
                logger.debug(f"Running deferred effect: {label}")
                with self.transaction(label):
                    effect()
        finally:
            self._draining = False
