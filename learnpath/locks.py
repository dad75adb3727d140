"""
Per-learner mutual exclusion.

Operations on the same learner are serialized; operations on different
learners never share a lock. A learner's lock lives only while some
caller holds a reference to it.
"""

import contextlib
import threading
import weakref
from typing import Generator


class LearnerLocks:
    """Registry handing out one re-entrant lock per learner id."""

    def __init__(self) -> None:
        self._locks: "weakref.WeakValueDictionary[str, threading.RLock]" = (
            weakref.WeakValueDictionary()
        )
        self._registry_lock = threading.Lock()

    def get(self, learner_id: str) -> threading.RLock:
        with self._registry_lock:
            lock = self._locks.get(learner_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[learner_id] = lock
            return lock

    @contextlib.contextmanager
    def hold(self, learner_id: str) -> Generator[None, None, None]:
        lock = self.get(learner_id)
        with lock:
            yield

    def __len__(self) -> int:
        with self._registry_lock:
            return len(self._locks)
