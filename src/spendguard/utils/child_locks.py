"""Per-child critical sections."""

import threading
import weakref
from contextlib import contextmanager
from typing import Iterator


class ChildLocks:
    """Registry of re-entrant locks keyed by child id.

    Every mutation of a child's requests and trackers runs while holding
    that child's lock. Different children never contend. A lock is dropped
    from the registry once nothing holds or waits on it.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: weakref.WeakValueDictionary[str, threading.RLock] = weakref.WeakValueDictionary()

    def __len__(self) -> int:
        return len(self._locks)

    def lock_for(self, child_id: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(child_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[child_id] = lock
            return lock

    @contextmanager
    def hold(self, child_id: str) -> Iterator[None]:
        """Hold the lock for ``child_id`` for the duration of the block."""
        lock = self.lock_for(child_id)
        with lock:
            yield
