"""Per-key mutual exclusion."""

import threading
from contextlib import contextmanager
from typing import Dict, Hashable, Iterator


class KeyedLockRegistry:
    """Registry of one lock per key, created on demand.

    Locks are never removed: dropping a lock while another thread waits on
    it would let a third thread create a fresh one and enter concurrently.

    Example:
        >>> locks = KeyedLockRegistry()
        >>> with locks.lock("com.example.LoginTest.testLogin"):
        ...     pass
    """

    def __init__(self) -> None:
        self._locks: Dict[Hashable, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def get(self, key: Hashable) -> threading.Lock:
        """Return the lock for key, creating it if needed."""
        with self._registry_lock:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def lock(self, key: Hashable) -> Iterator[None]:
        """Hold the lock for key for the duration of the block."""
        key_lock = self.get(key)
        with key_lock:
            yield

    def __len__(self) -> int:
        with self._registry_lock:
            return len(self._locks)
