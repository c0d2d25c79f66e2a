"""
Per-item mutual exclusion for label submissions.

Resolving an item reads its whole label history and writes a derived
snapshot, so two submissions on the same item must not interleave.
Submissions on different items never wait on each other.
"""

import threading
from collections import defaultdict
from contextlib import contextmanager
from typing import Iterator


class ItemLockRegistry:
    """
    Lock table keyed by item id.

    Entries are reference counted and dropped once no thread holds or waits
    on them, so the table only ever holds items currently being written.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}
        self._users: dict[str, int] = defaultdict(int)

    @contextmanager
    def hold(self, item_id: str) -> Iterator[None]:
        """Hold the lock for ``item_id`` for the duration of the block."""
        with self._guard:
            lock = self._locks.setdefault(item_id, threading.Lock())
            self._users[item_id] += 1
        try:
            with lock:
                yield
        finally:
            with self._guard:
                self._users[item_id] -= 1
                if self._users[item_id] == 0:
                    del self._users[item_id]
                    del self._locks[item_id]

    def active_items(self) -> set[str]:
        """Item ids with a holder or waiter right now."""
        with self._guard:
            return set(self._locks)
