"""Named in-process locks for serialising work on one scope.

A scope is any string naming a set of rows or files that must change one
writer at a time: a gallery's image directory, the global FAQ ordering, the
answers of one FAQ entry. Entries exist only while somebody holds or waits
for them.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager


class ScopeLocks:
    """One lock per scope, created on first use and dropped when released."""

    def __init__(self) -> None:
        self._locks: dict[str, threading.Lock] = {}
        self._holders: dict[str, int] = {}
        self._guard = threading.Lock()

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    def is_held(self, scope: str) -> bool:
        with self._guard:
            lock = self._locks.get(scope)
        return lock is not None and lock.locked()

    @contextmanager
    def hold(self, scope: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(scope, threading.Lock())
            self._holders[scope] = self._holders.get(scope, 0) + 1
        try:
            with lock:
                yield
        finally:
            with self._guard:
                remaining = self._holders[scope] - 1
                if remaining:
                    self._holders[scope] = remaining
                else:
                    del self._holders[scope]
                    del self._locks[scope]


__all__ = ["ScopeLocks"]
