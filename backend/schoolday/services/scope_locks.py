from __future__ import annotations

from collections.abc import Hashable, Iterable, Iterator
from contextlib import contextmanager
from threading import Lock


class ScopeLockRegistry:
    """Per-scope locks for slot writes within one worker process.

    Two requests touching the same (branch, class, room, day/date) scope are
    serialised here. Separate processes are not coordinated.
    """

    def __init__(self) -> None:
        self._locks: dict[Hashable, Lock] = {}
        self._guard = Lock()

    def _lock_for(self, key: Hashable) -> Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = Lock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, keys: Iterable[Hashable]) -> Iterator[None]:
        # Sorted acquisition order keeps two multi-scope writers from deadlocking.
        ordered = sorted(set(keys), key=repr)
        acquired: list[Lock] = []
        try:
            for key in ordered:
                lock = self._lock_for(key)
                lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()

    def clear(self) -> None:
        with self._guard:
            self._locks.clear()


_registry = ScopeLockRegistry()


def scope_locks() -> ScopeLockRegistry:
    return _registry


def clear_scope_locks() -> None:
    _registry.clear()
