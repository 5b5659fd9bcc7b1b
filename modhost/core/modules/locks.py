"""Name-keyed mutexes serializing operations on the same module."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator

logger = logging.getLogger(__name__)


class NameLocks:
    """
    One re-entrant lock per module name.

    Lock entries are reference counted and dropped once no thread holds or
    waits on them, so the table does not grow with every name ever seen.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.RLock] = {}
        self._refs: Dict[str, int] = {}

    @staticmethod
    def _key(name: str) -> str:
        # Names differing only by case map to the same directory on
        # case-insensitive filesystems
        return name.casefold()

    @contextmanager
    def hold(self, name: str) -> Iterator[None]:
        """Hold the lock for `name` for the duration of the block."""
        key = self._key(name)
        with self._guard:
            lock = self._locks.setdefault(key, threading.RLock())
            self._refs[key] = self._refs.get(key, 0) + 1

        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                self._refs[key] -= 1
                if self._refs[key] == 0:
                    del self._refs[key]
                    del self._locks[key]

    def active(self) -> int:
        """Number of names currently locked or awaited."""
        with self._guard:
            return len(self._locks)
