# focusfive/locks.py
# In-process lock table keyed by canonical file path (bounded, evicts idle entries)

from __future__ import annotations

import os
import threading
import time
from collections import OrderedDict
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Union

def _now() -> float:
    return time.monotonic()

def canonical(path: Union[str, Path]) -> str:
    """Absolute, symlink-resolved form of `path` (the file itself need not exist)."""
    return os.path.realpath(os.path.abspath(os.fspath(path)))

@dataclass
class _Entry:
    lock: threading.Lock = field(default_factory=threading.Lock)
    users: int = 0           # threads holding or waiting on this entry
    last_used: float = field(default_factory=_now)

DEFAULT_CAPACITY = 256
IDLE_EVICT_S = 300.0

class PathLockTable:
    """
    Thread-safe map of canonical path -> mutex.

    Writers to the same file serialize on one lock; writers to different files
    never contend. Entries nobody is using can be dropped at any time, so the
    table stays bounded without affecting correctness. Single-process only.
    """

    def __init__(self, *, capacity: int = DEFAULT_CAPACITY) -> None:
        self.capacity = max(1, int(capacity))
        self._mu = threading.Lock()
        self._entries: "OrderedDict[str, _Entry]" = OrderedDict()

    # -------- core ops --------

    @contextmanager
    def hold(self, path: Union[str, Path]) -> Iterator[str]:
        """Hold the lock for `path` for the duration of the block; yields the canonical key."""
        key = canonical(path)
        entry = self._checkout(key)
        entry.lock.acquire()
        try:
            yield key
        finally:
            entry.lock.release()
            self._checkin(key, entry)

    def is_locked(self, path: Union[str, Path]) -> bool:
        key = canonical(path)
        with self._mu:
            entry = self._entries.get(key)
            return bool(entry and entry.lock.locked())

    def __len__(self) -> int:
        with self._mu:
            return len(self._entries)

    # -------- maintenance --------

    def cleanup(self, *, idle_seconds: float = IDLE_EVICT_S) -> int:
        """Drop entries unused for `idle_seconds`. Returns how many were removed."""
        cutoff = _now() - max(0.0, idle_seconds)
        removed = 0
        with self._mu:
            for key in list(self._entries.keys()):
                e = self._entries[key]
                if e.users == 0 and e.last_used <= cutoff:
                    del self._entries[key]
                    removed += 1
        return removed

    # -------- internals (call with self._mu unheld) --------

    def _checkout(self, key: str) -> _Entry:
        with self._mu:
            entry = self._entries.get(key)
            if entry is None:
                entry = _Entry()
                self._entries[key] = entry
            entry.users += 1
            entry.last_used = _now()
            self._entries.move_to_end(key)
            self._evict_locked()
            return entry

    def _checkin(self, key: str, entry: _Entry) -> None:
        with self._mu:
            entry.users -= 1
            entry.last_used = _now()
            self._evict_locked()

    def _evict_locked(self) -> None:
        # least recently used first; entries in use are skipped
        if len(self._entries) <= self.capacity:
            return
        for key in list(self._entries.keys()):
            if len(self._entries) <= self.capacity:
                break
            if self._entries[key].users == 0:
                del self._entries[key]


# Process-wide table used by the atomic writer
PATH_LOCKS = PathLockTable()


__all__ = ["PathLockTable", "PATH_LOCKS", "canonical"]
