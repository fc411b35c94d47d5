"""
cache.py — In-Memory TTL Cache

A key → value map where every entry carries an absolute expiration time.
Expiration is lazy: an expired entry behaves as absent on every read and is
removed when it is next touched or when `purge_expired()` runs.

The cache is a single shared instance used by many request threads at once;
all mutations are serialized by an internal lock. There is no capacity bound,
entries only disappear through TTL expiration or a process restart.

Note on `has()` followed by `get()`: each call is atomic on its own, but the pair
is not. Another thread (or plain expiration) can remove the entry between the
two calls, so callers must still check the `found` flag returned by `get()`.
"""

import threading
import time
from typing import Any, Dict, Optional, Protocol, Tuple

from .deadline import Deadline, check_deadline
from .errors import CancelledError


class Cache(Protocol):
    """Capability interface of the read cache, used by the reader."""

    def set(self, key: str, value: Any, ttl: float, deadline: Optional[Deadline] = None): ...

    def get(self, key: str, deadline: Optional[Deadline] = None) -> Tuple[Any, bool]: ...

    def has(self, key: str, deadline: Optional[Deadline] = None) -> bool: ...


class TTLCache:
    """
    Thread-safe in-memory cache with per-entry TTL.

    Args:
        clock: Monotonic time source in seconds. Tests pass a fake clock to
            move time forward without sleeping.
    """

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._entries: Dict[str, Tuple[Any, float]] = {}
        self._lock = threading.Lock()

    def _acquire(self, deadline: Optional[Deadline], operation: str):
        check_deadline(deadline, operation)
        remaining = deadline.remaining() if deadline is not None else None
        if remaining is None:
            self._lock.acquire()
        elif not self._lock.acquire(timeout=remaining):
            raise CancelledError(f"cache {operation} exceeded its deadline")

    def set(self, key: str, value: Any, ttl: float, deadline: Optional[Deadline] = None):
        """Stores `value` under `key` until now + `ttl`. Overwrites value and expiration."""
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        self._acquire(deadline, "set")
        try:
            self._entries[key] = (value, self._clock() + ttl)
        finally:
            self._lock.release()

    def get(self, key: str, deadline: Optional[Deadline] = None) -> Tuple[Any, bool]:
        """Returns `(value, True)` for a live entry, `(None, False)` otherwise."""
        self._acquire(deadline, "get")
        try:
            entry = self._lookup(key)
        finally:
            self._lock.release()
        if entry is None:
            return None, False
        return entry[0], True

    def has(self, key: str, deadline: Optional[Deadline] = None) -> bool:
        self._acquire(deadline, "has")
        try:
            return self._lookup(key) is not None
        finally:
            self._lock.release()

    def _lookup(self, key: str):
        # Caller holds the lock
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() >= entry[1]:
            del self._entries[key]
            return None
        return entry

    def purge_expired(self) -> int:
        """Removes all expired entries and returns how many were dropped."""
        with self._lock:
            now = self._clock()
            expired = [key for key, (_, expires_at) in self._entries.items() if now >= expires_at]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def __len__(self):
        # Zählt auch abgelaufene, noch nicht entfernte Einträge
        with self._lock:
            return len(self._entries)
