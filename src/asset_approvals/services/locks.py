"""Per-key asyncio locks."""

import asyncio
import weakref


class KeyedLocks:
    """Hands out one asyncio lock per key.

    Locks are held weakly, so a key's lock disappears once nobody waits on it.
    """

    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def get(self, key: str) -> asyncio.Lock:
        """Return the lock for a key, creating it if needed."""
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    def __len__(self) -> int:
        return len(self._locks)
