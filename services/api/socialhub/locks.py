"""
Per-key asyncio locks.

Serializes read-modify-write sequences on the same document inside one
process. Keys are held in a WeakValueDictionary, so a lock disappears as soon
as nobody is waiting on or holding it.
"""
import asyncio
import weakref
from contextlib import asynccontextmanager
from typing import AsyncIterator, Hashable


class KeyedLocks:
    def __init__(self) -> None:
        self._locks: "weakref.WeakValueDictionary[Hashable, asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    def _lock_for(self, key: Hashable) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    @asynccontextmanager
    async def hold(self, *keys: Hashable) -> AsyncIterator[None]:
        """
        Acquire the locks for every key, in sorted order.

        Sorting gives every caller the same acquisition order, so two
        operations touching the same pair of documents cannot deadlock.
        """
        ordered = sorted(set(keys), key=repr)
        locks = [self._lock_for(key) for key in ordered]
        acquired: list[asyncio.Lock] = []
        try:
            for lock in locks:
                await lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()

    def __len__(self) -> int:
        return len(self._locks)
