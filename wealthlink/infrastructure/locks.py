"""Keyed Locks - serialize read-modify-write sequences per aggregate.

Invariants:
    - At most one coroutine holds the lock for a given key at a time
    - Different keys never block each other
    - A lock entry is discarded once no coroutine holds or awaits it

Design Decisions:
    - asyncio.Lock per key over a global lock: one member's payment approval
      does not wait on another member's withdrawal
    - Single event loop, single process: multi-worker deployments need DB row locks
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator

REGISTRY_KEY = "registry"


class KeyedLocks:
    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._waiters: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[key] -= 1
            if self._waiters[key] == 0:
                del self._waiters[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


# Process-wide instance shared by every workflow
user_locks = KeyedLocks()
