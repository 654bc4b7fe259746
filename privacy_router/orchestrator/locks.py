"""Per-account pool locks."""

from __future__ import annotations

import asyncio


class PoolLocks:
    """One asyncio.Lock per (pool, account) pair.

    Two transfers spending from the same pool account must not both pass
    the balance check before either has settled.
    """

    def __init__(self) -> None:
        self._locks: dict[tuple[str, str], asyncio.Lock] = {}

    def lock_for(self, pool: str, account: str) -> asyncio.Lock:
        key = (pool, account)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    def __len__(self) -> int:
        return len(self._locks)
