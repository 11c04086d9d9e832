# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Per-key asyncio locks.

KeyedLocks hands out one lock per key and forgets it as soon as nobody
holds or waits for it, so the table only ever contains keys in use.

Usage:
    locks = KeyedLocks()

    async with locks.hold(("s1", "algebra-1"), timeout=5.0):
        ...
"""

import asyncio
from collections.abc import AsyncIterator, Hashable
from contextlib import asynccontextmanager


class LockTimeoutError(TimeoutError):
    """Raised when a key lock could not be acquired in time."""

    def __init__(self, key: Hashable, timeout: float) -> None:
        self.key = key
        self.timeout = timeout
        super().__init__(f"Lock wait timed out after {timeout}s")


class KeyedLocks:
    """Reference-counted locks keyed by arbitrary hashable values."""

    def __init__(self) -> None:
        self._locks: dict[Hashable, asyncio.Lock] = {}
        self._users: dict[Hashable, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._locks

    @asynccontextmanager
    async def hold(self, key: Hashable, timeout: float | None = None) -> AsyncIterator[None]:
        """Hold the lock of a key for the duration of the block.

        Args:
            key: Key to serialise on.
            timeout: Seconds to wait for the lock, or None to wait forever.

        Raises:
            LockTimeoutError: If the lock is not acquired within the timeout.
        """
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            try:
                await asyncio.wait_for(lock.acquire(), timeout=timeout)
            except asyncio.TimeoutError as e:
                raise LockTimeoutError(key, timeout) from e
            try:
                yield
            finally:
                lock.release()
        finally:
            self._forget(key)

    def _forget(self, key: Hashable) -> None:
        remaining = self._users[key] - 1
        if remaining:
            self._users[key] = remaining
        else:
            del self._users[key]
            del self._locks[key]
