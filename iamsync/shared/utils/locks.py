"""Per-key asyncio locks.

Serializes work on one key (principal name, secret id) while letting
different keys proceed in parallel. Entries are dropped once no task holds
or waits on them, so the table does not grow with every key ever seen.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from iamsync.domain.exceptions import LockTimeoutException


class _Slot:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.users = 0


class KeyedLock:
    """Sharded mutual exclusion keyed by string."""

    def __init__(self, timeout_seconds: float | None = None) -> None:
        """Initialize.

        Args:
            timeout_seconds: Default bound on acquisition; None waits forever.
        """
        self._timeout = timeout_seconds
        self._slots: dict[str, _Slot] = {}

    @asynccontextmanager
    async def hold(
        self, key: str, timeout_seconds: float | None = None
    ) -> AsyncIterator[None]:
        """Hold the lock for key.

        Raises:
            LockTimeoutException: If the lock is not acquired within the bound.
        """
        timeout = timeout_seconds if timeout_seconds is not None else self._timeout
        slot = self._slots.get(key)
        if slot is None:
            slot = self._slots[key] = _Slot()
        slot.users += 1
        try:
            try:
                async with asyncio.timeout(timeout):
                    await slot.lock.acquire()
            except TimeoutError as e:
                raise LockTimeoutException(key, timeout or 0.0) from e
            try:
                yield
            finally:
                slot.lock.release()
        finally:
            slot.users -= 1
            if slot.users == 0:
                self._slots.pop(key, None)

    def locked(self, key: str) -> bool:
        """Return True if some task currently holds the lock for key."""
        slot = self._slots.get(key)
        return slot is not None and slot.lock.locked()

    def __len__(self) -> int:
        return len(self._slots)
