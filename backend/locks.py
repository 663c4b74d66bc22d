"""Per-key locks that serialize read-modify-write cycles on a single row.

Mutations on the same key wait for each other; mutations on different keys
never contend. Lock objects are created on first use and discarded once no
task holds or waits on them.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Hashable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class _Entry:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0  # holders + waiters


class KeyedLock:
    """A table of asyncio locks, one per key."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._entries: dict[Hashable, _Entry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def locked(self, key: Hashable) -> bool:
        """Return True if some task currently holds the lock for key."""
        entry = self._entries.get(key)
        return entry is not None and entry.lock.locked()

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        """Hold the lock for key for the duration of the block."""
        entry = self._entries.get(key)
        if entry is None:
            entry = self._entries[key] = _Entry()
        entry.users += 1
        try:
            async with entry.lock:
                logger.debug("%s lock acquired for %r", self.name, key)
                yield
        finally:
            entry.users -= 1
            if entry.users == 0:
                del self._entries[key]


review_locks = KeyedLock("review")
encounter_locks = KeyedLock("encounter")
vocabulary_locks = KeyedLock("vocabulary")
