"""Per-entity execution locks.

State-mutating tool calls against the same ticket run one at a time.
Locks are created on demand and dropped once nobody holds or awaits them.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class EntityLockManager:
    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, entity_id: str | None) -> AsyncIterator[None]:
        """Serialize the block per *entity_id*; ``None`` means no lock."""
        if entity_id is None:
            yield
            return

        lock = self._locks.get(entity_id)
        if lock is None:
            lock = self._locks[entity_id] = asyncio.Lock()
        self._users[entity_id] = self._users.get(entity_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[entity_id] -= 1
            if self._users[entity_id] == 0:
                del self._users[entity_id]
                del self._locks[entity_id]

    def locked(self, entity_id: str) -> bool:
        lock = self._locks.get(entity_id)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)
