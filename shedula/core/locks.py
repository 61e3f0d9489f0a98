"""In-process keyed locks.

Each key gets its own ``asyncio.Lock`` for as long as someone holds or waits on
it; the entry is dropped when the last user leaves so the registry does not
grow with every slot ever booked.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Dict, Hashable, List

logger = logging.getLogger(__name__)


class KeyedLock:
    """Mutual exclusion scoped to an arbitrary hashable key."""

    def __init__(self, name: str):
        self.name = name
        self._locks: Dict[Hashable, List] = {}  # key -> [lock, users]

    @asynccontextmanager
    async def hold(self, key: Hashable):
        entry = self._locks.get(key)
        if entry is None:
            entry = [asyncio.Lock(), 0]
            self._locks[key] = entry
        entry[1] += 1
        try:
            async with entry[0]:
                yield
        finally:
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[key]

    def is_locked(self, key: Hashable) -> bool:
        entry = self._locks.get(key)
        return entry is not None and entry[0].locked()

    def __len__(self) -> int:
        return len(self._locks)


# (doctor_id, channel, date, time)
slot_locks = KeyedLock("slot")
# appointment id
appointment_locks = KeyedLock("appointment")
# doctor id, held while a token is drawn and inserted
token_locks = KeyedLock("token")
