"""Per-listing locks that serialise booking writes inside one process."""
from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Dict


class ListingLocks:
    """Hand out one ``asyncio.Lock`` per listing and drop it once idle."""

    def __init__(self) -> None:
        self._locks: Dict[str, asyncio.Lock] = {}
        self._waiters: Dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, listing_id: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(listing_id, asyncio.Lock())
        self._waiters[listing_id] = self._waiters.get(listing_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[listing_id] -= 1
            if self._waiters[listing_id] == 0:
                self._waiters.pop(listing_id, None)
                self._locks.pop(listing_id, None)

    def __len__(self) -> int:
        return len(self._locks)


listing_locks = ListingLocks()
