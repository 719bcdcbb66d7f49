"""
Display registry.

A display is pure membership: a room name present in the map receives the
lunch signal. Persisted as `{room: {}}`, one entry per registered room.
"""

import asyncio
import logging

from lunchbell.domain.errors import InvalidDisplayError, PersistenceWriteError
from lunchbell.services.storage import SnapshotStore

logger = logging.getLogger(__name__)


class DisplayRegistry:
    def __init__(self, store: SnapshotStore) -> None:
        self.store = store
        self._lock = asyncio.Lock()
        self._rooms: dict[str, dict] = {room: {} for room in store.load()}

    def list_all(self) -> list[str]:
        return list(self._rooms)

    def snapshot(self) -> dict[str, dict]:
        return {room: {} for room in self._rooms}

    def __contains__(self, room: object) -> bool:
        return room in self._rooms

    def __len__(self) -> int:
        return len(self._rooms)

    async def add(self, room: str) -> None:
        await self.rename(None, room)

    async def remove(self, room: str) -> bool:
        room = (room or "").strip()
        async with self._lock:
            if self._rooms.pop(room, None) is None:
                return False
            await self._persist()
        logger.info("Removed display %s", room)
        return True

    async def rename(self, old_room: str | None, new_room: str | None) -> None:
        """Register `new_room`, then drop `old_room` if one was given.

        Raises:
            InvalidDisplayError: `new_room` is missing or blank. Nothing changes.
        """
        new_room = (new_room or "").strip()
        old_room = (old_room or "").strip()
        if not new_room:
            raise InvalidDisplayError("A display needs a room name")

        async with self._lock:
            self._rooms[new_room] = {}
            if old_room and old_room != new_room:
                self._rooms.pop(old_room, None)
            await self._persist()
        logger.info("Registered display %s%s", new_room, f" (was {old_room})" if old_room else "")

    async def _persist(self) -> None:
        try:
            await self.store.save(self.snapshot())
        except PersistenceWriteError as exc:
            logger.warning("Unable to persist displays: %s", exc)
