"""Deferred auto-read receipts.

Each sent message schedules one delayed task. When it fires, the room's
membership is read again, so members who left in the meantime get nothing
and members who joined in the meantime are included. Tasks are never
cancelled by disconnects; only service shutdown cancels them.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from relay.events import AutoRead
from relay.fanout import Fanout
from relay.presence import Presence
from relay.store import NullStore, Storage

logger = logging.getLogger(__name__)


class ReceiptScheduler:
    def __init__(
        self,
        presence: Presence,
        fanout: Fanout,
        delay: float = 2.0,
        store: Optional[Storage] = None,
    ) -> None:
        self._presence = presence
        self._fanout = fanout
        self._delay = delay
        self._store = store if store is not None else NullStore()
        self._pending_tasks: set[asyncio.Task] = set()

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def pending(self) -> int:
        return len(self._pending_tasks)

    def schedule(self, message_id: str, room: str, sender_id: str) -> asyncio.Task:
        task = asyncio.create_task(
            self._fire_after_delay(message_id, room, sender_id),
            name=f"receipt-{message_id}",
        )
        self._track_task(task)
        return task

    async def _fire_after_delay(self, message_id: str, room: str, sender_id: str) -> None:
        await asyncio.sleep(self._delay)
        try:
            await self.fire(message_id, room, sender_id)
        except Exception:
            logger.exception("Auto-read receipt for message %s failed", message_id)

    async def fire(self, message_id: str, room: str, sender_id: str) -> int:
        """Notify every current member of ``room`` except the sender.

        The receipt goes to the reader's own connection and names that same
        reader. Returns the number of readers notified.
        """
        readers = [
            m for m in self._presence.roster(room) if m.connection_id != sender_id
        ]
        for reader in readers:
            await self._fanout.to_peer(
                reader.connection_id,
                AutoRead(message_id=message_id, read_by=reader.display_name),
            )
            try:
                await self._store.mark_read(message_id, reader.display_name)
            except Exception as e:
                logger.warning("Storage mark_read failed for %s: %s", message_id, e)
        logger.debug(
            "Auto-read receipts for %s in room %s: %d readers",
            message_id,
            room,
            len(readers),
        )
        return len(readers)

    def _track_task(self, task: asyncio.Task) -> None:
        """Track a fire-and-forget task for cleanup."""
        self._pending_tasks.add(task)
        task.add_done_callback(self._pending_tasks.discard)

    async def drain(self) -> None:
        """Wait for every scheduled receipt to fire."""
        while self._pending_tasks:
            await asyncio.gather(*list(self._pending_tasks), return_exceptions=True)

    async def cancel_pending_tasks(self) -> None:
        """Cancel all scheduled receipts (service shutdown)."""
        for task in list(self._pending_tasks):
            task.cancel()
        if self._pending_tasks:
            await asyncio.gather(*self._pending_tasks, return_exceptions=True)
        self._pending_tasks.clear()
