"""Per-connection session: one per live transport connection.

Owns the connection's outbound queue. ``run`` reads inbound frames and hands
them to the router while a writer task flushes the queue to the transport.
When the inbound side ends, the connection is detached from the fanout and
the router's disconnect handling runs.
"""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Awaitable, Callable

from relay.events import ServerEvent
from relay.fanout import Fanout
from relay.router import EventRouter

logger = logging.getLogger(__name__)

Sender = Callable[[dict], Awaitable[None]]


class ConnectionSession:
    def __init__(
        self,
        connection_id: str,
        router: EventRouter,
        fanout: Fanout,
    ) -> None:
        self._connection_id = connection_id
        self._router = router
        self._fanout = fanout
        self._outbound: asyncio.Queue[ServerEvent] = asyncio.Queue()

    @property
    def connection_id(self) -> str:
        return self._connection_id

    async def enqueue(self, event: ServerEvent) -> None:
        await self._outbound.put(event)

    async def run(self, inbound: AsyncIterator[object], send: Sender) -> None:
        """Main loop: read from the client and flush the outbound queue concurrently."""

        async def _write_loop() -> None:
            while True:
                event = await self._outbound.get()
                try:
                    await send(event.to_wire())
                except Exception as e:
                    # Peer is gone; stop receiving broadcasts. The read side
                    # will end and run the disconnect.
                    logger.debug("Write to %s failed: %s", self._connection_id, e)
                    self._fanout.detach(self._connection_id)
                    return

        self._fanout.attach(self._connection_id, self)
        write_task = asyncio.create_task(_write_loop())

        try:
            async for frame in inbound:
                await self._router.handle(self._connection_id, frame)
        finally:
            self._fanout.detach(self._connection_id)
            await self._router.disconnect(self._connection_id)
            write_task.cancel()
            await asyncio.gather(write_task, return_exceptions=True)
