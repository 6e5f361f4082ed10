"""Relay service: builds and owns one isolated relay instance."""

from __future__ import annotations

import logging
from typing import AsyncIterator, Optional

from relay.config import RelayConfig
from relay.fanout import Fanout
from relay.presence import Presence
from relay.receipts import ReceiptScheduler
from relay.router import EventRouter
from relay.session import ConnectionSession, Sender
from relay.store import NullStore, Storage

logger = logging.getLogger(__name__)


class RelayService:
    def __init__(
        self,
        config: Optional[RelayConfig] = None,
        store: Optional[Storage] = None,
    ) -> None:
        self._config = config if config is not None else RelayConfig()
        self._store = store if store is not None else NullStore()
        self.presence = Presence()
        self.fanout = Fanout(self.presence.rooms)
        self.receipts = ReceiptScheduler(
            self.presence,
            self.fanout,
            delay=self._config.receipts.delay_seconds,
            store=self._store,
        )
        self.router = EventRouter(
            self.presence,
            self.fanout,
            self.receipts,
            store=self._store,
        )

    @property
    def config(self) -> RelayConfig:
        return self._config

    @property
    def store(self) -> Storage:
        return self._store

    def open_session(self, connection_id: str) -> ConnectionSession:
        return ConnectionSession(connection_id, self.router, self.fanout)

    async def serve(
        self,
        connection_id: str,
        inbound: AsyncIterator[object],
        send: Sender,
    ) -> None:
        """Run one connection's session until its inbound stream ends."""
        logger.info("Connection %s opened", connection_id)
        try:
            await self.open_session(connection_id).run(inbound, send)
        finally:
            logger.info("Connection %s closed", connection_id)

    def active_rooms(self) -> dict[str, int]:
        return self.presence.rooms.rooms()

    def connection_count(self) -> int:
        return len(self.fanout)

    async def close(self) -> None:
        await self.receipts.cancel_pending_tasks()
        logger.info("Relay service stopped")
