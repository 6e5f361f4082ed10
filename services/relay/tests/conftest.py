"""Shared fixtures for relay tests."""

from __future__ import annotations

import pytest

from relay import RelayConfig, RelayService
from relay.events import ServerEvent, ServerEventType
from relay.store import MemoryStore

# Short enough to keep the suite fast, long enough to observe "before" states.
RECEIPT_DELAY_MS = 50


class RecordingSink:
    """Outbound sink that keeps every event it is handed."""

    def __init__(self) -> None:
        self.events: list[ServerEvent] = []

    async def enqueue(self, event: ServerEvent) -> None:
        self.events.append(event)

    def types(self) -> list[str]:
        return [e.type.value for e in self.events]

    def of_type(self, event_type: ServerEventType) -> list[ServerEvent]:
        return [e for e in self.events if e.type is event_type]

    def clear(self) -> None:
        self.events.clear()


@pytest.fixture
def relay_config() -> RelayConfig:
    config = RelayConfig()
    config.receipts.delay_ms = RECEIPT_DELAY_MS
    return config


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
async def service(relay_config, store):
    svc = RelayService(relay_config, store=store)
    yield svc
    await svc.close()


@pytest.fixture
def connect(service):
    """Attach a recording sink for a connection id, as the transport would."""

    def _connect(connection_id: str) -> RecordingSink:
        sink = RecordingSink()
        service.fanout.attach(connection_id, sink)
        return sink

    return _connect


@pytest.fixture
def join(service):
    async def _join(connection_id: str, username: str, room: str) -> None:
        await service.router.handle(
            connection_id,
            {"type": "user:join", "username": username, "room": room},
        )

    return _join


@pytest.fixture
def send(service):
    async def _send(connection_id: str, text: str) -> None:
        await service.router.handle(
            connection_id,
            {"type": "message:send", "message": text},
        )

    return _send


@pytest.fixture
def make_sink():
    return RecordingSink
