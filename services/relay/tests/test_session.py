import asyncio

from relay.events import ServerEventType


class Outbox:
    """Collects wire frames written by a session."""

    def __init__(self) -> None:
        self.frames: list[dict] = []

    async def send(self, frame: dict) -> None:
        self.frames.append(frame)

    def types(self) -> list[str]:
        return [f["type"] for f in self.frames]


class Inbox:
    """Feeds frames to a session until closed."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue = asyncio.Queue()

    def push(self, frame) -> None:
        self._queue.put_nowait(frame)

    def close(self) -> None:
        self._queue.put_nowait(None)

    async def __aiter__(self):
        while True:
            frame = await self._queue.get()
            if frame is None:
                return
            yield frame


async def _settle() -> None:
    for _ in range(5):
        await asyncio.sleep(0)


async def test_session_round_trip_and_cleanup(service):
    inbox_a, inbox_b = Inbox(), Inbox()
    out_a, out_b = Outbox(), Outbox()
    task_a = asyncio.create_task(service.serve("a", inbox_a, out_a.send))
    task_b = asyncio.create_task(service.serve("b", inbox_b, out_b.send))

    inbox_a.push({"type": "user:join", "username": "alice", "room": "general"})
    await _settle()
    inbox_b.push({"type": "user:join", "username": "bob", "room": "general"})
    await _settle()
    inbox_a.push({"type": "message:send", "message": "hi"})
    await _settle()

    assert service.connection_count() == 2
    assert out_b.types()[-1] == "message:receive"
    assert out_b.frames[-1]["message"] == "hi"
    assert out_a.types() == [
        "user:joined",
        "users:update",
        "user:new",
        "users:update",
        "message:receive",
    ]

    inbox_a.close()
    await task_a
    await _settle()

    assert service.connection_count() == 1
    assert service.presence.lookup("a") is None
    assert out_b.types()[-2:] == ["user:left", "users:update"]
    assert out_b.frames[-1]["users"] == [{"id": "b", "username": "bob"}]

    inbox_b.close()
    await task_b
    assert service.active_rooms() == {}


async def test_failed_send_does_not_break_other_connections(service, connect, join):
    b = connect("b")
    await join("b", "bob", "general")

    async def broken_send(frame: dict) -> None:
        raise ConnectionResetError("gone")

    inbox = Inbox()
    task = asyncio.create_task(service.serve("a", inbox, broken_send))
    inbox.push({"type": "user:join", "username": "alice", "room": "general"})
    await _settle()
    inbox.push({"type": "message:send", "message": "hi"})
    await _settle()

    assert b.of_type(ServerEventType.MESSAGE_RECEIVE)[0].message == "hi"

    inbox.close()
    await task
    assert service.presence.member_ids("general") == ("b",)


async def test_failed_send_stops_broadcasts_to_that_session(service, connect, join, send):
    b = connect("b")
    await join("b", "bob", "general")

    async def broken_send(frame: dict) -> None:
        raise ConnectionResetError("gone")

    inbox = Inbox()
    task = asyncio.create_task(service.serve("a", inbox, broken_send))
    inbox.push({"type": "user:join", "username": "alice", "room": "general"})
    await _settle()

    assert not service.fanout.is_attached("a")
    assert service.connection_count() == 1
    # still a room member until the read side ends
    assert service.presence.member_ids("general") == ("b", "a")

    await send("b", "anyone?")
    assert len(b.of_type(ServerEventType.MESSAGE_RECEIVE)) == 1

    inbox.close()
    await task
    assert service.presence.member_ids("general") == ("b",)
