"""Broadcast fanout: delivers one outbound event to a computed set of connections.

Connections attach an ``EventSink`` (their outbound queue) when the transport
accepts them and detach when it closes. Delivery to a connection with no
attached sink is a silent no-op.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional, Protocol

from relay.events import ServerEvent
from relay.registry import RoomDirectory

logger = logging.getLogger(__name__)


class Scope(Enum):
    SELF = "self"
    ROOM_OTHERS = "room-others"
    ROOM_ALL = "room-all"
    DIRECT = "direct"


class EventSink(Protocol):
    async def enqueue(self, event: ServerEvent) -> None: ...


class Fanout:
    def __init__(self, rooms: RoomDirectory) -> None:
        self._rooms = rooms
        self._sinks: dict[str, EventSink] = {}

    def attach(self, connection_id: str, sink: EventSink) -> None:
        self._sinks[connection_id] = sink

    def detach(self, connection_id: str) -> None:
        self._sinks.pop(connection_id, None)

    def is_attached(self, connection_id: str) -> bool:
        return connection_id in self._sinks

    def __len__(self) -> int:
        return len(self._sinks)

    async def publish(
        self,
        scope: Scope,
        event: ServerEvent,
        *,
        sender: Optional[str] = None,
        room: Optional[str] = None,
        target: Optional[str] = None,
    ) -> int:
        """Deliver ``event`` to every connection in ``scope``.

        SELF needs ``sender``; ROOM_OTHERS needs ``room`` and ``sender``;
        ROOM_ALL needs ``room``; DIRECT needs ``target``. Returns the number
        of connections the event was handed to.
        """
        targets = self._resolve(scope, sender=sender, room=room, target=target)
        delivered = 0
        for connection_id in targets:
            sink = self._sinks.get(connection_id)
            if sink is None:
                continue
            await sink.enqueue(event)
            delivered += 1
        logger.debug(
            "Published %s to %s (%d/%d delivered)",
            event.type.value,
            scope.value,
            delivered,
            len(targets),
        )
        return delivered

    def _resolve(
        self,
        scope: Scope,
        *,
        sender: Optional[str],
        room: Optional[str],
        target: Optional[str],
    ) -> tuple[str, ...]:
        # Room scopes snapshot the member set before any delivery happens.
        if scope is Scope.SELF:
            return (_required(sender, "sender", scope),)
        if scope is Scope.DIRECT:
            return (_required(target, "target", scope),)
        members = self._rooms.members(_required(room, "room", scope))
        if scope is Scope.ROOM_ALL:
            return members
        if scope is Scope.ROOM_OTHERS:
            excluded = _required(sender, "sender", scope)
            return tuple(m for m in members if m != excluded)
        raise ValueError(f"Unknown scope: {scope}")

    async def to_self(self, sender: str, event: ServerEvent) -> int:
        return await self.publish(Scope.SELF, event, sender=sender)

    async def to_room(self, room: str, event: ServerEvent) -> int:
        return await self.publish(Scope.ROOM_ALL, event, room=room)

    async def to_room_except(self, room: str, sender: str, event: ServerEvent) -> int:
        return await self.publish(Scope.ROOM_OTHERS, event, room=room, sender=sender)

    async def to_peer(self, target: str, event: ServerEvent) -> int:
        return await self.publish(Scope.DIRECT, event, target=target)


def _required(value: Optional[str], name: str, scope: Scope) -> str:
    if value is None:
        raise ValueError(f"{scope.value} delivery requires {name}")
    return value
