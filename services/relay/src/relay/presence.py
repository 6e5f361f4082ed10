"""Presence: connection <-> room membership kept consistent under one lock.

Join (register + add member) and leave (remove member + unregister) run as
single critical sections, so a room's member set and the registry's room
assignments never disagree at a quiescent point. Reads are synchronous
snapshots and need no lock on a single event loop.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional

from relay.registry import Connection, ConnectionRegistry, RoomDirectory

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Member:
    connection_id: str
    display_name: str


@dataclass
class LeaveResult:
    connection: Connection
    room_deleted: bool
    # members remaining after the departure
    members: list[Member] = field(default_factory=list)


@dataclass
class JoinResult:
    connection: Connection
    members: list[Member] = field(default_factory=list)
    # set when the connection was moved out of a different room
    previous: Optional[LeaveResult] = None


class Presence:
    def __init__(
        self,
        connections: Optional[ConnectionRegistry] = None,
        rooms: Optional[RoomDirectory] = None,
    ) -> None:
        self.connections = connections if connections is not None else ConnectionRegistry()
        self.rooms = rooms if rooms is not None else RoomDirectory()
        self._lock = asyncio.Lock()

    async def join(self, connection_id: str, display_name: str, room: str) -> JoinResult:
        async with self._lock:
            previous = None
            existing = self.connections.lookup(connection_id)
            if existing is not None and existing.room != room:
                # Re-join into another room: leave the old one first so no
                # stale membership survives in the directory.
                previous = self._leave_locked(existing)
                logger.info(
                    "Connection %s moved from room %s to %s",
                    connection_id,
                    existing.room,
                    room,
                )

            connection = self.connections.register(connection_id, display_name, room)
            self.rooms.add_member(room, connection_id)
            return JoinResult(
                connection=connection,
                members=self.roster(room),
                previous=previous,
            )

    async def leave(self, connection_id: str) -> Optional[LeaveResult]:
        """Remove a connection entirely. Returns None if it never joined."""
        async with self._lock:
            connection = self.connections.lookup(connection_id)
            if connection is None:
                return None
            return self._leave_locked(connection)

    def _leave_locked(self, connection: Connection) -> LeaveResult:
        room_deleted = self.rooms.remove_member(connection.room, connection.connection_id)
        self.connections.remove(connection.connection_id)
        return LeaveResult(
            connection=connection,
            room_deleted=room_deleted,
            members=self.roster(connection.room),
        )

    def lookup(self, connection_id: str) -> Optional[Connection]:
        return self.connections.lookup(connection_id)

    def member_ids(self, room: str) -> tuple[str, ...]:
        return self.rooms.members(room)

    def roster(self, room: str) -> list[Member]:
        """Current members of ``room`` with their display names, in join order."""
        members = []
        for connection_id in self.rooms.members(room):
            connection = self.connections.lookup(connection_id)
            if connection is not None:
                members.append(Member(connection_id, connection.display_name))
        return members
