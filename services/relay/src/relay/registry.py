"""Connection registry and room directory.

In-memory state for one relay instance: which connection is who, and which
connections are in which room. Neither class locks; callers serialize
read-modify-write sequences through ``relay.presence.Presence``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterator, Optional

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Connection:
    connection_id: str
    display_name: str
    room: str = ""
    joined_at: datetime = field(default_factory=_now)


class ConnectionRegistry:
    def __init__(self) -> None:
        self._connections: dict[str, Connection] = {}

    def register(self, connection_id: str, display_name: str, room: str) -> Connection:
        """Insert or overwrite the record for ``connection_id``."""
        connection = Connection(
            connection_id=connection_id,
            display_name=display_name,
            room=room,
        )
        self._connections[connection_id] = connection
        return connection

    def lookup(self, connection_id: str) -> Optional[Connection]:
        return self._connections.get(connection_id)

    def remove(self, connection_id: str) -> Optional[Connection]:
        return self._connections.pop(connection_id, None)

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._connections

    def __len__(self) -> int:
        return len(self._connections)

    def __iter__(self) -> Iterator[Connection]:
        return iter(list(self._connections.values()))


class RoomDirectory:
    """Maps room name -> member connection ids.

    Rooms exist only while they have members. Member order is join order.
    """

    def __init__(self) -> None:
        # dict used as an insertion-ordered set
        self._rooms: dict[str, dict[str, None]] = {}

    def add_member(self, room: str, connection_id: str) -> None:
        self._rooms.setdefault(room, {})[connection_id] = None
        logger.debug(
            "Added %s to room %s (total: %d)",
            connection_id,
            room,
            len(self._rooms[room]),
        )

    def remove_member(self, room: str, connection_id: str) -> bool:
        """Remove a member. Returns True if the room was deleted as a result."""
        members = self._rooms.get(room)
        if members is None:
            return False
        members.pop(connection_id, None)
        if not members:
            del self._rooms[room]
            logger.debug("Room %s is empty, removed", room)
            return True
        return False

    def members(self, room: str) -> tuple[str, ...]:
        """Snapshot of the room's member ids; empty if the room does not exist."""
        return tuple(self._rooms.get(room, ()))

    def rooms(self) -> dict[str, int]:
        """Live room names with their member counts."""
        return {name: len(members) for name, members in self._rooms.items()}

    def __contains__(self, room: object) -> bool:
        return room in self._rooms

    def __len__(self) -> int:
        return len(self._rooms)
