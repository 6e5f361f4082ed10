"""Optional message/user storage behind an async interface.

The relay never depends on what a store returns: every hook is best-effort
and the default ``NullStore`` discards everything. ``MemoryStore`` keeps data
in dicts, lost on restart; a database-backed store can be swapped in later
with the same interface.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Protocol

USER_STATUSES = frozenset({"online", "offline"})


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ReadMark:
    username: str
    read_at: datetime


@dataclass
class StoredMessage:
    message_id: str
    room: str
    sender: str
    content: str
    timestamp: str
    read_by: list[ReadMark] = field(default_factory=list)


@dataclass
class StoredUser:
    username: str
    status: str
    last_seen: datetime


class Storage(Protocol):
    async def save_message(self, message: StoredMessage) -> None: ...

    async def mark_read(self, message_id: str, username: str) -> None: ...

    async def set_user_status(self, username: str, status: str) -> None: ...

    async def load_history(self, room: str, limit: int = 50) -> list[StoredMessage]: ...


class NullStore:
    """Storage that keeps nothing."""

    async def save_message(self, message: StoredMessage) -> None:
        return None

    async def mark_read(self, message_id: str, username: str) -> None:
        return None

    async def set_user_status(self, username: str, status: str) -> None:
        return None

    async def load_history(self, room: str, limit: int = 50) -> list[StoredMessage]:
        return []


class MemoryStore:
    def __init__(self) -> None:
        # room -> list of messages (append-only, sorted by time)
        self._messages: dict[str, list[StoredMessage]] = {}
        # message_id -> message
        self._by_id: dict[str, StoredMessage] = {}
        # username -> user
        self._users: dict[str, StoredUser] = {}

    async def save_message(self, message: StoredMessage) -> None:
        self._messages.setdefault(message.room, []).append(message)
        self._by_id[message.message_id] = message

    async def get_message(self, message_id: str) -> Optional[StoredMessage]:
        return self._by_id.get(message_id)

    async def mark_read(self, message_id: str, username: str) -> None:
        message = self._by_id.get(message_id)
        if message is None:
            return
        if any(mark.username == username for mark in message.read_by):
            return
        message.read_by.append(ReadMark(username=username, read_at=_now()))

    async def set_user_status(self, username: str, status: str) -> None:
        if status not in USER_STATUSES:
            raise ValueError(f"Invalid status: {status}")
        user = self._users.get(username)
        if user is None:
            self._users[username] = StoredUser(
                username=username,
                status=status,
                last_seen=_now(),
            )
        else:
            user.status = status
            user.last_seen = _now()

    async def get_user(self, username: str) -> Optional[StoredUser]:
        return self._users.get(username)

    async def online_users(self) -> list[StoredUser]:
        return [u for u in self._users.values() if u.status == "online"]

    async def load_history(self, room: str, limit: int = 50) -> list[StoredMessage]:
        msgs = self._messages.get(room, [])
        if limit <= 0:
            return []
        return msgs[-limit:]
