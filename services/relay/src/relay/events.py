"""Relay event contract: inbound event kinds and payloads, outbound events.

Wire frames are JSON objects with a ``type`` discriminator. Field names on
the wire are camelCase where the client protocol uses them; the models
accept and expose snake_case attributes.
"""

from __future__ import annotations

import time
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from relay.presence import Member


# ---------------------------------------------------------------------------
# Inbound (client -> server)
# ---------------------------------------------------------------------------


class EventKind(str, Enum):
    JOIN = "user:join"
    SEND_MESSAGE = "message:send"
    TYPING_START = "typing:start"
    TYPING_STOP = "typing:stop"
    SEND_PRIVATE = "message:private"
    REACT = "message:reaction"
    # Raised by the transport when a socket closes; never accepted from the wire.
    DISCONNECT = "disconnect"


WIRE_KINDS = frozenset(kind for kind in EventKind if kind is not EventKind.DISCONNECT)


def parse_kind(value: object) -> Optional[EventKind]:
    """Map a wire ``type`` value to an inbound kind, or None if not accepted."""
    try:
        kind = EventKind(value)
    except ValueError:
        return None
    return kind if kind in WIRE_KINDS else None


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class JoinPayload(_Payload):
    username: str
    room: str

    @field_validator("username", "room")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value


class SendMessagePayload(_Payload):
    # Content checks belong to the client; empty text is relayed as-is.
    message: str = ""


class SendPrivatePayload(_Payload):
    recipient_id: str = Field(alias="recipientId")
    message: str = ""


class ReactPayload(_Payload):
    message_id: str = Field(alias="messageId")
    reaction: str


# ---------------------------------------------------------------------------
# Outbound (server -> client)
# ---------------------------------------------------------------------------


class ServerEventType(str, Enum):
    JOINED = "user:joined"
    USER_NEW = "user:new"
    USERS_UPDATE = "users:update"
    MESSAGE_RECEIVE = "message:receive"
    TYPING_USER = "typing:user"
    PRIVATE_RECEIVE = "message:private:receive"
    PRIVATE_SENT = "message:private:sent"
    REACTION_UPDATE = "message:reaction:update"
    AUTO_READ = "message:auto:read"
    USER_LEFT = "user:left"
    ERROR = "error"


class RoomUser(BaseModel):
    id: str
    username: str


class ServerEvent(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: ServerEventType

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class UserJoined(ServerEvent):
    type: Literal[ServerEventType.JOINED] = ServerEventType.JOINED
    success: bool = True
    room: str
    users: list[RoomUser]


class UserNew(ServerEvent):
    type: Literal[ServerEventType.USER_NEW] = ServerEventType.USER_NEW
    username: str
    message: str
    users: list[RoomUser]
    timestamp: str


class UsersUpdate(ServerEvent):
    type: Literal[ServerEventType.USERS_UPDATE] = ServerEventType.USERS_UPDATE
    users: list[RoomUser]


class MessageReceive(ServerEvent):
    type: Literal[ServerEventType.MESSAGE_RECEIVE] = ServerEventType.MESSAGE_RECEIVE
    id: str
    username: str
    message: str
    room: str
    timestamp: str


class TypingUser(ServerEvent):
    type: Literal[ServerEventType.TYPING_USER] = ServerEventType.TYPING_USER
    username: str
    is_typing: bool = Field(alias="isTyping")


class PrivateMessage(ServerEvent):
    type: Literal[ServerEventType.PRIVATE_RECEIVE, ServerEventType.PRIVATE_SENT]
    id: str
    from_name: str = Field(alias="from")
    message: str
    timestamp: str
    private: bool = True


class ReactionUpdate(ServerEvent):
    type: Literal[ServerEventType.REACTION_UPDATE] = ServerEventType.REACTION_UPDATE
    message_id: str = Field(alias="messageId")
    reaction: str
    username: str


class AutoRead(ServerEvent):
    type: Literal[ServerEventType.AUTO_READ] = ServerEventType.AUTO_READ
    message_id: str = Field(alias="messageId")
    read_by: str = Field(alias="readBy")


class UserLeft(ServerEvent):
    type: Literal[ServerEventType.USER_LEFT] = ServerEventType.USER_LEFT
    username: str
    message: str
    users: list[RoomUser]
    timestamp: str


class ErrorEvent(ServerEvent):
    type: Literal[ServerEventType.ERROR] = ServerEventType.ERROR
    message: str


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def room_users(members: list[Member]) -> list[RoomUser]:
    return [RoomUser(id=m.connection_id, username=m.display_name) for m in members]


def new_message_id() -> str:
    """Opaque id: epoch milliseconds plus a random suffix."""
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"


def timestamp_now() -> str:
    return datetime.now(timezone.utc).isoformat()
