"""Event router: dispatches inbound client events to their handlers.

Every handler except join resolves the sending connection first and drops
the event silently if the connection never joined. Each dispatch runs inside
its own failure boundary: a fault is logged and the router carries on.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional

from pydantic import ValidationError

from relay.events import (
    ErrorEvent,
    EventKind,
    JoinPayload,
    MessageReceive,
    PrivateMessage,
    ReactPayload,
    ReactionUpdate,
    SendMessagePayload,
    SendPrivatePayload,
    ServerEventType,
    TypingUser,
    UserJoined,
    UserLeft,
    UserNew,
    UsersUpdate,
    new_message_id,
    parse_kind,
    room_users,
    timestamp_now,
)
from relay.fanout import Fanout
from relay.presence import LeaveResult, Presence
from relay.receipts import ReceiptScheduler
from relay.store import NullStore, Storage, StoredMessage

logger = logging.getLogger(__name__)

Handler = Callable[[str, dict], Awaitable[None]]

JOIN_FAILED_MESSAGE = "Failed to join room"


class EventRouter:
    def __init__(
        self,
        presence: Presence,
        fanout: Fanout,
        receipts: ReceiptScheduler,
        store: Optional[Storage] = None,
    ) -> None:
        self._presence = presence
        self._fanout = fanout
        self._receipts = receipts
        self._store = store if store is not None else NullStore()
        self._handlers: dict[EventKind, Handler] = {
            EventKind.JOIN: self._handle_join,
            EventKind.SEND_MESSAGE: self._handle_send_message,
            EventKind.TYPING_START: self._handle_typing_start,
            EventKind.TYPING_STOP: self._handle_typing_stop,
            EventKind.SEND_PRIVATE: self._handle_send_private,
            EventKind.REACT: self._handle_react,
            EventKind.DISCONNECT: self._handle_disconnect,
        }
        missing = set(EventKind) - self._handlers.keys()
        if missing:
            raise RuntimeError(f"No handler for event kinds: {sorted(k.value for k in missing)}")

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def handle(self, connection_id: str, frame: object) -> None:
        """Route one raw frame received from the transport."""
        if not isinstance(frame, dict):
            logger.warning("Dropping non-object frame from %s", connection_id)
            return
        kind = parse_kind(frame.get("type"))
        if kind is None:
            logger.warning(
                "Dropping unknown event type %r from %s",
                frame.get("type"),
                connection_id,
            )
            return
        await self.dispatch(connection_id, kind, frame)

    async def disconnect(self, connection_id: str) -> None:
        await self.dispatch(connection_id, EventKind.DISCONNECT, {})

    async def dispatch(self, connection_id: str, kind: EventKind, payload: dict) -> None:
        handler = self._handlers[kind]
        try:
            await handler(connection_id, payload)
        except Exception:
            logger.exception("Error in %s from %s", kind.value, connection_id)
            if kind is EventKind.JOIN:
                await self._join_failed(connection_id)

    # ------------------------------------------------------------------
    # Client event handlers
    # ------------------------------------------------------------------

    async def _handle_join(self, connection_id: str, payload: dict) -> None:
        try:
            join = JoinPayload.model_validate(payload)
        except ValidationError as e:
            logger.warning("Malformed join from %s: %s", connection_id, e)
            await self._join_failed(connection_id)
            return

        result = await self._presence.join(connection_id, join.username, join.room)
        if result.previous is not None:
            await self._announce_leave(result.previous)

        users = room_users(result.members)
        await self._fanout.to_self(
            connection_id,
            UserJoined(room=join.room, users=users),
        )
        await self._fanout.to_room_except(
            join.room,
            connection_id,
            UserNew(
                username=join.username,
                message=f"{join.username} joined the chat",
                users=users,
                timestamp=timestamp_now(),
            ),
        )
        await self._fanout.to_room(join.room, UsersUpdate(users=users))
        logger.info(
            "%s (%s) joined room %s (members: %d)",
            join.username,
            connection_id,
            join.room,
            len(users),
        )

        await self._persist("set_user_status", self._store.set_user_status(join.username, "online"))

    async def _handle_send_message(self, connection_id: str, payload: dict) -> None:
        sender = self._presence.lookup(connection_id)
        if sender is None:
            return
        send = SendMessagePayload.model_validate(payload)

        message = MessageReceive(
            id=new_message_id(),
            username=sender.display_name,
            message=send.message,
            room=sender.room,
            timestamp=timestamp_now(),
        )
        # Self-echo: the sender sees the server-assigned id and timestamp.
        await self._fanout.to_room(sender.room, message)
        self._receipts.schedule(message.id, sender.room, connection_id)
        logger.debug(
            "Message %s from %s in %s",
            message.id,
            sender.display_name,
            sender.room,
        )

        await self._persist(
            "save_message",
            self._store.save_message(
                StoredMessage(
                    message_id=message.id,
                    room=message.room,
                    sender=message.username,
                    content=message.message,
                    timestamp=message.timestamp,
                )
            ),
        )

    async def _handle_typing_start(self, connection_id: str, payload: dict) -> None:
        await self._relay_typing(connection_id, True)

    async def _handle_typing_stop(self, connection_id: str, payload: dict) -> None:
        await self._relay_typing(connection_id, False)

    async def _relay_typing(self, connection_id: str, is_typing: bool) -> None:
        # No server-side typing state; expiry is up to the client.
        user = self._presence.lookup(connection_id)
        if user is None:
            return
        await self._fanout.to_room_except(
            user.room,
            connection_id,
            TypingUser(username=user.display_name, is_typing=is_typing),
        )

    async def _handle_send_private(self, connection_id: str, payload: dict) -> None:
        sender = self._presence.lookup(connection_id)
        if sender is None:
            return
        private = SendPrivatePayload.model_validate(payload)

        message_id = new_message_id()
        timestamp = timestamp_now()
        delivered = await self._fanout.to_peer(
            private.recipient_id,
            PrivateMessage(
                type=ServerEventType.PRIVATE_RECEIVE,
                id=message_id,
                from_name=sender.display_name,
                message=private.message,
                timestamp=timestamp,
            ),
        )
        # The sender is always confirmed, whether or not the target exists.
        await self._fanout.to_self(
            connection_id,
            PrivateMessage(
                type=ServerEventType.PRIVATE_SENT,
                id=message_id,
                from_name=sender.display_name,
                message=private.message,
                timestamp=timestamp,
            ),
        )
        logger.debug(
            "Private message %s from %s to %s (delivered: %s)",
            message_id,
            sender.display_name,
            private.recipient_id,
            bool(delivered),
        )

    async def _handle_react(self, connection_id: str, payload: dict) -> None:
        user = self._presence.lookup(connection_id)
        if user is None:
            return
        react = ReactPayload.model_validate(payload)
        await self._fanout.to_room(
            user.room,
            ReactionUpdate(
                message_id=react.message_id,
                reaction=react.reaction,
                username=user.display_name,
            ),
        )
        logger.debug(
            "%s reacted %s to message %s",
            user.display_name,
            react.reaction,
            react.message_id,
        )

    async def _handle_disconnect(self, connection_id: str, payload: dict) -> None:
        result = await self._presence.leave(connection_id)
        if result is None:
            return
        await self._announce_leave(result)
        logger.info(
            "%s (%s) disconnected from room %s",
            result.connection.display_name,
            connection_id,
            result.connection.room,
        )

        await self._persist(
            "set_user_status",
            self._store.set_user_status(result.connection.display_name, "offline"),
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _announce_leave(self, result: LeaveResult) -> None:
        connection = result.connection
        users = room_users(result.members)
        await self._fanout.to_room_except(
            connection.room,
            connection.connection_id,
            UserLeft(
                username=connection.display_name,
                message=f"{connection.display_name} left the chat",
                users=users,
                timestamp=timestamp_now(),
            ),
        )
        await self._fanout.to_room(connection.room, UsersUpdate(users=users))

    async def _join_failed(self, connection_id: str) -> None:
        await self._fanout.to_self(connection_id, ErrorEvent(message=JOIN_FAILED_MESSAGE))

    async def _persist(self, action: str, call: Awaitable[None]) -> None:
        try:
            await call
        except Exception as e:
            logger.warning("Storage %s failed: %s", action, e)
