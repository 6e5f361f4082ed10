"""WebSocket handler bridging one client socket to the relay."""

import asyncio
import json
import logging
import uuid
from typing import AsyncIterator

from fastapi import WebSocket, WebSocketDisconnect

from relay import RelayService

logger = logging.getLogger(__name__)


async def _read_frames(websocket: WebSocket, connection_id: str) -> AsyncIterator[object]:
    """Yield decoded JSON frames until the client goes away."""
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                return
            text = message.get("text")
            if text is None:
                logger.warning("Dropping non-text frame from %s", connection_id)
                continue
            try:
                yield json.loads(text)
            except json.JSONDecodeError:
                logger.warning("Dropping malformed frame from %s", connection_id)
    except WebSocketDisconnect:
        return
    except (ConnectionResetError, BrokenPipeError):
        return


async def websocket_relay_session(websocket: WebSocket):
    """WebSocket session for the chat relay.

    The client joins a room first:
      {"type": "user:join", "username": "alice", "room": "general"}

    Then sends events:
      {"type": "message:send", "message": "hi"}
      {"type": "typing:start"} / {"type": "typing:stop"}
      {"type": "message:private", "recipientId": "...", "message": "psst"}
      {"type": "message:reaction", "messageId": "...", "reaction": "+1"}

    Server pushes events as JSON with a "type" field.
    """
    service: RelayService = websocket.app.state.relay
    connection_id = str(uuid.uuid4())
    await websocket.accept()

    try:
        await service.serve(
            connection_id,
            _read_frames(websocket, connection_id),
            websocket.send_json,
        )
    except asyncio.CancelledError:
        raise
    except Exception:
        logger.exception("Unexpected error in relay WebSocket %s", connection_id)
