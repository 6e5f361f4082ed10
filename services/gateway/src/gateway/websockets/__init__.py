"""Gateway WebSocket handlers."""

from gateway.websockets.relay import websocket_relay_session

__all__ = ["websocket_relay_session"]
