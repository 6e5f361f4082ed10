"""Presence and message-fanout engine for the chat relay."""

from relay.config import RelayConfig
from relay.service import RelayService

__all__ = ["RelayConfig", "RelayService"]
