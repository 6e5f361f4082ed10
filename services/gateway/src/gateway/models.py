"""Pydantic models for gateway request/response validation."""

from __future__ import annotations

from typing import Dict, List

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Room models
# ---------------------------------------------------------------------------


class RoomSummary(BaseModel):
    """An advertised or active room with its live member count."""

    name: str
    members: int = 0


class ListRoomsResponse(BaseModel):
    """Response from listing rooms."""

    rooms: List[RoomSummary]


class HistoryMessage(BaseModel):
    """Message in history response."""

    id: str
    username: str
    message: str
    room: str
    timestamp: str
    read_by: List[str] = Field(default_factory=list, serialization_alias="readBy")


class LoadHistoryResponse(BaseModel):
    """Response from loading message history."""

    room: str
    messages: List[HistoryMessage]


# ---------------------------------------------------------------------------
# Health/Root models
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    uptime_seconds: float
    connections: int
    rooms: int


class RootResponse(BaseModel):
    """Root endpoint response."""

    service: str
    status: str
    endpoints: Dict[str, str]
    rooms: List[str]
    typing_timeout_ms: int
