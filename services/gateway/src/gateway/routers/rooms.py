"""Room REST API endpoints."""

import logging

from fastapi import APIRouter, Query, Request

from relay import RelayService

from gateway.models import (
    HistoryMessage,
    ListRoomsResponse,
    LoadHistoryResponse,
    RoomSummary,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/rooms", tags=["rooms"])


def _service(request: Request) -> RelayService:
    return request.app.state.relay


@router.get("", response_model=ListRoomsResponse)
async def list_rooms(request: Request) -> ListRoomsResponse:
    """Default rooms first, then any other room that currently has members."""
    service = _service(request)
    active = service.active_rooms()
    names = list(service.config.rooms.defaults)
    names.extend(name for name in active if name not in names)
    return ListRoomsResponse(
        rooms=[RoomSummary(name=name, members=active.get(name, 0)) for name in names]
    )


@router.get("/{room}/messages", response_model=LoadHistoryResponse)
async def load_history(
    request: Request,
    room: str,
    limit: int = Query(default=50, ge=1, le=500),
) -> LoadHistoryResponse:
    """Recent messages for a room, oldest first."""
    stored = await _service(request).store.load_history(room, limit)
    logger.debug("Loaded %d history messages for %s", len(stored), room)
    return LoadHistoryResponse(
        room=room,
        messages=[
            HistoryMessage(
                id=m.message_id,
                username=m.sender,
                message=m.content,
                room=m.room,
                timestamp=m.timestamp,
                read_by=[mark.username for mark in m.read_by],
            )
            for m in stored
        ],
    )
