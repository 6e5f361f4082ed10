"""Gateway routers for REST endpoints."""

from gateway.routers.rooms import router as rooms_router

__all__ = ["rooms_router"]
