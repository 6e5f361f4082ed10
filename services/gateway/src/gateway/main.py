"""FastAPI application entry point."""
from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from common.logging import setup_logging
from relay import RelayService
from relay.store import MemoryStore, Storage

from gateway.config import AppConfig, load_config
from gateway.models import HealthResponse, RootResponse
from gateway.routers import rooms_router
from gateway.websockets import websocket_relay_session

logger = logging.getLogger(__name__)


def create_app(
    config: Optional[AppConfig] = None,
    store: Optional[Storage] = None,
) -> FastAPI:
    """Build the gateway app around one relay instance."""
    config = config if config is not None else load_config()
    service = RelayService(
        config.relay,
        store=store if store is not None else MemoryStore(),
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(config.logging.service_name, config.logging.level)
        app.state.started_at = time.monotonic()
        logger.info(
            "Chat relay listening on %s:%d", config.server.host, config.server.port
        )
        try:
            yield
        finally:
            await service.close()

    app = FastAPI(
        title="Chat Relay",
        description="Real-time chat relay over WebSockets",
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.relay = service
    app.state.started_at = time.monotonic()

    # Configure CORS (from config)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors.origins,
        allow_credentials=config.cors.allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(rooms_router)
    app.add_api_websocket_route("/ws", websocket_relay_session)

    @app.get("/", response_model=RootResponse)
    async def root() -> RootResponse:
        """Root endpoint with service info and available endpoints."""
        return RootResponse(
            service="chat-relay",
            status="running",
            endpoints={
                "health": "/health",
                "relay_ws": "/ws",
                "rooms_api": "/api/rooms",
                "history_api": "/api/rooms/{room}/messages",
            },
            rooms=list(config.relay.rooms.defaults),
            typing_timeout_ms=config.relay.typing.timeout_ms,
        )

    @app.get("/health", response_model=HealthResponse)
    async def health(request: Request) -> HealthResponse:
        """Health check endpoint."""
        return HealthResponse(
            status="ok",
            uptime_seconds=round(time.monotonic() - request.app.state.started_at, 3),
            connections=service.connection_count(),
            rooms=len(service.active_rooms()),
        )

    return app


app = create_app()


def main() -> None:
    config: AppConfig = app.state.config
    uvicorn.run(app, host=config.server.host, port=config.server.port)


if __name__ == "__main__":
    main()
