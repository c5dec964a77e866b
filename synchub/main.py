"""Main FastAPI application with the hub's WebSocket endpoint."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from sse_starlette.sse import EventSourceResponse

from synchub import __version__
from synchub.config import Settings, settings as default_settings
from synchub.core.event_log import EventLog
from synchub.core.identity import IdentityAllocator
from synchub.core.registry import Registry
from synchub.core.router import EventRouter
from synchub.core.websocket_manager import WebSocketManager

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the hub application.

    Each call gets its own registry, router and id sequence.

    Args:
        settings: Settings to use instead of the environment defaults

    Returns:
        Configured FastAPI application
    """
    settings = settings or default_settings

    event_log = EventLog(maxsize=settings.event_log_queue_size)
    router = EventRouter(Registry(), event_log=event_log, maxsize=settings.router_queue_size)
    allocator = IdentityAllocator()
    manager = WebSocketManager(router, allocator, outward_queue_size=settings.outward_queue_size)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        router.start()
        logger.info("Event router started")
        yield
        await router.stop()
        logger.info("Event router stopped")

    app = FastAPI(title="Sync Hub", version=__version__, lifespan=lifespan)
    app.state.router = router
    app.state.manager = manager
    app.state.event_log = event_log

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    async def root():
        """Root endpoint returning API information."""
        return {
            "message": "Sync Hub",
            "version": __version__,
            "endpoints": {
                "websocket": "/ws",
                "state": "/state",
                "logs": "/logs"
            }
        }

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy" if router.running else "stopped",
            "connected_clients": manager.connection_count,
            "applied_events": router.applied_count,
            "log_observers": event_log.subscriber_count,
            "next_id": allocator.peek()
        }

    @app.get("/state")
    async def get_state():
        """Get every connected client's current text."""
        return {
            "clients": [{"id": client_id, "text": text} for client_id, text in router.snapshot()]
        }

    @app.get("/logs")
    async def logs():
        """Stream applied events as server-sent events."""
        queue = event_log.subscribe()
        return EventSourceResponse(event_log.stream(queue))

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        """WebSocket endpoint carrying SetText/Remove events."""
        await manager.serve(websocket)

    return app


app = create_app()


def main() -> None:
    import uvicorn

    logging.basicConfig(level=getattr(logging, default_settings.log_level, logging.INFO))
    uvicorn.run(
        "synchub.main:app",
        host=default_settings.host,
        port=default_settings.port,
        log_level=default_settings.log_level.lower()
    )


if __name__ == "__main__":
    main()
