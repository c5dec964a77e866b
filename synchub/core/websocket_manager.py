"""WebSocket connection manager bridging FastAPI sockets to sessions."""

import logging
from typing import Dict

from fastapi import WebSocket

from synchub.core.identity import IdentityAllocator
from synchub.core.router import EventRouter
from synchub.core.session import Session

logger = logging.getLogger(__name__)


class WebSocketManager:
    """Manages WebSocket connections and their sessions."""

    def __init__(self, router: EventRouter, allocator: IdentityAllocator, outward_queue_size: int = 1024):
        self.router = router
        self.allocator = allocator
        self.outward_queue_size = outward_queue_size
        self.sessions: Dict[int, Session] = {}

    @property
    def connection_count(self) -> int:
        return len(self.sessions)

    async def connect(self, websocket: WebSocket) -> Session:
        """
        Accept a new WebSocket connection and open its session.

        Args:
            websocket: WebSocket connection

        Returns:
            The opened session
        """
        await websocket.accept()
        session = Session(self.allocator, self.router, websocket.send_text, self.outward_queue_size)
        self.sessions[session.id] = session
        await session.open()
        logger.info(f"Client {session.id} connected")
        return session

    async def disconnect(self, session: Session) -> None:
        """
        Close a session and forget its connection.

        Args:
            session: Session to tear down
        """
        self.sessions.pop(session.id, None)
        await session.close()
        logger.info(f"Client {session.id} disconnected ({session.outward.pending} frames undelivered)")

    async def serve(self, websocket: WebSocket) -> None:
        """
        Run a connection until it ends.

        Text frames become state updates, binary frames are ignored, and a
        close frame, a receive error or a server-side disconnect all end in
        the same teardown.

        Args:
            websocket: WebSocket connection
        """
        session = await self.connect(websocket)
        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
                if message.get("text") is not None:
                    await session.receive_text(message["text"])
                elif message.get("bytes") is not None:
                    session.receive_bytes(message["bytes"])
        except Exception as e:
            logger.error(f"WebSocket error for client {session.id}: {str(e)}")
        finally:
            await self.disconnect(session)
