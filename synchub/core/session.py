"""Per-connection session implementing the join/leave protocol."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from synchub.models.event import JoinEvent, LeaveEvent, UpdateEvent
from synchub.core.identity import IdentityAllocator
from synchub.core.outward import Outward
from synchub.core.router import EventRouter

logger = logging.getLogger(__name__)


class Session:
    """
    Bridges one client connection to the event router.

    The session owns the client's id and outward channel. Inbound text
    becomes Update events, and every way a connection can end funnels into
    a single Leave event.
    """

    def __init__(self, allocator: IdentityAllocator, router: EventRouter,
                 send: Callable[[str], Awaitable[None]], outward_queue_size: int = 1024):
        """
        Initialize a session and allocate its id.

        Args:
            allocator: Source of unique client ids
            router: Router receiving this session's events
            send: Transport primitive writing one text frame to the client
            outward_queue_size: Buffer size of the client's outward channel
        """
        self.id = allocator.next()
        self.router = router
        self.outward = Outward(self.id, maxsize=outward_queue_size)
        self._send = send
        self._writer: Optional[asyncio.Task] = None
        self._opened = False
        self._closed = False
        self._left = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def open(self) -> None:
        """Register the client with the router and start delivering to it."""
        if self._opened:
            return
        self._opened = True
        # Insertion goes through the router so the snapshot answered to this
        # client is ordered against every other mutation.
        await self.router.submit(JoinEvent(self.id, self.outward))
        self._writer = asyncio.create_task(self._write_loop())

    async def receive_text(self, text: str) -> None:
        if self._left:
            return
        await self.router.submit(UpdateEvent(self.id, text))

    def receive_bytes(self, data: bytes) -> None:
        logger.info(f"Ignoring binary message from client {self.id} ({len(data)} bytes)")

    async def close(self) -> None:
        """Announce the client's departure. Safe to call any number of times."""
        if self._closed:
            return
        self._closed = True
        await self._leave()
        if self._writer is not None:
            self._writer.cancel()
            try:
                await self._writer
            except asyncio.CancelledError:
                pass
            self._writer = None

    async def _leave(self) -> None:
        if self._left:
            return
        self._left = True
        if self._opened:
            await self.router.submit(LeaveEvent(self.id))

    async def _write_loop(self) -> None:
        try:
            await self.outward.drain(self._send)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            # The peer is unreachable; its Leave does not wait on the receive side.
            logger.error(f"Failed to send to client {self.id}: {str(e)}")
            self.outward.close()
            await self._leave()
