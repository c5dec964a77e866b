"""Per-client outward delivery channel."""

import asyncio
from typing import Awaitable, Callable, Iterable

from synchub.core.exceptions import DeliveryError

_CLOSED = object()


class Outward:
    """
    Independently buffered outbound channel for a single client.

    The router hands payloads over with `deliver`, which never blocks; a
    writer task drains them to the transport in FIFO order. A slow client
    therefore only fills its own buffer.

    The join snapshot goes through `preload` as a single batch, so it takes
    one buffer slot however many peers are present and a joining client
    always receives every peer's state.
    """

    def __init__(self, client_id: int, maxsize: int = 1024):
        self.client_id = client_id
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        """Buffer slots in use."""
        return self._queue.qsize()

    def preload(self, payloads: Iterable[str]) -> None:
        """
        Queue the join snapshot as one batch.

        Raises:
            DeliveryError: If the channel is closed or its buffer is full
        """
        batch = list(payloads)
        if batch:
            self._put(batch)

    def deliver(self, payload: str) -> None:
        """
        Queue a payload for this client.

        Raises:
            DeliveryError: If the channel is closed or its buffer is full
        """
        self._put(payload)

    def _put(self, item) -> None:
        if self._closed:
            raise DeliveryError(f"Outward channel of client {self.client_id} is closed")
        try:
            self._queue.put_nowait(item)
        except asyncio.QueueFull as e:
            raise DeliveryError(f"Outward buffer of client {self.client_id} is full") from e

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._queue.put_nowait(_CLOSED)
        except asyncio.QueueFull:
            # Writer is behind; it stops at the next check of `closed`.
            pass

    async def drain(self, send: Callable[[str], Awaitable[None]]) -> None:
        """
        Write queued payloads to the transport until the channel is closed.

        Args:
            send: Transport primitive delivering one text frame to the client
        """
        while True:
            item = await self._queue.get()
            if item is _CLOSED:
                return
            if isinstance(item, list):
                for payload in item:
                    await send(payload)
            else:
                await send(item)
            if self._closed and self._queue.empty():
                return
