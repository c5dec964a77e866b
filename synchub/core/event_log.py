"""Fan-out of applied events to HTTP observers."""

import asyncio
import logging
from typing import Any, AsyncIterator, Dict, Set

logger = logging.getLogger(__name__)


class EventLog:
    """
    Broadcasts every applied event to the subscribed observer queues.

    Publishing never blocks the router: an observer that falls behind loses
    its oldest entries.
    """

    def __init__(self, maxsize: int = 256):
        self.maxsize = maxsize
        self._subscribers: Set[asyncio.Queue] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.maxsize)
        self._subscribers.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        self._subscribers.discard(queue)

    def publish(self, entry: Dict[str, Any]) -> None:
        for queue in self._subscribers:
            if queue.full():
                queue.get_nowait()
            queue.put_nowait(entry)

    async def stream(self, queue: asyncio.Queue) -> AsyncIterator[Dict[str, Any]]:
        """
        Yield server-sent events from a subscribed queue.

        Args:
            queue: Queue previously returned by `subscribe`
        """
        try:
            while True:
                entry = await queue.get()
                yield {"event": "log", "data": entry}
        except asyncio.CancelledError:
            logger.debug("Event log observer went away")
            raise
        finally:
            self.unsubscribe(queue)
