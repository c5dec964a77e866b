"""Event router: the single serialization point for all state mutation."""

import asyncio
import logging
from typing import List, Optional, Tuple

from synchub.models.client_state import ClientState
from synchub.models.event import BaseEvent, EventType, JoinEvent, LeaveEvent, UpdateEvent
from synchub.core.event_log import EventLog
from synchub.core.exceptions import DeliveryError, RegistryError
from synchub.core.registry import Registry

logger = logging.getLogger(__name__)


class EventRouter:
    """
    Applies client events to the registry one at a time and fans out broadcasts.

    Every connection pushes into one FIFO queue and a single consumer task
    drains it, so broadcast order is application order and the registry
    needs no locking of its own.
    """

    def __init__(self, registry: Registry, event_log: Optional[EventLog] = None, maxsize: int = 0):
        """
        Initialize the router.

        Args:
            registry: Registry owned exclusively by this router
            event_log: Optional observer feed receiving every applied event
            maxsize: Bound of the hand-off queue, 0 for unbounded
        """
        self.registry = registry
        self.event_log = event_log
        self.applied_count = 0
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def submit(self, event: BaseEvent) -> None:
        """Enqueue an event, waiting for room when the queue is bounded."""
        await self._queue.put(event)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def wait_idle(self) -> None:
        """Wait until every event submitted so far has been applied."""
        await self._queue.join()

    def snapshot(self, exclude: Optional[int] = None) -> List[Tuple[int, str]]:
        # Runs on the router's event loop; `apply` never yields, so no
        # mutation can be half applied here.
        return self.registry.snapshot(exclude)

    async def _run(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                self.apply(event)
            except Exception:
                logger.exception(f"Failed to apply {event!r}")
            finally:
                self._queue.task_done()

    def apply(self, event: BaseEvent) -> None:
        """
        Apply a single event to the registry and broadcast its effect.

        Args:
            event: Join, Update or Leave event
        """
        if event.type == EventType.JOIN:
            applied = self._apply_join(event)
        elif event.type == EventType.UPDATE:
            applied = self._apply_update(event)
        elif event.type == EventType.LEAVE:
            applied = self._apply_leave(event)
        else:
            raise ValueError(f"Unknown event type: {event.type}")

        if not applied:
            logger.debug(f"Dropped stale {event!r}")
            return

        self.applied_count += 1
        logger.debug(f"Applied {event!r}")
        if self.event_log is not None:
            self.event_log.publish(event.to_dict())

    def _apply_join(self, event: JoinEvent) -> bool:
        try:
            self.registry.insert(event.client_id, ClientState(event.client_id, event.outward))
        except RegistryError as e:
            logger.error(f"Rejected join: {str(e)}")
            return False

        # The joining client learns about everyone else; nobody learns about it
        # until it sets some text.
        snapshot = [
            UpdateEvent(client_id, text).to_wire()
            for client_id, text in self.registry.snapshot(exclude=event.client_id)
        ]
        try:
            event.outward.preload(snapshot)
        except Exception as e:
            logger.warning(f"Dropped snapshot for client {event.client_id}: {str(e)}")
        logger.info(f"Client {event.client_id} joined ({len(self.registry)} connected)")
        return True

    def _apply_update(self, event: UpdateEvent) -> bool:
        if not self.registry.update(event.client_id, event.text):
            return False
        self._broadcast(event.to_wire(), exclude=event.client_id)
        return True

    def _apply_leave(self, event: LeaveEvent) -> bool:
        state = self.registry.get(event.client_id)
        if not self.registry.remove(event.client_id):
            return False
        self._broadcast(event.to_wire())
        state.outward.close()
        logger.info(f"Client {event.client_id} left ({len(self.registry)} connected)")
        return True

    def _broadcast(self, payload: str, exclude: Optional[int] = None) -> int:
        delivered = 0
        for state in self.registry.targets(exclude=exclude):
            if self._deliver(state, payload):
                delivered += 1
        return delivered

    @staticmethod
    def _deliver(state: ClientState, payload: str) -> bool:
        # One target failing must never cut the fan-out short.
        try:
            state.outward.deliver(payload)
            return True
        except DeliveryError as e:
            logger.warning(f"Dropped delivery: {str(e)}")
        except Exception:
            logger.exception(f"Unexpected failure delivering to client {state.client_id}")
        return False
