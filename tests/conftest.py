"""Shared fixtures for hub tests."""

import asyncio

import pytest
import pytest_asyncio

from synchub.core.exceptions import DeliveryError
from synchub.core.registry import Registry
from synchub.core.router import EventRouter
from synchub.core.event_log import EventLog


class RecordingOutward:
    """Outward stand-in that records every payload it is handed."""

    def __init__(self, fail: bool = False):
        self.payloads = []
        self.closed = False
        self.fail = fail

    def preload(self, payloads) -> None:
        if self.fail or self.closed:
            raise DeliveryError("peer is gone")
        self.payloads.extend(payloads)

    def deliver(self, payload: str) -> None:
        if self.fail or self.closed:
            raise DeliveryError("peer is gone")
        self.payloads.append(payload)

    def close(self) -> None:
        self.closed = True


async def wait_until(predicate, timeout: float = 1.0) -> None:
    """Poll `predicate` until it holds or the timeout expires."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


@pytest.fixture
def registry():
    """Empty registry for testing."""
    return Registry()


@pytest.fixture
def event_log():
    return EventLog(maxsize=8)


@pytest.fixture
def router(registry, event_log):
    """Router that is not running; tests call `apply` directly."""
    return EventRouter(registry, event_log=event_log)


@pytest_asyncio.fixture
async def running_router(registry, event_log):
    """Router with its consumer task running."""
    router = EventRouter(registry, event_log=event_log)
    router.start()
    yield router
    await router.stop()
