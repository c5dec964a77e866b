"""End-to-end tests through the WebSocket endpoint."""

import time

import pytest
from fastapi.testclient import TestClient
from sse_starlette.sse import EventSourceResponse

from synchub.main import create_app
from synchub.models.event import JoinEvent
from tests.conftest import RecordingOutward


@pytest.fixture
def client():
    with TestClient(create_app()) as test_client:
        yield test_client


def wait_for_clients(client, count, timeout=2.0):
    """Poll /state until `count` clients are registered."""
    deadline = time.monotonic() + timeout
    while True:
        clients = client.get("/state").json()["clients"]
        if len(clients) == count:
            return clients
        if time.monotonic() > deadline:
            raise AssertionError(f"expected {count} clients, got {clients}")
        time.sleep(0.01)


def test_root_and_health(client):
    assert client.get("/").json()["endpoints"]["websocket"] == "/ws"

    health = client.get("/health").json()
    assert health == {
        "status": "healthy",
        "connected_clients": 0,
        "applied_events": 0,
        "log_observers": 0,
        "next_id": 0,
    }


def test_update_and_leave_scenario(client):
    """0 sets "hello": 1 hears it, 0 does not; 1 leaves: 0 hears Remove(1)."""
    with client.websocket_connect("/ws") as ws0:
        wait_for_clients(client, 1)
        with client.websocket_connect("/ws") as ws1:
            assert ws1.receive_json() == {"SetText": [0, ""]}

            ws0.send_text("hello")
            assert ws1.receive_json() == {"SetText": [0, "hello"]}

        # The next thing client 0 hears is the departure, never its own echo.
        assert ws0.receive_json() == {"Remove": 1}
        assert client.get("/state").json() == {"clients": [{"id": 0, "text": "hello"}]}


def test_late_joiner_gets_snapshot_first(client):
    with client.websocket_connect("/ws") as ws0:
        wait_for_clients(client, 1)
        with client.websocket_connect("/ws") as ws1:
            assert ws1.receive_json() == {"SetText": [0, ""]}
            ws0.send_text("hello")
            assert ws1.receive_json() == {"SetText": [0, "hello"]}

            with client.websocket_connect("/ws") as ws2:
                snapshot = [ws2.receive_json(), ws2.receive_json()]
                assert sorted(snapshot, key=lambda m: m["SetText"][0]) == [
                    {"SetText": [0, "hello"]},
                    {"SetText": [1, ""]},
                ]

                ws1.send_text("live")
                assert ws2.receive_json() == {"SetText": [1, "live"]}
                assert ws0.receive_json() == {"SetText": [1, "live"]}


def test_updates_keep_arrival_order(client):
    with client.websocket_connect("/ws") as ws_a:
        wait_for_clients(client, 1)
        with client.websocket_connect("/ws") as ws_b:
            ws_b.receive_json()
            wait_for_clients(client, 2)
            with client.websocket_connect("/ws") as observer:
                observer.receive_json()
                observer.receive_json()

                ws_a.send_text("x")
                ws_a.send_text("y")
                assert ws_b.receive_json() == {"SetText": [0, "x"]}
                assert ws_b.receive_json() == {"SetText": [0, "y"]}
                ws_b.send_text("z")

                assert [observer.receive_json() for _ in range(3)] == [
                    {"SetText": [0, "x"]},
                    {"SetText": [0, "y"]},
                    {"SetText": [1, "z"]},
                ]


def test_binary_frames_are_ignored(client):
    with client.websocket_connect("/ws") as ws0:
        wait_for_clients(client, 1)
        with client.websocket_connect("/ws") as ws1:
            ws1.receive_json()

            ws0.send_bytes(b"\x00\xff")
            ws0.send_text("text")
            assert ws1.receive_json() == {"SetText": [0, "text"]}


def test_ids_are_not_reused(client):
    with client.websocket_connect("/ws"):
        wait_for_clients(client, 1)
    wait_for_clients(client, 0)

    with client.websocket_connect("/ws"):
        clients = wait_for_clients(client, 1)
        assert clients == [{"id": 1, "text": ""}]
    assert client.get("/health").json()["next_id"] == 2


@pytest.mark.asyncio
async def test_logs_endpoint_streams_applied_events():
    app = create_app()
    endpoint = next(route.endpoint for route in app.routes if getattr(route, "path", None) == "/logs")

    response = await endpoint()
    assert isinstance(response, EventSourceResponse)
    assert app.state.event_log.subscriber_count == 1

    app.state.router.apply(JoinEvent(0, RecordingOutward()))
    stream = response.body_iterator
    assert await stream.__anext__() == {"event": "log", "data": {"type": "join", "id": 0}}
    await stream.aclose()
    assert app.state.event_log.subscriber_count == 0
