# tests/test_routes/test_realtime_routes.py
import time
from types import SimpleNamespace

import pytest
from fastapi import WebSocketDisconnect

from stockroom.main import app
from stockroom.routes.websockets import websocket_endpoint
from stockroom.services.websockets.manager import ConnectionManager
from tests.mocks.fake_websocket import FakeClientSocket


def wait_until(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            return False
        time.sleep(0.01)
    return True


def test_health(test_client):
    response = test_client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_realtime_health_without_change_feed(test_client):
    app.state.change_feed = None

    response = test_client.get("/health/realtime")

    assert response.json() == {
        "connections": 0,
        "change_feed": {"connected": False, "enabled": False},
    }


def test_websocket_receives_welcome_and_registers(test_client):
    manager = app.state.connection_manager

    with test_client.websocket_connect("/ws") as websocket:
        welcome = websocket.receive_json()
        assert welcome["type"] == "connection"
        assert welcome["message"] == "WebSocket connection established"
        # Registration follows the welcome frame on the server side
        assert wait_until(lambda: manager.connection_count == 1)

        websocket.send_text('{"type": "pong"}')


def test_unknown_route_uses_error_body(test_client):
    response = test_client.get("/does-not-exist")
    assert response.status_code == 404
    assert response.json() == {"error": "Not Found"}


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [WebSocketDisconnect(code=1000), RuntimeError("socket read failed")])
async def test_receive_failure_unregisters_connection(error):
    manager = ConnectionManager()
    fake_app = SimpleNamespace(state=SimpleNamespace(connection_manager=manager))
    socket = FakeClientSocket(fake_app, incoming=['{"type": "pong"}'], error=error)

    if isinstance(error, WebSocketDisconnect):
        await websocket_endpoint(socket)
    else:
        with pytest.raises(RuntimeError):
            await websocket_endpoint(socket)

    assert manager.connection_count == 0
    await manager.broadcast({"type": "change"})
    assert socket.frames_of_type("change") == []
