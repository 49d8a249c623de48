"""
/radio/events WebSocket 测试

- TestClient 在独立线程中运行应用，事件通过 asyncio.run 直接投递到总线
"""
import asyncio

import pytest
from fastapi.testclient import TestClient

from main import app
from trend_radio.core.config import settings
from trend_radio.deps.radio import get_event_bus
from trend_radio.services.radio.events import RadioEventBus

EVENTS_PATH = "/api/v1/radio/events"


@pytest.fixture
def ws_client(event_bus: RadioEventBus):
    app.dependency_overrides[get_event_bus] = lambda: event_bus
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_ping_gets_pong(ws_client):
    with ws_client.websocket_connect(EVENTS_PATH) as ws:
        ws.send_text("ping")
        assert ws.receive_json()["type"] == "pong"

        ws.send_json({"type": "ping"})
        assert ws.receive_json()["type"] == "pong"


def test_bus_events_are_relayed(ws_client, event_bus):
    with ws_client.websocket_connect(EVENTS_PATH) as ws:
        ws.send_text("ping")
        ws.receive_json()

        asyncio.run(
            event_bus.broadcast_configuration_reload(
                "error_recovery", "high", source="health-monitor", correlation_id="corr-1"
            )
        )

        message = ws.receive_json()
        assert message["type"] == "radioConfigurationReloadRequired"
        assert message["data"]["reason"] == "error_recovery"
        assert message["data"]["priority"] == "high"
        assert message["data"]["correlationId"] == "corr-1"


def test_idle_connection_gets_heartbeat(ws_client, monkeypatch):
    monkeypatch.setattr(settings, "RADIO_EVENTS_HEARTBEAT_SECONDS", 0)

    with ws_client.websocket_connect(EVENTS_PATH) as ws:
        message = ws.receive_json()
        assert message["type"] == "heartbeat"
        assert isinstance(message["data"]["timestamp"], int)


def test_disconnect_unsubscribes(ws_client, event_bus):
    with ws_client.websocket_connect(EVENTS_PATH) as ws:
        ws.send_text("ping")
        ws.receive_json()
        assert len(event_bus._listeners) == 1

    for _ in range(30):
        if not event_bus._listeners:
            break
        asyncio.run(asyncio.sleep(0.1))
    assert event_bus._listeners == []
