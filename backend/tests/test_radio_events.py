import pytest

from trend_radio.services.radio.events import (
    ConfigurationReloadEvent,
    RadioEventBus,
    RadioEventName,
)

BASE = {
    "stream_url": "https://a.example.com/live",
    "metadata_url": None,
    "backup_stream_url": None,
    "station_name": "Trend Ankara Radio",
    "station_description": None,
    "facebook_url": None,
    "twitter_url": None,
    "instagram_url": None,
    "youtube_url": None,
}


def test_reload_payload_uses_camel_case():
    wire = ConfigurationReloadEvent(
        reason="error_recovery", priority="high", source="health-monitor", correlation_id="c-1"
    ).to_wire()
    assert set(wire) == {"reason", "priority", "timestamp", "source", "correlationId"}
    assert wire["correlationId"] == "c-1"
    assert isinstance(wire["timestamp"], int)


@pytest.mark.asyncio
async def test_subscribe_filters_and_unsubscribes(event_bus: RadioEventBus):
    reloads: list[str] = []
    unsubscribe = event_bus.subscribe(
        lambda name, payload: reloads.append(payload.reason),
        [RadioEventName.CONFIGURATION_RELOAD_REQUIRED],
    )
    assert event_bus.listener_count == 1

    await event_bus.broadcast_configuration_reload("manual_refresh")
    await event_bus.broadcast_settings_update(None, BASE)
    assert reloads == ["manual_refresh", "settings_updated"]

    unsubscribe()
    unsubscribe()
    assert event_bus.listener_count == 0
    await event_bus.broadcast_configuration_reload("manual_refresh")
    assert len(reloads) == 2


@pytest.mark.asyncio
async def test_async_listeners_are_awaited(event_bus: RadioEventBus):
    received: list[str] = []

    async def listener(name, payload):
        received.append(name.value)

    event_bus.subscribe(listener)
    assert await event_bus.broadcast_configuration_reload()
    assert received == ["radioConfigurationReloadRequired"]


@pytest.mark.asyncio
async def test_safe_broadcast_isolates_failing_listener(event_bus: RadioEventBus):
    received: list[str] = []

    def broken(name, payload):
        raise RuntimeError("listener down")

    event_bus.subscribe(broken)
    event_bus.subscribe(lambda name, payload: received.append(name.value))

    delivered = await event_bus.safe_broadcast(
        RadioEventName.CONFIGURATION_RELOAD_REQUIRED, ConfigurationReloadEvent()
    )
    assert delivered is False
    assert received == ["radioConfigurationReloadRequired"]


@pytest.mark.asyncio
async def test_broadcast_propagates_listener_failure(event_bus: RadioEventBus):
    def broken(name, payload):
        raise RuntimeError("listener down")

    event_bus.subscribe(broken)
    with pytest.raises(RuntimeError):
        await event_bus.broadcast(RadioEventName.CONFIGURATION_RELOAD_REQUIRED, ConfigurationReloadEvent())


@pytest.mark.asyncio
async def test_settings_update_fans_out_by_changed_fields(event_bus: RadioEventBus, recorded_events):
    current = {
        **BASE,
        "stream_url": "https://b.example.com/live",
        "metadata_url": "https://b.example.com/status-json.xsl",
        "facebook_url": "https://facebook.com/trend",
    }

    changed = await event_bus.broadcast_settings_update(BASE, current, source="admin-settings")

    assert changed == ["stream_url", "metadata_url", "facebook_url"]
    assert [name for name, _ in recorded_events] == [
        "radioSettingsUpdated",
        "radioStreamUrlChanged",
        "radioMetadataUrlChanged",
        "radioStationInfoChanged",
        "radioConfigurationReloadRequired",
    ]

    updated = recorded_events[0][1].to_wire()
    assert updated["changedFields"] == changed
    assert updated["previousValues"]["stream_url"] == BASE["stream_url"]

    stream_changed = recorded_events[1][1].to_wire()
    assert stream_changed["requiresReconnection"] is True
    assert stream_changed["previousStreamUrl"] == BASE["stream_url"]

    station = recorded_events[3][1].to_wire()
    assert station["stationInfo"]["socialUrls"]["facebook"] == "https://facebook.com/trend"

    reload_event = recorded_events[-1][1]
    assert reload_event.reason == "settings_updated"
    assert reload_event.source == "admin-settings"


@pytest.mark.asyncio
async def test_settings_update_without_changes_only_announces_update(event_bus, recorded_events):
    changed = await event_bus.broadcast_settings_update(BASE, dict(BASE))

    assert changed == []
    assert [name for name, _ in recorded_events] == [
        "radioSettingsUpdated",
        "radioConfigurationReloadRequired",
    ]
