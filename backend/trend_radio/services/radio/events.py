"""
Radio configuration events.

An in-process bus that players (through the `/radio/events` WebSocket) and
internal components subscribe to. Payloads are pydantic models dumped with
camelCase aliases, which is the wire shape players expect.
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable, Iterable
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from trend_radio.core.logging import logger
from trend_radio.utils.time_utils import Datetime


class RadioEventName(str, Enum):
    SETTINGS_UPDATED = "radioSettingsUpdated"
    STREAM_URL_CHANGED = "radioStreamUrlChanged"
    METADATA_URL_CHANGED = "radioMetadataUrlChanged"
    STATION_INFO_CHANGED = "radioStationInfoChanged"
    CONFIGURATION_RELOAD_REQUIRED = "radioConfigurationReloadRequired"
    HEALTH_STATUS_UPDATE = "radioHealthStatusUpdate"


ReloadReason = Literal["settings_updated", "stream_changed", "manual_refresh", "error_recovery"]
ReloadPriority = Literal["high", "normal", "low"]

STATION_FIELDS = (
    "station_name",
    "station_description",
    "facebook_url",
    "twitter_url",
    "instagram_url",
    "youtube_url",
)
CONFIGURATION_FIELDS = ("stream_url", "metadata_url", "backup_stream_url", *STATION_FIELDS)


class RadioEvent(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    timestamp: int = Field(default_factory=Datetime.now_ms)
    source: str = "unknown"
    correlation_id: str | None = None

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class SettingsUpdatedEvent(RadioEvent):
    configuration: dict[str, Any]
    changed_fields: list[str]
    previous_values: dict[str, Any] | None = None


class StreamUrlChangedEvent(RadioEvent):
    stream_url: str
    previous_stream_url: str | None = None
    requires_reconnection: bool = True


class MetadataUrlChangedEvent(RadioEvent):
    metadata_url: str | None = None
    previous_metadata_url: str | None = None


class SocialUrls(BaseModel):
    facebook: str | None = None
    twitter: str | None = None
    instagram: str | None = None
    youtube: str | None = None


class StationInfo(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str | None = None
    description: str | None = None
    social_urls: SocialUrls = Field(default_factory=SocialUrls)


class StationInfoChangedEvent(RadioEvent):
    station_info: StationInfo


class ConfigurationReloadEvent(RadioEvent):
    reason: ReloadReason = "manual_refresh"
    priority: ReloadPriority = "normal"


class HealthStatisticsPayload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    total_checks: int = 0
    successful_checks: int = 0
    failed_checks: int = 0
    average_response_time_ms: int = 0
    uptime_percentage: int = 0


class HealthStatusUpdateEvent(RadioEvent):
    status: str
    primary_url: str | None = None
    active_fallback: str | None = None
    statistics: HealthStatisticsPayload = Field(default_factory=HealthStatisticsPayload)
    recommendations: list[str] = Field(default_factory=list)


RadioEventListener = Callable[[RadioEventName, RadioEvent], Awaitable[None] | None]


class RadioEventBus:
    def __init__(self) -> None:
        self._listeners: list[tuple[RadioEventListener, frozenset[RadioEventName] | None]] = []

    def subscribe(
        self,
        listener: RadioEventListener,
        names: Iterable[RadioEventName] | None = None,
    ) -> Callable[[], None]:
        """Register `listener` (all events when `names` is None); returns the unsubscribe callable."""
        entry = (listener, frozenset(names) if names is not None else None)
        self._listeners.append(entry)

        def unsubscribe() -> None:
            if entry in self._listeners:
                self._listeners.remove(entry)

        return unsubscribe

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def _targets(self, name: RadioEventName) -> list[RadioEventListener]:
        return [
            listener
            for listener, names in list(self._listeners)
            if names is None or name in names
        ]

    @staticmethod
    async def _deliver(listener: RadioEventListener, name: RadioEventName, payload: RadioEvent) -> None:
        result = listener(name, payload)
        if inspect.isawaitable(result):
            await result

    async def broadcast(self, name: RadioEventName, payload: RadioEvent) -> None:
        for listener in self._targets(name):
            await self._deliver(listener, name, payload)

    async def safe_broadcast(
        self,
        name: RadioEventName,
        payload: RadioEvent,
        *,
        debug: bool = False,
    ) -> bool:
        """Deliver to every listener; a failing listener is logged and skipped."""
        if debug:
            logger.debug(f"[RadioEvents] broadcasting {name.value} from {payload.source}")
        delivered = True
        for listener in self._targets(name):
            try:
                await self._deliver(listener, name, payload)
            except Exception as exc:
                delivered = False
                logger.warning(f"[RadioEvents] listener failed on {name.value}: {exc}")
        return delivered

    async def broadcast_configuration_reload(
        self,
        reason: ReloadReason = "manual_refresh",
        priority: ReloadPriority = "normal",
        *,
        source: str = "unknown",
        correlation_id: str | None = None,
        debug: bool = False,
    ) -> bool:
        return await self.safe_broadcast(
            RadioEventName.CONFIGURATION_RELOAD_REQUIRED,
            ConfigurationReloadEvent(
                reason=reason,
                priority=priority,
                source=source,
                correlation_id=correlation_id,
            ),
            debug=debug,
        )

    async def broadcast_settings_update(
        self,
        previous: dict[str, Any] | None,
        current: dict[str, Any],
        *,
        source: str = "unknown",
        correlation_id: str | None = None,
        debug: bool = False,
    ) -> list[str]:
        """
        Announce a settings change and fan out the specific events.

        Emits SETTINGS_UPDATED, then STREAM_URL_CHANGED / METADATA_URL_CHANGED /
        STATION_INFO_CHANGED for the fields that changed, then a
        `settings_updated` reload request. Returns the changed field names.
        """
        previous = previous or {}
        changed = [f for f in CONFIGURATION_FIELDS if previous.get(f) != current.get(f)]
        common = {"source": source, "correlation_id": correlation_id}

        await self.safe_broadcast(
            RadioEventName.SETTINGS_UPDATED,
            SettingsUpdatedEvent(
                configuration={f: current.get(f) for f in CONFIGURATION_FIELDS},
                changed_fields=changed,
                previous_values={f: previous.get(f) for f in changed} if previous else None,
                **common,
            ),
            debug=debug,
        )

        if "stream_url" in changed and current.get("stream_url"):
            await self.safe_broadcast(
                RadioEventName.STREAM_URL_CHANGED,
                StreamUrlChangedEvent(
                    stream_url=current["stream_url"],
                    previous_stream_url=previous.get("stream_url"),
                    **common,
                ),
                debug=debug,
            )

        if "metadata_url" in changed:
            await self.safe_broadcast(
                RadioEventName.METADATA_URL_CHANGED,
                MetadataUrlChangedEvent(
                    metadata_url=current.get("metadata_url"),
                    previous_metadata_url=previous.get("metadata_url"),
                    **common,
                ),
                debug=debug,
            )

        if any(f in STATION_FIELDS for f in changed):
            info = StationInfo(
                name=current.get("station_name"),
                description=current.get("station_description"),
                social_urls=SocialUrls(
                    facebook=current.get("facebook_url"),
                    twitter=current.get("twitter_url"),
                    instagram=current.get("instagram_url"),
                    youtube=current.get("youtube_url"),
                ),
            )
            await self.safe_broadcast(
                RadioEventName.STATION_INFO_CHANGED,
                StationInfoChangedEvent(station_info=info, **common),
                debug=debug,
            )

        await self.broadcast_configuration_reload(
            "settings_updated", "normal", source=source, correlation_id=correlation_id, debug=debug
        )
        return changed
