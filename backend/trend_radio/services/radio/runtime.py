"""
Process-wide wiring of the radio components.

`radio_runtime` is built once from `settings`; API dependencies read its
parts, and tests swap them through dependency overrides or by building their
own `RadioRuntime`.
"""

from __future__ import annotations

from dataclasses import dataclass

from trend_radio.core.config import Settings, settings
from trend_radio.services.radio.events import RadioEventBus
from trend_radio.services.radio.fallback import (
    FallbackManager,
    FallbackOptions,
    FallbackSourceAggregator,
    FallbackSourceConfig,
)
from trend_radio.services.radio.health_monitor import HealthMonitor, HealthMonitorConfig
from trend_radio.services.radio.settings_service import (
    load_active_stream_url,
    load_persisted_fallback_url,
)
from trend_radio.services.radio.stream_prober import StreamProber


@dataclass
class RadioRuntime:
    event_bus: RadioEventBus
    prober: StreamProber
    fallback_manager: FallbackManager
    health_monitor: HealthMonitor

    @classmethod
    def from_settings(cls, config: Settings) -> RadioRuntime:
        event_bus = RadioEventBus()
        prober = StreamProber(
            timeout=config.RADIO_PROBE_TIMEOUT_SECONDS,
            user_agent=config.RADIO_PROBE_USER_AGENT,
        )
        aggregator = FallbackSourceAggregator(
            FallbackSourceConfig.from_settings(config),
            persisted_fallback_loader=load_persisted_fallback_url,
        )
        fallback_manager = FallbackManager(
            aggregator,
            prober,
            FallbackOptions(test_timeout=config.RADIO_PROBE_TIMEOUT_SECONDS),
        )
        health_monitor = HealthMonitor(
            fallback_manager,
            prober,
            event_bus,
            primary_url_loader=load_active_stream_url,
            config=HealthMonitorConfig.from_settings(config),
            max_history=config.HEALTH_MAX_HISTORY,
        )
        return cls(
            event_bus=event_bus,
            prober=prober,
            fallback_manager=fallback_manager,
            health_monitor=health_monitor,
        )


radio_runtime = RadioRuntime.from_settings(settings)
