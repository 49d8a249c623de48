from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from trend_radio.core.database import get_db
from trend_radio.repositories import RadioSettingsRepository
from trend_radio.services.radio.events import RadioEventBus
from trend_radio.services.radio.fallback import FallbackManager
from trend_radio.services.radio.health_monitor import HealthMonitor
from trend_radio.services.radio.runtime import radio_runtime
from trend_radio.services.radio.settings_service import RadioSettingsService
from trend_radio.services.radio.stream_prober import StreamProber


def get_event_bus() -> RadioEventBus:
    return radio_runtime.event_bus


def get_prober() -> StreamProber:
    return radio_runtime.prober


def get_fallback_manager() -> FallbackManager:
    return radio_runtime.fallback_manager


def get_health_monitor() -> HealthMonitor:
    return radio_runtime.health_monitor


def get_radio_settings_service(
    db: AsyncSession = Depends(get_db),
    event_bus: RadioEventBus = Depends(get_event_bus),
    prober: StreamProber = Depends(get_prober),
) -> RadioSettingsService:
    return RadioSettingsService(RadioSettingsRepository(db), event_bus, prober)
