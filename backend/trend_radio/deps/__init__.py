from .admin import AdminIdentity, get_current_admin
from .radio import (
    get_event_bus,
    get_fallback_manager,
    get_health_monitor,
    get_prober,
    get_radio_settings_service,
)

__all__ = [
    "AdminIdentity",
    "get_current_admin",
    "get_event_bus",
    "get_fallback_manager",
    "get_health_monitor",
    "get_prober",
    "get_radio_settings_service",
]
