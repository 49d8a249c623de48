from .radio_settings_repository import RadioSettingsRepository

__all__ = [
    "RadioSettingsRepository",
]
