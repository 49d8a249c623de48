from .base import Base
from .radio_settings import RadioSettings

__all__ = [
    "Base",
    "RadioSettings",
]
