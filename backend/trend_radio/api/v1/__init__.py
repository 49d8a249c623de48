"""
v1 路由聚合
"""

from trend_radio.api.v1.admin import radio_health_router as admin_radio_health_router
from trend_radio.api.v1.admin import radio_settings_router as admin_radio_settings_router
from trend_radio.api.v1.radio_route import router as radio_router

__all__ = [
    "admin_radio_health_router",
    "admin_radio_settings_router",
    "radio_router",
]
