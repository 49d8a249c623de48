"""
Admin API 路由包
"""
from trend_radio.api.v1.admin.radio_health_route import router as radio_health_router
from trend_radio.api.v1.admin.radio_settings_route import router as radio_settings_router

__all__ = [
    "radio_health_router",
    "radio_settings_router",
]
