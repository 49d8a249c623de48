"""
Admin endpoints over the health monitor and the fallback manager.
"""

from fastapi import APIRouter, Depends, Query

from trend_radio.deps.admin import AdminIdentity, get_current_admin
from trend_radio.deps.radio import get_fallback_manager, get_health_monitor
from trend_radio.schemas.radio import (
    FallbackStatusResponse,
    FallbackValidationResponse,
    HealthCheckResultRead,
    HealthMonitorConfigRead,
    HealthMonitorConfigUpdate,
    HealthReportResponse,
    MonitorStateResponse,
    RotationStateRead,
    SystemHealthStatusRead,
)
from trend_radio.services.radio.fallback import FallbackManager
from trend_radio.services.radio.health_monitor import HealthMonitor

router = APIRouter(prefix="/admin/radio", tags=["Admin - Radio Health"])


def _monitor_state(monitor: HealthMonitor, message: str) -> MonitorStateResponse:
    return MonitorStateResponse(is_active=monitor.is_monitoring_active(), message=message)


# ===== health =====


@router.get("/health", response_model=SystemHealthStatusRead)
async def get_health_status(
    _admin: AdminIdentity = Depends(get_current_admin),
    monitor: HealthMonitor = Depends(get_health_monitor),
) -> SystemHealthStatusRead:
    return SystemHealthStatusRead.model_validate(monitor.get_health_status())


@router.get("/health/report", response_model=HealthReportResponse)
async def get_health_report(
    _admin: AdminIdentity = Depends(get_current_admin),
    monitor: HealthMonitor = Depends(get_health_monitor),
) -> HealthReportResponse:
    report = monitor.get_health_report()
    return HealthReportResponse(
        status=SystemHealthStatusRead.model_validate(report["status"]),
        is_active=report["is_active"],
        config=HealthMonitorConfigRead.model_validate(report["config"]),
        recent_history=[HealthCheckResultRead.model_validate(r) for r in report["recent_history"]],
        recommendations=report["recommendations"],
    )


@router.get("/health/history", response_model=list[HealthCheckResultRead])
async def get_health_history(
    limit: int | None = Query(None, ge=1),
    _admin: AdminIdentity = Depends(get_current_admin),
    monitor: HealthMonitor = Depends(get_health_monitor),
) -> list[HealthCheckResultRead]:
    return [HealthCheckResultRead.model_validate(r) for r in monitor.get_health_history(limit)]


@router.delete("/health/history", response_model=MonitorStateResponse)
async def clear_health_history(
    _admin: AdminIdentity = Depends(get_current_admin),
    monitor: HealthMonitor = Depends(get_health_monitor),
) -> MonitorStateResponse:
    monitor.clear_health_history()
    return _monitor_state(monitor, "Health check history cleared")


@router.post("/health/check", response_model=SystemHealthStatusRead)
async def force_health_check(
    _admin: AdminIdentity = Depends(get_current_admin),
    monitor: HealthMonitor = Depends(get_health_monitor),
) -> SystemHealthStatusRead:
    return SystemHealthStatusRead.model_validate(await monitor.force_health_check())


@router.post("/health/start", response_model=MonitorStateResponse)
async def start_health_monitoring(
    _admin: AdminIdentity = Depends(get_current_admin),
    monitor: HealthMonitor = Depends(get_health_monitor),
) -> MonitorStateResponse:
    if monitor.is_monitoring_active():
        return _monitor_state(monitor, "Health monitoring is already active")
    await monitor.start()
    return _monitor_state(monitor, "Health monitoring started")


@router.post("/health/stop", response_model=MonitorStateResponse)
async def stop_health_monitoring(
    _admin: AdminIdentity = Depends(get_current_admin),
    monitor: HealthMonitor = Depends(get_health_monitor),
) -> MonitorStateResponse:
    if not monitor.is_monitoring_active():
        return _monitor_state(monitor, "Health monitoring is not active")
    await monitor.stop()
    return _monitor_state(monitor, "Health monitoring stopped")


@router.patch("/health/config", response_model=HealthMonitorConfigRead)
async def update_health_config(
    payload: HealthMonitorConfigUpdate,
    _admin: AdminIdentity = Depends(get_current_admin),
    monitor: HealthMonitor = Depends(get_health_monitor),
) -> HealthMonitorConfigRead:
    config = await monitor.update_health_config(payload.model_dump(exclude_none=True))
    return HealthMonitorConfigRead.model_validate(config)


@router.post("/health/reset", response_model=MonitorStateResponse)
async def reset_health_state(
    _admin: AdminIdentity = Depends(get_current_admin),
    monitor: HealthMonitor = Depends(get_health_monitor),
) -> MonitorStateResponse:
    await monitor.reset_health_state()
    return _monitor_state(monitor, "Health monitoring state reset")


# ===== fallback =====


@router.get("/fallback", response_model=FallbackStatusResponse)
async def get_fallback_status(
    _admin: AdminIdentity = Depends(get_current_admin),
    manager: FallbackManager = Depends(get_fallback_manager),
) -> FallbackStatusResponse:
    return FallbackStatusResponse.model_validate(await manager.get_fallback_status())


@router.post("/fallback/validate", response_model=FallbackValidationResponse)
async def validate_fallback_urls(
    _admin: AdminIdentity = Depends(get_current_admin),
    manager: FallbackManager = Depends(get_fallback_manager),
) -> FallbackValidationResponse:
    return FallbackValidationResponse.model_validate(await manager.validate_all_fallback_urls())


@router.post("/fallback/reset", response_model=RotationStateRead)
async def reset_fallback_rotation(
    _admin: AdminIdentity = Depends(get_current_admin),
    manager: FallbackManager = Depends(get_fallback_manager),
) -> RotationStateRead:
    await manager.reset_rotation_state()
    return RotationStateRead.model_validate(manager.get_rotation_state().to_dict())


@router.post("/fallback/cache/clear", response_model=FallbackStatusResponse)
async def clear_fallback_cache(
    _admin: AdminIdentity = Depends(get_current_admin),
    manager: FallbackManager = Depends(get_fallback_manager),
) -> FallbackStatusResponse:
    manager.clear_test_cache()
    return FallbackStatusResponse.model_validate(await manager.get_fallback_status())
