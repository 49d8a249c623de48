from uuid import uuid4

from fastapi import APIRouter, Depends, Query

from trend_radio.deps.admin import AdminIdentity, get_current_admin
from trend_radio.deps.radio import get_radio_settings_service
from trend_radio.schemas.radio import (
    RadioSettingsRead,
    RadioSettingsUpdate,
    RadioSettingsUpdateResponse,
    StreamTestRequest,
    StreamTestResponse,
)
from trend_radio.services.radio.settings_service import SUCCESS_MESSAGE, RadioSettingsService

router = APIRouter(prefix="/admin/radio/settings", tags=["Admin - Radio Settings"])


@router.get("", response_model=RadioSettingsRead | None)
async def get_radio_settings(
    _admin: AdminIdentity = Depends(get_current_admin),
    service: RadioSettingsService = Depends(get_radio_settings_service),
) -> RadioSettingsRead | None:
    row = await service.get_active_settings()
    return RadioSettingsRead.model_validate(row) if row else None


@router.put("", response_model=RadioSettingsUpdateResponse)
async def update_radio_settings(
    payload: RadioSettingsUpdate,
    admin: AdminIdentity = Depends(get_current_admin),
    service: RadioSettingsService = Depends(get_radio_settings_service),
) -> RadioSettingsUpdateResponse:
    row, changed = await service.update_stream_configuration(
        payload,
        admin.user_id,
        admin_email=admin.email,
        correlation_id=f"admin-{uuid4().hex[:12]}",
    )
    return RadioSettingsUpdateResponse(
        message=SUCCESS_MESSAGE,
        data=RadioSettingsRead.model_validate(row),
        changed_fields=changed,
    )


@router.get("/history", response_model=list[RadioSettingsRead])
async def list_radio_settings_history(
    limit: int = Query(20, ge=1, le=100),
    _admin: AdminIdentity = Depends(get_current_admin),
    service: RadioSettingsService = Depends(get_radio_settings_service),
) -> list[RadioSettingsRead]:
    rows = await service.list_history(limit)
    return [RadioSettingsRead.model_validate(r) for r in rows]


@router.post("/test-stream", response_model=StreamTestResponse)
async def test_stream(
    payload: StreamTestRequest,
    admin: AdminIdentity = Depends(get_current_admin),
    service: RadioSettingsService = Depends(get_radio_settings_service),
) -> StreamTestResponse:
    return await service.test_stream_connection(payload.url, admin.user_id)
