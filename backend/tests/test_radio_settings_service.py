from datetime import timedelta
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError

from trend_radio.core.cache import cache
from trend_radio.core.cache_keys import CacheKeys
from trend_radio.core.config import settings
from trend_radio.models import RadioSettings
from trend_radio.repositories import RadioSettingsRepository
from trend_radio.schemas.radio import RadioSettingsUpdate
from trend_radio.services.radio.errors import RadioErrorType, RadioOperationError
from trend_radio.services.radio.settings_service import (
    SUCCESS_MESSAGE,
    RadioSettingsService,
    mobile_config_etag,
)
from trend_radio.utils.time_utils import Datetime

FIRST = "https://first.example.com:8000/"
SECOND = "https://second.example.com:8000/"
BACKUP = "https://backup.example.com:8000/"


@pytest.fixture
def repo(db_session) -> RadioSettingsRepository:
    return RadioSettingsRepository(db_session)


@pytest.fixture
def service(repo, event_bus, fake_prober_cls) -> RadioSettingsService:
    return RadioSettingsService(repo, event_bus, fake_prober_cls(working={FIRST, SECOND}))


# ===== repository =====


@pytest.mark.asyncio
async def test_replace_active_keeps_single_active_row(repo):
    first = await repo.replace_active({"stream_url": FIRST, "station_name": "One"}, updated_by="admin")
    second = await repo.replace_active({"stream_url": SECOND, "station_name": "Two"}, updated_by="admin")

    active = await repo.get_active()
    assert active.id == second.id
    history = await repo.list_history()
    assert [row.stream_url for row in history] == [SECOND, FIRST]
    assert [row.is_active for row in history] == [True, False]
    assert first.id != second.id


@pytest.mark.asyncio
async def test_get_active_falls_back_to_most_recently_updated_row(repo, db_session):
    now = Datetime.now()
    db_session.add_all(
        [
            RadioSettings(
                stream_url=FIRST,
                station_name="Older but edited",
                is_active=False,
                created_at=now - timedelta(days=2),
                updated_at=now,
            ),
            RadioSettings(
                stream_url=SECOND,
                station_name="Newer",
                is_active=False,
                created_at=now - timedelta(days=1),
                updated_at=now - timedelta(days=1),
            ),
        ]
    )
    await db_session.commit()

    active = await repo.get_active()
    assert active is not None
    assert active.stream_url == FIRST


@pytest.mark.asyncio
async def test_persisted_fallback_prefers_backup_url(repo):
    assert await repo.get_persisted_fallback_url() is None

    await repo.replace_active({"stream_url": FIRST, "station_name": "One"}, updated_by=None)
    assert await repo.get_persisted_fallback_url() is None

    await repo.replace_active({"stream_url": SECOND, "station_name": "Two"}, updated_by=None)
    assert await repo.get_persisted_fallback_url() == FIRST

    await repo.replace_active(
        {"stream_url": SECOND, "station_name": "Two", "backup_stream_url": BACKUP}, updated_by=None
    )
    assert await repo.get_persisted_fallback_url() == BACKUP


# ===== update flow =====


@pytest.mark.asyncio
async def test_update_persists_invalidates_and_broadcasts(service, recorded_events, dummy_redis):
    await cache.set(CacheKeys.radio_mobile_config(), {"config": {}, "etag": '"stale"'})

    row, changed = await service.update_stream_configuration(
        RadioSettingsUpdate(stream_url=f" {SECOND} ", station_name=" Trend ", facebook_url="https://facebook.com/t"),
        "42",
        admin_email="admin@example.com",
        correlation_id="c-1",
    )

    assert row.stream_url == SECOND
    assert row.station_name == "Trend"
    assert row.updated_by == "admin@example.com"
    assert row.is_active
    assert "stream_url" in changed and "facebook_url" in changed
    assert await cache.get(CacheKeys.radio_mobile_config()) is None

    names = [name for name, _ in recorded_events]
    assert names[0] == "radioSettingsUpdated"
    assert "radioStreamUrlChanged" in names
    assert names[-1] == "radioConfigurationReloadRequired"
    assert recorded_events[0][1].source == "admin-settings"
    assert recorded_events[0][1].correlation_id == "c-1"
    assert SUCCESS_MESSAGE == "Radyo ayarları başarıyla güncellendi"


@pytest.mark.asyncio
async def test_update_reports_only_changed_fields(service):
    await service.update_stream_configuration(RadioSettingsUpdate(stream_url=FIRST), "1")
    _, changed = await service.update_stream_configuration(
        RadioSettingsUpdate(stream_url=FIRST, station_description="Yeni"), "1"
    )
    assert changed == ["station_description"]


@pytest.mark.parametrize(
    "payload, expected_type, field",
    [
        ({"stream_url": "  "}, RadioErrorType.FORM_REQUIRED_FIELD_MISSING, "stream_url"),
        ({"stream_url": "ftp://x.example.com/"}, RadioErrorType.VALIDATION_INVALID_PROTOCOL, None),
        ({"stream_url": FIRST, "station_name": ""}, RadioErrorType.FORM_REQUIRED_FIELD_MISSING, "station_name"),
        ({"stream_url": FIRST, "station_name": "x" * 256}, RadioErrorType.FORM_VALIDATION_ERROR, "station_name"),
        ({"stream_url": FIRST, "station_description": "x" * 65536}, RadioErrorType.FORM_VALIDATION_ERROR, "station_description"),
        ({"stream_url": FIRST, "twitter_url": "twitter.com/t"}, RadioErrorType.FORM_INVALID_INPUT_FORMAT, "twitter_url"),
        ({"stream_url": FIRST, "backup_stream_url": "https://b.example.com/" + "x" * 500}, RadioErrorType.FORM_VALIDATION_ERROR, "backup_stream_url"),
    ],
)
@pytest.mark.asyncio
async def test_update_validation_errors(service, recorded_events, payload, expected_type, field):
    with pytest.raises(RadioOperationError) as exc_info:
        await service.update_stream_configuration(RadioSettingsUpdate(**payload), "1")

    error = exc_info.value.error
    assert error.type is expected_type
    assert error.http_status_code == 400
    if field:
        assert error.context.metadata.field_name == field
    assert recorded_events == []
    assert await service.get_active_settings() is None


@pytest.mark.asyncio
async def test_update_classifies_database_failure(event_bus, fake_prober_cls, recorded_events):
    repo = AsyncMock(spec=RadioSettingsRepository)
    repo.get_active.return_value = None
    repo.replace_active.side_effect = OperationalError("insert", {}, Exception("connection lost"))
    service = RadioSettingsService(repo, event_bus, fake_prober_cls())

    with pytest.raises(RadioOperationError) as exc_info:
        await service.update_stream_configuration(RadioSettingsUpdate(stream_url=FIRST), "1")

    error = exc_info.value.error
    assert error.type is RadioErrorType.DATABASE_CONNECTION_ERROR
    assert error.context.metadata.table == "radio_settings"
    assert recorded_events == []


# ===== connection test =====


@pytest.mark.asyncio
async def test_stream_test_rejects_bad_format(service):
    response = await service.test_stream_connection("abc")

    assert response.success is False
    assert response.message == "URL format validation failed"
    assert response.data.is_valid is False
    assert service.prober.calls == []


@pytest.mark.asyncio
async def test_stream_test_success(service):
    response = await service.test_stream_connection(FIRST)

    assert response.success is True
    assert response.message == "Stream bağlantısı başarılı"
    assert response.data.is_valid is True
    assert response.data.details.status_code == 200
    assert response.error is None


@pytest.mark.asyncio
async def test_stream_test_failure_is_classified(service):
    response = await service.test_stream_connection("https://down.example.com:8000/")

    assert response.message == "Stream bağlantısı başarısız"
    assert response.data.is_valid is False
    assert response.data.message == "Stream URL returned status 503: Service Unavailable"
    assert response.error["type"] == "STREAM_SERVER_ERROR"


# ===== mobile config =====


@pytest.mark.asyncio
async def test_mobile_config_uses_active_row_and_caches(service):
    await service.update_stream_configuration(
        RadioSettingsUpdate(stream_url=FIRST, station_name="Trend", metadata_url="https://first.example.com:8000/status"),
        "1",
    )

    config, etag = await service.get_mobile_config()
    assert config.stream_url == FIRST
    assert config.station_name == "Trend"
    assert config.connection_status == "active"
    assert etag == mobile_config_etag(config)
    assert etag.startswith('"mobile-radio-')

    calls = len(service.prober.calls)
    cached, cached_etag = await service.get_mobile_config()
    assert cached_etag == etag
    assert cached.stream_url == FIRST
    assert len(service.prober.calls) == calls


@pytest.mark.asyncio
async def test_mobile_config_without_settings_uses_environment(service, monkeypatch):
    monkeypatch.setattr(settings, "RADIO_STREAM_URL", None)

    config, _ = await service.get_mobile_config()

    assert config.stream_url == settings.RADIO_DEFAULT_STREAM_URLS[0]
    assert config.connection_status == "failed"
    assert config.metadata_url is None


@pytest.mark.asyncio
async def test_mobile_config_without_any_stream_url_is_unavailable(service, monkeypatch):
    monkeypatch.setattr(settings, "RADIO_STREAM_URL", None)
    monkeypatch.setattr(settings, "RADIO_DEFAULT_STREAM_URLS", [])

    with pytest.raises(RadioOperationError) as exc_info:
        await service.get_mobile_config()

    assert exc_info.value.error.type is RadioErrorType.NETWORK_UNREACHABLE
    assert exc_info.value.error.http_status_code == 503
    assert service.prober.calls == []
