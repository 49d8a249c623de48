from __future__ import annotations

import hashlib
import json
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from trend_radio.core import cache
from trend_radio.core.cache_invalidation import CacheInvalidator
from trend_radio.core.cache_keys import CacheKeys
from trend_radio.core.config import settings
from trend_radio.core.database import AsyncSessionLocal
from trend_radio.core.logging import logger
from trend_radio.models import RadioSettings
from trend_radio.repositories import RadioSettingsRepository
from trend_radio.schemas.radio import (
    MobileRadioConfig,
    RadioSettingsUpdate,
    StreamTestData,
    StreamTestDetails,
    StreamTestResponse,
)
from trend_radio.services.radio.errors import (
    RadioErrorHandler,
    RadioErrorType,
    RadioOperationError,
    StreamErrorMetadata,
)
from trend_radio.services.radio.events import CONFIGURATION_FIELDS, RadioEventBus
from trend_radio.services.radio.stream_prober import StreamProber
from trend_radio.services.radio.url_validator import (
    MAX_STORED_URL_LENGTH,
    StreamUrlValidator,
    check_stream_url,
    is_http_url,
)
from trend_radio.utils.time_utils import Datetime

SUCCESS_MESSAGE = "Radyo ayarları başarıyla güncellendi"
STATION_NAME_MAX_LENGTH = 255
DESCRIPTION_MAX_LENGTH = 65535
MOBILE_CONNECTION_TEST_TIMEOUT = 3.0

_OPTIONAL_URL_FIELDS = ("facebook_url", "twitter_url", "instagram_url", "youtube_url", "backup_stream_url")


def _snapshot(row: RadioSettings | None) -> dict[str, Any] | None:
    if row is None:
        return None
    return {f: getattr(row, f) for f in CONFIGURATION_FIELDS}


def mobile_config_etag(config: MobileRadioConfig) -> str:
    payload = json.dumps(
        {
            "stream_url": config.stream_url,
            "metadata_url": config.metadata_url,
            "station_name": config.station_name,
            "connection_status": config.connection_status,
        },
        sort_keys=True,
    )
    return f'"mobile-radio-{hashlib.md5(payload.encode()).hexdigest()[:16]}"'


class RadioSettingsService:
    def __init__(
        self,
        repo: RadioSettingsRepository,
        event_bus: RadioEventBus,
        prober: StreamProber,
        *,
        invalidator: CacheInvalidator | None = None,
        validator: StreamUrlValidator | None = None,
    ):
        self.repo = repo
        self.event_bus = event_bus
        self.prober = prober
        self.invalidator = invalidator or CacheInvalidator()
        self.validator = validator or StreamUrlValidator()

    async def get_active_settings(self) -> RadioSettings | None:
        return await self.repo.get_active()

    async def get_persisted_fallback_url(self) -> str | None:
        return await self.repo.get_persisted_fallback_url()

    async def list_history(self, limit: int = 20) -> list[RadioSettings]:
        return await self.repo.list_history(limit)

    # ===== admin update flow =====

    def _validate(self, payload: RadioSettingsUpdate, admin_id: str | None) -> dict[str, Any]:
        """Return the cleaned column values, or raise RadioOperationError."""
        operation = "validate_radio_settings"
        stream_url = (payload.stream_url or "").strip()
        if not stream_url:
            raise RadioOperationError(
                RadioErrorHandler.handle_form_validation_error(
                    "Stream URL is required", operation, field_name="stream_url", admin_user_id=admin_id
                )
            )
        url_error = check_stream_url(stream_url)
        if url_error:
            raise RadioOperationError(
                RadioErrorHandler.handle_stream_validation_error(
                    url_error, operation, stream_url=stream_url, admin_user_id=admin_id
                )
            )

        station_name = (payload.station_name or "").strip()
        if not station_name:
            raise RadioOperationError(
                RadioErrorHandler.handle_form_validation_error(
                    "Station name is required", operation, field_name="station_name", admin_user_id=admin_id
                )
            )
        if len(station_name) > STATION_NAME_MAX_LENGTH:
            raise RadioOperationError(
                RadioErrorHandler.handle_form_validation_error(
                    f"Station name cannot exceed {STATION_NAME_MAX_LENGTH} characters",
                    operation,
                    field_name="station_name",
                    field_value=station_name,
                    admin_user_id=admin_id,
                )
            )
        description = payload.station_description
        if description and len(description) > DESCRIPTION_MAX_LENGTH:
            raise RadioOperationError(
                RadioErrorHandler.handle_form_validation_error(
                    f"Station description cannot exceed {DESCRIPTION_MAX_LENGTH} characters",
                    operation,
                    field_name="station_description",
                    admin_user_id=admin_id,
                )
            )

        cleaned: dict[str, Any] = {
            "stream_url": stream_url,
            "station_name": station_name,
            "station_description": description or None,
        }
        for name in _OPTIONAL_URL_FIELDS:
            value = (getattr(payload, name) or "").strip()
            if not value:
                cleaned[name] = None
                continue
            label = name.removesuffix("_url")
            if len(value) > MAX_STORED_URL_LENGTH:
                message = f"{label} URL cannot exceed {MAX_STORED_URL_LENGTH} characters"
            elif not is_http_url(value):
                message = f"Invalid {label} URL format"
            else:
                cleaned[name] = value
                continue
            raise RadioOperationError(
                RadioErrorHandler.handle_form_validation_error(
                    message, operation, field_name=name, field_value=value, admin_user_id=admin_id
                )
            )

        metadata_url = (payload.metadata_url or "").strip()
        if metadata_url:
            metadata_check = self.validator.validate(metadata_url)
            if not metadata_check.is_valid:
                raise RadioOperationError(
                    RadioErrorHandler.handle_stream_validation_error(
                        f"Invalid metadata URL: {metadata_check.message}",
                        operation,
                        stream_url=metadata_url,
                        admin_user_id=admin_id,
                    )
                )
        cleaned["metadata_url"] = metadata_url or None
        return cleaned

    async def update_stream_configuration(
        self,
        payload: RadioSettingsUpdate,
        admin_id: str | None,
        *,
        admin_email: str | None = None,
        correlation_id: str | None = None,
    ) -> tuple[RadioSettings, list[str]]:
        data = self._validate(payload, admin_id)

        try:
            previous = _snapshot(await self.repo.get_active())
            row = await self.repo.replace_active(data, updated_by=admin_email or admin_id)
        except SQLAlchemyError as exc:
            raise RadioOperationError(
                RadioErrorHandler.handle_database_error(
                    exc,
                    "update_stream_configuration",
                    table=RadioSettings.__tablename__,
                    admin_user_id=admin_id,
                    admin_user_email=admin_email,
                )
            ) from exc

        logger.info(f"radio settings replaced by {admin_email or admin_id}: {row.stream_url}")

        await self.invalidator.invalidate_entity_cache("radio")
        changed = await self.event_bus.broadcast_settings_update(
            previous,
            _snapshot(row),
            source="admin-settings",
            correlation_id=correlation_id,
            debug=settings.DEBUG,
        )
        return row, changed

    # ===== connection test =====

    async def test_stream_connection(self, url: str, admin_id: str | None = None) -> StreamTestResponse:
        validation = self.validator.validate(url)
        if not validation.is_valid:
            return StreamTestResponse(
                success=False,
                message="URL format validation failed",
                data=StreamTestData(
                    is_valid=False,
                    message=validation.message,
                    details=StreamTestDetails(suggestions=validation.suggestions),
                ),
            )

        result = await self.prober.probe(url.strip())
        metadata = result.metadata
        details = StreamTestDetails(
            status_code=result.status_code,
            response_time_ms=result.response_time_ms,
            content_type=result.content_type,
            stream_title=metadata.stream_title if metadata else None,
            bitrate=metadata.bitrate if metadata else None,
            audio_format=metadata.audio_format.value if metadata and metadata.audio_format else None,
            suggestions=validation.suggestions,
        )

        if result.is_valid:
            return StreamTestResponse(
                success=True,
                message="Stream bağlantısı başarılı",
                data=StreamTestData(is_valid=True, message="Stream connection successful", details=details),
            )

        error = RadioErrorHandler.from_probe_result(
            result, "test_stream_connection", stream_url=url, admin_user_id=admin_id
        )
        return StreamTestResponse(
            success=True,
            message="Stream bağlantısı başarısız",
            data=StreamTestData(is_valid=False, message=result.error or error.user_message, details=details),
            error=RadioErrorHandler.to_api_response(error)["error"],
        )

    # ===== mobile config =====

    async def get_mobile_config(self) -> tuple[MobileRadioConfig, str]:
        cached = await cache.get(CacheKeys.radio_mobile_config())
        if isinstance(cached, dict) and "config" in cached:
            return MobileRadioConfig.model_validate(cached["config"]), cached["etag"]

        active = await self.repo.get_active()
        if active is not None:
            stream_url = active.stream_url
            metadata_url = active.metadata_url
            station_name = active.station_name
        else:
            stream_url = settings.RADIO_STREAM_URL or next(iter(settings.RADIO_DEFAULT_STREAM_URLS), None)
            if not stream_url:
                raise RadioOperationError(
                    RadioErrorHandler.create_error(
                        RadioErrorType.NETWORK_UNREACHABLE,
                        "get_mobile_config",
                        "No radio settings saved and no stream URL configured",
                        metadata=StreamErrorMetadata(),
                    )
                )
            metadata_url = None
            station_name = "Trend Ankara Radio"
            logger.info("no active radio settings, serving environment stream URL")

        result = await self.prober.probe(stream_url, timeout=MOBILE_CONNECTION_TEST_TIMEOUT)
        if not result.is_valid:
            logger.warning(f"stream connectivity test failed for {stream_url}: {result.error}")

        config = MobileRadioConfig(
            stream_url=stream_url,
            metadata_url=metadata_url,
            station_name=station_name,
            connection_status="active" if result.is_valid else "failed",
            last_tested=Datetime.now(),
        )
        etag = mobile_config_etag(config)
        await cache.set(
            CacheKeys.radio_mobile_config(),
            {"config": config.model_dump(mode="json"), "etag": etag},
            ttl=cache.jitter_ttl(settings.RADIO_CONFIG_CACHE_TTL),
        )
        return config, etag


# ===== loaders used by the fallback aggregator / health monitor =====


async def load_active_stream_url() -> str | None:
    async with AsyncSessionLocal() as session:
        active = await RadioSettingsRepository(session).get_active()
        return active.stream_url if active else None


async def load_persisted_fallback_url() -> str | None:
    async with AsyncSessionLocal() as session:
        return await RadioSettingsRepository(session).get_persisted_fallback_url()
