from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import Field

from trend_radio.schemas.base import BaseSchema, IDSchema, TimestampSchema


# ===== Radio settings =====


class RadioSettingsUpdate(BaseSchema):
    """Admin form payload. Content rules are enforced by the settings service."""

    stream_url: str
    metadata_url: str | None = None
    station_name: str = "Trend Ankara Radio"
    station_description: str | None = None
    facebook_url: str | None = None
    twitter_url: str | None = None
    instagram_url: str | None = None
    youtube_url: str | None = None
    backup_stream_url: str | None = None


class RadioSettingsRead(IDSchema, TimestampSchema):
    stream_url: str
    metadata_url: str | None = None
    station_name: str
    station_description: str | None = None
    facebook_url: str | None = None
    twitter_url: str | None = None
    instagram_url: str | None = None
    youtube_url: str | None = None
    backup_stream_url: str | None = None
    is_active: bool
    updated_by: str | None = None


class RadioSettingsUpdateResponse(BaseSchema):
    success: bool = True
    message: str
    data: RadioSettingsRead
    changed_fields: list[str] = Field(default_factory=list)


class StreamTestRequest(BaseSchema):
    url: str


class StreamTestDetails(BaseSchema):
    status_code: int | None = None
    response_time_ms: int | None = None
    content_type: str | None = None
    stream_title: str | None = None
    bitrate: int | None = None
    audio_format: str | None = None
    suggestions: list[str] = Field(default_factory=list)


class StreamTestData(BaseSchema):
    is_valid: bool
    message: str
    details: StreamTestDetails = Field(default_factory=StreamTestDetails)


class StreamTestResponse(BaseSchema):
    success: bool
    message: str
    data: StreamTestData
    error: dict[str, Any] | None = None


class MobileRadioConfig(BaseSchema):
    stream_url: str
    metadata_url: str | None = None
    station_name: str
    connection_status: Literal["active", "testing", "failed"]
    last_tested: datetime | None = None


class MobileRadioConfigResponse(BaseSchema):
    success: bool = True
    data: MobileRadioConfig
    error: str | None = None


# ===== Player stream selection =====


class StreamSelection(BaseSchema):
    url: str
    is_fallback: bool


class FailoverRequest(BaseSchema):
    failed_url: str


# ===== Fallback =====


class FallbackCandidateRead(BaseSchema):
    url: str
    priority: int
    source: str
    description: str = ""
    last_tested_at: datetime | None = None
    consecutive_failures: int = 0


class RotationStateRead(BaseSchema):
    current_url: str | None = None
    current_index: int = 0
    last_rotation_at: datetime | None = None
    failed_urls: list[str] = Field(default_factory=list)
    rotation_count: int = 0


class FallbackStatusResponse(BaseSchema):
    available_urls: list[FallbackCandidateRead]
    rotation_state: RotationStateRead
    cache_size: int
    recommendations: list[str]


class FallbackValidationItem(BaseSchema):
    url: str
    source: str
    priority: int
    is_working: bool
    error: str | None = None
    response_time_ms: int | None = None


class FallbackValidationResponse(BaseSchema):
    total: int
    working: int
    failed: int
    results: list[FallbackValidationItem]


# ===== Health =====


class HealthCheckResultRead(BaseSchema):
    url: str
    status: str
    timestamp: datetime
    is_fallback: bool
    response_time_ms: int | None = None
    status_code: int | None = None
    error: str | None = None
    priority: int | None = None
    source: str | None = None


class HealthStatisticsRead(BaseSchema):
    total_checks: int
    successful_checks: int
    failed_checks: int
    average_response_time_ms: int
    uptime_percentage: int


class SystemHealthStatusRead(BaseSchema):
    overall_status: str
    timestamp: datetime
    primary_url: HealthCheckResultRead | None = None
    active_fallback: HealthCheckResultRead | None = None
    available_urls: list[HealthCheckResultRead] = Field(default_factory=list)
    consecutive_failures: int
    consecutive_successes: int
    last_working_url: str | None = None
    last_failover: datetime | None = None
    total_failovers: int
    statistics: HealthStatisticsRead
    recommendations: list[str] = Field(default_factory=list)


class HealthMonitorConfigRead(BaseSchema):
    check_interval: float
    connection_timeout: float
    failure_threshold: int
    recovery_threshold: int
    max_concurrent_checks: int
    enable_auto_failover: bool
    failover_cooldown: float
    enable_event_broadcasting: bool
    enable_detailed_logging: bool


class HealthMonitorConfigUpdate(BaseSchema):
    check_interval: float | None = Field(default=None, gt=0)
    connection_timeout: float | None = Field(default=None, gt=0)
    failure_threshold: int | None = Field(default=None, ge=1)
    recovery_threshold: int | None = Field(default=None, ge=1)
    max_concurrent_checks: int | None = Field(default=None, ge=1)
    enable_auto_failover: bool | None = None
    failover_cooldown: float | None = Field(default=None, ge=0)
    enable_event_broadcasting: bool | None = None
    enable_detailed_logging: bool | None = None


class HealthReportResponse(BaseSchema):
    status: SystemHealthStatusRead
    is_active: bool
    config: HealthMonitorConfigRead
    recent_history: list[HealthCheckResultRead]
    recommendations: list[str]


class MonitorStateResponse(BaseSchema):
    is_active: bool
    message: str
