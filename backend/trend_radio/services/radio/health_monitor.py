"""
Stream health monitoring.

HealthMonitor probes the persisted primary URL plus every fallback candidate
on a recurring asyncio task, folds the results into a `SystemHealthStatus`
snapshot, and triggers automatic failover through the FallbackManager when
the primary keeps failing.

Lifecycle:
    stopped --start()--> running --stop()--> stopped

A failing tick never tears down the loop: `perform_health_check()` turns
its own exceptions into a critical snapshot, and the loop classifies and
logs anything that still escapes.
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from trend_radio.core.config import Settings
from trend_radio.core.logging import logger
from trend_radio.services.radio.errors import RadioErrorHandler, RadioErrorType
from trend_radio.services.radio.events import (
    HealthStatisticsPayload,
    HealthStatusUpdateEvent,
    RadioEventBus,
    RadioEventName,
    ReloadPriority,
)
from trend_radio.services.radio.fallback import (
    FallbackCandidate,
    FallbackManager,
    FallbackSource,
    fallback_recommendations,
)
from trend_radio.services.radio.stream_prober import StreamProber
from trend_radio.utils.time_utils import Datetime

PrimaryUrlLoader = Callable[[], Awaitable[str | None]]

RECENT_HISTORY_SIZE = 50


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"
    CRITICAL = "critical"
    UNKNOWN = "unknown"


class HealthMonitorConfig(BaseModel):
    """Monitor settings; durations are seconds."""

    check_interval: float = Field(default=60.0, gt=0)
    connection_timeout: float = Field(default=10.0, gt=0)
    failure_threshold: int = Field(default=3, ge=1)
    recovery_threshold: int = Field(default=2, ge=1)
    max_concurrent_checks: int = Field(default=3, ge=1)
    enable_auto_failover: bool = True
    failover_cooldown: float = Field(default=300.0, ge=0)
    enable_event_broadcasting: bool = True
    enable_detailed_logging: bool = True

    @classmethod
    def from_settings(cls, settings: Settings) -> HealthMonitorConfig:
        return cls(
            check_interval=settings.HEALTH_CHECK_INTERVAL_SECONDS,
            connection_timeout=settings.HEALTH_CONNECTION_TIMEOUT_SECONDS,
            failure_threshold=settings.HEALTH_FAILURE_THRESHOLD,
            recovery_threshold=settings.HEALTH_RECOVERY_THRESHOLD,
            max_concurrent_checks=settings.HEALTH_MAX_CONCURRENT_CHECKS,
            enable_auto_failover=settings.HEALTH_AUTO_FAILOVER,
            failover_cooldown=settings.HEALTH_FAILOVER_COOLDOWN_SECONDS,
            enable_event_broadcasting=settings.HEALTH_EVENT_BROADCASTING,
            enable_detailed_logging=settings.HEALTH_DETAILED_LOGGING,
        )

    def merged(self, changes: dict[str, Any] | None) -> HealthMonitorConfig:
        if not changes:
            return self.model_copy()
        return HealthMonitorConfig.model_validate({**self.model_dump(), **changes})


@dataclass(slots=True)
class HealthCheckResult:
    url: str
    status: HealthStatus
    timestamp: datetime
    is_fallback: bool
    response_time_ms: int | None = None
    status_code: int | None = None
    error: str | None = None
    priority: int | None = None
    source: str | None = None


@dataclass(slots=True)
class HealthStatistics:
    total_checks: int = 0
    successful_checks: int = 0
    failed_checks: int = 0
    average_response_time_ms: int = 0
    uptime_percentage: int = 0


@dataclass(slots=True)
class SystemHealthStatus:
    overall_status: HealthStatus = HealthStatus.UNKNOWN
    timestamp: datetime = field(default_factory=Datetime.now)
    primary_url: HealthCheckResult | None = None
    active_fallback: HealthCheckResult | None = None
    available_urls: list[HealthCheckResult] = field(default_factory=list)
    consecutive_failures: int = 0
    consecutive_successes: int = 0
    last_working_url: str | None = None
    last_failover: datetime | None = None
    total_failovers: int = 0
    statistics: HealthStatistics = field(default_factory=HealthStatistics)
    recommendations: list[str] = field(default_factory=list)

    def copy(self) -> SystemHealthStatus:
        return replace(
            self,
            available_urls=list(self.available_urls),
            statistics=replace(self.statistics),
            recommendations=list(self.recommendations),
        )


@dataclass(slots=True, frozen=True)
class _CheckTarget:
    url: str
    priority: int
    source: str
    is_fallback: bool


def analyze_overall_health(results: Sequence[HealthCheckResult]) -> HealthStatus:
    """Primary healthy -> healthy; else fallback healthy -> degraded; else any -> unhealthy."""
    if not results:
        return HealthStatus.CRITICAL

    healthy = [r for r in results if r.status is HealthStatus.HEALTHY]
    if any(not r.is_fallback for r in healthy):
        return HealthStatus.HEALTHY
    if any(r.is_fallback for r in healthy):
        return HealthStatus.DEGRADED
    if healthy:
        return HealthStatus.UNHEALTHY
    return HealthStatus.CRITICAL


class HealthMonitor:
    def __init__(
        self,
        fallback_manager: FallbackManager,
        prober: StreamProber,
        event_bus: RadioEventBus,
        *,
        primary_url_loader: PrimaryUrlLoader | None = None,
        config: HealthMonitorConfig | None = None,
        max_history: int = 1000,
    ):
        self.fallback_manager = fallback_manager
        self.prober = prober
        self.event_bus = event_bus
        self._load_primary = primary_url_loader
        self._base_config = config or HealthMonitorConfig()
        self._max_history = max_history
        self._check_lock = asyncio.Lock()
        self._init_state()

    def _init_state(self) -> None:
        self._config = self._base_config.model_copy()
        self._status = SystemHealthStatus()
        self._history: deque[HealthCheckResult] = deque(maxlen=self._max_history)
        self._active_checks: set[str] = set()
        self._task: asyncio.Task | None = None
        self._is_active = False
        self._response_time_total = 0
        self._response_time_samples = 0
        self._awaiting_recovery = False

    # ===== lifecycle =====

    async def start(self, config: dict[str, Any] | HealthMonitorConfig | None = None) -> None:
        if self._is_active:
            logger.warning("[RadioHealth] health monitoring is already active")
            return

        if isinstance(config, HealthMonitorConfig):
            self._config = config.model_copy()
        else:
            self._config = self._base_config.merged(config)
        self._is_active = True
        logger.info(f"[RadioHealth] starting health monitoring with {self._config.check_interval:g}s interval")

        await self.perform_health_check()
        self._arm_timer()
        await self._broadcast_health_event("monitoring_started", "normal")

    async def stop(self) -> None:
        if not self._is_active:
            logger.warning("[RadioHealth] health monitoring is not currently active")
            return

        await self._cancel_timer()
        self._is_active = False
        logger.info("[RadioHealth] health monitoring stopped")
        await self._broadcast_health_event("monitoring_stopped", "normal")

    def is_monitoring_active(self) -> bool:
        return self._is_active

    def _arm_timer(self) -> None:
        self._task = asyncio.create_task(self._run(), name="radio-health-monitor")

    async def _cancel_timer(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._config.check_interval)
            try:
                await self.perform_health_check()
            except Exception as exc:
                RadioErrorHandler.analyze_error(exc, "periodic_health_check")

    # ===== checks =====

    async def force_health_check(self) -> SystemHealthStatus:
        logger.info("[RadioHealth] forcing immediate health check")
        return await self.perform_health_check()

    async def perform_health_check(self) -> SystemHealthStatus:
        # Overlapping callers wait for the in-flight run and share its snapshot.
        if self._check_lock.locked():
            logger.info("[RadioHealth] health check already running, waiting for its result")
            async with self._check_lock:
                return self._status.copy()
        async with self._check_lock:
            return await self._run_health_check()

    async def _run_health_check(self) -> SystemHealthStatus:
        started = time.perf_counter()
        try:
            primary_url = await self._load_primary() if self._load_primary else None
            candidates = await self.fallback_manager.aggregator.collect()

            targets: list[_CheckTarget] = []
            if primary_url:
                targets.append(_CheckTarget(primary_url, 0, FallbackSource.DATABASE.value, False))
            targets.extend(
                _CheckTarget(c.url, c.priority, c.source.value, True) for c in candidates
            )

            if not targets:
                logger.warning("[RadioHealth] no URLs configured for health checking")
                status = await self._update_status([], HealthStatus.CRITICAL)
                return status.copy()

            results = await self._check_all(targets)
            overall = analyze_overall_health(results)
            await self._update_status(results, overall)

            if self._config.enable_auto_failover:
                await self._check_auto_failover(results)
            await self._check_recovery()

            status = self._status
            status.recommendations = self._recommendations(status, candidates)

            if self._config.enable_detailed_logging:
                self._log_results(status, int((time.perf_counter() - started) * 1000))
            await self._broadcast_status_update(status)
            return status.copy()
        except Exception as exc:
            logger.error(f"[RadioHealth] health check failed: {exc}")
            RadioErrorHandler.create_error(
                RadioErrorType.INTERNAL_SERVER_ERROR, "perform_health_check", exc
            )
            status = await self._update_status([], HealthStatus.CRITICAL)
            return status.copy()

    async def _check_all(self, targets: Sequence[_CheckTarget]) -> list[HealthCheckResult]:
        results: list[HealthCheckResult] = []
        batch_size = self._config.max_concurrent_checks
        for start in range(0, len(targets), batch_size):
            batch = targets[start : start + batch_size]
            checked = await asyncio.gather(*(self._check_one(t) for t in batch))
            results.extend(r for r in checked if r is not None)
        return results

    async def _check_one(self, target: _CheckTarget) -> HealthCheckResult | None:
        if target.url in self._active_checks:
            logger.info(f"[RadioHealth] skipping {target.url} - already being checked")
            return None

        self._active_checks.add(target.url)
        try:
            probe = await self.prober.probe(target.url, timeout=self._config.connection_timeout)
            result = HealthCheckResult(
                url=target.url,
                status=HealthStatus.HEALTHY if probe.is_valid else HealthStatus.UNHEALTHY,
                timestamp=Datetime.now(),
                is_fallback=target.is_fallback,
                response_time_ms=probe.response_time_ms,
                status_code=probe.status_code,
                error=probe.error,
                priority=target.priority,
                source=target.source,
            )
        except Exception as exc:
            result = HealthCheckResult(
                url=target.url,
                status=HealthStatus.UNHEALTHY,
                timestamp=Datetime.now(),
                is_fallback=target.is_fallback,
                error=str(exc) or "Unknown error",
                priority=target.priority,
                source=target.source,
            )
        finally:
            self._active_checks.discard(target.url)

        self._history.append(result)
        return result

    async def _update_status(
        self, results: list[HealthCheckResult], overall: HealthStatus
    ) -> SystemHealthStatus:
        current = self._status
        previous = current.overall_status

        if overall is HealthStatus.HEALTHY:
            current.consecutive_successes += 1
            current.consecutive_failures = 0
        else:
            current.consecutive_failures += 1
            current.consecutive_successes = 0

        self._update_statistics(results)

        current.overall_status = overall
        current.timestamp = Datetime.now()
        current.primary_url = next((r for r in results if not r.is_fallback), None)
        current.active_fallback = next(
            (r for r in results if r.is_fallback and r.status is HealthStatus.HEALTHY), None
        )
        current.available_urls = list(results)
        current.recommendations = []

        if previous is not overall:
            logger.info(f"[RadioHealth] health status changed: {previous.value} -> {overall.value}")
            priority: ReloadPriority = "high" if overall is HealthStatus.CRITICAL else "normal"
            await self._broadcast_health_event("status_changed", priority)
        return current

    def _update_statistics(self, results: Sequence[HealthCheckResult]) -> None:
        stats = self._status.statistics
        successful = sum(1 for r in results if r.status is HealthStatus.HEALTHY)
        stats.total_checks += len(results)
        stats.successful_checks += successful
        stats.failed_checks += len(results) - successful

        timings = [r.response_time_ms for r in results if r.response_time_ms]
        if timings:
            self._response_time_total += sum(timings)
            self._response_time_samples += len(timings)
            stats.average_response_time_ms = round(self._response_time_total / self._response_time_samples)

        if stats.total_checks:
            stats.uptime_percentage = round(stats.successful_checks / stats.total_checks * 100)

    # ===== failover =====

    def _should_attempt_failover(self) -> bool:
        status = self._status
        if status.consecutive_failures < self._config.failure_threshold:
            return False
        if status.last_failover is not None:
            return Datetime.seconds_since(status.last_failover) >= self._config.failover_cooldown
        return True

    async def _check_auto_failover(self, results: Sequence[HealthCheckResult]) -> None:
        primaries = [r for r in results if not r.is_fallback]
        if not primaries or any(r.status is HealthStatus.HEALTHY for r in primaries):
            return
        if not self._should_attempt_failover():
            return

        failed_url = primaries[0].url
        logger.warning(f"[RadioHealth] primary URL {failed_url} is unhealthy, attempting failover")
        try:
            options = self.fallback_manager.options.merged(
                test_timeout=self._config.connection_timeout, enable_caching=True
            )
            next_url = await self.fallback_manager.rotate_to_next_fallback(failed_url, options)
        except Exception as exc:
            RadioErrorHandler.analyze_error(exc, "automatic_failover")
            return

        if next_url:
            self._status.last_failover = Datetime.now()
            self._status.total_failovers += 1
            self._status.last_working_url = next_url
            self._awaiting_recovery = True
            logger.info(f"[RadioHealth] automatic failover successful: {next_url}")
            await self._broadcast_health_event("failover_succeeded", "high")
        else:
            logger.error("[RadioHealth] automatic failover failed: no working backup URLs available")
            await self._broadcast_health_event("failover_failed", "high")

    async def _check_recovery(self) -> None:
        if not self._awaiting_recovery:
            return
        if self._status.consecutive_successes >= self._config.recovery_threshold:
            self._awaiting_recovery = False
            await self.fallback_manager.reset_rotation_state()
            logger.info(
                f"[RadioHealth] primary stream recovered after "
                f"{self._status.consecutive_successes} healthy checks, rotation state reset"
            )

    # ===== reporting =====

    def _recommendations(
        self, status: SystemHealthStatus, candidates: Sequence[FallbackCandidate]
    ) -> list[str]:
        recommendations: list[str] = []
        if status.overall_status is HealthStatus.CRITICAL:
            recommendations.append("All stream URLs are failing - check network connectivity and server status")
            recommendations.append("Verify stream server configurations and restart if necessary")
        elif status.overall_status is HealthStatus.UNHEALTHY:
            recommendations.append("Primary stream URL is failing - investigate server issues")
            recommendations.append("Consider updating primary stream URL if problem persists")
        elif status.overall_status is HealthStatus.DEGRADED:
            recommendations.append("System is running on fallback URLs - restore primary stream when possible")

        if status.consecutive_failures > 10:
            recommendations.append("High number of consecutive failures detected - review stream infrastructure")
        if status.statistics.average_response_time_ms > 5000:
            recommendations.append("High response times detected - check network latency and server performance")
        if status.statistics.uptime_percentage < 95:
            recommendations.append("Low uptime percentage - consider adding more reliable backup URLs")
        if status.total_failovers > 5:
            recommendations.append("Multiple failovers detected - investigate stability of primary stream URL")

        recommendations.extend(
            fallback_recommendations(candidates, self.fallback_manager.get_rotation_state())
        )
        return recommendations

    def _log_results(self, status: SystemHealthStatus, duration_ms: int) -> None:
        logger.info(
            f"[RadioHealth] health check completed in {duration_ms}ms - status: {status.overall_status.value}"
        )
        if status.primary_url:
            p = status.primary_url
            logger.info(f"[RadioHealth] primary URL: {p.url} - {p.status.value} ({p.response_time_ms}ms)")
        if status.active_fallback:
            f = status.active_fallback
            logger.info(f"[RadioHealth] active fallback: {f.url} - {f.status.value} ({f.response_time_ms}ms)")
        stats = status.statistics
        logger.info(
            f"[RadioHealth] statistics: {stats.uptime_percentage}% uptime, "
            f"{stats.average_response_time_ms}ms avg response"
        )
        if status.recommendations:
            logger.warning(f"[RadioHealth] recommendations: {'; '.join(status.recommendations)}")

    async def _broadcast_health_event(self, reason: str, priority: ReloadPriority) -> None:
        if not self._config.enable_event_broadcasting:
            return
        logger.debug(f"[RadioHealth] reload event ({reason}, {priority})")
        await self.event_bus.broadcast_configuration_reload(
            "error_recovery",
            priority,
            source="health-monitor",
            correlation_id=f"health-{Datetime.now_ms()}",
            debug=self._config.enable_detailed_logging,
        )

    async def _broadcast_status_update(self, status: SystemHealthStatus) -> None:
        if not self._config.enable_event_broadcasting:
            return
        stats = status.statistics
        await self.event_bus.safe_broadcast(
            RadioEventName.HEALTH_STATUS_UPDATE,
            HealthStatusUpdateEvent(
                status=status.overall_status.value,
                source="health-monitor",
                primary_url=status.primary_url.url if status.primary_url else None,
                active_fallback=status.active_fallback.url if status.active_fallback else None,
                statistics=HealthStatisticsPayload(
                    total_checks=stats.total_checks,
                    successful_checks=stats.successful_checks,
                    failed_checks=stats.failed_checks,
                    average_response_time_ms=stats.average_response_time_ms,
                    uptime_percentage=stats.uptime_percentage,
                ),
                recommendations=list(status.recommendations),
            ),
        )

    # ===== state access =====

    def get_health_status(self) -> SystemHealthStatus:
        return self._status.copy()

    def get_health_config(self) -> HealthMonitorConfig:
        return self._config.model_copy()

    async def update_health_config(self, changes: dict[str, Any]) -> HealthMonitorConfig:
        previous_interval = self._config.check_interval
        self._config = self._config.merged(changes)
        logger.info("[RadioHealth] health monitoring configuration updated")

        if self._is_active and self._config.check_interval != previous_interval:
            await self._cancel_timer()
            self._arm_timer()
        return self.get_health_config()

    def get_health_history(self, limit: int | None = None) -> list[HealthCheckResult]:
        history = list(self._history)
        return history[-limit:] if limit else history

    def clear_health_history(self) -> None:
        self._history.clear()
        logger.info("[RadioHealth] health check history cleared")

    def get_health_report(self) -> dict[str, Any]:
        return {
            "status": self.get_health_status(),
            "is_active": self._is_active,
            "config": self.get_health_config(),
            "recent_history": self.get_health_history(RECENT_HISTORY_SIZE),
            "recommendations": list(self._status.recommendations),
        }

    async def reset_health_state(self) -> None:
        if self._is_active:
            await self.stop()
        self._init_state()
        logger.info("[RadioHealth] health monitoring state reset")
