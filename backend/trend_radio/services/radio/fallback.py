"""
Fallback stream URL management.

- FallbackSourceAggregator: merges the configured sources into one
  priority-ordered, de-duplicated candidate list.
- FallbackManager: batched concurrent testing with a TTL result cache,
  selection of the first working candidate, and rotation away from a failed
  URL. The rotation state and the result cache are fields of the manager
  instance, so tests (and a second station) get independent state.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any

from trend_radio.core.config import Settings
from trend_radio.core.logging import logger
from trend_radio.services.radio.errors import RadioErrorHandler
from trend_radio.services.radio.stream_prober import StreamProber, StreamTestResult
from trend_radio.utils.time_utils import Datetime

PersistedFallbackLoader = Callable[[], Awaitable[str | None]]

EMERGENCY_PRIORITY = 999


class FallbackSource(str, Enum):
    ENVIRONMENT = "environment"
    DATABASE = "database"
    DEFAULT = "default"


@dataclass(slots=True)
class FallbackCandidate:
    url: str
    priority: int
    source: FallbackSource
    description: str = ""
    last_tested_at: datetime | None = None
    last_result: StreamTestResult | None = None
    consecutive_failures: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "priority": self.priority,
            "source": self.source.value,
            "description": self.description,
            "last_tested_at": self.last_tested_at,
            "consecutive_failures": self.consecutive_failures,
        }


@dataclass(slots=True, frozen=True)
class FallbackSourceConfig:
    """Snapshot of the configured stream sources, read once at startup."""

    primary_url: str | None = None
    backup_url: str | None = None
    extra_urls: tuple[str, ...] = ()
    default_urls: tuple[str, ...] = ()

    @classmethod
    def from_settings(cls, settings: Settings) -> FallbackSourceConfig:
        extras = tuple(
            url.strip() for url in (settings.RADIO_FALLBACK_URLS or "").split(",") if url.strip()
        )
        return cls(
            primary_url=(settings.RADIO_STREAM_URL or "").strip() or None,
            backup_url=(settings.RADIO_BACKUP_STREAM_URL or "").strip() or None,
            extra_urls=extras,
            default_urls=tuple(settings.RADIO_DEFAULT_STREAM_URLS),
        )


@dataclass(slots=True, frozen=True)
class FallbackOptions:
    max_concurrent_tests: int = 3
    test_timeout: float = 10.0
    max_retries: int = 3  # informational
    retry_cooldown: float = 60.0
    enable_caching: bool = True
    cache_duration: float = 300.0

    def merged(self, **overrides: Any) -> FallbackOptions:
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes) if changes else self


@dataclass(slots=True)
class RotationState:
    current_url: str | None = None
    current_index: int = 0
    last_rotation_at: datetime | None = None
    failed_urls: set[str] = field(default_factory=set)
    rotation_count: int = 0

    def copy(self) -> RotationState:
        return replace(self, failed_urls=set(self.failed_urls))

    def to_dict(self) -> dict[str, Any]:
        return {
            "current_url": self.current_url,
            "current_index": self.current_index,
            "last_rotation_at": self.last_rotation_at,
            "failed_urls": sorted(self.failed_urls),
            "rotation_count": self.rotation_count,
        }


class StreamTestResultCache:
    """URL -> (result, stored_at). Entries older than the TTL read as absent."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: dict[str, tuple[StreamTestResult, float]] = {}

    def get(self, url: str, ttl: float) -> StreamTestResult | None:
        entry = self._entries.get(url)
        if entry is None:
            return None
        result, stored_at = entry
        if self._clock() - stored_at >= ttl:
            return None
        return result

    def set(self, url: str, result: StreamTestResult) -> None:
        self._entries[url] = (result, self._clock())

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class FallbackSourceAggregator:
    def __init__(
        self,
        config: FallbackSourceConfig,
        persisted_fallback_loader: PersistedFallbackLoader | None = None,
    ):
        self.config = config
        self._load_persisted = persisted_fallback_loader

    async def collect(self) -> list[FallbackCandidate]:
        """Priority order: primary 1, backup 2, extras 10+, persisted 50, defaults 100+."""
        try:
            candidates: list[FallbackCandidate] = []
            seen: set[str] = set()

            def add(url: str | None, priority: int, source: FallbackSource, description: str) -> None:
                url = (url or "").strip()
                if not url or url in seen:
                    return
                seen.add(url)
                candidates.append(FallbackCandidate(url, priority, source, description))

            add(self.config.primary_url, 1, FallbackSource.ENVIRONMENT, "Primary environment stream URL")
            add(self.config.backup_url, 2, FallbackSource.ENVIRONMENT, "Backup environment stream URL")
            for index, url in enumerate(self.config.extra_urls):
                add(url, 10 + index, FallbackSource.ENVIRONMENT, f"Environment fallback URL {index + 1}")

            persisted = await self._persisted_fallback()
            add(persisted, 50, FallbackSource.DATABASE, "Database fallback stream URL")

            for index, url in enumerate(self.config.default_urls):
                add(url, 100 + index, FallbackSource.DEFAULT, f"Default fallback URL {index + 1}")

            candidates.sort(key=lambda c: c.priority)
            logger.info(f"[RadioFallback] collected {len(candidates)} fallback URLs")
            return candidates
        except Exception as exc:
            logger.error(f"[RadioFallback] error collecting fallback URLs: {exc}")
            return [self._emergency_candidate()]

    async def _persisted_fallback(self) -> str | None:
        if self._load_persisted is None:
            return None
        try:
            return await self._load_persisted()
        except Exception as exc:
            logger.warning(f"[RadioFallback] failed to retrieve database fallback URL: {exc}")
            return None

    def _emergency_candidate(self) -> FallbackCandidate:
        url = self.config.default_urls[0] if self.config.default_urls else ""
        return FallbackCandidate(
            url=url,
            priority=EMERGENCY_PRIORITY,
            source=FallbackSource.DEFAULT,
            description="Emergency default fallback URL",
        )


class FallbackManager:
    def __init__(
        self,
        aggregator: FallbackSourceAggregator,
        prober: StreamProber,
        options: FallbackOptions | None = None,
        *,
        cache: StreamTestResultCache | None = None,
    ):
        self.aggregator = aggregator
        self.prober = prober
        self.options = options or FallbackOptions()
        self.cache = cache or StreamTestResultCache()
        self._rotation = RotationState()
        self._rotation_lock = asyncio.Lock()

    # ===== testing / selection =====

    def _in_cooldown(self, candidate: FallbackCandidate, options: FallbackOptions) -> bool:
        if candidate.consecutive_failures <= 0 or candidate.last_tested_at is None:
            return False
        return Datetime.seconds_since(candidate.last_tested_at) < options.retry_cooldown

    async def _test_candidate(
        self, candidate: FallbackCandidate, options: FallbackOptions
    ) -> StreamTestResult:
        try:
            result = self.cache.get(candidate.url, options.cache_duration) if options.enable_caching else None
            if result is None:
                logger.info(f"[RadioFallback] testing {candidate.url} ({candidate.description})")
                result = await self.prober.probe(candidate.url, timeout=options.test_timeout)
                if options.enable_caching:
                    self.cache.set(candidate.url, result)
            else:
                logger.debug(f"[RadioFallback] cached result for {candidate.url}")
        except Exception as exc:
            logger.error(f"[RadioFallback] error testing {candidate.url}: {exc}")
            result = StreamTestResult(is_valid=False, error=str(exc) or exc.__class__.__name__)

        candidate.last_tested_at = Datetime.now()
        candidate.last_result = result
        if result.is_valid:
            candidate.consecutive_failures = 0
        else:
            candidate.consecutive_failures += 1
            logger.warning(f"[RadioFallback] fallback URL failed: {candidate.url} - {result.error}")
        return result

    async def test_fallback_urls(
        self,
        candidates: Sequence[FallbackCandidate],
        options: FallbackOptions | None = None,
    ) -> FallbackCandidate | None:
        """
        Return the first working candidate in priority order, or None.

        Candidates still inside their retry cooldown are skipped. Each batch of
        `max_concurrent_tests` is probed concurrently and awaited as a group;
        later batches run only when an earlier one produced no winner.
        """
        options = options or self.options
        if not candidates:
            logger.warning("[RadioFallback] no fallback URLs to test")
            return None

        testable = [c for c in candidates if not self._in_cooldown(c, options)]
        if not testable:
            logger.warning("[RadioFallback] all fallback URLs are in cooldown period")
            return None

        batch_size = max(1, options.max_concurrent_tests)
        for start in range(0, len(testable), batch_size):
            batch = testable[start : start + batch_size]
            results = await asyncio.gather(*(self._test_candidate(c, options) for c in batch))
            for candidate, result in zip(batch, results):
                if result.is_valid:
                    logger.info(f"[RadioFallback] found working fallback URL: {candidate.url}")
                    return candidate
        return None

    async def get_fallback_url(self, options: FallbackOptions | None = None) -> str | None:
        try:
            candidates = await self.aggregator.collect()
            if not candidates:
                logger.error("[RadioFallback] no fallback URLs available")
                return None

            working = await self.test_fallback_urls(candidates, options)
            if working:
                logger.info(f"[RadioFallback] selected fallback URL: {working.url} ({working.source.value})")
                return working.url

            logger.warning("[RadioFallback] no working fallback URLs found, returning highest priority URL")
            return candidates[0].url
        except Exception as exc:
            RadioErrorHandler.analyze_error(exc, "get_fallback_url")
            return None

    # ===== rotation =====

    async def rotate_to_next_fallback(
        self,
        failed_url: str,
        options: FallbackOptions | None = None,
    ) -> str | None:
        async with self._rotation_lock:
            try:
                return await self._rotate(failed_url, options)
            except Exception as exc:
                RadioErrorHandler.analyze_error(exc, "rotate_to_next_fallback")
                return None

    async def _rotate(self, failed_url: str, options: FallbackOptions | None) -> str | None:
        state = self._rotation
        logger.info(f"[RadioFallback] rotating from failed URL: {failed_url}")
        state.failed_urls.add(failed_url)
        state.rotation_count += 1
        state.last_rotation_at = Datetime.now()

        candidates = await self.aggregator.collect()
        available = [c for c in candidates if c.url not in state.failed_urls and c.url != failed_url]

        if not available:
            logger.warning("[RadioFallback] all fallback URLs have failed, resetting rotation state")
            state.failed_urls.clear()
            state.current_index = 0
            available = [c for c in candidates if c.url != failed_url]
            if not available:
                return None

        working = await self.test_fallback_urls(available, options)
        if working is None:
            logger.error("[RadioFallback] no working fallback URLs available after rotation")
            return None

        state.current_url = working.url
        state.current_index = next(
            (i for i, c in enumerate(candidates) if c.url == working.url), 0
        )
        logger.info(
            f"[RadioFallback] rotated to next fallback URL: {working.url} (attempt {state.rotation_count})"
        )
        return working.url

    def get_rotation_state(self) -> RotationState:
        return self._rotation.copy()

    async def reset_rotation_state(self) -> None:
        # Waits for an in-flight rotation so its outcome is not written into a discarded state.
        async with self._rotation_lock:
            logger.info("[RadioFallback] resetting fallback URL rotation state")
            self._rotation = RotationState()

    def clear_test_cache(self) -> None:
        logger.info("[RadioFallback] clearing fallback URL test cache")
        self.cache.clear()

    # ===== monitoring =====

    async def get_fallback_status(self) -> dict[str, Any]:
        candidates = await self.aggregator.collect()
        state = self.get_rotation_state()
        return {
            "available_urls": [c.to_dict() for c in candidates],
            "rotation_state": state.to_dict(),
            "cache_size": len(self.cache),
            "recommendations": fallback_recommendations(candidates, state),
        }

    async def validate_all_fallback_urls(self, options: FallbackOptions | None = None) -> dict[str, Any]:
        options = options or self.options
        candidates = await self.aggregator.collect()
        logger.info(f"[RadioFallback] validating {len(candidates)} fallback URLs")

        async def check(candidate: FallbackCandidate) -> dict[str, Any]:
            try:
                result = await self.prober.probe(candidate.url, timeout=options.test_timeout)
            except Exception as exc:
                result = StreamTestResult(is_valid=False, error=str(exc) or "Unknown error")
            return {
                "url": candidate.url,
                "source": candidate.source.value,
                "priority": candidate.priority,
                "is_working": result.is_valid,
                "error": result.error,
                "response_time_ms": result.response_time_ms,
            }

        results = await asyncio.gather(*(check(c) for c in candidates))
        working = sum(1 for r in results if r["is_working"])
        logger.info(
            f"[RadioFallback] validation complete: {working} working, "
            f"{len(results) - working} failed out of {len(results)} total"
        )
        return {
            "total": len(results),
            "working": working,
            "failed": len(results) - working,
            "results": list(results),
        }


def fallback_recommendations(
    candidates: Sequence[FallbackCandidate], state: RotationState
) -> list[str]:
    recommendations: list[str] = []
    if len(candidates) < 3:
        recommendations.append("Consider adding more fallback URLs for better redundancy")
    if state.rotation_count > 10:
        recommendations.append("High rotation count detected - investigate primary stream stability")
    if len(state.failed_urls) > len(candidates) / 2:
        recommendations.append("More than half of fallback URLs have failed - check network connectivity")
    if not any(c.source is FallbackSource.ENVIRONMENT for c in candidates):
        recommendations.append("No environment fallback URLs configured - add RADIO_BACKUP_STREAM_URL")
    return recommendations
