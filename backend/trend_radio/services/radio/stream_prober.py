"""
StreamProber: bounded connectivity probe for a single stream URL.

`probe()` never raises. Every failure mode resolves to a
`StreamTestResult(is_valid=False)` carrying a human-readable `error` and a
typed `failure` so callers can classify without parsing strings.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum

import httpx

from trend_radio.core.config import settings
from trend_radio.core.http_client import create_async_http_client
from trend_radio.core.logging import logger
from trend_radio.services.radio.stream_metadata import StreamMetadata, parse_stream_headers
from trend_radio.services.radio.url_validator import check_stream_url

AUDIO_CONTENT_TYPES = ("audio/", "application/ogg", "video/", "application/octet-stream")

# Icecast/Shoutcast builds that reject HEAD
_HEAD_UNSUPPORTED = {405, 501}


class ProbeFailure(str, Enum):
    INVALID_URL = "invalid_url"
    TIMEOUT = "timeout"
    CONNECTION = "connection"
    HTTP_STATUS = "http_status"
    CONTENT_TYPE = "content_type"


@dataclass(slots=True, frozen=True)
class StreamTestResult:
    is_valid: bool
    status_code: int | None = None
    response_time_ms: int | None = None
    content_type: str | None = None
    error: str | None = None
    failure: ProbeFailure | None = None
    metadata: StreamMetadata | None = None


def is_audio_content_type(content_type: str) -> bool:
    lowered = content_type.lower()
    return any(marker in lowered for marker in AUDIO_CONTENT_TYPES)


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


class StreamProber:
    def __init__(
        self,
        *,
        timeout: float = settings.RADIO_PROBE_TIMEOUT_SECONDS,
        user_agent: str = settings.RADIO_PROBE_USER_AGENT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.timeout = timeout
        self._transport = transport
        self._headers = {"User-Agent": user_agent, "Accept": "*/*"}

    async def probe(self, url: str, timeout: float | None = None) -> StreamTestResult:
        timeout = timeout or self.timeout
        started = time.perf_counter()

        url_error = check_stream_url(url)
        if url_error:
            return StreamTestResult(
                is_valid=False,
                error=url_error,
                failure=ProbeFailure.INVALID_URL,
                response_time_ms=_elapsed_ms(started),
            )

        try:
            async with create_async_http_client(
                timeout=timeout,
                transport=self._transport,
                headers=self._headers,
            ) as client:
                response = await client.head(url)
                if response.status_code in _HEAD_UNSUPPORTED:
                    response = await self._fetch_headers_only(client, url)
        except httpx.TimeoutException:
            return StreamTestResult(
                is_valid=False,
                error=f"Connection timeout ({timeout:g} seconds exceeded)",
                failure=ProbeFailure.TIMEOUT,
                response_time_ms=_elapsed_ms(started),
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            return StreamTestResult(
                is_valid=False,
                error=f"Network error: {exc or exc.__class__.__name__}",
                failure=ProbeFailure.CONNECTION,
                response_time_ms=_elapsed_ms(started),
            )

        return self._evaluate(response, _elapsed_ms(started))

    async def _fetch_headers_only(self, client: httpx.AsyncClient, url: str) -> httpx.Response:
        # The body is an endless audio stream: read headers and hang up.
        async with client.stream("GET", url, headers={"Icy-MetaData": "1"}) as response:
            logger.debug(f"HEAD rejected by {url}, fell back to GET ({response.status_code})")
            return response

    def _evaluate(self, response: httpx.Response, response_time_ms: int) -> StreamTestResult:
        content_type = response.headers.get("content-type", "unknown")

        if not response.is_success:
            return StreamTestResult(
                is_valid=False,
                status_code=response.status_code,
                response_time_ms=response_time_ms,
                content_type=content_type,
                error=f"Stream URL returned status {response.status_code}: {response.reason_phrase}",
                failure=ProbeFailure.HTTP_STATUS,
            )

        if not is_audio_content_type(content_type):
            return StreamTestResult(
                is_valid=False,
                status_code=response.status_code,
                response_time_ms=response_time_ms,
                content_type=content_type,
                error=f"Stream URL returned unexpected content type: {content_type}",
                failure=ProbeFailure.CONTENT_TYPE,
            )

        return StreamTestResult(
            is_valid=True,
            status_code=response.status_code,
            response_time_ms=response_time_ms,
            content_type=content_type,
            metadata=parse_stream_headers(response.headers),
        )
