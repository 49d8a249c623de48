from __future__ import annotations

import asyncio
import json
import time

from fastapi import APIRouter, Depends, Request, Response, WebSocket, WebSocketDisconnect, status

from trend_radio.core.config import settings
from trend_radio.core.logging import logger
from trend_radio.deps.radio import (
    get_event_bus,
    get_fallback_manager,
    get_prober,
    get_radio_settings_service,
)
from trend_radio.schemas.radio import (
    FailoverRequest,
    MobileRadioConfigResponse,
    StreamSelection,
)
from trend_radio.services.radio.errors import (
    RadioErrorHandler,
    RadioErrorType,
    RadioOperationError,
    StreamErrorMetadata,
)
from trend_radio.services.radio.events import RadioEvent, RadioEventBus, RadioEventName
from trend_radio.services.radio.fallback import FallbackManager
from trend_radio.services.radio.settings_service import RadioSettingsService
from trend_radio.services.radio.stream_prober import StreamProber
from trend_radio.utils.time_utils import Datetime

router = APIRouter(prefix="/radio", tags=["Radio"])

_POLL_INTERVAL_SECONDS = 1.0
_EVENT_QUEUE_SIZE = 100


# ===== mobile config =====


@router.get("/config", response_model=MobileRadioConfigResponse)
async def get_mobile_radio_config(
    request: Request,
    response: Response,
    service: RadioSettingsService = Depends(get_radio_settings_service),
):
    config, etag = await service.get_mobile_config()
    cache_headers = {
        "ETag": etag,
        "Cache-Control": f"public, max-age={settings.RADIO_CONFIG_CACHE_TTL}, must-revalidate",
    }
    if request.headers.get("if-none-match") == etag:
        return Response(status_code=status.HTTP_304_NOT_MODIFIED, headers=cache_headers)

    response.headers.update(cache_headers)
    return MobileRadioConfigResponse(data=config)


# ===== player stream selection =====


@router.get("/stream", response_model=StreamSelection)
async def get_working_stream(
    service: RadioSettingsService = Depends(get_radio_settings_service),
    prober: StreamProber = Depends(get_prober),
    manager: FallbackManager = Depends(get_fallback_manager),
) -> StreamSelection:
    active = await service.get_active_settings()
    primary = active.stream_url if active else settings.RADIO_STREAM_URL

    if primary:
        result = await prober.probe(primary)
        if result.is_valid:
            return StreamSelection(url=primary, is_fallback=False)
        logger.warning(f"[RadioStream] primary stream {primary} failed: {result.error}")

    fallback = await manager.get_fallback_url()
    if fallback:
        return StreamSelection(url=fallback, is_fallback=fallback != primary)
    raise _no_stream_available("get_working_stream", primary)


@router.post("/stream/failover", response_model=StreamSelection)
async def failover_stream(
    payload: FailoverRequest,
    manager: FallbackManager = Depends(get_fallback_manager),
) -> StreamSelection:
    next_url = await manager.rotate_to_next_fallback(payload.failed_url)
    if next_url:
        return StreamSelection(url=next_url, is_fallback=True)
    raise _no_stream_available("rotate_to_next_fallback", payload.failed_url)


def _no_stream_available(operation: str, url: str | None) -> RadioOperationError:
    return RadioOperationError(
        RadioErrorHandler.create_error(
            RadioErrorType.NETWORK_UNREACHABLE,
            operation,
            "No working stream URL available",
            metadata=StreamErrorMetadata(stream_url=url),
        )
    )


# ===== player events =====


def _is_ping(message: str) -> bool:
    if message.strip().lower() == "ping":
        return True
    try:
        payload = json.loads(message)
    except ValueError:
        return False
    return isinstance(payload, dict) and payload.get("type") == "ping"


async def _drain(websocket: WebSocket, queue: asyncio.Queue[tuple[RadioEventName, RadioEvent]]) -> int:
    sent = 0
    while not queue.empty():
        name, payload = queue.get_nowait()
        await websocket.send_json({"type": name.value, "data": payload.to_wire()})
        sent += 1
    return sent


@router.websocket("/events")
async def radio_events_ws(
    websocket: WebSocket,
    event_bus: RadioEventBus = Depends(get_event_bus),
) -> None:
    await websocket.accept()

    queue: asyncio.Queue[tuple[RadioEventName, RadioEvent]] = asyncio.Queue(maxsize=_EVENT_QUEUE_SIZE)

    def enqueue(name: RadioEventName, payload: RadioEvent) -> None:
        if queue.full():
            queue.get_nowait()
            logger.warning("[RadioEvents] player event queue full, dropping oldest event")
        queue.put_nowait((name, payload))

    unsubscribe = event_bus.subscribe(enqueue)
    heartbeat = settings.RADIO_EVENTS_HEARTBEAT_SECONDS
    last_sent = time.monotonic()

    try:
        while True:
            try:
                message = await asyncio.wait_for(
                    websocket.receive_text(),
                    timeout=_POLL_INTERVAL_SECONDS,
                )
            except asyncio.TimeoutError:
                if await _drain(websocket, queue):
                    last_sent = time.monotonic()
                elif time.monotonic() - last_sent >= heartbeat:
                    await websocket.send_json({"type": "heartbeat", "data": {"timestamp": Datetime.now_ms()}})
                    last_sent = time.monotonic()
                continue

            if _is_ping(message):
                await websocket.send_json({"type": "pong", "data": {"timestamp": Datetime.now_ms()}})
                last_sent = time.monotonic()
            if await _drain(websocket, queue):
                last_sent = time.monotonic()
    except WebSocketDisconnect:
        logger.info("[RadioEvents] player disconnected")
    except Exception as exc:
        logger.error(f"[RadioEvents] event stream failed: {exc}")
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
    finally:
        unsubscribe()
