import httpx
import pytest

from trend_radio.services.radio.stream_prober import ProbeFailure, StreamProber, is_audio_content_type

STREAM_URL = "https://stream.example.com/live"


def _prober(handler) -> StreamProber:
    return StreamProber(timeout=2.0, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_probe_accepts_audio_stream():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, headers={"content-type": "audio/mpeg", "icy-name": "Trend", "icy-br": "128"})

    result = await _prober(handler).probe(STREAM_URL)

    assert result.is_valid
    assert result.status_code == 200
    assert result.failure is None
    assert result.metadata is not None
    assert result.metadata.stream_title == "Trend"
    assert seen[0].method == "HEAD"
    assert seen[0].headers["user-agent"] == "TrendAnkara-WebApp/1.0"
    assert seen[0].headers["accept"] == "*/*"


@pytest.mark.asyncio
async def test_probe_falls_back_to_get_when_head_not_allowed():
    methods: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        methods.append(request.method)
        if request.method == "HEAD":
            return httpx.Response(405)
        assert request.headers["icy-metadata"] == "1"
        return httpx.Response(200, headers={"content-type": "application/ogg"}, content=b"OggS")

    result = await _prober(handler).probe(STREAM_URL)

    assert methods == ["HEAD", "GET"]
    assert result.is_valid


@pytest.mark.asyncio
async def test_probe_reports_http_status():
    result = await _prober(lambda request: httpx.Response(404)).probe(STREAM_URL)

    assert not result.is_valid
    assert result.failure is ProbeFailure.HTTP_STATUS
    assert result.error == "Stream URL returned status 404: Not Found"


@pytest.mark.asyncio
async def test_probe_rejects_non_audio_content():
    result = await _prober(
        lambda request: httpx.Response(200, headers={"content-type": "text/html"})
    ).probe(STREAM_URL)

    assert result.failure is ProbeFailure.CONTENT_TYPE
    assert result.error == "Stream URL returned unexpected content type: text/html"


@pytest.mark.asyncio
async def test_probe_reports_timeout():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    result = await _prober(handler).probe(STREAM_URL, timeout=3)

    assert result.failure is ProbeFailure.TIMEOUT
    assert result.error == "Connection timeout (3 seconds exceeded)"


@pytest.mark.asyncio
async def test_probe_reports_network_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    result = await _prober(handler).probe(STREAM_URL)

    assert result.failure is ProbeFailure.CONNECTION
    assert result.error == "Network error: connection refused"


@pytest.mark.asyncio
async def test_probe_rejects_invalid_url_without_request():
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200)

    result = await _prober(handler).probe("ftp://stream.example.com/live")

    assert result.failure is ProbeFailure.INVALID_URL
    assert calls == []


def test_is_audio_content_type():
    assert is_audio_content_type("audio/aacp")
    assert is_audio_content_type("application/octet-stream")
    assert not is_audio_content_type("text/html; charset=utf-8")
