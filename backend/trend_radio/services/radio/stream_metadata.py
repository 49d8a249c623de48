"""
ICY / Icecast response header parsing.

Shoutcast and Icecast servers announce station details in `icy-*`,
`ice-*` and `x-audiocast-*` headers on the initial response; nothing here
reads the audio body.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum


class ServerType(str, Enum):
    SHOUTCAST = "shoutcast"
    ICECAST = "icecast"


class AudioFormat(str, Enum):
    MP3 = "mp3"
    AAC = "aac"
    OGG = "ogg"
    FLAC = "flac"


@dataclass(slots=True)
class ServerInfo:
    software: ServerType
    version: str | None = None
    description: str | None = None


@dataclass(slots=True)
class StreamMetadata:
    stream_title: str | None = None
    bitrate: int | None = None
    audio_format: AudioFormat | None = None
    server_info: ServerInfo | None = None
    content_type: str | None = None
    station_url: str | None = None
    genre: str | None = None
    sample_rate: int | None = None
    channels: int | None = None


_VERSION_RE = re.compile(r"v?(\d+(?:\.\d+)*)", re.IGNORECASE)


def _first(headers: Mapping[str, str], *names: str) -> str | None:
    for name in names:
        value = headers.get(name)
        if value:
            return value
    return None


def _parse_int(raw: str | None) -> int | None:
    if not raw:
        return None
    # "128,64" style multi-bitrate announcements: take the first one
    head = raw.split(",")[0].strip()
    try:
        return int(head)
    except ValueError:
        return None


def _lower_keys(headers: Mapping[str, str]) -> dict[str, str]:
    return {str(k).lower(): v for k, v in headers.items()}


def parse_audio_format(content_type: str) -> AudioFormat | None:
    lowered = content_type.lower()
    if "audio/mpeg" in lowered or "audio/mp3" in lowered:
        return AudioFormat.MP3
    if "audio/aac" in lowered or "audio/mp4" in lowered:
        return AudioFormat.AAC
    if "audio/ogg" in lowered or "application/ogg" in lowered:
        return AudioFormat.OGG
    if "audio/flac" in lowered:
        return AudioFormat.FLAC
    return None


def detect_server_type(headers: Mapping[str, str]) -> ServerInfo | None:
    headers = _lower_keys(headers)
    server = headers.get("server") or ""
    icy_name = headers.get("icy-name")
    icy_version = _first(headers, "icy-version", "x-audiocast-server-url")

    lowered = server.lower()
    for software in (ServerType.SHOUTCAST, ServerType.ICECAST):
        if software.value in lowered:
            match = _VERSION_RE.search(server)
            return ServerInfo(
                software=software,
                version=match.group(1) if match else None,
                description=icy_name,
            )

    if _first(headers, "icy-name", "icy-br", "icy-genre"):
        return ServerInfo(
            software=ServerType.ICECAST if icy_version else ServerType.SHOUTCAST,
            version=icy_version,
            description=icy_name,
        )
    return None


def parse_stream_headers(headers: Mapping[str, str]) -> StreamMetadata:
    headers = _lower_keys(headers)
    metadata = StreamMetadata(server_info=detect_server_type(headers))

    metadata.stream_title = _first(
        headers, "icy-name", "x-audiocast-name", "icy-description", "server-name"
    )
    metadata.bitrate = _parse_int(
        _first(headers, "icy-br", "x-audiocast-bitrate", "ice-bitrate")
    )

    content_type = headers.get("content-type")
    if content_type:
        metadata.content_type = content_type
        metadata.audio_format = parse_audio_format(content_type)

    metadata.station_url = _first(headers, "icy-url", "x-audiocast-url")
    metadata.genre = _first(headers, "icy-genre", "x-audiocast-genre", "ice-genre")
    metadata.sample_rate = _parse_int(_first(headers, "ice-samplerate", "icy-sr"))
    metadata.channels = _parse_int(_first(headers, "ice-channels", "icy-channels"))

    # ice-audio-info: "ice-samplerate=44100;ice-bitrate=128;ice-channels=2"
    audio_info = headers.get("ice-audio-info")
    if audio_info:
        parts = dict(
            item.strip().split("=", 1) for item in audio_info.split(";") if "=" in item
        )
        metadata.sample_rate = metadata.sample_rate or _parse_int(parts.get("ice-samplerate"))
        metadata.bitrate = metadata.bitrate or _parse_int(parts.get("ice-bitrate"))
        metadata.channels = metadata.channels or _parse_int(parts.get("ice-channels"))

    return metadata
