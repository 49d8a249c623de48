"""
Stream URL validation.

Two levels:
- `check_stream_url`: the strict gate used before probing and persisting
  (http/https, at most 500 characters, hostname present).
- `StreamUrlValidator`: the admin-facing validator with suggestions and
  auto-correction of common copy/paste mistakes.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Literal
from urllib.parse import urlsplit, urlunsplit

MAX_STORED_URL_LENGTH = 500

_SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.\-]*://", re.IGNORECASE)
_HOSTNAME_RE = re.compile(
    r"^[a-zA-Z0-9]([a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?(\.[a-zA-Z0-9]([a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$"
)
_PRIVATE_PREFIXES = ("127.", "192.168.", "10.")
_FILE_TAILS = (
    "/index.html",
    "/index.htm",
    "/playlist.m3u",
    "/listen.pls",
    "/stream.mp3",
    "/radio.aac",
)
_EXAMPLE = "https://stream.example.com:8000/"

ValidationErrorType = Literal["format", "length", "protocol", "hostname"]


def check_stream_url(url: str) -> str | None:
    """Return an error message when `url` cannot be stored or probed, else None."""
    if not url or "://" not in url:
        return "Invalid URL format"
    try:
        parts = urlsplit(url)
        hostname = parts.hostname
        _ = parts.port  # malformed port raises ValueError
    except ValueError:
        return "Invalid URL format"
    if parts.scheme.lower() not in ("http", "https"):
        return "Stream URL must use HTTP or HTTPS protocol"
    if len(url) > MAX_STORED_URL_LENGTH:
        return f"Stream URL cannot exceed {MAX_STORED_URL_LENGTH} characters"
    if not hostname:
        return "Stream URL must have a valid hostname"
    return None


def is_http_url(url: str) -> bool:
    """Loose check used for social links and the backup URL."""
    return check_stream_url(url) is None


@dataclass(slots=True)
class UrlValidationResult:
    is_valid: bool
    message: str
    error_type: ValidationErrorType | None = None
    suggestions: list[str] = field(default_factory=list)
    details: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class UrlCorrection:
    corrected: str
    reason: str | None = None


class StreamUrlValidator:
    def __init__(
        self,
        *,
        min_length: int = 10,
        max_length: int = 2048,
        allow_http: bool = True,
        auto_correct: bool = True,
    ) -> None:
        self.min_length = min_length
        self.max_length = max_length
        self.allow_http = allow_http
        self.auto_correct = auto_correct

    def validate(self, url: str | None) -> UrlValidationResult:
        if not url or not isinstance(url, str):
            return UrlValidationResult(
                is_valid=False,
                message="URL is required and must be a valid string",
                error_type="format",
                suggestions=[f"Please enter a valid stream URL (e.g., {_EXAMPLE})"],
            )

        trimmed = url.strip()
        if len(trimmed) < self.min_length:
            return UrlValidationResult(
                is_valid=False,
                message=f"URL is too short (minimum {self.min_length} characters)",
                error_type="length",
                suggestions=["Please enter a complete stream URL including protocol and domain"],
            )
        if len(trimmed) > self.max_length:
            return UrlValidationResult(
                is_valid=False,
                message=f"URL is too long (maximum {self.max_length} characters)",
                error_type="length",
                suggestions=["Please shorten the URL or remove unnecessary parameters"],
            )

        try:
            parts = urlsplit(self._with_scheme(trimmed))
            hostname = parts.hostname or ""
            port = parts.port
        except ValueError:
            return UrlValidationResult(
                is_valid=False,
                message="Invalid URL format",
                error_type="format",
                suggestions=[
                    "Ensure URL includes protocol (http:// or https://)",
                    "Check for typos in domain name",
                    f"Example: {_EXAMPLE}",
                ],
            )

        scheme = parts.scheme.lower()
        if scheme not in ("http", "https") or (scheme == "http" and not self.allow_http):
            return UrlValidationResult(
                is_valid=False,
                message="Invalid protocol. Only HTTP and HTTPS are supported for streaming URLs",
                error_type="protocol",
                suggestions=[
                    "Use https:// for secure connections (recommended)",
                    "Use http:// if HTTPS is not available",
                    f"Example: {_EXAMPLE}",
                ],
                details={"protocol_valid": False},
            )

        hostname_error = self._validate_hostname(hostname)
        if hostname_error:
            return hostname_error

        suggestions: list[str] = []
        corrected = trimmed
        if self.auto_correct:
            correction = self.correct(trimmed)
            if correction.corrected != trimmed:
                corrected = correction.corrected
                suggestions.append(f"Suggested URL: {corrected}")
                if correction.reason:
                    suggestions.append(correction.reason)

        if self._is_private_host(hostname):
            suggestions.append("Local streams may not be accessible from all devices")

        if scheme == "http":
            suggestions.append(
                "HTTP streams may have security implications. Consider using HTTPS if available."
            )

        return UrlValidationResult(
            is_valid=True,
            message=(
                "URL is valid with suggested corrections"
                if corrected != trimmed
                else "URL format is valid"
            ),
            suggestions=suggestions,
            details={
                "protocol_valid": True,
                "length_valid": True,
                "hostname_valid": True,
                "parsed_url": {
                    "protocol": f"{scheme}:",
                    "hostname": hostname,
                    "port": port,
                    "pathname": parts.path or "/",
                },
            },
        )

    def correct(self, url: str) -> UrlCorrection:
        """Strip `/stream` and playlist/file tails so the base mount URL is stored."""
        original = url.strip()
        try:
            parts = urlsplit(self._with_scheme(original))
        except ValueError:
            return UrlCorrection(corrected=url)

        path = parts.path
        reason: str | None = None
        changed = False

        for suffix in ("/stream", "/stream/"):
            if path.endswith(suffix):
                path = path[: -len(suffix)]
                changed = True
                reason = f'Removed "{suffix}" suffix - base URL format is recommended for better compatibility'
                break

        for tail in _FILE_TAILS:
            if path.endswith(tail):
                path = path[: -len(tail)]
                changed = True
                reason = f'Removed "{tail}" - base URL format is recommended for streaming compatibility'
                break

        if not changed:
            return UrlCorrection(corrected=original)

        if not path.endswith("/"):
            path += "/"
        corrected = urlunsplit((parts.scheme, parts.netloc, path, parts.query, parts.fragment))
        return UrlCorrection(corrected=corrected, reason=reason)

    def is_valid(self, url: str) -> bool:
        return self.validate(url).is_valid

    def _validate_hostname(self, hostname: str) -> UrlValidationResult | None:
        if not hostname:
            return UrlValidationResult(
                is_valid=False,
                message="Hostname is required",
                error_type="hostname",
                suggestions=["Please provide a valid domain name (e.g., stream.example.com)"],
                details={"hostname_valid": False},
            )
        if not _HOSTNAME_RE.match(hostname):
            return UrlValidationResult(
                is_valid=False,
                message="Invalid hostname format",
                error_type="hostname",
                suggestions=[
                    "Check for typos in the domain name",
                    "Ensure hostname contains only letters, numbers, dots, and hyphens",
                    "Example: stream.example.com",
                ],
                details={"hostname_valid": False},
            )
        return None

    @staticmethod
    def _is_private_host(hostname: str) -> bool:
        return hostname == "localhost" or hostname.startswith(_PRIVATE_PREFIXES)

    @staticmethod
    def _with_scheme(url: str) -> str:
        if _SCHEME_RE.match(url):
            return url
        return f"https://{url}"


stream_url_validator = StreamUrlValidator()


def validate_stream_url(url: str | None, **options: Any) -> UrlValidationResult:
    if options:
        return StreamUrlValidator(**options).validate(url)
    return stream_url_validator.validate(url)


def correct_stream_url_format(url: str) -> str:
    return stream_url_validator.correct(url).corrected
