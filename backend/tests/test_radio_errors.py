import errno

import httpx
import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from trend_radio.services.radio.errors import (
    ERROR_HTTP_STATUS,
    ERROR_MESSAGES,
    ERROR_SEVERITY,
    AuthErrorMetadata,
    DatabaseErrorMetadata,
    RadioErrorHandler,
    RadioErrorSeverity,
    RadioErrorType,
    StreamErrorMetadata,
)
from trend_radio.services.radio.stream_prober import ProbeFailure, StreamTestResult


def test_every_error_type_has_message_severity_and_status():
    for error_type in RadioErrorType:
        assert error_type in ERROR_MESSAGES
        assert error_type in ERROR_SEVERITY
        assert error_type in ERROR_HTTP_STATUS


def test_create_error_fills_tables():
    error = RadioErrorHandler.create_error(
        RadioErrorType.STREAM_CONNECTION_TIMEOUT,
        "test_stream_connection",
        "Connection timeout (10 seconds exceeded)",
        admin_user_id="7",
    )
    assert error.user_message == ERROR_MESSAGES[RadioErrorType.STREAM_CONNECTION_TIMEOUT]
    assert error.http_status_code == 408
    assert error.is_retryable
    assert error.recovery_actions[0] == "Stream sunucusunun çalıştığını kontrol edin"
    assert error.context.operation == "test_stream_connection"
    assert error.context.admin_user_id == "7"


@pytest.mark.parametrize(
    "exc, expected",
    [
        (TypeError("failed to fetch"), RadioErrorType.NETWORK_CONNECTION_FAILED),
        (TimeoutError(), RadioErrorType.NETWORK_TIMEOUT),
        (httpx.ReadTimeout("read"), RadioErrorType.NETWORK_TIMEOUT),
        (httpx.ConnectError("refused"), RadioErrorType.NETWORK_CONNECTION_FAILED),
        (IntegrityError("insert", {}, Exception("duplicate")), RadioErrorType.DATABASE_CONSTRAINT_VIOLATION),
        (OperationalError("select", {}, Exception("gone")), RadioErrorType.DATABASE_CONNECTION_ERROR),
        (ConnectionRefusedError(errno.ECONNREFUSED, "refused"), RadioErrorType.DATABASE_CONNECTION_ERROR),
        (ConnectionResetError("reset by peer"), RadioErrorType.NETWORK_CONNECTION_FAILED),
        (ValueError("Invalid URL: nope"), RadioErrorType.VALIDATION_INVALID_URL),
        (ValueError("unsupported protocol"), RadioErrorType.VALIDATION_INVALID_PROTOCOL),
        (PermissionError("Insufficient permissions"), RadioErrorType.AUTH_INSUFFICIENT_PERMISSIONS),
        (RuntimeError("rate limit hit"), RadioErrorType.RATE_LIMIT_EXCEEDED),
        (RuntimeError("boom"), RadioErrorType.UNKNOWN_ERROR),
    ],
)
def test_analyze_error_classification(exc, expected):
    assert RadioErrorHandler.analyze_error(exc, "op").type is expected


@pytest.mark.parametrize(
    "message, expected",
    [
        ("Stream URL must use HTTP or HTTPS protocol", RadioErrorType.VALIDATION_INVALID_PROTOCOL),
        ("Stream URL must have a valid hostname", RadioErrorType.VALIDATION_INVALID_HOSTNAME),
        ("Stream URL cannot exceed 500 characters", RadioErrorType.VALIDATION_URL_TOO_LONG),
        ("Invalid URL format", RadioErrorType.VALIDATION_UNSUPPORTED_FORMAT),
        ("something else", RadioErrorType.VALIDATION_INVALID_URL),
    ],
)
def test_stream_validation_error_mapping(message, expected):
    error = RadioErrorHandler.handle_stream_validation_error(message, "validate", stream_url="x")
    assert error.type is expected
    assert isinstance(error.context.metadata, StreamErrorMetadata)
    assert error.context.metadata.stream_url == "x"


@pytest.mark.parametrize(
    "message, status_code, expected",
    [
        ("Connection timeout (10 seconds exceeded)", None, RadioErrorType.STREAM_CONNECTION_TIMEOUT),
        ("connect ECONNREFUSED", None, RadioErrorType.STREAM_CONNECTION_REFUSED),
        ("Stream URL returned unexpected content type: text/html", 200, RadioErrorType.STREAM_UNSUPPORTED_CONTENT_TYPE),
        ("Stream URL returned status 502: Bad Gateway", 502, RadioErrorType.STREAM_SERVER_ERROR),
        ("Stream URL returned status 404: Not Found", 404, RadioErrorType.STREAM_CONNECTION_REFUSED),
        ("Stream URL returned status 400: Bad Request", 400, RadioErrorType.STREAM_INVALID_RESPONSE),
    ],
)
def test_stream_connection_error_mapping(message, status_code, expected):
    error = RadioErrorHandler.handle_stream_connection_error(
        message, "probe", stream_url="https://s.example.com/", status_code=status_code
    )
    assert error.type is expected
    assert error.context.metadata.status_code == status_code


@pytest.mark.parametrize(
    "failure, expected",
    [
        (ProbeFailure.INVALID_URL, RadioErrorType.VALIDATION_INVALID_PROTOCOL),
        (ProbeFailure.TIMEOUT, RadioErrorType.STREAM_CONNECTION_TIMEOUT),
        (ProbeFailure.CONNECTION, RadioErrorType.NETWORK_UNREACHABLE),
        (ProbeFailure.CONTENT_TYPE, RadioErrorType.STREAM_UNSUPPORTED_CONTENT_TYPE),
        (ProbeFailure.HTTP_STATUS, RadioErrorType.STREAM_SERVER_ERROR),
    ],
)
def test_from_probe_result_uses_failure_kind(failure, expected):
    messages = {
        ProbeFailure.INVALID_URL: "Stream URL must use HTTP or HTTPS protocol",
        ProbeFailure.HTTP_STATUS: "Stream URL returned status 503: Service Unavailable",
    }
    result = StreamTestResult(
        is_valid=False,
        status_code=503 if failure is ProbeFailure.HTTP_STATUS else None,
        error=messages.get(failure, "whatever"),
        failure=failure,
    )
    error = RadioErrorHandler.from_probe_result(result, "probe", stream_url="https://s.example.com/")
    assert error is not None
    assert error.type is expected


def test_from_probe_result_ignores_valid_results():
    assert RadioErrorHandler.from_probe_result(StreamTestResult(is_valid=True), "probe") is None


def test_database_error_metadata():
    exc = IntegrityError("insert", {}, Exception("duplicate key"))
    error = RadioErrorHandler.handle_database_error(exc, "update", table="radio_settings")
    assert error.type is RadioErrorType.DATABASE_CONSTRAINT_VIOLATION
    assert error.http_status_code == 409
    assert isinstance(error.context.metadata, DatabaseErrorMetadata)
    assert error.context.metadata.table == "radio_settings"


def test_database_error_falls_back_to_query_failed():
    error = RadioErrorHandler.handle_database_error(RuntimeError("bad column"), "select")
    assert error.type is RadioErrorType.DATABASE_QUERY_FAILED
    assert error.is_retryable


@pytest.mark.parametrize(
    "message, expected",
    [
        ("Admin authentication required", RadioErrorType.AUTH_INSUFFICIENT_PERMISSIONS),
        ("session expired", RadioErrorType.AUTH_SESSION_EXPIRED),
        ("user not found", RadioErrorType.AUTH_INVALID_USER),
    ],
)
def test_auth_error_mapping(message, expected):
    error = RadioErrorHandler.handle_auth_error(message, "auth", required_role="admin")
    assert error.type is expected
    assert isinstance(error.context.metadata, AuthErrorMetadata)


def test_to_api_response_envelope():
    error = RadioErrorHandler.create_error(RadioErrorType.NETWORK_UNREACHABLE, "failover", "down")
    body = RadioErrorHandler.to_api_response(error)

    assert body["success"] is False
    assert body["error"]["type"] == "NETWORK_UNREACHABLE"
    assert body["error"]["code"] == "NETWORK_UNREACHABLE"
    assert body["error"]["message"] == ERROR_MESSAGES[RadioErrorType.NETWORK_UNREACHABLE]
    details = body["error"]["details"]
    assert details["operation"] == "failover"
    assert details["severity"] == error.severity.value
    assert set(details) == {"severity", "timestamp", "operation", "recoveryActions", "isRetryable"}


def test_to_user_display_titles():
    critical = RadioErrorHandler.create_error(RadioErrorType.INTERNAL_SERVER_ERROR, "op")
    assert critical.severity is RadioErrorSeverity.CRITICAL
    assert RadioErrorHandler.to_user_display(critical)["title"] == "Kritik Hata"

    for error_type in RadioErrorType:
        display = RadioErrorHandler.to_user_display(RadioErrorHandler.create_error(error_type, "op"))
        if ERROR_SEVERITY[error_type] is RadioErrorSeverity.LOW:
            assert display["type"] == "warning"
            assert display["title"] == "Uyarı"
        else:
            assert display["type"] == "error"
