"""
Radio error classification.

Every failure that reaches an admin or player surface is turned into a
`RadioError`: a fixed type with a localized (Turkish) user message, a
severity, an HTTP status, recovery actions and a retryable flag. The lookup
tables below are the single source of truth for those properties; the
handler methods only decide which type applies.

Classification prefers types over text:
- probe failures arrive as `ProbeFailure` values (`from_probe_result`);
- caught exceptions are matched by class (httpx, SQLAlchemy, builtin
  timeout/connection errors) before falling back to message substrings for
  errors raised by opaque code.
"""

from __future__ import annotations

import errno
import json
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

import httpx
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError

from trend_radio.core.logging import logger
from trend_radio.services.radio.stream_prober import ProbeFailure, StreamTestResult
from trend_radio.utils.time_utils import Datetime


class RadioErrorType(str, Enum):
    # network
    NETWORK_TIMEOUT = "NETWORK_TIMEOUT"
    NETWORK_CONNECTION_FAILED = "NETWORK_CONNECTION_FAILED"
    NETWORK_UNREACHABLE = "NETWORK_UNREACHABLE"

    # stream URL validation
    VALIDATION_INVALID_URL = "VALIDATION_INVALID_URL"
    VALIDATION_INVALID_PROTOCOL = "VALIDATION_INVALID_PROTOCOL"
    VALIDATION_INVALID_HOSTNAME = "VALIDATION_INVALID_HOSTNAME"
    VALIDATION_URL_TOO_LONG = "VALIDATION_URL_TOO_LONG"
    VALIDATION_UNSUPPORTED_FORMAT = "VALIDATION_UNSUPPORTED_FORMAT"

    # stream connectivity
    STREAM_CONNECTION_TIMEOUT = "STREAM_CONNECTION_TIMEOUT"
    STREAM_CONNECTION_REFUSED = "STREAM_CONNECTION_REFUSED"
    STREAM_INVALID_RESPONSE = "STREAM_INVALID_RESPONSE"
    STREAM_UNSUPPORTED_CONTENT_TYPE = "STREAM_UNSUPPORTED_CONTENT_TYPE"
    STREAM_SERVER_ERROR = "STREAM_SERVER_ERROR"

    # database
    DATABASE_CONNECTION_ERROR = "DATABASE_CONNECTION_ERROR"
    DATABASE_QUERY_FAILED = "DATABASE_QUERY_FAILED"
    DATABASE_CONSTRAINT_VIOLATION = "DATABASE_CONSTRAINT_VIOLATION"
    DATABASE_TRANSACTION_FAILED = "DATABASE_TRANSACTION_FAILED"

    # admin forms
    FORM_VALIDATION_ERROR = "FORM_VALIDATION_ERROR"
    FORM_REQUIRED_FIELD_MISSING = "FORM_REQUIRED_FIELD_MISSING"
    FORM_INVALID_INPUT_FORMAT = "FORM_INVALID_INPUT_FORMAT"

    # auth
    AUTH_INSUFFICIENT_PERMISSIONS = "AUTH_INSUFFICIENT_PERMISSIONS"
    AUTH_SESSION_EXPIRED = "AUTH_SESSION_EXPIRED"
    AUTH_INVALID_USER = "AUTH_INVALID_USER"

    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"

    UNKNOWN_ERROR = "UNKNOWN_ERROR"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"


class RadioErrorSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


T = RadioErrorType
S = RadioErrorSeverity

ERROR_MESSAGES: dict[RadioErrorType, str] = {
    T.NETWORK_TIMEOUT: "Ağ bağlantısı zaman aşımına uğradı. Lütfen internet bağlantınızı kontrol edin.",
    T.NETWORK_CONNECTION_FAILED: "Ağ bağlantısı başarısız. Lütfen internet bağlantınızı kontrol edin.",
    T.NETWORK_UNREACHABLE: "Stream sunucusuna ulaşılamıyor. URL'yi kontrol edin veya daha sonra tekrar deneyin.",
    T.VALIDATION_INVALID_URL: "Geçersiz URL formatı. Lütfen doğru bir stream URL'si girin.",
    T.VALIDATION_INVALID_PROTOCOL: "Geçersiz protokol. Sadece HTTP ve HTTPS desteklenir.",
    T.VALIDATION_INVALID_HOSTNAME: "Geçersiz sunucu adresi. Geçerli bir domain adı girin.",
    T.VALIDATION_URL_TOO_LONG: "URL çok uzun. Maksimum 500 karakter desteklenir.",
    T.VALIDATION_UNSUPPORTED_FORMAT: "Desteklenmeyen audio format. MP3, AAC, OGG veya FLAC kullanın.",
    T.STREAM_CONNECTION_TIMEOUT: "Stream bağlantısı zaman aşımına uğradı. Sunucu yanıt vermiyor.",
    T.STREAM_CONNECTION_REFUSED: "Stream sunucusu bağlantıyı reddetti. URL'yi kontrol edin.",
    T.STREAM_INVALID_RESPONSE: "Stream sunucusundan geçersiz yanıt alındı.",
    T.STREAM_UNSUPPORTED_CONTENT_TYPE: "Desteklenmeyen stream formatı. Audio stream gerekli.",
    T.STREAM_SERVER_ERROR: "Stream sunucusunda hata oluştu. Daha sonra tekrar deneyin.",
    T.DATABASE_CONNECTION_ERROR: "Veritabanı bağlantısı başarısız. Sistem yöneticisi ile iletişime geçin.",
    T.DATABASE_QUERY_FAILED: "Veritabanı sorgusu başarısız. Lütfen tekrar deneyin.",
    T.DATABASE_CONSTRAINT_VIOLATION: "Veritabanı kısıtlaması ihlali. Girdiğiniz verileri kontrol edin.",
    T.DATABASE_TRANSACTION_FAILED: "Veritabanı işlemi başarısız. Lütfen tekrar deneyin.",
    T.FORM_VALIDATION_ERROR: "Form doğrulama hatası. Lütfen girdiğiniz bilgileri kontrol edin.",
    T.FORM_REQUIRED_FIELD_MISSING: "Zorunlu alanlar eksik. Lütfen tüm gerekli alanları doldurun.",
    T.FORM_INVALID_INPUT_FORMAT: "Geçersiz veri formatı. Lütfen doğru format kullanın.",
    T.AUTH_INSUFFICIENT_PERMISSIONS: "Yetersiz yetki. Bu işlem için admin yetkisi gerekli.",
    T.AUTH_SESSION_EXPIRED: "Oturum süresi dolmuş. Lütfen tekrar giriş yapın.",
    T.AUTH_INVALID_USER: "Geçersiz kullanıcı. Lütfen tekrar giriş yapın.",
    T.RATE_LIMIT_EXCEEDED: "İstek sınırı aşıldı. Lütfen bir süre bekleyip tekrar deneyin.",
    T.UNKNOWN_ERROR: "Bilinmeyen bir hata oluştu. Lütfen tekrar deneyin.",
    T.INTERNAL_SERVER_ERROR: "Sunucu hatası oluştu. Sistem yöneticisi ile iletişime geçin.",
}

ERROR_SEVERITY: dict[RadioErrorType, RadioErrorSeverity] = {
    T.NETWORK_TIMEOUT: S.MEDIUM,
    T.NETWORK_CONNECTION_FAILED: S.MEDIUM,
    T.NETWORK_UNREACHABLE: S.MEDIUM,
    T.VALIDATION_INVALID_URL: S.LOW,
    T.VALIDATION_INVALID_PROTOCOL: S.LOW,
    T.VALIDATION_INVALID_HOSTNAME: S.LOW,
    T.VALIDATION_URL_TOO_LONG: S.LOW,
    T.VALIDATION_UNSUPPORTED_FORMAT: S.LOW,
    T.STREAM_CONNECTION_TIMEOUT: S.MEDIUM,
    T.STREAM_CONNECTION_REFUSED: S.MEDIUM,
    T.STREAM_INVALID_RESPONSE: S.HIGH,
    T.STREAM_UNSUPPORTED_CONTENT_TYPE: S.MEDIUM,
    T.STREAM_SERVER_ERROR: S.HIGH,
    T.DATABASE_CONNECTION_ERROR: S.CRITICAL,
    T.DATABASE_QUERY_FAILED: S.HIGH,
    T.DATABASE_CONSTRAINT_VIOLATION: S.HIGH,
    T.DATABASE_TRANSACTION_FAILED: S.HIGH,
    T.FORM_VALIDATION_ERROR: S.LOW,
    T.FORM_REQUIRED_FIELD_MISSING: S.LOW,
    T.FORM_INVALID_INPUT_FORMAT: S.LOW,
    T.AUTH_INSUFFICIENT_PERMISSIONS: S.MEDIUM,
    T.AUTH_SESSION_EXPIRED: S.MEDIUM,
    T.AUTH_INVALID_USER: S.HIGH,
    T.RATE_LIMIT_EXCEEDED: S.LOW,
    T.UNKNOWN_ERROR: S.HIGH,
    T.INTERNAL_SERVER_ERROR: S.CRITICAL,
}

ERROR_HTTP_STATUS: dict[RadioErrorType, int] = {
    T.NETWORK_TIMEOUT: 408,
    T.NETWORK_CONNECTION_FAILED: 503,
    T.NETWORK_UNREACHABLE: 503,
    T.STREAM_CONNECTION_TIMEOUT: 408,
    T.STREAM_CONNECTION_REFUSED: 503,
    T.STREAM_INVALID_RESPONSE: 502,
    T.STREAM_UNSUPPORTED_CONTENT_TYPE: 415,
    T.STREAM_SERVER_ERROR: 502,
    T.VALIDATION_INVALID_URL: 400,
    T.VALIDATION_INVALID_PROTOCOL: 400,
    T.VALIDATION_INVALID_HOSTNAME: 400,
    T.VALIDATION_URL_TOO_LONG: 400,
    T.VALIDATION_UNSUPPORTED_FORMAT: 400,
    T.DATABASE_CONNECTION_ERROR: 500,
    T.DATABASE_QUERY_FAILED: 500,
    T.DATABASE_CONSTRAINT_VIOLATION: 409,
    T.DATABASE_TRANSACTION_FAILED: 500,
    T.FORM_VALIDATION_ERROR: 400,
    T.FORM_REQUIRED_FIELD_MISSING: 400,
    T.FORM_INVALID_INPUT_FORMAT: 400,
    T.AUTH_INSUFFICIENT_PERMISSIONS: 403,
    T.AUTH_SESSION_EXPIRED: 401,
    T.AUTH_INVALID_USER: 401,
    T.RATE_LIMIT_EXCEEDED: 429,
    T.UNKNOWN_ERROR: 500,
    T.INTERNAL_SERVER_ERROR: 500,
}

RECOVERY_ACTIONS: dict[RadioErrorType, list[str]] = {
    T.NETWORK_TIMEOUT: [
        "İnternet bağlantınızı kontrol edin",
        "Biraz bekleyip tekrar deneyin",
        "VPN kullanıyorsanız kapatmayı deneyin",
    ],
    T.VALIDATION_INVALID_URL: [
        "URL formatını kontrol edin (http:// veya https:// ile başlamalı)",
        "Domain adının doğru yazıldığından emin olun",
        "Port numarasını kontrol edin",
    ],
    T.STREAM_CONNECTION_TIMEOUT: [
        "Stream sunucusunun çalıştığını kontrol edin",
        "URL'nin doğru olduğundan emin olun",
        "Farklı bir stream URL'si deneyin",
    ],
    T.DATABASE_CONNECTION_ERROR: [
        "Sistem yöneticisi ile iletişime geçin",
        "Birkaç dakika sonra tekrar deneyin",
    ],
    T.AUTH_INSUFFICIENT_PERMISSIONS: [
        "Admin kullanıcısı ile giriş yapmayı deneyin",
        "Sistem yöneticisinden yetki talep edin",
    ],
    T.RATE_LIMIT_EXCEEDED: [
        "1-2 dakika bekleyip tekrar deneyin",
        "Çok fazla istek göndermeyin",
    ],
}

RETRYABLE_ERRORS: frozenset[RadioErrorType] = frozenset(
    {
        T.NETWORK_TIMEOUT,
        T.NETWORK_CONNECTION_FAILED,
        T.STREAM_CONNECTION_TIMEOUT,
        T.DATABASE_QUERY_FAILED,
        T.DATABASE_TRANSACTION_FAILED,
        T.RATE_LIMIT_EXCEEDED,
        T.UNKNOWN_ERROR,
    }
)

_DB_CONNECTION_CODES = {"ECONNREFUSED", "ENOTFOUND"}
_DB_DUPLICATE_CODES = {"ER_DUP_ENTRY", "23505"}


# ===== context metadata (one shape per category) =====


@dataclass(slots=True)
class StreamErrorMetadata:
    stream_url: str | None = None
    status_code: int | None = None
    response_time_ms: int | None = None
    kind: str = "stream"


@dataclass(slots=True)
class DatabaseErrorMetadata:
    table: str | None = None
    error_code: str | None = None
    query: str | None = None
    kind: str = "database"


@dataclass(slots=True)
class FormErrorMetadata:
    field_name: str | None = None
    field_value: Any = None
    kind: str = "form"


@dataclass(slots=True)
class AuthErrorMetadata:
    required_role: str | None = None
    kind: str = "auth"


@dataclass(slots=True)
class GenericErrorMetadata:
    details: dict[str, Any] = field(default_factory=dict)
    kind: str = "generic"


ErrorMetadata = (
    StreamErrorMetadata
    | DatabaseErrorMetadata
    | FormErrorMetadata
    | AuthErrorMetadata
    | GenericErrorMetadata
)


@dataclass(slots=True)
class ErrorContext:
    operation: str
    timestamp: datetime
    admin_user_id: str | None = None
    admin_user_email: str | None = None
    metadata: ErrorMetadata | None = None


@dataclass(slots=True)
class RadioError:
    type: RadioErrorType
    severity: RadioErrorSeverity
    user_message: str
    technical_message: str
    context: ErrorContext
    http_status_code: int
    recovery_actions: list[str] = field(default_factory=list)
    is_retryable: bool = False
    original_error: BaseException | None = None


class RadioOperationError(Exception):
    """Carries a classified `RadioError` out of the service layer."""

    def __init__(self, error: RadioError):
        super().__init__(error.technical_message)
        self.error = error


def _error_code(exc: BaseException) -> str | None:
    code = getattr(exc, "code", None) or getattr(exc, "sqlstate", None)
    if isinstance(code, str):
        return code
    orig = getattr(exc, "orig", None)
    if orig is not None and orig is not exc:
        return _error_code(orig)
    err_no = getattr(exc, "errno", None)
    if isinstance(err_no, int):
        return errno.errorcode.get(err_no)
    return None


def _is_timeout(exc: BaseException) -> bool:
    return isinstance(exc, (TimeoutError, httpx.TimeoutException)) or "timeout" in str(exc)


class RadioErrorHandler:
    @classmethod
    def create_error(
        cls,
        error_type: RadioErrorType,
        operation: str,
        original_error: BaseException | str | None = None,
        *,
        admin_user_id: str | None = None,
        admin_user_email: str | None = None,
        metadata: ErrorMetadata | None = None,
    ) -> RadioError:
        if isinstance(original_error, BaseException):
            technical = str(original_error) or original_error.__class__.__name__
            original = original_error
        else:
            technical = original_error or "Unknown technical error"
            original = None

        error = RadioError(
            type=error_type,
            severity=ERROR_SEVERITY[error_type],
            user_message=ERROR_MESSAGES[error_type],
            technical_message=technical,
            context=ErrorContext(
                operation=operation,
                timestamp=Datetime.now(),
                admin_user_id=admin_user_id,
                admin_user_email=admin_user_email,
                metadata=metadata,
            ),
            http_status_code=ERROR_HTTP_STATUS[error_type],
            recovery_actions=list(RECOVERY_ACTIONS.get(error_type, [])),
            is_retryable=error_type in RETRYABLE_ERRORS,
            original_error=original,
        )
        cls._log(error)
        return error

    @classmethod
    def analyze_error(
        cls,
        error: BaseException,
        operation: str,
        *,
        admin_user_id: str | None = None,
        admin_user_email: str | None = None,
        metadata: ErrorMetadata | None = None,
    ) -> RadioError:
        kwargs = {
            "admin_user_id": admin_user_id,
            "admin_user_email": admin_user_email,
            "metadata": metadata,
        }
        return cls.create_error(cls._classify(error), operation, error, **kwargs)

    @staticmethod
    def _classify(error: BaseException) -> RadioErrorType:
        message = str(error)

        if isinstance(error, TypeError) and "fetch" in message:
            return T.NETWORK_CONNECTION_FAILED
        if _is_timeout(error):
            return T.NETWORK_TIMEOUT
        if isinstance(error, (httpx.ConnectError, httpx.NetworkError)):
            return T.NETWORK_CONNECTION_FAILED
        if isinstance(error, IntegrityError):
            return T.DATABASE_CONSTRAINT_VIOLATION
        if isinstance(error, (OperationalError, InterfaceError)):
            return T.DATABASE_CONNECTION_ERROR

        code = _error_code(error)
        if code in _DB_CONNECTION_CODES:
            return T.DATABASE_CONNECTION_ERROR
        if code in _DB_DUPLICATE_CODES:
            return T.DATABASE_CONSTRAINT_VIOLATION
        if isinstance(error, ConnectionError):
            return T.NETWORK_CONNECTION_FAILED

        if "Invalid URL" in message or "invalid url" in message:
            return T.VALIDATION_INVALID_URL
        if "protocol" in message or "https" in message:
            return T.VALIDATION_INVALID_PROTOCOL
        if "Unauthorized" in message or "Insufficient permissions" in message:
            return T.AUTH_INSUFFICIENT_PERMISSIONS
        if "rate limit" in message or "too many requests" in message:
            return T.RATE_LIMIT_EXCEEDED
        return T.UNKNOWN_ERROR

    @classmethod
    def handle_stream_validation_error(
        cls,
        validation_error: str,
        operation: str,
        *,
        stream_url: str | None = None,
        admin_user_id: str | None = None,
        admin_user_email: str | None = None,
    ) -> RadioError:
        error_type = T.VALIDATION_INVALID_URL
        if "protocol" in validation_error:
            error_type = T.VALIDATION_INVALID_PROTOCOL
        elif "hostname" in validation_error:
            error_type = T.VALIDATION_INVALID_HOSTNAME
        elif "too long" in validation_error or "exceed" in validation_error:
            error_type = T.VALIDATION_URL_TOO_LONG
        elif "content type" in validation_error or "format" in validation_error:
            error_type = T.VALIDATION_UNSUPPORTED_FORMAT

        return cls.create_error(
            error_type,
            operation,
            validation_error,
            admin_user_id=admin_user_id,
            admin_user_email=admin_user_email,
            metadata=StreamErrorMetadata(stream_url=stream_url),
        )

    @classmethod
    def handle_stream_connection_error(
        cls,
        connection_error: BaseException | str | None,
        operation: str,
        *,
        stream_url: str | None = None,
        status_code: int | None = None,
        response_time_ms: int | None = None,
        admin_user_id: str | None = None,
        admin_user_email: str | None = None,
    ) -> RadioError:
        message = str(connection_error or "")
        is_timeout = (
            _is_timeout(connection_error)
            if isinstance(connection_error, BaseException)
            else "timeout" in message
        )

        if is_timeout:
            error_type = T.STREAM_CONNECTION_TIMEOUT
        elif "refused" in message or "ECONNREFUSED" in message:
            error_type = T.STREAM_CONNECTION_REFUSED
        elif "content type" in message or "unexpected content" in message:
            error_type = T.STREAM_UNSUPPORTED_CONTENT_TYPE
        elif status_code and status_code >= 500:
            error_type = T.STREAM_SERVER_ERROR
        elif status_code in (403, 404):
            error_type = T.STREAM_CONNECTION_REFUSED
        else:
            error_type = T.STREAM_INVALID_RESPONSE

        return cls.create_error(
            error_type,
            operation,
            connection_error,
            admin_user_id=admin_user_id,
            admin_user_email=admin_user_email,
            metadata=StreamErrorMetadata(
                stream_url=stream_url,
                status_code=status_code,
                response_time_ms=response_time_ms,
            ),
        )

    @classmethod
    def from_probe_result(
        cls,
        result: StreamTestResult,
        operation: str,
        *,
        stream_url: str | None = None,
        admin_user_id: str | None = None,
        admin_user_email: str | None = None,
    ) -> RadioError | None:
        """Classify a failed probe by its `ProbeFailure`; valid results give None."""
        if result.is_valid:
            return None

        identity = {"admin_user_id": admin_user_id, "admin_user_email": admin_user_email}
        if result.failure is ProbeFailure.INVALID_URL:
            return cls.handle_stream_validation_error(
                result.error or "Invalid URL format", operation, stream_url=stream_url, **identity
            )
        if result.failure is ProbeFailure.HTTP_STATUS or result.failure is None:
            return cls.handle_stream_connection_error(
                result.error,
                operation,
                stream_url=stream_url,
                status_code=result.status_code,
                response_time_ms=result.response_time_ms,
                **identity,
            )

        error_type = {
            ProbeFailure.TIMEOUT: T.STREAM_CONNECTION_TIMEOUT,
            ProbeFailure.CONNECTION: T.NETWORK_UNREACHABLE,
            ProbeFailure.CONTENT_TYPE: T.STREAM_UNSUPPORTED_CONTENT_TYPE,
        }[result.failure]
        return cls.create_error(
            error_type,
            operation,
            result.error,
            metadata=StreamErrorMetadata(
                stream_url=stream_url,
                status_code=result.status_code,
                response_time_ms=result.response_time_ms,
            ),
            **identity,
        )

    @classmethod
    def handle_database_error(
        cls,
        db_error: BaseException,
        operation: str,
        *,
        table: str | None = None,
        query: str | None = None,
        admin_user_id: str | None = None,
        admin_user_email: str | None = None,
    ) -> RadioError:
        code = _error_code(db_error)
        message = str(db_error)

        if isinstance(db_error, (OperationalError, InterfaceError)) or code in _DB_CONNECTION_CODES:
            error_type = T.DATABASE_CONNECTION_ERROR
        elif isinstance(db_error, IntegrityError) or code in _DB_DUPLICATE_CODES:
            error_type = T.DATABASE_CONSTRAINT_VIOLATION
        elif "transaction" in message or "rollback" in message:
            error_type = T.DATABASE_TRANSACTION_FAILED
        else:
            error_type = T.DATABASE_QUERY_FAILED

        return cls.create_error(
            error_type,
            operation,
            db_error,
            admin_user_id=admin_user_id,
            admin_user_email=admin_user_email,
            metadata=DatabaseErrorMetadata(table=table, error_code=code, query=query),
        )

    @classmethod
    def handle_form_validation_error(
        cls,
        validation_message: str,
        operation: str,
        *,
        field_name: str | None = None,
        field_value: Any = None,
        admin_user_id: str | None = None,
        admin_user_email: str | None = None,
    ) -> RadioError:
        error_type = T.FORM_VALIDATION_ERROR
        if "required" in validation_message or "gerekli" in validation_message:
            error_type = T.FORM_REQUIRED_FIELD_MISSING
        elif "format" in validation_message or "invalid" in validation_message:
            error_type = T.FORM_INVALID_INPUT_FORMAT

        return cls.create_error(
            error_type,
            operation,
            validation_message,
            admin_user_id=admin_user_id,
            admin_user_email=admin_user_email,
            metadata=FormErrorMetadata(field_name=field_name, field_value=field_value),
        )

    @classmethod
    def handle_auth_error(
        cls,
        auth_message: str,
        operation: str,
        *,
        required_role: str | None = None,
        admin_user_id: str | None = None,
        admin_user_email: str | None = None,
    ) -> RadioError:
        error_type = T.AUTH_INSUFFICIENT_PERMISSIONS
        if "session" in auth_message or "expired" in auth_message:
            error_type = T.AUTH_SESSION_EXPIRED
        elif "invalid user" in auth_message or "user not found" in auth_message:
            error_type = T.AUTH_INVALID_USER

        return cls.create_error(
            error_type,
            operation,
            auth_message,
            admin_user_id=admin_user_id,
            admin_user_email=admin_user_email,
            metadata=AuthErrorMetadata(required_role=required_role),
        )

    # ===== external representations =====

    @staticmethod
    def to_api_response(error: RadioError) -> dict[str, Any]:
        return {
            "success": False,
            "error": {
                "type": error.type.value,
                "message": error.user_message,
                "code": error.type.value,
                "details": {
                    "severity": error.severity.value,
                    "timestamp": Datetime.to_iso_string(error.context.timestamp),
                    "operation": error.context.operation,
                    "recoveryActions": list(error.recovery_actions),
                    "isRetryable": error.is_retryable,
                },
            },
        }

    @staticmethod
    def to_user_display(error: RadioError) -> dict[str, Any]:
        if error.severity is S.CRITICAL:
            title = "Kritik Hata"
        elif error.severity is S.HIGH:
            title = "Önemli Hata"
        else:
            title = "Uyarı"
        return {
            "title": title,
            "message": error.user_message,
            "type": "warning" if error.severity is S.LOW else "error",
            "recovery_actions": list(error.recovery_actions),
            "is_retryable": error.is_retryable,
            "timestamp": error.context.timestamp,
        }

    @staticmethod
    def _log(error: RadioError) -> None:
        ctx = error.context
        log_context = {
            "type": error.type.value,
            "severity": error.severity.value,
            "operation": ctx.operation,
            "admin_user": ctx.admin_user_email or f"ID:{ctx.admin_user_id}",
            "timestamp": Datetime.to_iso_string(ctx.timestamp),
        }
        if ctx.metadata is not None:
            log_context["metadata"] = asdict(ctx.metadata)
        line = f"{error.technical_message} | Context: {json.dumps(log_context, ensure_ascii=False, default=str)}"

        if error.severity in (S.CRITICAL, S.HIGH):
            logger.error(f"{error.severity.value.upper()}: {line}")
        elif error.severity is S.MEDIUM:
            logger.warning(f"MEDIUM: {line}")
        else:
            logger.info(f"LOW: {line}")
