from .errors import RadioError, RadioErrorHandler, RadioErrorSeverity, RadioErrorType, RadioOperationError
from .events import RadioEventBus, RadioEventName
from .fallback import (
    FallbackCandidate,
    FallbackManager,
    FallbackOptions,
    FallbackSource,
    FallbackSourceAggregator,
    FallbackSourceConfig,
    RotationState,
)
from .health_monitor import HealthMonitor, HealthMonitorConfig, HealthStatus, analyze_overall_health
from .settings_service import RadioSettingsService
from .stream_prober import ProbeFailure, StreamProber, StreamTestResult

__all__ = [
    "FallbackCandidate",
    "FallbackManager",
    "FallbackOptions",
    "FallbackSource",
    "FallbackSourceAggregator",
    "FallbackSourceConfig",
    "HealthMonitor",
    "HealthMonitorConfig",
    "HealthStatus",
    "ProbeFailure",
    "RadioError",
    "RadioErrorHandler",
    "RadioErrorSeverity",
    "RadioErrorType",
    "RadioEventBus",
    "RadioEventName",
    "RadioOperationError",
    "RadioSettingsService",
    "RotationState",
    "StreamProber",
    "StreamTestResult",
    "analyze_overall_health",
]
