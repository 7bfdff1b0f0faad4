"""
Middleware package.

WHY: Adapts the security core to HTTP in two forms:
- Application middleware for cross-cutting concerns (request context,
  deprecation, sanitization, security monitoring)
- Route security stages (FastAPI dependencies) composed by ``secure()``
"""

from lexshield.middleware.deprecation import DeprecationMiddleware, DeprecationPolicy
from lexshield.middleware.request_context import (
    RequestContext,
    RequestContextMiddleware,
    detect_api_version,
    get_client_ip,
    get_request_context,
)
from lexshield.middleware.response_pipeline import (
    PostProcessingRoute,
    masking_processor,
    post_processing_route,
    reshape_processor,
)
from lexshield.middleware.sanitize import SanitizationMiddleware
from lexshield.middleware.secure import secure
from lexshield.middleware.security_monitor import (
    AnomalySink,
    LoggingAnomalySink,
    SecurityEvent,
    SecurityMonitorMiddleware,
)
from lexshield.middleware.step_up import (
    require_recent_auth,
    require_recent_auth_daily,
    require_recent_auth_hourly,
    require_very_recent_auth,
)

__all__ = [
    # Application middleware
    "DeprecationMiddleware",
    "DeprecationPolicy",
    "RequestContext",
    "RequestContextMiddleware",
    "SanitizationMiddleware",
    "SecurityMonitorMiddleware",
    "AnomalySink",
    "LoggingAnomalySink",
    "SecurityEvent",
    "detect_api_version",
    "get_client_ip",
    "get_request_context",
    # Route stages
    "secure",
    "require_recent_auth",
    "require_very_recent_auth",
    "require_recent_auth_hourly",
    "require_recent_auth_daily",
    # Post-processing
    "PostProcessingRoute",
    "post_processing_route",
    "masking_processor",
    "reshape_processor",
]
