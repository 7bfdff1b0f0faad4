"""
Security policy core.

WHY: The decision logic (which checks run, in what order, whether a
session or step-up proof is still valid, how payloads are reshaped) lives
here, free of FastAPI objects, so it can be unit-tested directly. The
``lexshield.middleware`` package adapts it to HTTP.
"""

from lexshield.security.composer import (
    PermissionRequirement,
    ResourceAccess,
    SecurityConfig,
    Stage,
    StageName,
    build_config,
    compose,
)
from lexshield.security.patterns import RoutePatternSet, RouteTier, classify, normalize_path
from lexshield.security.reshape import ResponseReshapeEngine
from lexshield.security.session_policy import (
    SessionCheckResult,
    SessionPolicy,
    SessionPolicyEngine,
    TimeoutStatus,
)
from lexshield.security.step_up import (
    CRITICAL_MAX_AGE_MINUTES,
    GENERAL_MAX_AGE_MINUTES,
    SENSITIVE_MAX_AGE_MINUTES,
    StepUpAuthGate,
    StepUpAuthStatus,
)

__all__ = [
    # Composition
    "PermissionRequirement",
    "ResourceAccess",
    "SecurityConfig",
    "Stage",
    "StageName",
    "build_config",
    "compose",
    # Route patterns
    "RoutePatternSet",
    "RouteTier",
    "classify",
    "normalize_path",
    # Reshaping
    "ResponseReshapeEngine",
    # Sessions
    "SessionCheckResult",
    "SessionPolicy",
    "SessionPolicyEngine",
    "TimeoutStatus",
    # Step-up
    "CRITICAL_MAX_AGE_MINUTES",
    "GENERAL_MAX_AGE_MINUTES",
    "SENSITIVE_MAX_AGE_MINUTES",
    "StepUpAuthGate",
    "StepUpAuthStatus",
]
