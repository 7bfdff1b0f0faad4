"""
Session timeout enforcement.

WHAT: Applies the SessionPolicyEngine to an authenticated request and
translates its verdict into HTTP: 401 on expiry (cookie cleared by the
exception handler), warning headers when a timeout is near.

Also exposes the login/logout lifecycle hooks used by the auth flow.
"""

import logging
from typing import Any, Dict, Optional

from starlette.responses import Response

from lexshield.core.auth import token_issued_at_ms
from lexshield.core.exceptions import SessionAbsoluteTimeout, SessionIdleTimeout
from lexshield.security.session_policy import (
    SessionCheckResult,
    SessionPolicyEngine,
    TimeoutStatus,
)


logger = logging.getLogger(__name__)


IDLE_WARNING_HEADER = "X-Session-Idle-Warning"
ABSOLUTE_WARNING_HEADER = "X-Session-Absolute-Warning"


async def enforce_session_timeout(
    engine: SessionPolicyEngine,
    user_id: int,
    token_payload: Dict[str, Any],
    response: Response,
) -> Optional[SessionCheckResult]:
    """
    Check idle and absolute timeouts for the current request.

    Args:
        engine: Session policy engine
        user_id: Authenticated user
        token_payload: Verified token claims (``iat``, ``remember_me``)
        response: Response whose headers receive the warnings

    Returns:
        The check result, or None for tokens without ``iat``

    Raises:
        SessionAbsoluteTimeout: Session outlived its absolute lifetime
        SessionIdleTimeout: Session was idle too long
    """
    issued_at = token_issued_at_ms(token_payload)
    if issued_at is None:
        logger.warning(
            f"Token without iat for user {user_id}; session timeout not enforced",
            extra={"user_id": user_id},
        )
        return None

    result = await engine.check_timeout(
        user_id,
        issued_at,
        remember_me=bool(token_payload.get("remember_me")),
    )

    if result.status == TimeoutStatus.ABSOLUTE_EXPIRED:
        raise SessionAbsoluteTimeout(user_id=user_id)
    if result.status == TimeoutStatus.IDLE_EXPIRED:
        raise SessionIdleTimeout(user_id=user_id)

    # Header values are seconds remaining
    if result.idle_warning and result.idle_remaining_ms is not None:
        response.headers[IDLE_WARNING_HEADER] = str(max(result.idle_remaining_ms // 1000, 0))
    if result.absolute_warning and result.absolute_remaining_ms is not None:
        response.headers[ABSOLUTE_WARNING_HEADER] = str(max(result.absolute_remaining_ms // 1000, 0))

    return result


async def record_activity(engine: SessionPolicyEngine, user_id: int) -> None:
    """Start the idle window for a fresh login."""
    await engine.record_activity(user_id)


async def clear_session_activity(engine: SessionPolicyEngine, user_id: int) -> None:
    """Drop the activity record on logout."""
    await engine.clear_session_activity(user_id)
