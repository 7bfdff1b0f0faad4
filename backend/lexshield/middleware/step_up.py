"""
Step-up authentication stage.

WHAT: Dependencies that require the user to have logged in (or re-entered
their password) within a window before a sensitive operation.

HOW: Wraps StepUpAuthGate. A non-recent status becomes a 401
``REAUTHENTICATION_REQUIRED`` carrying the window so the client knows which
prompt to show.
"""

import logging
from typing import Callable, Optional

from fastapi import Depends, Request

from lexshield.core.deps import get_step_up_gate
from lexshield.core.exceptions import ReauthenticationRequired
from lexshield.middleware.firm import current_user
from lexshield.security.step_up import (
    CRITICAL_MAX_AGE_MINUTES,
    GENERAL_MAX_AGE_MINUTES,
    SENSITIVE_MAX_AGE_MINUTES,
    StepUpAuthGate,
    StepUpAuthStatus,
)


logger = logging.getLogger(__name__)


def require_recent_auth(max_age_minutes: int, purpose: Optional[str] = None) -> Callable:
    """
    Build a dependency requiring authentication within ``max_age_minutes``.

    Args:
        max_age_minutes: Allowed age of the last authentication
        purpose: Optional label returned to the client (e.g. "delete_case")
    """

    async def check_recent_auth(
        request: Request,
        gate: StepUpAuthGate = Depends(get_step_up_gate),
    ) -> StepUpAuthStatus:
        user = current_user(request)
        status = await gate.verify_recent(user.id, max_age_minutes)

        if not status.is_recent:
            logger.warning(
                f"Re-authentication required for user {user.id}: {status.reason}",
                extra={
                    "user_id": user.id,
                    "reason": status.reason,
                    "max_age_minutes": max_age_minutes,
                    "purpose": purpose,
                },
            )
            details = {"maxAgeMinutes": max_age_minutes, "reason": status.reason}
            if purpose:
                details["purpose"] = purpose
            raise ReauthenticationRequired(**details)

        request.state.step_up = status
        return status

    return check_recent_auth


def require_very_recent_auth(purpose: Optional[str] = None) -> Callable:
    """Payment changes, account deletion."""
    return require_recent_auth(CRITICAL_MAX_AGE_MINUTES, purpose)


def require_recent_auth_hourly(purpose: Optional[str] = None) -> Callable:
    """Password, MFA and API key changes."""
    return require_recent_auth(SENSITIVE_MAX_AGE_MINUTES, purpose)


def require_recent_auth_daily(purpose: Optional[str] = None) -> Callable:
    return require_recent_auth(GENERAL_MAX_AGE_MINUTES, purpose)
