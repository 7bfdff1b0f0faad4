"""
Step-up (re-)authentication gate.

WHAT: Decides whether a user proved their credentials recently enough for
a sensitive operation, independently of general session validity.

WHY: A valid 20-hour-old session should not be enough to delete an account
or change payment details.

Design decisions:
- Fail-closed: any lookup error or timeout reports "not recent" and forces
  re-authentication. This is the opposite of the session timeout check
  and is intentional.
- The three windows below are named configurations of one code path.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from lexshield.core.config import settings
from lexshield.security.session_policy import now_ms
from lexshield.stores.base import AuthEventStore


logger = logging.getLogger(__name__)


# Payment changes, account deletion
CRITICAL_MAX_AGE_MINUTES = 5
# Sensitive settings: password, MFA, API keys
SENSITIVE_MAX_AGE_MINUTES = 60
# General sensitive operations
GENERAL_MAX_AGE_MINUTES = 1440


@dataclass
class StepUpAuthStatus:
    """
    Derived freshness of the user's last authentication.

    Timestamps are epoch milliseconds; None when unknown.
    """

    is_recent: bool
    authenticated_at: Optional[int]
    expires_at: Optional[int]
    reason: str


class StepUpAuthGate:
    """
    Checks last-authentication freshness against a max-age window.

    Example:
        gate = StepUpAuthGate(RedisAuthEventStore(redis))
        status = await gate.verify_recent(user.id, CRITICAL_MAX_AGE_MINUTES)
        if not status.is_recent:
            raise ReauthenticationRequired(reason=status.reason)
    """

    def __init__(
        self,
        store: AuthEventStore,
        store_timeout_seconds: Optional[float] = None,
    ):
        self._store = store
        self._store_timeout = (
            store_timeout_seconds
            if store_timeout_seconds is not None
            else settings.STORE_TIMEOUT_SECONDS
        )

    async def verify_recent(
        self,
        user_id,
        max_age_minutes: int,
        now: Optional[int] = None,
    ) -> StepUpAuthStatus:
        """
        Check whether the user authenticated within ``max_age_minutes``.

        Args:
            user_id: User to check
            max_age_minutes: Allowed age of the last authentication
            now: Current time in epoch milliseconds (defaults to wall clock)

        Returns:
            StepUpAuthStatus; never raises
        """
        current = now if now is not None else now_ms()
        max_age_ms = max_age_minutes * 60_000

        try:
            authenticated_at = await asyncio.wait_for(
                self._store.last_auth_timestamp(user_id),
                timeout=self._store_timeout,
            )
        except Exception as e:
            # Fail-closed
            logger.error(
                f"Step-up auth lookup failed (requiring re-authentication): {e}",
                extra={"user_id": user_id, "error": str(e)},
            )
            return StepUpAuthStatus(
                is_recent=False,
                authenticated_at=None,
                expires_at=None,
                reason="lookup_failed",
            )

        if authenticated_at is None:
            return StepUpAuthStatus(
                is_recent=False,
                authenticated_at=None,
                expires_at=None,
                reason="no_authentication_record",
            )

        expires_at = authenticated_at + max_age_ms
        if current - authenticated_at <= max_age_ms:
            return StepUpAuthStatus(
                is_recent=True,
                authenticated_at=authenticated_at,
                expires_at=expires_at,
                reason="recent_authentication",
            )

        return StepUpAuthStatus(
            is_recent=False,
            authenticated_at=authenticated_at,
            expires_at=expires_at,
            reason="authentication_too_old",
        )
