"""
Session lifetime policy (idle + absolute timeout).

WHAT: Tracks each user's last activity in an external TTL store and decides
whether the session behind a token is still within policy.

WHY: JWT expiry alone cannot express "log out after 30 minutes of
inactivity" or "log out 24 hours after login no matter what". This engine
adds both on top of token verification.

HOW:
1. Absolute check: ``now > issued_at + absolute_timeout`` (anchored to the
   token's ``iat``, not to the activity record)
2. Idle check: ``now > last_activity + idle_timeout`` where last activity
   defaults to ``issued_at`` when no record exists
3. On success the activity record is rewritten with a 24h TTL; the TTL is a
   safety net for cleanup, not the policy boundary
4. Warnings are flagged when less than ``warning_before_ms`` remains

Design decisions:
- Fail-open: if the store is unreachable or slow the request is treated as
  within policy and the error is logged. Store availability must never
  produce an outage.
- No locking: concurrent requests for one user are last-write-wins.
"""

import asyncio
import enum
import logging
import time
from dataclasses import dataclass
from typing import Optional

from lexshield.core.config import settings
from lexshield.stores.base import KeyValueStore


logger = logging.getLogger(__name__)


# ============================================================================
# Configuration
# ============================================================================


@dataclass(frozen=True)
class SessionPolicy:
    """
    Process-wide session lifetime configuration (milliseconds).
    """

    idle_timeout_ms: int = 1_800_000
    """30 minutes without a request ends the session."""

    absolute_timeout_ms: int = 86_400_000
    """24 hours after login the session ends regardless of activity."""

    remember_me_timeout_ms: int = 604_800_000
    """Absolute window for tokens issued with "remember me" (7 days)."""

    warning_before_ms: int = 300_000
    """Clients are warned 5 minutes before either timeout fires."""

    activity_ttl_seconds: int = 86_400
    """Store TTL of the activity record."""

    @classmethod
    def from_settings(cls) -> "SessionPolicy":
        return cls(
            idle_timeout_ms=settings.SESSION_IDLE_TIMEOUT_MS,
            absolute_timeout_ms=settings.SESSION_ABSOLUTE_TIMEOUT_MS,
            remember_me_timeout_ms=settings.SESSION_REMEMBER_ME_TIMEOUT_MS,
            warning_before_ms=settings.SESSION_WARNING_BEFORE_MS,
            activity_ttl_seconds=settings.SESSION_ACTIVITY_TTL_SECONDS,
        )


# ============================================================================
# Result
# ============================================================================


class TimeoutStatus(str, enum.Enum):
    OK = "ok"
    ABSOLUTE_EXPIRED = "absolute_expired"
    IDLE_EXPIRED = "idle_expired"


@dataclass
class SessionCheckResult:
    """
    Outcome of a session timeout check.

    ``idle_remaining_ms`` / ``absolute_remaining_ms`` are None when the check
    failed open and the values are unknown.
    """

    status: TimeoutStatus
    idle_remaining_ms: Optional[int] = None
    absolute_remaining_ms: Optional[int] = None
    idle_warning: bool = False
    absolute_warning: bool = False
    degraded: bool = False

    @property
    def ok(self) -> bool:
        return self.status == TimeoutStatus.OK


def now_ms() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)


# ============================================================================
# Engine
# ============================================================================


class SessionPolicyEngine:
    """
    Enforces idle and absolute session timeouts.

    Example:
        engine = SessionPolicyEngine(RedisKeyValueStore(redis))
        result = await engine.check_timeout(user_id, issued_at_ms)
        if result.status is TimeoutStatus.IDLE_EXPIRED:
            raise SessionIdleTimeout()
    """

    key_prefix = "session:activity"

    def __init__(
        self,
        store: KeyValueStore,
        policy: Optional[SessionPolicy] = None,
        store_timeout_seconds: Optional[float] = None,
    ):
        """
        Args:
            store: Activity store (TTL key-value)
            policy: Timeout windows (defaults to settings)
            store_timeout_seconds: Upper bound for each store call
        """
        self._store = store
        self._policy = policy or SessionPolicy.from_settings()
        self._store_timeout = (
            store_timeout_seconds
            if store_timeout_seconds is not None
            else settings.STORE_TIMEOUT_SECONDS
        )

    @property
    def policy(self) -> SessionPolicy:
        return self._policy

    def _key(self, user_id) -> str:
        return f"{self.key_prefix}:{user_id}"

    async def _bounded(self, awaitable):
        return await asyncio.wait_for(awaitable, timeout=self._store_timeout)

    async def check_timeout(
        self,
        user_id,
        token_issued_at: int,
        now: Optional[int] = None,
        remember_me: bool = False,
    ) -> SessionCheckResult:
        """
        Check both timeouts and refresh the activity record.

        Args:
            user_id: Identity the session belongs to
            token_issued_at: Token ``iat`` in epoch milliseconds
            now: Current time in epoch milliseconds (defaults to wall clock)
            remember_me: Use the remember-me absolute window

        Returns:
            SessionCheckResult; expired results have already cleared the
            activity record
        """
        current = now if now is not None else now_ms()
        absolute_window = (
            self._policy.remember_me_timeout_ms if remember_me else self._policy.absolute_timeout_ms
        )

        # The absolute window needs no store, so an outage cannot extend it
        absolute_deadline = token_issued_at + absolute_window
        if current > absolute_deadline:
            await self.clear_session_activity(user_id)
            logger.info(
                f"Session absolute timeout for user {user_id}",
                extra={"user_id": user_id, "issued_at": token_issued_at},
            )
            return SessionCheckResult(
                status=TimeoutStatus.ABSOLUTE_EXPIRED,
                idle_remaining_ms=0,
                absolute_remaining_ms=0,
            )

        try:
            stored = await self._bounded(self._store.get(self._key(user_id)))
            last_activity = int(stored) if stored is not None else token_issued_at
        except Exception as e:
            # Fail-open: an unavailable activity store must not log everyone out.
            logger.error(
                f"Session store error (allowing request): {e}",
                extra={"user_id": user_id, "error": str(e)},
            )
            return SessionCheckResult(status=TimeoutStatus.OK, degraded=True)

        idle_deadline = last_activity + self._policy.idle_timeout_ms
        if current > idle_deadline:
            await self.clear_session_activity(user_id)
            logger.info(
                f"Session idle timeout for user {user_id}",
                extra={"user_id": user_id, "last_activity": last_activity},
            )
            return SessionCheckResult(
                status=TimeoutStatus.IDLE_EXPIRED,
                idle_remaining_ms=0,
                absolute_remaining_ms=absolute_deadline - current,
            )

        try:
            await self._bounded(
                self._store.set(
                    self._key(user_id),
                    str(current),
                    self._policy.activity_ttl_seconds,
                )
            )
        except Exception as e:
            logger.error(
                f"Failed to refresh session activity: {e}",
                extra={"user_id": user_id, "error": str(e)},
            )
            degraded = True
        else:
            degraded = False

        # Measured against the previous activity, before this refresh
        idle_remaining = idle_deadline - current
        absolute_remaining = absolute_deadline - current
        return SessionCheckResult(
            status=TimeoutStatus.OK,
            idle_remaining_ms=idle_remaining,
            absolute_remaining_ms=absolute_remaining,
            idle_warning=idle_remaining < self._policy.warning_before_ms,
            absolute_warning=absolute_remaining < self._policy.warning_before_ms,
            degraded=degraded,
        )

    async def record_activity(self, user_id, at: Optional[int] = None) -> None:
        """
        Record activity for a user (called by the login flow).

        Errors are logged and swallowed; login must not fail on the store.
        """
        timestamp = at if at is not None else now_ms()
        try:
            await self._bounded(
                self._store.set(
                    self._key(user_id),
                    str(timestamp),
                    self._policy.activity_ttl_seconds,
                )
            )
        except Exception as e:
            logger.error(
                f"Failed to record session activity: {e}",
                extra={"user_id": user_id},
            )

    async def clear_session_activity(self, user_id) -> None:
        """
        Delete a user's activity record (called by the logout flow).

        Errors are logged and swallowed; logout must always succeed.
        """
        try:
            await self._bounded(self._store.delete(self._key(user_id)))
        except Exception as e:
            logger.error(
                f"Failed to clear session activity: {e}",
                extra={"user_id": user_id},
            )
