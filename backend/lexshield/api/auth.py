"""
Session API endpoints.

WHY: These endpoints expose the session lifecycle:
1. Session - Report idle/absolute timeout state to the client
2. Logout - Revoke the token and end the activity window

Security:
- Both routes run the authenticate stage, so an expired session answers
  401 with a timeout code before the handler runs
- Logout revokes the token for its remaining lifetime
"""

import logging

from fastapi import APIRouter, Depends, Request, Response, status

from lexshield.core.auth import blacklist_token
from lexshield.core.config import settings
from lexshield.core.deps import get_session_engine
from lexshield.middleware.authenticate import extract_token
from lexshield.middleware.firm import current_user
from lexshield.middleware.secure import secure
from lexshield.middleware.session_timeout import clear_session_activity
from lexshield.schemas.session import LogoutResponse, SessionStatusResponse
from lexshield.security.session_policy import SessionPolicyEngine


logger = logging.getLogger(__name__)


router = APIRouter(prefix="/auth", tags=["authentication"])


def _seconds(millis):
    return None if millis is None else max(millis // 1000, 0)


@router.get(
    "/session",
    response_model=SessionStatusResponse,
    summary="Session status",
    description="Remaining idle and absolute session time for the current user",
    dependencies=secure(firm_filter=False),
)
async def session_status(request: Request) -> SessionStatusResponse:
    user = current_user(request)
    result = getattr(request.state, "session_status", None)

    return SessionStatusResponse(
        userId=user.id,
        firmId=user.firm_id,
        idleRemainingSeconds=_seconds(result.idle_remaining_ms) if result else None,
        absoluteRemainingSeconds=_seconds(result.absolute_remaining_ms) if result else None,
        idleWarning=bool(result and result.idle_warning),
        absoluteWarning=bool(result and result.absolute_warning),
        emailVerified=user.is_email_verified,
    )


@router.post(
    "/logout",
    response_model=LogoutResponse,
    status_code=status.HTTP_200_OK,
    summary="Logout user",
    dependencies=secure(firm_filter=False),
)
async def logout(
    request: Request,
    response: Response,
    session_engine: SessionPolicyEngine = Depends(get_session_engine),
) -> LogoutResponse:
    """
    Revoke the current token and clear the session activity record.

    Without an activity record the idle window is measured from the
    token's ``iat`` again.
    """
    user = current_user(request)
    token = extract_token(request)

    await blacklist_token(token, user.id)
    await clear_session_activity(session_engine, user.id)

    response.delete_cookie(settings.ACCESS_TOKEN_COOKIE)
    logger.info(f"User {user.id} logged out", extra={"user_id": user.id})
    return LogoutResponse()
