"""
Authentication stage.

WHAT: The ``authenticate`` security stage: resolves the caller from the JWT,
enforces session timeouts and the email verification gate.

HOW:
1. Token from ``Authorization: Bearer`` or the access-token cookie
2. Signature / expiry / nbf verified (python-jose)
3. Revoked (logged out) tokens rejected
4. User loaded from the identity store; inactive users rejected
5. Session idle/absolute timeout enforced
6. Email verification gate applied to the request path
"""

import asyncio
import logging
from typing import Optional

from fastapi import Depends, Request, Response

from lexshield.core.auth import is_token_blacklisted, verify_token
from lexshield.core.config import settings
from lexshield.core.deps import (
    get_email_verification_gate,
    get_identity_store,
    get_session_engine,
)
from lexshield.core.exceptions import (
    AuthenticationError,
    AuthRequired,
    TokenInvalidError,
    UserNotFoundError,
)
from lexshield.middleware.session_timeout import enforce_session_timeout
from lexshield.security.email_verification import EmailVerificationGate
from lexshield.security.session_policy import SessionPolicyEngine
from lexshield.stores.base import IdentityStore, UserRecord


logger = logging.getLogger(__name__)


def extract_token(request: Request) -> Optional[str]:
    """
    Get the access token from the request.

    The Authorization header wins over the cookie.
    """
    authorization = request.headers.get("Authorization")
    if authorization:
        scheme, _, credentials = authorization.partition(" ")
        if scheme.lower() == "bearer" and credentials.strip():
            return credentials.strip()

    cookie_token = request.cookies.get(settings.ACCESS_TOKEN_COOKIE)
    return cookie_token or None


async def _is_revoked(token: str) -> bool:
    try:
        return await asyncio.wait_for(
            is_token_blacklisted(token),
            timeout=settings.STORE_TIMEOUT_SECONDS,
        )
    except Exception as e:
        # Fail-open, same store and policy as the session check
        logger.error(f"Token blacklist lookup failed (allowing request): {e}")
        return False


async def authenticate(
    request: Request,
    response: Response,
    identity_store: IdentityStore = Depends(get_identity_store),
    session_engine: SessionPolicyEngine = Depends(get_session_engine),
    email_gate: EmailVerificationGate = Depends(get_email_verification_gate),
) -> UserRecord:
    """
    Authenticate the caller.

    Returns:
        The authenticated user (also stored on ``request.state.user``)

    Raises:
        AuthRequired: No token supplied
        TokenExpiredError / TokenInvalidError: Bad or revoked token
        AuthenticationError: Unknown or inactive user
        SessionIdleTimeout / SessionAbsoluteTimeout: Session expired
        EmailVerificationRequired: Unverified user on a gated route
    """
    token = extract_token(request)
    if not token:
        raise AuthRequired()

    payload = verify_token(token)

    if await _is_revoked(token):
        raise TokenInvalidError(message="Token has been revoked", reason="logged_out")

    user_id = payload.get("user_id")
    if not user_id:
        raise TokenInvalidError(message="Invalid token: missing user_id")

    try:
        user = await identity_store.find_user(user_id)
    except UserNotFoundError:
        raise AuthenticationError(message="User not found", user_id=user_id)

    if not user.is_active:
        raise AuthenticationError(message="User account is inactive", user_id=user_id)

    session_status = await enforce_session_timeout(session_engine, user.id, payload, response)

    email_gate.check(request.url.path, user)

    request.state.user = user
    request.state.token_payload = payload
    request.state.session_status = session_status
    return user
