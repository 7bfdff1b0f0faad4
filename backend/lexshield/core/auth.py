"""
JWT verification and token revocation utilities.

WHY: This module is the token-verifier boundary for the security stages:
1. JWT token generation (login flow, tests) and verification
2. Mapping library errors onto Expired / Invalid / NotYetValid
3. Token blacklist for logout
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, Any, Optional
from jose import jwt, JWTError
from jose.exceptions import JWTClaimsError
import redis.asyncio as aioredis

from lexshield.core.config import settings
from lexshield.core.exceptions import (
    TokenExpiredError,
    TokenInvalidError,
)


# Redis connection shared by the blacklist and the Redis-backed stores
_redis_client: Optional[aioredis.Redis] = None


async def get_redis() -> aioredis.Redis:
    """
    Get the shared Redis client.

    WHY: Lazy initialization ensures Redis is only connected when needed,
    and the connection is reused across requests.

    Returns:
        Redis client instance
    """
    global _redis_client
    if _redis_client is None:
        _redis_client = await aioredis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
            socket_timeout=settings.STORE_TIMEOUT_SECONDS,
        )
    return _redis_client


# ============================================================================
# JWT Token Management
# ============================================================================


def create_access_token(
    data: Dict[str, Any],
    expires_delta: Optional[timedelta] = None,
    issued_at: Optional[datetime] = None,
) -> str:
    """
    Create a JWT access token.

    Token includes:
    - User data (user_id, firm_id, remember_me, ...)
    - exp: Expiration time (default: JWT_EXPIRATION_MINUTES)
    - iat: Issued at time, the anchor of the absolute session timeout
    - nbf: Not before time

    Args:
        data: Claims to encode
        expires_delta: Optional custom expiration time
        issued_at: Optional explicit issue time (defaults to now)

    Returns:
        JWT token string

    Example:
        >>> token = create_access_token({"user_id": 1})
        >>> verify_token(token)["user_id"]
        1
    """
    to_encode = data.copy()
    issued = issued_at or datetime.utcnow()

    if expires_delta:
        expire = issued + expires_delta
    else:
        expire = issued + timedelta(minutes=settings.JWT_EXPIRATION_MINUTES)

    to_encode.update(
        {
            "exp": expire,
            "iat": issued,
            "nbf": issued,
        }
    )

    return jwt.encode(
        to_encode,
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )


def verify_token(token: str) -> Dict[str, Any]:
    """
    Verify and decode a JWT token.

    Args:
        token: JWT token string

    Returns:
        Decoded token payload

    Raises:
        TokenExpiredError: If token has expired
        TokenInvalidError: If token is malformed, not yet valid, or the
            signature is invalid
    """
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )

    except jwt.ExpiredSignatureError:
        raise TokenExpiredError(message="Token has expired")

    except JWTClaimsError as e:
        # nbf in the future, bad audience, etc.
        raise TokenInvalidError(
            message="Token is not yet valid",
            error=str(e),
        )

    except JWTError as e:
        raise TokenInvalidError(
            message="Invalid token",
            error=str(e),
        )


def token_issued_at_ms(payload: Dict[str, Any]) -> Optional[int]:
    """
    Return the token's ``iat`` claim as epoch milliseconds.

    Args:
        payload: Decoded token claims

    Returns:
        Issue time in milliseconds, or None when the claim is missing
    """
    iat = payload.get("iat")
    if iat is None:
        return None
    return int(iat) * 1000


# ============================================================================
# Token Blacklist (Logout)
# ============================================================================


async def blacklist_token(
    token: str,
    user_id: int,
    ttl_seconds: Optional[int] = None,
) -> None:
    """
    Add a token to the blacklist (for logout).

    WHY: JWT tokens are stateless and can't be "deleted". Blacklisting
    prevents a token from being used even if it hasn't expired yet.

    Args:
        token: JWT token to blacklist
        user_id: User ID stored as the value for audit
        ttl_seconds: Optional TTL (defaults to remaining token lifetime)
    """
    redis = await get_redis()

    if ttl_seconds is None:
        try:
            payload = jwt.decode(
                token,
                settings.JWT_SECRET,
                algorithms=[settings.JWT_ALGORITHM],
                options={"verify_signature": False, "verify_exp": False},
            )
            exp_timestamp = payload.get("exp")
            if exp_timestamp:
                ttl_seconds = max(
                    int(exp_timestamp - datetime.now(timezone.utc).timestamp()),
                    1,
                )
            else:
                ttl_seconds = settings.JWT_EXPIRATION_MINUTES * 60
        except JWTError:
            ttl_seconds = settings.JWT_EXPIRATION_MINUTES * 60

    await redis.setex(
        f"blacklist:token:{token}",
        ttl_seconds,
        str(user_id),
    )


async def is_token_blacklisted(token: str) -> bool:
    """
    Check if a token is blacklisted.

    Args:
        token: JWT token to check

    Returns:
        True if token is blacklisted, False otherwise
    """
    redis = await get_redis()
    exists = await redis.exists(f"blacklist:token:{token}")
    return exists > 0
