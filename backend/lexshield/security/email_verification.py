"""
Email verification gating.

WHAT: Blocks users who have not verified their email address from routes
classified as requiring verification.

HOW: Uses the route pattern classifier:
- ALWAYS_REQUIRED / REQUIRED -> unverified users get 403
- EXEMPT / DEFAULT_ALLOW     -> everyone passes
"""

import logging
from typing import Optional

from lexshield.core.exceptions import EmailVerificationRequired
from lexshield.security.patterns import RoutePatternSet, RouteTier, classify
from lexshield.stores.base import UserRecord


logger = logging.getLogger(__name__)


DEFAULT_EMAIL_VERIFICATION_PATTERNS = RoutePatternSet.from_iterables(
    always_required=[
        "/users/settings/security",
        "/users/settings/billing",
        "/auth/mfa",
        "/firms/ownership",
    ],
    exempt=[
        "/auth",
        "/users",
        "/health",
        "/notifications",
        "/email-verification",
    ],
    required=[
        "/cases",
        "/clients",
        "/invoices",
        "/payments",
        "/trust-accounts",
        "/documents",
        "/billing",
        "/firms",
        "/appointments",
    ],
)


class EmailVerificationGate:
    """
    Route-pattern based email verification check.

    Example:
        gate = EmailVerificationGate()
        gate.check(request.url.path, user)  # raises if blocked
    """

    def __init__(self, patterns: Optional[RoutePatternSet] = None):
        self._patterns = patterns or DEFAULT_EMAIL_VERIFICATION_PATTERNS

    def requires_verification(self, path: str) -> bool:
        return classify(path, self._patterns) in (RouteTier.ALWAYS_REQUIRED, RouteTier.REQUIRED)

    def check(self, path: str, user: UserRecord) -> None:
        """
        Raise if ``user`` may not access ``path`` yet.

        Raises:
            EmailVerificationRequired: Unverified user on a gated route
        """
        if user.is_email_verified:
            return
        if self.requires_verification(path):
            logger.warning(
                f"Blocked unverified user {user.id} from {path}",
                extra={"user_id": user.id, "path": path},
            )
            raise EmailVerificationRequired(user_id=user.id)
