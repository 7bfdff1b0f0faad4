"""
Webhook stages.

WHAT: ``preserveRawBody`` and ``webhookAuth(provider)``.

WHY: Provider signatures are computed over the exact bytes sent. Parsing
JSON first and re-serialising would change them, so the raw body is kept
and verified before anything else touches it.

HOW:
- ``stripe``: ``stripe.Webhook.construct_event`` with the
  ``Stripe-Signature`` header and ``STRIPE_WEBHOOK_SECRET``
- any other provider: hex HMAC-SHA256 of the body under
  ``WEBHOOK_SECRETS[provider]`` in ``X-Webhook-Signature``
  (an optional ``sha256=`` prefix is accepted)
"""

import hashlib
import hmac
import logging
from typing import Callable, Optional

import stripe
from fastapi import Request

from lexshield.core.config import settings
from lexshield.core.exceptions import WebhookSignatureError


logger = logging.getLogger(__name__)


STRIPE_PROVIDER = "stripe"
STRIPE_SIGNATURE_HEADER = "Stripe-Signature"
WEBHOOK_SIGNATURE_HEADER = "X-Webhook-Signature"


async def preserve_raw_body(request: Request) -> bytes:
    """Read and keep the untouched request body on ``request.state.raw_body``."""
    body = await request.body()
    request.state.raw_body = body
    return body


def compute_signature(secret: str, payload: bytes) -> str:
    """Hex HMAC-SHA256 signature of ``payload``."""
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def verify_webhook_signature(
    provider: str,
    payload: bytes,
    signature: Optional[str],
    secret: Optional[str],
) -> None:
    """
    Verify a webhook payload signature.

    Args:
        provider: Webhook provider name
        payload: Raw request body
        signature: Signature header value
        secret: Shared signing secret for the provider

    Raises:
        WebhookSignatureError: Missing secret, missing signature, or mismatch
    """
    if not secret or not signature:
        raise WebhookSignatureError(provider=provider)

    if provider == STRIPE_PROVIDER:
        try:
            stripe.Webhook.construct_event(payload, signature, secret)
        except (ValueError, stripe.SignatureVerificationError) as e:
            raise WebhookSignatureError(provider=provider, error=str(e))
        return

    candidate = signature.strip()
    if candidate.lower().startswith("sha256="):
        candidate = candidate[len("sha256="):]
    expected = compute_signature(secret, payload)
    if not hmac.compare_digest(expected, candidate.lower()):
        raise WebhookSignatureError(provider=provider)


def webhook_auth(provider: str) -> Callable:
    """
    Build the ``webhookAuth`` stage for a provider.

    Must run after ``preserve_raw_body``; reads the body itself otherwise.
    """

    async def check_webhook_signature(request: Request) -> None:
        payload = getattr(request.state, "raw_body", None)
        if payload is None:
            payload = await preserve_raw_body(request)

        if provider == STRIPE_PROVIDER:
            secret = settings.STRIPE_WEBHOOK_SECRET
            signature = request.headers.get(STRIPE_SIGNATURE_HEADER)
        else:
            secret = settings.WEBHOOK_SECRETS.get(provider)
            signature = request.headers.get(WEBHOOK_SIGNATURE_HEADER)

        try:
            verify_webhook_signature(provider, payload, signature, secret)
        except WebhookSignatureError:
            logger.warning(
                f"Webhook signature verification failed for {provider}",
                extra={"provider": provider, "path": request.url.path},
            )
            raise

        request.state.webhook_provider = provider

    return check_webhook_signature
