"""
Webhook signature verification tests.

WHY: Webhook routes have no user identity; the signature is the only
thing standing between the internet and the payment handlers.
"""

import hashlib
import hmac
import json
import time

import pytest

from lexshield.core.exceptions import WebhookSignatureError
from lexshield.middleware.webhook import compute_signature, verify_webhook_signature


SECRET = "whsec_test_secret"
PAYLOAD = json.dumps({"type": "payment.paid", "id": "evt_1"}).encode()


def stripe_signature(payload: bytes, secret: str, timestamp: int = None) -> str:
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.{payload.decode()}".encode()
    digest = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


class TestHmacProviders:
    def test_valid_signature(self):
        verify_webhook_signature("moyasar", PAYLOAD, compute_signature(SECRET, PAYLOAD), SECRET)

    def test_prefixed_signature(self):
        signature = "sha256=" + compute_signature(SECRET, PAYLOAD)
        verify_webhook_signature("moyasar", PAYLOAD, signature, SECRET)

    def test_tampered_payload(self):
        signature = compute_signature(SECRET, PAYLOAD)
        with pytest.raises(WebhookSignatureError) as exc_info:
            verify_webhook_signature("moyasar", PAYLOAD + b" ", signature, SECRET)

        assert exc_info.value.to_dict()["details"] == {"provider": "moyasar"}

    def test_missing_signature(self):
        with pytest.raises(WebhookSignatureError):
            verify_webhook_signature("moyasar", PAYLOAD, None, SECRET)

    def test_unconfigured_secret(self):
        with pytest.raises(WebhookSignatureError):
            verify_webhook_signature("moyasar", PAYLOAD, "abc", None)


class TestStripe:
    def test_valid_signature(self):
        verify_webhook_signature("stripe", PAYLOAD, stripe_signature(PAYLOAD, SECRET), SECRET)

    def test_wrong_secret(self):
        with pytest.raises(WebhookSignatureError):
            verify_webhook_signature(
                "stripe", PAYLOAD, stripe_signature(PAYLOAD, "whsec_other"), SECRET
            )

    def test_stale_timestamp(self):
        signature = stripe_signature(PAYLOAD, SECRET, timestamp=int(time.time()) - 3600)
        with pytest.raises(WebhookSignatureError):
            verify_webhook_signature("stripe", PAYLOAD, signature, SECRET)

    def test_malformed_header(self):
        with pytest.raises(WebhookSignatureError):
            verify_webhook_signature("stripe", PAYLOAD, "garbage", SECRET)
