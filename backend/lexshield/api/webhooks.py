"""
Webhook endpoints.

Webhook routes carry no user identity: their only security stages are
``preserveRawBody`` and ``webhookAuth(provider)``.
"""

import json
import logging

from fastapi import APIRouter, Request

from lexshield.middleware.secure import secure


logger = logging.getLogger(__name__)


router = APIRouter(prefix="/webhooks", tags=["webhooks"])


def _event_type(raw_body: bytes) -> str:
    try:
        return str(json.loads(raw_body).get("type", "unknown"))
    except (ValueError, AttributeError):
        return "unknown"


@router.post(
    "/stripe",
    summary="Stripe webhook",
    dependencies=secure(webhook_auth="stripe"),
)
async def stripe_webhook(request: Request) -> dict:
    event_type = _event_type(request.state.raw_body)
    logger.info(f"Stripe webhook received: {event_type}", extra={"event_type": event_type})
    return {"received": True}


@router.post(
    "/moyasar",
    summary="Moyasar webhook",
    dependencies=secure(webhook_auth="moyasar"),
)
async def moyasar_webhook(request: Request) -> dict:
    event_type = _event_type(request.state.raw_body)
    logger.info(f"Moyasar webhook received: {event_type}", extra={"event_type": event_type})
    return {"received": True}
