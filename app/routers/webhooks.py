# =============================================================================
# app/routers/webhooks.py - Stripe Webhooks
# =============================================================================
# Stripe retries any non-2xx response, so:
#   - bad or missing signature        -> 400 (never retried successfully)
#   - handler failure                 -> 200, error stored on the event row
#   - unexpected exception            -> 500 (Stripe retries)
# =============================================================================

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from core.services.webhook_service import WebhookService
from lib import stripe_client
from lib.stripe_client import StripeClientError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/stripe")
async def stripe_webhook(request: Request) -> JSONResponse:
    payload = await request.body()
    signature = request.headers.get("stripe-signature")
    if not signature:
        logger.error("Missing Stripe signature")
        return JSONResponse({"error": "Missing signature"}, status_code=400)

    try:
        event = stripe_client.construct_event(payload, signature)
    except StripeClientError as e:
        logger.error(f"Webhook signature verification failed: {e.message}")
        return JSONResponse({"error": "Invalid signature"}, status_code=400)

    try:
        result = WebhookService.process_event(event)
    except Exception as e:
        logger.exception(f"Webhook processing error: {e}")
        return JSONResponse({"error": "Internal server error"}, status_code=500)

    return JSONResponse(result)
