# =============================================================================
# app/routers/billing.py - Subscription Billing Endpoints
# =============================================================================
# Endpoints:
#   POST /billing/checkout              - Stripe Checkout URL for a paid tier
#   POST /billing/portal                - Stripe Billing Portal URL
#   GET  /billing/subscription          - Current plan, trial and period
#   POST /billing/subscription/cancel   - Cancel at period end
#   POST /billing/subscription/resume   - Undo a pending cancellation
# =============================================================================

from fastapi import APIRouter, Request

from app.dependencies import CurrentUser
from app.responses import success_response
from core.models.billing import CheckoutRequest, PortalRequest
from core.services.billing_service import BillingService

router = APIRouter()


@router.post("/checkout")
def create_checkout(body: CheckoutRequest, request: Request, user: CurrentUser):
    return success_response(BillingService.create_checkout(user.id, user.email, body), request=request)


@router.post("/portal")
def create_portal(request: Request, user: CurrentUser, body: PortalRequest | None = None):
    return success_response(BillingService.create_portal(user.id, body or PortalRequest()), request=request)


@router.get("/subscription")
async def get_subscription(request: Request, user: CurrentUser):
    """Plan status; users who never subscribed get the free defaults."""
    return success_response(BillingService.get_subscription(user.id), request=request)


@router.post("/subscription/cancel")
def cancel_subscription(request: Request, user: CurrentUser):
    return success_response(BillingService.set_cancel_at_period_end(user.id, True), request=request)


@router.post("/subscription/resume")
def resume_subscription(request: Request, user: CurrentUser):
    return success_response(BillingService.set_cancel_at_period_end(user.id, False), request=request)
