# =============================================================================
# core/models/billing.py - Billing Schemas
# =============================================================================
# Request bodies for Stripe Checkout / Billing Portal and the static plan
# catalogue shown on the billing page.
# =============================================================================

from enum import Enum

from pydantic import BaseModel, Field, HttpUrl

from .tier import Tier


class BillingInterval(str, Enum):
    MONTHLY = "monthly"
    ANNUAL = "annual"


class CheckoutTier(str, Enum):
    """Tiers that can be purchased (free is never checked out)."""
    STARTER = "starter"
    PLUS = "plus"
    PRO = "pro"


class CheckoutRequest(BaseModel):
    """
    Start a Stripe Checkout session.

    Example:
        {"tier": "plus", "interval": "annual"}
    """
    tier: CheckoutTier
    interval: BillingInterval = BillingInterval.MONTHLY
    success_url: HttpUrl | None = None
    cancel_url: HttpUrl | None = None


class PortalRequest(BaseModel):
    return_url: HttpUrl | None = None


class TierInfo(BaseModel):
    name: str
    price: int = Field(..., description="Monthly price in cents")
    price_display: str
    description: str
    features: list[str]


# Plan catalogue returned with the subscription status
TIER_PRICING: dict[Tier, TierInfo] = {
    Tier.FREE: TierInfo(
        name="Free",
        price=0,
        price_display="$0",
        description="Basic tools for getting started",
        features=["1 tank", "Parameter logging", "Species database", "3 maintenance tasks"],
    ),
    Tier.STARTER: TierInfo(
        name="Starter",
        price=499,
        price_display="$4.99",
        description="For casual hobbyists with one tank",
        features=["1 tank", "100 AI messages/day", "Water parameter tracking", "Maintenance scheduling"],
    ),
    Tier.PLUS: TierInfo(
        name="Plus",
        price=999,
        price_display="$9.99",
        description="For dedicated hobbyists with multiple tanks",
        features=["Up to 5 tanks", "200 AI messages/day", "Photo diagnosis (10/day)", "Proactive alerts"],
    ),
    Tier.PRO: TierInfo(
        name="Pro",
        price=1999,
        price_display="$19.99",
        description="For serious aquarists",
        features=["Unlimited tanks", "Unlimited AI messages", "Photo diagnosis (30/day)", "Equipment recommendations"],
    ),
}

# Display strings per billing interval
TIER_DISPLAY_PRICES: dict[Tier, dict[BillingInterval, str]] = {
    Tier.STARTER: {BillingInterval.MONTHLY: "$4.99/mo", BillingInterval.ANNUAL: "$49.90/yr"},
    Tier.PLUS: {BillingInterval.MONTHLY: "$9.99/mo", BillingInterval.ANNUAL: "$99.90/yr"},
    Tier.PRO: {BillingInterval.MONTHLY: "$19.99/mo", BillingInterval.ANNUAL: "$199.90/yr"},
}
