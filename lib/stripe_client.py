# =============================================================================
# lib/stripe_client.py - Stripe SDK Wrapper
# =============================================================================
# All calls to Stripe go through this module:
# - Price id <-> (tier, interval) mapping from settings
# - Customer lookup/creation
# - Checkout and Billing Portal sessions
# - Subscription cancel/resume and retrieval
# - Webhook signature verification
#
# Every SDK failure is re-raised as StripeClientError so services only
# handle one error type.
# =============================================================================

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

import stripe

from app.config import settings
from core.models.billing import BillingInterval
from core.models.tier import Tier
from lib.utils import ApplicationError

logger = logging.getLogger(__name__)


class StripeClientError(ApplicationError):
    """Error returned by (or while calling) the Stripe API."""

    def __init__(
        self,
        message: str,
        code: str = "STRIPE_ERROR",
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, code=code, suggestion=suggestion, details=details)


def _configure() -> None:
    if not settings.stripe_enabled:
        raise StripeClientError(
            message="Stripe is not configured",
            code="NOT_CONFIGURED",
            suggestion="Set STRIPE_SECRET_KEY in your .env file",
        )
    stripe.api_key = settings.STRIPE_SECRET_KEY


def field(obj: Any, key: str, default: Any = None) -> Any:
    """
    Read a key from a StripeObject or plain dict.

    StripeObject raises KeyError (not AttributeError) for absent keys, so
    attribute access is avoided.
    """
    if obj is None:
        return default
    try:
        value = obj[key]
    except (KeyError, TypeError, IndexError):
        return default
    return default if value is None else value


def timestamp_to_iso(value: int | None) -> str | None:
    """Stripe epoch seconds -> ISO 8601 UTC string."""
    if value is None:
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc).isoformat()


# =============================================================================
# Price Mapping
# =============================================================================

def _price_table() -> dict[tuple[Tier, BillingInterval], str]:
    return {
        (Tier.STARTER, BillingInterval.MONTHLY): settings.STRIPE_PRICE_STARTER_MONTHLY,
        (Tier.STARTER, BillingInterval.ANNUAL): settings.STRIPE_PRICE_STARTER_ANNUAL,
        (Tier.PLUS, BillingInterval.MONTHLY): settings.STRIPE_PRICE_PLUS_MONTHLY,
        (Tier.PLUS, BillingInterval.ANNUAL): settings.STRIPE_PRICE_PLUS_ANNUAL,
        (Tier.PRO, BillingInterval.MONTHLY): settings.STRIPE_PRICE_PRO_MONTHLY,
        (Tier.PRO, BillingInterval.ANNUAL): settings.STRIPE_PRICE_PRO_ANNUAL,
    }


def get_price_id_for_tier(
    tier: Tier | str,
    interval: BillingInterval | str = BillingInterval.MONTHLY,
) -> str | None:
    """Configured price id, or None for free / unconfigured prices."""
    try:
        key = (Tier(tier), BillingInterval(interval))
    except ValueError:
        return None
    return _price_table().get(key) or None


def get_tier_for_price_id(price_id: str | None) -> Tier | None:
    if not price_id:
        return None
    for (tier, _), configured in _price_table().items():
        if configured and configured == price_id:
            return tier
    return None


def get_billing_interval_for_price_id(price_id: str | None) -> BillingInterval | None:
    if not price_id:
        return None
    for (_, interval), configured in _price_table().items():
        if configured and configured == price_id:
            return interval
    return None


def subscription_price_id(subscription: Any) -> str | None:
    """Price id of the first subscription item."""
    items = field(field(subscription, "items"), "data", [])
    if not items:
        return None
    return field(field(items[0], "price"), "id")


def subscription_period(subscription: Any) -> tuple[str | None, str | None]:
    """
    (current_period_start, current_period_end) as ISO strings.

    Newer API versions moved the period onto the subscription item.
    """
    start = field(subscription, "current_period_start")
    end = field(subscription, "current_period_end")
    if start is None or end is None:
        items = field(field(subscription, "items"), "data", [])
        if items:
            start = start if start is not None else field(items[0], "current_period_start")
            end = end if end is not None else field(items[0], "current_period_end")
    return timestamp_to_iso(start), timestamp_to_iso(end)


# =============================================================================
# Customers & Sessions
# =============================================================================

def get_or_create_customer(user_id: str, email: str, name: str | None = None) -> str:
    """
    Find a customer by email or create one; returns the customer id.

    Existing customers without a user_id in metadata are tagged.
    """
    _configure()
    try:
        existing = stripe.Customer.list(email=email, limit=1)
        customers = field(existing, "data", [])
        if customers:
            customer = customers[0]
            if not field(field(customer, "metadata"), "user_id"):
                stripe.Customer.modify(customer["id"], metadata={"user_id": user_id})
            return customer["id"]

        params: dict[str, Any] = {"email": email, "metadata": {"user_id": user_id}}
        if name:
            params["name"] = name
        customer = stripe.Customer.create(**params)
        logger.info(f"Created Stripe customer {customer['id']} for user {user_id}")
        return customer["id"]
    except stripe.StripeError as e:
        raise StripeClientError(
            message=f"Failed to get or create customer: {e}",
            code="CUSTOMER_FAILED",
            details={"user_id": user_id},
        )


def create_checkout_session(
    user_id: str,
    customer_id: str,
    tier: Tier,
    interval: BillingInterval,
    success_url: str,
    cancel_url: str,
) -> Any:
    """
    Subscription-mode Checkout session for one price.

    user_id and tier are written to both the session and the subscription
    metadata so webhooks can map events back to the user.
    """
    _configure()
    price_id = get_price_id_for_tier(tier, interval)
    if not price_id:
        raise StripeClientError(
            message=f"No price configured for {tier.value} ({interval.value})",
            code="PRICE_NOT_CONFIGURED",
            suggestion=f"Set STRIPE_PRICE_{tier.value.upper()}_{interval.value.upper()}",
        )

    metadata = {"user_id": user_id, "tier": tier.value}
    try:
        return stripe.checkout.Session.create(
            mode="subscription",
            customer=customer_id,
            payment_method_types=["card"],
            line_items=[{"price": price_id, "quantity": 1}],
            success_url=success_url,
            cancel_url=cancel_url,
            metadata=metadata,
            subscription_data={"metadata": metadata},
            automatic_tax={"enabled": True},
            allow_promotion_codes=True,
        )
    except stripe.StripeError as e:
        raise StripeClientError(
            message=f"Failed to create checkout session: {e}",
            code="CHECKOUT_FAILED",
            details={"user_id": user_id, "tier": tier.value},
        )


def create_portal_session(customer_id: str, return_url: str) -> Any:
    _configure()
    params: dict[str, Any] = {"customer": customer_id, "return_url": return_url}
    if settings.STRIPE_PORTAL_CONFIG_ID:
        params["configuration"] = settings.STRIPE_PORTAL_CONFIG_ID
    try:
        return stripe.billing_portal.Session.create(**params)
    except stripe.StripeError as e:
        raise StripeClientError(
            message=f"Failed to create portal session: {e}",
            code="PORTAL_FAILED",
            details={"customer_id": customer_id},
        )


# =============================================================================
# Subscriptions
# =============================================================================

def retrieve_subscription(subscription_id: str) -> Any:
    _configure()
    try:
        return stripe.Subscription.retrieve(subscription_id)
    except stripe.StripeError as e:
        raise StripeClientError(
            message=f"Failed to retrieve subscription: {e}",
            code="SUBSCRIPTION_FETCH_FAILED",
            details={"subscription_id": subscription_id},
        )


def set_cancel_at_period_end(subscription_id: str, cancel: bool) -> Any:
    """Cancel (True) or resume (False) a subscription at period end."""
    _configure()
    try:
        return stripe.Subscription.modify(subscription_id, cancel_at_period_end=cancel)
    except stripe.StripeError as e:
        raise StripeClientError(
            message=f"Failed to update subscription: {e}",
            code="SUBSCRIPTION_UPDATE_FAILED",
            details={"subscription_id": subscription_id, "cancel_at_period_end": cancel},
        )


# =============================================================================
# Webhooks
# =============================================================================

def construct_event(payload: bytes, signature: str) -> Any:
    """
    Verify a webhook signature and parse the event.

    Raises:
        StripeClientError: code INVALID_SIGNATURE or INVALID_PAYLOAD
    """
    if not settings.STRIPE_WEBHOOK_SECRET:
        raise StripeClientError(
            message="Stripe webhook secret is not configured",
            code="NOT_CONFIGURED",
            suggestion="Set STRIPE_WEBHOOK_SECRET in your .env file",
        )
    try:
        return stripe.Webhook.construct_event(payload, signature, settings.STRIPE_WEBHOOK_SECRET)
    except stripe.SignatureVerificationError as e:
        raise StripeClientError(
            message=f"Invalid webhook signature: {e}",
            code="INVALID_SIGNATURE",
        )
    except ValueError as e:
        raise StripeClientError(
            message=f"Invalid webhook payload: {e}",
            code="INVALID_PAYLOAD",
        )
