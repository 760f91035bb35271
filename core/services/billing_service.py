# =============================================================================
# core/services/billing_service.py - Subscription Billing
# =============================================================================
# Stripe Checkout, the Billing Portal and the subscription status card.
#
# Subscription state itself is written by the webhook handlers
# (core/services/webhook_service.py); this service only reads it, except
# for the cancel/resume flag which is mirrored locally right away.
# =============================================================================

import logging
import math
from typing import Any
from uuid import UUID

from app.config import settings
from app.exceptions import InternalError, NotFoundError, StripeError
from core.models.billing import TIER_PRICING, CheckoutRequest, PortalRequest
from core.models.tier import SubscriptionStatus, Tier
from lib import stripe_client
from lib.stripe_client import StripeClientError
from lib.supabase_client import SupabaseClient, SupabaseClientError
from lib.utils import normalize_uuid, parse_datetime, utc_now

logger = logging.getLogger(__name__)


def free_subscription_status() -> dict[str, Any]:
    """Status card for a user who never subscribed."""
    return {
        "tier": Tier.FREE.value,
        "effective_tier": Tier.FREE.value,
        "status": SubscriptionStatus.ACTIVE.value,
        "is_trial": False,
        "trial_ends_at": None,
        "trial_days_remaining": None,
        "current_period_start": None,
        "current_period_end": None,
        "cancel_at_period_end": False,
        "tier_info": TIER_PRICING[Tier.FREE].model_dump(),
    }


def subscription_status(subscription: dict[str, Any], now=None) -> dict[str, Any]:
    """Status card for a subscriptions row (trialing users are shown as pro)."""
    now = now or utc_now()
    trial_end = parse_datetime(subscription.get("trial_ends_at"))
    is_trial = (
        subscription.get("status") == SubscriptionStatus.TRIALING.value
        and trial_end is not None
        and trial_end > now
    )

    try:
        tier = Tier(subscription.get("tier"))
    except ValueError:
        tier = Tier.FREE
    effective = Tier.PRO if is_trial else tier

    days_remaining = None
    if is_trial:
        days_remaining = math.ceil((trial_end - now).total_seconds() / 86400)

    return {
        "tier": tier.value,
        "effective_tier": effective.value,
        "status": subscription.get("status"),
        "is_trial": is_trial,
        "trial_ends_at": subscription.get("trial_ends_at"),
        "trial_days_remaining": days_remaining,
        "current_period_start": subscription.get("current_period_start"),
        "current_period_end": subscription.get("current_period_end"),
        "cancel_at_period_end": bool(subscription.get("cancel_at_period_end")),
        "stripe_subscription_id": subscription.get("stripe_subscription_id"),
        "tier_info": TIER_PRICING[effective].model_dump(),
    }


class BillingService:
    """Service for the /billing endpoints."""

    @staticmethod
    def create_checkout(
        user_id: UUID | str,
        email: str | None,
        request: CheckoutRequest,
    ) -> dict[str, Any]:
        """
        Start a Checkout session for a paid tier.

        Raises:
            StripeError: Any Stripe failure
        """
        user_id = normalize_uuid(user_id)
        try:
            profile = SupabaseClient.fetch_user_profile(user_id) or {}
        except SupabaseClientError as e:
            logger.error(e.message)
            raise InternalError("Failed to load user profile")

        try:
            customer_id = profile.get("stripe_customer_id")
            if not customer_id:
                customer_id = stripe_client.get_or_create_customer(
                    user_id, email or profile.get("email") or "", profile.get("full_name")
                )
                SupabaseClient.update_user(user_id, {"stripe_customer_id": customer_id})

            session = stripe_client.create_checkout_session(
                user_id=user_id,
                customer_id=customer_id,
                tier=Tier(request.tier.value),
                interval=request.interval,
                success_url=str(request.success_url or f"{settings.APP_URL}/billing?success=true"),
                cancel_url=str(request.cancel_url or f"{settings.APP_URL}/billing?canceled=true"),
            )
        except StripeClientError as e:
            logger.error(f"Checkout failed for user {user_id}: {e.message}")
            raise StripeError("Failed to create checkout session")
        except SupabaseClientError as e:
            logger.error(f"Failed to store Stripe customer for user {user_id}: {e.message}")
            raise InternalError("Failed to create checkout session")

        logger.info(f"Checkout session {session['id']} created for user {user_id} ({request.tier.value})")
        return {"checkout_url": session["url"], "session_id": session["id"]}

    @staticmethod
    def create_portal(user_id: UUID | str, request: PortalRequest) -> dict[str, Any]:
        """
        Billing Portal URL for managing payment methods and invoices.

        Raises:
            NotFoundError: User has no Stripe customer yet
        """
        user_id = normalize_uuid(user_id)
        try:
            profile = SupabaseClient.fetch_user_profile(user_id) or {}
        except SupabaseClientError as e:
            logger.error(e.message)
            raise InternalError("Failed to load user profile")

        customer_id = profile.get("stripe_customer_id")
        if not customer_id:
            raise NotFoundError("Billing account")

        try:
            session = stripe_client.create_portal_session(
                customer_id, str(request.return_url or f"{settings.APP_URL}/billing")
            )
        except StripeClientError as e:
            logger.error(f"Portal session failed for user {user_id}: {e.message}")
            raise StripeError("Failed to create portal session")

        return {"portal_url": session["url"]}

    @staticmethod
    def get_subscription(user_id: UUID | str) -> dict[str, Any]:
        try:
            subscription = SupabaseClient.fetch_subscription(user_id)
        except SupabaseClientError as e:
            logger.error(e.message)
            raise InternalError("Failed to fetch subscription")

        if not subscription:
            return free_subscription_status()
        return subscription_status(subscription)

    @staticmethod
    def set_cancel_at_period_end(user_id: UUID | str, cancel: bool) -> dict[str, Any]:
        """
        Cancel (True) or resume (False) the subscription at period end.

        Raises:
            NotFoundError: No Stripe subscription on file
            StripeError: Stripe rejected the change
        """
        user_id = normalize_uuid(user_id)
        try:
            subscription = SupabaseClient.fetch_subscription(user_id)
        except SupabaseClientError as e:
            logger.error(e.message)
            raise InternalError("Failed to fetch subscription")

        if not subscription or not subscription.get("stripe_subscription_id"):
            raise NotFoundError("Subscription")

        try:
            stripe_client.set_cancel_at_period_end(subscription["stripe_subscription_id"], cancel)
        except StripeClientError as e:
            logger.error(f"Failed to update subscription for user {user_id}: {e.message}")
            raise StripeError("Failed to update subscription")

        client = SupabaseClient.get_client()
        try:
            client.table("subscriptions").update({
                "cancel_at_period_end": cancel,
                "updated_at": utc_now().isoformat(),
            }).eq("user_id", user_id).execute()
        except Exception as e:
            # The customer.subscription.updated webhook will catch the row up
            logger.warning(f"Local cancel flag not updated for user {user_id}: {e}")

        logger.info(f"User {user_id} {'cancelled' if cancel else 'resumed'} their subscription")
        return subscription_status({**subscription, "cancel_at_period_end": cancel})
