# =============================================================================
# core/services/webhook_service.py - Stripe Webhook Processing
# =============================================================================
# Keeps the subscriptions table in step with Stripe.
#
#   checkout.session.completed    -> customer id + subscription upsert + welcome email
#   invoice.paid                  -> active, new period, grace period cleared
#   invoice.payment_failed        -> past_due with a 7-day grace period + email
#   customer.subscription.updated -> tier, status, period, cancel flag
#   customer.subscription.deleted -> free / canceled + cancellation email
#
# Each event id is recorded in webhook_events (with any handler error) so
# redelivered events are skipped.
# =============================================================================

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Callable

from core.models.tier import SubscriptionStatus, Tier
from lib import email as mailer
from lib import stripe_client
from lib.stripe_client import StripeClientError, field, subscription_period, subscription_price_id, timestamp_to_iso
from lib.supabase_client import SupabaseClient, SupabaseClientError, first_row
from lib.utils import utc_now

logger = logging.getLogger(__name__)

GRACE_PERIOD_DAYS = 7


@dataclass
class HandlerResult:
    success: bool = True
    error: str | None = None


def tier_for_subscription(subscription: Any) -> Tier:
    """Tier from the subscription's price; unknown prices count as starter."""
    return stripe_client.get_tier_for_price_id(subscription_price_id(subscription)) or Tier.STARTER


def _update_by_customer(customer_id: str, data: dict[str, Any]) -> HandlerResult:
    data["updated_at"] = utc_now().isoformat()
    client = SupabaseClient.get_client()
    try:
        client.table("subscriptions").update(data).eq("stripe_customer_id", customer_id).execute()
    except Exception as e:
        logger.error(f"Failed to update subscription for customer {customer_id}: {e}")
        return HandlerResult(False, str(e))
    return HandlerResult()


def _user_for_customer(customer_id: str) -> dict[str, Any] | None:
    """users row (email, full_name) behind a Stripe customer, for emails."""
    subscription = SupabaseClient.fetch_subscription_by_customer(customer_id)
    if not subscription or not subscription.get("user_id"):
        return None
    return SupabaseClient.fetch_user_profile(subscription["user_id"])


class WebhookService:
    """Dispatches verified Stripe events."""

    @staticmethod
    def handle_checkout_completed(session: Any) -> HandlerResult:
        user_id = field(field(session, "metadata"), "user_id")
        customer_id = field(session, "customer")
        subscription_id = field(session, "subscription")

        if not user_id:
            logger.error("No user_id in checkout session metadata")
            return HandlerResult(False, "Missing user_id")

        try:
            SupabaseClient.update_user(user_id, {"stripe_customer_id": customer_id})
            subscription = stripe_client.retrieve_subscription(subscription_id)
        except (SupabaseClientError, StripeClientError) as e:
            logger.error(f"Checkout completion failed for user {user_id}: {e.message}")
            return HandlerResult(False, e.message)

        tier = tier_for_subscription(subscription)
        period_start, period_end = subscription_period(subscription)

        client = SupabaseClient.get_client()
        try:
            client.table("subscriptions").upsert(
                {
                    "user_id": user_id,
                    "stripe_customer_id": customer_id,
                    "stripe_subscription_id": subscription_id,
                    "stripe_price_id": subscription_price_id(subscription),
                    "tier": tier.value,
                    "status": field(subscription, "status"),
                    "current_period_start": period_start,
                    "current_period_end": period_end,
                    "cancel_at_period_end": bool(field(subscription, "cancel_at_period_end", False)),
                    "trial_ends_at": timestamp_to_iso(field(subscription, "trial_end")),
                    "updated_at": utc_now().isoformat(),
                },
                on_conflict="user_id",
            ).execute()
        except Exception as e:
            logger.error(f"Error updating subscription for user {user_id}: {e}")
            return HandlerResult(False, str(e))

        logger.info(f"User {user_id} subscribed to {tier.value}")

        try:
            user = SupabaseClient.fetch_user_profile(user_id)
        except SupabaseClientError as e:
            logger.error(f"Welcome email skipped: {e.message}")
            return HandlerResult()
        if user and user.get("email"):
            mailer.send_welcome_email(user["email"], user.get("full_name"), tier.value)
        return HandlerResult()

    @staticmethod
    def handle_invoice_paid(invoice: Any) -> HandlerResult:
        subscription_id = field(invoice, "subscription")
        customer_id = field(invoice, "customer")
        if not subscription_id:
            return HandlerResult()

        try:
            subscription = stripe_client.retrieve_subscription(subscription_id)
        except StripeClientError as e:
            logger.error(e.message)
            return HandlerResult(False, e.message)

        period_start, period_end = subscription_period(subscription)
        return _update_by_customer(customer_id, {
            "status": SubscriptionStatus.ACTIVE.value,
            "current_period_start": period_start,
            "current_period_end": period_end,
            "grace_period_ends_at": None,
        })

    @staticmethod
    def handle_payment_failed(invoice: Any) -> HandlerResult:
        customer_id = field(invoice, "customer")
        grace_end = utc_now() + timedelta(days=GRACE_PERIOD_DAYS)

        result = _update_by_customer(customer_id, {
            "status": SubscriptionStatus.PAST_DUE.value,
            "grace_period_ends_at": grace_end.isoformat(),
        })
        if not result.success:
            return result

        try:
            user = _user_for_customer(customer_id)
        except SupabaseClientError as e:
            logger.error(f"Payment failed email skipped: {e.message}")
            return result
        if user and user.get("email"):
            mailer.send_payment_failed_email(user["email"], user.get("full_name"))
        return result

    @staticmethod
    def handle_subscription_updated(subscription: Any) -> HandlerResult:
        period_start, period_end = subscription_period(subscription)
        return _update_by_customer(field(subscription, "customer"), {
            "stripe_subscription_id": field(subscription, "id"),
            "stripe_price_id": subscription_price_id(subscription),
            "tier": tier_for_subscription(subscription).value,
            "status": field(subscription, "status"),
            "current_period_start": period_start,
            "current_period_end": period_end,
            "cancel_at_period_end": bool(field(subscription, "cancel_at_period_end", False)),
        })

    @staticmethod
    def handle_subscription_deleted(subscription: Any) -> HandlerResult:
        customer_id = field(subscription, "customer")
        result = _update_by_customer(customer_id, {
            "tier": Tier.FREE.value,
            "status": SubscriptionStatus.CANCELED.value,
            "stripe_subscription_id": None,
            "stripe_price_id": None,
            "current_period_end": utc_now().isoformat(),
            "cancel_at_period_end": False,
        })
        if not result.success:
            return result

        try:
            user = _user_for_customer(customer_id)
        except SupabaseClientError as e:
            logger.error(f"Cancellation email skipped: {e.message}")
            return result
        if user and user.get("email"):
            mailer.send_cancellation_email(user["email"], user.get("full_name"))
        return result

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------

    @staticmethod
    def handlers() -> dict[str, Callable[[Any], HandlerResult]]:
        return {
            "checkout.session.completed": WebhookService.handle_checkout_completed,
            "invoice.paid": WebhookService.handle_invoice_paid,
            "invoice.payment_failed": WebhookService.handle_payment_failed,
            "customer.subscription.updated": WebhookService.handle_subscription_updated,
            "customer.subscription.deleted": WebhookService.handle_subscription_deleted,
        }

    @staticmethod
    def is_duplicate(event_id: str) -> bool:
        client = SupabaseClient.get_client()
        response = (
            client.table("webhook_events")
            .select("id")
            .eq("event_id", event_id)
            .limit(1)
            .execute()
        )
        return first_row(response) is not None

    @staticmethod
    def process_event(event: Any) -> dict[str, Any]:
        """
        Handle one verified event exactly once.

        Returns:
            {"received": True} plus "duplicate": True for redeliveries.
            A failing handler is recorded, not raised.
        """
        event_id = field(event, "id")
        event_type = field(event, "type")
        obj = field(field(event, "data"), "object")

        if WebhookService.is_duplicate(event_id):
            logger.info(f"Webhook event {event_id} already processed")
            return {"received": True, "duplicate": True}

        handler = WebhookService.handlers().get(event_type)
        if handler:
            result = handler(obj)
        else:
            logger.info(f"Unhandled webhook event type: {event_type}")
            result = HandlerResult()

        payload = obj.to_dict() if hasattr(obj, "to_dict") else obj
        client = SupabaseClient.get_client()
        client.table("webhook_events").insert({
            "event_id": event_id,
            "event_type": event_type,
            "payload": payload,
            "error": None if result.success else result.error,
        }).execute()

        if not result.success:
            logger.error(f"Webhook handler failed for {event_type}: {result.error}")
        return {"received": True}
