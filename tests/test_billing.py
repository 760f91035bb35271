# =============================================================================
# tests/test_billing.py - Billing Service Tests
# =============================================================================
# Stripe is never called; lib.stripe_client functions are patched.
# =============================================================================

from datetime import datetime, timezone
from unittest.mock import patch

import pytest

from app.config import settings
from app.exceptions import NotFoundError, StripeError
from core.models.billing import CheckoutRequest, PortalRequest
from core.services.billing_service import BillingService, free_subscription_status, subscription_status
from lib import stripe_client
from lib.stripe_client import StripeClientError
from tests.conftest import USER_ID

NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


class TestSubscriptionStatus:
    """Tests for the status card helpers."""

    def test_free_defaults(self):
        status = free_subscription_status()

        assert status["tier"] == "free"
        assert status["effective_tier"] == "free"
        assert status["is_trial"] is False
        assert status["tier_info"]["price"] == 0

    def test_active_trial_is_pro(self):
        status = subscription_status(
            {"tier": "starter", "status": "trialing", "trial_ends_at": "2024-06-03T12:00:00+00:00"},
            now=NOW,
        )

        assert status["is_trial"] is True
        assert status["tier"] == "starter"
        assert status["effective_tier"] == "pro"
        assert status["trial_days_remaining"] == 3

    def test_expired_trial_uses_stored_tier(self):
        status = subscription_status(
            {"tier": "plus", "status": "trialing", "trial_ends_at": "2024-05-20T00:00:00Z"},
            now=NOW,
        )

        assert status["is_trial"] is False
        assert status["effective_tier"] == "plus"
        assert status["trial_days_remaining"] is None

    def test_unknown_tier_is_free(self):
        status = subscription_status({"tier": "enterprise", "status": "active"}, now=NOW)
        assert status["effective_tier"] == "free"


class TestBillingService:
    """Tests for BillingService."""

    def test_get_subscription_without_row(self, fake_db):
        fake_db.queue("subscriptions", data=[])
        assert BillingService.get_subscription(USER_ID)["tier"] == "free"

    def test_checkout_creates_customer(self, fake_db):
        users = fake_db.queue("users", data=[{"id": str(USER_ID), "email": "fish@example.com", "full_name": "Ana"}])

        with patch("lib.stripe_client.get_or_create_customer", return_value="cus_1") as customer, \
                patch("lib.stripe_client.create_checkout_session",
                      return_value={"id": "cs_1", "url": "https://checkout.stripe.com/cs_1"}) as session:
            result = BillingService.create_checkout(USER_ID, "fish@example.com", CheckoutRequest(tier="plus"))

        assert result == {"checkout_url": "https://checkout.stripe.com/cs_1", "session_id": "cs_1"}
        customer.assert_called_once_with(str(USER_ID), "fish@example.com", "Ana")
        assert users.payload("update") == {"stripe_customer_id": "cus_1"}
        assert session.call_args.kwargs["customer_id"] == "cus_1"
        assert session.call_args.kwargs["success_url"].endswith("/billing?success=true")

    def test_checkout_stripe_failure(self, fake_db):
        fake_db.queue("users", data=[{"id": str(USER_ID), "stripe_customer_id": "cus_1"}])

        with patch("lib.stripe_client.create_checkout_session",
                   side_effect=StripeClientError("declined", code="CHECKOUT_FAILED")):
            with pytest.raises(StripeError):
                BillingService.create_checkout(USER_ID, None, CheckoutRequest(tier="starter"))

    def test_portal_requires_customer(self, fake_db):
        fake_db.queue("users", data=[{"id": str(USER_ID), "stripe_customer_id": None}])

        with pytest.raises(NotFoundError):
            BillingService.create_portal(USER_ID, PortalRequest())

    def test_cancel_without_subscription(self, fake_db):
        fake_db.queue("subscriptions", data=[{"user_id": str(USER_ID), "tier": "free", "stripe_subscription_id": None}])

        with pytest.raises(NotFoundError):
            BillingService.set_cancel_at_period_end(USER_ID, True)

    def test_cancel_mirrors_flag_locally(self, fake_db):
        subscriptions = fake_db.queue(
            "subscriptions",
            data=[{"user_id": str(USER_ID), "tier": "plus", "status": "active", "stripe_subscription_id": "sub_1"}],
        )

        with patch("lib.stripe_client.set_cancel_at_period_end") as stripe_cancel:
            status = BillingService.set_cancel_at_period_end(USER_ID, True)

        stripe_cancel.assert_called_once_with("sub_1", True)
        assert subscriptions.payload("update")["cancel_at_period_end"] is True
        assert status["cancel_at_period_end"] is True
        assert status["effective_tier"] == "plus"


class TestStripeConfiguration:
    def test_missing_secret_key(self):
        with patch.object(settings, "STRIPE_SECRET_KEY", ""), \
                patch("lib.stripe_client.stripe.billing_portal.Session.create") as create:
            with pytest.raises(StripeClientError) as exc_info:
                stripe_client.create_portal_session("cus_1", "https://app.example.com/billing")

        assert exc_info.value.code == "NOT_CONFIGURED"
        create.assert_not_called()
