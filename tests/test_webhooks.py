# =============================================================================
# tests/test_webhooks.py - Stripe Webhook Processing Tests
# =============================================================================

from datetime import datetime, timezone
from unittest.mock import patch

from core.models.tier import Tier
from core.services.webhook_service import HandlerResult, WebhookService, tier_for_subscription
from lib.email import EmailResult
from lib.supabase_client import SupabaseClient


def event(event_type, obj, event_id="evt_1"):
    return {"id": event_id, "type": event_type, "data": {"object": obj}}


def subscription(price_id, **extra):
    return {"id": "sub_1", "customer": "cus_1", "items": {"data": [{"price": {"id": price_id}}]}, **extra}


class TestTierForSubscription:
    """Tests for tier_for_subscription()."""

    def test_known_price(self):
        assert tier_for_subscription(subscription("price_plus_y")) == Tier.PLUS

    def test_unknown_price_is_starter(self):
        assert tier_for_subscription(subscription("price_legacy")) == Tier.STARTER


class TestProcessEvent:
    """Tests for WebhookService.process_event()."""

    def test_duplicate_is_skipped(self, fake_db):
        fake_db.queue("webhook_events", data=[{"id": 9}])

        with patch.object(WebhookService, "handle_invoice_paid") as handler:
            result = WebhookService.process_event(event("invoice.paid", {"subscription": "sub_1"}))

        assert result == {"received": True, "duplicate": True}
        handler.assert_not_called()

    def test_dispatches_and_records(self, fake_db):
        with patch.object(WebhookService, "handle_invoice_paid", return_value=HandlerResult()) as handler:
            result = WebhookService.process_event(event("invoice.paid", {"subscription": "sub_1"}))

        assert result == {"received": True}
        handler.assert_called_once_with({"subscription": "sub_1"})
        recorded = fake_db.queries["webhook_events"][-1].payload("insert")
        assert recorded["event_id"] == "evt_1"
        assert recorded["event_type"] == "invoice.paid"
        assert recorded["error"] is None

    def test_handler_failure_is_recorded_not_raised(self, fake_db):
        with patch.object(WebhookService, "handle_subscription_updated", return_value=HandlerResult(False, "boom")):
            result = WebhookService.process_event(event("customer.subscription.updated", subscription("price_pro_m")))

        assert result == {"received": True}
        assert fake_db.queries["webhook_events"][-1].payload("insert")["error"] == "boom"

    def test_unhandled_type_is_acknowledged(self, fake_db):
        result = WebhookService.process_event(event("charge.refunded", {"id": "ch_1"}))

        assert result == {"received": True}
        assert fake_db.queries["webhook_events"][-1].payload("insert")["event_type"] == "charge.refunded"


class TestHandlers:
    """Tests for individual event handlers."""

    def test_payment_failed_starts_grace_period(self, fake_db):
        subscriptions = fake_db.queue("subscriptions", data=[])
        now = datetime(2024, 6, 1, tzinfo=timezone.utc)

        with patch("core.services.webhook_service.utc_now", return_value=now), \
                patch.object(SupabaseClient, "fetch_subscription_by_customer", return_value={"user_id": "u1"}), \
                patch.object(SupabaseClient, "fetch_user_profile", return_value={"email": "a@b.co", "full_name": None}), \
                patch("lib.email.send_payment_failed_email", return_value=EmailResult(True)) as send:
            result = WebhookService.handle_payment_failed({"customer": "cus_1"})

        assert result.success
        update = subscriptions.payload("update")
        assert update["status"] == "past_due"
        assert update["grace_period_ends_at"] == "2024-06-08T00:00:00+00:00"
        assert subscriptions.called("eq")[0] == ("stripe_customer_id", "cus_1")
        send.assert_called_once_with("a@b.co", None)

    def test_subscription_deleted_downgrades_to_free(self, fake_db):
        subscriptions = fake_db.queue("subscriptions", data=[])

        with patch.object(SupabaseClient, "fetch_subscription_by_customer", return_value=None), \
                patch("lib.email.send_cancellation_email") as send:
            result = WebhookService.handle_subscription_deleted(subscription("price_pro_m"))

        assert result.success
        update = subscriptions.payload("update")
        assert update["tier"] == "free"
        assert update["status"] == "canceled"
        assert update["stripe_subscription_id"] is None
        send.assert_not_called()

    def test_subscription_updated_maps_price(self, fake_db):
        subscriptions = fake_db.queue("subscriptions", data=[])

        WebhookService.handle_subscription_updated(
            subscription("price_pro_m", status="active", cancel_at_period_end=True, current_period_start=0, current_period_end=86400)
        )

        update = subscriptions.payload("update")
        assert update["tier"] == "pro"
        assert update["cancel_at_period_end"] is True
        assert update["current_period_end"] == "1970-01-02T00:00:00+00:00"

    def test_checkout_without_user_id(self, fake_db):
        result = WebhookService.handle_checkout_completed({"metadata": {}, "customer": "cus_1"})

        assert not result.success
        assert result.error == "Missing user_id"
