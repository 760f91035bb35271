# =============================================================================
# tests/test_tiers.py - Tier Resolution Tests
# =============================================================================
# Tests for the effective-tier rules:
# - admin -> override -> trial -> active/grace -> free
# - tank limit messages and feature gating
# =============================================================================

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from app.exceptions import ErrorCode, TierRequiredError
from core.models.tier import Tier
from core.services.tier_service import (
    TIER_LIMITS,
    TierService,
    resolve_tier,
    tank_limit_message,
)

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
FUTURE = (NOW + timedelta(days=3)).isoformat()
PAST = (NOW - timedelta(days=3)).isoformat()


class TestResolveTier:
    """Tests for resolve_tier()."""

    def test_no_rows_is_free(self):
        assert resolve_tier(now=NOW) == Tier.FREE

    def test_admin_is_pro(self):
        subscription = {"tier": "starter", "status": "active"}
        assert resolve_tier(subscription, admin_profile={"is_active": True}, now=NOW) == Tier.PRO

    def test_inactive_admin_is_ignored(self):
        assert resolve_tier(admin_profile={"is_active": False}, now=NOW) == Tier.FREE

    def test_unexpired_override_wins_over_subscription(self):
        profile = {"tier_override": "plus", "override_expires_at": FUTURE}
        subscription = {"tier": "starter", "status": "active"}
        assert resolve_tier(subscription, profile, now=NOW) == Tier.PLUS

    def test_override_without_expiry(self):
        assert resolve_tier(profile={"tier_override": "pro"}, now=NOW) == Tier.PRO

    def test_expired_override_falls_through(self):
        profile = {"tier_override": "pro", "override_expires_at": PAST}
        assert resolve_tier({"tier": "starter", "status": "active"}, profile, now=NOW) == Tier.STARTER

    def test_trialing_is_pro(self):
        subscription = {"tier": "starter", "status": "trialing", "trial_ends_at": FUTURE}
        assert resolve_tier(subscription, now=NOW) == Tier.PRO

    def test_expired_trial_is_free(self):
        subscription = {"tier": "starter", "status": "trialing", "trial_ends_at": PAST}
        assert resolve_tier(subscription, now=NOW) == Tier.FREE

    def test_past_due_within_grace_keeps_tier(self):
        subscription = {"tier": "plus", "status": "past_due", "grace_period_ends_at": FUTURE}
        assert resolve_tier(subscription, now=NOW) == Tier.PLUS

    def test_past_due_after_grace_is_free(self):
        subscription = {"tier": "plus", "status": "past_due", "grace_period_ends_at": PAST}
        assert resolve_tier(subscription, now=NOW) == Tier.FREE

    def test_canceled_is_free(self):
        assert resolve_tier({"tier": "pro", "status": "canceled"}, now=NOW) == Tier.FREE

    def test_unknown_tier_value_is_free(self):
        assert resolve_tier({"tier": "platinum", "status": "active"}, now=NOW) == Tier.FREE


class TestTierLimits:
    """Tests for the limits table and messages."""

    def test_daily_message_limits(self):
        assert TIER_LIMITS[Tier.FREE].ai_messages_per_day == 10
        assert TIER_LIMITS[Tier.STARTER].ai_messages_per_day == 100
        assert TIER_LIMITS[Tier.PLUS].ai_messages_per_day == 200
        assert TIER_LIMITS[Tier.PRO].ai_messages_per_day == 999999

    def test_tank_limits(self):
        assert TIER_LIMITS[Tier.FREE].tanks == 1
        assert TIER_LIMITS[Tier.PLUS].tanks == 5

    def test_free_message(self):
        assert tank_limit_message(Tier.FREE) == (
            "You've reached the free tier limit of 1 tank. Upgrade to add more tanks."
        )

    def test_plus_message_is_plural(self):
        assert "limit of 5 tanks" in tank_limit_message(Tier.PLUS)

    def test_pro_message(self):
        assert tank_limit_message(Tier.PRO) == "Tank limit reached. Contact support for assistance."


class TestTierService:
    """Tests for TierService with mocked lookups."""

    def test_lookup_failure_degrades_to_free(self):
        with patch("core.services.tier_service.SupabaseClient.fetch_admin_profile", side_effect=RuntimeError("db down")):
            assert TierService.get_user_tier("user-1") == Tier.FREE

    def test_require_feature_raises_with_required_tier(self):
        with patch.object(TierService, "get_user_tier", return_value=Tier.STARTER):
            with pytest.raises(TierRequiredError) as exc_info:
                TierService.require_feature("user-1", "equipment_tracking", "Equipment tracking requires Plus")

        assert exc_info.value.code == ErrorCode.TIER_REQUIRED
        assert exc_info.value.status_code == 403
        assert exc_info.value.details == {"required_tier": "plus"}

    def test_require_feature_returns_tier(self):
        with patch.object(TierService, "get_user_tier", return_value=Tier.PRO):
            assert TierService.require_feature("user-1", "proactive_alerts", "nope") == Tier.PRO
