# =============================================================================
# core/services/tier_service.py - Tier Resolution & Limits
# =============================================================================
# Decides which plan a user is effectively on and what it allows.
#
# Resolution order (first match wins):
#   1. Active admin profile             -> pro
#   2. Unexpired users.tier_override    -> override tier
#   3. Trialing subscription, trial_ends_at in the future -> pro
#   4. Active subscription (or past_due within grace period) -> its tier
#   5. Otherwise                        -> free
# =============================================================================

import logging
from datetime import datetime
from typing import Any
from uuid import UUID

from app.exceptions import TierRequiredError
from core.models.tier import SubscriptionStatus, Tier, TierLimits
from lib.supabase_client import SupabaseClient
from lib.utils import parse_datetime, utc_now

logger = logging.getLogger(__name__)


TIER_LIMITS: dict[Tier, TierLimits] = {
    Tier.FREE: TierLimits(
        tanks=1,
        ai_messages_per_day=10,
        photo_diagnosis_per_day=0,
        equipment_recs_per_day=0,
        trend_analyses_per_day=5,
    ),
    Tier.STARTER: TierLimits(
        tanks=1,
        ai_messages_per_day=100,
        photo_diagnosis_per_day=0,
        equipment_recs_per_day=0,
        trend_analyses_per_day=50,
    ),
    Tier.PLUS: TierLimits(
        tanks=5,
        ai_messages_per_day=200,
        photo_diagnosis_per_day=10,
        equipment_recs_per_day=0,
        trend_analyses_per_day=50,
    ),
    Tier.PRO: TierLimits(
        tanks=999999,
        ai_messages_per_day=999999,
        photo_diagnosis_per_day=30,
        equipment_recs_per_day=10,
        trend_analyses_per_day=50,
    ),
}

# Minimum tier per gated feature
FEATURE_TIERS: dict[str, Tier] = {
    "equipment_tracking": Tier.PLUS,
    "trend_ai_insights": Tier.STARTER,
    "ai_compatibility": Tier.STARTER,
    "proactive_alerts": Tier.PLUS,
    "photo_diagnosis": Tier.PLUS,
    "ai_maintenance_recommendations": Tier.STARTER,
}


def _parse_tier(value: Any) -> Tier | None:
    try:
        return Tier(value)
    except ValueError:
        return None


def _in_future(value: Any, now: datetime) -> bool:
    try:
        parsed = parse_datetime(value)
    except (TypeError, ValueError):
        return False
    return parsed is not None and parsed > now


def resolve_tier(
    subscription: dict[str, Any] | None = None,
    profile: dict[str, Any] | None = None,
    admin_profile: dict[str, Any] | None = None,
    now: datetime | None = None,
) -> Tier:
    """
    Effective tier from the raw rows (pure function).

    Args:
        subscription: subscriptions row or None
        profile: users row (tier_override, override_expires_at) or None
        admin_profile: admin_profiles row or None
        now: Reference time (default: current UTC time)
    """
    now = now or utc_now()

    if admin_profile and admin_profile.get("is_active", True):
        return Tier.PRO

    if profile and profile.get("tier_override"):
        override = _parse_tier(profile["tier_override"])
        expires = profile.get("override_expires_at")
        if override and (not expires or _in_future(expires, now)):
            return override

    if not subscription:
        return Tier.FREE

    status = subscription.get("status")
    tier = _parse_tier(subscription.get("tier")) or Tier.FREE

    if status == SubscriptionStatus.TRIALING.value and _in_future(subscription.get("trial_ends_at"), now):
        return Tier.PRO

    if status == SubscriptionStatus.ACTIVE.value:
        return tier

    if status == SubscriptionStatus.PAST_DUE.value and _in_future(subscription.get("grace_period_ends_at"), now):
        return tier

    return Tier.FREE


def get_tier_limits(tier: Tier) -> TierLimits:
    return TIER_LIMITS[tier]


def tank_limit_message(tier: Tier) -> str:
    """Message shown when the tank limit blocks creation."""
    if tier == Tier.PRO:
        return "Tank limit reached. Contact support for assistance."

    limit = TIER_LIMITS[tier].tanks
    label = "free tier" if tier == Tier.FREE else tier.value
    plural = "" if limit == 1 else "s"
    return f"You've reached the {label} limit of {limit} tank{plural}. Upgrade to add more tanks."


class TierService:
    """Database-backed tier lookups."""

    @staticmethod
    def get_user_tier(user_id: UUID | str) -> Tier:
        """
        Resolve the effective tier for a user.

        A failed lookup degrades to free rather than failing the request.
        """
        try:
            admin = SupabaseClient.fetch_admin_profile(user_id)
            profile = SupabaseClient.fetch_user_profile(user_id)
            subscription = SupabaseClient.fetch_subscription(user_id)
        except Exception as e:
            logger.error(f"Tier lookup failed for user {user_id}, defaulting to free: {e}")
            return Tier.FREE

        return resolve_tier(subscription=subscription, profile=profile, admin_profile=admin)

    @staticmethod
    def require_feature(user_id: UUID | str, feature: str, message: str) -> Tier:
        """
        Raise TIER_REQUIRED unless the user's tier includes `feature`.

        Returns:
            The user's tier, for callers that need it afterwards
        """
        tier = TierService.get_user_tier(user_id)
        required = FEATURE_TIERS[feature]
        if not tier.at_least(required):
            raise TierRequiredError(message, required_tier=required.value)
        return tier
