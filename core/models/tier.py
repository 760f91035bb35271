# =============================================================================
# core/models/tier.py - Subscription Tier Schemas
# =============================================================================
# These models describe what a user is entitled to:
# - Tier: the plan (free/starter/plus/pro)
# - SubscriptionStatus: Stripe subscription states mirrored in our table
# - TierLimits: numeric allowances for a tier
#
# The actual limits table and resolution rules live in
# core/services/tier_service.py.
# =============================================================================

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Tier(str, Enum):
    """
    Subscription plan, in ascending order of entitlement.

    - free: 1 tank, 10 AI messages/day
    - starter: 1 tank, 100 AI messages/day
    - plus: 5 tanks, equipment tracking, proactive alerts
    - pro: unlimited tanks, equipment recommendations
    """
    FREE = "free"
    STARTER = "starter"
    PLUS = "plus"
    PRO = "pro"

    @property
    def rank(self) -> int:
        return _TIER_ORDER.index(self)

    def at_least(self, other: "Tier") -> bool:
        """True if this tier includes everything `other` includes."""
        return self.rank >= other.rank


_TIER_ORDER = [Tier.FREE, Tier.STARTER, Tier.PLUS, Tier.PRO]

# Tiers that can be bought through Stripe Checkout
PAID_TIERS = (Tier.STARTER, Tier.PLUS, Tier.PRO)


class SubscriptionStatus(str, Enum):
    """Mirrors Stripe's subscription.status values."""
    TRIALING = "trialing"
    ACTIVE = "active"
    PAST_DUE = "past_due"
    CANCELED = "canceled"
    INCOMPLETE = "incomplete"
    INCOMPLETE_EXPIRED = "incomplete_expired"
    PAUSED = "paused"
    UNPAID = "unpaid"


class TierLimits(BaseModel):
    """
    Daily and absolute allowances for one tier.

    999999 is used as "unlimited" so the numbers stay comparable.
    """
    model_config = ConfigDict(frozen=True)

    tanks: int = Field(..., ge=0, description="Max non-deleted tanks")
    ai_messages_per_day: int = Field(..., ge=0, description="Chat messages per UTC day")
    photo_diagnosis_per_day: int = Field(..., ge=0, description="Photo diagnoses per UTC day")
    equipment_recs_per_day: int = Field(..., ge=0, description="Equipment recommendations per UTC day")
    trend_analyses_per_day: int = Field(..., ge=0, description="Trend analysis runs per UTC day")
