# =============================================================================
# core/services/usage_service.py - AI Usage Accounting
# =============================================================================
# Daily AI usage lives in the ai_usage table, one row per
# (user_id, date, feature). Two paths write to it:
#
#   - check_and_increment_ai_usage(user_uuid, feature_name) RPC
#     Atomic check + increment for chat and compatibility. Returns false
#     once the tier's daily limit is reached.
#   - record_feature_use(): plain upsert for trend analysis, whose limit
#     is checked in Python first.
#
# update_ai_token_usage(user_uuid, input, output) adds token counts after a
# chat completes.
# =============================================================================

import logging
from typing import Any
from uuid import UUID

from app.exceptions import InternalError, InvalidInputError
from core.models.tier import Tier
from core.services.tier_service import TierService, get_tier_limits
from lib.supabase_client import SupabaseClient, SupabaseClientError, first_row
from lib.utils import normalize_uuid, today_iso

logger = logging.getLogger(__name__)

USAGE_FEATURES = ("chat", "diagnosis", "report", "search")


def build_usage_summary(
    feature: str,
    tier: Tier,
    daily_limit: int,
    message_count: int = 0,
    input_tokens: int = 0,
    output_tokens: int = 0,
) -> dict[str, Any]:
    remaining = max(0, daily_limit - message_count)
    percentage = round(message_count / daily_limit * 100) if daily_limit > 0 else 0
    return {
        "feature": feature,
        "message_count": message_count,
        "input_tokens": input_tokens,
        "output_tokens": output_tokens,
        "daily_limit": daily_limit,
        "tier": tier.value,
        "remaining": remaining,
        "percentage_used": percentage,
    }


class UsageService:
    """Reads and writes daily AI usage counters."""

    @staticmethod
    def check_and_increment(user_id: UUID | str, feature: str) -> bool:
        """
        Atomically count one use of `feature`.

        Returns:
            False when the user is already at their daily limit

        Raises:
            SupabaseClientError: If the RPC fails
        """
        allowed = SupabaseClient.rpc(
            "check_and_increment_ai_usage",
            {"user_uuid": normalize_uuid(user_id), "feature_name": feature},
        )
        return bool(allowed)

    @staticmethod
    def record_tokens(user_id: UUID | str, input_tokens: int, output_tokens: int) -> None:
        """Add token counts to today's usage. Failure is logged, not raised."""
        try:
            SupabaseClient.rpc(
                "update_ai_token_usage",
                {
                    "user_uuid": normalize_uuid(user_id),
                    "input_tokens": input_tokens,
                    "output_tokens": output_tokens,
                },
            )
        except SupabaseClientError as e:
            logger.error(f"Failed to record token usage for {user_id}: {e.message}")

    @staticmethod
    def get_today_row(user_id: UUID | str, feature: str) -> dict[str, Any] | None:
        client = SupabaseClient.get_client()
        try:
            response = (
                client.table("ai_usage")
                .select("message_count, input_tokens, output_tokens")
                .eq("user_id", normalize_uuid(user_id))
                .eq("date", today_iso())
                .eq("feature", feature)
                .limit(1)
                .execute()
            )
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to read ai_usage: {e}",
                code="FETCH_USAGE_FAILED",
                details={"feature": feature},
            )
        return first_row(response)

    @staticmethod
    def get_today_count(user_id: UUID | str, feature: str) -> int:
        row = UsageService.get_today_row(user_id, feature) or {}
        return int(row.get("message_count") or 0)

    @staticmethod
    def record_feature_use(user_id: UUID | str, feature: str, current_count: int) -> None:
        """Upsert today's row with current_count + 1. Failure is logged."""
        client = SupabaseClient.get_client()
        try:
            client.table("ai_usage").upsert(
                {
                    "user_id": normalize_uuid(user_id),
                    "date": today_iso(),
                    "feature": feature,
                    "message_count": current_count + 1,
                },
                on_conflict="user_id,date,feature",
            ).execute()
        except Exception as e:
            logger.error(f"Failed to record {feature} usage for {user_id}: {e}")

    @staticmethod
    def get_usage(user_id: UUID | str, feature: str = "chat") -> dict[str, Any]:
        """
        Today's usage for one feature.

        Prefers the get_ai_usage_today RPC and falls back to reading the
        ai_usage row directly when the function isn't deployed.
        """
        if feature not in USAGE_FEATURES:
            raise InvalidInputError(
                f"Invalid feature. Must be one of: {', '.join(USAGE_FEATURES)}"
            )

        tier = TierService.get_user_tier(user_id)
        daily_limit = get_tier_limits(tier).ai_messages_per_day

        try:
            data = SupabaseClient.rpc(
                "get_ai_usage_today",
                {"user_uuid": normalize_uuid(user_id), "feature_name": feature},
            )
            row = data[0] if isinstance(data, list) and data else (data if isinstance(data, dict) else None)
        except SupabaseClientError as e:
            logger.warning(f"get_ai_usage_today unavailable, using direct query: {e.message}")
            try:
                row = UsageService.get_today_row(user_id, feature)
            except SupabaseClientError as inner:
                logger.error(inner.message)
                raise InternalError("Failed to fetch usage")

        if not row:
            return build_usage_summary(feature, tier, daily_limit)

        return build_usage_summary(
            feature,
            tier,
            int(row.get("daily_limit") or daily_limit),
            message_count=int(row.get("message_count") or 0),
            input_tokens=int(row.get("input_tokens") or 0),
            output_tokens=int(row.get("output_tokens") or 0),
        )
