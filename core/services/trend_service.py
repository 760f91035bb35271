# =============================================================================
# core/services/trend_service.py - On-Demand Trend Analysis
# =============================================================================
# Summarizes a tank's readings over the last N days:
# - current / min / max / avg and a half-split trend per parameter
# - a status against custom or default thresholds
# - an overall health grade
# - (starter+) an LLM summary with per-parameter insights
#
# Daily runs are capped per tier (TierLimits.trend_analyses_per_day) using
# the "trend_analysis" row of ai_usage.
# =============================================================================

import logging
from datetime import timedelta
from typing import Any
from uuid import UUID

from app.exceptions import InternalError, RateLimitExceededError
from core.models.parameters import PARAMETER_COLUMNS, threshold_type_for
from core.models.tier import Tier
from core.models.trends import ParameterSummary, TrendInsights
from core.services.parameter_service import ParameterService, threshold_values
from core.services.tank_service import TankService
from core.services.tier_service import TierService, get_tier_limits
from core.services.usage_service import UsageService
from lib.llm import LLMClient, LLMError
from lib.supabase_client import SupabaseClient, SupabaseClientError
from lib.trends import classify_status, describe, half_split_trend, overall_health
from lib.utils import utc_now

logger = logging.getLogger(__name__)

USAGE_FEATURE = "trend_analysis"
INSIGHTS_MAX_TOKENS = 2000


def summarize_parameter(
    values: list[float],
    threshold: dict[str, Any] | None,
) -> ParameterSummary:
    """Stats, trend and status for one parameter's chronological values."""
    if not values:
        return ParameterSummary()

    stats = describe(values)
    status = None
    if threshold:
        status = classify_status(
            stats["current"],
            threshold.get("safe_min"),
            threshold.get("safe_max"),
            threshold.get("warning_min"),
            threshold.get("warning_max"),
        )
    return ParameterSummary(
        **stats,
        readings=len(values),
        trend=half_split_trend(values),
        status=status,
    )


def build_insights_prompt(
    tank_type: str,
    days: int,
    reading_count: int,
    parameters: dict[str, ParameterSummary],
    health: str,
) -> str:
    lines = [
        f"{name}: current={p.current}, min={p.min}, max={p.max}, avg={p.avg}, "
        f"trend={p.trend.value if p.trend else 'n/a'}, status={p.status.value if p.status else 'unknown'}"
        for name, p in parameters.items()
        if p.current is not None
    ]
    data = "\n".join(lines)
    return f"""You are an expert aquarium water quality analyst. Analyze water parameter trends and provide personalized insights.

Tank Type: {tank_type}
Analysis Period: Last {days} days
Reading Count: {reading_count}

Parameter Data:
{data}

Overall Health: {health}

Provide:
1. A brief summary (2-3 sentences) of overall tank health
2. Specific insights for each parameter that needs attention (status = warning or danger)
3. Actionable recommendations

Respond in JSON format:
{{
  "summary": "Overall health summary...",
  "insights": {{
    "parameter_name": "Specific insight for this parameter..."
  }}
}}"""


class TrendService:
    """Service for the trend-analysis endpoint."""

    @staticmethod
    def _resolve_thresholds(tank_id: str) -> dict[str, dict[str, Any] | None]:
        """Threshold per reading column: custom row, else database default."""
        try:
            custom = ParameterService.fetch_custom_thresholds(tank_id)
        except SupabaseClientError as e:
            logger.warning(f"Custom thresholds unavailable for {tank_id}: {e.message}")
            custom = {}

        resolved: dict[str, dict[str, Any] | None] = {}
        for column in PARAMETER_COLUMNS:
            threshold_type = threshold_type_for(column)
            if threshold_type in custom:
                resolved[column] = threshold_values(custom[threshold_type], is_custom=True)
            else:
                default = ParameterService.fetch_default_threshold(tank_id, threshold_type)
                resolved[column] = threshold_values(default, is_custom=False) if default else None
        return resolved

    @staticmethod
    def analyze(
        tank_id: UUID | str,
        user_id: UUID | str,
        days: int = 30,
        llm: LLMClient | None = None,
    ) -> dict[str, Any]:
        """
        Run a trend analysis for one tank.

        Raises:
            RateLimitExceededError: If today's allowance is used up
        """
        tank = TankService.get_owned_tank(tank_id, user_id, columns="id, user_id, type")
        tier = TierService.get_user_tier(user_id)
        limit = get_tier_limits(tier).trend_analyses_per_day

        try:
            used = UsageService.get_today_count(user_id, USAGE_FEATURE)
        except SupabaseClientError as e:
            logger.warning(f"Trend usage lookup failed, assuming none: {e.message}")
            used = 0

        if used >= limit:
            raise RateLimitExceededError(
                f"Maximum {limit} trend analyses per day for {tier.value} tier. Please try again tomorrow."
            )

        since = (utc_now() - timedelta(days=days)).isoformat()
        client = SupabaseClient.get_client()
        try:
            readings = (
                client.table("water_parameters")
                .select("*")
                .eq("tank_id", tank["id"])
                .gte("measured_at", since)
                .order("measured_at")
                .execute()
            ).data or []
        except Exception as e:
            logger.error(f"Failed to fetch parameters for trend analysis: {e}")
            raise InternalError("Failed to fetch parameters")

        thresholds = TrendService._resolve_thresholds(tank["id"])
        parameters: dict[str, ParameterSummary] = {}
        for column in PARAMETER_COLUMNS:
            values = [float(row[column]) for row in readings if row.get(column) is not None]
            parameters[column] = summarize_parameter(values, thresholds[column])

        health = overall_health(p.status for p in parameters.values())

        ai_summary = None
        if tier.at_least(Tier.STARTER) and readings:
            ai_summary = TrendService._add_insights(
                tank.get("type") or "freshwater", days, len(readings), parameters, health.value, llm
            )

        UsageService.record_feature_use(user_id, USAGE_FEATURE, used)

        return {
            "tank_id": tank["id"],
            "period_days": days,
            "reading_count": len(readings),
            "parameters": {name: p.model_dump(mode="json") for name, p in parameters.items()},
            "overall_health": health.value,
            "ai_summary": ai_summary,
        }

    @staticmethod
    def _add_insights(
        tank_type: str,
        days: int,
        reading_count: int,
        parameters: dict[str, ParameterSummary],
        health: str,
        llm: LLMClient | None,
    ) -> str | None:
        """Ask the LLM for a summary; attach per-parameter insights in place."""
        llm = llm or LLMClient()
        try:
            raw = llm.complete_json(
                system=build_insights_prompt(tank_type, days, reading_count, parameters, health),
                prompt=f"Analyze the water parameter trends for this {tank_type} tank over the last {days} days.",
                max_tokens=INSIGHTS_MAX_TOKENS,
            )
            insights = TrendInsights.model_validate(raw)
        except (LLMError, ValueError) as e:
            logger.warning(f"Trend insights unavailable: {e}")
            return None

        for name, text in insights.insights.items():
            if name in parameters:
                parameters[name].ai_insight = text
        return insights.summary or None
