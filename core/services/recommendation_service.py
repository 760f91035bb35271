# =============================================================================
# core/services/recommendation_service.py - Maintenance Recommendations
# =============================================================================
# Suggests maintenance tasks the tank doesn't have yet.
#
#   - free tier: template rules (water change sized by volume, filter,
#     testing, feeding when stocked, dosing for saltwater)
#   - starter+: an LLM answer, counted against the
#     "maintenance_recommendations" AI allowance
#
# Any failure on the AI path (usage RPC, context, model, parsing) falls
# back to the templates instead of failing the request.
# =============================================================================

import logging
from typing import Any
from uuid import UUID

from core.models.maintenance import MaintenanceRecommendation, RecommendationPriority, TaskFrequency, TaskType
from core.services.tank_service import TankService
from core.services.tier_service import FEATURE_TIERS, TierService
from core.services.usage_service import UsageService
from lib.context import TankContext, build_tank_context
from lib.llm import LLMClient, LLMError, extract_json_array
from lib.supabase_client import SupabaseClient, SupabaseClientError
from lib.utils import normalize_uuid

logger = logging.getLogger(__name__)

USAGE_FEATURE = "maintenance_recommendations"
RECOMMENDATIONS_MAX_TOKENS = 2000


def water_change_percent(volume_gallons: float) -> int:
    """Smaller tanks swing faster, so they get a bigger weekly change."""
    if volume_gallons <= 20:
        return 25
    if volume_gallons <= 50:
        return 20
    return 15


def template_recommendations(
    tank: dict[str, Any],
    livestock_count: int,
    existing_types: set[str],
) -> list[MaintenanceRecommendation]:
    """Rule-based suggestions, skipping task types the tank already has."""
    volume = tank.get("volume_gallons") or 0
    tank_type = tank.get("type") or "freshwater"
    recommendations = []

    if TaskType.WATER_CHANGE.value not in existing_types:
        percent = water_change_percent(volume)
        recommendations.append(MaintenanceRecommendation(
            type=TaskType.WATER_CHANGE,
            title=f"Weekly {percent}% Water Change",
            description=f"For a {volume}-gallon {tank_type} tank, perform a {percent}% water change weekly to maintain water quality.",
            suggested_frequency=TaskFrequency.WEEKLY,
            priority=RecommendationPriority.HIGH,
        ))

    if TaskType.FILTER_CLEANING.value not in existing_types:
        recommendations.append(MaintenanceRecommendation(
            type=TaskType.FILTER_CLEANING,
            title="Biweekly Filter Cleaning",
            description="Clean your filter media every 2 weeks to maintain optimal filtration efficiency.",
            suggested_frequency=TaskFrequency.BIWEEKLY,
            priority=RecommendationPriority.MEDIUM,
        ))

    if TaskType.WATER_TESTING.value not in existing_types:
        recommendations.append(MaintenanceRecommendation(
            type=TaskType.WATER_TESTING,
            title="Weekly Water Parameter Testing",
            description="Test key parameters (pH, ammonia, nitrite, nitrate) weekly to catch issues early.",
            suggested_frequency=TaskFrequency.WEEKLY,
            priority=RecommendationPriority.HIGH,
        ))

    if livestock_count > 0 and TaskType.FEEDING.value not in existing_types:
        recommendations.append(MaintenanceRecommendation(
            type=TaskType.FEEDING,
            title="Daily Feeding",
            description=f"Feed your {livestock_count} livestock once or twice daily with appropriate amounts.",
            suggested_frequency=TaskFrequency.DAILY,
            priority=RecommendationPriority.HIGH,
        ))

    if tank_type == "saltwater" and TaskType.DOSING.value not in existing_types:
        recommendations.append(MaintenanceRecommendation(
            type=TaskType.DOSING,
            title="Weekly Reef Supplement Dosing",
            description="For saltwater tanks, consider dosing calcium, alkalinity, and magnesium weekly to maintain reef health.",
            suggested_frequency=TaskFrequency.WEEKLY,
            priority=RecommendationPriority.MEDIUM,
        ))

    return recommendations


def build_recommendations_prompt(context: TankContext, existing_titles: list[str]) -> str:
    task_types = ", ".join(f'"{t.value}"' for t in TaskType)
    frequencies = ", ".join(f'"{f.value}"' for f in TaskFrequency if f != TaskFrequency.ONCE)
    return f"""You are an expert aquarium maintenance advisor. Recommend maintenance tasks for this tank.

{context.format_for_prompt()}

Existing tasks: {", ".join(existing_titles) or "None"}

Respond with ONLY a JSON array. Each item:
{{
  "type": one of {task_types},
  "title": "Short actionable title, e.g. Weekly 25% Water Change",
  "description": "One or two sentences on why",
  "suggested_frequency": one of {frequencies},
  "priority": "high" | "medium" | "low"
}}

Focus on tasks NOT already scheduled, the needs of this tank's type, size and livestock,
and any parameter trends visible above."""


class RecommendationService:
    """Service for the maintenance recommendations endpoint."""

    @staticmethod
    def _tank_state(tank_id: str) -> tuple[list[dict[str, Any]], int]:
        """Active tasks and the total livestock head count."""
        client = SupabaseClient.get_client()
        try:
            tasks = (
                client.table("maintenance_tasks")
                .select("type, title, frequency, next_due_date")
                .eq("tank_id", tank_id)
                .eq("is_active", True)
                .is_("deleted_at", "null")
                .execute()
            ).data or []
            livestock = (
                client.table("livestock")
                .select("quantity")
                .eq("tank_id", tank_id)
                .eq("is_active", True)
                .is_("deleted_at", "null")
                .execute()
            ).data or []
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to fetch tank state: {e}",
                code="FETCH_TANK_STATE_FAILED",
                details={"tank_id": tank_id},
            )
        return tasks, sum(int(item.get("quantity") or 0) for item in livestock)

    @staticmethod
    def recommend(
        user_id: UUID | str,
        tank_id: UUID | str,
        llm: LLMClient | None = None,
    ) -> dict[str, Any]:
        """
        Suggested tasks for one owned tank.

        Returns:
            {"recommendations": [...], "ai_powered": bool} plus
            "limit_reached": true when the AI allowance is used up
        """
        user_id = normalize_uuid(user_id)
        tank = TankService.get_owned_tank(tank_id, user_id, columns="id, user_id, name, type, volume_gallons")
        tasks, livestock_count = RecommendationService._tank_state(tank["id"])

        existing_types = {task.get("type") for task in tasks}
        templates = template_recommendations(tank, livestock_count, existing_types)

        def from_templates(**extra: Any) -> dict[str, Any]:
            return {
                "recommendations": [r.model_dump(mode="json") for r in templates],
                "ai_powered": False,
                **extra,
            }

        tier = TierService.get_user_tier(user_id)
        if not tier.at_least(FEATURE_TIERS["ai_maintenance_recommendations"]):
            return from_templates()

        try:
            allowed = UsageService.check_and_increment(user_id, USAGE_FEATURE)
        except SupabaseClientError as e:
            logger.error(f"AI usage check failed, using template recommendations: {e.message}")
            return from_templates()
        if not allowed:
            return from_templates(limit_reached=True)

        try:
            context = build_tank_context(tank["id"], user_id)
        except SupabaseClientError as e:
            logger.error(f"Tank context unavailable for recommendations: {e.message}")
            context = None
        if context is None:
            return from_templates()

        llm = llm or LLMClient()
        try:
            answer = llm.complete(
                system=build_recommendations_prompt(context, [t.get("title") or "" for t in tasks]),
                messages=[{
                    "role": "user",
                    "content": f"Provide maintenance recommendations for this {tank.get('type')} tank.",
                }],
                max_tokens=RECOMMENDATIONS_MAX_TOKENS,
            )
            items = extract_json_array(answer.text)
        except LLMError as e:
            logger.error(f"AI maintenance recommendations failed, using templates: {e}")
            return from_templates()

        UsageService.record_tokens(user_id, answer.input_tokens, answer.output_tokens)
        recommendations = [
            MaintenanceRecommendation.model_validate(item).model_dump(mode="json")
            for item in items
            if isinstance(item, dict)
        ]
        return {"recommendations": recommendations, "ai_powered": True}
