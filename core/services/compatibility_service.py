# =============================================================================
# core/services/compatibility_service.py - Species Compatibility
# =============================================================================
# "Can I add species X to this tank?"
#
# Two layers:
#   1. basic_compatibility_check(): rule-based, every tier
#      - water type mismatch (freshwater vs saltwater)  -> danger / incompatible
#      - tank smaller than species minimum              -> warning / caution
#      - aggressive species joining peaceful fish       -> warning / caution
#      - temperature range overlapping no resident      -> warning / caution
#   2. AI assessment (starter+): Claude Haiku scores 1-5, results cached
#      per species pair for 30 days in compatibility_checks
#
# The basic check is also used to attach warnings when livestock is added.
# =============================================================================

import logging
from datetime import timedelta
from typing import Any
from uuid import UUID

from app.config import settings
from core.models.compatibility import (
    AICompatibilityAssessment,
    CompatibilityConcern,
    CompatibilityLevel,
    CompatibilityResult,
    ConcernSeverity,
)
from core.models.tier import Tier
from core.services.species_service import SpeciesService
from core.services.tank_service import TankService
from core.services.tier_service import TierService
from core.services.usage_service import UsageService
from lib.llm import LLMClient, LLMError
from lib.supabase_client import SupabaseClient, SupabaseClientError, first_row
from lib.utils import normalize_uuid, utc_now

logger = logging.getLogger(__name__)

CACHE_DAYS = 30
COMPATIBILITY_MAX_TOKENS = 1000

RECOMMENDATIONS: dict[CompatibilityLevel, str] = {
    CompatibilityLevel.INCOMPATIBLE: "Not recommended. Please reconsider adding this species.",
    CompatibilityLevel.CAUTION: "Proceed with caution. Monitor closely and ensure adequate hiding places.",
    CompatibilityLevel.COMPATIBLE: "This species appears compatible with your tank setup.",
}

# Score reported when the AI call fails and the basic result is used instead
FALLBACK_SCORES: dict[CompatibilityLevel, int] = {
    CompatibilityLevel.INCOMPATIBLE: 1,
    CompatibilityLevel.CAUTION: 3,
    CompatibilityLevel.COMPATIBLE: 4,
}

LIVESTOCK_SPECIES_COLUMNS = (
    "id, quantity, species_id, species:species_id (id, common_name, scientific_name, "
    "type, temperament, temp_min_f, temp_max_f, ph_min, ph_max, min_tank_size_gallons)"
)


# =============================================================================
# Rule-Based Check
# =============================================================================

def is_water_type_mismatch(tank_type: str | None, species_type: str | None) -> bool:
    """Freshwater species in a saltwater tank or the reverse."""
    return (tank_type == "freshwater" and species_type == "saltwater") or (
        tank_type == "saltwater" and species_type == "freshwater"
    )


def has_peaceful_resident(existing: list[dict[str, Any]]) -> bool:
    return any((item.get("species") or {}).get("temperament") == "peaceful" for item in existing)


def _ranges_overlap(a_min: float, a_max: float, b_min: float, b_max: float) -> bool:
    return not (a_max < b_min or a_min > b_max)


def level_from_score(score: int) -> CompatibilityLevel:
    if score <= 2:
        return CompatibilityLevel.INCOMPATIBLE
    if score == 3:
        return CompatibilityLevel.CAUTION
    return CompatibilityLevel.COMPATIBLE


def basic_compatibility_check(
    tank: dict[str, Any],
    species: dict[str, Any],
    existing: list[dict[str, Any]],
) -> CompatibilityResult:
    """
    Rule-based compatibility result.

    Args:
        tank: tanks row (type, volume_gallons)
        species: species row being added
        existing: active livestock rows with a joined "species" dict
    """
    concerns: list[CompatibilityConcern] = []
    level = CompatibilityLevel.COMPATIBLE

    def caution() -> None:
        nonlocal level
        if level == CompatibilityLevel.COMPATIBLE:
            level = CompatibilityLevel.CAUTION

    if is_water_type_mismatch(tank.get("type"), species.get("type")):
        concerns.append(CompatibilityConcern(
            severity=ConcernSeverity.DANGER,
            message=f"{species.get('type')} species cannot live in a {tank.get('type')} tank.",
        ))
        level = CompatibilityLevel.INCOMPATIBLE

    min_size = species.get("min_tank_size_gallons")
    volume = tank.get("volume_gallons")
    if min_size and volume is not None and volume < min_size:
        concerns.append(CompatibilityConcern(
            severity=ConcernSeverity.WARNING,
            message=f"This species requires at least {min_size} gallons, but your tank is {volume} gallons.",
        ))
        caution()

    if species.get("temperament") == "aggressive" and has_peaceful_resident(existing):
        concerns.append(CompatibilityConcern(
            severity=ConcernSeverity.WARNING,
            message="This aggressive species may harm peaceful fish already in your tank.",
        ))
        caution()

    t_min, t_max = species.get("temp_min_f"), species.get("temp_max_f")
    if t_min is not None and t_max is not None:
        conflicting = [
            (item.get("species") or {}).get("common_name") or "an existing species"
            for item in existing
            if (item.get("species") or {}).get("temp_min_f") is not None
            and (item.get("species") or {}).get("temp_max_f") is not None
            and not _ranges_overlap(
                t_min, t_max,
                item["species"]["temp_min_f"], item["species"]["temp_max_f"],
            )
        ]
        if conflicting:
            concerns.append(CompatibilityConcern(
                severity=ConcernSeverity.WARNING,
                message=f"Temperature range does not overlap with {', '.join(conflicting)}.",
            ))
            caution()

    return CompatibilityResult(
        compatible=level,
        summary=RECOMMENDATIONS[level],
        concerns=concerns,
        recommendations=[RECOMMENDATIONS[level]],
        ai_assessment=False,
    )


def _species_line(item: dict[str, Any]) -> str:
    s = item.get("species") or {}
    return (
        f"- {s.get('common_name') or 'Unknown'} ({item.get('quantity', 1)}x, "
        f"{s.get('temperament') or 'unknown'} temperament, "
        f"temp: {s.get('temp_min_f') or '?'}-{s.get('temp_max_f') or '?'}°F)"
    )


def build_compatibility_prompt(
    tank: dict[str, Any],
    species: dict[str, Any],
    existing: list[dict[str, Any]],
) -> str:
    residents = "\n".join(_species_line(item) for item in existing if item.get("species")) or "None"
    return f"""You are an expert aquarium compatibility advisor. Analyze whether a new species is compatible with an existing tank setup.

Tank Details:
- Type: {tank.get('type')}
- Volume: {tank.get('volume_gallons')} gallons

Existing Livestock:
{residents}

New Species to Add:
- Name: {species.get('common_name') or species.get('scientific_name') or 'Unknown'}
- Type: {species.get('type')}
- Temperament: {species.get('temperament') or 'unknown'}
- Temperature Range: {species.get('temp_min_f') or '?'}-{species.get('temp_max_f') or '?'}°F
- pH Range: {species.get('ph_min') or '?'}-{species.get('ph_max') or '?'}
- Min Tank Size: {species.get('min_tank_size_gallons') or '?'} gallons
- Diet: {species.get('diet') or 'unknown'}
- Max Size: {species.get('max_adult_size_inches') or '?'} inches

Respond with ONLY a JSON object:
{{
  "score": 1-5,
  "summary": "One or two sentence verdict",
  "concerns": ["Specific concern", ...],
  "recommendations": ["Concrete recommendation", ...]
}}
Score: 1=incompatible, 2=poor, 3=moderate, 4=good, 5=excellent."""


class CompatibilityService:
    """Service for the compatibility endpoint."""

    @staticmethod
    def get_active_livestock_with_species(tank_id: str) -> list[dict[str, Any]]:
        client = SupabaseClient.get_client()
        try:
            response = (
                client.table("livestock")
                .select(LIVESTOCK_SPECIES_COLUMNS)
                .eq("tank_id", tank_id)
                .eq("is_active", True)
                .is_("deleted_at", "null")
                .execute()
            )
            return response.data or []
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to fetch livestock: {e}",
                code="FETCH_LIVESTOCK_FAILED",
                details={"tank_id": tank_id},
            )

    @staticmethod
    def check(
        user_id: UUID | str,
        tank_id: UUID | str,
        species_id: UUID | str,
        llm: LLMClient | None = None,
    ) -> CompatibilityResult:
        """
        Full compatibility check for the endpoint.

        Free tier gets the rule-based result. Paid tiers get a cached or
        fresh AI assessment, falling back to the rules when the daily AI
        allowance is used up or the model fails.
        """
        user_id = normalize_uuid(user_id)
        tank = TankService.get_owned_tank(tank_id, user_id)
        species = SpeciesService.get_species(species_id)
        existing = CompatibilityService.get_active_livestock_with_species(tank["id"])

        basic = basic_compatibility_check(tank, species, existing)

        tier = TierService.get_user_tier(user_id)
        if not tier.at_least(Tier.STARTER):
            return basic

        species_id_str = normalize_uuid(species_id)
        resident_ids = [item["species_id"] for item in existing if item.get("species_id")]

        cached = CompatibilityService._fetch_cached(tank["id"], species_id_str, resident_ids)
        if cached:
            return cached

        try:
            allowed = UsageService.check_and_increment(user_id, "compatibility")
        except SupabaseClientError as e:
            logger.error(f"AI usage check failed, using basic compatibility: {e}")
            return basic

        if not allowed:
            return basic.model_copy(update={"limit_reached": True})

        llm = llm or LLMClient(model=settings.ANTHROPIC_MODEL_HAIKU)
        species_name = species.get("common_name") or species.get("scientific_name")
        try:
            raw = llm.complete_json(
                system=build_compatibility_prompt(tank, species, existing),
                prompt=f"Analyze compatibility for adding {species_name} to this {tank.get('type')} tank.",
                max_tokens=COMPATIBILITY_MAX_TOKENS,
            )
            assessment = AICompatibilityAssessment.model_validate(raw)
        except (LLMError, ValueError) as e:
            logger.error(f"AI compatibility check failed, using basic result: {e}")
            return basic.model_copy(update={"score": FALLBACK_SCORES[basic.compatible]})

        level = level_from_score(assessment.score)
        result = CompatibilityResult(
            compatible=level,
            score=assessment.score,
            summary=assessment.summary or RECOMMENDATIONS[level],
            concerns=[
                CompatibilityConcern(
                    severity=ConcernSeverity.DANGER if level == CompatibilityLevel.INCOMPATIBLE else ConcernSeverity.WARNING,
                    message=text,
                )
                for text in assessment.concerns
            ],
            recommendations=assessment.recommendations or [RECOMMENDATIONS[level]],
            ai_assessment=True,
        )

        CompatibilityService._store(tank["id"], species_id_str, resident_ids, result, llm.model)
        return result

    @staticmethod
    def _fetch_cached(
        tank_id: str,
        species_id: str,
        resident_ids: list[str],
    ) -> CompatibilityResult | None:
        """Unexpired check against the first resident species, if any."""
        if not resident_ids:
            return None

        client = SupabaseClient.get_client()
        try:
            response = (
                client.table("compatibility_checks")
                .select("*")
                .eq("tank_id", tank_id)
                .eq("species_a_id", species_id)
                .eq("species_b_id", resident_ids[0])
                .gt("expires_at", utc_now().isoformat())
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.warning(f"Compatibility cache lookup failed: {e}")
            return None

        row = first_row(response)
        if not row:
            return None

        level = level_from_score(int(row.get("compatibility_score") or 3))
        return CompatibilityResult(
            compatible=level,
            score=row.get("compatibility_score"),
            summary=row.get("notes") or RECOMMENDATIONS[level],
            concerns=[CompatibilityConcern.model_validate(c) for c in (row.get("warnings") or [])],
            recommendations=[row["notes"]] if row.get("notes") else [],
            ai_assessment=True,
            cached=True,
        )

    @staticmethod
    def _store(
        tank_id: str,
        species_id: str,
        resident_ids: list[str],
        result: CompatibilityResult,
        model: str,
    ) -> None:
        """Upsert one row per (new species, resident species) pair."""
        if not resident_ids:
            return

        expires_at = (utc_now() + timedelta(days=CACHE_DAYS)).isoformat()
        warnings = [c.model_dump(mode="json") for c in result.concerns]
        rows = [
            {
                "tank_id": tank_id,
                "species_a_id": species_id,
                "species_b_id": resident_id,
                "compatibility_score": result.score,
                "warnings": warnings,
                "notes": result.summary,
                "ai_model": model,
                "expires_at": expires_at,
            }
            for resident_id in dict.fromkeys(resident_ids)
        ]

        client = SupabaseClient.get_client()
        try:
            client.table("compatibility_checks").upsert(
                rows,
                on_conflict="tank_id,species_a_id,species_b_id",
            ).execute()
        except Exception as e:
            logger.warning(f"Failed to cache compatibility result: {e}")
