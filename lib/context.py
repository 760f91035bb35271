# =============================================================================
# lib/context.py - Tank Context Builder
# =============================================================================
# Builds the system prompt for the chat assistant. It fetches only what the
# assistant needs about one tank:
# - Tank profile (type, volume, dimensions, substrate)
# - Last 5 water parameter readings
# - Active livestock
# - Up to 10 upcoming maintenance tasks
# - Active proactive alerts
# - The user's skill level and unit preferences
#
# The TankContext dataclass holds it; format_for_prompt() renders it as
# compact markdown for the LLM.
#
# Usage:
#   from lib.context import build_tank_context, generate_system_prompt
#   context = build_tank_context(tank_id, user_id)
#   system = generate_system_prompt(context, skill_level="beginner")
# =============================================================================

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from lib.supabase_client import SupabaseClient, SupabaseClientError
from lib.trends import display_name
from lib.utils import normalize_uuid, today_iso

# Set up logging for this module
logger = logging.getLogger(__name__)

PARAMETER_LIMIT = 5
MAINTENANCE_LIMIT = 10

# Columns rendered in "Latest Water Parameters", with units
_PROMPT_PARAMETERS: list[tuple[str, str]] = [
    ("ph", ""),
    ("ammonia_ppm", " ppm"),
    ("nitrite_ppm", " ppm"),
    ("nitrate_ppm", " ppm"),
    ("temperature_f", "°F"),
    ("gh_dgh", " dGH"),
    ("kh_dgh", " dKH"),
    ("salinity", ""),
    ("calcium_ppm", " ppm"),
    ("alkalinity_dkh", " dKH"),
    ("magnesium_ppm", " ppm"),
    ("phosphate_ppm", " ppm"),
]


# =============================================================================
# System Prompt Sections
# =============================================================================

BASE_PROMPT = """You are AquaBot, an expert AI assistant for aquarium hobbyists. You help users manage their aquariums with personalized advice based on their specific tank setup, water parameters, and livestock.

## Core Principles

1. **Personalized Advice**: Reference the user's actual tank data. Don't give generic advice when specific context is available.
2. **Safety First**: When in doubt, recommend the safer course of action. Never suggest actions that could harm livestock.
3. **Skill-Level Appropriate**: Adapt language and depth to the user's skill level.
4. **Concise but Thorough**: Default to 2-3 sentence responses. Expand only when the topic demands it.
5. **Actionable**: Suggest concrete next steps when possible.

## Safety Guardrails

- Never recommend medications without advising a vet for serious conditions
- Always warn about potential livestock compatibility issues
- Include disclaimers for treatments that could affect water chemistry

## Limitations

- You cannot execute actions without user confirmation
- You don't have real-time sensor data; rely on manually logged parameters"""

SKILL_LEVEL_PROMPTS: dict[str, str] = {
    "beginner": """## Skill Level: Beginner

The user is new to the hobby. Use simple, non-technical language, explain terms when first used, break processes into steps, warn about common beginner mistakes, and reference safe ranges rather than optimal values.""",
    "intermediate": """## Skill Level: Intermediate

The user has some experience. Use standard aquarium terminology, discuss water chemistry basics (nitrogen cycle, pH buffering), and reference both safe and optimal ranges.""",
    "advanced": """## Skill Level: Advanced

The user is an experienced aquarist. Use technical terminology and scientific names, discuss trace elements, breeding triggers and nuanced trade-offs, and assume familiarity with common procedures.""",
}

ACTION_INSTRUCTIONS = """## Available Actions

When the user asks you to record or schedule something for the selected tank, propose ONE action in a fenced block and wait for the user to confirm it in the app:

```action
{"type": "<action type>", "payload": {...}}
```

Action types and payloads:
- log_parameters: {"ph": 7.2, "ammonia": 0, "nitrite": 0, "nitrate": 20, "temperature": 78, "notes": "..."}
- add_livestock: {"species_name": "Neon Tetra", "quantity": 6, "nickname": "..."}
- schedule_maintenance: {"task_type": "water_change", "title": "...", "frequency": "weekly", "due_date": "next saturday"}
- complete_maintenance: {"task_id": "<id from Upcoming Maintenance>", "notes": "..."}

Always run through compatibility before proposing add_livestock, and describe the action in plain words above the block."""


# =============================================================================
# Data Classes
# =============================================================================

@dataclass
class TankContext:
    """
    Everything the assistant knows about one tank.

    Lists are already trimmed and ordered for the prompt:
    parameters newest first, maintenance soonest first.
    """
    tank: dict[str, Any]
    parameters: list[dict[str, Any]] = field(default_factory=list)
    livestock: list[dict[str, Any]] = field(default_factory=list)
    maintenance: list[dict[str, Any]] = field(default_factory=list)
    alerts: list[dict[str, Any]] = field(default_factory=list)
    skill_level: str = "beginner"
    unit_preference_volume: str = "gallons"
    unit_preference_temp: str = "fahrenheit"

    # -------------------------------------------------------------------------
    # Formatting
    # -------------------------------------------------------------------------

    def format_for_prompt(self) -> str:
        sections = [self._format_tank()]

        if self.parameters:
            sections.append(self._format_parameters())
        if self.livestock:
            sections.append(self._format_livestock())
        if self.maintenance:
            sections.append(self._format_maintenance())
        if self.alerts:
            sections.append(self._format_alerts())

        sections.append(
            "## User Profile\n"
            f"- Skill Level: {self.skill_level}\n"
            f"- Units: {self.unit_preference_volume}, {self.unit_preference_temp}"
        )
        return "\n\n".join(sections)

    def _format_tank(self) -> str:
        tank = self.tank
        lines = [
            f"## Tank: {tank.get('name')}",
            f"- Type: {tank.get('type')}",
            f"- Volume: {tank.get('volume_gallons')} gallons",
        ]
        dims = [tank.get("length_inches"), tank.get("width_inches"), tank.get("height_inches")]
        if all(dims):
            lines.append(f'- Dimensions: {dims[0]}" x {dims[1]}" x {dims[2]}"')
        if tank.get("substrate"):
            lines.append(f"- Substrate: {tank['substrate']}")
        if tank.get("setup_date"):
            lines.append(f"- Setup Date: {tank['setup_date']}")
        return "\n".join(lines)

    def _format_parameters(self) -> str:
        lines = ["## Latest Water Parameters"]
        for reading in self.parameters:
            values = [
                f"{display_name(column)}: {reading[column]}{unit}"
                for column, unit in _PROMPT_PARAMETERS
                if reading.get(column) is not None
            ]
            if values:
                lines.append(f"- {reading.get('measured_at')}: {', '.join(values)}")
        return "\n".join(lines)

    def _format_livestock(self) -> str:
        lines = ["## Livestock"]
        for item in self.livestock:
            species = item.get("species") or {}
            name = item.get("custom_name") or item.get("nickname") or species.get("common_name") or "Unknown"
            suffix = f" ({species['common_name']})" if species.get("common_name") and species.get("common_name") != name else ""
            lines.append(f"- {item.get('quantity', 1)}x {name}{suffix}")
        return "\n".join(lines)

    def _format_maintenance(self) -> str:
        lines = ["## Upcoming Maintenance"]
        for task in self.maintenance:
            if task.get("next_due_date"):
                lines.append(f"- {task.get('title')} (id: {task.get('id')}): due {task['next_due_date']}")
        return "\n".join(lines)

    def _format_alerts(self) -> str:
        lines = ["## Active Alerts"]
        for alert in self.alerts:
            lines.append(
                f"- [{alert.get('severity')}] {alert.get('parameter')}: {alert.get('projection_text')}"
            )
        return "\n".join(lines)


# =============================================================================
# Context Building Functions
# =============================================================================

def _rows(response: Any) -> list[dict[str, Any]]:
    return list(getattr(response, "data", None) or [])


def build_tank_context(tank_id: str, user_id: str) -> TankContext | None:
    """
    Fetch everything the assistant needs about one owned tank.

    Returns:
        TankContext, or None if the tank is missing or not owned by user_id

    Raises:
        SupabaseClientError: If a query fails
    """
    tank_id = normalize_uuid(tank_id)
    user_id = normalize_uuid(user_id)
    logger.info(f"Building tank context for {tank_id}")

    tank = SupabaseClient.fetch_tank(tank_id)
    if not tank or str(tank.get("user_id")) != user_id:
        return None

    client = SupabaseClient.get_client()
    try:
        parameters = _rows(
            client.table("water_parameters")
            .select("*")
            .eq("tank_id", tank_id)
            .order("measured_at", desc=True)
            .limit(PARAMETER_LIMIT)
            .execute()
        )
        livestock = _rows(
            client.table("livestock")
            .select("id, custom_name, nickname, quantity, date_added, species:species_id (common_name, scientific_name)")
            .eq("tank_id", tank_id)
            .eq("is_active", True)
            .is_("deleted_at", "null")
            .execute()
        )
        maintenance = _rows(
            client.table("maintenance_tasks")
            .select("id, type, title, next_due_date")
            .eq("tank_id", tank_id)
            .eq("is_active", True)
            .is_("deleted_at", "null")
            .order("next_due_date")
            .limit(MAINTENANCE_LIMIT)
            .execute()
        )
        alerts = _rows(
            client.table("proactive_alerts")
            .select("parameter, severity, projection_text, suggested_action")
            .eq("tank_id", tank_id)
            .eq("status", "active")
            .execute()
        )
    except Exception as e:
        raise SupabaseClientError(
            message=f"Failed to build tank context: {e}",
            code="CONTEXT_FETCH_FAILED",
            details={"tank_id": tank_id},
        )

    profile = SupabaseClient.fetch_user_profile(user_id) or {}

    return TankContext(
        tank=tank,
        parameters=parameters,
        livestock=livestock,
        maintenance=maintenance,
        alerts=alerts,
        skill_level=profile.get("skill_level") or "beginner",
        unit_preference_volume=profile.get("unit_preference_volume") or "gallons",
        unit_preference_temp=profile.get("unit_preference_temp") or "fahrenheit",
    )


def generate_system_prompt(
    context: TankContext | None,
    skill_level: str | None = None,
) -> str:
    """
    Assemble persona + skill level + tank context + action instructions.

    Without a tank, the assistant is told to ask the user to select one
    for tank-specific questions.
    """
    level = skill_level or (context.skill_level if context else "beginner")
    parts = [BASE_PROMPT, SKILL_LEVEL_PROMPTS.get(level, SKILL_LEVEL_PROMPTS["beginner"])]

    if context:
        parts.append("# Current Tank Context\n\n" + context.format_for_prompt())
        parts.append(ACTION_INSTRUCTIONS)
    else:
        parts.append(
            "# Tank Context\n\nNo tank selected. Answer general questions, and ask the user "
            "to select a tank for tank-specific advice or actions."
        )

    parts.append(f"## Current Date: {today_iso()}")
    return "\n\n".join(parts)
