# =============================================================================
# core/services/alert_service.py - Proactive Alerts
# =============================================================================
# Two halves:
#
# 1. Read / update (GET and POST /ai/alerts)
#    Alerts belong to a user; a tank filter is ownership-checked.
#
# 2. Generation (daily Celery job, workers/tasks.py)
#    For each plus/pro tank:
#      last 14 days of readings
#        -> lib.trends.analyze_series() per parameter
#        -> candidates (crossing soon, confident drift, spike)
#        -> recent events (livestock added, maintenance done)
#        -> LLM -> GeneratedAlertBatch
#        -> older active alerts for the same parameters dismissed
#        -> new rows inserted with status "active"
# =============================================================================

import json
import logging
from datetime import timedelta
from typing import Any
from uuid import UUID

from pydantic import ValidationError

from app.exceptions import ConflictError, InternalError, NotFoundError, PermissionDeniedError
from core.models.alerts import AlertAction, AlertSeverity, AlertStatus, AlertUpdateRequest, GeneratedAlertBatch
from core.models.tier import Tier
from core.services.tank_service import TankService
from core.services.tier_service import FEATURE_TIERS, TierService
from lib.llm import LLMClient, LLMError
from lib.supabase_client import SupabaseClient, first_row
from lib.trends import ParameterTrend, analyze_series, parameters_for_tank_type
from lib.utils import normalize_uuid, utc_now

logger = logging.getLogger(__name__)

LOOKBACK_DAYS = 14
MIN_READINGS = 3
MAX_EVENTS = 10
ALERTS_MAX_TOKENS = 1000
DEFAULT_LIMIT = 50
MAX_LIMIT = 200

ALERT_SYSTEM_PROMPT = """You are an expert aquarium water quality analyst. Analyze the provided water parameter trends and generate proactive alerts for concerning patterns.

Your task:
1. Identify concerning trends (gradual drift, accelerating changes, approaching danger zones)
2. Correlate trends with recent events (livestock additions often cause ammonia spikes)
3. Generate clear, actionable alerts

Guidelines:
- Only generate alerts for genuinely concerning patterns, not normal fluctuations
- Use "info" severity for minor trends worth monitoring
- Use "warning" severity for trends approaching safe limits
- Use "alert" severity for urgent issues or approaching danger zones
- Be specific about projected timelines ("will reach danger zone in X days")
- Suggest practical remediation steps

Response format (JSON only, no explanation text):
{
  "alerts": [
    {
      "parameter": "pH",
      "severity": "warning",
      "trend_direction": "decreasing",
      "current_value": 6.8,
      "unit": "",
      "trend_rate": -0.03,
      "projection_text": "pH has dropped 0.3 over 2 weeks. At this rate, it will reach the danger zone in 10 days.",
      "likely_cause": "This trend started after you added 3 new fish on Feb 1, which increases biological load.",
      "suggested_action": "Test KH levels and consider adding a pH buffer. A 20% water change would help stabilize pH."
    }
  ]
}

If no alerts are warranted, return: { "alerts": [] }"""


def severity_counts(alerts: list[dict[str, Any]]) -> dict[str, int]:
    """Active alerts per severity."""
    counts = {severity.value: 0 for severity in AlertSeverity}
    for alert in alerts:
        if alert.get("status") == AlertStatus.ACTIVE.value and alert.get("severity") in counts:
            counts[alert["severity"]] += 1
    return counts


def detect_trends(tank_type: str | None, readings: list[dict[str, Any]]) -> list[ParameterTrend]:
    """Alert candidates among the parameters tracked for this tank type."""
    candidates = []
    for parameter in parameters_for_tank_type(tank_type):
        points = [
            (row["measured_at"], float(row[parameter]))
            for row in readings
            if row.get(parameter) is not None
        ]
        trend = analyze_series(parameter, points)
        if trend and trend.is_alert_candidate:
            candidates.append(trend)
    return candidates


def build_alert_prompt(
    tank: dict[str, Any],
    trends: list[ParameterTrend],
    events: list[dict[str, Any]],
    livestock_count: int,
) -> str:
    return json.dumps({
        "tank": {
            "name": tank.get("name"),
            "type": tank.get("type"),
            "volume_gallons": tank.get("volume_gallons"),
            "livestock_count": livestock_count,
        },
        "parameter_trends": [trend.to_prompt_dict() for trend in trends],
        "recent_events": events[:MAX_EVENTS],
        "analysis_date": utc_now().date().isoformat(),
    })


class AlertService:
    """Reads, updates and generates proactive alerts."""

    # -------------------------------------------------------------------------
    # API
    # -------------------------------------------------------------------------

    @staticmethod
    def list_alerts(
        user_id: UUID | str,
        tank_id: UUID | str | None = None,
        status: str = AlertStatus.ACTIVE.value,
        limit: int = DEFAULT_LIMIT,
    ) -> dict[str, Any]:
        """
        The user's alerts, newest first.

        Args:
            status: active, dismissed, resolved or "all"
        """
        user_id = normalize_uuid(user_id)
        client = SupabaseClient.get_client()
        query = (
            client.table("proactive_alerts")
            .select("*, tank:tanks(id, name)")
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .limit(max(1, min(limit, MAX_LIMIT)))
        )
        if tank_id:
            tank = TankService.get_owned_tank(tank_id, user_id, columns="id, user_id")
            query = query.eq("tank_id", tank["id"])
        if status != "all":
            query = query.eq("status", status)

        try:
            alerts = query.execute().data or []
        except Exception as e:
            logger.error(f"Failed to fetch alerts for user {user_id}: {e}")
            raise InternalError("Failed to fetch alerts")

        counts = severity_counts(alerts)
        return {
            "alerts": alerts,
            "count": len(alerts),
            "active_count": sum(counts.values()),
            "severity_counts": counts,
        }

    @staticmethod
    def update_alert(user_id: UUID | str, request: AlertUpdateRequest) -> dict[str, Any]:
        """
        Dismiss or resolve an active alert.

        Raises:
            NotFoundError: Unknown alert
            PermissionDeniedError: Another user's alert
            ConflictError: Alert is no longer active
        """
        user_id = normalize_uuid(user_id)
        alert_id = normalize_uuid(request.alert_id)
        client = SupabaseClient.get_client()

        try:
            alert = first_row(
                client.table("proactive_alerts")
                .select("id, user_id, status")
                .eq("id", alert_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to fetch alert {alert_id}: {e}")
            raise InternalError("Failed to fetch alert")

        if not alert:
            raise NotFoundError("Alert", alert_id)
        if str(alert.get("user_id")) != user_id:
            raise PermissionDeniedError("You do not have access to this alert")
        if alert.get("status") != AlertStatus.ACTIVE.value:
            raise ConflictError(f"Alert is already {alert.get('status')}")

        now = utc_now().isoformat()
        if request.action == AlertAction.DISMISS:
            data: dict[str, Any] = {"status": AlertStatus.DISMISSED.value, "dismissed_at": now}
        else:
            data = {"status": AlertStatus.RESOLVED.value, "resolved_at": now}
            if request.resolved_by_action_id:
                data["resolved_by_action_id"] = normalize_uuid(request.resolved_by_action_id)

        try:
            updated = first_row(
                client.table("proactive_alerts").update(data).eq("id", alert_id).execute()
            )
        except Exception as e:
            logger.error(f"Failed to {request.action.value} alert {alert_id}: {e}")
            raise InternalError("Failed to update alert")

        logger.info(f"Alert {alert_id} {data['status']} by user {user_id}")
        return updated or {**alert, **data}

    # -------------------------------------------------------------------------
    # Generation
    # -------------------------------------------------------------------------

    @staticmethod
    def fetch_recent_events(tank_id: str, days: int = LOOKBACK_DAYS) -> list[dict[str, Any]]:
        """Livestock additions and maintenance completions, newest first."""
        cutoff = utc_now() - timedelta(days=days)
        client = SupabaseClient.get_client()
        events: list[dict[str, Any]] = []

        try:
            livestock = (
                client.table("livestock")
                .select("custom_name, quantity, date_added, species:species_id(common_name)")
                .eq("tank_id", tank_id)
                .gte("date_added", cutoff.date().isoformat())
                .order("date_added", desc=True)
                .execute()
            ).data or []
            for item in livestock:
                name = (item.get("species") or {}).get("common_name") or item.get("custom_name") or "Unknown species"
                events.append({
                    "type": "livestock_added",
                    "description": f"Added {item.get('quantity')}x {name}",
                    "date": item.get("date_added"),
                })

            logs = (
                client.table("maintenance_logs")
                .select("completed_at, task:maintenance_tasks!inner(title, type, tank_id)")
                .eq("task.tank_id", tank_id)
                .gte("completed_at", cutoff.isoformat())
                .order("completed_at", desc=True)
                .limit(20)
                .execute()
            ).data or []
            for log in logs:
                task = log.get("task") or {}
                title = task.get("title") or task.get("type") or "Maintenance task"
                events.append({
                    "type": "maintenance_completed",
                    "description": f"Completed: {title}",
                    "date": log.get("completed_at"),
                })
        except Exception as e:
            logger.warning(f"Recent events unavailable for tank {tank_id}: {e}")

        return events

    @staticmethod
    def count_livestock(tank_id: str) -> int:
        client = SupabaseClient.get_client()
        try:
            response = (
                client.table("livestock")
                .select("id", count="exact")
                .eq("tank_id", tank_id)
                .eq("is_active", True)
                .is_("deleted_at", "null")
                .execute()
            )
        except Exception as e:
            logger.warning(f"Livestock count unavailable for tank {tank_id}: {e}")
            return 0
        if response.count is not None:
            return response.count
        return len(response.data or [])

    @staticmethod
    def analyze_tank(tank: dict[str, Any], llm: LLMClient | None = None) -> dict[str, Any]:
        """
        Generate and store alerts for one tank.

        Returns:
            {tank_id, tank_name, alerts_generated, ...} with skipped_reason
            when there was nothing to ask the LLM about
        """
        result: dict[str, Any] = {"tank_id": tank["id"], "tank_name": tank.get("name"), "alerts_generated": 0}
        since = (utc_now() - timedelta(days=LOOKBACK_DAYS)).isoformat()
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
            logger.error(f"Failed to fetch parameters for tank {tank['id']}: {e}")
            raise InternalError("Failed to fetch parameters")

        if len(readings) < MIN_READINGS:
            return {**result, "skipped_reason": "insufficient_data"}

        trends = detect_trends(tank.get("type"), readings)
        result["trends_analyzed"] = len(trends)
        if not trends:
            return {**result, "skipped_reason": "no_concerning_trends"}

        events = AlertService.fetch_recent_events(tank["id"])
        prompt = build_alert_prompt(tank, trends, events, AlertService.count_livestock(tank["id"]))

        llm = llm or LLMClient()
        try:
            batch = GeneratedAlertBatch.model_validate(
                llm.complete_json(ALERT_SYSTEM_PROMPT, prompt, max_tokens=ALERTS_MAX_TOKENS)
            )
        except (LLMError, ValidationError) as e:
            logger.error(f"Alert generation failed for tank {tank['id']}: {e}")
            return {**result, "error": "AI interpretation failed"}

        result["events_correlated"] = len(events)
        if not batch.alerts:
            return result

        rows = [
            {
                **alert.model_dump(mode="json"),
                "tank_id": tank["id"],
                "user_id": tank["user_id"],
                "status": AlertStatus.ACTIVE.value,
            }
            for alert in batch.alerts
        ]

        try:
            client.table("proactive_alerts").update({
                "status": AlertStatus.DISMISSED.value,
                "dismissed_at": utc_now().isoformat(),
            }).eq("tank_id", tank["id"]).eq("status", AlertStatus.ACTIVE.value).in_(
                "parameter", [row["parameter"] for row in rows]
            ).execute()
            inserted = client.table("proactive_alerts").insert(rows).execute().data or []
        except Exception as e:
            logger.error(f"Failed to store alerts for tank {tank['id']}: {e}")
            return {**result, "error": "Failed to store alerts"}

        logger.info(f"Tank {tank['id']}: {len(inserted)} alerts generated")
        return {**result, "alerts_generated": len(inserted)}

    @staticmethod
    def run_daily_analysis(
        dry_run: bool = False,
        user_id: UUID | str | None = None,
        llm: LLMClient | None = None,
    ) -> dict[str, Any]:
        """
        Analyze every eligible tank.

        Args:
            dry_run: List the tanks that would be analyzed without calling the LLM
            user_id: Restrict the run to one user's tanks
        """
        client = SupabaseClient.get_client()
        query = (
            client.table("tanks")
            .select("id, user_id, name, type, volume_gallons")
            .is_("deleted_at", "null")
        )
        if user_id:
            query = query.eq("user_id", normalize_uuid(user_id))

        try:
            tanks = query.execute().data or []
        except Exception as e:
            logger.error(f"Failed to fetch tanks for daily analysis: {e}")
            raise InternalError("Failed to fetch tanks")

        by_user: dict[str, list[dict[str, Any]]] = {}
        for tank in tanks:
            by_user.setdefault(str(tank["user_id"]), []).append(tank)

        required: Tier = FEATURE_TIERS["proactive_alerts"]
        eligible: list[dict[str, Any]] = []
        skipped = 0
        for owner, owned in by_user.items():
            if TierService.get_user_tier(owner).at_least(required):
                eligible.extend(owned)
            else:
                skipped += 1

        results = []
        analyzed = 0
        generated = 0
        for tank in eligible:
            if dry_run:
                results.append({
                    "tank_id": tank["id"],
                    "tank_name": tank.get("name"),
                    "user_id": tank["user_id"],
                    "alerts_generated": 0,
                    "success": True,
                    "skipped_reason": "dry_run",
                })
                analyzed += 1
                continue

            try:
                outcome = AlertService.analyze_tank(tank, llm=llm)
            except InternalError as e:
                results.append({
                    "tank_id": tank["id"],
                    "tank_name": tank.get("name"),
                    "user_id": tank["user_id"],
                    "alerts_generated": 0,
                    "success": False,
                    "error": e.message,
                })
                continue

            success = "error" not in outcome
            results.append({**outcome, "user_id": tank["user_id"], "success": success})
            if success:
                analyzed += 1
                generated += outcome["alerts_generated"]

        logger.info(
            f"Daily trend analysis: {analyzed}/{len(eligible)} tanks analyzed, "
            f"{generated} alerts, {skipped} users skipped by tier"
        )
        return {
            "tanks_checked": len(tanks),
            "users_skipped_tier": skipped,
            "tanks_analyzed": analyzed,
            "alerts_generated": generated,
            "dry_run": dry_run,
            "results": results,
        }
