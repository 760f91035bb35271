# =============================================================================
# workers/tasks.py - Celery Task Definitions
# =============================================================================
# Defines scheduled and on-demand background tasks.
#
# Tasks:
# - run_daily_trend_analysis: Proactive alerts for every eligible tank (06:00 UTC)
# - analyze_tank: Proactive alerts for a single tank
# - send_maintenance_reminders: Reminder emails for tasks due soon (every 15 min)
# - healthcheck: Verifies a worker is consuming
# =============================================================================

import logging
from typing import Any

from celery import shared_task

from app.exceptions import InternalError
from core.services.alert_service import AlertService
from core.services.reminder_service import ReminderService
from lib.supabase_client import SupabaseClient, SupabaseClientError

logger = logging.getLogger(__name__)


# =============================================================================
# Proactive Alerts
# =============================================================================

@shared_task(bind=True, name="workers.tasks.run_daily_trend_analysis")
def run_daily_trend_analysis(
    self,
    dry_run: bool = False,
    user_id: str | None = None,
) -> dict[str, Any]:
    """
    Run trend analysis and alert generation across all eligible tanks.

    Args:
        dry_run: List the tanks that would be analyzed without calling the LLM
        user_id: Restrict the run to one user

    Returns:
        {tanks_checked, users_skipped_tier, tanks_analyzed, alerts_generated,
         dry_run, results[]}
    """
    logger.info(f"Daily trend analysis starting (dry_run={dry_run}, user_id={user_id})")
    try:
        summary = AlertService.run_daily_analysis(dry_run=dry_run, user_id=user_id)
    except InternalError as e:
        logger.error(f"Daily trend analysis failed: {e.message}")
        raise self.retry(exc=e)

    logger.info(
        f"Daily trend analysis done: {summary['tanks_analyzed']} tanks analyzed, "
        f"{summary['alerts_generated']} alerts generated"
    )
    return summary


@shared_task(bind=True, name="workers.tasks.analyze_tank")
def analyze_tank(self, tank_id: str) -> dict[str, Any]:
    """
    Generate alerts for one tank, regardless of its owner's tier.

    Returns:
        {tank_id, tank_name, alerts_generated, ...}, or {tank_id, error}
        when the tank no longer exists
    """
    try:
        tank = SupabaseClient.fetch_tank(tank_id, columns="id, user_id, name, type, volume_gallons")
    except SupabaseClientError as e:
        logger.error(e.message)
        raise self.retry(exc=e)

    if not tank:
        logger.warning(f"Tank {tank_id} not found for analysis")
        return {"tank_id": tank_id, "error": "Tank not found"}

    return AlertService.analyze_tank(tank)


# =============================================================================
# Maintenance Reminders
# =============================================================================

@shared_task(bind=True, name="workers.tasks.send_maintenance_reminders")
def send_maintenance_reminders(self, dry_run: bool = False) -> dict[str, Any]:
    """
    Email owners of maintenance tasks due today or tomorrow.

    Returns:
        {tasks_found, notifications_sent, dry_run, results[]}
    """
    try:
        return ReminderService.send_due_reminders(dry_run=dry_run)
    except InternalError as e:
        logger.error(f"Maintenance reminders failed: {e.message}")
        raise self.retry(exc=e)


# =============================================================================
# Health
# =============================================================================

@shared_task(bind=True, name="workers.tasks.healthcheck")
def healthcheck(self) -> str:
    """
    Simple healthcheck task to verify worker is running.

    Usage:
        from workers.tasks import healthcheck
        result = healthcheck.delay()
        print(result.get(timeout=5))  # Should return "OK"
    """
    return "OK"
