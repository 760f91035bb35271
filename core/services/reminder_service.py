# =============================================================================
# core/services/reminder_service.py - Maintenance Reminder Emails
# =============================================================================
# Run every 15 minutes by the Celery beat schedule.
#
#   active tasks due within the next week
#     -> keep those whose reminder window has opened
#        (midnight UTC of next_due_date minus reminder_before_hours)
#        and that have not been reminded since it opened
#     -> tank (name, owner)
#     -> notification_preferences (maintenance_reminders, email_enabled,
#        quiet hours) and users (email, timezone)
#     -> reminder email unless opted out or inside quiet hours
#     -> maintenance_tasks.last_reminder_sent_at = now
#
# One email per task per due date: completing a task moves next_due_date,
# which opens a new window. Users without a preferences row get reminders
# with no quiet hours.
# =============================================================================

import logging
from datetime import datetime, time, timedelta
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.exceptions import InternalError
from lib import email as mailer
from lib.supabase_client import SupabaseClient
from lib.utils import parse_datetime, utc_now

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = "America/New_York"
DEFAULT_REMINDER_HOURS = 24

# reminder_before_hours is capped at 168
LOOKAHEAD_DAYS = 7


def _parse_clock(value: str) -> time:
    hour, minute = (int(part) for part in value.split(":")[:2])
    return time(hour, minute)


def is_in_quiet_hours(
    prefs: dict[str, Any],
    timezone: str | None,
    now: datetime | None = None,
) -> bool:
    """
    True when the user's local time falls inside their quiet hours.

    A window whose start is after its end wraps midnight (22:00-07:00).
    Unknown timezones and malformed times count as outside quiet hours.
    """
    if not prefs.get("quiet_hours_enabled"):
        return False
    start_raw, end_raw = prefs.get("quiet_hours_start"), prefs.get("quiet_hours_end")
    if not start_raw or not end_raw:
        return False

    try:
        start, end = _parse_clock(start_raw), _parse_clock(end_raw)
        local = (now or utc_now()).astimezone(ZoneInfo(timezone or DEFAULT_TIMEZONE)).time()
    except (ValueError, ZoneInfoNotFoundError) as e:
        logger.warning(f"Could not evaluate quiet hours: {e}")
        return False

    local = local.replace(second=0, microsecond=0)
    if start > end:
        return local >= start or local < end
    return start <= local < end


def due_label(next_due_date: str, today: str) -> str:
    due = next_due_date[:10]
    if due <= today:
        return "today"
    tomorrow = (datetime.fromisoformat(today) + timedelta(days=1)).date().isoformat()
    if due == tomorrow:
        return "tomorrow"
    return f"on {due}"


def reminder_window_start(task: dict[str, Any]) -> datetime:
    """When reminders for the task's current due date may start going out."""
    due = parse_datetime(str(task["next_due_date"])[:10])
    hours = task.get("reminder_before_hours")
    return due - timedelta(hours=DEFAULT_REMINDER_HOURS if hours is None else hours)


def needs_reminder(task: dict[str, Any], now: datetime) -> bool:
    """
    True when the task's reminder window is open and no reminder has gone
    out since it opened.
    """
    opens_at = reminder_window_start(task)
    if now < opens_at:
        return False
    try:
        last_sent = parse_datetime(task.get("last_reminder_sent_at"))
    except ValueError:
        logger.warning(f"Malformed last_reminder_sent_at on task {task.get('id')}")
        last_sent = None
    return last_sent is None or last_sent < opens_at


def _index(rows: list[dict[str, Any]], key: str) -> dict[str, dict[str, Any]]:
    return {str(row[key]): row for row in rows}


def _mark_reminded(task_id: str, now: datetime) -> None:
    client = SupabaseClient.get_client()
    try:
        (
            client.table("maintenance_tasks")
            .update({"last_reminder_sent_at": now.isoformat()})
            .eq("id", task_id)
            .execute()
        )
    except Exception as e:
        # The email already went out; the next run may repeat it
        logger.error(f"Failed to record reminder for task {task_id}: {e}")


class ReminderService:
    """Sends maintenance reminder emails."""

    @staticmethod
    def send_due_reminders(dry_run: bool = False, now: datetime | None = None) -> dict[str, Any]:
        """
        Email every opted-in owner of a task whose reminder window is open.

        Args:
            dry_run: Report what would be sent without sending

        Returns:
            {tasks_found, notifications_sent, dry_run, results[]}
        """
        now = now or utc_now()
        today = now.date().isoformat()
        horizon = (now + timedelta(days=LOOKAHEAD_DAYS)).date().isoformat()

        client = SupabaseClient.get_client()
        try:
            tasks = (
                client.table("maintenance_tasks")
                .select("id, tank_id, title, type, next_due_date, reminder_before_hours, last_reminder_sent_at")
                .eq("is_active", True)
                .is_("deleted_at", "null")
                .gte("next_due_date", today)
                .lte("next_due_date", horizon)
                .order("next_due_date")
                .execute()
            ).data or []
        except Exception as e:
            logger.error(f"Failed to fetch due maintenance tasks: {e}")
            raise InternalError("Failed to fetch maintenance tasks")

        tasks = [task for task in tasks if needs_reminder(task, now)]
        if not tasks:
            logger.info("No maintenance reminders due")
            return {"tasks_found": 0, "notifications_sent": 0, "dry_run": dry_run, "results": []}

        tank_ids = list({str(task["tank_id"]) for task in tasks})
        try:
            tanks = _index(
                client.table("tanks")
                .select("id, user_id, name")
                .in_("id", tank_ids)
                .is_("deleted_at", "null")
                .execute()
                .data or [],
                "id",
            )
            user_ids = list({str(tank["user_id"]) for tank in tanks.values()})
            prefs = _index(
                client.table("notification_preferences")
                .select("user_id, email_enabled, maintenance_reminders, quiet_hours_enabled, quiet_hours_start, quiet_hours_end")
                .in_("user_id", user_ids)
                .execute()
                .data or [],
                "user_id",
            )
            users = _index(
                client.table("users")
                .select("id, email, full_name, timezone")
                .in_("id", user_ids)
                .execute()
                .data or [],
                "id",
            )
        except Exception as e:
            logger.error(f"Failed to load reminder recipients: {e}")
            raise InternalError("Failed to load reminder recipients")

        results = []
        sent = 0
        for task in tasks:
            tank = tanks.get(str(task["tank_id"]))
            result: dict[str, Any] = {"task_id": task["id"], "task_title": task.get("title"), "success": False}
            if not tank:
                results.append({**result, "skipped_reason": "tank_not_found"})
                continue

            user_id = str(tank["user_id"])
            user = users.get(user_id, {})
            pref = prefs.get(user_id, {})
            result.update({"tank_name": tank.get("name"), "user_id": user_id})

            if pref.get("maintenance_reminders") is False or pref.get("email_enabled") is False:
                results.append({**result, "skipped_reason": "disabled"})
                continue
            if is_in_quiet_hours(pref, user.get("timezone"), now):
                results.append({**result, "skipped_reason": "quiet_hours"})
                continue
            if not user.get("email"):
                results.append({**result, "skipped_reason": "no_email"})
                continue
            if dry_run:
                results.append({**result, "success": True, "skipped_reason": "dry_run"})
                continue

            outcome = mailer.send_maintenance_reminder_email(
                user["email"],
                user.get("full_name"),
                task.get("title") or "Maintenance",
                tank.get("name") or "your tank",
                due_label(task["next_due_date"], today),
            )
            if outcome.success:
                sent += 1
                _mark_reminded(task["id"], now)
                results.append({**result, "success": True})
            else:
                results.append({**result, "error": outcome.error})

        logger.info(f"Maintenance reminders: {sent} sent for {len(tasks)} due tasks (dry_run={dry_run})")
        return {
            "tasks_found": len(tasks),
            "notifications_sent": sent,
            "dry_run": dry_run,
            "results": results,
        }
