# =============================================================================
# core/services/maintenance_service.py - Maintenance Scheduling
# =============================================================================
# Recurring and one-off tank chores.
#
# next_due_date is stored as a DATE. Completing a task writes a
# maintenance_logs row and then:
#   - once          -> task becomes inactive
#   - any other     -> next_due_date advances from the completion time
# =============================================================================

import calendar
import logging
from collections import Counter
from datetime import date, datetime, timedelta
from typing import Any
from uuid import UUID

from app.exceptions import InternalError, InvalidInputError, NotFoundError
from core.models.maintenance import (
    MaintenanceComplete,
    MaintenanceTaskCreate,
    MaintenanceTaskUpdate,
    TaskFrequency,
)
from core.services.tank_service import TankService
from lib.supabase_client import SupabaseClient, first_row
from lib.utils import normalize_uuid, parse_datetime, utc_now

logger = logging.getLogger(__name__)

RECENT_LOG_LIMIT = 10

FIXED_INTERVALS: dict[TaskFrequency, int] = {
    TaskFrequency.DAILY: 1,
    TaskFrequency.WEEKLY: 7,
    TaskFrequency.BIWEEKLY: 14,
}


def add_month(value: date | datetime) -> date | datetime:
    """Same day next month, clamped to the month's last day (Jan 31 -> Feb 28)."""
    year = value.year + value.month // 12
    month = value.month % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def calculate_next_due_date(
    from_date: date | datetime,
    frequency: TaskFrequency | str,
    custom_interval_days: int | None = None,
) -> date | datetime | None:
    """
    Next occurrence after from_date.

    Returns:
        Same type as from_date, or None for one-off tasks

    Raises:
        ValueError: For custom frequency without a positive interval
    """
    frequency = TaskFrequency(frequency)

    if frequency == TaskFrequency.ONCE:
        return None
    if frequency in FIXED_INTERVALS:
        return from_date + timedelta(days=FIXED_INTERVALS[frequency])
    if frequency == TaskFrequency.MONTHLY:
        return add_month(from_date)

    if not custom_interval_days or custom_interval_days <= 0:
        raise ValueError("custom_interval_days is required for custom frequency")
    return from_date + timedelta(days=custom_interval_days)


def is_overdue(task: dict[str, Any], today: date | None = None) -> bool:
    due = task.get("next_due_date")
    if not due or not task.get("is_active", True):
        return False
    today = today or utc_now().date()
    return parse_datetime(due).date() < today


def _as_date_str(value: date | datetime) -> str:
    if isinstance(value, datetime):
        return value.date().isoformat()
    return value.isoformat()


class MaintenanceService:
    """Service for maintenance tasks and their completion logs."""

    @staticmethod
    def list_tasks(
        tank_id: UUID | str,
        user_id: UUID | str,
        include_inactive: bool = False,
    ) -> dict[str, Any]:
        """Tasks ordered by next_due_date, with overdue and completion_count."""
        tank = TankService.get_owned_tank(tank_id, user_id, columns="id, user_id")

        client = SupabaseClient.get_client()
        query = (
            client.table("maintenance_tasks")
            .select("*")
            .eq("tank_id", tank["id"])
            .is_("deleted_at", "null")
        )
        if not include_inactive:
            query = query.eq("is_active", True)

        try:
            tasks = query.order("next_due_date").execute().data or []
        except Exception as e:
            logger.error(f"Failed to list maintenance tasks for tank {tank['id']}: {e}")
            raise InternalError("Failed to fetch maintenance tasks")

        counts: Counter = Counter()
        task_ids = [task["id"] for task in tasks]
        if task_ids:
            try:
                logs = (
                    client.table("maintenance_logs")
                    .select("task_id")
                    .in_("task_id", task_ids)
                    .execute()
                ).data or []
                counts.update(log["task_id"] for log in logs)
            except Exception as e:
                logger.warning(f"Failed to count maintenance logs: {e}")

        today = utc_now().date()
        enriched = [
            {**task, "overdue": is_overdue(task, today), "completion_count": counts.get(task["id"], 0)}
            for task in tasks
        ]
        return {"tasks": enriched, "count": len(enriched)}

    @staticmethod
    def get_task_row(tank_id: str, task_id: UUID | str) -> dict[str, Any]:
        task_id = normalize_uuid(task_id)
        client = SupabaseClient.get_client()
        try:
            response = (
                client.table("maintenance_tasks")
                .select("*")
                .eq("id", task_id)
                .eq("tank_id", tank_id)
                .is_("deleted_at", "null")
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to fetch maintenance task {task_id}: {e}")
            raise InternalError("Failed to fetch maintenance task")

        task = first_row(response)
        if not task:
            raise NotFoundError("Maintenance task", task_id)
        return task

    @staticmethod
    def get_task(
        tank_id: UUID | str,
        user_id: UUID | str,
        task_id: UUID | str,
    ) -> dict[str, Any]:
        """One task with its last 10 completion logs."""
        tank = TankService.get_owned_tank(tank_id, user_id, columns="id, user_id")
        task = MaintenanceService.get_task_row(tank["id"], task_id)

        client = SupabaseClient.get_client()
        try:
            logs = (
                client.table("maintenance_logs")
                .select("*")
                .eq("task_id", task["id"])
                .order("completed_at", desc=True)
                .limit(RECENT_LOG_LIMIT)
                .execute()
            ).data or []
        except Exception as e:
            logger.warning(f"Failed to fetch logs for task {task['id']}: {e}")
            logs = []

        return {
            "task": {**task, "overdue": is_overdue(task)},
            "logs": logs,
            "log_count": len(logs),
        }

    @staticmethod
    def create_task(
        tank_id: UUID | str,
        user_id: UUID | str,
        task: MaintenanceTaskCreate,
    ) -> dict[str, Any]:
        """
        Schedule a task.

        Recurring tasks without next_due_date start one interval from now.

        Raises:
            InvalidInputError: If a recurring task's due date is in the past
        """
        tank = TankService.get_owned_tank(tank_id, user_id, columns="id, user_id")

        now = utc_now()
        next_due = task.next_due_date or calculate_next_due_date(
            now, task.frequency, task.custom_interval_days
        )
        if task.frequency != TaskFrequency.ONCE and parse_datetime(next_due).date() < now.date():
            raise InvalidInputError("next_due_date cannot be in the past for recurring tasks")

        data = task.model_dump(mode="json", exclude_none=True)
        data["title"] = task.title.strip()
        data["tank_id"] = tank["id"]
        data["next_due_date"] = _as_date_str(next_due)
        data["is_active"] = True

        client = SupabaseClient.get_client()
        try:
            response = client.table("maintenance_tasks").insert(data).execute()
        except Exception as e:
            logger.error(f"Failed to create maintenance task: {e}")
            raise InternalError("Failed to create maintenance task")

        created = first_row(response)
        if not created:
            raise InternalError("Failed to create maintenance task")
        return created

    @staticmethod
    def update_task(
        tank_id: UUID | str,
        user_id: UUID | str,
        task_id: UUID | str,
        update: MaintenanceTaskUpdate,
    ) -> dict[str, Any]:
        """
        Partial update.

        A frequency (or custom interval) change recalculates next_due_date
        from the given or current due date.
        """
        tank = TankService.get_owned_tank(tank_id, user_id, columns="id, user_id")
        existing = MaintenanceService.get_task_row(tank["id"], task_id)

        data = update.model_dump(mode="json", exclude_unset=True)
        data.pop("next_due_date", None)
        if "title" in data and data["title"]:
            data["title"] = data["title"].strip()

        base = update.next_due_date or parse_datetime(existing.get("next_due_date")) or utc_now()
        frequency = update.frequency or TaskFrequency(existing.get("frequency", "once"))
        interval = (
            update.custom_interval_days
            if "custom_interval_days" in update.model_fields_set
            else existing.get("custom_interval_days")
        )

        if update.frequency is not None:
            if frequency == TaskFrequency.ONCE:
                if update.next_due_date is None:
                    raise InvalidInputError("next_due_date is required when frequency is 'once'")
                data["next_due_date"] = _as_date_str(update.next_due_date)
            else:
                data["next_due_date"] = _as_date_str(calculate_next_due_date(base, frequency, interval))
                data["custom_interval_days"] = interval
        elif update.custom_interval_days is not None and frequency == TaskFrequency.CUSTOM:
            data["next_due_date"] = _as_date_str(calculate_next_due_date(base, frequency, interval))
        elif update.next_due_date is not None:
            data["next_due_date"] = _as_date_str(update.next_due_date)

        if not data:
            return existing

        client = SupabaseClient.get_client()
        try:
            response = (
                client.table("maintenance_tasks")
                .update(data)
                .eq("id", existing["id"])
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to update maintenance task {existing['id']}: {e}")
            raise InternalError("Failed to update maintenance task")

        return first_row(response) or {**existing, **data}

    @staticmethod
    def delete_task(
        tank_id: UUID | str,
        user_id: UUID | str,
        task_id: UUID | str,
    ) -> dict[str, Any]:
        tank = TankService.get_owned_tank(tank_id, user_id, columns="id, user_id")
        task = MaintenanceService.get_task_row(tank["id"], task_id)

        client = SupabaseClient.get_client()
        try:
            client.table("maintenance_tasks").update(
                {"deleted_at": utc_now().isoformat()}
            ).eq("id", task["id"]).execute()
        except Exception as e:
            logger.error(f"Failed to delete maintenance task {task['id']}: {e}")
            raise InternalError("Failed to delete maintenance task")

        return {"id": task["id"], "deleted": True}

    @staticmethod
    def complete_task_row(
        task: dict[str, Any],
        notes: str | None = None,
        photo_url: str | None = None,
    ) -> dict[str, Any]:
        """
        Log a completion for an already-authorized task row.

        Returns:
            {"task": updated task, "log": maintenance_logs row}
        """
        completed_at = utc_now()
        client = SupabaseClient.get_client()

        try:
            log_response = client.table("maintenance_logs").insert({
                "task_id": task["id"],
                "completed_at": completed_at.isoformat(),
                "notes": notes.strip() if notes else None,
                "photo_url": photo_url,
            }).execute()
        except Exception as e:
            logger.error(f"Failed to log completion of task {task['id']}: {e}")
            raise InternalError("Failed to log task completion")

        log = first_row(log_response)
        if not log:
            raise InternalError("Failed to log task completion")

        frequency = TaskFrequency(task.get("frequency", "once"))
        if frequency == TaskFrequency.ONCE:
            update: dict[str, Any] = {"is_active": False}
        else:
            next_due = calculate_next_due_date(completed_at, frequency, task.get("custom_interval_days"))
            update = {"next_due_date": _as_date_str(next_due)}

        # Log row already exists; advancing the task is best-effort
        try:
            response = (
                client.table("maintenance_tasks")
                .update(update)
                .eq("id", task["id"])
                .execute()
            )
            updated = first_row(response) or {**task, **update}
        except Exception as e:
            logger.warning(f"Completion logged but task {task['id']} was not advanced: {e}")
            updated = task

        return {"task": updated, "log": log}

    @staticmethod
    def complete_task(
        tank_id: UUID | str,
        user_id: UUID | str,
        task_id: UUID | str,
        completion: MaintenanceComplete,
    ) -> dict[str, Any]:
        tank = TankService.get_owned_tank(tank_id, user_id, columns="id, user_id")
        task = MaintenanceService.get_task_row(tank["id"], task_id)
        return MaintenanceService.complete_task_row(task, completion.notes, completion.photo_url)
