# =============================================================================
# lib/normalizers.py - AI Action Payload Normalization
# =============================================================================
# The assistant writes action payloads in loose natural language:
#   {"task_type": "water change", "frequency": "every week",
#    "due_date": "next saturday"}
#
# These helpers rewrite such values into the enum/date forms the action
# models accept. They run BEFORE pydantic validation; anything they do not
# recognize is passed through untouched so validation can reject it.
# =============================================================================

from __future__ import annotations

import re
from datetime import date, datetime, timedelta, timezone
from typing import Any


TASK_TYPE_ALIASES: dict[str, str] = {
    "water change": "water_change",
    "waterchange": "water_change",
    "filter clean": "filter_cleaning",
    "filter cleaning": "filter_cleaning",
    "filterclean": "filter_cleaning",
    "feed": "feeding",
    "dose": "dosing",
    "equipment": "equipment_maintenance",
    "equipment maintenance": "equipment_maintenance",
    "water test": "water_testing",
    "water testing": "water_testing",
    "test water": "water_testing",
}

FREQUENCY_ALIASES: dict[str, str] = {
    "every day": "daily",
    "everyday": "daily",
    "every week": "weekly",
    "everyweek": "weekly",
    "every two weeks": "biweekly",
    "bi-weekly": "biweekly",
    "every month": "monthly",
    "one time": "once",
    "one-time": "once",
}

# Monday == 0, matching date.weekday()
WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

_IN_DAYS = re.compile(r"^in\s+(\d+)\s+days?$")
_NEXT_WEEKDAY = re.compile(r"^next\s+(" + "|".join(WEEKDAYS) + r")$")
_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def normalize_task_type(value: Any) -> str:
    raw = str(value).strip().lower()
    return TASK_TYPE_ALIASES.get(raw) or re.sub(r"\s+", "_", raw)


def normalize_frequency(value: Any) -> str:
    raw = str(value).strip().lower()
    return FREQUENCY_ALIASES.get(raw, raw)


def _midnight_utc(day: date) -> str:
    return datetime(day.year, day.month, day.day, tzinfo=timezone.utc).isoformat()


def normalize_due_date(value: Any, today: date | None = None) -> Any:
    """
    Resolve a relative due date to a midnight-UTC ISO datetime.

    Understands "today", "tomorrow", "in N day(s)", "next <weekday>" and
    bare YYYY-MM-DD dates. "next <weekday>" on that same weekday means a
    week from today.

    Args:
        value: Raw due_date from the payload
        today: Reference date (defaults to the current UTC date)

    Returns:
        ISO datetime string, or the original value when unrecognized
    """
    if not isinstance(value, str):
        return value

    raw = value.strip().lower()
    today = today or datetime.now(timezone.utc).date()

    if raw == "today":
        return _midnight_utc(today)
    if raw == "tomorrow":
        return _midnight_utc(today + timedelta(days=1))

    match = _IN_DAYS.match(raw)
    if match:
        return _midnight_utc(today + timedelta(days=int(match.group(1))))

    match = _NEXT_WEEKDAY.match(raw)
    if match:
        target = WEEKDAYS.index(match.group(1))
        days_until = (target - today.weekday() + 7) % 7 or 7
        return _midnight_utc(today + timedelta(days=days_until))

    if _ISO_DATE.match(raw):
        try:
            return _midnight_utc(date.fromisoformat(raw))
        except ValueError:
            return value

    return value


def normalize_action_payload(
    action_type: str | None,
    payload: dict[str, Any] | None,
    today: date | None = None,
) -> dict[str, Any]:
    """
    Return a normalized copy of an action payload.

    task_type is only rewritten for schedule_maintenance; frequency and
    due_date are rewritten whenever present.
    """
    if not isinstance(payload, dict):
        return payload or {}

    result = dict(payload)

    if action_type == "schedule_maintenance" and result.get("task_type"):
        result["task_type"] = normalize_task_type(result["task_type"])

    if result.get("frequency"):
        result["frequency"] = normalize_frequency(result["frequency"])

    if result.get("due_date"):
        result["due_date"] = normalize_due_date(result["due_date"], today=today)

    return result
