# =============================================================================
# core/models/notifications.py - Notification Preference Schemas
# =============================================================================
# One notification_preferences row per user. Updates are partial: only
# the fields present in the body are written.
# =============================================================================

from pydantic import BaseModel, Field

# HH:MM or HH:MM:SS, 24-hour clock
TIME_PATTERN = r"^([01]?[0-9]|2[0-3]):[0-5][0-9](:[0-5][0-9])?$"


class NotificationPreferencesUpdate(BaseModel):
    """
    Partial update of a user's notification preferences.

    Example:
        {"email_enabled": false, "quiet_hours_start": "22:00"}
    """

    push_enabled: bool | None = None
    email_enabled: bool | None = None
    maintenance_reminders: bool | None = None
    parameter_alerts: bool | None = None
    ai_insights: bool | None = None

    reminder_time: str | None = Field(default=None, pattern=TIME_PATTERN)
    reminder_days_before: int | None = Field(default=None, ge=0, le=7)

    quiet_hours_enabled: bool | None = None
    quiet_hours_start: str | None = Field(default=None, pattern=TIME_PATTERN)
    quiet_hours_end: str | None = Field(default=None, pattern=TIME_PATTERN)
