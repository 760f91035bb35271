# =============================================================================
# core/models/alerts.py - Proactive Alert Schemas
# =============================================================================
# Proactive alerts are written by the daily trend-analysis job and read by
# the dashboard and by the chat context builder.
#
# - GeneratedAlert / GeneratedAlertBatch: what the LLM must return
# - AlertUpdateRequest: dismiss or resolve an alert
# =============================================================================

from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class AlertSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ALERT = "alert"


class AlertStatus(str, Enum):
    ACTIVE = "active"
    DISMISSED = "dismissed"
    RESOLVED = "resolved"


class TrendDirection(str, Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"
    SPIKING = "spiking"


class AlertAction(str, Enum):
    DISMISS = "dismiss"
    RESOLVE = "resolve"


class AlertUpdateRequest(BaseModel):
    """
    Dismiss or resolve an active alert.

    Example:
        {"action": "resolve", "alert_id": "550e8400-...",
         "resolved_by_action_id": "7c9e6679-..."}
    """
    action: AlertAction
    alert_id: UUID
    resolved_by_action_id: UUID | None = Field(
        default=None,
        description="AI action that fixed the problem, if any"
    )


class GeneratedAlert(BaseModel):
    """One alert as produced by the LLM from a detected trend."""
    parameter: str = Field(..., min_length=1)
    severity: AlertSeverity
    trend_direction: TrendDirection
    current_value: float | None = None
    unit: str | None = None
    trend_rate: float | None = Field(default=None, description="Change per day, e.g. -0.03")
    projection_text: str | None = None
    likely_cause: str | None = None
    suggested_action: str | None = None


class GeneratedAlertBatch(BaseModel):
    alerts: list[GeneratedAlert] = Field(default_factory=list)
