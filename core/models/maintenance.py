# =============================================================================
# core/models/maintenance.py - Maintenance Task Schemas
# =============================================================================
# These models define the API contract for maintenance scheduling:
# - TaskType / TaskFrequency: what and how often
# - MaintenanceTaskCreate / MaintenanceTaskUpdate: the schedule itself
# - MaintenanceComplete: marking a task done (creates a maintenance_logs row)
# - MaintenanceRecommendation: a suggested task (templates or LLM)
#
# Flow:
# 1. Create a task with next_due_date + frequency
# 2. Complete it -> a log row is written and next_due_date advances
#    (a "once" task becomes inactive instead)
# =============================================================================

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator


class TaskType(str, Enum):
    WATER_CHANGE = "water_change"
    FILTER_CLEANING = "filter_cleaning"
    FEEDING = "feeding"
    DOSING = "dosing"
    EQUIPMENT_MAINTENANCE = "equipment_maintenance"
    WATER_TESTING = "water_testing"
    CUSTOM = "custom"


class TaskFrequency(str, Enum):
    """
    Recurrence of a task.

    - once: a single occurrence, deactivated on completion
    - custom: every custom_interval_days days
    """
    ONCE = "once"
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    CUSTOM = "custom"


class MaintenanceTaskCreate(BaseModel):
    """
    Schema for scheduling a maintenance task.

    Example:
        {
            "type": "water_change",
            "title": "25% water change",
            "frequency": "weekly",
            "next_due_date": "2024-06-01T09:00:00Z"
        }
    """

    type: TaskType
    title: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)

    frequency: TaskFrequency = Field(default=TaskFrequency.ONCE)

    custom_interval_days: int | None = Field(
        default=None,
        ge=1,
        le=365,
        description="Required when frequency is 'custom'"
    )

    next_due_date: datetime | None = Field(
        default=None,
        description="First due date (required for one-off tasks)"
    )

    reminder_before_hours: int = Field(default=24, ge=0, le=168)

    @model_validator(mode="after")
    def check_schedule(self) -> "MaintenanceTaskCreate":
        if self.frequency == TaskFrequency.CUSTOM and not self.custom_interval_days:
            raise ValueError("custom_interval_days is required for custom frequency")
        if self.frequency == TaskFrequency.ONCE and self.next_due_date is None:
            raise ValueError("next_due_date is required for one-time tasks")
        return self


class MaintenanceTaskUpdate(BaseModel):
    """Partial update of a task."""

    type: TaskType | None = None
    title: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    frequency: TaskFrequency | None = None
    custom_interval_days: int | None = Field(default=None, ge=1, le=365)
    next_due_date: datetime | None = None
    reminder_before_hours: int | None = Field(default=None, ge=0, le=168)
    is_active: bool | None = None

    @model_validator(mode="after")
    def check_custom_interval(self) -> "MaintenanceTaskUpdate":
        if self.frequency == TaskFrequency.CUSTOM and not self.custom_interval_days:
            raise ValueError("custom_interval_days is required for custom frequency")
        return self


class MaintenanceComplete(BaseModel):
    """Body for completing a task. Both fields are optional."""

    notes: str | None = Field(default=None, max_length=1000)
    photo_url: str | None = Field(default=None, max_length=500)


# =============================================================================
# Recommendations
# =============================================================================

class RecommendationPriority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class RecommendationRequest(BaseModel):
    tank_id: UUID


class MaintenanceRecommendation(BaseModel):
    """
    A suggested task, from the templates or the LLM.

    Unknown types become "custom", unknown frequencies "weekly" and
    unknown priorities "low".
    """

    type: TaskType = TaskType.CUSTOM
    title: str = "Maintenance Task"
    description: str = ""
    suggested_frequency: TaskFrequency = TaskFrequency.WEEKLY
    priority: RecommendationPriority = RecommendationPriority.LOW

    @field_validator("type", mode="before")
    @classmethod
    def known_type(cls, value: object) -> TaskType:
        try:
            return TaskType(value)
        except ValueError:
            return TaskType.CUSTOM

    @field_validator("title", mode="before")
    @classmethod
    def default_title(cls, value: object) -> str:
        return str(value) if value else "Maintenance Task"

    @field_validator("description", mode="before")
    @classmethod
    def default_description(cls, value: object) -> str:
        return str(value) if value else ""

    @field_validator("suggested_frequency", mode="before")
    @classmethod
    def known_frequency(cls, value: object) -> TaskFrequency:
        try:
            return TaskFrequency(value)
        except ValueError:
            return TaskFrequency.WEEKLY

    @field_validator("priority", mode="before")
    @classmethod
    def known_priority(cls, value: object) -> RecommendationPriority:
        try:
            return RecommendationPriority(value)
        except ValueError:
            return RecommendationPriority.LOW
