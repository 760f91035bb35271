# =============================================================================
# core/models/actions.py - AI Action Schemas
# =============================================================================
# The chat assistant proposes actions; once the user confirms, the client
# posts them to /ai/actions/execute. Payloads arrive in loose natural
# language ("water change", "every week", "next tuesday") and are normalized
# by lib/normalizers.py BEFORE these models validate them.
#
# - ActionRequest: {type, tank_id, payload}
# - One payload model per action type
# =============================================================================

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from .maintenance import TaskFrequency, TaskType


class ActionType(str, Enum):
    LOG_PARAMETERS = "log_parameters"
    ADD_LIVESTOCK = "add_livestock"
    SCHEDULE_MAINTENANCE = "schedule_maintenance"
    COMPLETE_MAINTENANCE = "complete_maintenance"


class ActionRequest(BaseModel):
    """
    Execute a confirmed AI action.

    Example:
        {
            "type": "schedule_maintenance",
            "tank_id": "550e8400-...",
            "payload": {"task_type": "water change", "title": "Weekly WC",
                        "frequency": "every week", "due_date": "next saturday"}
        }
    """
    type: ActionType
    tank_id: UUID
    payload: dict[str, Any] = Field(default_factory=dict)


class LogParametersPayload(BaseModel):
    """
    Short field names as the assistant writes them.

    Mapped onto water_parameters columns by PARAMETER_FIELD_COLUMNS.
    """
    ph: float | None = Field(default=None, ge=0, le=14)
    ammonia: float | None = Field(default=None, ge=0)
    nitrite: float | None = Field(default=None, ge=0)
    nitrate: float | None = Field(default=None, ge=0)
    temperature: float | None = Field(default=None, ge=32, le=120)
    gh: float | None = Field(default=None, ge=0)
    kh: float | None = Field(default=None, ge=0)
    salinity: float | None = Field(default=None, ge=0, le=2)
    calcium: float | None = Field(default=None, ge=0)
    alkalinity: float | None = Field(default=None, ge=0)
    magnesium: float | None = Field(default=None, ge=0)
    phosphate: float | None = Field(default=None, ge=0)
    notes: str | None = Field(default=None, max_length=1000)

    @model_validator(mode="after")
    def require_one_value(self) -> "LogParametersPayload":
        if not self.values():
            raise ValueError("At least one parameter value is required")
        return self

    def values(self) -> dict[str, float]:
        return {
            name: getattr(self, name)
            for name in PARAMETER_FIELD_COLUMNS
            if getattr(self, name) is not None
        }


# Payload field -> water_parameters column
PARAMETER_FIELD_COLUMNS: dict[str, str] = {
    "ph": "ph",
    "ammonia": "ammonia_ppm",
    "nitrite": "nitrite_ppm",
    "nitrate": "nitrate_ppm",
    "temperature": "temperature_f",
    "gh": "gh_dgh",
    "kh": "kh_dgh",
    "salinity": "salinity",
    "calcium": "calcium_ppm",
    "alkalinity": "alkalinity_dkh",
    "magnesium": "magnesium_ppm",
    "phosphate": "phosphate_ppm",
}


class AddLivestockPayload(BaseModel):
    species_id: UUID | None = None
    species_name: str | None = Field(default=None, min_length=1, max_length=100)
    quantity: int = Field(default=1, ge=1, le=1000)
    nickname: str | None = Field(default=None, max_length=50)
    notes: str | None = Field(default=None, max_length=500)

    @model_validator(mode="after")
    def require_species(self) -> "AddLivestockPayload":
        if self.species_id is None and not self.species_name:
            raise ValueError("Either species_id or species_name is required")
        return self


class ScheduleMaintenancePayload(BaseModel):
    task_type: TaskType
    title: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    due_date: datetime
    frequency: TaskFrequency = TaskFrequency.ONCE
    custom_interval_days: int | None = Field(default=None, ge=1, le=365)
    reminder_before_hours: int = Field(default=24, ge=0, le=168)

    @model_validator(mode="after")
    def check_custom_interval(self) -> "ScheduleMaintenancePayload":
        if self.frequency == TaskFrequency.CUSTOM and not self.custom_interval_days:
            raise ValueError("custom_interval_days is required for custom frequency")
        return self


class CompleteMaintenancePayload(BaseModel):
    task_id: UUID
    notes: str | None = Field(default=None, max_length=1000)
