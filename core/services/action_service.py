# =============================================================================
# core/services/action_service.py - AI Action Execution
# =============================================================================
# Executes an action the assistant proposed and the user confirmed.
#
#   ActionRequest {type, tank_id, payload}
#       -> lib.normalizers.normalize_action_payload()   ("next saturday" ...)
#       -> payload model validation                      (INVALID_INPUT)
#       -> per-type executor
#       -> {action_id, executed_at, result{..., summary}}
# =============================================================================

import logging
from datetime import datetime
from typing import Any, Callable

from pydantic import BaseModel, ValidationError

from app.exceptions import (
    ConflictError,
    InternalError,
    InvalidInputError,
    NotFoundError,
    RateLimitExceededError,
    format_validation_errors,
)
from core.models.actions import (
    PARAMETER_FIELD_COLUMNS,
    ActionRequest,
    ActionType,
    AddLivestockPayload,
    CompleteMaintenancePayload,
    LogParametersPayload,
    ScheduleMaintenancePayload,
)
from core.models.maintenance import TaskFrequency
from core.services.compatibility_service import (
    CompatibilityService,
    has_peaceful_resident,
    is_water_type_mismatch,
)
from core.services.maintenance_service import MaintenanceService
from core.services.species_service import SpeciesService
from core.services.tank_service import TankService
from lib.normalizers import normalize_action_payload
from lib.supabase_client import SupabaseClient, first_row
from lib.utils import normalize_uuid, today_iso, utc_now

logger = logging.getLogger(__name__)

MAX_DAILY_PARAMETER_ENTRIES = 50

# Payload field -> (label, unit suffix) for the log_parameters summary
PARAMETER_LABELS: dict[str, tuple[str, str]] = {
    "ph": ("pH", ""),
    "ammonia": ("ammonia", " ppm"),
    "nitrite": ("nitrite", " ppm"),
    "nitrate": ("nitrate", " ppm"),
    "temperature": ("temperature", "°F"),
    "gh": ("GH", " dGH"),
    "kh": ("KH", " dKH"),
    "salinity": ("salinity", ""),
    "calcium": ("calcium", " ppm"),
    "alkalinity": ("alkalinity", " dKH"),
    "magnesium": ("magnesium", " ppm"),
    "phosphate": ("phosphate", " ppm"),
}


def describe_logged_values(values: dict[str, float]) -> list[str]:
    """["pH 7.2", "ammonia 0.25 ppm", ...] in payload field order."""
    return [
        f"{PARAMETER_LABELS[name][0]} {value}{PARAMETER_LABELS[name][1]}"
        for name, value in values.items()
    ]


def livestock_compatibility_warnings(
    tank: dict[str, Any],
    species: dict[str, Any],
    existing: list[dict[str, Any]],
) -> list[str]:
    """Blocking concerns for an assistant-added species."""
    name = species.get("common_name") or "This species"
    warnings = []
    if is_water_type_mismatch(tank.get("type"), species.get("type")):
        warnings.append(
            f"{name} is a {species.get('type')} species but your tank is {tank.get('type')}. "
            "This may cause health issues."
        )
    if species.get("temperament") == "aggressive" and has_peaceful_resident(existing):
        warnings.append(f"{name} is aggressive and may harm peaceful fish in your tank.")
    return warnings


def _validate(model: type[BaseModel], payload: dict[str, Any]) -> Any:
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise InvalidInputError(format_validation_errors(e.errors()) or "Invalid action payload")


def _action_response(action_id: Any, executed_at: Any, result: dict[str, Any]) -> dict[str, Any]:
    return {
        "action_id": action_id,
        "executed_at": executed_at or utc_now().isoformat(),
        "result": result,
    }


class ActionService:
    """Dispatches confirmed AI actions."""

    @staticmethod
    def execute(user_id: str, request: ActionRequest) -> dict[str, Any]:
        """
        Run one action against an owned tank.

        Raises:
            TankNotFoundError / PermissionDeniedError: Tank access
            InvalidInputError: Payload fails validation after normalization
        """
        tank = TankService.get_owned_tank(request.tank_id, user_id)
        payload = normalize_action_payload(request.type.value, request.payload)

        executors: dict[ActionType, Callable[[dict[str, Any], dict[str, Any]], dict[str, Any]]] = {
            ActionType.LOG_PARAMETERS: ActionService.log_parameters,
            ActionType.ADD_LIVESTOCK: ActionService.add_livestock,
            ActionType.SCHEDULE_MAINTENANCE: ActionService.schedule_maintenance,
            ActionType.COMPLETE_MAINTENANCE: ActionService.complete_maintenance,
        }

        logger.info(f"Executing {request.type.value} on tank {tank['id']} for user {user_id}")
        return executors[request.type](tank, payload)

    # -------------------------------------------------------------------------
    # log_parameters
    # -------------------------------------------------------------------------

    @staticmethod
    def count_entries_today(tank_id: str) -> int:
        today = today_iso()
        client = SupabaseClient.get_client()
        try:
            response = (
                client.table("water_parameters")
                .select("id", count="exact")
                .eq("tank_id", tank_id)
                .gte("measured_at", f"{today}T00:00:00Z")
                .lt("measured_at", f"{today}T23:59:59Z")
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to count today's parameter entries: {e}")
            raise InternalError("Failed to log parameters")
        if response.count is not None:
            return response.count
        return len(response.data or [])

    @staticmethod
    def log_parameters(tank: dict[str, Any], payload: dict[str, Any]) -> dict[str, Any]:
        data: LogParametersPayload = _validate(LogParametersPayload, payload)

        if ActionService.count_entries_today(tank["id"]) >= MAX_DAILY_PARAMETER_ENTRIES:
            raise RateLimitExceededError(
                f"Maximum {MAX_DAILY_PARAMETER_ENTRIES} parameter entries per day per tank. "
                "Please try again tomorrow."
            )

        values = data.values()
        row: dict[str, Any] = {PARAMETER_FIELD_COLUMNS[name]: value for name, value in values.items()}
        row["tank_id"] = tank["id"]
        row["measured_at"] = utc_now().isoformat()
        if data.notes and data.notes.strip():
            row["notes"] = data.notes.strip()

        client = SupabaseClient.get_client()
        try:
            created = first_row(client.table("water_parameters").insert(row).execute())
        except Exception as e:
            logger.error(f"Failed to log parameters via action: {e}")
            raise InternalError("Failed to log parameters")
        if not created:
            raise InternalError("Failed to log parameters")

        logged = describe_logged_values(values)
        return _action_response(created["id"], created.get("created_at"), {
            "parameter_id": created["id"],
            "tank_name": tank.get("name"),
            "logged_parameters": logged,
            "summary": f"Logged {', '.join(logged)} for {tank.get('name')}",
        })

    # -------------------------------------------------------------------------
    # add_livestock
    # -------------------------------------------------------------------------

    @staticmethod
    def add_livestock(tank: dict[str, Any], payload: dict[str, Any]) -> dict[str, Any]:
        """
        Add livestock by catalogue id or by name.

        A name that matches nothing in the catalogue is stored as custom_name.

        Raises:
            NotFoundError: species_id not in the catalogue
            ConflictError: Water type mismatch or aggressive-vs-peaceful
        """
        data: AddLivestockPayload = _validate(AddLivestockPayload, payload)

        species: dict[str, Any] | None
        if data.species_id:
            try:
                species = SpeciesService.get_species(data.species_id)
            except NotFoundError:
                raise NotFoundError("Species")
            existing = CompatibilityService.get_active_livestock_with_species(tank["id"])
            warnings = livestock_compatibility_warnings(tank, species, existing)
            if warnings:
                raise ConflictError(f"Compatibility concerns: {' '.join(warnings)}")
        else:
            species = SpeciesService.find_by_name(data.species_name)

        species_name = species["common_name"] if species else data.species_name
        row = {
            "tank_id": tank["id"],
            "species_id": species["id"] if species else None,
            "custom_name": None if species else data.species_name,
            "nickname": data.nickname,
            "quantity": data.quantity,
            "notes": data.notes,
            "date_added": today_iso(),
            "is_active": True,
        }

        client = SupabaseClient.get_client()
        try:
            created = first_row(client.table("livestock").insert(row).execute())
        except Exception as e:
            logger.error(f"Failed to add livestock via action: {e}")
            raise InternalError("Failed to add livestock")
        if not created:
            raise InternalError("Failed to add livestock")

        return _action_response(created["id"], created.get("created_at"), {
            "livestock_id": created["id"],
            "tank_name": tank.get("name"),
            "species_name": species_name,
            "quantity": data.quantity,
            "summary": f"Added {data.quantity} {species_name} to {tank.get('name')}",
        })

    # -------------------------------------------------------------------------
    # schedule_maintenance
    # -------------------------------------------------------------------------

    @staticmethod
    def schedule_maintenance(tank: dict[str, Any], payload: dict[str, Any]) -> dict[str, Any]:
        data: ScheduleMaintenancePayload = _validate(ScheduleMaintenancePayload, payload)

        due: datetime = data.due_date
        if data.frequency != TaskFrequency.ONCE and due.date() < utc_now().date():
            raise InvalidInputError("Due date cannot be in the past for recurring tasks")

        due_date = due.date().isoformat()
        row = {
            "tank_id": tank["id"],
            "type": data.task_type.value,
            "title": data.title.strip(),
            "description": data.description.strip() if data.description else None,
            "frequency": data.frequency.value,
            "custom_interval_days": data.custom_interval_days,
            "next_due_date": due_date,
            "reminder_before_hours": data.reminder_before_hours,
            "is_active": True,
        }

        client = SupabaseClient.get_client()
        try:
            created = first_row(client.table("maintenance_tasks").insert(row).execute())
        except Exception as e:
            logger.error(f"Failed to schedule maintenance via action: {e}")
            raise InternalError("Failed to schedule maintenance task")
        if not created:
            raise InternalError("Failed to schedule maintenance task")

        return _action_response(created["id"], created.get("created_at"), {
            "task_id": created["id"],
            "tank_name": tank.get("name"),
            "task_type": data.task_type.value,
            "title": data.title,
            "due_date": due_date,
            "frequency": data.frequency.value,
            "summary": f'Scheduled "{data.title}" for {tank.get("name")} on {due_date}',
        })

    # -------------------------------------------------------------------------
    # complete_maintenance
    # -------------------------------------------------------------------------

    @staticmethod
    def complete_maintenance(tank: dict[str, Any], payload: dict[str, Any]) -> dict[str, Any]:
        data: CompleteMaintenancePayload = _validate(CompleteMaintenancePayload, payload)
        task_id = normalize_uuid(data.task_id)

        try:
            task = MaintenanceService.get_task_row(tank["id"], task_id)
        except NotFoundError:
            raise NotFoundError("Maintenance task")

        completed = MaintenanceService.complete_task_row(task, notes=data.notes)
        log = completed["log"]
        updated = completed["task"]

        return _action_response(log["id"], log.get("completed_at"), {
            "log_id": log["id"],
            "task_id": task_id,
            "task_title": task.get("title"),
            "tank_name": tank.get("name"),
            "completed_at": log.get("completed_at"),
            "next_due_date": updated.get("next_due_date") if updated.get("is_active", True) else None,
            "summary": f'Completed "{task.get("title")}" for {tank.get("name")}',
        })
