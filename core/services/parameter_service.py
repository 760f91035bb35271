# =============================================================================
# core/services/parameter_service.py - Water Parameters & Thresholds
# =============================================================================
# Water test logging and per-tank safe/warning ranges.
#
# Threshold resolution for one parameter type:
#   custom row in parameter_thresholds  -> is_custom: true
#   get_parameter_thresholds() RPC      -> database default (species/tank type)
#   neither                             -> all bounds null
# =============================================================================

import logging
from datetime import datetime
from typing import Any
from uuid import UUID

from app.exceptions import InternalError, InvalidInputError
from core.models.parameters import ThresholdType, ThresholdUpsert, WaterParameterCreate
from core.services.tank_service import TankService
from lib.supabase_client import SupabaseClient, SupabaseClientError, first_row
from lib.utils import parse_datetime, utc_now

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 100
MAX_LIMIT = 1000

THRESHOLD_BOUNDS = ("safe_min", "safe_max", "warning_min", "warning_max")


def _to_float(value: Any) -> float | None:
    return None if value is None else float(value)


def threshold_values(row: dict[str, Any] | None, is_custom: bool) -> dict[str, Any]:
    """Numeric bounds from a thresholds row (Postgres numerics arrive as strings)."""
    row = row or {}
    values: dict[str, Any] = {bound: _to_float(row.get(bound)) for bound in THRESHOLD_BOUNDS}
    values["is_custom"] = is_custom
    return values


def _parse_filter_date(value: str | None, name: str) -> datetime | None:
    try:
        return parse_datetime(value)
    except ValueError:
        raise InvalidInputError(f"Invalid {name} format. Use ISO 8601 format.")


class ParameterService:
    """Service for water parameter readings and thresholds."""

    # -------------------------------------------------------------------------
    # Readings
    # -------------------------------------------------------------------------

    @staticmethod
    def list_parameters(
        tank_id: UUID | str,
        user_id: UUID | str,
        start_date: str | None = None,
        end_date: str | None = None,
        limit: int = DEFAULT_LIMIT,
    ) -> dict[str, Any]:
        """
        Readings for a tank, newest first.

        Raises:
            InvalidInputError: If a date filter isn't ISO 8601
        """
        start = _parse_filter_date(start_date, "start_date")
        end = _parse_filter_date(end_date, "end_date")
        tank = TankService.get_owned_tank(tank_id, user_id, columns="id, user_id")

        client = SupabaseClient.get_client()
        query = (
            client.table("water_parameters")
            .select("*")
            .eq("tank_id", tank["id"])
        )
        if start:
            query = query.gte("measured_at", start.isoformat())
        if end:
            query = query.lte("measured_at", end.isoformat())

        try:
            response = (
                query.order("measured_at", desc=True)
                .limit(max(1, min(limit, MAX_LIMIT)))
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to fetch parameters for tank {tank['id']}: {e}")
            raise InternalError("Failed to fetch water parameters")

        rows = response.data or []
        return {"parameters": rows, "count": len(rows)}

    @staticmethod
    def log_parameters(
        tank_id: UUID | str,
        user_id: UUID | str,
        reading: WaterParameterCreate,
    ) -> dict[str, Any]:
        tank = TankService.get_owned_tank(tank_id, user_id, columns="id, user_id")

        data: dict[str, Any] = dict(reading.readings())
        data["tank_id"] = tank["id"]
        data["measured_at"] = (reading.measured_at or utc_now()).isoformat()
        if reading.notes:
            data["notes"] = reading.notes

        client = SupabaseClient.get_client()
        try:
            response = client.table("water_parameters").insert(data).execute()
        except Exception as e:
            logger.error(f"Failed to log parameters for tank {tank['id']}: {e}")
            raise InternalError("Failed to save water parameters")

        created = first_row(response)
        if not created:
            raise InternalError("Failed to save water parameters")
        return created

    # -------------------------------------------------------------------------
    # Thresholds
    # -------------------------------------------------------------------------

    @staticmethod
    def fetch_custom_thresholds(tank_id: str) -> dict[str, dict[str, Any]]:
        """Custom rows keyed by parameter_type."""
        client = SupabaseClient.get_client()
        try:
            response = (
                client.table("parameter_thresholds")
                .select("*")
                .eq("tank_id", tank_id)
                .execute()
            )
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to fetch thresholds: {e}",
                code="FETCH_THRESHOLDS_FAILED",
                details={"tank_id": tank_id},
            )
        return {row["parameter_type"]: row for row in (response.data or [])}

    @staticmethod
    def fetch_default_threshold(tank_id: str, parameter_type: str) -> dict[str, Any] | None:
        """Database default for one parameter, or None if the RPC has nothing."""
        try:
            rows = SupabaseClient.rpc(
                "get_parameter_thresholds",
                {"tank_uuid": tank_id, "param_type": parameter_type},
            )
        except SupabaseClientError as e:
            logger.warning(f"Default threshold lookup failed for {parameter_type}: {e.message}")
            return None
        if isinstance(rows, list):
            return rows[0] if rows else None
        return rows or None

    @staticmethod
    def get_thresholds(tank_id: UUID | str, user_id: UUID | str) -> dict[str, Any]:
        """Every threshold type, custom where set, default otherwise."""
        tank = TankService.get_owned_tank(tank_id, user_id, columns="id, user_id")

        try:
            custom = ParameterService.fetch_custom_thresholds(tank["id"])
        except SupabaseClientError as e:
            logger.error(e.message)
            raise InternalError("Failed to fetch thresholds")

        thresholds: dict[str, dict[str, Any]] = {}
        for parameter_type in ThresholdType:
            key = parameter_type.value
            if key in custom:
                thresholds[key] = threshold_values(custom[key], is_custom=True)
            else:
                default = ParameterService.fetch_default_threshold(tank["id"], key)
                thresholds[key] = threshold_values(default, is_custom=False)

        return {"thresholds": thresholds}

    @staticmethod
    def upsert_threshold(
        tank_id: UUID | str,
        user_id: UUID | str,
        threshold: ThresholdUpsert,
    ) -> dict[str, Any]:
        tank = TankService.get_owned_tank(tank_id, user_id, columns="id, user_id")

        data = threshold.model_dump(mode="json")
        data["tank_id"] = tank["id"]

        client = SupabaseClient.get_client()
        try:
            response = (
                client.table("parameter_thresholds")
                .upsert(data, on_conflict="tank_id,parameter_type")
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to save threshold for tank {tank['id']}: {e}")
            raise InternalError("Failed to save threshold")

        row = first_row(response) or data
        return {"threshold": {**row, **threshold_values(row, is_custom=True)}}

    @staticmethod
    def reset_threshold(
        tank_id: UUID | str,
        user_id: UUID | str,
        parameter_type: ThresholdType,
    ) -> dict[str, Any]:
        """Delete the custom row so the default applies again."""
        tank = TankService.get_owned_tank(tank_id, user_id, columns="id, user_id")

        client = SupabaseClient.get_client()
        try:
            (
                client.table("parameter_thresholds")
                .delete()
                .eq("tank_id", tank["id"])
                .eq("parameter_type", parameter_type.value)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to reset threshold {parameter_type.value}: {e}")
            raise InternalError("Failed to delete threshold")

        return {"message": "Reset to defaults", "parameter_type": parameter_type.value}
