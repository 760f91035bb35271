# =============================================================================
# core/services/equipment_service.py - Equipment Tracking (Plus/Pro)
# =============================================================================
# Filters, heaters, lights and the like, with a replacement status:
#
#   age >= lifespan        -> overdue
#   age >= 80% lifespan    -> due_soon
#   otherwise              -> good
#
# Lifespan is the row's expected_lifespan_months, else the default for its
# type from equipment_lifespan_defaults, else DEFAULT_LIFESPAN_MONTHS.
# =============================================================================

import logging
from datetime import date
from typing import Any
from uuid import UUID

from app.exceptions import InternalError, InvalidInputError, NotFoundError
from core.models.equipment import EquipmentCreate, EquipmentStatus, EquipmentType, EquipmentUpdate
from core.services.tank_service import TankService
from core.services.tier_service import TierService
from lib.supabase_client import SupabaseClient, first_row
from lib.utils import normalize_uuid, parse_datetime, utc_now

logger = logging.getLogger(__name__)

TIER_MESSAGE = "Equipment tracking requires Plus or Pro plan. Upgrade to track your aquarium equipment."

DUE_SOON_RATIO = 0.8

DEFAULT_LIFESPAN_MONTHS: dict[str, int] = {
    EquipmentType.FILTER.value: 60,
    EquipmentType.FILTER_MEDIA.value: 6,
    EquipmentType.HEATER.value: 36,
    EquipmentType.LIGHT_BULB.value: 12,
    EquipmentType.LIGHT_LED.value: 60,
    EquipmentType.PROTEIN_SKIMMER.value: 60,
    EquipmentType.POWERHEAD.value: 36,
    EquipmentType.DOSING_PUMP.value: 48,
    EquipmentType.CONTROLLER.value: 60,
    EquipmentType.TEST_KIT.value: 12,
    EquipmentType.SUBSTRATE.value: 24,
    EquipmentType.MEDIA.value: 12,
    EquipmentType.CARBON.value: 1,
    EquipmentType.OTHER.value: 24,
}

DELETION_REASONS = ("replaced", "removed", "failed", "sold", "other")


def months_between(start: date, end: date) -> int:
    """Whole calendar months from start to end (never negative)."""
    months = (end.year - start.year) * 12 + (end.month - start.month)
    if end.day < start.day:
        months -= 1
    return max(0, months)


def equipment_status(age_months: int, lifespan_months: int) -> EquipmentStatus:
    if age_months >= lifespan_months:
        return EquipmentStatus.OVERDUE
    if age_months >= lifespan_months * DUE_SOON_RATIO:
        return EquipmentStatus.DUE_SOON
    return EquipmentStatus.GOOD


def with_status(
    row: dict[str, Any],
    defaults: dict[str, int],
    today: date | None = None,
) -> dict[str, Any]:
    """Row plus age_months, lifespan_months, months_remaining and status."""
    today = today or utc_now().date()
    purchased = parse_datetime(row.get("purchase_date"))
    age = months_between(purchased.date(), today) if purchased else 0
    lifespan = (
        row.get("expected_lifespan_months")
        or defaults.get(row.get("type"))
        or DEFAULT_LIFESPAN_MONTHS[EquipmentType.OTHER.value]
    )
    return {
        **row,
        "age_months": age,
        "lifespan_months": lifespan,
        "months_remaining": lifespan - age,
        "status": equipment_status(age, lifespan).value,
    }


def summarize(items: list[dict[str, Any]]) -> dict[str, Any]:
    summary: dict[str, Any] = {status.value: 0 for status in EquipmentStatus}
    for item in items:
        summary[item["status"]] += 1
    summary["total"] = len(items)
    summary["total_investment"] = round(
        sum(float(item.get("purchase_price") or 0) for item in items), 2
    )
    return summary


class EquipmentService:
    """Service for equipment rows (Plus and Pro only)."""

    @staticmethod
    def get_lifespan_defaults() -> dict[str, int]:
        """Per-type lifespan in months, database rows over built-in values."""
        defaults = dict(DEFAULT_LIFESPAN_MONTHS)
        client = SupabaseClient.get_client()
        try:
            rows = (
                client.table("equipment_lifespan_defaults")
                .select("*")
                .order("equipment_type")
                .execute()
            ).data or []
        except Exception as e:
            logger.warning(f"Lifespan defaults lookup failed, using built-in table: {e}")
            return defaults

        for row in rows:
            months = row.get("expected_lifespan_months") or row.get("lifespan_months")
            if row.get("equipment_type") and months:
                defaults[row["equipment_type"]] = int(months)
        return defaults

    @staticmethod
    def _authorize(tank_id: UUID | str, user_id: UUID | str) -> dict[str, Any]:
        TierService.require_feature(user_id, "equipment_tracking", TIER_MESSAGE)
        return TankService.get_owned_tank(tank_id, user_id, columns="id, user_id")

    @staticmethod
    def list_equipment(tank_id: UUID | str, user_id: UUID | str) -> dict[str, Any]:
        tank = EquipmentService._authorize(tank_id, user_id)

        client = SupabaseClient.get_client()
        try:
            rows = (
                client.table("equipment")
                .select("*")
                .eq("tank_id", tank["id"])
                .is_("deleted_at", "null")
                .order("purchase_date", desc=True)
                .execute()
            ).data or []
        except Exception as e:
            logger.error(f"Failed to list equipment for tank {tank['id']}: {e}")
            raise InternalError("Failed to fetch equipment")

        defaults = EquipmentService.get_lifespan_defaults()
        today = utc_now().date()
        items = [with_status(row, defaults, today) for row in rows]
        return {"equipment": items, "summary": summarize(items)}

    @staticmethod
    def _get_row(tank_id: str, equipment_id: UUID | str) -> dict[str, Any]:
        equipment_id = normalize_uuid(equipment_id)
        client = SupabaseClient.get_client()
        try:
            response = (
                client.table("equipment")
                .select("*")
                .eq("id", equipment_id)
                .eq("tank_id", tank_id)
                .is_("deleted_at", "null")
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to fetch equipment {equipment_id}: {e}")
            raise InternalError("Failed to fetch equipment")

        row = first_row(response)
        if not row:
            raise NotFoundError("Equipment", equipment_id)
        return row

    @staticmethod
    def get_equipment(
        tank_id: UUID | str,
        user_id: UUID | str,
        equipment_id: UUID | str,
    ) -> dict[str, Any]:
        tank = EquipmentService._authorize(tank_id, user_id)
        row = EquipmentService._get_row(tank["id"], equipment_id)
        return with_status(row, EquipmentService.get_lifespan_defaults())

    @staticmethod
    def create_equipment(
        tank_id: UUID | str,
        user_id: UUID | str,
        equipment: EquipmentCreate,
    ) -> dict[str, Any]:
        tank = EquipmentService._authorize(tank_id, user_id)

        data = equipment.model_dump(mode="json", exclude_none=True)
        data["tank_id"] = tank["id"]

        client = SupabaseClient.get_client()
        try:
            response = client.table("equipment").insert(data).execute()
        except Exception as e:
            logger.error(f"Failed to create equipment for tank {tank['id']}: {e}")
            raise InternalError("Failed to create equipment")

        created = first_row(response)
        if not created:
            raise InternalError("Failed to create equipment")
        return with_status(created, EquipmentService.get_lifespan_defaults())

    @staticmethod
    def update_equipment(
        tank_id: UUID | str,
        user_id: UUID | str,
        equipment_id: UUID | str,
        update: EquipmentUpdate,
    ) -> dict[str, Any]:
        tank = EquipmentService._authorize(tank_id, user_id)
        row = EquipmentService._get_row(tank["id"], equipment_id)

        data = update.model_dump(mode="json", exclude_unset=True)
        if data:
            client = SupabaseClient.get_client()
            try:
                response = client.table("equipment").update(data).eq("id", row["id"]).execute()
            except Exception as e:
                logger.error(f"Failed to update equipment {row['id']}: {e}")
                raise InternalError("Failed to update equipment")
            row = first_row(response) or {**row, **data}

        return with_status(row, EquipmentService.get_lifespan_defaults())

    @staticmethod
    def delete_equipment(
        tank_id: UUID | str,
        user_id: UUID | str,
        equipment_id: UUID | str,
        reason: str = "removed",
    ) -> dict[str, Any]:
        """Soft delete, recording why the equipment left the tank."""
        if reason not in DELETION_REASONS:
            raise InvalidInputError(
                f"Invalid reason: {reason}",
                details={"allowed": list(DELETION_REASONS)},
            )

        tank = EquipmentService._authorize(tank_id, user_id)
        row = EquipmentService._get_row(tank["id"], equipment_id)

        client = SupabaseClient.get_client()
        try:
            client.table("equipment").update({
                "deleted_at": utc_now().isoformat(),
                "deletion_reason": reason,
            }).eq("id", row["id"]).execute()
        except Exception as e:
            logger.error(f"Failed to delete equipment {row['id']}: {e}")
            raise InternalError("Failed to delete equipment")

        return {"id": row["id"], "deleted": True, "reason": reason}
