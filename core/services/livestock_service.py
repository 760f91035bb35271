# =============================================================================
# core/services/livestock_service.py - Livestock Business Logic
# =============================================================================
# Fish, inverts and plants living in a tank. Adding a catalogued species runs
# the rule-based compatibility check; problems come back as warnings on the
# created row rather than blocking it.
# =============================================================================

import logging
from typing import Any
from uuid import UUID

from app.exceptions import InternalError, NotFoundError
from core.models.tank import LivestockCreate, LivestockUpdate
from core.services.compatibility_service import (
    CompatibilityService,
    basic_compatibility_check,
)
from core.services.species_service import SpeciesService
from core.services.tank_service import TankService
from lib.supabase_client import SupabaseClient, first_row
from lib.utils import normalize_uuid, utc_now

logger = logging.getLogger(__name__)

LIVESTOCK_COLUMNS = (
    "*, species:species_id (id, common_name, scientific_name, type, care_level, "
    "temperament, photo_url, temp_min_f, temp_max_f, min_tank_size_gallons)"
)


class LivestockService:
    """Service for livestock in a tank."""

    @staticmethod
    def list_livestock(tank_id: UUID | str, user_id: UUID | str) -> dict[str, Any]:
        """
        Active, non-deleted livestock with species details.

        total_count is the number of animals (sum of quantities).
        """
        tank = TankService.get_owned_tank(tank_id, user_id, columns="id, user_id")

        client = SupabaseClient.get_client()
        try:
            response = (
                client.table("livestock")
                .select(LIVESTOCK_COLUMNS)
                .eq("tank_id", tank["id"])
                .eq("is_active", True)
                .is_("deleted_at", "null")
                .order("created_at", desc=True)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to list livestock for tank {tank['id']}: {e}")
            raise InternalError("Failed to fetch livestock")

        rows = response.data or []
        return {
            "livestock": rows,
            "total_count": sum(int(row.get("quantity") or 0) for row in rows),
        }

    @staticmethod
    def add_livestock(
        tank_id: UUID | str,
        user_id: UUID | str,
        livestock: LivestockCreate,
    ) -> dict[str, Any]:
        """
        Insert a livestock row.

        Returns:
            {"livestock": row, "warnings": [message, ...]}
        """
        tank = TankService.get_owned_tank(tank_id, user_id)

        warnings: list[str] = []
        if livestock.species_id:
            species = SpeciesService.get_species(livestock.species_id)
            existing = CompatibilityService.get_active_livestock_with_species(tank["id"])
            result = basic_compatibility_check(tank, species, existing)
            warnings = [concern.message for concern in result.concerns]

        data = livestock.model_dump(mode="json", exclude_none=True)
        data["tank_id"] = tank["id"]
        data["is_active"] = True
        data.setdefault("date_added", utc_now().date().isoformat())

        client = SupabaseClient.get_client()
        try:
            response = client.table("livestock").insert(data).execute()
        except Exception as e:
            logger.error(f"Failed to add livestock to tank {tank['id']}: {e}")
            raise InternalError("Failed to add livestock")

        created = first_row(response)
        if not created:
            raise InternalError("Failed to add livestock")

        if warnings:
            logger.info(f"Livestock {created.get('id')} added with {len(warnings)} compatibility warning(s)")
        return {"livestock": created, "warnings": warnings}

    @staticmethod
    def _get_livestock(tank_id: str, livestock_id: UUID | str) -> dict[str, Any]:
        livestock_id = normalize_uuid(livestock_id)
        client = SupabaseClient.get_client()
        try:
            response = (
                client.table("livestock")
                .select("*")
                .eq("id", livestock_id)
                .eq("tank_id", tank_id)
                .is_("deleted_at", "null")
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to fetch livestock {livestock_id}: {e}")
            raise InternalError("Failed to fetch livestock")

        row = first_row(response)
        if not row:
            raise NotFoundError("Livestock", livestock_id)
        return row

    @staticmethod
    def update_livestock(
        tank_id: UUID | str,
        user_id: UUID | str,
        update: LivestockUpdate,
    ) -> dict[str, Any]:
        tank = TankService.get_owned_tank(tank_id, user_id, columns="id, user_id")
        row = LivestockService._get_livestock(tank["id"], update.livestock_id)

        data = update.model_dump(mode="json", exclude_unset=True, exclude={"livestock_id"})
        if not data:
            return row

        client = SupabaseClient.get_client()
        try:
            response = client.table("livestock").update(data).eq("id", row["id"]).execute()
        except Exception as e:
            logger.error(f"Failed to update livestock {row['id']}: {e}")
            raise InternalError("Failed to update livestock")

        return first_row(response) or {**row, **data}

    @staticmethod
    def delete_livestock(
        tank_id: UUID | str,
        user_id: UUID | str,
        livestock_id: UUID | str,
    ) -> dict[str, Any]:
        """Soft delete: deleted_at is set and the row is deactivated."""
        tank = TankService.get_owned_tank(tank_id, user_id, columns="id, user_id")
        row = LivestockService._get_livestock(tank["id"], livestock_id)

        client = SupabaseClient.get_client()
        try:
            client.table("livestock").update({
                "deleted_at": utc_now().isoformat(),
                "is_active": False,
            }).eq("id", row["id"]).execute()
        except Exception as e:
            logger.error(f"Failed to delete livestock {row['id']}: {e}")
            raise InternalError("Failed to delete livestock")

        return {"id": row["id"], "deleted": True}
