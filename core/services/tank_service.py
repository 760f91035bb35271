# =============================================================================
# core/services/tank_service.py - Tank Business Logic
# =============================================================================
# Handles tank CRUD and the ownership check every tank-scoped service uses.
# Separates HTTP concerns from database/business logic.
#
# Ownership semantics:
#   - missing or soft-deleted tank  -> NOT_FOUND
#   - tank owned by another user    -> PERMISSION_DENIED
# =============================================================================

import logging
from typing import Any
from uuid import UUID

from app.exceptions import (
    InternalError,
    PermissionDeniedError,
    TankNotFoundError,
    TierRequiredError,
)
from core.models.tank import TankCreate, TankUpdate
from core.services.tier_service import TierService, get_tier_limits, tank_limit_message
from lib.supabase_client import SupabaseClient, first_row
from lib.utils import normalize_uuid, utc_now

logger = logging.getLogger(__name__)


class TankService:
    """
    Service for tank management operations.

    Provides a clean interface between API routes and database.
    """

    @staticmethod
    def get_owned_tank(
        tank_id: UUID | str,
        user_id: UUID | str,
        columns: str = "*",
    ) -> dict[str, Any]:
        """
        Fetch a tank and verify the user owns it.

        Raises:
            TankNotFoundError: If the tank doesn't exist or is deleted
            PermissionDeniedError: If another user owns it
        """
        tank_id_str = normalize_uuid(tank_id)
        tank = SupabaseClient.fetch_tank(tank_id_str, columns=columns)

        if not tank:
            raise TankNotFoundError(tank_id_str)

        if str(tank.get("user_id")) != normalize_uuid(user_id):
            logger.warning(f"User {user_id} tried to access tank {tank_id_str}")
            raise PermissionDeniedError("You do not have access to this tank")

        return tank

    @staticmethod
    def find_owned_tank(
        tank_id: UUID | str,
        user_id: UUID | str,
        columns: str = "*",
    ) -> dict[str, Any]:
        """
        Like get_owned_tank, but another user's tank is reported as NOT_FOUND.

        Used by chat, which never reveals that a tank exists.
        """
        tank_id_str = normalize_uuid(tank_id)
        tank = SupabaseClient.fetch_tank(tank_id_str, columns=columns)
        if not tank or str(tank.get("user_id")) != normalize_uuid(user_id):
            raise TankNotFoundError(tank_id_str)
        return tank

    @staticmethod
    def list_tanks(user_id: UUID | str) -> list[dict[str, Any]]:
        """List a user's non-deleted tanks, newest first."""
        client = SupabaseClient.get_client()
        try:
            response = (
                client.table("tanks")
                .select("*")
                .eq("user_id", normalize_uuid(user_id))
                .is_("deleted_at", "null")
                .order("created_at", desc=True)
                .execute()
            )
            return response.data or []
        except Exception as e:
            logger.error(f"Failed to list tanks for {user_id}: {e}")
            raise InternalError("Failed to fetch tanks")

    @staticmethod
    def create_tank(user_id: UUID | str, tank: TankCreate) -> dict[str, Any]:
        """
        Create a tank after checking the tier tank limit.

        Raises:
            TierRequiredError: If the user is at their tank limit
        """
        tier = TierService.get_user_tier(user_id)
        limit = get_tier_limits(tier).tanks
        current = SupabaseClient.count_user_tanks(user_id)

        if current >= limit:
            raise TierRequiredError(tank_limit_message(tier))

        data = tank.model_dump(mode="json", exclude_none=True)
        data["user_id"] = normalize_uuid(user_id)

        client = SupabaseClient.get_client()
        try:
            response = client.table("tanks").insert(data).execute()
        except Exception as e:
            logger.error(f"Failed to create tank: {e}")
            raise InternalError("Failed to create tank")

        created = first_row(response)
        if not created:
            raise InternalError("Failed to create tank")

        logger.info(f"Created tank {created.get('id')} for user {user_id} ({current + 1}/{limit})")
        return created

    @staticmethod
    def update_tank(
        tank_id: UUID | str,
        user_id: UUID | str,
        update: TankUpdate,
    ) -> dict[str, Any]:
        """Apply a partial update; only the fields that were sent change."""
        tank = TankService.get_owned_tank(tank_id, user_id)

        data = update.model_dump(mode="json", exclude_unset=True)
        if not data:
            return tank

        client = SupabaseClient.get_client()
        try:
            response = client.table("tanks").update(data).eq("id", tank["id"]).execute()
        except Exception as e:
            logger.error(f"Failed to update tank {tank['id']}: {e}")
            raise InternalError("Failed to update tank")

        return first_row(response) or {**tank, **data}

    @staticmethod
    def delete_tank(tank_id: UUID | str, user_id: UUID | str) -> dict[str, Any]:
        """Soft delete: sets deleted_at."""
        tank = TankService.get_owned_tank(tank_id, user_id, columns="id, user_id")

        client = SupabaseClient.get_client()
        try:
            client.table("tanks").update(
                {"deleted_at": utc_now().isoformat()}
            ).eq("id", tank["id"]).execute()
        except Exception as e:
            logger.error(f"Failed to delete tank {tank['id']}: {e}")
            raise InternalError("Failed to delete tank")

        logger.info(f"Soft-deleted tank {tank['id']}")
        return {"id": tank["id"], "deleted": True}
