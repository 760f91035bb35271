# =============================================================================
# core/services/notification_service.py - Notification Preferences
# =============================================================================
# One notification_preferences row per user, created with the table's
# defaults the first time it is read. Two first reads racing each other
# hit the unique constraint on user_id (23505); the loser re-reads.
# =============================================================================

import logging
from typing import Any
from uuid import UUID

from app.exceptions import InternalError, InvalidInputError
from core.models.notifications import NotificationPreferencesUpdate
from lib.supabase_client import SupabaseClient, first_row
from lib.utils import normalize_uuid

logger = logging.getLogger(__name__)

TABLE = "notification_preferences"
UNIQUE_VIOLATION = "23505"


def _is_unique_violation(error: Exception) -> bool:
    return getattr(error, "code", None) == UNIQUE_VIOLATION or UNIQUE_VIOLATION in str(error)


class NotificationService:
    """Reads and writes notification preferences."""

    @staticmethod
    def _fetch(user_id: str) -> dict[str, Any] | None:
        client = SupabaseClient.get_client()
        try:
            response = client.table(TABLE).select("*").eq("user_id", user_id).limit(1).execute()
        except Exception as e:
            logger.error(f"Failed to fetch notification preferences for {user_id}: {e}")
            raise InternalError("Failed to fetch notification preferences")
        return first_row(response)

    @staticmethod
    def get_preferences(user_id: UUID | str) -> dict[str, Any]:
        """The user's preferences, inserting the default row when missing."""
        user_id = normalize_uuid(user_id)
        preferences = NotificationService._fetch(user_id)
        if preferences:
            return preferences

        client = SupabaseClient.get_client()
        try:
            response = client.table(TABLE).insert({"user_id": user_id}).execute()
        except Exception as e:
            if _is_unique_violation(e):
                preferences = NotificationService._fetch(user_id)
                if preferences:
                    return preferences
            logger.error(f"Failed to create notification preferences for {user_id}: {e}")
            raise InternalError("Failed to create notification preferences")

        created = first_row(response)
        if not created:
            raise InternalError("Failed to create notification preferences")
        logger.info(f"Created default notification preferences for {user_id}")
        return created

    @staticmethod
    def update_preferences(
        user_id: UUID | str,
        data: NotificationPreferencesUpdate,
    ) -> dict[str, Any]:
        """
        Partial update; inserts the row if the user has none yet.

        Raises:
            InvalidInputError: If the body sets no fields
        """
        updates = data.model_dump(exclude_none=True)
        if not updates:
            raise InvalidInputError("No fields to update")

        user_id = normalize_uuid(user_id)
        existing = NotificationService._fetch(user_id)

        client = SupabaseClient.get_client()
        try:
            if existing:
                response = client.table(TABLE).update(updates).eq("user_id", user_id).execute()
            else:
                response = client.table(TABLE).insert({"user_id": user_id, **updates}).execute()
        except Exception as e:
            logger.error(f"Failed to save notification preferences for {user_id}: {e}")
            raise InternalError("Failed to update notification preferences")

        saved = first_row(response)
        if not saved:
            raise InternalError("Failed to update notification preferences")
        return saved
