# =============================================================================
# lib/supabase_client.py - Supabase Client Wrapper
# =============================================================================
# This module provides a typed wrapper for Supabase database operations.
# It implements the singleton pattern to reuse a single client connection
# and provides the lookups shared by several services:
# - Tank ownership lookups
# - User profile, admin profile and subscription rows (tier resolution)
# - Stored procedure (RPC) calls used for atomic AI usage counting
#
# Service modules in core/services use get_client() directly for their own
# tables; anything used in more than one service lives here.
#
# Usage:
#   from lib.supabase_client import SupabaseClient
#   tank = SupabaseClient.fetch_tank(tank_id)
# =============================================================================

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from supabase import create_client, Client

from app.config import settings
from lib.utils import ApplicationError, normalize_uuid

# Set up logging for this module
logger = logging.getLogger(__name__)


class SupabaseClientError(ApplicationError):
    """
    Error during Supabase operations.

    Provides actionable error messages following the principle:
    "Errors should tell HOW to fix, not just WHAT failed."
    """

    def __init__(
        self,
        message: str,
        code: str = "SUPABASE_ERROR",
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, code=code, suggestion=suggestion, details=details)


def first_row(response: Any) -> dict[str, Any] | None:
    """Return the first row of a query response, or None when empty."""
    data = getattr(response, "data", None)
    if not data:
        return None
    if isinstance(data, list):
        return data[0]
    return data


class SupabaseClient:
    """
    Typed wrapper for Supabase database operations.

    Implements singleton pattern - one client instance is shared across
    the application. All methods are class methods for easy access without
    instantiation.

    Example:
        tank = SupabaseClient.fetch_tank("550e8400-...")
        allowed = SupabaseClient.rpc(
            "check_and_increment_ai_usage",
            {"user_uuid": user_id, "feature_name": "chat"},
        )
    """

    _instance: Client | None = None
    _auth_instance: Client | None = None

    @classmethod
    def get_client(cls) -> Client:
        """
        Get or create the singleton Supabase client.

        Uses service_role key which bypasses Row Level Security (RLS), so
        every service must filter by user_id itself.

        Raises:
            SupabaseClientError: If client creation fails
        """
        if cls._instance is None:
            try:
                cls._instance = create_client(
                    settings.SUPABASE_URL,
                    settings.SUPABASE_SERVICE_KEY
                )
                logger.info("Supabase client initialized successfully")
            except Exception as e:
                raise SupabaseClientError(
                    message=f"Failed to create Supabase client: {e}",
                    code="CLIENT_INIT_FAILED",
                    suggestion="Check SUPABASE_URL and SUPABASE_SERVICE_KEY in your .env file"
                )
        return cls._instance

    @classmethod
    def get_auth_client(cls) -> Client:
        """
        Client built with the anon key, used for password sign-in.

        Kept separate so a signed-in session never replaces the service
        role credentials on the shared client.
        """
        if cls._auth_instance is None:
            try:
                cls._auth_instance = create_client(
                    settings.SUPABASE_URL,
                    settings.SUPABASE_ANON_KEY
                )
            except Exception as e:
                raise SupabaseClientError(
                    message=f"Failed to create Supabase auth client: {e}",
                    code="CLIENT_INIT_FAILED",
                    suggestion="Check SUPABASE_URL and SUPABASE_ANON_KEY in your .env file"
                )
        return cls._auth_instance

    # -------------------------------------------------------------------------
    # Stored Procedures
    # -------------------------------------------------------------------------

    @classmethod
    def rpc(cls, function_name: str, params: dict[str, Any]) -> Any:
        """
        Call a Postgres function and return its data.

        Raises:
            SupabaseClientError: If the call fails
        """
        client = cls.get_client()
        try:
            response = client.rpc(function_name, params).execute()
            return response.data
        except Exception as e:
            raise SupabaseClientError(
                message=f"RPC {function_name} failed: {e}",
                code="RPC_FAILED",
                suggestion="Check that the database migrations defining this function were applied",
                details={"function": function_name},
            )

    # -------------------------------------------------------------------------
    # Tanks
    # -------------------------------------------------------------------------

    @classmethod
    def fetch_tank(
        cls,
        tank_id: str | UUID,
        columns: str = "*",
    ) -> dict[str, Any] | None:
        """
        Fetch a non-deleted tank by ID (no ownership filtering).

        Returns:
            Tank dict, or None if not found or soft-deleted
        """
        client = cls.get_client()
        tank_id_str = normalize_uuid(tank_id)

        try:
            response = (
                client.table("tanks")
                .select(columns)
                .eq("id", tank_id_str)
                .is_("deleted_at", "null")
                .limit(1)
                .execute()
            )
            return first_row(response)
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to fetch tank: {e}",
                code="FETCH_TANK_FAILED",
                details={"tank_id": tank_id_str},
            )

    @classmethod
    def count_user_tanks(cls, user_id: str | UUID) -> int:
        """Count a user's non-deleted tanks."""
        client = cls.get_client()
        try:
            response = (
                client.table("tanks")
                .select("id", count="exact")
                .eq("user_id", normalize_uuid(user_id))
                .is_("deleted_at", "null")
                .execute()
            )
            if response.count is not None:
                return response.count
            return len(response.data or [])
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to count tanks: {e}",
                code="COUNT_TANKS_FAILED",
                details={"user_id": normalize_uuid(user_id)},
            )

    # -------------------------------------------------------------------------
    # Users & Subscriptions
    # -------------------------------------------------------------------------

    @classmethod
    def _fetch_by(
        cls,
        table: str,
        column: str,
        value: str,
        columns: str = "*",
    ) -> dict[str, Any] | None:
        client = cls.get_client()
        try:
            response = (
                client.table(table)
                .select(columns)
                .eq(column, value)
                .limit(1)
                .execute()
            )
            return first_row(response)
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to fetch from {table}: {e}",
                code="FETCH_FAILED",
                details={"table": table, column: value},
            )

    @classmethod
    def fetch_user_profile(cls, user_id: str | UUID) -> dict[str, Any] | None:
        """Fetch the public.users row (skill level, units, stripe id, overrides)."""
        return cls._fetch_by("users", "id", normalize_uuid(user_id))

    @classmethod
    def fetch_subscription(cls, user_id: str | UUID) -> dict[str, Any] | None:
        """Fetch the user's subscription row, if they ever had one."""
        return cls._fetch_by("subscriptions", "user_id", normalize_uuid(user_id))

    @classmethod
    def fetch_subscription_by_customer(cls, customer_id: str) -> dict[str, Any] | None:
        return cls._fetch_by("subscriptions", "stripe_customer_id", customer_id)

    @classmethod
    def fetch_admin_profile(cls, user_id: str | UUID) -> dict[str, Any] | None:
        """Fetch the admin profile row; admins are treated as pro."""
        return cls._fetch_by("admin_profiles", "user_id", normalize_uuid(user_id))

    @classmethod
    def update_user(cls, user_id: str | UUID, data: dict[str, Any]) -> None:
        client = cls.get_client()
        try:
            client.table("users").update(data).eq("id", normalize_uuid(user_id)).execute()
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to update user: {e}",
                code="UPDATE_USER_FAILED",
                details={"user_id": normalize_uuid(user_id)},
            )
