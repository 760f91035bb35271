# =============================================================================
# core/services/species_service.py - Species Catalogue
# =============================================================================
# Read-only access to the shared species table (no ownership).
# =============================================================================

import logging
from typing import Any
from uuid import UUID

from app.exceptions import InternalError, InvalidInputError, NotFoundError
from lib.supabase_client import SupabaseClient, first_row
from lib.utils import is_uuid, normalize_uuid

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 24
MAX_LIMIT = 100


def escape_ilike(term: str) -> str:
    """Strip characters that would break the PostgREST or() filter."""
    return "".join(ch for ch in term if ch not in ",()%*").strip()


class SpeciesService:
    """Service for species search and lookup."""

    @staticmethod
    def search_species(
        search: str | None = None,
        species_type: str | None = None,
        care_level: str | None = None,
        temperament: str | None = None,
        limit: int = DEFAULT_LIMIT,
        offset: int = 0,
    ) -> dict[str, Any]:
        """
        Filter the catalogue.

        Returns:
            {"species": [...], "count": total matches, "has_more": bool}
        """
        limit = max(1, min(limit, MAX_LIMIT))
        offset = max(0, offset)

        client = SupabaseClient.get_client()
        query = client.table("species").select("*", count="exact")

        term = escape_ilike(search or "")
        if term:
            query = query.or_(f"common_name.ilike.%{term}%,scientific_name.ilike.%{term}%")
        if species_type:
            query = query.eq("type", species_type)
        if care_level:
            query = query.eq("care_level", care_level)
        if temperament:
            query = query.eq("temperament", temperament)

        try:
            response = (
                query.order("common_name")
                .range(offset, offset + limit - 1)
                .execute()
            )
        except Exception as e:
            logger.error(f"Species search failed: {e}")
            raise InternalError("Failed to search species")

        rows = response.data or []
        total = response.count if response.count is not None else len(rows)
        return {
            "species": rows,
            "count": total,
            "has_more": offset + len(rows) < total,
        }

    @staticmethod
    def get_species(species_id: UUID | str) -> dict[str, Any]:
        species_id = normalize_uuid(species_id)
        if not is_uuid(species_id):
            raise InvalidInputError("Invalid species ID")

        client = SupabaseClient.get_client()
        try:
            response = (
                client.table("species")
                .select("*")
                .eq("id", species_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to fetch species {species_id}: {e}")
            raise InternalError("Failed to fetch species")

        species = first_row(response)
        if not species:
            raise NotFoundError("Species", species_id)
        return species

    @staticmethod
    def find_by_name(name: str) -> dict[str, Any] | None:
        """Best-effort lookup of a species by (partial) common name."""
        term = escape_ilike(name)
        if not term:
            return None

        client = SupabaseClient.get_client()
        try:
            response = (
                client.table("species")
                .select("*")
                .ilike("common_name", f"%{term}%")
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.warning(f"Species name lookup failed for '{name}': {e}")
            return None
        return first_row(response)
