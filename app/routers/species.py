# =============================================================================
# app/routers/species.py - Species Catalogue
# =============================================================================
# Read-only; responses are privately cacheable for five minutes.
# =============================================================================

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, Request

from app.dependencies import CurrentUser
from app.responses import success_response
from core.services.species_service import DEFAULT_LIMIT, MAX_LIMIT, SpeciesService

router = APIRouter()

CACHE_HEADERS = {"Cache-Control": "private, max-age=300, stale-while-revalidate=60"}


@router.get("")
async def search_species(
    request: Request,
    user: CurrentUser,
    search: Annotated[str | None, Query(max_length=100, description="Common or scientific name")] = None,
    type: Annotated[str | None, Query(description="freshwater, saltwater, ...")] = None,
    care_level: Annotated[str | None, Query()] = None,
    temperament: Annotated[str | None, Query()] = None,
    limit: Annotated[int, Query(ge=1, le=MAX_LIMIT)] = DEFAULT_LIMIT,
    offset: Annotated[int, Query(ge=0)] = 0,
):
    result = SpeciesService.search_species(
        search=search,
        species_type=type,
        care_level=care_level,
        temperament=temperament,
        limit=limit,
        offset=offset,
    )
    return success_response(result, request=request, headers=CACHE_HEADERS)


@router.get("/{species_id}")
async def get_species(
    species_id: Annotated[UUID, Path(description="Species UUID")],
    request: Request,
    user: CurrentUser,
):
    return success_response(SpeciesService.get_species(species_id), request=request, headers=CACHE_HEADERS)
