# =============================================================================
# app/routers/livestock.py - Livestock Endpoints
# =============================================================================
# Fish, invertebrates and plants living in a tank.
# =============================================================================

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Request

from app.dependencies import CurrentUser
from app.responses import success_response
from core.models.tank import LivestockCreate, LivestockUpdate
from core.services.livestock_service import LivestockService

router = APIRouter()

TankId = Annotated[UUID, Path(description="Tank UUID")]


@router.get("/{tank_id}/livestock")
async def list_livestock(tank_id: TankId, request: Request, user: CurrentUser):
    """Active livestock with species details; total_count sums quantities."""
    return success_response(LivestockService.list_livestock(tank_id, user.id), request=request)


@router.post("/{tank_id}/livestock")
async def add_livestock(tank_id: TankId, body: LivestockCreate, request: Request, user: CurrentUser):
    """
    Add livestock by species_id or custom_name.

    Compatibility problems come back as `warnings`; the row is still added.
    """
    result = LivestockService.add_livestock(tank_id, user.id, body)
    return success_response(result, status_code=201, request=request)


@router.patch("/{tank_id}/livestock")
async def update_livestock(tank_id: TankId, body: LivestockUpdate, request: Request, user: CurrentUser):
    return success_response(LivestockService.update_livestock(tank_id, user.id, body), request=request)


@router.delete("/{tank_id}/livestock/{livestock_id}")
async def delete_livestock(
    tank_id: TankId,
    livestock_id: Annotated[UUID, Path(description="Livestock UUID")],
    request: Request,
    user: CurrentUser,
):
    return success_response(
        LivestockService.delete_livestock(tank_id, user.id, livestock_id),
        request=request,
    )
