# =============================================================================
# app/routers/equipment.py - Equipment Tracking Endpoints (Plus/Pro)
# =============================================================================
# Endpoints:
#   GET    /equipment/lifespan-defaults              - Default lifespan per type
#   GET    /tanks/{id}/equipment                     - Equipment + status summary
#   POST   /tanks/{id}/equipment
#   GET    /tanks/{id}/equipment/{equipment_id}
#   PATCH  /tanks/{id}/equipment/{equipment_id}
#   DELETE /tanks/{id}/equipment/{equipment_id}?reason=replaced
# =============================================================================

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, Request

from app.dependencies import CurrentUser
from app.responses import success_response
from core.models.equipment import EquipmentCreate, EquipmentUpdate
from core.services.equipment_service import EquipmentService

router = APIRouter()
defaults_router = APIRouter()

TankId = Annotated[UUID, Path(description="Tank UUID")]
EquipmentId = Annotated[UUID, Path(description="Equipment UUID")]


@defaults_router.get("/lifespan-defaults")
async def lifespan_defaults(request: Request, user: CurrentUser):
    """Expected lifespan in months per equipment type."""
    return success_response({"defaults": EquipmentService.get_lifespan_defaults()}, request=request)


@router.get("/{tank_id}/equipment")
async def list_equipment(tank_id: TankId, request: Request, user: CurrentUser):
    return success_response(EquipmentService.list_equipment(tank_id, user.id), request=request)


@router.post("/{tank_id}/equipment")
async def create_equipment(tank_id: TankId, body: EquipmentCreate, request: Request, user: CurrentUser):
    item = EquipmentService.create_equipment(tank_id, user.id, body)
    return success_response(item, status_code=201, request=request)


@router.get("/{tank_id}/equipment/{equipment_id}")
async def get_equipment(tank_id: TankId, equipment_id: EquipmentId, request: Request, user: CurrentUser):
    return success_response(EquipmentService.get_equipment(tank_id, user.id, equipment_id), request=request)


@router.patch("/{tank_id}/equipment/{equipment_id}")
async def update_equipment(
    tank_id: TankId,
    equipment_id: EquipmentId,
    body: EquipmentUpdate,
    request: Request,
    user: CurrentUser,
):
    return success_response(
        EquipmentService.update_equipment(tank_id, user.id, equipment_id, body),
        request=request,
    )


@router.delete("/{tank_id}/equipment/{equipment_id}")
async def delete_equipment(
    tank_id: TankId,
    equipment_id: EquipmentId,
    request: Request,
    user: CurrentUser,
    reason: Annotated[str, Query(description="replaced, removed, failed, sold or other")] = "removed",
):
    return success_response(
        EquipmentService.delete_equipment(tank_id, user.id, equipment_id, reason=reason),
        request=request,
    )
