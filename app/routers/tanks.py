# =============================================================================
# app/routers/tanks.py - Tank CRUD Endpoints
# =============================================================================
# Tanks are the organizing entity for livestock, parameters, maintenance
# and equipment. All endpoints require authentication.
# =============================================================================

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Request

from app.dependencies import CurrentUser
from app.responses import success_response
from core.models.tank import TankCreate, TankUpdate
from core.services.tank_service import TankService

router = APIRouter()

TankId = Annotated[UUID, Path(description="Tank UUID")]


@router.get("")
async def list_tanks(request: Request, user: CurrentUser):
    """List the user's tanks, newest first."""
    tanks = TankService.list_tanks(user.id)
    return success_response({"tanks": tanks, "count": len(tanks)}, request=request)


@router.post("")
async def create_tank(body: TankCreate, request: Request, user: CurrentUser):
    """
    Create a tank.

    Fails with TIER_REQUIRED once the plan's tank limit is reached.
    """
    tank = TankService.create_tank(user.id, body)
    return success_response(tank, status_code=201, request=request)


@router.get("/{tank_id}")
async def get_tank(tank_id: TankId, request: Request, user: CurrentUser):
    return success_response(TankService.get_owned_tank(tank_id, user.id), request=request)


@router.patch("/{tank_id}")
async def update_tank(tank_id: TankId, body: TankUpdate, request: Request, user: CurrentUser):
    return success_response(TankService.update_tank(tank_id, user.id, body), request=request)


@router.delete("/{tank_id}")
async def delete_tank(tank_id: TankId, request: Request, user: CurrentUser):
    """Soft delete; the tank's history stays in the database."""
    return success_response(TankService.delete_tank(tank_id, user.id), request=request)
