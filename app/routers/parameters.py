# =============================================================================
# app/routers/parameters.py - Water Parameters & Thresholds
# =============================================================================
# Endpoints:
#   GET    /tanks/{id}/parameters              - Readings, newest first
#   POST   /tanks/{id}/parameters              - Log a reading
#   GET    /tanks/{id}/thresholds              - Custom + default thresholds
#   PUT    /tanks/{id}/thresholds              - Upsert one custom threshold
#   DELETE /tanks/{id}/thresholds/{type}       - Back to the default
# =============================================================================

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, Request

from app.dependencies import CurrentUser
from app.responses import success_response
from core.models.parameters import ThresholdType, ThresholdUpsert, WaterParameterCreate
from core.services.parameter_service import ParameterService

router = APIRouter()

TankId = Annotated[UUID, Path(description="Tank UUID")]


@router.get("/{tank_id}/parameters")
async def list_parameters(
    tank_id: TankId,
    request: Request,
    user: CurrentUser,
    start_date: Annotated[str | None, Query(description="ISO 8601 lower bound")] = None,
    end_date: Annotated[str | None, Query(description="ISO 8601 upper bound")] = None,
    limit: Annotated[int, Query(ge=1, le=1000)] = 100,
):
    result = ParameterService.list_parameters(tank_id, user.id, start_date, end_date, limit)
    return success_response(result, request=request)


@router.post("/{tank_id}/parameters")
async def log_parameters(tank_id: TankId, body: WaterParameterCreate, request: Request, user: CurrentUser):
    """Log a reading; measured_at defaults to now."""
    reading = ParameterService.log_parameters(tank_id, user.id, body)
    return success_response(reading, status_code=201, request=request)


@router.get("/{tank_id}/thresholds")
async def get_thresholds(tank_id: TankId, request: Request, user: CurrentUser):
    return success_response(ParameterService.get_thresholds(tank_id, user.id), request=request)


@router.put("/{tank_id}/thresholds")
async def upsert_threshold(tank_id: TankId, body: ThresholdUpsert, request: Request, user: CurrentUser):
    return success_response(ParameterService.upsert_threshold(tank_id, user.id, body), request=request)


@router.delete("/{tank_id}/thresholds/{parameter_type}")
async def reset_threshold(
    tank_id: TankId,
    parameter_type: Annotated[ThresholdType, Path(description="Threshold parameter type")],
    request: Request,
    user: CurrentUser,
):
    return success_response(
        ParameterService.reset_threshold(tank_id, user.id, parameter_type),
        request=request,
    )
