# =============================================================================
# app/routers/maintenance.py - Maintenance Scheduling Endpoints
# =============================================================================
# Recurring and one-off maintenance tasks for a tank, plus completion logs.
# =============================================================================

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, Request

from app.dependencies import CurrentUser
from app.responses import success_response
from core.models.maintenance import MaintenanceComplete, MaintenanceTaskCreate, MaintenanceTaskUpdate
from core.services.maintenance_service import MaintenanceService

router = APIRouter()

TankId = Annotated[UUID, Path(description="Tank UUID")]
TaskId = Annotated[UUID, Path(description="Maintenance task UUID")]


@router.get("/{tank_id}/maintenance")
async def list_tasks(
    tank_id: TankId,
    request: Request,
    user: CurrentUser,
    include_inactive: Annotated[bool, Query(description="Include completed one-off tasks")] = False,
):
    """Tasks ordered by next_due_date, each with overdue and completion_count."""
    result = MaintenanceService.list_tasks(tank_id, user.id, include_inactive=include_inactive)
    return success_response(result, request=request)


@router.post("/{tank_id}/maintenance")
async def create_task(tank_id: TankId, body: MaintenanceTaskCreate, request: Request, user: CurrentUser):
    task = MaintenanceService.create_task(tank_id, user.id, body)
    return success_response(task, status_code=201, request=request)


@router.get("/{tank_id}/maintenance/{task_id}")
async def get_task(tank_id: TankId, task_id: TaskId, request: Request, user: CurrentUser):
    """One task with its most recent completion logs."""
    return success_response(MaintenanceService.get_task(tank_id, user.id, task_id), request=request)


@router.patch("/{tank_id}/maintenance/{task_id}")
async def update_task(
    tank_id: TankId,
    task_id: TaskId,
    body: MaintenanceTaskUpdate,
    request: Request,
    user: CurrentUser,
):
    return success_response(
        MaintenanceService.update_task(tank_id, user.id, task_id, body),
        request=request,
    )


@router.delete("/{tank_id}/maintenance/{task_id}")
async def delete_task(tank_id: TankId, task_id: TaskId, request: Request, user: CurrentUser):
    return success_response(MaintenanceService.delete_task(tank_id, user.id, task_id), request=request)


@router.post("/{tank_id}/maintenance/{task_id}/complete")
async def complete_task(
    tank_id: TankId,
    task_id: TaskId,
    request: Request,
    user: CurrentUser,
    body: MaintenanceComplete | None = None,
):
    """
    Log a completion.

    One-off tasks become inactive; recurring tasks move to their next due date.
    """
    result = MaintenanceService.complete_task(tank_id, user.id, task_id, body or MaintenanceComplete())
    return success_response(result, status_code=201, request=request)
