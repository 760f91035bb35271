# =============================================================================
# app/routers/alerts.py - Proactive Alerts
# =============================================================================
# Alerts are generated by the daily trend job (workers/tasks.py); these
# endpoints list them and let the user dismiss or resolve them.
# =============================================================================

from typing import Annotated, Literal
from uuid import UUID

from fastapi import APIRouter, Query, Request

from app.dependencies import CurrentUser
from app.responses import success_response
from core.models.alerts import AlertUpdateRequest
from core.services.alert_service import DEFAULT_LIMIT, MAX_LIMIT, AlertService

router = APIRouter()


@router.get("/alerts")
async def list_alerts(
    request: Request,
    user: CurrentUser,
    tank_id: Annotated[UUID | None, Query(description="Only this tank's alerts")] = None,
    status: Annotated[Literal["active", "dismissed", "resolved", "all"], Query()] = "active",
    limit: Annotated[int, Query(ge=1, le=MAX_LIMIT)] = DEFAULT_LIMIT,
):
    result = AlertService.list_alerts(user.id, tank_id=tank_id, status=status, limit=limit)
    return success_response(result, request=request)


@router.post("/alerts")
async def update_alert(body: AlertUpdateRequest, request: Request, user: CurrentUser):
    """Dismiss or resolve an active alert."""
    return success_response(AlertService.update_alert(user.id, body), request=request)
