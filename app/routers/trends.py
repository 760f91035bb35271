# =============================================================================
# app/routers/trends.py - On-Demand Trend Analysis
# =============================================================================

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, Request

from app.dependencies import CurrentUser
from app.responses import success_response
from core.services.trend_service import TrendService

router = APIRouter()


@router.get("/trend-analysis")
def trend_analysis(
    request: Request,
    user: CurrentUser,
    tank_id: Annotated[UUID, Query(description="Tank UUID")],
    days: Annotated[int, Query(ge=1, le=365, description="Look-back window in days")] = 30,
):
    """
    Stats, trend and status per parameter, plus an overall health grade.

    Starter and above also get an AI summary with per-parameter insights.
    """
    return success_response(TrendService.analyze(tank_id, user.id, days=days), request=request)
