# =============================================================================
# app/routers/usage.py - Daily AI Usage
# =============================================================================

from typing import Annotated

from fastapi import APIRouter, Query, Request

from app.dependencies import CurrentUser
from app.responses import success_response
from core.services.usage_service import UsageService

router = APIRouter()


@router.get("")
async def get_usage(
    request: Request,
    user: CurrentUser,
    feature: Annotated[str, Query(description="chat, diagnosis, report or search")] = "chat",
):
    """Today's count, tokens and remaining allowance for one feature."""
    return success_response(UsageService.get_usage(user.id, feature), request=request)
