# =============================================================================
# app/routers/recommendations.py - Maintenance Recommendations
# =============================================================================

from fastapi import APIRouter, Request

from app.dependencies import CurrentUser, LLMDep
from app.responses import success_response
from core.models.maintenance import RecommendationRequest
from core.services.recommendation_service import RecommendationService

router = APIRouter()


@router.post("/maintenance-recommendations")
def maintenance_recommendations(
    body: RecommendationRequest,
    request: Request,
    user: CurrentUser,
    llm: LLMDep,
):
    """
    Suggested maintenance tasks the tank doesn't have yet.

    Free tier gets templates; paid tiers get AI suggestions while their
    daily allowance lasts.
    """
    result = RecommendationService.recommend(user.id, body.tank_id, llm=llm)
    return success_response(result, request=request)
