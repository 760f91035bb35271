# =============================================================================
# app/routers/compatibility.py - Species Compatibility Check
# =============================================================================

from fastapi import APIRouter, Request

from app.dependencies import CurrentUser
from app.responses import success_response
from core.models.compatibility import CompatibilityRequest
from core.services.compatibility_service import CompatibilityService

router = APIRouter()


@router.post("/compatibility")
def check_compatibility(body: CompatibilityRequest, request: Request, user: CurrentUser):
    """
    Would this species do well in this tank?

    Free tier gets rule-based checks; paid tiers get an AI assessment
    (cached for 30 days per species pair).
    """
    result = CompatibilityService.check(user.id, body.tank_id, body.species_id)
    return success_response(result, request=request)
