# =============================================================================
# app/routers/actions.py - AI Action Execution
# =============================================================================
# The assistant proposes actions in its replies; the client shows them to
# the user and, once confirmed, posts them here.
# =============================================================================

from fastapi import APIRouter, Request

from app.dependencies import CurrentUser
from app.responses import success_response
from core.models.actions import ActionRequest
from core.services.action_service import ActionService

router = APIRouter()


@router.post("/actions/execute")
async def execute_action(body: ActionRequest, request: Request, user: CurrentUser):
    """
    Execute a confirmed action.

    Example:
        {"type": "schedule_maintenance", "tank_id": "...",
         "payload": {"task_type": "water change", "title": "Weekly WC",
                     "due_date": "next saturday", "frequency": "every week"}}
    """
    result = ActionService.execute(user.id, body)
    return success_response(result, status_code=201, request=request)
