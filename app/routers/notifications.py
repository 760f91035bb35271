# =============================================================================
# app/routers/notifications.py - Notification Preferences
# =============================================================================
# PUT and PATCH are both partial updates.
# =============================================================================

from fastapi import APIRouter, Request

from app.dependencies import CurrentUser
from app.responses import success_response
from core.models.notifications import NotificationPreferencesUpdate
from core.services.notification_service import NotificationService

router = APIRouter()


@router.get("/preferences")
async def get_preferences(request: Request, user: CurrentUser):
    """Current preferences; a default row is created on first read."""
    return success_response(NotificationService.get_preferences(user.id), request=request)


@router.put("/preferences")
@router.patch("/preferences")
async def update_preferences(body: NotificationPreferencesUpdate, request: Request, user: CurrentUser):
    return success_response(NotificationService.update_preferences(user.id, body), request=request)
