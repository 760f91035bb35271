# =============================================================================
# app/routers/ - API Route Definitions
# =============================================================================
# This package contains FastAPI routers organized by feature:
# - health.py: Health check endpoints
# - tanks.py, livestock.py, parameters.py, maintenance.py, equipment.py:
#   tank-scoped resources under /tanks/{tank_id}
# - species.py: Public species catalog
# - chat.py, actions.py, trends.py, compatibility.py, alerts.py,
#   photo_diagnosis.py, recommendations.py: AI features
# - notifications.py: Notification preferences
# - usage.py: Daily AI usage for the current user
# - billing.py, webhooks.py: Stripe subscriptions
#
# Each router is mounted in main.py with a URL prefix.
# =============================================================================

from . import health
from . import tanks
from . import livestock
from . import parameters
from . import maintenance
from . import equipment
from . import species
from . import chat
from . import actions
from . import trends
from . import compatibility
from . import alerts
from . import photo_diagnosis
from . import recommendations
from . import notifications
from . import usage
from . import billing
from . import webhooks

__all__ = [
    "health",
    "tanks",
    "livestock",
    "parameters",
    "maintenance",
    "equipment",
    "species",
    "chat",
    "actions",
    "trends",
    "compatibility",
    "alerts",
    "photo_diagnosis",
    "recommendations",
    "notifications",
    "usage",
    "billing",
    "webhooks",
]
