# =============================================================================
# core/services/__init__.py - Service Layer Exports
# =============================================================================

from .tier_service import TierService
from .tank_service import TankService
from .livestock_service import LivestockService
from .species_service import SpeciesService
from .parameter_service import ParameterService
from .maintenance_service import MaintenanceService
from .equipment_service import EquipmentService
from .usage_service import UsageService
from .chat_service import ChatService
from .action_service import ActionService
from .trend_service import TrendService
from .alert_service import AlertService
from .compatibility_service import CompatibilityService
from .billing_service import BillingService
from .webhook_service import WebhookService
from .reminder_service import ReminderService
from .photo_diagnosis_service import PhotoDiagnosisService
from .recommendation_service import RecommendationService
from .notification_service import NotificationService

__all__ = [
    "TierService",
    "TankService",
    "LivestockService",
    "SpeciesService",
    "ParameterService",
    "MaintenanceService",
    "EquipmentService",
    "UsageService",
    "ChatService",
    "ActionService",
    "TrendService",
    "AlertService",
    "CompatibilityService",
    "BillingService",
    "WebhookService",
    "ReminderService",
    "PhotoDiagnosisService",
    "RecommendationService",
    "NotificationService",
]
