# =============================================================================
# core/models/ - Pydantic Data Models
# =============================================================================
# This package contains Pydantic schemas for data validation:
# - tier.py: Subscription tiers, statuses and limits
# - tank.py: Tank and livestock schemas
# - parameters.py: Water parameter readings and custom thresholds
# - maintenance.py: Maintenance task scheduling
# - equipment.py: Equipment tracking (Plus/Pro)
# - chat.py: AI chat request/response
# - actions.py: AI-proposed actions executed after confirmation
# - alerts.py: Proactive alerts from the trend job
# - compatibility.py: Species compatibility results
# - trends.py: On-demand trend analysis output
# - billing.py: Checkout/portal requests and plan catalogue
# - photo_diagnosis.py: Photo species ID and disease diagnosis
# - notifications.py: Notification preferences
#
# These models define the "contract" between API and clients.
# =============================================================================

from .tier import PAID_TIERS, SubscriptionStatus, Tier, TierLimits

from .tank import (
    LivestockCreate,
    LivestockUpdate,
    TankCreate,
    TankType,
    TankUpdate,
)

from .parameters import (
    PARAMETER_COLUMNS,
    ThresholdType,
    ThresholdUpsert,
    WaterParameterCreate,
    threshold_type_for,
)

from .maintenance import (
    MaintenanceComplete,
    MaintenanceRecommendation,
    MaintenanceTaskCreate,
    MaintenanceTaskUpdate,
    RecommendationPriority,
    RecommendationRequest,
    TaskFrequency,
    TaskType,
)

from .equipment import (
    EquipmentCreate,
    EquipmentStatus,
    EquipmentType,
    EquipmentUpdate,
)

from .chat import ChatMessage, ChatRequest, ChatResponse, MessageRole, TokenUsage

from .actions import (
    PARAMETER_FIELD_COLUMNS,
    ActionRequest,
    ActionType,
    AddLivestockPayload,
    CompleteMaintenancePayload,
    LogParametersPayload,
    ScheduleMaintenancePayload,
)

from .alerts import (
    AlertAction,
    AlertSeverity,
    AlertStatus,
    AlertUpdateRequest,
    GeneratedAlert,
    GeneratedAlertBatch,
    TrendDirection,
)

from .compatibility import (
    AICompatibilityAssessment,
    CompatibilityConcern,
    CompatibilityLevel,
    CompatibilityRequest,
    CompatibilityResult,
    ConcernSeverity,
)

from .trends import (
    OverallHealth,
    ParameterStatus,
    ParameterSummary,
    TrendInsights,
    TrendLabel,
)

from .billing import (
    TIER_DISPLAY_PRICES,
    TIER_PRICING,
    BillingInterval,
    CheckoutRequest,
    CheckoutTier,
    PortalRequest,
    TierInfo,
)

from .photo_diagnosis import (
    Confidence,
    DiagnosisFeedback,
    DiagnosisFeedbackRequest,
    DiagnosisResult,
    DiagnosisType,
    DiseaseDiagnosis,
    Severity,
    SpeciesIdentification,
)

from .notifications import NotificationPreferencesUpdate

__all__ = [
    # Tiers
    "PAID_TIERS",
    "SubscriptionStatus",
    "Tier",
    "TierLimits",
    # Tanks
    "LivestockCreate",
    "LivestockUpdate",
    "TankCreate",
    "TankType",
    "TankUpdate",
    # Parameters
    "PARAMETER_COLUMNS",
    "ThresholdType",
    "ThresholdUpsert",
    "WaterParameterCreate",
    "threshold_type_for",
    # Maintenance
    "MaintenanceComplete",
    "MaintenanceRecommendation",
    "MaintenanceTaskCreate",
    "MaintenanceTaskUpdate",
    "RecommendationPriority",
    "RecommendationRequest",
    "TaskFrequency",
    "TaskType",
    # Equipment
    "EquipmentCreate",
    "EquipmentStatus",
    "EquipmentType",
    "EquipmentUpdate",
    # Chat
    "ChatMessage",
    "ChatRequest",
    "ChatResponse",
    "MessageRole",
    "TokenUsage",
    # Actions
    "PARAMETER_FIELD_COLUMNS",
    "ActionRequest",
    "ActionType",
    "AddLivestockPayload",
    "CompleteMaintenancePayload",
    "LogParametersPayload",
    "ScheduleMaintenancePayload",
    # Alerts
    "AlertAction",
    "AlertSeverity",
    "AlertStatus",
    "AlertUpdateRequest",
    "GeneratedAlert",
    "GeneratedAlertBatch",
    "TrendDirection",
    # Compatibility
    "AICompatibilityAssessment",
    "CompatibilityConcern",
    "CompatibilityLevel",
    "CompatibilityRequest",
    "CompatibilityResult",
    "ConcernSeverity",
    # Trends
    "OverallHealth",
    "ParameterStatus",
    "ParameterSummary",
    "TrendInsights",
    "TrendLabel",
    # Billing
    "TIER_DISPLAY_PRICES",
    "TIER_PRICING",
    "BillingInterval",
    "CheckoutRequest",
    "CheckoutTier",
    "PortalRequest",
    "TierInfo",
    # Photo diagnosis
    "Confidence",
    "DiagnosisFeedback",
    "DiagnosisFeedbackRequest",
    "DiagnosisResult",
    "DiagnosisType",
    "DiseaseDiagnosis",
    "Severity",
    "SpeciesIdentification",
    # Notifications
    "NotificationPreferencesUpdate",
]
