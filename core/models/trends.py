# =============================================================================
# core/models/trends.py - Trend Analysis Schemas
# =============================================================================
# Output of the on-demand trend analysis endpoint: descriptive statistics
# per parameter, a status against thresholds, and an overall health grade.
# =============================================================================

from enum import Enum

from pydantic import BaseModel, Field


class TrendLabel(str, Enum):
    """Half-split trend classification used by the dashboard."""
    RISING = "rising"
    FALLING = "falling"
    STABLE = "stable"


class ParameterStatus(str, Enum):
    SAFE = "safe"
    WARNING = "warning"
    DANGER = "danger"


class OverallHealth(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


class ParameterSummary(BaseModel):
    current: float | None = None
    min: float | None = None
    max: float | None = None
    avg: float | None = None
    readings: int = 0
    trend: TrendLabel | None = None
    status: ParameterStatus | None = None
    ai_insight: str | None = None


class TrendInsights(BaseModel):
    """JSON the LLM returns for paid tiers."""
    summary: str = ""
    insights: dict[str, str] = Field(default_factory=dict)
