# =============================================================================
# core/models/compatibility.py - Species Compatibility Schemas
# =============================================================================
# Result of "can I add species X to this tank?". Produced either by the
# rule-based check (all tiers) or by the LLM (paid tiers).
# =============================================================================

from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


class CompatibilityLevel(str, Enum):
    COMPATIBLE = "compatible"
    CAUTION = "caution"
    INCOMPATIBLE = "incompatible"


class ConcernSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    DANGER = "danger"


class CompatibilityRequest(BaseModel):
    tank_id: UUID
    species_id: UUID


class CompatibilityConcern(BaseModel):
    severity: ConcernSeverity
    message: str


class AICompatibilityAssessment(BaseModel):
    """
    JSON the LLM must return.

    Scores outside 1-5 are clamped rather than rejected.
    """
    score: int = Field(..., description="1 (terrible) to 5 (ideal)")
    summary: str = ""
    concerns: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)

    @field_validator("score", mode="before")
    @classmethod
    def clamp_score(cls, value: object) -> int:
        return max(1, min(5, int(round(float(value)))))


class CompatibilityResult(BaseModel):
    compatible: CompatibilityLevel
    score: int | None = None
    summary: str
    concerns: list[CompatibilityConcern] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    ai_assessment: bool = False
    cached: bool = False
    limit_reached: bool = False
