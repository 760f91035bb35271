# =============================================================================
# core/models/photo_diagnosis.py - Photo Diagnosis Schemas
# =============================================================================
# Species identification and disease diagnosis from an uploaded photo
# (Plus/Pro). The LLM answers in JSON; the validators below coerce
# out-of-range labels instead of rejecting the whole answer.
# =============================================================================

from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


class DiagnosisType(str, Enum):
    SPECIES_ID = "species_id"
    DISEASE = "disease"
    BOTH = "both"

    @property
    def wants_species(self) -> bool:
        return self in (DiagnosisType.SPECIES_ID, DiagnosisType.BOTH)

    @property
    def wants_disease(self) -> bool:
        return self in (DiagnosisType.DISEASE, DiagnosisType.BOTH)


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Severity(str, Enum):
    MINOR = "minor"
    MODERATE = "moderate"
    SEVERE = "severe"


class DiagnosisFeedback(str, Enum):
    HELPFUL = "helpful"
    NOT_HELPFUL = "not_helpful"


def _coerce(value: Any, enum: type[Enum], default: Enum) -> Enum:
    try:
        return enum(value)
    except ValueError:
        return default


def _as_list(value: Any) -> list[str]:
    return [str(item) for item in value] if isinstance(value, list) else []


class SpeciesIdentification(BaseModel):
    name: str = "Unknown Species"
    scientific_name: str | None = None
    confidence: Confidence = Confidence.MEDIUM
    care_level: str | None = None
    min_tank_size: float | None = None
    temperament: str | None = None
    care_summary: str | None = None

    @field_validator("name", mode="before")
    @classmethod
    def default_name(cls, value: Any) -> str:
        return value or "Unknown Species"

    @field_validator("confidence", mode="before")
    @classmethod
    def coerce_confidence(cls, value: Any) -> Confidence:
        return _coerce(value, Confidence, Confidence.MEDIUM)

    @field_validator("min_tank_size", mode="before")
    @classmethod
    def numeric_tank_size(cls, value: Any) -> float | None:
        try:
            return float(value) if value is not None else None
        except (TypeError, ValueError):
            return None


class DiseaseDiagnosis(BaseModel):
    diagnosis: str = "Unknown Condition"
    confidence: Confidence = Confidence.MEDIUM
    severity: Severity = Severity.MODERATE
    symptoms: list[str] = Field(default_factory=list)
    treatment_steps: list[str] = Field(default_factory=list)
    medication_name: str | None = None
    medication_dosage: str | None = None
    treatment_duration: str | None = None
    medication_warnings: list[str] = Field(default_factory=list)

    @field_validator("diagnosis", mode="before")
    @classmethod
    def default_diagnosis(cls, value: Any) -> str:
        return value or "Unknown Condition"

    @field_validator("confidence", mode="before")
    @classmethod
    def coerce_confidence(cls, value: Any) -> Confidence:
        return _coerce(value, Confidence, Confidence.MEDIUM)

    @field_validator("severity", mode="before")
    @classmethod
    def coerce_severity(cls, value: Any) -> Severity:
        return _coerce(value, Severity, Severity.MODERATE)

    @field_validator("symptoms", "treatment_steps", "medication_warnings", mode="before")
    @classmethod
    def list_or_empty(cls, value: Any) -> list[str]:
        return _as_list(value)


class DiagnosisResult(BaseModel):
    """Parsed model answer plus the overall confidence shown to the user."""
    species_result: SpeciesIdentification | None = None
    disease_result: DiseaseDiagnosis | None = None
    confidence: Confidence = Confidence.MEDIUM


class DiagnosisFeedbackRequest(BaseModel):
    diagnosis_id: UUID
    feedback: DiagnosisFeedback
