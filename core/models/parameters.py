# =============================================================================
# core/models/parameters.py - Water Parameter & Threshold Schemas
# =============================================================================
# These models define the API contract for water testing:
# - WaterParameterCreate: one test session (any subset of readings)
# - ThresholdUpsert: a custom safe/warning range for one parameter type
#
# Column names carry their unit (ammonia_ppm, temperature_f) because that is
# how they are stored in the water_parameters table.
# =============================================================================

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, model_validator

# Reading columns in the water_parameters table, in display order
PARAMETER_COLUMNS: tuple[str, ...] = (
    "temperature_f",
    "ph",
    "ammonia_ppm",
    "nitrite_ppm",
    "nitrate_ppm",
    "gh_dgh",
    "kh_dgh",
    "salinity",
    "calcium_ppm",
    "alkalinity_dkh",
    "magnesium_ppm",
    "phosphate_ppm",
)


class ThresholdType(str, Enum):
    """
    Parameter types a custom threshold can be stored for.

    Threshold names differ from reading columns for hardness and salinity
    (gh_ppm vs gh_dgh); see THRESHOLD_TYPE_FOR_COLUMN.
    """
    PH = "ph"
    AMMONIA_PPM = "ammonia_ppm"
    NITRITE_PPM = "nitrite_ppm"
    NITRATE_PPM = "nitrate_ppm"
    TEMPERATURE_F = "temperature_f"
    GH_PPM = "gh_ppm"
    KH_PPM = "kh_ppm"
    SALINITY_PPT = "salinity_ppt"
    CALCIUM_PPM = "calcium_ppm"
    ALKALINITY_DKH = "alkalinity_dkh"
    MAGNESIUM_PPM = "magnesium_ppm"
    PHOSPHATE_PPM = "phosphate_ppm"
    DISSOLVED_OXYGEN_PPM = "dissolved_oxygen_ppm"


# Reading column -> threshold type, where they differ
THRESHOLD_TYPE_FOR_COLUMN: dict[str, str] = {
    "gh_dgh": ThresholdType.GH_PPM.value,
    "kh_dgh": ThresholdType.KH_PPM.value,
    "salinity": ThresholdType.SALINITY_PPT.value,
}


def threshold_type_for(column: str) -> str:
    return THRESHOLD_TYPE_FOR_COLUMN.get(column, column)


class WaterParameterCreate(BaseModel):
    """
    Schema for logging a water test.

    At least one reading is required; everything else is optional.

    Example:
        {"ph": 7.2, "ammonia_ppm": 0, "nitrite_ppm": 0, "nitrate_ppm": 20}
    """

    measured_at: datetime | None = Field(
        default=None,
        description="When the test was taken (defaults to now)"
    )

    temperature_f: float | None = Field(default=None, ge=32, le=120)
    ph: float | None = Field(default=None, ge=0, le=14)
    ammonia_ppm: float | None = Field(default=None, ge=0)
    nitrite_ppm: float | None = Field(default=None, ge=0)
    nitrate_ppm: float | None = Field(default=None, ge=0)
    gh_dgh: float | None = Field(default=None, ge=0)
    kh_dgh: float | None = Field(default=None, ge=0)
    salinity: float | None = Field(default=None, ge=0, le=2, description="Specific gravity")
    calcium_ppm: float | None = Field(default=None, ge=0)
    alkalinity_dkh: float | None = Field(default=None, ge=0)
    magnesium_ppm: float | None = Field(default=None, ge=0)
    phosphate_ppm: float | None = Field(default=None, ge=0)

    notes: str | None = Field(default=None, max_length=1000)

    @model_validator(mode="after")
    def require_one_reading(self) -> "WaterParameterCreate":
        if not self.readings():
            raise ValueError("At least one parameter value is required")
        return self

    def readings(self) -> dict[str, float]:
        """Only the reading columns that were provided."""
        return {
            column: getattr(self, column)
            for column in PARAMETER_COLUMNS
            if getattr(self, column) is not None
        }


class ThresholdUpsert(BaseModel):
    """
    Custom range for one parameter.

    Either all four bounds are given or none (none clears back to defaults),
    and the safe band must sit inside the warning band.
    """

    parameter_type: ThresholdType
    safe_min: float | None = None
    safe_max: float | None = None
    warning_min: float | None = None
    warning_max: float | None = None

    @model_validator(mode="after")
    def check_ranges(self) -> "ThresholdUpsert":
        bounds = [self.safe_min, self.safe_max, self.warning_min, self.warning_max]
        provided = [b is not None for b in bounds]
        if any(provided) and not all(provided):
            raise ValueError("Provide all of safe_min, safe_max, warning_min, warning_max or none of them")
        if all(provided):
            if self.safe_min > self.safe_max:
                raise ValueError("safe_min must be less than or equal to safe_max")
            if self.warning_min > self.safe_min or self.safe_max > self.warning_max:
                raise ValueError("Safe range must be within the warning range")
        return self
