# =============================================================================
# core/models/equipment.py - Equipment Schemas
# =============================================================================
# Equipment tracking (Plus and Pro): filters, heaters, lights and the like,
# with a replacement status derived from age vs. expected lifespan.
# =============================================================================

from datetime import date
from enum import Enum

from pydantic import BaseModel, Field, field_validator, model_validator


class EquipmentType(str, Enum):
    FILTER = "filter"
    FILTER_MEDIA = "filter_media"
    HEATER = "heater"
    LIGHT_BULB = "light_bulb"
    LIGHT_LED = "light_led"
    PROTEIN_SKIMMER = "protein_skimmer"
    POWERHEAD = "powerhead"
    DOSING_PUMP = "dosing_pump"
    CONTROLLER = "controller"
    TEST_KIT = "test_kit"
    SUBSTRATE = "substrate"
    MEDIA = "media"
    CARBON = "carbon"
    OTHER = "other"


class EquipmentStatus(str, Enum):
    """
    Replacement status.

    - good: less than 80% of expected lifespan used
    - due_soon: 80-100% used
    - overdue: past expected lifespan
    """
    GOOD = "good"
    DUE_SOON = "due_soon"
    OVERDUE = "overdue"


class EquipmentCreate(BaseModel):
    """
    Schema for adding equipment.

    Example:
        {"type": "heater", "brand": "Eheim", "model": "Jager 150W",
         "purchase_date": "2023-01-10"}
    """

    type: EquipmentType
    custom_type: str | None = Field(default=None, max_length=100)
    brand: str | None = Field(default=None, max_length=100)
    model: str | None = Field(default=None, max_length=100)
    purchase_date: date
    last_serviced_date: date | None = None
    settings: str | None = Field(default=None, max_length=1000)
    notes: str | None = Field(default=None, max_length=1000)
    purchase_price: float | None = Field(default=None, ge=0, le=99999999.99)
    expected_lifespan_months: int | None = Field(default=None, ge=1, le=240)
    photo_url: str | None = Field(default=None, max_length=500)
    location: str | None = Field(default=None, max_length=100)

    @field_validator("purchase_date")
    @classmethod
    def not_in_future(cls, value: date) -> date:
        if value > date.today():
            raise ValueError("Purchase date must be a valid date not in the future")
        return value

    @model_validator(mode="after")
    def require_custom_type(self) -> "EquipmentCreate":
        if self.type == EquipmentType.OTHER and not self.custom_type:
            raise ValueError("custom_type is required when type is 'other'")
        return self


class EquipmentUpdate(BaseModel):
    """Partial update of an equipment row."""

    custom_type: str | None = Field(default=None, max_length=100)
    brand: str | None = Field(default=None, max_length=100)
    model: str | None = Field(default=None, max_length=100)
    purchase_date: date | None = None
    last_serviced_date: date | None = None
    settings: str | None = Field(default=None, max_length=1000)
    notes: str | None = Field(default=None, max_length=1000)
    purchase_price: float | None = Field(default=None, ge=0, le=99999999.99)
    expected_lifespan_months: int | None = Field(default=None, ge=1, le=240)
    photo_url: str | None = Field(default=None, max_length=500)
    location: str | None = Field(default=None, max_length=100)

    @field_validator("purchase_date")
    @classmethod
    def not_in_future(cls, value: date | None) -> date | None:
        if value is not None and value > date.today():
            raise ValueError("Purchase date must be a valid date not in the future")
        return value
