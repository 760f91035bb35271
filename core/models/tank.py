# =============================================================================
# core/models/tank.py - Tank & Livestock Schemas
# =============================================================================
# These models define the API contract for the tank profile and what lives
# in it:
# - TankCreate / TankUpdate: the aquarium profile
# - LivestockCreate / LivestockUpdate: fish, inverts and plants in a tank
#
# A tank is the primary organizing entity: parameters, maintenance tasks,
# equipment and alerts all hang off a tank_id.
# =============================================================================

from datetime import date
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, model_validator


class TankType(str, Enum):
    """
    Kind of aquarium.

    saltwater and reef tanks get the marine parameter set (salinity,
    calcium, alkalinity, magnesium, phosphate) in trend analysis.
    """
    FRESHWATER = "freshwater"
    SALTWATER = "saltwater"
    BRACKISH = "brackish"
    REEF = "reef"
    PLANTED = "planted"
    POND = "pond"

    @property
    def is_marine(self) -> bool:
        return self in (TankType.SALTWATER, TankType.REEF)


class TankCreate(BaseModel):
    """
    Schema for creating a tank.

    Example:
        {
            "name": "Living Room Community",
            "type": "freshwater",
            "volume_gallons": 55,
            "substrate": "Sand",
            "setup_date": "2024-03-01"
        }
    """

    name: str = Field(..., min_length=1, max_length=50, description="Display name")

    type: TankType = Field(..., description="Tank type")

    volume_gallons: float = Field(
        ...,
        gt=0,
        le=100000,
        description="Water volume in US gallons"
    )

    # Optional dimensions in inches
    length_inches: float | None = Field(default=None, gt=0, le=1000)
    width_inches: float | None = Field(default=None, gt=0, le=1000)
    height_inches: float | None = Field(default=None, gt=0, le=1000)

    substrate: str | None = Field(default=None, max_length=100)
    setup_date: date | None = Field(default=None, description="Date the tank was set up (YYYY-MM-DD)")
    notes: str | None = Field(default=None, max_length=1000)
    photo_url: str | None = Field(default=None, max_length=500)


class TankUpdate(BaseModel):
    """Partial update - only fields that are sent get written."""

    name: str | None = Field(default=None, min_length=1, max_length=50)
    type: TankType | None = None
    volume_gallons: float | None = Field(default=None, gt=0, le=100000)
    length_inches: float | None = Field(default=None, gt=0, le=1000)
    width_inches: float | None = Field(default=None, gt=0, le=1000)
    height_inches: float | None = Field(default=None, gt=0, le=1000)
    substrate: str | None = Field(default=None, max_length=100)
    setup_date: date | None = None
    notes: str | None = Field(default=None, max_length=1000)
    photo_url: str | None = Field(default=None, max_length=500)


# =============================================================================
# Livestock
# =============================================================================

class LivestockCreate(BaseModel):
    """
    Schema for adding livestock to a tank.

    Either a species from the catalogue (species_id) or a free-text
    custom_name is required.

    Example:
        {"species_id": "550e8400-...", "quantity": 6, "nickname": "The Squad"}
    """

    species_id: UUID | None = Field(default=None, description="Species catalogue id")
    custom_name: str | None = Field(default=None, min_length=1, max_length=100)
    quantity: int = Field(default=1, ge=1, le=1000)
    nickname: str | None = Field(default=None, max_length=50)
    notes: str | None = Field(default=None, max_length=500)
    date_added: date | None = None

    @model_validator(mode="after")
    def require_species_or_name(self) -> "LivestockCreate":
        if self.species_id is None and not self.custom_name:
            raise ValueError("Either species_id or custom_name is required")
        return self


class LivestockUpdate(BaseModel):
    """PATCH body - livestock_id travels in the body, like the web client sends it."""

    livestock_id: UUID = Field(..., description="Livestock row to update")
    nickname: str | None = Field(default=None, max_length=50)
    quantity: int | None = Field(default=None, ge=1, le=1000)
    notes: str | None = Field(default=None, max_length=500)
    is_active: bool | None = None
