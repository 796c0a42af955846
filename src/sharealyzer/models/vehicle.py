"""Provider independent vehicle observation."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from sharealyzer.models.geo import GeoLocation


class VehicleState(StrEnum):
    """Coarse lifecycle state. Most providers only ever report ``IDLE_RENTABLE``."""

    IDLE_RENTABLE = "IDLE_RENTABLE"
    BROKEN = "BROKEN"
    IN_USE = "IN_USE"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def _missing_(cls, value: object) -> VehicleState:
        return cls.UNKNOWN


class Vehicle(BaseModel):
    """A single vehicle as observed in one snapshot.

    A new observation of the same identifier is a new value; instances are
    never mutated.

    Parameters
    ----------
    vehicle_id : str
        Identifier, stable across snapshots.
    provider : str
        Name of the fleet provider.
    location : GeoLocation
        Position at observation time.
    charge_level : float
        Charge on the provider's scale (percent for circ).
    state : VehicleState
        Coarse lifecycle state.
    last_update : datetime or None
        When the provider last changed the vehicle's state.
    init_price : int
        Flat fee for starting a ride, in minor currency units.
    unit_price : int
        Price per started minute, in minor currency units.
    zone : str or None
        Provider zone identifier.
    last_user_id : str or None
        Identifier of the user who last changed the vehicle's state.
    raw : dict
        Original provider record, used for archiving.
    """

    model_config = ConfigDict(frozen=True)

    vehicle_id: str
    provider: str
    location: GeoLocation
    charge_level: float = 0.0
    state: VehicleState = VehicleState.UNKNOWN
    last_update: datetime | None = None
    init_price: int = 0
    unit_price: int = 0
    zone: str | None = None
    last_user_id: str | None = None
    raw: dict[str, Any] = Field(default_factory=dict, repr=False)

    @field_validator("vehicle_id")
    @classmethod
    def _normalize_id(cls, value: str) -> str:
        vehicle_id = value.strip()
        if not vehicle_id:
            raise ValueError("vehicle_id must be non-empty")
        return vehicle_id
