"""Trip models."""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import StrEnum

from pydantic import BaseModel, ConfigDict

from sharealyzer.models.geo import GeoLocation


class TripCategory(StrEnum):
    CUSTOMER = "customer"
    RELOCATION = "relocation"
    RECHARGE = "recharge"


class TripAnomaly(StrEnum):
    NON_POSITIVE_DURATION = "non_positive_duration"
    UNUSUALLY_LONG = "unusually_long"


class OpenTrip(BaseModel):
    """A trip whose start is known but whose end has not been observed yet.

    ``last_seen_at`` is the capture time of the last snapshot that still
    contained the vehicle; ``start_time`` is the first snapshot where it was
    missing.
    """

    model_config = ConfigDict(frozen=True)

    trip_id: str
    vehicle_id: str
    provider: str
    start_location: GeoLocation
    start_charge_level: float
    start_time: datetime
    last_seen_at: datetime | None = None


class Trip(BaseModel):
    """A finalized trip.

    Distances are great-circle kilometers between the start and end
    positions; ``cost`` is in minor currency units (euro cents for circ).
    ``category`` is ``None`` until the trip went through the classifier.
    """

    model_config = ConfigDict(frozen=True)

    trip_id: str
    vehicle_id: str
    provider: str
    start_location: GeoLocation
    end_location: GeoLocation
    start_charge_level: float
    end_charge_level: float
    start_time: datetime
    end_time: datetime
    duration: timedelta
    distance_km: float
    cost: int
    user_id: str | None = None
    category: TripCategory | None = None
    anomalies: tuple[TripAnomaly, ...] = ()

    @property
    def energy_used(self) -> float:
        """Charge points used; negative when the vehicle was charged."""
        return self.start_charge_level - self.end_charge_level

    @property
    def duration_minutes(self) -> float:
        return self.duration.total_seconds() / 60.0
