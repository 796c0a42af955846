"""circ scooter payload model."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from sharealyzer._constants import DEFAULT_PROVIDER
from sharealyzer.models._base import EpochTimestamp, ProviderBaseModel
from sharealyzer.models.geo import GeoLocation
from sharealyzer.models.vehicle import Vehicle, VehicleState


class CircScooter(ProviderBaseModel):
    """One scooter as returned by the circ ``/devices`` endpoint.

    Only the fields needed for trip reconstruction are typed; everything
    else stays available through ``raw`` and is archived untouched.
    """

    identifier: str
    latitude: float
    longitude: float
    energy_level: float = 0.0
    """Battery charge in percent."""
    state: str = ""
    broken: bool = False
    missing: bool = False
    init_price: int = 0
    """Unlock fee in euro cents."""
    price: int = 0
    """Price per minute in euro cents."""
    price_time: int | None = None
    currency: str = ""
    name: str = ""
    qr_code: str = ""
    zone_identifier: str | None = None
    state_update_at: EpochTimestamp = None
    state_updated_by_user_identifier: str | None = None
    last_gnss_update: EpochTimestamp = None
    timestamp: str | None = Field(default=None)

    @property
    def vehicle_state(self) -> VehicleState:
        if self.broken:
            return VehicleState.BROKEN
        return VehicleState(self.state.upper())

    @property
    def last_update(self) -> datetime | None:
        return self.state_update_at or self.last_gnss_update

    def to_vehicle(self, provider: str = DEFAULT_PROVIDER) -> Vehicle:
        """Convert into a provider independent :class:`Vehicle`."""
        return Vehicle(
            vehicle_id=self.identifier,
            provider=provider,
            location=GeoLocation(latitude=self.latitude, longitude=self.longitude),
            charge_level=self.energy_level,
            state=self.vehicle_state,
            last_update=self.last_update,
            init_price=self.init_price,
            unit_price=self.price,
            zone=self.zone_identifier,
            last_user_id=self.state_updated_by_user_identifier,
            raw=self.raw,
        )
