"""Fleet snapshot model."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from sharealyzer._constants import DEFAULT_PROVIDER
from sharealyzer.models.vehicle import Vehicle

_logger = logging.getLogger(__name__)


class Snapshot(BaseModel):
    """A timestamped, complete observation of all currently known vehicles.

    ``vehicles`` maps each identifier to its observation, so an identifier
    appears at most once per snapshot.
    """

    model_config = ConfigDict(frozen=True)

    taken_at: datetime
    provider: str = DEFAULT_PROVIDER
    vehicles: dict[str, Vehicle] = Field(default_factory=dict)

    @field_validator("taken_at")
    @classmethod
    def _ensure_tz_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @model_validator(mode="after")
    def _check_keys(self) -> Snapshot:
        for key, vehicle in self.vehicles.items():
            if key != vehicle.vehicle_id:
                raise ValueError(f"vehicle keyed as {key!r} has id {vehicle.vehicle_id!r}")
        return self

    @classmethod
    def from_vehicles(
        cls,
        taken_at: datetime,
        vehicles: Iterable[Vehicle],
        *,
        provider: str = DEFAULT_PROVIDER,
    ) -> Snapshot:
        """Build a snapshot from a sequence of observations.

        Providers occasionally list a vehicle twice; the later entry wins.
        """
        mapping: dict[str, Vehicle] = {}
        for vehicle in vehicles:
            if vehicle.vehicle_id in mapping:
                _logger.warning(
                    "Vehicle %s listed twice in snapshot %s, keeping the later entry",
                    vehicle.vehicle_id,
                    taken_at.isoformat(),
                )
            mapping[vehicle.vehicle_id] = vehicle
        return cls(taken_at=taken_at, provider=provider, vehicles=mapping)

    @property
    def vehicle_ids(self) -> frozenset[str]:
        return frozenset(self.vehicles)

    def raw_records(self) -> list[dict[str, Any]]:
        """Original provider records in identifier order, for archiving."""
        return [self.vehicles[vehicle_id].raw for vehicle_id in sorted(self.vehicles)]

    def __len__(self) -> int:
        return len(self.vehicles)
